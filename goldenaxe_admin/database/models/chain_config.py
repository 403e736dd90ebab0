"""
SQLAlchemy model for chain configuration (backend DB)
The indexer re-reads this table every 30 seconds
"""
from sqlalchemy import Column, Integer, BigInteger, String, Boolean
from goldenaxe_admin.database.postgres_client import BackendBase


class DBChainConfig(BackendBase):
    """One indexed network"""
    __tablename__ = "config"

    chain = Column(BigInteger, primary_key=True, autoincrement=False)
    name = Column(String, nullable=False)
    url = Column(String, nullable=False)
    enabled = Column(Boolean, nullable=False, default=False)
    batch_size = Column(Integer, nullable=False, default=2000)
    concurrency = Column(Integer, nullable=False, default=10)
    start_block = Column(BigInteger)
