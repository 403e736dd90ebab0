"""
SQLAlchemy model for user-defined alert rules (frontend DB)
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, text
from goldenaxe_admin.database.postgres_client import Base


class DBAlertRule(Base):
    """Threshold rule evaluated on every alert check"""
    __tablename__ = "alert_rules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)  # sync_behind | rpc_latency | db_connections | db_cache | backend_latency
    chain = Column(Integer)  # NULL = chain-agnostic
    threshold = Column(Float, nullable=False)
    comparison = Column(String, nullable=False, server_default="gt")
    severity = Column(String, nullable=False, server_default="warning")
    enabled = Column(Boolean, server_default=text("true"))
    created_at = Column(DateTime(timezone=True), server_default=text("now()"))
    last_triggered_at = Column(DateTime(timezone=True))
