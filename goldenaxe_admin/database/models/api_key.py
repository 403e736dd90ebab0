"""
SQLAlchemy model for API keys (frontend DB)
Keys are never removed: revoking stamps deleted_at
"""
from sqlalchemy import Column, String, DateTime, ARRAY, text
from goldenaxe_admin.database.postgres_client import Base


class DBApiKey(Base):
    """Customer API key, identified by its secret"""
    __tablename__ = "api_keys"

    secret = Column(String, primary_key=True)
    owner_email = Column(String, nullable=False)
    origins = Column(ARRAY(String), server_default=text("'{}'"))
    created_at = Column(DateTime(timezone=True), server_default=text("now()"))
    deleted_at = Column(DateTime(timezone=True))
