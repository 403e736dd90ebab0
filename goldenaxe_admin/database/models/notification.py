"""
SQLAlchemy models for notification channels (frontend DB)
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ARRAY, text
from goldenaxe_admin.database.postgres_client import Base


class DBWebhook(Base):
    """Webhook delivery target"""
    __tablename__ = "notification_webhooks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    url = Column(String, nullable=False)
    enabled = Column(Boolean, server_default=text("true"))
    events = Column(ARRAY(String), server_default=text("'{}'"))  # empty = all alert types
    created_at = Column(DateTime(timezone=True), server_default=text("now()"))
    last_triggered_at = Column(DateTime(timezone=True))
    last_error = Column(String)


class DBEmail(Base):
    """Email delivery target"""
    __tablename__ = "notification_emails"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    enabled = Column(Boolean, server_default=text("true"))
    events = Column(ARRAY(String), server_default=text("'{}'"))
    created_at = Column(DateTime(timezone=True), server_default=text("now()"))
    last_sent_at = Column(DateTime(timezone=True))
