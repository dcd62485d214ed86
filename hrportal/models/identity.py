"""Identity model definitions."""

from sqlalchemy import Column, DateTime, String

from hrportal.database import Base, utcnow


class Identity(Base):
    """Login credentials for one person. Owned by the identity store."""
    __tablename__ = "identities"

    id = Column(String(36), primary_key=True)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow)
