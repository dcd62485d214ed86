"""Profile model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, String

from hrportal.database import Base, utcnow


class Profile(Base):
    """Role and contact details, one-to-one with an identity."""
    __tablename__ = "profiles"

    id = Column(String(36), ForeignKey("identities.id"), primary_key=True)
    email = Column(String, index=True)
    phone = Column(String, nullable=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    role = Column(String, nullable=False, index=True)  # applicant/hr/super_admin
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
