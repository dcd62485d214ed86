"""Job posting model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from hrportal.database import Base, utcnow


class JobPosting(Base):
    """Represents an open or closed vacancy."""
    __tablename__ = "job_postings"

    id = Column(Integer, primary_key=True)
    created_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    job_title = Column(String, nullable=False)
    department = Column(String, nullable=True)
    location = Column(String, nullable=True)
    job_description = Column(Text, nullable=True)
    image_path = Column(String, nullable=True)
    date_posted = Column(DateTime, default=utcnow)
    status = Column(String, default="active")  # active/closed
