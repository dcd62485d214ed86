"""Application model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from hrportal.database import Base, utcnow


class Application(Base):
    """An applicant's PDF submission for a job posting."""
    __tablename__ = "applications"

    id = Column(Integer, primary_key=True)
    job_id = Column(Integer, ForeignKey("job_postings.id"), index=True)
    applicant_id = Column(String(36), ForeignKey("profiles.id"), index=True)
    pdf_path = Column(String)
    comment = Column(Text, nullable=True)
    status = Column(String, default="For review", index=True)
    hr_comment = Column(Text, nullable=True)
    submitted_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
