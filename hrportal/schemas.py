"""Response schemas shared by several routers."""

import re
from datetime import datetime

from pydantic import BaseModel

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$")
MIN_PASSWORD_LENGTH = 6


def is_valid_email(value: str | None) -> bool:
    return bool(value) and EMAIL_PATTERN.match(value.strip()) is not None


class ProfileResponse(BaseModel):
    id: str
    email: str | None = None
    phone: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    role: str
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class JobPostingResponse(BaseModel):
    id: int
    created_by: str | None = None
    job_title: str
    department: str | None = None
    location: str | None = None
    job_description: str | None = None
    image_path: str | None = None
    date_posted: datetime | None = None
    status: str

    class Config:
        from_attributes = True


class ApplicationResponse(BaseModel):
    id: int
    job_id: int
    applicant_id: str
    pdf_path: str | None = None
    comment: str | None = None
    status: str
    hr_comment: str | None = None
    submitted_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True
