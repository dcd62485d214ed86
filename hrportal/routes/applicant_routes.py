import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from hrportal import storage
from hrportal.auth.dependencies import require_roles
from hrportal.auth.resolver import ResolvedUser
from hrportal.auth.roles import Role
from hrportal.core import config
from hrportal.database import get_db
from hrportal.models.application import Application
from hrportal.models.job_posting import JobPosting
from hrportal.schemas import JobPostingResponse

router = APIRouter(tags=['applicant'])

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = 'application/pdf'

require_applicant = require_roles(Role.APPLICANT)


class MyApplicationResponse(BaseModel):
    id: int
    job_id: int
    job_title: str
    job_status: str
    pdf_path: str | None = None
    comment: str
    status: str
    submitted_at: str | None = None


def is_pdf_upload(file: UploadFile) -> bool:
    filename = (file.filename or '').lower()
    return file.content_type == PDF_CONTENT_TYPE or filename.endswith('.pdf')


@router.get('/jobs', response_model=list[JobPostingResponse])
def list_active_jobs(
    _: ResolvedUser = Depends(require_applicant),
    db: Session = Depends(get_db),
):
    return (
        db.query(JobPosting)
        .filter(JobPosting.status == 'active')
        .order_by(JobPosting.date_posted.desc(), JobPosting.id.desc())
        .all()
    )


@router.post('/applications', status_code=status.HTTP_201_CREATED)
async def submit_application(
    job_id: int = Form(...),
    comment: str = Form(default=''),
    file: UploadFile = File(...),
    applicant: ResolvedUser = Depends(require_applicant),
    db: Session = Depends(get_db),
):
    if not is_pdf_upload(file):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Only PDF files are allowed')

    content = await file.read()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Uploaded file is empty')
    if len(content) > config.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'File size must be less than {config.MAX_UPLOAD_BYTES // (1024 * 1024)}MB',
        )

    job = db.query(JobPosting).filter(JobPosting.id == job_id).first()
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Job posting not found')
    if job.status != 'active':
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='This job posting is closed')

    application = Application(
        job_id=job.id,
        applicant_id=applicant.id,
        pdf_path='',
        comment=comment.strip() or None,
    )
    db.add(application)
    db.flush()

    path = storage.build_object_path(storage.ATTACHMENTS_BUCKET, 'applications', application.id, 'pdf')
    try:
        storage.upload_object(path, content)
    except storage.StorageError as exc:
        db.rollback()
        logger.exception('Upload failed for application by %s', applicant.id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Storage unavailable. Please try again.',
        ) from exc

    application.pdf_path = path
    db.commit()
    logger.info('Application %s submitted by %s for job %s', application.id, applicant.id, job.id)
    return {'id': application.id, 'pdf_path': path}


@router.get('/applications', response_model=list[MyApplicationResponse])
def list_my_applications(
    applicant: ResolvedUser = Depends(require_applicant),
    db: Session = Depends(get_db),
):
    rows = (
        db.query(Application, JobPosting)
        .outerjoin(JobPosting, JobPosting.id == Application.job_id)
        .filter(Application.applicant_id == applicant.id)
        .order_by(Application.submitted_at.desc(), Application.id.desc())
        .all()
    )
    return [
        MyApplicationResponse(
            id=application.id,
            job_id=application.job_id,
            job_title=job.job_title if job else 'N/A',
            job_status=job.status if job else 'N/A',
            pdf_path=application.pdf_path,
            comment=application.comment or '',
            status=application.status,
            submitted_at=application.submitted_at.isoformat() if application.submitted_at else None,
        )
        for application, job in rows
    ]


@router.get('/applications/{application_id}/signed-url')
def get_application_signed_url(
    application_id: int,
    applicant: ResolvedUser = Depends(require_applicant),
    db: Session = Depends(get_db),
):
    application = (
        db.query(Application)
        .filter(Application.id == application_id, Application.applicant_id == applicant.id)
        .first()
    )
    if application is None or not application.pdf_path:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Application not found')
    return {'signedUrl': storage.create_signed_url(application.pdf_path)}
