import logging
import re

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from hrportal import storage
from hrportal.auth.dependencies import require_roles
from hrportal.auth.resolver import ResolvedUser
from hrportal.auth.roles import Role
from hrportal.database import get_db, utcnow
from hrportal.models.application import Application
from hrportal.models.job_posting import JobPosting
from hrportal.models.profile import Profile
from hrportal.schemas import ApplicationResponse

router = APIRouter(tags=['hr'])

logger = logging.getLogger(__name__)

APPLICATION_STATUSES = ('For review', 'Shortlisted', 'Interview', 'Rejected', 'Hired')
PENDING_STATUS = 'For review'
RECENT_APPLICATIONS_LIMIT = 5

require_hr = require_roles(Role.HR, Role.SUPER_ADMIN)


class UpdateStatusRequest(BaseModel):
    applicationId: int | None = None
    status: str | None = None
    comment: str | None = None


class ApplicantSummary(BaseModel):
    id: str
    email: str | None = None
    phone: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    class Config:
        from_attributes = True


class JobSummary(BaseModel):
    id: int
    job_title: str
    department: str | None = None
    location: str | None = None
    status: str

    class Config:
        from_attributes = True


class ApplicationDetailResponse(ApplicationResponse):
    applicant: ApplicantSummary | None = None
    job_posting: JobSummary | None = None


def _safe_filename_part(value: str) -> str:
    return re.sub(r'[^a-z0-9]', '_', value, flags=re.IGNORECASE)


def build_download_filename(
    application_id: int | str | None,
    first_name: str | None,
    last_name: str | None,
    job_title: str | None,
) -> str:
    if first_name and last_name:
        applicant_name = _safe_filename_part(f'{last_name}, {first_name}')
        job_part = _safe_filename_part(job_title or 'application')
        return f'{applicant_name}_{job_part}_application.pdf'
    return f"application_{application_id or 'document'}.pdf"


def query_application_details(db: Session):
    return (
        db.query(Application, Profile, JobPosting)
        .outerjoin(Profile, Profile.id == Application.applicant_id)
        .outerjoin(JobPosting, JobPosting.id == Application.job_id)
    )


def to_detail(application: Application, applicant: Profile | None, job: JobPosting | None) -> ApplicationDetailResponse:
    detail = ApplicationDetailResponse.model_validate(application)
    detail.applicant = ApplicantSummary.model_validate(applicant) if applicant else None
    detail.job_posting = JobSummary.model_validate(job) if job else None
    return detail


@router.get('/applications')
def list_applications(
    status_filter: str | None = Query(default=None, alias='status'),
    q: str | None = Query(default=None),
    _: ResolvedUser = Depends(require_hr),
    db: Session = Depends(get_db),
):
    query = query_application_details(db)

    if status_filter and status_filter != 'all':
        query = query.filter(Application.status == status_filter)

    search = (q or '').strip().lower()
    if search:
        pattern = f'%{search}%'
        query = query.filter(
            or_(
                func.lower(Profile.email).like(pattern),
                func.lower(Profile.first_name).like(pattern),
                func.lower(Profile.last_name).like(pattern),
                func.lower(JobPosting.job_title).like(pattern),
            )
        )

    rows = query.order_by(Application.submitted_at.desc(), Application.id.desc()).all()
    return {
        'success': True,
        'applications': [to_detail(application, applicant, job) for application, applicant, job in rows],
    }


@router.post('/update-status')
def update_status(
    payload: UpdateStatusRequest,
    reviewer: ResolvedUser = Depends(require_hr),
    db: Session = Depends(get_db),
):
    if payload.status not in APPLICATION_STATUSES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Invalid status')
    if payload.applicationId is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='applicationId is required')

    application = db.query(Application).filter(Application.id == payload.applicationId).first()
    if application is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Application not found')

    application.status = payload.status
    application.hr_comment = payload.comment
    application.updated_at = utcnow()
    db.commit()

    logger.info('Application %s set to %s by %s', application.id, payload.status, reviewer.id)
    return {'success': True}


@router.get('/download-pdf')
def download_pdf(
    path: str | None = Query(default=None),
    applicationId: int | None = Query(default=None),
    _: ResolvedUser = Depends(require_hr),
    db: Session = Depends(get_db),
):
    if not path and applicationId is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='PDF path or application ID required')

    pdf_path = path
    filename = build_download_filename(applicationId, None, None, None)

    if applicationId is not None and not path:
        row = query_application_details(db).filter(Application.id == applicationId).first()
        if row is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Application not found')
        application, applicant, job = row
        pdf_path = application.pdf_path
        filename = build_download_filename(
            applicationId,
            applicant.first_name if applicant else None,
            applicant.last_name if applicant else None,
            job.job_title if job else None,
        )

    if not pdf_path:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='PDF path not found for this application')

    try:
        data = storage.download_with_fallback(pdf_path)
    except (storage.ObjectNotFoundError, ValueError) as exc:
        logger.warning('PDF %s not found in storage', pdf_path)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='PDF file not found in storage') from exc
    except storage.StorageError as exc:
        logger.exception('Storage read failed for %s', pdf_path)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Storage unavailable. Please try again.',
        ) from exc

    return Response(
        content=data,
        media_type='application/pdf',
        headers={
            'Content-Disposition': f'attachment; filename="{filename}"',
            'Cache-Control': 'no-cache, no-store, must-revalidate',
        },
    )


@router.get('/dashboard/stats')
def dashboard_stats(
    _: ResolvedUser = Depends(require_hr),
    db: Session = Depends(get_db),
):
    counts = dict(
        db.query(Application.status, func.count(Application.id)).group_by(Application.status).all()
    )
    recent = (
        query_application_details(db)
        .order_by(Application.submitted_at.desc(), Application.id.desc())
        .limit(RECENT_APPLICATIONS_LIMIT)
        .all()
    )
    return {
        'success': True,
        'stats': {
            'totalApplications': sum(counts.values()),
            'applicationsByStatus': {name: counts.get(name, 0) for name in APPLICATION_STATUSES},
            'recentApplications': [to_detail(application, applicant, job) for application, applicant, job in recent],
            'activeJobPostings': db.query(JobPosting).filter(JobPosting.status == 'active').count(),
        },
    }
