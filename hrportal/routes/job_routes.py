import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from pydantic import BaseModel, field_validator
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from hrportal import storage
from hrportal.auth.dependencies import require_roles
from hrportal.auth.resolver import ResolvedUser
from hrportal.auth.roles import Role
from hrportal.database import get_db
from hrportal.models.application import Application
from hrportal.models.job_posting import JobPosting
from hrportal.schemas import JobPostingResponse

router = APIRouter(tags=['jobs'])
public_router = APIRouter(tags=['vacancies'])

logger = logging.getLogger(__name__)

JOB_STATUSES = ('active', 'closed')
IMAGE_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp'}

require_job_editor = require_roles(Role.HR, Role.SUPER_ADMIN)


class CreateJobRequest(BaseModel):
    job_title: str
    department: str | None = None
    location: str | None = None
    job_description: str | None = None

    @field_validator('job_title')
    @classmethod
    def validate_job_title(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Job title is required.')
        return normalized


class UpdateJobRequest(BaseModel):
    job_title: str | None = None
    department: str | None = None
    location: str | None = None
    job_description: str | None = None
    status: str | None = None

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip().lower()
        if normalized not in JOB_STATUSES:
            raise ValueError('Status must be active or closed.')
        return normalized


class VacancyResponse(JobPostingResponse):
    image_url: str | None = None


def filter_jobs(query, q: str | None):
    search = (q or '').strip().lower()
    if not search:
        return query
    pattern = f'%{search}%'
    return query.filter(
        or_(
            func.lower(JobPosting.job_title).like(pattern),
            func.lower(JobPosting.department).like(pattern),
            func.lower(JobPosting.location).like(pattern),
        )
    )


def get_job_or_404(db: Session, job_id: int) -> JobPosting:
    job = db.query(JobPosting).filter(JobPosting.id == job_id).first()
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Job posting not found')
    return job


def to_vacancy(job: JobPosting) -> VacancyResponse:
    vacancy = VacancyResponse.model_validate(job)
    if job.image_path:
        vacancy.image_url = storage.create_signed_url(job.image_path)
    return vacancy


@router.get('', response_model=list[JobPostingResponse])
def list_jobs(
    status_filter: str | None = Query(default=None, alias='status'),
    q: str | None = Query(default=None),
    _: ResolvedUser = Depends(require_job_editor),
    db: Session = Depends(get_db),
):
    query = db.query(JobPosting)
    if status_filter and status_filter != 'all':
        query = query.filter(JobPosting.status == status_filter)
    query = filter_jobs(query, q)
    return query.order_by(JobPosting.date_posted.desc(), JobPosting.id.desc()).all()


@router.post('', response_model=JobPostingResponse, status_code=status.HTTP_201_CREATED)
def create_job(
    payload: CreateJobRequest,
    editor: ResolvedUser = Depends(require_job_editor),
    db: Session = Depends(get_db),
):
    job = JobPosting(
        job_title=payload.job_title,
        department=payload.department or None,
        location=payload.location or None,
        job_description=payload.job_description or None,
        created_by=editor.id,
        status='active',
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    logger.info('Job posting %s created by %s', job.id, editor.id)
    return job


@router.put('/{job_id}', response_model=JobPostingResponse)
def update_job(
    job_id: int,
    payload: UpdateJobRequest,
    _: ResolvedUser = Depends(require_job_editor),
    db: Session = Depends(get_db),
):
    job = get_job_or_404(db, job_id)
    updates = payload.model_dump(exclude_unset=True)
    if 'job_title' in updates and not (updates['job_title'] or '').strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Job title is required.')
    if updates.get('status') is None:
        updates.pop('status', None)

    for field, value in updates.items():
        setattr(job, field, value)
    db.commit()
    db.refresh(job)
    return job


@router.delete('/{job_id}')
def delete_job(
    job_id: int,
    editor: ResolvedUser = Depends(require_job_editor),
    db: Session = Depends(get_db),
):
    job = get_job_or_404(db, job_id)
    object_paths = [path for (path,) in db.query(Application.pdf_path).filter(Application.job_id == job_id)]
    object_paths.append(job.image_path)

    removed = db.query(Application).filter(Application.job_id == job_id).delete(synchronize_session=False)
    db.delete(job)
    db.commit()

    storage.delete_objects(object_paths)
    logger.info('Job posting %s deleted by %s (%d applications removed)', job_id, editor.id, removed)
    return {'success': True}


@router.post('/{job_id}/image', response_model=JobPostingResponse)
async def upload_job_image(
    job_id: int,
    file: UploadFile = File(...),
    _: ResolvedUser = Depends(require_job_editor),
    db: Session = Depends(get_db),
):
    job = get_job_or_404(db, job_id)

    filename = file.filename or ''
    ext = filename.rsplit('.', 1)[-1].lower() if '.' in filename else ''
    if ext not in IMAGE_EXTENSIONS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Only image files are accepted')

    content = await file.read()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Uploaded file is empty')

    path = storage.build_object_path(storage.JOB_IMAGES_BUCKET, 'job-images', job.id, ext)
    try:
        storage.upload_object(path, content)
    except storage.StorageError as exc:
        logger.exception('Job image upload failed for job %s', job_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Storage unavailable. Please try again.',
        ) from exc

    job.image_path = path
    db.commit()
    db.refresh(job)
    return job


@public_router.get('', response_model=list[VacancyResponse])
def list_vacancies(q: str | None = Query(default=None), db: Session = Depends(get_db)):
    query = filter_jobs(db.query(JobPosting).filter(JobPosting.status == 'active'), q)
    jobs = query.order_by(JobPosting.date_posted.desc(), JobPosting.id.desc()).all()
    return [to_vacancy(job) for job in jobs]


@public_router.get('/{job_id}', response_model=VacancyResponse)
def get_vacancy(job_id: int, db: Session = Depends(get_db)):
    job = db.query(JobPosting).filter(JobPosting.id == job_id, JobPosting.status == 'active').first()
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Vacancy not found')
    return to_vacancy(job)
