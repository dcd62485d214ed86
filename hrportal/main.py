import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError

from hrportal.auth.errors import PageRedirect
from hrportal.core import config
from hrportal.database import Base, engine
from hrportal.models import application, identity, job_posting, profile  # noqa: F401
from hrportal.routes import (
    admin_routes,
    applicant_routes,
    auth_routes,
    hr_routes,
    job_routes,
    page_routes,
    storage_routes,
)

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL.')


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    config.validate_runtime_config()
    initialize_database()
    yield


app = FastAPI(title='HR Portal API', lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.exception_handler(PageRedirect)
async def page_redirect_handler(request: Request, exc: PageRedirect):
    return RedirectResponse(url=exc.location, status_code=302)


@app.get('/')
def root():
    return {'status': 'HR Portal API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(admin_routes.router, prefix='/api/admin')
app.include_router(hr_routes.router, prefix='/api/hr')
app.include_router(job_routes.router, prefix='/api/jobs')
app.include_router(job_routes.public_router, prefix='/api/vacancies')
app.include_router(applicant_routes.router, prefix='/api/applicant')
app.include_router(storage_routes.router, prefix='/storage')
app.include_router(page_routes.router)
