import pytest

from hrportal import storage
from hrportal.models.application import Application

PDF_BYTES = b'%PDF-1.4 resume'


@pytest.fixture
def applicant(make_user):
    return make_user('jane@norsu.edu.ph', first_name='Jane', last_name='Reyes')


def submit(client, headers, job_id, content=PDF_BYTES, filename='resume.pdf', content_type='application/pdf'):
    return client.post(
        '/api/applicant/applications',
        headers=headers,
        data={'job_id': str(job_id), 'comment': ' Available immediately '},
        files={'file': (filename, content, content_type)},
    )


def test_hr_cannot_use_applicant_api(client, make_user, auth_headers) -> None:
    reviewer = make_user('reviewer@norsu.edu.ph', role='hr')

    response = client.get('/api/applicant/jobs', headers=auth_headers(reviewer))

    assert response.status_code == 403


def test_applicant_sees_only_active_jobs(client, applicant, make_job, auth_headers) -> None:
    make_job('Librarian')
    make_job('Archivist', status='closed')

    response = client.get('/api/applicant/jobs', headers=auth_headers(applicant))

    assert response.status_code == 200
    assert [job['job_title'] for job in response.json()] == ['Librarian']


def test_submit_application_stores_pdf_and_row(client, db, storage_root, applicant, make_job, auth_headers) -> None:
    job = make_job()

    response = submit(client, auth_headers(applicant), job.id)

    assert response.status_code == 201
    body = response.json()
    assert body['pdf_path'].startswith(f'attachments/applications/{body["id"]}_')
    assert (storage_root / body['pdf_path']).read_bytes() == PDF_BYTES

    stored = db.query(Application).filter(Application.id == body['id']).one()
    assert stored.applicant_id == applicant.id
    assert stored.comment == 'Available immediately'
    assert stored.status == 'For review'


def test_submit_application_rejects_non_pdf_and_empty_files(client, applicant, make_job, auth_headers) -> None:
    job = make_job()
    headers = auth_headers(applicant)

    not_pdf = submit(client, headers, job.id, content=b'hello', filename='notes.txt', content_type='text/plain')
    empty = submit(client, headers, job.id, content=b'')

    assert not_pdf.status_code == 400
    assert not_pdf.json() == {'detail': 'Only PDF files are allowed'}
    assert empty.status_code == 400


def test_submit_application_rejects_oversized_files(
    client,
    applicant,
    make_job,
    auth_headers,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr('hrportal.core.config.MAX_UPLOAD_BYTES', 4)

    response = submit(client, auth_headers(applicant), make_job().id)

    assert response.status_code == 400


def test_submit_application_checks_job(client, db, applicant, make_job, auth_headers) -> None:
    closed = make_job('Archivist', status='closed')

    missing = submit(client, auth_headers(applicant), 4242)
    refused = submit(client, auth_headers(applicant), closed.id)

    assert missing.status_code == 404
    assert refused.status_code == 400
    assert refused.json() == {'detail': 'This job posting is closed'}
    assert db.query(Application).count() == 0


def test_submit_application_rolls_back_when_storage_fails(
    client,
    db,
    applicant,
    make_job,
    auth_headers,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def failing_upload(*_args, **_kwargs):
        raise storage.StorageError('disk full')

    monkeypatch.setattr(storage, 'upload_object', failing_upload)

    response = submit(client, auth_headers(applicant), make_job().id)

    assert response.status_code == 503
    assert db.query(Application).count() == 0


def test_list_my_applications_shows_only_own_rows(
    client,
    applicant,
    make_user,
    make_job,
    make_application,
    auth_headers,
) -> None:
    job = make_job('Librarian')
    make_application(job, applicant, status='Interview', comment='See attached')
    make_application(job, make_user('kim@norsu.edu.ph'))

    response = client.get('/api/applicant/applications', headers=auth_headers(applicant))

    assert response.status_code == 200
    rows = response.json()
    assert len(rows) == 1
    assert rows[0]['job_title'] == 'Librarian'
    assert rows[0]['job_status'] == 'active'
    assert rows[0]['status'] == 'Interview'
    assert rows[0]['comment'] == 'See attached'


def test_signed_url_serves_own_pdf(client, applicant, make_job, auth_headers) -> None:
    submitted = submit(client, auth_headers(applicant), make_job().id).json()

    response = client.get(
        f'/api/applicant/applications/{submitted["id"]}/signed-url',
        headers=auth_headers(applicant),
    )
    document = client.get(response.json()['signedUrl'])

    assert response.status_code == 200
    assert document.status_code == 200
    assert document.content == PDF_BYTES
    assert document.headers['content-type'] == 'application/pdf'


def test_signed_url_hides_other_applicants_documents(
    client,
    applicant,
    make_user,
    make_job,
    make_application,
    auth_headers,
) -> None:
    other = make_user('kim@norsu.edu.ph')
    application = make_application(make_job(), other, pdf_path='attachments/applications/1_1.pdf')

    response = client.get(
        f'/api/applicant/applications/{application.id}/signed-url',
        headers=auth_headers(applicant),
    )

    assert response.status_code == 404
