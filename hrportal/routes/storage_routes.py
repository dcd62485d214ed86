import logging
import mimetypes

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import Response

from hrportal import storage

router = APIRouter(tags=['storage'])

logger = logging.getLogger(__name__)


@router.get('/signed/{token}')
def get_signed_object(token: str):
    path = storage.read_signed_path(token)
    if not path:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Signed URL is invalid or expired')

    try:
        data = storage.download_object(path)
    except (storage.ObjectNotFoundError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Object not found') from exc
    except storage.StorageError as exc:
        logger.exception('Signed download failed for %s', path)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Storage unavailable. Please try again.',
        ) from exc

    media_type = mimetypes.guess_type(path)[0] or 'application/octet-stream'
    return Response(content=data, media_type=media_type, headers={'Cache-Control': 'private, max-age=60'})
