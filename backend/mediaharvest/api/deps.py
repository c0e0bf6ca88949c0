from fastapi import Request

from mediaharvest.core.exceptions import ServiceUnavailableError
from mediaharvest.services.media_service import MediaService


def get_media_service(request: Request) -> MediaService:
    """MediaService bound to the job queue created at application startup."""
    queue = getattr(request.app.state, "job_queue", None)
    if queue is None:
        raise ServiceUnavailableError("Job queue is not running")
    return MediaService(queue)
