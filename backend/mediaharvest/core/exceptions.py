from fastapi import HTTPException, status


# ---------------------------------------------------------------------------
# HTTP errors raised by route handlers
# ---------------------------------------------------------------------------


class ServiceUnavailableError(HTTPException):
    def __init__(self, detail: str = "Service unavailable"):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail
        )


# ---------------------------------------------------------------------------
# Domain errors raised inside the scraping pipeline
# ---------------------------------------------------------------------------


class MediaHarvestError(Exception):
    """Base class for pipeline errors."""


class PageFetchError(MediaHarvestError):
    """The page could not be fetched at all (network error, timeout, bad status).

    Raised by the job layer so the attempt is retried; the fetcher itself
    never raises.
    """

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Could not fetch {url}")
