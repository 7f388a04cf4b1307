import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from apps.storefront.services.core_service import StoreError, ValidationError
from apps.storefront.utils.envelope import error

log = logging.getLogger("picklish.errors")


def install_error_handlers(app: FastAPI) -> None:
    """
    Stable envelopes for every failure:
    - StoreError and subclasses carry their own status and code
    - request body/query validation → 422 with field details
    - anything else → logged, generic 500
    """

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        if exc.status_code >= 500:
            log.error("%s on %s: %s", exc.code, request.url.path, exc.message)
        extra = {}
        if isinstance(exc, ValidationError):
            extra["reason"] = exc.reason
        return error(exc.message, exc.code, exc.status_code, **extra)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        log.warning("invalid request on %s: %s", request.url.path, exc.errors())
        details = [
            {
                "field": ".".join(str(loc) for loc in e.get("loc", ())),
                "message": e.get("msg"),
            }
            for e in exc.errors()
        ]
        return error("Invalid request data", "invalid_request", 422, details=details)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        log.error("unhandled exception on %s: %s", request.url.path, exc, exc_info=True)
        return error("An unexpected error occurred", "internal_error", 500)
