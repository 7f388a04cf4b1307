import logging
import time
from typing import Any, Dict

from fastapi import FastAPI, Request

from apps.storefront.flags import enabled

log = logging.getLogger("picklish.access")

SENSITIVE_HEADERS = {
    "authorization",
    "cookie",
    "x-api-key",
    "x-razorpay-signature",
}


def mask_headers(headers: Dict[str, str]) -> Dict[str, str]:
    return {k: ("***masked***" if k.lower() in SENSITIVE_HEADERS else v) for k, v in headers.items()}


def access_entry(request: Request, status_code: int, start_time: float) -> Dict[str, Any]:
    return {
        "method": request.method,
        "path": request.url.path,
        "status_code": status_code,
        "duration_ms": int((time.time() - start_time) * 1000),
        "client": request.client.host if request.client else None,
        "headers": mask_headers(dict(request.headers)),
    }


def install_request_logging(app: FastAPI) -> None:
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.time()
        response = await call_next(request)
        if enabled("FEATURE_REQUEST_LOGGING"):
            log.info(access_entry(request, response.status_code, start))
        return response
