"""
Error taxonomy shared by the progression core, storage and AI boundary.
Every error carries a `kind` tag so the HTTP layer can render a tagged result.
"""

from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse


class StudyFlowError(Exception):
    kind = "error"
    status_code = 500
    retryable = False

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {
            "error": self.kind,
            "detail": self.message,
            "retryable": self.retryable,
        }


class NotFound(StudyFlowError):
    """Row does not exist or is not owned by the caller."""
    kind = "not_found"
    status_code = 404


class TransientBackendFailure(StudyFlowError):
    kind = "transient_backend_failure"
    status_code = 503
    retryable = True


class UpstreamGenerationFailure(StudyFlowError):
    """AI gateway error, rate limit or malformed response."""
    kind = "upstream_generation_failure"
    status_code = 502
    retryable = True


class ValidationFailure(StudyFlowError):
    kind = "validation_failure"
    status_code = 422


async def studyflow_error_handler(request: Request, exc: StudyFlowError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
