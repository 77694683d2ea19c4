"""Response envelope shared by every endpoint: ``{status, data, errors, meta}``."""

from pydantic import BaseModel


class ApiError(BaseModel):
    """Structured error detail."""

    code: str
    message: str
    field: str | None = None


def success_response(data: object, **meta: object) -> dict:
    """Build a success envelope dict. Non-fatal warnings go in ``meta``."""
    return {
        "status": "success",
        "data": data,
        "errors": [],
        "meta": {k: v for k, v in meta.items() if v is not None},
    }


def error_response(code: str, message: str, field: str | None = None) -> dict:
    """Build an error envelope dict with a single error."""
    return {
        "status": "error",
        "data": None,
        "errors": [ApiError(code=code, message=message, field=field).model_dump()],
        "meta": {},
    }
