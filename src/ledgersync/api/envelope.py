"""Conversion of service result envelopes into HTTP responses."""

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ledgersync.core.errors import get_http_status
from ledgersync.core.result import ServiceResult


def error_body(code: str, message: str) -> dict:
    return {"data": None, "error": {"code": code, "message": message}}


def to_response(result: ServiceResult, success_status: int = 200) -> JSONResponse:
    """Serialize ``result``; errors take their status from the error catalog."""
    if result.error is not None:
        return JSONResponse(
            status_code=get_http_status(result.error.code),
            content=error_body(result.error.code, result.error.message),
        )
    return JSONResponse(
        status_code=success_status,
        content={"data": jsonable_encoder(result.data), "error": None},
    )
