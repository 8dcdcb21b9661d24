# src/crudforge/api/envelope.py
"""Rendering of :class:`ApiResponse` envelopes as HTTP responses."""

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from crudforge.core.envelope import ApiResponse
from crudforge.core.errors import ForgeError
from crudforge.core.pipeline import RequestContext


def envelope_response(envelope: ApiResponse, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=jsonable_encoder(envelope))


def error_response(error: ForgeError) -> JSONResponse:
    """Error envelope; the HTTP status mirrors the envelope code."""
    return envelope_response(ApiResponse.fail(error), status_code=error.status_code)


def context_response(ctx: RequestContext) -> JSONResponse:
    """Response for a finished pipeline run, successful or aborted."""
    if ctx.error is not None:
        return error_response(ctx.error)
    return envelope_response(ctx.response or ApiResponse.ok(ctx.result))


__all__ = ["ApiResponse", "context_response", "envelope_response", "error_response"]
