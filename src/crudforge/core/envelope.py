# src/crudforge/core/envelope.py
from typing import Any, Optional

from pydantic import BaseModel

from crudforge.core.errors import ForgeError

SUCCESS_CODE = 0
SUCCESS_MESSAGE = "success"


class ApiResponse(BaseModel):
    """Uniform ``{code, message, data}`` body returned by every generated route."""

    code: int = SUCCESS_CODE
    message: str = SUCCESS_MESSAGE
    data: Optional[Any] = None

    @classmethod
    def ok(cls, data: Any = None) -> "ApiResponse":
        return cls(data=data)

    @classmethod
    def fail(cls, error: ForgeError) -> "ApiResponse":
        return cls(**error.to_response())
