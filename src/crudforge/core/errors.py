# src/crudforge/core/errors.py
"""Error types raised by the route-generation engine.

Every error carries the envelope ``code`` and the HTTP status used to render
it, so a pipeline abort can be turned into a response without inspecting the
concrete type.
"""

from typing import Any, Dict, Optional


class ForgeError(Exception):
    """Base class for all crudforge errors."""

    code: int = 500
    status_code: int = 500

    def __init__(self, message: str, detail: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_response(self) -> Dict[str, Any]:
        """Build the ``{code, message, data}`` envelope for this error."""
        return {"code": self.code, "message": self.message, "data": self.detail}


class SchemaError(ForgeError):
    """A record type cannot be turned into a descriptor."""


class ClientError(ForgeError):
    """The request itself is invalid."""

    code = 400
    status_code = 400


class UnsupportedOperatorError(ClientError):
    """A filter parameter uses an operator that does not exist."""

    def __init__(self, parameter: str, operator: str):
        super().__init__(f"Unsupported operator '{operator}' in parameter '{parameter}'")
        self.parameter = parameter
        self.operator = operator


class InvalidParameterError(ClientError):
    """A request parameter or payload value is malformed."""


class FieldNotAllowedError(ClientError):
    """A filter targets a field outside the operation's allow-list."""

    def __init__(self, field: str, parameter: Optional[str] = None):
        source = f" (parameter '{parameter}')" if parameter and parameter != field else ""
        super().__init__(f"Field '{field}' is not allowed here{source}")
        self.field = field
        self.parameter = parameter


class MissingPrimaryKeyError(ClientError):
    """An operation needs a record identifier that was not supplied."""


class UnauthorizedError(ForgeError):
    code = 403
    status_code = 403


class NotRegisteredError(ForgeError):
    """Dispatch to an operation or resource that does not exist."""

    code = 404
    status_code = 404

    def __init__(self, name: str, kind: str = "operation"):
        super().__init__(f"{kind.capitalize()} '{name}' is not registered")
        self.name = name


class RecordNotFoundError(ForgeError):
    code = 404
    status_code = 404


class ExecutionError(ForgeError):
    """The data-access collaborator failed; its message is kept as-is."""


class StageError(ForgeError):
    """A non-execute pipeline stage failed unexpectedly."""
