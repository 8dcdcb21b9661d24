# src/crudforge/api/auth.py
"""Token issuing and a pre-process stage that guards routes with a token header."""

import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Protocol, Union

from pydantic import BaseModel

from crudforge.core.errors import UnauthorizedError
from crudforge.core.logging import log
from crudforge.core.pipeline import RequestContext, Stage

TOKEN_HEADER = "token"
UNAUTHORIZED_MESSAGE = "unauthorized!"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TokenDetail(BaseModel):
    token: str
    user_id: str
    user_type: str = ""
    expires_at: Optional[datetime] = None

    def expired(self, at: Optional[datetime] = None) -> bool:
        return self.expires_at is not None and (at or _now()) >= self.expires_at


class TokenStore(Protocol):
    """Persistence for issued tokens."""

    def generate(self, user_id: str, user_type: str) -> str: ...

    def save(self, detail: TokenDetail) -> None: ...

    def get(self, token: str) -> Optional[TokenDetail]: ...

    def delete(self, token: str) -> None: ...

    def tokens_of_user(self, user_id: str, user_type: str) -> List[str]: ...


class InMemoryTokenStore:
    """Process-local :class:`TokenStore`; expired tokens are dropped on access."""

    def __init__(self):
        self._tokens: Dict[str, TokenDetail] = {}
        self._lock = threading.Lock()

    def generate(self, user_id: str, user_type: str) -> str:
        return str(uuid.uuid4())

    def save(self, detail: TokenDetail) -> None:
        with self._lock:
            self._tokens[detail.token] = detail

    def get(self, token: str) -> Optional[TokenDetail]:
        with self._lock:
            detail = self._tokens.get(token)
            if detail is not None and detail.expired():
                del self._tokens[token]
                return None
            return detail

    def delete(self, token: str) -> None:
        with self._lock:
            self._tokens.pop(token, None)

    def tokens_of_user(self, user_id: str, user_type: str) -> List[str]:
        now = _now()
        with self._lock:
            return [
                detail.token
                for detail in self._tokens.values()
                if detail.user_id == user_id and detail.user_type == user_type and not detail.expired(now)
            ]


def issue_token(
    store: TokenStore,
    user_id: str,
    user_type: str = "",
    ttl: Union[timedelta, int, None] = None,
) -> str:
    """Create, save and return a token for a user.

    ``ttl`` is a timedelta or a number of seconds; ``None`` never expires.
    """
    if isinstance(ttl, int):
        ttl = timedelta(seconds=ttl)
    token = store.generate(user_id, user_type)
    store.save(
        TokenDetail(
            token=token,
            user_id=user_id,
            user_type=user_type,
            expires_at=_now() + ttl if ttl is not None else None,
        )
    )
    return token


class RequireToken(Stage):
    """Reject the request unless it carries a valid token header.

    On success the token's user is stored in ``ctx.data["user_id"]`` and
    ``ctx.data["user_type"]``.
    """

    def __init__(self, store: TokenStore, header: str = TOKEN_HEADER):
        self.store = store
        self.header = header

    def run(self, ctx: RequestContext) -> None:
        headers = getattr(ctx.request, "headers", None) or {}
        token = headers.get(self.header)
        if not token:
            raise UnauthorizedError(UNAUTHORIZED_MESSAGE)

        detail = self.store.get(token)
        if detail is None:
            log.debug(f"Rejected unknown or expired token on {ctx.operation}")
            raise UnauthorizedError(UNAUTHORIZED_MESSAGE)

        ctx.data["token"] = detail.token
        ctx.data["user_id"] = detail.user_id
        ctx.data["user_type"] = detail.user_type
