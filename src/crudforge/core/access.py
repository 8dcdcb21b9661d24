# src/crudforge/core/access.py
"""Field-level allow/exclude lists for query, create and update operations."""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


class FieldAccessSpec(BaseModel):
    """Allow-list and exclude-list over storage names.

    An empty ``allow`` means every field is allowed except the excluded ones.
    When a field appears in both lists, ``exclude`` wins.
    """

    model_config = ConfigDict(frozen=True)

    allow: frozenset[str] = Field(default_factory=frozenset)
    exclude: frozenset[str] = Field(default_factory=frozenset)

    def permits(self, name: str) -> bool:
        if name in self.exclude:
            return False
        return not self.allow or name in self.allow

    def with_exclude(self, *names: str) -> "FieldAccessSpec":
        return FieldAccessSpec(allow=self.allow, exclude=self.exclude | set(names))

    def with_allow(self, names: Optional[Iterable[str]]) -> "FieldAccessSpec":
        """Replace the allow-list; ``None`` keeps the current one."""
        if names is None:
            return self
        return FieldAccessSpec(allow=frozenset(names), exclude=self.exclude)


def filter_fields(
    data: Mapping[str, Any],
    spec: FieldAccessSpec,
    universe: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    """Keep only the keys of ``data`` that ``spec`` permits.

    Keys outside ``universe`` (usually the descriptor's storage names) are
    dropped too. Never raises; unknown keys just disappear.
    """
    known = set(universe) if universe is not None else None
    return {
        key: value
        for key, value in data.items()
        if spec.permits(key) and (known is None or key in known)
    }


def allowed_fields(spec: FieldAccessSpec, universe: Iterable[str]) -> List[str]:
    """Fields of ``universe`` that ``spec`` permits, in universe order."""
    return [name for name in universe if spec.permits(name)]


def route_fields(
    spec: FieldAccessSpec,
    route_allow: Optional[Iterable[str]],
    universe: Iterable[str],
) -> List[str]:
    """Fields a route may use when its allow-list replaces ``spec.allow``.

    ``spec.exclude`` still applies, and an empty route allow-list permits
    nothing.
    """
    if route_allow is None:
        return allowed_fields(spec, universe)
    allow = set(route_allow)
    return [name for name in universe if name in allow and name not in spec.exclude]
