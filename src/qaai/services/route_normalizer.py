"""Canonical route paths for coverage matching.

``/users/123/orders`` and ``/users/456/orders`` both normalize to
``/users/:id/orders``.
"""

import re

ID_PLACEHOLDER = ":id"

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
_NUMERIC_RE = re.compile(r"^\d+$")


def _normalize_segment(segment: str) -> str:
    if _UUID_RE.match(segment) or _NUMERIC_RE.match(segment):
        return ID_PLACEHOLDER
    return segment


def normalize_route_path(path: str) -> str:
    """Collapse UUID and numeric segments to ``:id``, drop the query string
    and trailing slashes. The root path stays ``/``. Idempotent.
    """
    path = path.split("?", 1)[0].split("#", 1)[0]
    normalized = "/".join(_normalize_segment(segment) for segment in path.split("/"))
    return normalized.rstrip("/") or "/"


def route_key(method: str, path: str) -> str:
    """Matching key ``METHOD:/normalized/path``."""
    return f"{method.upper()}:{normalize_route_path(path)}"
