"""Tests for route path normalization."""

import pytest

from qaai.services.route_normalizer import normalize_route_path, route_key

UUID = "9f8e7d6c-5b4a-4321-9abc-def012345678"


def test_numeric_and_uuid_segments():
    path = f"/users/123/orders/{UUID}?x=1"
    assert normalize_route_path(path) == "/users/:id/orders/:id"


def test_uppercase_uuid():
    assert normalize_route_path(f"/items/{UUID.upper()}") == "/items/:id"


def test_trailing_slash_stripped():
    assert normalize_route_path("/api/users/") == "/api/users"


def test_root_stays_root():
    assert normalize_route_path("/") == "/"
    assert normalize_route_path("/?page=2") == "/"


def test_fragment_stripped():
    assert normalize_route_path("/docs#intro") == "/docs"


def test_mixed_segments_untouched():
    assert normalize_route_path("/v2/users/abc123") == "/v2/users/abc123"


@pytest.mark.parametrize(
    "path",
    ["/users/123/orders", f"/a/{UUID}/b/", "/", "/api/login?next=/home", "//x//1//", "/:id/42", ""],
)
def test_idempotent(path):
    once = normalize_route_path(path)
    assert normalize_route_path(once) == once


def test_route_key_uppercases_method():
    assert route_key("get", "/api/users/42") == "GET:/api/users/:id"
