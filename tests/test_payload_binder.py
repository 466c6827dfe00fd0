"""
Tests for PayloadBinder - untyped payloads into typed inputs.

Tests cover:
1. Empty payloads (route parameters, defaults, zero values)
2. Present payloads (case-insensitive keys, aliases, JSON strings)
3. Value-object merge precedence (route > payload > defaults)
4. Custom builders
5. Error messages
"""

from dataclasses import dataclass
from typing import Dict, List, Optional
from uuid import UUID, uuid4

import pytest
from pydantic import BaseModel, ConfigDict

from opdispatch.binding.payload_binder import (
    PayloadBinder,
    is_frozen,
    normalize_payload,
    shape_fields,
    zero_value,
)
from opdispatch.blog.operations import (
    CreateCommentCommand,
    GetAllAuthorsQuery,
    UpdateAuthorCommand,
    build_create_comment,
)


class Rename(BaseModel):
    id: int
    name: str


class Lookup(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    tags: List[str]
    note: Optional[str] = None
    limit: int = 10


@dataclass
class Point:
    x: int
    y: int = 0


@dataclass(frozen=True)
class FrozenPoint:
    x: int
    y: int = 0


class NotAShape:
    pass


@dataclass
class Reset:
    level: int = -1

    def __post_init__(self):
        if self.level < 0:
            raise ValueError("level must be >= 0")


@pytest.fixture
def binder():
    return PayloadBinder()


# ============================================================================
# Empty Payloads
# ============================================================================

class TestEmptyPayload:
    """None, "", "null" and {} all take the empty path."""

    @pytest.mark.parametrize("payload", [None, "", "  ", "null", {}, "{}"])
    def test_no_required_fields(self, binder, payload):
        result = binder.bind(GetAllAuthorsQuery, payload)

        assert result.success
        assert isinstance(result.instance, GetAllAuthorsQuery)

    def test_required_fields_from_route_defaults_and_zero_values(self, binder):
        result = binder.bind(Lookup, None, {"ID": 7})

        assert result.success
        assert result.instance == Lookup(id=7, name="", tags=[], note=None, limit=10)

    def test_route_overrides_default(self, binder):
        result = binder.bind(Lookup, None, {"id": 7, "limit": 3})

        assert result.instance.limit == 3

    def test_without_route_uses_zero_values(self, binder):
        result = binder.bind(Rename, None)

        assert result.success
        assert result.instance == Rename(id=0, name="")

    def test_dataclass_shape(self, binder):
        result = binder.bind(Point, None, {"x": 4})

        assert result.success
        assert result.instance == Point(4, 0)

    def test_route_matches_aliases(self, binder):
        author_id = uuid4()
        result = binder.bind(UpdateAuthorCommand, None, {"Id": str(author_id)})

        assert result.success
        assert result.instance.id == author_id
        assert result.instance.first_name == ""


# ============================================================================
# Present Payloads
# ============================================================================

class TestPayload:
    """Payload documents."""

    def test_case_insensitive_keys(self, binder):
        result = binder.bind(Rename, {"ID": 1, "Name": "Ada"})

        assert result.success
        assert result.instance == Rename(id=1, name="Ada")

    def test_camel_case_aliases(self, binder):
        author_id = uuid4()
        result = binder.bind(UpdateAuthorCommand, {"id": str(author_id), "FIRSTNAME": "Ada", "lastName": "Byron"})

        assert result.success
        assert result.instance.first_name == "Ada"
        assert result.instance.last_name == "Byron"

    def test_json_string_payload(self, binder):
        result = binder.bind(Rename, '{"id": 2, "name": "Alan"}')

        assert result.success
        assert result.instance.name == "Alan"

    def test_bytes_payload(self, binder):
        result = binder.bind(Point, b'{"x": 1, "y": 2}')

        assert result.instance == Point(1, 2)

    def test_mutable_shape_ignores_route(self, binder):
        result = binder.bind(Rename, {"id": 1, "name": "Ada"}, {"id": 99})

        assert result.instance.id == 1

    def test_unknown_keys_are_ignored(self, binder):
        result = binder.bind(Rename, {"id": 1, "name": "Ada", "extra": True})

        assert result.success


# ============================================================================
# Value Objects
# ============================================================================

class TestValueObjects:
    """Frozen shapes merge route > payload > defaults."""

    def test_route_overrides_payload(self, binder):
        result = binder.bind(Lookup, {"id": 1, "name": "x", "tags": ["a"]}, {"id": 9})

        assert result.instance.id == 9
        assert result.instance.name == "x"
        assert result.instance.limit == 10

    def test_route_fills_missing_field(self, binder):
        author_id = uuid4()
        result = binder.bind(UpdateAuthorCommand, {"firstName": "Ada", "lastName": "Lovelace"},
                             {"id": str(author_id)})

        assert result.success
        assert result.instance.id == author_id

    def test_frozen_dataclass(self, binder):
        result = binder.bind(FrozenPoint, {"x": 1, "y": 1}, {"y": 5})

        assert result.instance == FrozenPoint(1, 5)

    def test_is_frozen(self):
        assert is_frozen(Lookup)
        assert is_frozen(FrozenPoint)
        assert is_frozen(UpdateAuthorCommand)
        assert not is_frozen(Rename)
        assert not is_frozen(Point)


# ============================================================================
# Builders
# ============================================================================

class TestBuilder:
    """Custom decode callables."""

    def test_builder_takes_route_value(self, binder):
        post_id = uuid4()
        payload = {"authorName": "Ada", "authorEmail": "ada@example.com", "content": "Nice"}

        result = binder.bind(CreateCommentCommand, payload, {"postId": str(post_id)},
                             builder=build_create_comment)

        assert result.success
        assert result.instance.blog_post_id == post_id

    def test_builder_validation_error(self, binder):
        result = binder.bind(CreateCommentCommand, {"content": "Nice"}, {}, builder=build_create_comment)

        assert not result.success
        assert "blogPostId" in result.error

    def test_builder_raising(self, binder):
        def broken(payload, route):
            raise ValueError("bad route")

        result = binder.bind(Rename, None, {}, builder=broken)

        assert not result.success
        assert result.error == "Cannot construct Rename from the supplied values"
        assert "bad route" not in result.error

    def test_builder_reading_empty_payload(self, binder):
        result = binder.bind(Rename, None, {}, builder=lambda payload, route: Rename(id=1, name=payload.get("name")))

        assert not result.success
        assert result.error == "Cannot construct Rename from the supplied values"

    def test_builder_wrong_type(self, binder):
        result = binder.bind(Rename, None, {}, builder=lambda payload, route: Point(1))

        assert not result.success
        assert "Rename" in result.error


# ============================================================================
# Errors
# ============================================================================

class TestErrors:
    """Failures come back as BindResult, never raised."""

    def test_invalid_json(self, binder):
        result = binder.bind(Rename, "{not json")

        assert not result.success
        assert result.error.startswith("Payload is not valid JSON")

    def test_non_object_payload(self, binder):
        result = binder.bind(Rename, [1, 2])

        assert not result.success
        assert result.error == "Payload must be a JSON object"

    def test_type_error_names_field(self, binder):
        result = binder.bind(Rename, {"id": "abc", "name": "Ada"})

        assert not result.success
        assert result.error.startswith("id: ")

    def test_missing_field_names_field(self, binder):
        result = binder.bind(Rename, {"name": "Ada"})

        assert result.error == "id: Field required"

    def test_unsupported_shape(self, binder):
        result = binder.bind(NotAShape, None)

        assert not result.success
        assert "NotAShape" in result.error

    def test_constructor_raising_on_empty_payload(self, binder):
        result = binder.bind(Reset, None)

        assert not result.success
        assert result.error == "Cannot construct Reset from the supplied values"
        assert "level must be" not in result.error


# ============================================================================
# Helpers
# ============================================================================

@pytest.mark.parametrize("annotation,expected", [
    (int, 0),
    (float, 0.0),
    (bool, False),
    (str, ""),
    (Optional[int], None),
    (List[str], []),
    (Dict[str, int], {}),
    (UUID, None),
])
def test_zero_value(annotation, expected):
    assert zero_value(annotation) == expected


def test_normalize_payload():
    assert normalize_payload(None) is None
    assert normalize_payload("null") is None
    assert normalize_payload({}) is None
    assert normalize_payload('{"a": 1}') == {"a": 1}
    assert normalize_payload(Rename(id=1, name="x")) == {"id": 1, "name": "x"}


def test_shape_fields_reports_aliases():
    fields = {f.name: f for f in shape_fields(UpdateAuthorCommand)}

    assert fields["first_name"].key == "firstName"
    assert fields["first_name"].required
    assert not fields["bio"].required
