"""
Tests for OperationRegistry - index build, resolution and discoverability.

Tests cover:
1. Building the index from the blog operations module
2. resolve() with plural / any-case entities and the literal-identifier fallback
3. Resolution cache stability
4. Explicit registration and conflicts
5. Listing, schemas and docs
"""

from types import ModuleType

import pytest
from pydantic import BaseModel

from opdispatch.blog import register_blog_entities, register_blog_operations
from opdispatch.blog.operations import (
    GetAllAuthorsQuery,
    GetAuthorByEmailQuery,
    GetPublishedBlogPostsQuery,
    UpdateAuthorCommand,
)
from opdispatch.core.action_parser import ActionParser, OperationKind
from opdispatch.core.entity_catalog import EntityCatalog
from opdispatch.registry.operation_registry import (
    InvalidOperationDescriptor,
    OperationAlreadyRegistered,
    OperationMetadata,
    OperationNotFound,
    OperationRegistry,
    get_operation_registry,
    invocable,
    invocable_spec,
    reset_operation_registry,
)


@pytest.fixture
def catalog(pluralizer):
    return EntityCatalog(pluralizer)


@pytest.fixture
def registry(catalog, pluralizer, discovery_options):
    """Registry over the blog operations with a populated catalog."""
    registry = OperationRegistry(catalog, ActionParser(pluralizer))
    register_blog_entities(catalog, discovery_options)
    register_blog_operations(registry)
    catalog.run_discovery()
    registry.build()
    return registry


def make_module(name, *classes):
    module = ModuleType(name)
    for cls in classes:
        setattr(module, cls.__name__, cls)
    return module


# ============================================================================
# Marker
# ============================================================================

def test_invocable_marker_is_not_inherited():
    @invocable()
    class BaseQuery(BaseModel):
        pass

    class DerivedQuery(BaseQuery):
        pass

    assert invocable_spec(BaseQuery) is not None
    assert invocable_spec(DerivedQuery) is None
    assert invocable_spec("BaseQuery") is None


# ============================================================================
# Build
# ============================================================================

class TestBuild:
    """Index build from source modules."""

    def test_build_indexes_all_operations(self, registry):
        assert len(registry) == 16
        assert registry.sources() == ["opdispatch.blog.operations"]

    def test_convention_split(self, registry):
        metadata = registry.resolve_identifier("GetPublishedBlogPostsQuery")

        assert metadata.kind == OperationKind.QUERY
        assert metadata.entity == "BlogPost"
        assert metadata.verb == "GetPublished"
        assert metadata.input_shape is GetPublishedBlogPostsQuery

    def test_declared_entity_and_verb(self, registry):
        metadata = registry.resolve_identifier("GetAuthorByEmailQuery")

        assert metadata.entity == "Author"
        assert metadata.verb == "GetByEmail"

    def test_build_does_not_learn_field_names(self, registry):
        assert not registry.catalog.is_valid("Email")
        assert not registry.catalog.is_valid("Id")

    def test_add_source_twice_is_ignored(self, registry):
        from opdispatch.blog import operations

        registry.add_source(operations)
        assert registry.sources() == ["opdispatch.blog.operations"]

    def test_operation_names_feed_the_catalog(self, pluralizer):
        catalog = EntityCatalog(pluralizer)
        registry = OperationRegistry(catalog, ActionParser(pluralizer))
        register_blog_operations(registry)

        catalog.run_discovery()

        assert catalog.list_names() == {"Author", "BlogPost", "Category", "Comment"}

    def test_operation_names_can_stay_out_of_the_catalog(self, pluralizer):
        catalog = EntityCatalog(pluralizer)
        registry = OperationRegistry(catalog, ActionParser(pluralizer))
        register_blog_operations(registry, discover_entities=False)

        catalog.run_discovery()

        assert len(catalog) == 0
        assert len(registry) > 0

    def test_conflicting_shapes_keep_the_first(self, catalog, pluralizer):
        @invocable()
        class GetAllWidgetsQuery(BaseModel):
            pass

        @invocable(entity="Widget", verb="GetAll")
        class ListWidgetsQuery(BaseModel):
            pass

        catalog.register("Widget")
        registry = OperationRegistry(catalog, ActionParser(pluralizer))
        registry.add_source(make_module("widgets", GetAllWidgetsQuery, ListWidgetsQuery))

        assert registry.build() == 1
        assert registry.resolve(OperationKind.QUERY, "Widget", "GetAll").input_shape is GetAllWidgetsQuery

    def test_shapes_without_kind_suffix_are_not_indexed(self, catalog, pluralizer):
        @invocable()
        class Ping(BaseModel):
            pass

        registry = OperationRegistry(catalog, ActionParser(pluralizer))
        registry.add_source(make_module("ping", Ping))

        assert len(registry) == 0
        metadata = registry.resolve_identifier("ping")
        assert metadata.input_shape is Ping
        assert metadata.kind == OperationKind.COMMAND


# ============================================================================
# Resolution
# ============================================================================

class TestResolve:
    """resolve() and resolve_identifier()."""

    @pytest.mark.parametrize("entity", ["Author", "authors", "AUTHORS", "author"])
    def test_resolve_any_entity_form(self, registry, entity):
        metadata = registry.resolve(OperationKind.QUERY, entity, "GetAll")
        assert metadata.input_shape is GetAllAuthorsQuery

    def test_resolve_verb_is_case_insensitive(self, registry):
        metadata = registry.resolve(OperationKind.COMMAND, "Author", "update")
        assert metadata.input_shape is UpdateAuthorCommand

    def test_resolve_kind_matters(self, registry):
        assert registry.resolve(OperationKind.COMMAND, "Author", "GetAll") is None

    def test_resolve_empty_input(self, registry):
        assert registry.resolve(OperationKind.QUERY, "", "GetAll") is None
        assert registry.resolve(OperationKind.QUERY, "Author", "") is None

    def test_literal_identifier_fallback(self, registry):
        """The index has (Author, GetByEmail); the word split gives (Email, GetAuthorBy)."""
        metadata = registry.resolve(OperationKind.QUERY, "Email", "GetAuthorBy")
        assert metadata.input_shape is GetAuthorByEmailQuery

    def test_resolve_identifier_is_case_insensitive(self, registry):
        assert registry.resolve_identifier("getallauthorsquery").input_shape is GetAllAuthorsQuery
        assert registry.resolve_identifier("NoSuchQuery") is None
        assert registry.resolve_identifier("") is None

    def test_cached_resolution_is_stable(self, registry):
        first = registry.resolve(OperationKind.QUERY, "authors", "GetAll")

        registry.catalog.register("AuthorProfile")
        registry.catalog.register("Widget")

        assert registry.resolve(OperationKind.QUERY, "Author", "GetAll") is first

    def test_misses_are_not_cached(self, registry):
        class FrobnicateAuthorCommand(BaseModel):
            pass

        assert registry.resolve(OperationKind.COMMAND, "Author", "Frobnicate") is None

        registry.register(OperationMetadata(
            kind=OperationKind.COMMAND, entity="Author", verb="Frobnicate",
            input_shape=FrobnicateAuthorCommand,
        ))

        metadata = registry.resolve(OperationKind.COMMAND, "authors", "Frobnicate")
        assert metadata.input_shape is FrobnicateAuthorCommand

    def test_refresh_clears_cache(self, registry):
        first = registry.resolve(OperationKind.QUERY, "Author", "GetAll")

        assert registry.refresh() == 16
        second = registry.resolve(OperationKind.QUERY, "Author", "GetAll")

        assert second is not first
        assert second.input_shape is first.input_shape


# ============================================================================
# Registration
# ============================================================================

class TestRegister:
    """Explicit register()."""

    def test_register_same_shape_twice(self, registry):
        metadata = OperationMetadata(
            kind=OperationKind.QUERY, entity="Author", verb="GetAll", input_shape=GetAllAuthorsQuery,
        )
        registry.register(metadata)
        registry.register(metadata)

        assert len(registry) == 16

    def test_register_conflict(self, registry):
        class OtherQuery(BaseModel):
            pass

        with pytest.raises(OperationAlreadyRegistered):
            registry.register(OperationMetadata(
                kind=OperationKind.QUERY, entity="author", verb="getall", input_shape=OtherQuery,
            ))

    def test_registered_operation_survives_refresh(self, registry):
        class ArchiveCommentCommand(BaseModel):
            id: int

        registry.register(OperationMetadata(
            kind=OperationKind.COMMAND, entity="Comment", verb="Archive", input_shape=ArchiveCommentCommand,
        ))
        registry.refresh()

        assert registry.exists("ArchiveCommentCommand")
        assert len(registry) == 17

    @pytest.mark.parametrize("kwargs", [
        {"kind": "Query", "entity": "Author", "verb": "GetAll"},
        {"kind": OperationKind.QUERY, "entity": "", "verb": "GetAll"},
        {"kind": OperationKind.QUERY, "entity": "Author", "verb": ""},
    ])
    def test_register_invalid(self, registry, kwargs):
        class SomeQuery(BaseModel):
            pass

        with pytest.raises(InvalidOperationDescriptor):
            registry.register(OperationMetadata(input_shape=SomeQuery, **kwargs))


# ============================================================================
# Discoverability
# ============================================================================

class TestDiscoverability:
    """list(), entities(), actions(), schemas and docs."""

    def test_list_by_kind(self, registry):
        queries = registry.list(kind=OperationKind.QUERY)

        assert len(queries) == 8
        assert all(op.kind == OperationKind.QUERY for op in queries)

    def test_list_by_entity_plural(self, registry):
        names = [op.name for op in registry.list(entity="authors")]

        assert len(names) == 6
        assert "GetAuthorByEmailQuery" in names

    def test_entities(self, registry):
        assert registry.entities() == ["Author", "BlogPost", "Category", "Comment"]

    def test_actions(self, registry):
        assert registry.actions("Author") == ["Create", "Delete", "GetAll", "GetByEmail", "GetById", "Update"]

    def test_grouped_by_entity(self, registry):
        groups = registry.grouped_by_entity()
        assert len(groups["Category"]) == 2

    def test_action_name(self, registry):
        assert registry.get("GetAllAuthorsQuery").action == "getAllAuthors"
        assert registry.get("CreateBlogPostCommand").action == "createBlogPost"

    def test_get_unknown(self, registry):
        with pytest.raises(OperationNotFound):
            registry.get("FrobnicateWidgetCommand")
        assert not registry.exists("FrobnicateWidgetCommand")

    def test_get_schema(self, registry):
        schema = registry.get_schema()

        assert len(schema["oneOf"]) == 16
        actions = {branch["properties"]["action"]["const"] for branch in schema["oneOf"]}
        assert "getAllAuthors" in actions
        assert "approveComment" in actions

    def test_operation_docs(self, registry):
        docs = registry.get_operation_docs("UpdateAuthorCommand")

        assert docs["kind"] == "Command"
        assert docs["entity"] == "Author"
        assert docs["output_type"] == "AuthorView"
        assert "firstName" in docs["input_schema"]["properties"]


# ============================================================================
# Singleton
# ============================================================================

def test_singleton_reset():
    first = get_operation_registry()
    assert get_operation_registry() is first

    reset_operation_registry()

    assert get_operation_registry() is not first
