"""Tests for entity discovery sources."""

from dataclasses import dataclass
from datetime import datetime

import pytest
from pydantic import BaseModel

from opdispatch.blog import entities as blog_entities
from opdispatch.blog.context import BlogContext
from opdispatch.blog.entities import Author, BlogPost, Category, Comment
from opdispatch.core.discovery import (
    EntitySet,
    context_source,
    entity,
    entity_from_identifier,
    field_names,
    is_entity_like,
    model_source,
    operation_source,
    static_source,
)


# ============================================================================
# Entity heuristic
# ============================================================================

@dataclass
class Invoice:
    id: int
    modified_on: datetime


class Money(BaseModel):
    amount: int
    currency: str


@entity
class Tag:
    label: str


class Draft(BaseModel):
    id: int
    title: str


def test_pydantic_entities_are_entity_like():
    for cls in (Author, BlogPost, Category, Comment):
        assert is_entity_like(cls)


def test_dataclass_with_identity_and_timestamp():
    assert is_entity_like(Invoice)


def test_value_objects_are_not_entities():
    assert not is_entity_like(Money)
    assert not is_entity_like(Draft)  # identity without a timestamp


def test_explicit_marker():
    assert is_entity_like(Tag)


def test_non_classes_are_not_entities():
    assert not is_entity_like("Author")
    assert not is_entity_like(Author(first_name="A", last_name="B", email="a@b.c"))


def test_field_names():
    assert field_names(Invoice) == ["id", "modified_on"]
    assert "created_at" in field_names(Author)
    assert field_names(Tag) == ["label"]


# ============================================================================
# Names from operation identifiers
# ============================================================================

@pytest.mark.parametrize("identifier,expected", [
    ("GetAllAuthorsQuery", "Author"),
    ("GetBlogPostsByCategoryQuery", "BlogPost"),
    ("GetAuthorByEmailQuery", "Author"),
    ("CreateBlogPostCommand", "BlogPost"),
    ("ApproveCommentCommand", "Comment"),
    ("GetPublishedBlogPostsQuery", "BlogPost"),
    ("GetAllCategoriesQuery", "Category"),
])
def test_entity_from_identifier(identifier, expected):
    assert entity_from_identifier(identifier) == expected


@pytest.mark.parametrize("identifier", ["GetQuery", "GetAllQuery", "DoItCommand"])
def test_entity_from_identifier_without_entity(identifier):
    assert entity_from_identifier(identifier) is None


# ============================================================================
# Source factories
# ============================================================================

def test_model_source_with_classes():
    discover = model_source(Author, Category, Money)
    assert discover() == ["Author", "Category"]


def test_model_source_with_module():
    names = model_source(blog_entities)()
    assert {"Author", "BlogPost", "Category", "Comment"} <= set(names)


def test_operation_source_accepts_callable():
    identifiers = ["GetAllAuthorsQuery", "GetQuery"]
    discover = operation_source(lambda: identifiers)

    assert discover() == ["Author"]
    identifiers.append("CreateCategoryCommand")
    assert discover() == ["Author", "Category"]


def test_context_source_from_class_annotations():
    assert context_source(BlogContext)() == ["Author", "BlogPost", "Category", "Comment"]


def test_context_source_from_instance_attributes():
    class AdHocContext:
        def __init__(self):
            self.invoices = EntitySet(Invoice)

    assert context_source(AdHocContext())() == ["Invoice"]


def test_static_source_copies_input():
    names = ["Author"]
    discover = static_source(names)
    names.append("Category")

    assert discover() == ["Author"]


# ============================================================================
# EntitySet
# ============================================================================

def test_entity_set_operations():
    authors = EntitySet(Author)
    ada = authors.add(Author(first_name="Ada", last_name="Lovelace", email="ada@example.com"))

    assert authors.get(ada.id) is ada
    assert len(authors) == 1
    assert authors.find(lambda a: a.first_name == "Ada") == [ada]
    assert list(authors) == [ada]
    assert authors.remove(ada.id) is True
    assert authors.remove(ada.id) is False
    assert len(authors) == 0
