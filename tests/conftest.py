"""Shared fixtures for opdispatch tests."""

import pytest

from opdispatch.blog import create_blog_dispatcher
from opdispatch.blog.context import BlogContext
from opdispatch.config.models import DiscoveryOptions
from opdispatch.core.entity_catalog import reset_entity_catalog
from opdispatch.core.pluralizer import Pluralizer
from opdispatch.registry.operation_registry import reset_operation_registry


@pytest.fixture(autouse=True)
def reset_singletons():
    """Fresh process-wide catalog and registry for every test."""
    reset_entity_catalog()
    reset_operation_registry()
    yield
    reset_entity_catalog()
    reset_operation_registry()


@pytest.fixture
def pluralizer():
    return Pluralizer()


@pytest.fixture
def discovery_options():
    """All sources on, no background rediscovery (independent of env flags)."""
    return DiscoveryOptions(
        model_discovery=True,
        operation_discovery=True,
        context_discovery=True,
        background=False,
    )


@pytest.fixture
def blog_context():
    return BlogContext.seeded()


@pytest.fixture
def dispatcher(blog_context, discovery_options):
    """Blog dispatcher over a seeded context."""
    return create_blog_dispatcher(blog_context, discovery_options)
