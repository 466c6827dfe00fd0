"""
Blog feature module: entities, operations and handlers wired to a Dispatcher.

Usage:
    from opdispatch.blog import create_blog_dispatcher

    dispatcher = create_blog_dispatcher()
    result = await dispatcher.dispatch_action("getAllAuthors")
"""

import logging
from typing import Optional

from ..config.models import DiscoveryOptions
from ..core.discovery import DiscoverySource, context_source, model_source
from ..core.entity_catalog import EntityCatalog
from ..core.action_parser import ActionParser
from ..core.pluralizer import Pluralizer
from ..dispatcher import Dispatcher
from ..mediator import InMemoryMediator
from ..registry.operation_registry import OperationRegistry
from . import operations
from .context import BlogContext
from .entities import Author, BlogPost, Category, Comment
from .handlers import BlogHandlers

logger = logging.getLogger(__name__)

ENTITY_TYPES = (Author, BlogPost, Category, Comment)


def register_blog_entities(catalog: EntityCatalog, options: Optional[DiscoveryOptions] = None) -> None:
    """Add the blog discovery sources enabled in `options` to a catalog."""
    options = options or DiscoveryOptions()

    if options.model_discovery:
        catalog.add_source("blog-models", model_source(*ENTITY_TYPES), DiscoverySource.MODEL)
    if options.context_discovery:
        catalog.add_source("blog-context", context_source(BlogContext), DiscoverySource.CONTEXT)


def register_blog_operations(registry: OperationRegistry, discover_entities: bool = True) -> None:
    """Add the blog operations module to a registry."""
    registry.add_source(operations, discover_entities=discover_entities)


def create_blog_dispatcher(context: Optional[BlogContext] = None,
                           options: Optional[DiscoveryOptions] = None) -> Dispatcher:
    """
    Build a dispatcher for the blog feature with its own catalog and registry.

    Args:
        context: Data context (default: a seeded demo context)
        options: Discovery options (default: from feature flags)

    Returns:
        Dispatcher whose registry and catalog are private to this call
    """
    options = options or DiscoveryOptions()
    context = context if context is not None else BlogContext.seeded()

    pluralizer = Pluralizer()
    for singular, plural in options.irregular_plurals.items():
        pluralizer.add_irregular(singular, plural)

    catalog = EntityCatalog(pluralizer, fallback_entities=options.fallback_entities)
    parser = ActionParser(pluralizer)
    registry = OperationRegistry(catalog, parser)

    register_blog_entities(catalog, options)
    register_blog_operations(registry, discover_entities=options.operation_discovery)

    catalog.run_discovery()
    registry.build()

    mediator = InMemoryMediator()
    BlogHandlers(context).register(mediator)

    logger.info(f"Blog dispatcher ready: {len(registry)} operations, {len(catalog)} entities")
    return Dispatcher(mediator, registry, parser, discover_on_miss=options.background)
