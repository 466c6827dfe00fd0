"""
Core Layer - Entity names and action parsing.

Modules:
- pluralizer: Singular/plural transforms with an irregular-word table
- action_parser: Query/Command classification and verb/entity splitting
- discovery: Entity discovery sources (models, operations, data contexts)
- entity_catalog: Append-only catalog of canonical entity names
"""

from .pluralizer import Pluralizer, get_pluralizer
from .action_parser import (
    ActionParser,
    OperationKind,
    ParsedAction,
    classify,
    split_words,
    get_action_parser,
)
from .discovery import (
    DiscoverySource,
    EntitySet,
    entity,
    model_source,
    operation_source,
    context_source,
    static_source,
)
from .entity_catalog import (
    CatalogEntry,
    EntityCatalog,
    get_entity_catalog,
    reset_entity_catalog,
)

__all__ = [
    'Pluralizer',
    'get_pluralizer',
    'ActionParser',
    'OperationKind',
    'ParsedAction',
    'classify',
    'split_words',
    'get_action_parser',
    # Discovery
    'DiscoverySource',
    'EntitySet',
    'entity',
    'model_source',
    'operation_source',
    'context_source',
    'static_source',
    # Catalog
    'CatalogEntry',
    'EntityCatalog',
    'get_entity_catalog',
    'reset_entity_catalog',
]
