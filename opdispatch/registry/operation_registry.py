"""
Operation Registry - Maps (kind, entity, verb) to typed operation shapes.

Operations are pydantic models carrying the @invocable marker whose class
name follows the {Verb}{Entity}{Kind} convention, e.g. GetAllAuthorsQuery or
CreateBlogPostCommand. Feature modules are handed to the registry explicitly
with add_source(); nothing is scanned implicitly.

Provides:
- Index build from source modules, parsed with the action-parser suffix strategy
- Memoized resolve() with a literal-identifier fallback
- Explicit register() for operations that do not follow the naming convention
- Discoverability via list(), entities(), actions() and JSON schemas

Usage:
    registry = OperationRegistry(catalog)
    registry.add_source(blog_operations)
    registry.build()

    metadata = registry.resolve(OperationKind.QUERY, "authors", "GetAll")
    metadata.input_shape        # GetAllAuthorsQuery
"""

import inspect
import logging
import threading
from dataclasses import dataclass
from types import ModuleType
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..core.action_parser import ActionParser, OperationKind, capitalize_first, get_action_parser
from ..core.discovery import DiscoverySource, operation_source
from ..core.entity_catalog import EntityCatalog, get_entity_catalog

logger = logging.getLogger(__name__)

JSONSchema = Dict[str, Any]
OperationKey = Tuple[str, str, str]

INVOCABLE_MARKER = "__invocable__"


# ============================================================================
# Marker
# ============================================================================

@dataclass(frozen=True)
class InvocableSpec:
    """Options attached to an operation shape by @invocable."""
    output: Optional[type] = None
    description: Optional[str] = None
    short_description: Optional[str] = None
    builder: Optional[Callable[..., Any]] = None
    entity: Optional[str] = None
    verb: Optional[str] = None


def invocable(*, output: Optional[type] = None, description: Optional[str] = None,
              short_description: Optional[str] = None,
              builder: Optional[Callable[..., Any]] = None,
              entity: Optional[str] = None, verb: Optional[str] = None) -> Callable[[type], type]:
    """
    Mark a class as an invocable operation.

    Args:
        output: Result shape produced by the handler
        description: Explicit description, overrides generated text
        short_description: Explicit one-line summary
        builder: Custom decode callable, builder(payload, route_parameters)
            returning an instance of the shape
        entity: Entity this operation belongs to, when the class name
            alone is ambiguous (GetAuthorByEmailQuery -> "Author")
        verb: Verb to index under; used together with entity

    Example:
        @invocable(output=AuthorView, entity="Author", verb="GetByEmail")
        class GetAuthorByEmailQuery(BaseModel):
            email: str
    """
    spec = InvocableSpec(output, description, short_description, builder, entity, verb)

    def decorate(cls: type) -> type:
        setattr(cls, INVOCABLE_MARKER, spec)
        return cls

    return decorate


def invocable_spec(cls: Any) -> Optional[InvocableSpec]:
    """Marker options declared directly on a class (not inherited)."""
    if not inspect.isclass(cls):
        return None
    spec = cls.__dict__.get(INVOCABLE_MARKER)
    return spec if isinstance(spec, InvocableSpec) else None


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class OperationMetadata:
    """
    Describes one resolvable operation.

    (kind, entity, verb) is unique within a registry build, compared
    case-insensitively.
    """
    kind: OperationKind
    entity: str
    verb: str
    input_shape: type
    output_shape: Optional[type] = None
    name: str = ""
    description: Optional[str] = None
    short_description: Optional[str] = None
    source: str = ""
    builder: Optional[Callable[..., Any]] = None

    def __post_init__(self):
        if not self.name:
            self.name = self.input_shape.__name__

    @property
    def key(self) -> OperationKey:
        return make_key(self.kind, self.entity, self.verb)

    @property
    def action(self) -> str:
        """Action string that dispatches to this operation, e.g. "getAllAuthors"."""
        if self.name.endswith(self.kind.value) and len(self.name) > len(self.kind.value):
            stem = self.name[:-len(self.kind.value)]
        else:
            stem = f"{self.verb}{self.entity}"
        return stem[:1].lower() + stem[1:]

    @property
    def resolved_type_name(self) -> str:
        return self.input_shape.__name__

    @property
    def output_type_name(self) -> Optional[str]:
        return self.output_shape.__name__ if self.output_shape is not None else None


def make_key(kind: OperationKind, entity: str, verb: str) -> OperationKey:
    """Normalized (case-insensitive) lookup key."""
    return (kind.value.lower(), entity.lower(), verb.lower())


# ============================================================================
# Exceptions
# ============================================================================

class OperationRegistryError(Exception):
    """Base exception for registry errors."""
    pass


class OperationNotFound(OperationRegistryError):
    """Operation not found in registry."""
    pass


class OperationAlreadyRegistered(OperationRegistryError):
    """A different shape is already registered under the same key."""
    pass


class InvalidOperationDescriptor(OperationRegistryError):
    """Invalid operation metadata."""
    pass


# ============================================================================
# Operation Registry
# ============================================================================

class OperationRegistry:
    """
    Central index of invocable operations.

    The index is built lazily on first use and cached together with every
    successful resolution until refresh() is called.
    """

    def __init__(self, catalog: Optional[EntityCatalog] = None,
                 parser: Optional[ActionParser] = None):
        """
        Initialize registry.

        Args:
            catalog: Entity catalog consulted for entity names
            parser: Parser providing the entity suffix strategy
        """
        self.catalog = catalog if catalog is not None else get_entity_catalog()
        self.parser = parser or get_action_parser()

        self._lock = threading.RLock()
        self._sources: List[ModuleType] = []
        self._manual: List[OperationMetadata] = []
        self._operations: Dict[OperationKey, OperationMetadata] = {}
        self._by_name: Dict[str, OperationMetadata] = {}
        self._resolved: Dict[OperationKey, OperationMetadata] = {}
        self._built = False

    # ========================================================================
    # Sources
    # ========================================================================

    def add_source(self, module: ModuleType, discover_entities: bool = True) -> None:
        """
        Add an operation-source module.

        Args:
            module: Module holding @invocable shapes
            discover_entities: Also register its operation names as an entity
                discovery source, so entities only mentioned in operation
                names are still cataloged
        """
        with self._lock:
            if module in self._sources:
                return
            self._sources.append(module)
            self._built = False
        if not discover_entities:
            return
        self.catalog.add_source(
            f"operations:{module.__name__}",
            operation_source(lambda: [cls.__name__ for cls in self._module_shapes(module)],
                             self.parser.pluralizer),
            DiscoverySource.OPERATION,
        )

    def sources(self) -> List[str]:
        """Names of registered source modules."""
        with self._lock:
            return [module.__name__ for module in self._sources]

    def shapes(self) -> List[type]:
        """Every marked operation shape across all source modules."""
        with self._lock:
            modules = list(self._sources)
        found = []
        for module in modules:
            found.extend(self._module_shapes(module))
        return found

    @staticmethod
    def _module_shapes(module: ModuleType) -> List[type]:
        return [
            member for _, member in inspect.getmembers(module, inspect.isclass)
            if invocable_spec(member) is not None and not inspect.isabstract(member)
        ]

    # ========================================================================
    # Registration
    # ========================================================================

    def register(self, metadata: OperationMetadata) -> None:
        """
        Register an operation explicitly.

        Registering the same shape twice is a no-op.

        Raises:
            InvalidOperationDescriptor: If metadata is incomplete
            OperationAlreadyRegistered: If another shape owns the key
        """
        self._validate(metadata)
        with self._lock:
            self._ensure_built()
            self._insert(metadata)
            if metadata not in self._manual:
                self._manual.append(metadata)

    def build(self) -> int:
        """
        Build the index from all source modules.

        Returns:
            Number of operations indexed
        """
        with self._lock:
            self._operations.clear()
            self._by_name.clear()

            for shape in self.shapes():
                metadata = self.describe_shape(shape)
                if metadata is None:
                    logger.debug(f"Skipping {shape.__name__}: name does not follow the Query/Command convention")
                    continue
                try:
                    self._insert(metadata)
                except OperationAlreadyRegistered as e:
                    logger.warning(str(e))

            for metadata in self._manual:
                self._insert(metadata)

            self._built = True
            count = len(self._operations)

        logger.info(f"OperationRegistry built: {count} operations from {len(self._sources)} sources")
        return count

    def refresh(self) -> int:
        """Drop cached resolutions and rebuild the index."""
        with self._lock:
            self._resolved.clear()
            return self.build()

    def describe_shape(self, shape: type) -> Optional[OperationMetadata]:
        """
        Derive metadata from a shape's class name (or its declared entity/verb).

        Returns:
            OperationMetadata, or None when the name has no kind suffix or
            cannot be split into verb and entity
        """
        spec = invocable_spec(shape) or InvocableSpec()
        name = shape.__name__

        kind = None
        for candidate in OperationKind:
            if name.endswith(candidate.value) and len(name) > len(candidate.value):
                kind = candidate
                break
        if kind is None:
            return None

        if spec.entity and spec.verb:
            verb, entity = spec.verb, spec.entity
        else:
            stem = name[:-len(kind.value)]
            verb, entity = self.parser.split_entity(stem, self.catalog.list_names())
            if not verb or not entity:
                return None

        # Only names already in the catalog are canonicalized; building the
        # index must not teach the catalog words like "Email" or "Slug".
        if self.catalog.is_valid(entity):
            entity = self.catalog.canonical_name(entity)

        return OperationMetadata(
            kind=kind,
            entity=entity,
            verb=capitalize_first(verb),
            input_shape=shape,
            output_shape=spec.output,
            name=name,
            description=spec.description,
            short_description=spec.short_description,
            source=shape.__module__,
            builder=spec.builder,
        )

    # ========================================================================
    # Resolution
    # ========================================================================

    def resolve(self, kind: OperationKind, entity_guess: str, verb: str) -> Optional[OperationMetadata]:
        """
        Resolve an operation.

        The entity guess is canonicalized first (which may register it as a
        learned entity). On an index miss the literal identifier
        verb + entity + kind is tried against the source modules.

        Returns:
            OperationMetadata, or None if nothing matches
        """
        if not entity_guess or not verb:
            return None

        canonical = self.catalog.canonical_name(entity_guess)
        key = make_key(kind, canonical, verb)

        with self._lock:
            cached = self._resolved.get(key)
            if cached is not None:
                logger.debug(f"Resolution cache hit: {':'.join(key)}")
                return cached

            self._ensure_built()
            metadata = self._operations.get(key)

        if metadata is None:
            for entity in dict.fromkeys((canonical, entity_guess)):
                metadata = self.resolve_identifier(f"{capitalize_first(verb)}{capitalize_first(entity)}{kind.value}")
                if metadata is not None:
                    break

        if metadata is None:
            return None

        with self._lock:
            return self._resolved.setdefault(key, metadata)

    def resolve_identifier(self, identifier: str) -> Optional[OperationMetadata]:
        """
        Resolve a conventional identifier such as "GetAllAuthorsQuery".

        Matching is case-insensitive against marked shapes in the source
        modules, including shapes the index build could not parse.
        """
        if not identifier:
            return None

        with self._lock:
            self._ensure_built()
            known = self._by_name.get(identifier.lower())
        if known is not None:
            return known

        for shape in self.shapes():
            if shape.__name__.lower() != identifier.lower():
                continue
            metadata = self.describe_shape(shape)
            if metadata is None:
                spec = invocable_spec(shape)
                metadata = OperationMetadata(
                    kind=OperationKind.QUERY if shape.__name__.endswith("Query") else OperationKind.COMMAND,
                    entity="",
                    verb=shape.__name__,
                    input_shape=shape,
                    output_shape=spec.output,
                    description=spec.description,
                    short_description=spec.short_description,
                    source=shape.__module__,
                    builder=spec.builder,
                )
            logger.debug(f"Resolved literal identifier '{identifier}' to {shape.__name__}")
            return metadata

        return None

    # ========================================================================
    # Retrieval
    # ========================================================================

    def get(self, name: str) -> OperationMetadata:
        """
        Retrieve an operation by its identifier.

        Raises:
            OperationNotFound: If no operation has that name
        """
        metadata = self.resolve_identifier(name)
        if metadata is None:
            raise OperationNotFound(f"Operation '{name}' not found")
        return metadata

    def exists(self, name: str) -> bool:
        """Check if an operation identifier is known."""
        return self.resolve_identifier(name) is not None

    def list(self, kind: Optional[OperationKind] = None, entity: Optional[str] = None) -> List[OperationMetadata]:
        """
        List operations with optional filters.

        Args:
            kind: Filter by operation kind
            entity: Filter by entity (any surface form)

        Returns:
            Operations sorted by entity, kind and verb
        """
        with self._lock:
            self._ensure_built()
            operations = list(self._operations.values())

        if kind is not None:
            operations = [op for op in operations if op.kind == kind]

        if entity:
            wanted = self.catalog.canonical_name(entity).lower() if self.catalog.is_valid(entity) else entity.lower()
            operations = [op for op in operations if op.entity.lower() == wanted]

        return sorted(operations, key=lambda op: (op.entity, op.kind.value, op.verb))

    def entities(self) -> List[str]:
        """Entities that have at least one operation."""
        return sorted({op.entity for op in self.list()})

    def actions(self, entity: str) -> List[str]:
        """Verbs available for an entity."""
        return sorted({op.verb for op in self.list(entity=entity)})

    def grouped_by_entity(self) -> Dict[str, List[OperationMetadata]]:
        """Operations grouped by entity."""
        groups: Dict[str, List[OperationMetadata]] = {}
        for op in self.list():
            groups.setdefault(op.entity, []).append(op)
        return groups

    def __len__(self) -> int:
        with self._lock:
            self._ensure_built()
            return len(self._operations)

    # ========================================================================
    # Schema Generation
    # ========================================================================

    def get_schema(self) -> JSONSchema:
        """
        JSON Schema covering every operation's input.

        Returns:
            Schema with one oneOf branch per operation
        """
        schemas = []
        for op in self.list():
            schemas.append({
                "type": "object",
                "properties": {
                    "action": {"const": op.action},
                    "payload": input_schema(op.input_shape),
                },
                "required": ["action"],
            })

        return {
            "type": "object",
            "oneOf": schemas,
            "description": "Operations available for dispatch",
        }

    def get_operation_docs(self, name: str) -> Dict[str, Any]:
        """
        Documentation for one operation.

        Raises:
            OperationNotFound: If operation doesn't exist
        """
        op = self.get(name)
        return {
            "name": op.name,
            "kind": op.kind.value,
            "entity": op.entity,
            "verb": op.verb,
            "description": op.description,
            "input_schema": input_schema(op.input_shape),
            "output_type": op.output_type_name,
            "source": op.source,
        }

    # ========================================================================
    # Internal Helpers
    # ========================================================================

    def _ensure_built(self) -> None:
        if not self._built:
            self.build()

    def _insert(self, metadata: OperationMetadata) -> None:
        existing = self._operations.get(metadata.key)
        if existing is not None:
            if existing.input_shape is metadata.input_shape:
                return
            raise OperationAlreadyRegistered(
                f"{':'.join(metadata.key)} is already bound to {existing.name}, "
                f"cannot bind {metadata.name}"
            )
        self._operations[metadata.key] = metadata
        self._by_name[metadata.name.lower()] = metadata

    @staticmethod
    def _validate(metadata: OperationMetadata) -> None:
        if not isinstance(metadata.kind, OperationKind):
            raise InvalidOperationDescriptor("Operation kind must be an OperationKind")

        if not metadata.entity:
            raise InvalidOperationDescriptor("Operation entity is required")

        if not metadata.verb:
            raise InvalidOperationDescriptor("Operation verb is required")

        if not inspect.isclass(metadata.input_shape):
            raise InvalidOperationDescriptor("Operation input shape must be a class")


def input_schema(shape: type) -> JSONSchema:
    """JSON schema of an input shape (pydantic models), else an open object."""
    schema_method = getattr(shape, "model_json_schema", None)
    if callable(schema_method):
        return schema_method()
    return {"type": "object", "title": shape.__name__}


# ============================================================================
# Singleton
# ============================================================================

_registry_instance: Optional[OperationRegistry] = None


def get_operation_registry() -> OperationRegistry:
    """
    Get singleton instance of operation registry.

    Returns:
        OperationRegistry singleton
    """
    global _registry_instance

    if _registry_instance is None:
        _registry_instance = OperationRegistry()

    return _registry_instance


def reset_operation_registry() -> None:
    """Reset singleton (for testing)."""
    global _registry_instance
    _registry_instance = None
