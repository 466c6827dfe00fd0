"""
Entity discovery sources for the EntityCatalog.

Each source is a zero-argument callable returning entity names. Sources are
built from explicit inputs (model classes or modules, operation identifiers,
persistence contexts) rather than by scanning everything loaded in the
process.

Sources:
- model_source: classes that look like domain entities
- operation_source: names recovered from operation identifiers
- context_source: EntitySet collections exposed by a data context
- static_source: fixed lists (manual / fallback registration)
"""

import dataclasses
import inspect
import logging
import typing
from enum import Enum
from types import ModuleType
from typing import Any, Callable, Dict, Generic, Iterable, Iterator, List, Optional, Set, TypeVar, Union

from .action_parser import split_words
from .pluralizer import Pluralizer, get_pluralizer

logger = logging.getLogger(__name__)

T = TypeVar("T")

NameSource = Callable[[], Iterable[str]]

ENTITY_MARKER = "__entity__"
IDENTITY_FIELDS = ("id",)
TIMESTAMP_HINTS = ("created", "updated", "modified")
KIND_SUFFIXES = ("Command", "Query", "Request")
VERB_WORDS = (
    "get", "all", "create", "update", "delete", "remove", "add",
    "publish", "unpublish", "archive", "search", "count", "list", "find",
)


class DiscoverySource(Enum):
    """Where a catalog entry came from."""
    MODEL = "model"
    OPERATION = "operation"
    CONTEXT = "context"
    TYPE = "type"
    MANUAL = "manual"
    LEARNED = "learned"
    FALLBACK = "fallback"


# ============================================================================
# Markers
# ============================================================================

def entity(cls: type) -> type:
    """Class decorator marking a class as a domain entity explicitly."""
    setattr(cls, ENTITY_MARKER, True)
    return cls


class EntitySet(Generic[T]):
    """
    Named in-memory collection of entities exposed by a data context.

    Declaring `authors: EntitySet[Author]` on a context class makes
    "Author" discoverable through context_source().
    """

    def __init__(self, entity_type: type, items: Optional[Iterable[T]] = None):
        self.entity_type = entity_type
        self._items: Dict[Any, T] = {}
        for item in items or ():
            self.add(item)

    def add(self, item: T) -> T:
        self._items[getattr(item, "id", id(item))] = item
        return item

    def get(self, key: Any) -> Optional[T]:
        return self._items.get(key)

    def remove(self, key: Any) -> bool:
        return self._items.pop(key, None) is not None

    def find(self, predicate: Callable[[T], bool]) -> List[T]:
        return [item for item in self._items.values() if predicate(item)]

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)


# ============================================================================
# Heuristics
# ============================================================================

def field_names(cls: type) -> List[str]:
    """Declared field names of a pydantic model, dataclass or annotated class."""
    model_fields = getattr(cls, "model_fields", None)
    if isinstance(model_fields, dict):
        return list(model_fields.keys())

    if dataclasses.is_dataclass(cls):
        return [f.name for f in dataclasses.fields(cls)]

    names: List[str] = []
    for klass in reversed(cls.__mro__):
        names.extend(getattr(klass, "__annotations__", {}).keys())
    return list(dict.fromkeys(names))


def is_entity_like(cls: Any) -> bool:
    """
    Entity heuristic: explicit marker, or an identity field plus a
    created/updated/modified-style timestamp field.
    """
    if not inspect.isclass(cls) or inspect.isabstract(cls):
        return False

    if cls.__dict__.get(ENTITY_MARKER, False):
        return True

    names = [name.lower() for name in field_names(cls)]
    has_identity = any(name in IDENTITY_FIELDS for name in names)
    has_timestamp = any(hint in name for name in names for hint in TIMESTAMP_HINTS)
    return has_identity and has_timestamp


def entity_from_identifier(identifier: str, pluralizer: Optional[Pluralizer] = None) -> Optional[str]:
    """
    Recover an entity name from an operation identifier.

    Strips the kind suffix, the leading verb (plus words such as "All")
    and any "By..." qualifier,
    keeps at most the last two remaining words and singularizes.

    Examples:
        >>> entity_from_identifier("GetAllAuthorsQuery")
        'Author'
        >>> entity_from_identifier("GetBlogPostsByCategoryQuery")
        'BlogPost'
    """
    pluralizer = pluralizer or get_pluralizer()

    name = identifier
    for suffix in KIND_SUFFIXES:
        if name.endswith(suffix) and len(name) > len(suffix):
            name = name[:-len(suffix)]
            break

    words = split_words(name)
    lowered = [w.lower() for w in words]
    if "by" in lowered:
        words = words[:lowered.index("by")]

    # the first word is always the verb; "All" and similar may follow it
    words = words[1:]
    while words and words[0].lower() in VERB_WORDS:
        words = words[1:]

    words = words[-2:]
    if not words or not words[0][0].isupper():
        return None

    candidate = pluralizer.singularize("".join(words))
    if len(candidate) <= 2:
        return None
    return candidate


# ============================================================================
# Source factories
# ============================================================================

def _iter_classes(targets: Iterable[Union[type, ModuleType]]) -> Iterator[type]:
    for target in targets:
        if isinstance(target, ModuleType):
            for _, member in inspect.getmembers(target, inspect.isclass):
                if member.__module__ == target.__name__:
                    yield member
        elif inspect.isclass(target):
            yield target


def model_source(*targets: Union[type, ModuleType]) -> NameSource:
    """Source yielding entity-like classes found in the given modules/classes."""
    def discover() -> List[str]:
        return [cls.__name__ for cls in _iter_classes(targets) if is_entity_like(cls)]
    return discover


def operation_source(identifiers: Union[Iterable[str], Callable[[], Iterable[str]]],
                     pluralizer: Optional[Pluralizer] = None) -> NameSource:
    """Source yielding entities recovered from operation identifiers."""
    def discover() -> List[str]:
        names = identifiers() if callable(identifiers) else identifiers
        found = []
        for identifier in names:
            entity_name = entity_from_identifier(identifier, pluralizer)
            if entity_name:
                found.append(entity_name)
        return found
    return discover


def context_source(context: Any) -> NameSource:
    """
    Source yielding entity types of EntitySet collections on a data context.

    Both class annotations (`authors: EntitySet[Author]`) and EntitySet
    instance attributes are inspected.
    """
    def discover() -> List[str]:
        found: Set[str] = set()
        owner = context if inspect.isclass(context) else type(context)

        for hint in typing.get_type_hints(owner).values():
            if typing.get_origin(hint) is EntitySet:
                args = typing.get_args(hint)
                if args and inspect.isclass(args[0]):
                    found.add(args[0].__name__)

        if not inspect.isclass(context):
            for value in vars(context).values():
                if isinstance(value, EntitySet):
                    found.add(value.entity_type.__name__)

        return sorted(found)
    return discover


def static_source(names: Iterable[str]) -> NameSource:
    """Source yielding a fixed list of names."""
    names = list(names)
    return lambda: list(names)
