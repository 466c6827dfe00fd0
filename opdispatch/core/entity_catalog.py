"""
Entity Catalog - Process-wide, append-only registry of entity names.

Canonical names are discovered from several independent sources (domain
model classes, operation identifiers, persistence contexts, manual
registration) and can be queried in singular, plural or any casing.

Thread safety:
    All reads and inserts go through one re-entrant lock. Discovery may run
    in a background thread while dispatches query the catalog; a discovery
    pass that fails partway keeps whatever it registered (no rollback).

Learning fallback:
    canonical_name() registers any plausible name it has never seen. The set
    of known entities therefore grows with caller input and is not governed;
    review this before using the catalog as an input-validation boundary.

Usage:
    catalog = EntityCatalog()
    catalog.add_source("models", model_source(entities_module), DiscoverySource.MODEL)
    catalog.run_discovery()

    catalog.is_valid("categories")         # True
    catalog.canonical_name("CATEGORIES")   # "Category"
"""

import logging
import re
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .discovery import DiscoverySource, NameSource, static_source
from .pluralizer import Pluralizer, get_pluralizer

logger = logging.getLogger(__name__)

_PLAUSIBLE_NAME = re.compile(r"^[A-Za-z][A-Za-z0-9]{1,63}$")


@dataclass(frozen=True)
class CatalogEntry:
    """A canonical entity name and the source that first registered it."""
    name: str
    source: DiscoverySource


@dataclass
class _RegisteredSource:
    name: str
    discover: NameSource
    tag: DiscoverySource
    enabled: bool = True


class EntityCatalog:
    """
    Append-only catalog of canonical entity names.

    Entries are keyed case-insensitively; every entry is also reachable
    through its plural form. Duplicate registrations are idempotent and the
    first registered spelling wins.
    """

    def __init__(self, pluralizer: Optional[Pluralizer] = None,
                 fallback_entities: Optional[Iterable[str]] = None):
        """
        Initialize catalog.

        Args:
            pluralizer: Pluralizer for singular/plural lookups
            fallback_entities: Names registered only when a discovery pass
                finds nothing at all
        """
        self.pluralizer = pluralizer or get_pluralizer()
        self._lock = threading.RLock()
        self._entries: Dict[str, CatalogEntry] = {}    # canonical lower -> entry
        self._lookup: Dict[str, str] = {}              # surface lower -> canonical lower
        self._entity_types: Dict[str, type] = {}
        self._sources: List[_RegisteredSource] = []
        self._fallback = list(fallback_entities or [])
        self._discovery_thread: Optional[threading.Thread] = None
        self._discovery_passes = 0

    # ========================================================================
    # Registration
    # ========================================================================

    def register(self, name: str, source: DiscoverySource = DiscoverySource.MANUAL) -> Optional[str]:
        """
        Register an entity name.

        Args:
            name: Entity name in any casing
            source: Discovery source tag

        Returns:
            Canonical name (existing one if already registered), or None for
            empty input
        """
        if not name or not name.strip():
            return None

        proper = _proper_case(name.strip())
        key = proper.lower()
        with self._lock:
            # a known plural form maps back to its entry
            entry = self._entries.get(self._lookup.get(key, key))
            if entry is None:
                entry = CatalogEntry(name=proper, source=source)
                self._entries[key] = entry
                self._lookup.setdefault(key, key)
                self._lookup.setdefault(self.pluralizer.pluralize(key).lower(), key)
                logger.debug(f"Registered entity '{proper}' (source: {source.value})")
            return entry.name

    def register_many(self, names: Iterable[str], source: DiscoverySource = DiscoverySource.MANUAL) -> List[str]:
        """Register several names; returns their canonical names."""
        registered = []
        for name in names:
            canonical = self.register(name, source)
            if canonical:
                registered.append(canonical)
        return registered

    def register_type(self, entity_type: type) -> Optional[str]:
        """
        Register an entity by its class.

        Abstract classes and non-classes are ignored.
        """
        if not isinstance(entity_type, type) or getattr(entity_type, "__abstractmethods__", None):
            return None

        canonical = self.register(entity_type.__name__, DiscoverySource.TYPE)
        with self._lock:
            self._entity_types.setdefault(canonical.lower(), entity_type)
        return canonical

    # ========================================================================
    # Queries
    # ========================================================================

    def is_valid(self, name: str) -> bool:
        """True if the name, its singular or its plural form is known."""
        return self._find(name) is not None

    def canonical_name(self, name: str) -> str:
        """
        Return the canonical name for any known surface form.

        Unknown but plausible names are registered on first sight (source
        LEARNED) in singular, first-letter-capitalized form. Implausible
        names are returned unchanged and not registered.
        """
        if not name:
            return name

        found = self._find(name)
        if found is not None:
            return found

        if not is_plausible(name):
            logger.debug(f"Not learning implausible entity name '{name}'")
            return name

        learned = self.register(self.pluralizer.singularize(name.strip()), DiscoverySource.LEARNED)
        logger.info(f"Learned new entity '{learned}' from '{name}'")
        return learned

    def list_names(self) -> Set[str]:
        """Set of canonical entity names."""
        with self._lock:
            return {entry.name for entry in self._entries.values()}

    def entries(self) -> List[CatalogEntry]:
        """All catalog entries in registration order."""
        with self._lock:
            return list(self._entries.values())

    def entity_types(self) -> Dict[str, type]:
        """Canonical name -> class, for entities registered by type."""
        with self._lock:
            return {self._entries[key].name: cls for key, cls in self._entity_types.items()}

    def __contains__(self, name: str) -> bool:
        return self.is_valid(name)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _find(self, name: str) -> Optional[str]:
        if not name or not name.strip():
            return None

        lower = name.strip().lower()
        forms = (lower, self.pluralizer.singularize(lower), self.pluralizer.pluralize(lower))
        with self._lock:
            for form in forms:
                key = self._lookup.get(form)
                if key is not None:
                    return self._entries[key].name
        return None

    # ========================================================================
    # Discovery
    # ========================================================================

    def add_source(self, name: str, discover: NameSource,
                   tag: DiscoverySource = DiscoverySource.MANUAL, enabled: bool = True) -> None:
        """
        Add a discovery source.

        Args:
            name: Label used in logs
            discover: Zero-argument callable returning entity names
            tag: Source tag recorded on entries it creates
            enabled: Disabled sources are kept but skipped
        """
        with self._lock:
            self._sources.append(_RegisteredSource(name, discover, tag, enabled))

    def run_discovery(self) -> Dict[str, List[str]]:
        """
        Run every enabled source once.

        A failing source is logged and skipped; the others still run.

        Returns:
            Source name -> canonical names it produced
        """
        with self._lock:
            sources = list(self._sources)

        results: Dict[str, List[str]] = {}
        for source in sources:
            if not source.enabled:
                continue
            try:
                names = list(source.discover())
            except Exception:
                logger.exception(f"Entity discovery source '{source.name}' failed")
                continue
            results[source.name] = self.register_many(names, source.tag)

        if self._fallback and not any(results.values()) and len(self) == 0:
            results["fallback"] = self.register_many(static_source(self._fallback)(), DiscoverySource.FALLBACK)

        with self._lock:
            self._discovery_passes += 1

        total = sum(len(names) for names in results.values())
        logger.info(f"Entity discovery pass finished: {total} names from {len(results)} sources")
        return results

    def start_discovery(self) -> Optional[threading.Thread]:
        """
        Run discovery in a background thread.

        Returns the thread, or None if a pass is already in flight.
        """
        with self._lock:
            if self._discovery_thread is not None and self._discovery_thread.is_alive():
                return None
            thread = threading.Thread(target=self.run_discovery, name="entity-discovery", daemon=True)
            self._discovery_thread = thread
        thread.start()
        return thread

    def wait_for_discovery(self, timeout: Optional[float] = None) -> bool:
        """Block until the background pass (if any) ends. True when idle."""
        thread = self._discovery_thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    @property
    def discovery_passes(self) -> int:
        """Number of completed discovery passes."""
        with self._lock:
            return self._discovery_passes

    def source_names(self) -> List[Tuple[str, bool]]:
        """(name, enabled) for each registered source."""
        with self._lock:
            return [(s.name, s.enabled) for s in self._sources]


def is_plausible(name: str) -> bool:
    """A plausible entity name is 2-64 alphanumerics starting with a letter."""
    return bool(name) and _PLAUSIBLE_NAME.match(name.strip()) is not None


def _proper_case(name: str) -> str:
    return name[0].upper() + name[1:]


# ============================================================================
# Singleton
# ============================================================================

_catalog_instance: Optional[EntityCatalog] = None


def get_entity_catalog() -> EntityCatalog:
    """Get the process-wide entity catalog."""
    global _catalog_instance

    if _catalog_instance is None:
        _catalog_instance = EntityCatalog()

    return _catalog_instance


def reset_entity_catalog() -> None:
    """Reset singleton (for testing)."""
    global _catalog_instance
    _catalog_instance = None
