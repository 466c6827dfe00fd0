"""
Pluralizer - Deterministic singular/plural word transforms.

Rule-based English inflection used for entity lookup and description
generation. Irregular forms live in a runtime-mutable override table that is
consulted before any suffix rule.

Usage:
    from opdispatch.core.pluralizer import Pluralizer

    p = Pluralizer()
    p.pluralize("Category")     # "Categories"
    p.singularize("tags")       # "tag"

    p.add_irregular("cactus", "cacti")
    p.remove_irregular("person")
    p.pluralize("person")       # "persons"
"""

import logging
import threading
from typing import Dict, Optional

logger = logging.getLogger(__name__)


DEFAULT_IRREGULARS: Dict[str, str] = {
    "person": "people",
    "child": "children",
    "foot": "feet",
    "tooth": "teeth",
    "mouse": "mice",
    "man": "men",
    "woman": "women",
}

_VOWELS = "aeiou"


class Pluralizer:
    """Singular/plural transforms with an overridable irregular-word table."""

    def __init__(self, irregulars: Optional[Dict[str, str]] = None):
        """
        Initialize pluralizer.

        Args:
            irregulars: singular -> plural overrides (default: DEFAULT_IRREGULARS)
        """
        self._lock = threading.Lock()
        self._plurals: Dict[str, str] = {}
        self._singulars: Dict[str, str] = {}

        table = DEFAULT_IRREGULARS if irregulars is None else irregulars
        for singular, plural in table.items():
            self.add_irregular(singular, plural)

    # ========================================================================
    # Irregular table
    # ========================================================================

    def add_irregular(self, singular: str, plural: str) -> None:
        """Add or replace an irregular singular/plural pair."""
        singular = singular.lower()
        plural = plural.lower()
        with self._lock:
            previous = self._plurals.pop(singular, None)
            if previous is not None:
                self._singulars.pop(previous, None)
            self._plurals[singular] = plural
            self._singulars[plural] = singular

    def remove_irregular(self, singular: str) -> bool:
        """
        Remove an irregular override by its singular form.

        Returns:
            True if an override was removed, False if none existed
        """
        singular = singular.lower()
        with self._lock:
            plural = self._plurals.pop(singular, None)
            if plural is None:
                return False
            self._singulars.pop(plural, None)
        return True

    def clear_irregulars(self) -> None:
        """Drop every irregular override; only suffix rules apply afterwards."""
        with self._lock:
            self._plurals.clear()
            self._singulars.clear()

    def irregulars(self) -> Dict[str, str]:
        """Snapshot of the irregular table (singular -> plural)."""
        with self._lock:
            return dict(self._plurals)

    # ========================================================================
    # Transforms
    # ========================================================================

    def pluralize(self, word: str) -> str:
        """
        Return the plural form of a word.

        Irregular lookup first, then ordered suffix rules:
        consonant+y -> ies, s/x/z/ch/sh -> +es, f -> ves, fe -> ves, else +s.
        """
        if not word:
            return word

        lower = word.lower()
        with self._lock:
            irregular = self._plurals.get(lower)
        if irregular is not None:
            return _preserve_casing(word, irregular)

        if lower.endswith("y") and len(lower) > 1 and lower[-2] not in _VOWELS:
            return word[:-1] + "ies"

        if lower.endswith(("s", "x", "z", "ch", "sh")):
            return word + "es"

        if lower.endswith("f"):
            return word[:-1] + "ves"

        if lower.endswith("fe"):
            return word[:-2] + "ves"

        return word + "s"

    def singularize(self, word: str) -> str:
        """
        Return the singular form of a word.

        Irregular lookup first, then inverse suffix rules, most specific
        first. "ves" becomes "f" when the stem ends in l/r (wolves -> wolf)
        and "fe" otherwise (knives -> knife).
        """
        if not word:
            return word

        lower = word.lower()
        with self._lock:
            irregular = self._singulars.get(lower)
        if irregular is not None:
            return _preserve_casing(word, irregular)

        if lower.endswith("ies") and len(word) > 3:
            return word[:-3] + "y"

        if lower.endswith("ves") and len(word) > 3:
            stem = word[:-3]
            if stem.lower().endswith(("l", "r")):
                return stem + "f"
            return stem + "fe"

        if lower.endswith(("ses", "xes", "zes", "ches", "shes")):
            return word[:-2]

        if lower.endswith("s") and len(word) > 1:
            return word[:-1]

        return word

    def is_plural(self, word: str) -> bool:
        """
        Heuristic plural check.

        Imprecise: any word ending in "s" counts as plural, so singular
        nouns such as "status" are reported as plural.
        """
        if not word:
            return False

        lower = word.lower()
        with self._lock:
            if lower in self._singulars:
                return True

        return lower.endswith(("s", "ies", "ves"))


def _preserve_casing(original: str, replacement: str) -> str:
    """Carry the first letter's case of `original` over to `replacement`."""
    if not original or not replacement:
        return replacement

    if original[0].isupper():
        return replacement[0].upper() + replacement[1:].lower()

    return replacement.lower()


# ============================================================================
# Singleton
# ============================================================================

_pluralizer_instance: Optional[Pluralizer] = None


def get_pluralizer() -> Pluralizer:
    """Get the process-wide pluralizer."""
    global _pluralizer_instance

    if _pluralizer_instance is None:
        _pluralizer_instance = Pluralizer()

    return _pluralizer_instance
