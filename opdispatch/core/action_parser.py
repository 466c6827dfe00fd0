"""
Action Parser - Classifies action strings into (kind, entity, verb).

An action is a caller-supplied name such as "getAllAuthors" or
"createBlogPost". The parser decides whether it is a Query or a Command and
splits it into a verb and an entity candidate.

Classification is a bare prefix rule: anything starting with "get"
(case-insensitive) is a Query, everything else is a Command. Synonyms such
as "list", "find" or "search" are deliberately NOT treated as queries.

Entity extraction prefers known entity names (longest case-insensitive
suffix wins, plural forms included) and falls back to word splitting at
letter-case transitions.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from .pluralizer import Pluralizer, get_pluralizer

logger = logging.getLogger(__name__)

_WORD_PATTERN = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|\d+")


class OperationKind(Enum):
    """Read/write classification of an operation."""
    QUERY = "Query"
    COMMAND = "Command"

    @classmethod
    def from_value(cls, value: str) -> "OperationKind":
        """Look up a kind by its value, case-insensitively."""
        for kind in cls:
            if kind.value.lower() == value.lower():
                return kind
        raise ValueError(f"Unknown operation kind: '{value}'")


@dataclass(frozen=True)
class ParsedAction:
    """Result of parsing an action string.

    Attributes:
        kind: Query or Command
        entity: Entity candidate. The matched known name when one matched,
            otherwise the raw trailing word (not canonicalized)
        verb: Remaining action token with its first letter upper-cased
        raw: The original action string
    """
    kind: OperationKind
    entity: str
    verb: str
    raw: str = ""


def split_words(text: str) -> List[str]:
    """
    Split camelCase / PascalCase text into word tokens.

    Examples:
        >>> split_words("getAllBlogPosts")
        ['get', 'All', 'Blog', 'Posts']
        >>> split_words("GetByURLSlug")
        ['Get', 'By', 'URL', 'Slug']
    """
    return _WORD_PATTERN.findall(text or "")


def capitalize_first(text: str) -> str:
    """Upper-case the first character, leaving the rest untouched."""
    if not text:
        return text
    return text[0].upper() + text[1:]


def classify(action: str) -> OperationKind:
    """Classify an action: "get..." is a Query, anything else a Command."""
    if (action or "").lower().startswith("get"):
        return OperationKind.QUERY
    return OperationKind.COMMAND


class ActionParser:
    """Parses action strings against a set of known entity names."""

    def __init__(self, pluralizer: Optional[Pluralizer] = None):
        self.pluralizer = pluralizer or get_pluralizer()

    def classify(self, action: str) -> OperationKind:
        """See module-level classify()."""
        return classify(action)

    def parse(self, action: str, known_entities: Iterable[str] = ()) -> ParsedAction:
        """
        Parse an action into kind, entity candidate and verb.

        Args:
            action: Raw action string (e.g. "getAllAuthors")
            known_entities: Canonical entity names to match against

        Returns:
            ParsedAction; entity is "" when nothing could be extracted
        """
        action = (action or "").strip()
        kind = classify(action)
        verb, entity = self.split_entity(action, known_entities)
        return ParsedAction(kind=kind, entity=entity, verb=capitalize_first(verb), raw=action)

    def split_entity(self, text: str, known_entities: Iterable[str] = ()) -> Tuple[str, str]:
        """
        Split text into (verb, entity).

        Known names and their plurals are tried longest first; the match
        must leave a non-empty verb prefix. Without a match the last word
        token is taken as the entity.
        """
        match = self._match_known(text, known_entities)
        if match is not None:
            return match
        return self._split_by_words(text)

    def _match_known(self, text: str, known_entities: Iterable[str]) -> Optional[Tuple[str, str]]:
        # surface form (lower) -> known name it stands for
        candidates = {}
        for name in known_entities:
            if not name:
                continue
            candidates.setdefault(name.lower(), name)
            candidates.setdefault(self.pluralizer.pluralize(name).lower(), name)

        lower = text.lower()
        for candidate in sorted(candidates, key=len, reverse=True):
            if len(candidate) < len(lower) and lower.endswith(candidate):
                return text[:len(text) - len(candidate)], candidates[candidate]

        return None

    def _split_by_words(self, text: str) -> Tuple[str, str]:
        words = split_words(text)
        if len(words) < 2:
            logger.debug(f"Cannot split '{text}' into verb and entity")
            return text, ""

        entity = words[-1]
        cut = text.rfind(entity)
        return text[:cut], text[cut:]


# ============================================================================
# Singleton
# ============================================================================

_parser_instance: Optional[ActionParser] = None


def get_action_parser() -> ActionParser:
    """Get the process-wide action parser."""
    global _parser_instance

    if _parser_instance is None:
        _parser_instance = ActionParser()

    return _parser_instance
