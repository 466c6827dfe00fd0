"""Pattern-rule matching and GetBy<Field> extraction for description generation."""

import logging
import re
from typing import Iterable, Optional, Tuple

from ..config.models import MatchType, PatternRule

logger = logging.getLogger(__name__)

GET_BY_PREFIX = "getby"


class PatternMatcher:
    """Matches verbs against configured pattern rules (case-insensitive)."""

    def is_match(self, verb: str, rule: PatternRule) -> bool:
        """
        Check one rule against a verb.

        An invalid regex never matches and is logged.
        """
        verb_lower = verb.lower()
        pattern_lower = rule.pattern.lower()

        if rule.match_type == MatchType.CONTAINS:
            return pattern_lower in verb_lower
        if rule.match_type == MatchType.STARTS_WITH:
            return verb_lower.startswith(pattern_lower)
        if rule.match_type == MatchType.ENDS_WITH:
            return verb_lower.endswith(pattern_lower)
        if rule.match_type == MatchType.EXACT:
            return verb_lower == pattern_lower
        if rule.match_type == MatchType.REGEX:
            try:
                return re.search(rule.pattern, verb, re.IGNORECASE) is not None
            except re.error as e:
                logger.warning(f"Invalid regex pattern '{rule.pattern}': {e}")
                return False
        return False

    def first_match(self, verb: str, rules: Iterable[Tuple[str, PatternRule]]) -> Optional[Tuple[str, PatternRule]]:
        """First (name, rule) in configured order that matches the verb."""
        for name, rule in rules:
            if self.is_match(verb, rule):
                return name, rule
        return None

    @staticmethod
    def extract_field(verb: str) -> str:
        """Field part of a GetBy<Field> verb, "" when the verb has another shape."""
        if not verb.lower().startswith(GET_BY_PREFIX) or len(verb) <= len(GET_BY_PREFIX):
            return ""
        return verb[len(GET_BY_PREFIX):]
