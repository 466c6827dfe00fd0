"""
Placeholder substitution for description templates.

Handles {name} placeholders:
- Entity forms: {entity}, {entities}, {a_entity}
- Operation parts: {verb} (alias {action}), {verb_rest}, {kind} (alias
  {operationType}), {field}
- Context variables from configuration: {ApplicationName}, ...

Conditional blocks {?condition? when_true : when_false} are resolved before
placeholders. Conditions compare operands with ==, !=, >=, <=, > and <, and
combine them with && and || (|| binds loosest). Operands are variable
names, quoted strings, integers or true/false.

Unknown placeholders are left in place.
"""

import logging
import re
from typing import Any, Dict, Mapping, Optional

from ..core.action_parser import split_words
from ..core.pluralizer import Pluralizer, get_pluralizer

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r'\{(\w+)\}')
_CONDITIONAL = re.compile(r'\{\?([^?]+)\?\s*([^:]+?)\s*:\s*([^}]+?)\s*\}')
_COMPARISON = re.compile(r'^(.+?)\s*(==|!=|>=|<=|>|<)\s*(.+)$')


def humanize(name: str) -> str:
    """Lower-case, space-separated words: "BlogPost" -> "blog post"."""
    words = split_words(name)
    if not words:
        return name.lower()
    return " ".join(word.lower() for word in words)


def with_article(phrase: str) -> str:
    """Prefix "a" or "an" by the first letter's sound (vowel letters only)."""
    if not phrase:
        return phrase
    article = "an" if phrase[0].lower() in "aeiou" else "a"
    return f"{article} {phrase}"


class TemplateProcessor:
    """Builds placeholder values and substitutes them into templates."""

    def __init__(self, pluralizer: Optional[Pluralizer] = None):
        self.pluralizer = pluralizer or get_pluralizer()

    def variables(self, kind: str, entity: str, verb: str, field: str = "",
                  use_plural: bool = False,
                  context: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """
        Placeholder values for one operation.

        Args:
            kind: "Query" or "Command"
            entity: Canonical entity name
            verb: Verb as resolved (e.g. "GetAll")
            field: GetBy field name, if any
            use_plural: Render {entity} in plural form
            context: Extra variables; never override the built-in ones
        """
        singular = humanize(entity)
        plural = self.pluralize_phrase(singular)
        entity_value = plural if use_plural else singular

        values = dict(context or {})
        values.update({
            "entity": entity_value,
            "entities": plural,
            "a_entity": with_article(entity_value) if not use_plural else plural,
            "entityType": singular,
            "verb": verb,
            "action": verb,
            "verb_rest": humanize(verb[3:]) if verb.lower().startswith("get") else humanize(verb),
            "kind": kind.lower(),
            "operationType": kind.lower(),
        })
        if field:
            values["field"] = humanize(field)
            values["fieldName"] = field.lower()
        return values

    def pluralize_phrase(self, phrase: str) -> str:
        """Pluralize the last word of a phrase ("blog post" -> "blog posts")."""
        if not phrase:
            return phrase
        head, _, last = phrase.rpartition(" ")
        plural = self.pluralizer.pluralize(last)
        return f"{head} {plural}" if head else plural

    def render(self, template: str, values: Mapping[str, Any],
               conditions: Optional[Mapping[str, Any]] = None) -> str:
        """
        Resolve conditional blocks, then substitute placeholders.

        Args:
            template: Template text
            values: Placeholder values
            conditions: Extra condition operands (e.g. business rule flags);
                placeholder values are visible to conditions as well
        """
        operands: Dict[str, Any] = dict(values)
        operands.update(conditions or {})
        return self.substitute(self.resolve_conditionals(template, operands), values).strip()

    @staticmethod
    def resolve_conditionals(template: str, operands: Mapping[str, Any]) -> str:
        """Replace each {?cond? a : b} block with the chosen branch."""
        def replacer(match):
            condition, when_true, when_false = (part.strip() for part in match.groups())
            chosen = when_true if evaluate_condition(condition, operands) else when_false
            return chosen.strip("'\"")

        return _CONDITIONAL.sub(replacer, template)

    @staticmethod
    def substitute(template: str, values: Mapping[str, Any]) -> str:
        """Replace {name} placeholders; unknown names stay as written."""
        def replacer(match):
            name = match.group(1)
            if name in values:
                return str(values[name])
            logger.debug(f"No value for placeholder '{name}'")
            return match.group(0)

        return _PLACEHOLDER.sub(replacer, template)


# ============================================================================
# Conditions
# ============================================================================

def evaluate_condition(expression: str, operands: Mapping[str, Any]) -> bool:
    """
    Evaluate a template condition.

    Malformed comparisons (e.g. ordering non-numbers) evaluate to False.

    Args:
        expression: Condition text such as "kind == 'query' && RequiresApproval"
        operands: Variable name -> value

    Returns:
        Truth value of the condition
    """
    if "||" in expression:
        return any(evaluate_condition(part, operands) for part in expression.split("||"))
    if "&&" in expression:
        return all(evaluate_condition(part, operands) for part in expression.split("&&"))

    expression = expression.strip()
    negate = expression.startswith("!") and not expression.startswith("!=")
    if negate:
        return not evaluate_condition(expression[1:], operands)

    comparison = _COMPARISON.match(expression)
    if comparison is None:
        return _truthy(_operand(expression, operands))

    left, operator, right = comparison.groups()
    left_value = _operand(left, operands)
    right_value = _operand(right, operands)

    if operator == "==":
        return _text(left_value) == _text(right_value)
    if operator == "!=":
        return _text(left_value) != _text(right_value)

    try:
        left_number, right_number = int(_text(left_value)), int(_text(right_value))
    except ValueError:
        logger.debug(f"Non-numeric operands in condition '{expression}'")
        return False

    if operator == ">=":
        return left_number >= right_number
    if operator == "<=":
        return left_number <= right_number
    if operator == ">":
        return left_number > right_number
    return left_number < right_number


def _operand(token: str, operands: Mapping[str, Any]) -> Any:
    token = token.strip()
    if len(token) >= 2 and token[0] == token[-1] and token[0] in "'\"":
        return token[1:-1]
    if token in operands:
        return operands[token]
    lowered = token.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    return token


def _text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _truthy(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    return str(value).strip().lower() == "true"
