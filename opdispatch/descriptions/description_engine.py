"""
Description Engine - Human-readable text for operations.

Resolution order for one operation:
1. Explicit description declared on the operation
2. Exact template keyed "{kind}.{verb}" (lower case)
3. GetBy<Field> verbs: field description, else the get_by_default template
4. First pattern rule for the kind that matches the verb, in configured order
5. Fallback template for the kind

An exact template may carry variants; the first that applies wins:
localized text for the requested language (default: the configured
default_language), the business-rule template when the entity is listed
under any business_context_rules entry, the conditional template, the
context template when dynamic context is enabled, then the plain template.

describe() is a pure function of its arguments and the configuration the
engine was built with.

Usage:
    engine = DescriptionEngine()
    engine.describe(OperationKind.QUERY, "Category", "GetAll")
    # "Gets all categories"

    engine.describe(OperationKind.QUERY, "Author", "GetByEmail")
    # "Gets an author by email address"

    engine.describe(OperationKind.COMMAND, "Author", "Create", language="es")
    # localized template when one is configured for "es"
"""

import logging
from typing import Any, Dict, List, Optional, Union

from ..config.models import DescriptionConfig, DescriptionTemplate, load_description_config
from ..core.action_parser import OperationKind
from ..core.pluralizer import Pluralizer
from ..registry.operation_registry import OperationMetadata, OperationRegistry
from .pattern_matcher import PatternMatcher
from .template_processor import TemplateProcessor

logger = logging.getLogger(__name__)

KindLike = Union[OperationKind, str]


class DescriptionEngine:
    """Generates operation descriptions from templates and pattern rules."""

    def __init__(self, config: Optional[DescriptionConfig] = None,
                 pluralizer: Optional[Pluralizer] = None):
        """
        Initialize engine.

        Args:
            config: Description configuration (default: packaged descriptions.yaml)
            pluralizer: Pluralizer for {entities}
        """
        self.config = config if config is not None else load_description_config()
        self.matcher = PatternMatcher()
        self.processor = TemplateProcessor(pluralizer)

    # ========================================================================
    # Single operations
    # ========================================================================

    def describe(self, kind: KindLike, entity: str, verb: str,
                 description: Optional[str] = None,
                 language: Optional[str] = None) -> str:
        """
        Description for (kind, entity, verb).

        Args:
            kind: Operation kind (enum or "Query"/"Command")
            entity: Canonical entity name
            verb: Verb such as "GetAll" or "Create"
            description: Explicit override, returned verbatim when non-empty
            language: Language for localized templates (default: the
                configured default_language)

        Returns:
            Description string
        """
        if description:
            return description

        kind_value = _kind_value(kind)
        template, field, use_plural = self._select(kind_value, entity, verb, language)
        values = self.processor.variables(kind_value, entity, verb, field, use_plural, self._context())
        return self.processor.render(template, values, self.business_flags(entity))

    def describe_short(self, kind: KindLike, entity: str, verb: str,
                       short_description: Optional[str] = None,
                       description: Optional[str] = None,
                       language: Optional[str] = None) -> str:
        """
        One-line summary: explicit short text, else the exact template's
        short form, else the full description.
        """
        if short_description:
            return short_description
        if description:
            return description

        kind_value = _kind_value(kind)
        exact = self.config.templates.get(f"{kind_value.lower()}.{verb.lower()}")
        if exact is not None and exact.short_template:
            values = self.processor.variables(kind_value, entity, verb, context=self._context())
            return self.processor.render(exact.short_template, values, self.business_flags(entity))

        return self.describe(kind, entity, verb, language=language)

    def describe_operation(self, metadata: OperationMetadata, language: Optional[str] = None) -> str:
        """Description for registry metadata (honours its explicit override)."""
        return self.describe(metadata.kind, metadata.entity, metadata.verb, metadata.description, language)

    def summarize(self, metadata: OperationMetadata, language: Optional[str] = None) -> Dict[str, Any]:
        """Discovery-surface view of one operation."""
        return {
            "name": metadata.name,
            "action": metadata.action,
            "kind": metadata.kind.value,
            "entity": metadata.entity,
            "verb": metadata.verb,
            "description": self.describe_operation(metadata, language),
            "short_description": self.describe_short(
                metadata.kind, metadata.entity, metadata.verb,
                metadata.short_description, metadata.description, language,
            ),
            "input_type": metadata.resolved_type_name,
            "output_type": metadata.output_type_name,
        }

    def business_flags(self, entity: str) -> Dict[str, bool]:
        """Business context rule name -> whether it lists the entity."""
        wanted = entity.lower()
        return {
            rule: any(name.lower() == wanted for name in entities)
            for rule, entities in self.config.business_context_rules.items()
        }

    # ========================================================================
    # Registry-wide views
    # ========================================================================

    def summarize_registry(self, registry: OperationRegistry,
                           kind: Optional[OperationKind] = None,
                           entity: Optional[str] = None,
                           language: Optional[str] = None) -> List[Dict[str, Any]]:
        """Summaries for every (filtered) registry operation."""
        return [self.summarize(op, language) for op in registry.list(kind=kind, entity=entity)]

    def summarize_by_entity(self, registry: OperationRegistry) -> Dict[str, List[Dict[str, Any]]]:
        """Summaries grouped by entity."""
        return {
            entity: [self.summarize(op) for op in operations]
            for entity, operations in registry.grouped_by_entity().items()
        }

    # ========================================================================
    # Internal Helpers
    # ========================================================================

    def _select(self, kind_value: str, entity: str, verb: str, language: Optional[str]):
        """(template, field, use_plural) following the resolution order."""
        kind_lower = kind_value.lower()

        exact = self.config.templates.get(f"{kind_lower}.{verb.lower()}")
        if exact is not None:
            return self._best_variant(exact, entity, language), "", False

        field = self.matcher.extract_field(verb)
        if field:
            configured = self.config.field_descriptions.get(field.lower())
            if configured is not None:
                if configured.custom_description:
                    return configured.custom_description, field, configured.use_plural
                if configured.template:
                    return configured.template, field, configured.use_plural
            return self.config.fallback_templates.get_by_default, field, False

        rules = self.config.query_patterns if kind_lower == "query" else self.config.command_patterns
        matched = self.matcher.first_match(verb, rules.items())
        if matched is not None:
            _, rule = matched
            return rule.template, "", rule.use_plural

        fallbacks = self.config.fallback_templates
        if kind_lower == "query":
            return fallbacks.default_query, "", False
        if kind_lower == "command":
            return fallbacks.default_command, "", False
        return fallbacks.default_operation, "", False

    def _best_variant(self, exact: DescriptionTemplate, entity: str, language: Optional[str]) -> str:
        language = (language or self.config.default_language).lower()
        if language not in self.config.supported_languages:
            logger.debug(f"Language '{language}' is not among the supported languages")

        localized = exact.localized.get(language)
        if localized:
            return localized
        if exact.business_rule_template and any(self.business_flags(entity).values()):
            return exact.business_rule_template
        if exact.conditional_template:
            return exact.conditional_template
        if self.config.enable_dynamic_context and exact.template_with_context:
            return exact.template_with_context
        return exact.template

    def _context(self) -> Dict[str, str]:
        if not self.config.enable_dynamic_context:
            return {}
        return dict(self.config.context_variables)


def _kind_value(kind: KindLike) -> str:
    return kind.value if isinstance(kind, OperationKind) else str(kind)
