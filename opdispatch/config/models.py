"""
Configuration models for description generation and entity discovery.

Description templates, pattern rules and field descriptions are plain data
loaded from YAML and validated with pydantic. The packaged defaults live in
descriptions.yaml next to this module; OPDISPATCH_DESCRIPTIONS points at a
replacement file.

Usage:
    config = load_description_config()                  # packaged defaults
    config = load_description_config("my_templates.yaml")
    options = load_discovery_options("discovery.yaml")
"""

import logging
import os
import re
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .settings import is_enabled

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTIONS_PATH = Path(__file__).with_name("descriptions.yaml")


class ConfigurationError(Exception):
    """Configuration file missing, unreadable or invalid."""
    pass


class MatchType(str, Enum):
    """How a pattern rule compares its pattern against a verb."""
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    EXACT = "exact"
    REGEX = "regex"


class PatternRule(BaseModel):
    """Verb pattern mapped to a description template."""
    pattern: str
    template: str
    match_type: MatchType = MatchType.CONTAINS
    use_plural: bool = False  # {entity} renders plural

    @field_validator('match_type', mode='before')
    def normalize_match_type(cls, v):
        """Accept StartsWith / starts-with / starts_with spellings."""
        if isinstance(v, str):
            squashed = re.sub(r'[\s_-]', '', v).lower()
            for member in MatchType:
                if member.value.replace('_', '') == squashed:
                    return member
        return v


class DescriptionTemplate(BaseModel):
    """
    Exact template keyed by "{kind}.{verb}" (lower case).

    Variant precedence: localized[language], business_rule_template (entity
    listed under a business context rule), conditional_template,
    template_with_context (dynamic context enabled), template.
    """
    template: str
    short_template: Optional[str] = None
    template_with_context: Optional[str] = None
    business_rule_template: Optional[str] = None
    conditional_template: Optional[str] = None
    localized: Dict[str, str] = Field(default_factory=dict)  # language -> template

    @field_validator('localized', mode='before')
    def lower_languages(cls, v):
        if isinstance(v, dict):
            return {str(k).lower(): item for k, item in v.items()}
        return v


class FieldDescription(BaseModel):
    """Template for GetBy<Field> queries."""
    template: str = ""
    use_plural: bool = False
    custom_description: Optional[str] = None  # used verbatim when set


class FallbackTemplates(BaseModel):
    """Last-resort templates."""
    default_query: str = "Executes {verb} query on {entity}"
    default_command: str = "Executes {verb} command on {entity}"
    default_operation: str = "Executes {verb} {kind} on {entity}"
    get_by_default: str = "Gets {a_entity} by {field}"


class DescriptionConfig(BaseModel):
    """Complete description-generation configuration."""
    enable_dynamic_context: bool = True
    default_language: str = "en"
    supported_languages: List[str] = Field(default_factory=lambda: ["en"])
    context_variables: Dict[str, str] = Field(default_factory=dict)
    # rule name (e.g. RequiresApproval) -> entities it applies to
    business_context_rules: Dict[str, List[str]] = Field(default_factory=dict)
    templates: Dict[str, DescriptionTemplate] = Field(default_factory=dict)
    field_descriptions: Dict[str, FieldDescription] = Field(default_factory=dict)
    query_patterns: Dict[str, PatternRule] = Field(default_factory=dict)
    command_patterns: Dict[str, PatternRule] = Field(default_factory=dict)
    fallback_templates: FallbackTemplates = Field(default_factory=FallbackTemplates)

    @field_validator('templates', 'field_descriptions', mode='before')
    def lower_keys(cls, v):
        """Keys are matched case-insensitively."""
        if isinstance(v, dict):
            return {str(k).lower(): (item if not isinstance(item, str) else {'template': item})
                    for k, item in v.items()}
        return v

    @field_validator('default_language', mode='after')
    def lower_default_language(cls, v):
        return v.lower()

    @field_validator('supported_languages', mode='after')
    def lower_supported_languages(cls, v):
        return [language.lower() for language in v]


class DiscoveryOptions(BaseModel):
    """Entity discovery settings; source toggles default to the feature flags."""
    fallback_entities: List[str] = Field(default_factory=list)
    irregular_plurals: Dict[str, str] = Field(default_factory=dict)
    model_discovery: bool = Field(default_factory=lambda: is_enabled('model_discovery'))
    operation_discovery: bool = Field(default_factory=lambda: is_enabled('operation_discovery'))
    context_discovery: bool = Field(default_factory=lambda: is_enabled('context_discovery'))
    background: bool = Field(default_factory=lambda: is_enabled('background_discovery'))


# ============================================================================
# Loading
# ============================================================================

def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level")
    return data


def load_description_config(path: Optional[Union[str, Path]] = None) -> DescriptionConfig:
    """
    Load description configuration.

    Args:
        path: YAML file; defaults to $OPDISPATCH_DESCRIPTIONS or the packaged
            descriptions.yaml

    Raises:
        ConfigurationError: If the file is missing or invalid
    """
    path = Path(path or os.getenv('OPDISPATCH_DESCRIPTIONS') or DEFAULT_DESCRIPTIONS_PATH)
    data = _load_yaml(path)

    try:
        config = DescriptionConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid description configuration in {path}: {e}")

    logger.debug(
        f"Loaded description config from {path}: {len(config.templates)} templates, "
        f"{len(config.query_patterns) + len(config.command_patterns)} pattern rules"
    )
    return config


def load_discovery_options(path: Union[str, Path]) -> DiscoveryOptions:
    """
    Load discovery options from YAML.

    Raises:
        ConfigurationError: If the file is missing or invalid
    """
    path = Path(path)
    data = _load_yaml(path)

    try:
        return DiscoveryOptions.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid discovery options in {path}: {e}")
