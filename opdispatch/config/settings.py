"""
Feature flags for entity discovery sources.

Each discovery source can be switched off without code changes. Flags are
read from the environment once at import; tests flip them with set_flag().

Usage:
    from opdispatch.config.settings import is_enabled

    if is_enabled('context_discovery'):
        catalog.add_source("context", context_source(BlogContext), DiscoverySource.CONTEXT)

Environment Variables:
    OPDISPATCH_MODEL_DISCOVERY=true/false       - Entity-like model classes
    OPDISPATCH_OPERATION_DISCOVERY=true/false   - Names inside operation identifiers
    OPDISPATCH_CONTEXT_DISCOVERY=true/false     - EntitySet collections on data contexts
    OPDISPATCH_BACKGROUND_DISCOVERY=true/false  - Rediscover in a background thread on unknown entities
    OPDISPATCH_DESCRIPTIONS=<path>              - Description config YAML (see models.py)
"""

import os
from typing import Dict


def _env_flag(name: str, default: str = 'true') -> bool:
    return os.getenv(name, default).lower() == 'true'


FEATURE_FLAGS: Dict[str, bool] = {
    'model_discovery': _env_flag('OPDISPATCH_MODEL_DISCOVERY'),
    'operation_discovery': _env_flag('OPDISPATCH_OPERATION_DISCOVERY'),
    'context_discovery': _env_flag('OPDISPATCH_CONTEXT_DISCOVERY'),
    'background_discovery': _env_flag('OPDISPATCH_BACKGROUND_DISCOVERY'),
}


def _check(flag: str) -> None:
    if flag not in FEATURE_FLAGS:
        available = ', '.join(FEATURE_FLAGS.keys())
        raise KeyError(
            f"Unknown feature flag: '{flag}'. "
            f"Available flags: {available}"
        )


def is_enabled(flag: str) -> bool:
    """
    Check if a feature flag is enabled.

    Args:
        flag: Feature flag name (e.g., 'model_discovery')

    Returns:
        True if flag is enabled, False otherwise

    Raises:
        KeyError: If flag name is not recognized
    """
    _check(flag)
    return FEATURE_FLAGS[flag]


def get_all_flags() -> Dict[str, bool]:
    """Get all feature flags and their current state."""
    return FEATURE_FLAGS.copy()


def set_flag(flag: str, enabled: bool) -> None:
    """
    Programmatically set a feature flag (for testing only).

    Raises:
        KeyError: If flag name is not recognized
    """
    _check(flag)
    FEATURE_FLAGS[flag] = enabled
