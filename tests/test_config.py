"""Tests for configuration loading and feature flags."""

import pytest

from opdispatch.config import settings
from opdispatch.config.models import (
    DEFAULT_DESCRIPTIONS_PATH,
    ConfigurationError,
    DescriptionConfig,
    DiscoveryOptions,
    MatchType,
    PatternRule,
    load_description_config,
    load_discovery_options,
)


# ============================================================================
# Description Configuration
# ============================================================================

class TestDescriptionConfig:
    """load_description_config() and the config models."""

    def test_packaged_defaults(self):
        config = load_description_config()

        assert config.templates["query.getall"].short_template == "List {entities}"
        assert config.field_descriptions["category"].use_plural
        assert list(config.command_patterns)[-2:] == ["unlock", "lock"]
        assert config.query_patterns["get_plural"].match_type == MatchType.REGEX
        assert DEFAULT_DESCRIPTIONS_PATH.name == "descriptions.yaml"
        assert config.default_language == "en"
        assert config.templates["command.create"].localized["es"] == "Crea un {entity} nuevo"
        assert config.business_context_rules["RequiresApproval"] == ["Comment"]

    def test_load_from_path(self, tmp_path):
        path = tmp_path / "descriptions.yaml"
        path.write_text(
            "templates:\n"
            "  Query.GetAll: \"Every {entity}\"\n"
            "query_patterns:\n"
            "  recent:\n"
            "    pattern: recent\n"
            "    template: \"Recent {entities}\"\n"
            "    match_type: StartsWith\n"
        )

        config = load_description_config(path)

        assert config.templates["query.getall"].template == "Every {entity}"
        assert config.query_patterns["recent"].match_type == MatchType.STARTS_WITH

    def test_load_from_environment(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("enable_dynamic_context: false\n")
        monkeypatch.setenv("OPDISPATCH_DESCRIPTIONS", str(path))

        assert load_description_config().enable_dynamic_context is False

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_description_config(path) == DescriptionConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_description_config(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("templates: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_description_config(path)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_description_config(path)

    def test_invalid_match_type(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text(
            "command_patterns:\n"
            "  x:\n"
            "    pattern: x\n"
            "    template: y\n"
            "    match_type: fuzzy\n"
        )

        with pytest.raises(ConfigurationError, match="Invalid description configuration"):
            load_description_config(path)

    @pytest.mark.parametrize("spelling", ["starts_with", "StartsWith", "starts-with", "STARTS WITH"])
    def test_match_type_spellings(self, spelling):
        rule = PatternRule(pattern="get", template="t", match_type=spelling)
        assert rule.match_type == MatchType.STARTS_WITH


# ============================================================================
# Discovery Options
# ============================================================================

class TestDiscoveryOptions:
    """DiscoveryOptions defaults and loading."""

    def test_defaults_follow_flags(self, monkeypatch):
        monkeypatch.setitem(settings.FEATURE_FLAGS, "model_discovery", False)
        monkeypatch.setitem(settings.FEATURE_FLAGS, "background_discovery", True)

        options = DiscoveryOptions()

        assert options.model_discovery is False
        assert options.background is True
        assert options.fallback_entities == []

    def test_load_discovery_options(self, tmp_path):
        path = tmp_path / "discovery.yaml"
        path.write_text(
            "fallback_entities: [Product, Order]\n"
            "irregular_plurals:\n"
            "  cactus: cacti\n"
            "context_discovery: false\n"
        )

        options = load_discovery_options(path)

        assert options.fallback_entities == ["Product", "Order"]
        assert options.irregular_plurals == {"cactus": "cacti"}
        assert options.context_discovery is False

    def test_invalid_discovery_options(self, tmp_path):
        path = tmp_path / "discovery.yaml"
        path.write_text("fallback_entities: 12\n")

        with pytest.raises(ConfigurationError):
            load_discovery_options(path)


# ============================================================================
# Feature Flags
# ============================================================================

class TestFeatureFlags:
    """settings.is_enabled() / set_flag() / get_all_flags()."""

    def test_known_flags(self):
        assert set(settings.get_all_flags()) == {
            "model_discovery", "operation_discovery", "context_discovery", "background_discovery",
        }

    def test_unknown_flag(self):
        with pytest.raises(KeyError, match="Unknown feature flag"):
            settings.is_enabled("telemetry")
        with pytest.raises(KeyError):
            settings.set_flag("telemetry", True)

    def test_set_flag(self, monkeypatch):
        monkeypatch.setattr(settings, "FEATURE_FLAGS", dict(settings.FEATURE_FLAGS))

        settings.set_flag("context_discovery", False)

        assert settings.is_enabled("context_discovery") is False

    def test_get_all_flags_is_a_copy(self):
        flags = settings.get_all_flags()
        flags["model_discovery"] = "changed"

        assert settings.FEATURE_FLAGS["model_discovery"] != "changed"
