"""Tests for CORS configuration and security."""

import pytest

from src.config.cors_config import (
    DEFAULT_DEV_ORIGINS,
    CORSConfiguration,
    CORSConfigurationError,
    compile_regex_pattern,
    normalize_origin,
    parse_comma_separated_list,
)


class TestOriginNormalization:
    """Test origin URL normalization."""

    def test_normalize_removes_trailing_slash(self):
        assert normalize_origin("https://example.com/") == "https://example.com"
        assert normalize_origin("https://example.com//") == "https://example.com"

    def test_normalize_strips_whitespace(self):
        assert normalize_origin("  https://example.com  ") == "https://example.com"

    def test_normalize_preserves_valid_origins(self):
        assert normalize_origin("https://example.com") == "https://example.com"
        assert normalize_origin("http://localhost:3000") == "http://localhost:3000"

    def test_normalize_rejects_empty_origin(self):
        with pytest.raises(CORSConfigurationError, match="Origin cannot be empty"):
            normalize_origin("")

        with pytest.raises(CORSConfigurationError, match="Origin cannot be empty"):
            normalize_origin("   ")

    def test_normalize_rejects_wildcard(self):
        """Wildcards cannot be combined with the refresh cookie."""
        with pytest.raises(CORSConfigurationError, match="Wildcard"):
            normalize_origin("*")

    def test_normalize_rejects_invalid_urls(self):
        with pytest.raises(CORSConfigurationError):
            normalize_origin("not-a-url")

        with pytest.raises(CORSConfigurationError):
            normalize_origin("example.com")  # Missing scheme


class TestParseCommaSeparatedList:
    """Test parsing of comma-separated lists."""

    def test_parse_string_with_multiple_items(self):
        result = parse_comma_separated_list("https://example.com,https://test.com")
        assert result == ["https://example.com", "https://test.com"]

    def test_parse_string_with_whitespace(self):
        result = parse_comma_separated_list(" https://example.com , https://test.com ")
        assert result == ["https://example.com", "https://test.com"]

    def test_parse_list_trims_items(self):
        result = parse_comma_separated_list(["https://example.com", " https://test.com ", " "])
        assert result == ["https://example.com", "https://test.com"]

    def test_parse_none_returns_empty_list(self):
        assert parse_comma_separated_list(None) == []

    def test_parse_invalid_type_raises_error(self):
        with pytest.raises(CORSConfigurationError):
            parse_comma_separated_list(123)


class TestRegexCompilation:
    def test_pattern_is_anchored(self):
        pattern = compile_regex_pattern(r"https://.*\.example\.com")
        assert pattern.pattern.startswith("^")
        assert pattern.match("https://app.example.com")
        assert not pattern.match("evil-https://app.example.com")

    def test_invalid_pattern(self):
        with pytest.raises(CORSConfigurationError, match="Invalid regex pattern"):
            compile_regex_pattern("https://[")


class TestCORSConfiguration:
    def test_development_defaults_to_local_frontends(self):
        config = CORSConfiguration.for_environment("development")
        assert config.allow_origins == DEFAULT_DEV_ORIGINS

    def test_explicit_origins_are_normalized(self):
        config = CORSConfiguration.for_environment("staging", allow_origins="https://a.example.com/, https://b.com")
        assert config.allow_origins == ["https://a.example.com", "https://b.com"]

    def test_production_requires_origins(self):
        with pytest.raises(CORSConfigurationError, match="requires explicit allowed origins"):
            CORSConfiguration.for_environment("production")

    def test_regex_alone_is_enough(self):
        config = CORSConfiguration.for_environment("production", allow_origin_regex=r"https://.*\.example\.com")
        assert config.allow_origins == []
        assert config.origin_regex is not None

    def test_production_raises_max_age_floor(self):
        config = CORSConfiguration.for_environment("production", allow_origins="https://example.com", max_age=60)
        assert config.max_age == 3600

    def test_wildcard_in_list_is_rejected(self):
        with pytest.raises(CORSConfigurationError):
            CORSConfiguration.for_environment("production", allow_origins="https://example.com,*")

    def test_middleware_config_enables_credentials(self):
        config = CORSConfiguration(allow_origins=["https://example.com"], environment="production")
        middleware = config.get_middleware_config()

        assert middleware["allow_credentials"] is True
        assert middleware["allow_origins"] == ["https://example.com"]
        assert middleware["allow_origin_regex"] is None
        assert "x-access-token" in middleware["expose_headers"]
