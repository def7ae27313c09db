"""Tests for config.py module."""

import pytest

from ..config import ReadmeConfig, load_config
from ..constants import DEFAULT_PINNED_FIRST, DEFAULT_REGISTRY_PREFIX


class TestLoadConfig:
    """Tests for load_config function."""

    def test_defaults(self):
        """Test that no file yields the default configuration."""
        config = load_config()

        assert config == ReadmeConfig()
        assert config.registry_prefix == DEFAULT_REGISTRY_PREFIX
        assert config.check_links is True
        assert config.pinned_examples_first == DEFAULT_PINNED_FIRST

    def test_overrides(self, temp_dir):
        """Test that file values override the defaults."""
        path = temp_dir / "readme.yaml"
        path.write_text(
            "registry_prefix: 'br:contoso.azurecr.io/bicep/'\n"
            "check_links: false\n"
            "pinned_examples_last:\n"
            "  - waf-aligned\n"
            "  - max\n",
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.registry_prefix == "br:contoso.azurecr.io/bicep/"
        assert config.check_links is False
        assert config.pinned_examples_last == ["waf-aligned", "max"]
        assert config.link_retries == ReadmeConfig().link_retries

    def test_empty_file(self, temp_dir):
        """Test that an empty file yields the defaults."""
        path = temp_dir / "readme.yaml"
        path.write_text("", encoding="utf-8")

        assert load_config(path) == ReadmeConfig()

    def test_unknown_keys(self, temp_dir):
        """Test that unknown keys are rejected."""
        path = temp_dir / "readme.yaml"
        path.write_text("registry: x\nlinks: y\n", encoding="utf-8")

        with pytest.raises(ValueError, match="Unknown configuration keys .*: links, registry"):
            load_config(path)

    def test_not_a_mapping(self, temp_dir):
        """Test that a YAML list is rejected."""
        path = temp_dir / "readme.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ValueError, match="must be a YAML mapping"):
            load_config(path)

    def test_invalid_pinned_examples(self, temp_dir):
        """Test that pinned examples must be a list of strings."""
        path = temp_dir / "readme.yaml"
        path.write_text("pinned_examples_first: defaults\n", encoding="utf-8")

        with pytest.raises(ValueError, match="'pinned_examples_first' must be a list of strings"):
            load_config(path)

    def test_defaults_are_not_shared(self):
        """Test that list defaults are independent between instances."""
        first = ReadmeConfig()
        first.pinned_examples_first.append("max")

        assert ReadmeConfig().pinned_examples_first == DEFAULT_PINNED_FIRST
