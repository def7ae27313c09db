"""Tests for the module template discovery helpers."""

import pytest

from scripts.utils import find_module_templates, is_test_path, normalize_targets


def touch(path):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("", encoding="utf-8")
    return path


class TestFindModuleTemplates:
    """Tests for find_module_templates function."""

    def test_prefers_bicep_over_json(self, temp_dir):
        """Test that main.bicep wins over its compiled main.json."""
        bicep = touch(temp_dir / "avm" / "res" / "storage" / "storage-account" / "main.bicep")
        touch(bicep.parent / "main.json")
        json_only = touch(temp_dir / "avm" / "res" / "key-vault" / "vault" / "main.json")

        assert find_module_templates([temp_dir]) == sorted([bicep, json_only])

    def test_skips_test_folders(self, temp_dir):
        """Test that example deployments are not treated as modules."""
        module = touch(temp_dir / "avm" / "res" / "storage" / "storage-account" / "main.bicep")
        touch(module.parent / "tests" / "e2e" / "defaults" / "main.bicep")

        assert find_module_templates([temp_dir]) == [module]

    def test_file_target(self, temp_dir):
        """Test that a template file target is returned as is."""
        template = touch(temp_dir / "custom.bicep")

        assert find_module_templates([template]) == [template]


class TestNormalizeTargets:
    """Tests for normalize_targets function."""

    def test_absolute_path(self, temp_dir):
        """Test an absolute path is kept as is."""
        assert normalize_targets([str(temp_dir)]) == [temp_dir.resolve()]

    def test_nonexistent_path(self):
        """Test a missing path is rejected."""
        with pytest.raises(FileNotFoundError, match="does not exist"):
            normalize_targets(["/nonexistent/avm/module"])


def test_is_test_path(temp_dir):
    """Test that only files below a test folder count as test paths."""
    assert is_test_path(temp_dir / "mod" / "tests" / "e2e" / "main.test.bicep", temp_dir)
    assert is_test_path(temp_dir / "mod" / ".test" / "main.bicep", temp_dir)
    assert not is_test_path(temp_dir / "mod" / "main.bicep", temp_dir)
    assert not is_test_path(temp_dir / "tests", temp_dir)
