"""Tests for writer.py module."""

import httpx
import pytest

from ..constants import DATA_COLLECTION_NOTICE
from ..errors import ReadmeValidationError
from ..links import DocumentationLinkResolver
from ..section_merge import section_headings
from ..writer import ReadmeWriter, generate
from .conftest import EXPORTED_FUNCTIONS, create_module_dir, make_parameter, make_template

CANONICAL_HEADINGS = [
    "Navigation",
    "Resource Types",
    "Usage examples",
    "Parameters",
    "Outputs",
    "Cross-referenced modules",
    "Data Collection",
]


@pytest.fixture
def writer(template_file, offline_config, fake_compiler):
    with ReadmeWriter(template_file, config=offline_config, compiler=fake_compiler) as readme_writer:
        yield readme_writer


def writer_for(template_file, offline_config, fake_compiler, **kwargs):
    return ReadmeWriter(template_file, config=offline_config, compiler=fake_compiler, **kwargs)


class TestReadmeWriterBuild:
    """Tests for ReadmeWriter.build."""

    def test_new_readme(self, writer):
        """Test building a README from scratch."""
        content = writer.build()
        lines = content.split("\n")

        assert lines[0] == "# Storage Accounts `[res/storage/storage-account]`"
        assert section_headings(lines) == CANONICAL_HEADINGS
        assert content.endswith(DATA_COLLECTION_NOTICE + "\n")
        assert not content.endswith("\n\n")
        assert "- [Usage examples](#usage-examples)" in lines
        assert "### Parameter: `lock.kind`" in lines
        assert "### Example 2: _Using large parameter set_" in lines

    def test_idempotent(self, writer):
        """Test that regenerating an up-to-date README changes nothing."""
        first = writer.build()
        writer.write(first)

        assert writer.build() == first

    def test_notes_are_preserved(self, writer):
        """Test that hand-written sections survive regeneration."""
        writer.readme_file.write_text(
            "# Old title\n\nOld description.\n\n## Parameters\n\nStale.\n\n## Notes\n\nHand-written *notes*.\n",
            encoding="utf-8",
        )

        lines = writer.build().split("\n")

        assert "Old description." not in lines
        assert "Stale." not in lines
        assert section_headings(lines) == CANONICAL_HEADINGS[:-1] + ["Notes", "Data Collection"]
        notes_index = lines.index("## Notes")
        assert lines[notes_index + 2] == "Hand-written *notes*."
        assert "- [Notes](#notes)" in lines

    def test_crlf_notes_are_preserved(self, writer):
        """Test that a CRLF README keeps its line endings and its Notes byte for byte."""
        notes = "## Notes\r\n\r\nHand written\x0c notes.\r\n\r\n"
        writer.readme_file.write_bytes(("# T\r\n\r\n## Outputs\r\n\r\nold\r\n\r\n" + notes).encode("utf-8"))

        content = writer.build()

        assert notes in content
        assert "\n" not in content.replace("\r\n", "")
        assert "old" not in content.split("\r\n")

    def test_hand_written_tail_is_preserved(self, temp_dir, offline_config, fake_compiler):
        """Test that trailing lines of a final hand-written section are kept."""
        module_dir = create_module_dir(temp_dir, make_template({"name": make_parameter("Required. Name.")}))
        readme = module_dir / "README.md"

        with writer_for(module_dir / "main.json", offline_config, fake_compiler) as readme_writer:
            readme.write_text("# T\n\n## Notes\n\nKeep me.\n\n\n", encoding="utf-8")
            assert readme_writer.build().endswith("## Notes\n\nKeep me.\n\n\n")

            readme.write_text("# T\n\n## Notes\n\nKeep me.", encoding="utf-8")
            assert readme_writer.build().endswith("## Notes\n\nKeep me.")

    def test_heading_in_description_is_idempotent(self, temp_dir, offline_config, fake_compiler):
        """Test that a description line starting with '#' does not split the Parameters section."""
        template = make_template({"name": make_parameter("Required. Name.\n# Caution\nMust be unique.")})
        module_dir = create_module_dir(temp_dir, template)

        with writer_for(module_dir / "main.json", offline_config, fake_compiler) as readme_writer:
            first = readme_writer.build()
            readme_writer.write(first)
            second = readme_writer.build()

        assert first == second
        assert "\\# Caution" in first.split("\n")
        assert "Caution" not in section_headings(first.split("\n"), level=1)
        assert first.count("Must be unique.") == 1

    def test_section_subset(self, writer):
        """Test that only the requested sections are regenerated."""
        original = "# Old title\n\n## Parameters\n\nStale.\n\n## Notes\n\nKeep me.\n"
        writer.readme_file.write_text(original, encoding="utf-8")

        lines = writer.build(sections=["Outputs"]).split("\n")

        assert lines[0] == "# Old title"
        assert "Stale." in lines
        assert "Keep me." in lines
        assert "| `resourceId` | string | The resource ID of the deployed storage account. |" in lines
        assert lines.index("## Parameters") < lines.index("## Outputs") < lines.index("## Notes")

    def test_unknown_section(self, writer):
        """Test that unknown section names are rejected."""
        with pytest.raises(ValueError, match="Unknown section"):
            writer.build(sections=["Parameters", "Examples"])

    def test_categories_validated_for_any_subset(self, temp_dir, offline_config, fake_compiler):
        """Test that parameter categories are validated whatever sections are requested."""
        template = make_template({"broken": make_parameter("No category")})
        module_dir = create_module_dir(temp_dir, template)

        with writer_for(module_dir / "main.json", offline_config, fake_compiler) as readme_writer:
            with pytest.raises(ReadmeValidationError, match="broken"):
                readme_writer.build(sections=["Outputs"])

    def test_data_collection_removed_without_telemetry(self, temp_dir, offline_config, fake_compiler):
        """Test that the notice is removed from modules without telemetry."""
        module_dir = create_module_dir(temp_dir, make_template({"name": make_parameter("Required. Name.")}))
        (module_dir / "README.md").write_text("# T\n\n## Data Collection\n\nOld notice.\n", encoding="utf-8")

        with writer_for(module_dir / "main.json", offline_config, fake_compiler) as readme_writer:
            lines = readme_writer.build().split("\n")

        assert "Data Collection" not in section_headings(lines)
        assert "Old notice." not in lines

    def test_data_collection_untouched_when_fetch_fails(self, template_file, fake_compiler):
        """Test that a failed notice fetch keeps the existing section."""
        template_file.parent.joinpath("README.md").write_text(
            "# T\n\n## Data Collection\n\nPreviously fetched notice.\n", encoding="utf-8"
        )
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(500)))

        with DocumentationLinkResolver(client=client, max_retries=0, retry_backoff=0) as resolver:
            with ReadmeWriter(template_file, compiler=fake_compiler, link_resolver=resolver) as readme_writer:
                lines = readme_writer.build().split("\n")

        assert lines[-2] == "Previously fetched notice."
        assert "| `Microsoft.Storage/storageAccounts` | 2023-05-01 |" in lines

    def test_functions_section_when_exported(self, temp_dir, offline_config, fake_compiler):
        """Test that exported functions get their own section."""
        module_dir = create_module_dir(temp_dir, make_template(functions=EXPORTED_FUNCTIONS))

        with writer_for(module_dir / "main.json", offline_config, fake_compiler) as readme_writer:
            lines = readme_writer.build().split("\n")

        headings = section_headings(lines)
        assert headings.index("Parameters") < headings.index("Functions") < headings.index("Outputs")
        assert "- [Functions](#functions)" in lines

    def test_functions_section_removed(self, writer):
        """Test the Functions section is removed when nothing is exported."""
        writer.readme_file.write_text("# T\n\n## Functions\n\nOld.\n", encoding="utf-8")

        assert "Functions" not in section_headings(writer.build().split("\n"))


class TestReadmeWriterGenerate:
    """Tests for check and fix modes."""

    def test_check_mode_does_not_write(self, writer):
        """Test check mode with no README on disk."""
        assert writer.generate(fix=False) is True
        assert not writer.readme_file.exists()

    def test_fix_mode_writes(self, writer):
        """Test that fix mode writes the README."""
        assert writer.generate(fix=True) is True
        assert writer.readme_file.exists()
        assert writer.generate(fix=False) is False

    def test_out_of_sync_is_logged(self, writer, caplog):
        """Test that check mode reports an outdated README."""
        writer.readme_file.write_text("# Outdated\n", encoding="utf-8")

        assert writer.generate(fix=False) is True
        assert "Out of sync" in caplog.text
        assert writer.readme_file.read_text(encoding="utf-8") == "# Outdated\n"

    def test_custom_readme_path(self, template_file, temp_dir, offline_config, fake_compiler):
        """Test writing the README to a custom path."""
        readme = temp_dir / "docs" / "storage.md"

        with writer_for(template_file, offline_config, fake_compiler, readme_file=readme) as readme_writer:
            readme_writer.generate(fix=True)

        assert readme.exists()
        assert not (template_file.parent / "README.md").exists()


def test_generate_function(template_file, offline_config, fake_compiler):
    """Test the module-level generate function."""
    content = generate(template_file, config=offline_config, compiler=fake_compiler)

    assert (template_file.parent / "README.md").read_text(encoding="utf-8") == content
