"""Unit tests for the clean command.

Runs real cleanup cycles over a temporary folder.
"""

import json
import os
import time
from pathlib import Path

import pytest
from expirefs.cli.main import app
from typer.testing import CliRunner

runner = CliRunner()

DAY = 86400


@pytest.fixture
def watch_dir(tmp_path: Path) -> Path:
    """Folder with one 10-day-old log, one fresh log and one old text file."""
    watch = tmp_path / "watch"
    (watch / "logs").mkdir(parents=True)
    past = time.time() - 10 * DAY
    for name in ("logs/old.log", "notes.txt"):
        path = watch / name
        path.write_text("x" * 100)
        os.utime(path, (past, past))
    (watch / "logs" / "new.log").write_text("fresh")
    return watch


def _clean(*args: str) -> object:
    return runner.invoke(app, ["clean", "--time-type", "mtime", *args])


class TestCleanCommand:
    """Tests for expirefs clean."""

    def test_deletes_expired_files(self, watch_dir: Path) -> None:
        """Expired files matching the filter are deleted."""
        result = _clean(
            "--folder", str(watch_dir), "--expire", "1d", "--filter", r"\.log$", "--format", "json"
        )

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [d["path"] for d in data] == [str(watch_dir / "logs" / "old.log")]
        assert data[0]["dry_run"] is False
        assert data[0]["size_bytes"] == 100
        assert not (watch_dir / "logs" / "old.log").exists()
        assert (watch_dir / "notes.txt").exists()

    def test_dry_run_keeps_files(self, watch_dir: Path) -> None:
        """--dry-run reports deletions without removing anything."""
        result = _clean("--folder", str(watch_dir), "--expire", "1d", "--dry-run", "-f", "json")

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert {d["path"] for d in data} == {
            str(watch_dir / "logs" / "old.log"),
            str(watch_dir / "notes.txt"),
        }
        assert all(d["dry_run"] for d in data)
        assert (watch_dir / "logs" / "old.log").exists()
        assert (watch_dir / "notes.txt").exists()

    def test_table_output(self, watch_dir: Path) -> None:
        """The table view ends with a summary line."""
        result = _clean("--folder", str(watch_dir), "--expire", "1d")

        assert result.exit_code == 0
        assert "Deleted Entries" in result.output
        assert "Deleted 2 entries" in result.output

    def test_table_has_no_age_column(self, watch_dir: Path) -> None:
        """Deleted entries are listed with a status but without an age."""
        result = _clean("--folder", str(watch_dir), "--expire", "1d")

        assert result.exit_code == 0
        assert "Status" in result.output
        assert "Age" not in result.output

    def test_table_output_dry_run(self, watch_dir: Path) -> None:
        """The dry-run summary says what would happen."""
        result = _clean("--folder", str(watch_dir), "--expire", "1d", "--dry-run")

        assert result.exit_code == 0
        assert "Dry-run: 2 entries would be deleted" in result.output

    def test_nothing_to_clean(self, watch_dir: Path) -> None:
        """Without a lifetime nothing is deleted."""
        result = _clean("--folder", str(watch_dir))

        assert result.exit_code == 0
        assert "Nothing to clean" in result.output

    def test_uses_config_file(self, watch_dir: Path, tmp_path: Path) -> None:
        """Settings are read from --config."""
        config = tmp_path / "config.toml"
        config.write_text(f'[expirefs]\nfolder = "{watch_dir}"\nexpire = "1d"\n')

        result = _clean("--config", str(config), "--format", "json")

        assert result.exit_code == 0
        assert len(json.loads(result.output)) == 2

    def test_export(self, watch_dir: Path, tmp_path: Path) -> None:
        """--export writes the deleted entries to a JSON file."""
        export = tmp_path / "out" / "deleted.json"

        result = _clean("--folder", str(watch_dir), "--expire", "1d", "--export", str(export))

        assert result.exit_code == 0
        assert len(json.loads(export.read_text())) == 2

    def test_export_to_directory_fails(self, watch_dir: Path, tmp_path: Path) -> None:
        """Exporting onto a directory is an error."""
        result = _clean("--folder", str(watch_dir), "--expire", "1d", "--export", str(tmp_path))

        assert result.exit_code == 1
        assert "directory" in result.output

    def test_root_folder_refused(self) -> None:
        """A top-level folder is refused without --unsafe."""
        result = _clean("--folder", "/tmp", "--dry-run")

        assert result.exit_code == 1
        assert "Cowardly" in result.output

    def test_missing_folder(self) -> None:
        """Without a config file a folder must be given."""
        result = _clean()

        assert result.exit_code == 1
        assert "folder" in result.output

    def test_missing_config_file(self, tmp_path: Path) -> None:
        """An explicit config file must exist."""
        result = _clean("--config", str(tmp_path / "missing.toml"))

        assert result.exit_code == 1
        assert "Config not found" in result.output

    def test_invalid_expire(self, watch_dir: Path) -> None:
        """An unparseable lifetime is a configuration error."""
        result = _clean("--folder", str(watch_dir), "--expire", "soon")

        assert result.exit_code == 1
        assert "Invalid duration" in result.output
