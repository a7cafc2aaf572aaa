from __future__ import annotations

"""
Integration tests for zip archive ingestion.
"""

import zipfile
from pathlib import Path

import pytest

from repoprompt.domain.errors import PathRejected
from repoprompt.infra.ingest import read_zip_archive, upload_label


def test_read_zip_archive_skips_directories(tmp_path: Path) -> None:
    """TC-01: File entries are decoded; folder entries are skipped."""
    archive = tmp_path / "project.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("pkg/", "")
        zf.writestr("pkg/mod.py", "import os\n")
        zf.writestr("README.md", "# Title")
        zf.writestr("bad.txt", b"ok\xff")

    label, files = read_zip_archive(str(archive))

    assert label == upload_label("project.zip")
    assert set(files) == {"pkg/mod.py", "README.md", "bad.txt"}
    assert files["pkg/mod.py"] == "import os\n"
    assert files["bad.txt"].startswith("ok")


def test_read_zip_archive_rejects_invalid_input(tmp_path: Path) -> None:
    """TC-02: Missing files and non-archives are rejected."""
    not_zip = tmp_path / "fake.zip"
    not_zip.write_text("plain text", encoding="utf-8")

    with pytest.raises(PathRejected):
        read_zip_archive(str(tmp_path / "missing.zip"))
    with pytest.raises(PathRejected):
        read_zip_archive(str(not_zip))
