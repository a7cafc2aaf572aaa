from __future__ import annotations

"""
Archive Ingestion.

Reads a zip archive into an in-memory directory: a display label plus the
decoded text of every file entry, keyed by its slash-separated path.
"""

import logging
import os
import zipfile
from typing import Dict, Tuple

from repoprompt.domain.constants import UPLOADED_LABEL_PREFIX
from repoprompt.domain.errors import NotFoundOrPermission, PathRejected
from repoprompt.domain.tree_models import normalize_relative_path

logger = logging.getLogger(__name__)


def upload_label(name: str) -> str:
    return f"{UPLOADED_LABEL_PREFIX}{name}"


def read_zip_archive(zip_path: str, encoding: str = "utf-8") -> Tuple[str, Dict[str, str]]:
    """
    Decode every file entry of a zip archive.

    Directory entries are skipped; undecodable bytes are replaced.

    Args:
        zip_path: Path to the archive.
        encoding: Text encoding of the entries.

    Returns:
        Tuple[str, Dict[str, str]]: ('Uploaded: <archive name>', {path: text}).

    Raises:
        PathRejected: If the file is missing or is not a zip archive.
        NotFoundOrPermission: If the archive cannot be read.
    """
    if not os.path.isfile(zip_path):
        raise PathRejected(f"Archive does not exist: {zip_path}")

    files: Dict[str, str] = {}
    try:
        with zipfile.ZipFile(zip_path) as archive:
            for info in archive.infolist():
                if info.is_dir():
                    continue
                path = normalize_relative_path(info.filename)
                if not path:
                    continue
                files[path] = archive.read(info).decode(encoding, errors="replace")
    except zipfile.BadZipFile as e:
        raise PathRejected(f"Not a zip archive: {zip_path}") from e
    except OSError as e:
        raise NotFoundOrPermission(f"Failed to read archive {zip_path}: {e}") from e

    logger.info(f"Archive ingested: {os.path.basename(zip_path)} ({len(files)} file(s))")
    return upload_label(os.path.basename(zip_path)), files
