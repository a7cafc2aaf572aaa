from __future__ import annotations

"""
Domain Constants and Static Data Structures.

Centralizes persistence keys, bundle delimiters, default whitelist patterns
and scheduling constants shared by the selection engine, the assembly
pipeline and the interface layers.
"""

from typing import Dict, List

CURRENT_CONFIG_VERSION = "1.2.0"
APP_NAME = "RepoPrompt"

# -----------------------------------------------------------------------------
# SCHEDULING
# -----------------------------------------------------------------------------

# Coalescing window applied to selection-change events before a build
DEFAULT_COALESCE_DELAY_MS = 200

DEFAULT_SERVER_ENDPOINT = "http://localhost:3000"
DEFAULT_SESSION_NAME = "default"
DEFAULT_TOKEN_ENCODING = "cl100k_base"

# -----------------------------------------------------------------------------
# PERSISTENCE KEYS
# -----------------------------------------------------------------------------

KEY_PREFIX = "repoPrompt_"
KEY_WHITELIST = f"{KEY_PREFIX}whitelist"
KEY_PROMPTS = f"{KEY_PREFIX}prompts"
KEY_PROMPT_SELECTION = f"{KEY_PREFIX}promptSelection"
KEY_USER_INSTRUCTIONS = f"{KEY_PREFIX}userInstructions"
KEY_FILE_SELECTION = f"{KEY_PREFIX}fileSelection"
KEY_COLLAPSED_FOLDERS = f"{KEY_PREFIX}collapsedFolders"


def file_selection_key(dir_id: int) -> str:
    """Persistence key holding the selected file paths of one directory."""
    return f"{KEY_FILE_SELECTION}_{dir_id}"


def collapsed_folders_key(dir_id: int) -> str:
    """Persistence key holding the collapsed folder paths of one directory."""
    return f"{KEY_COLLAPSED_FOLDERS}_{dir_id}"

# -----------------------------------------------------------------------------
# BUNDLE LAYOUT
# -----------------------------------------------------------------------------

DEFAULT_INSTRUCTIONS = "No instructions provided."

NO_FILES_SELECTED = "<!-- No files selected -->"
NO_FILE_CONTENTS = "<!-- No file contents available -->"
NO_PROMPTS_SELECTED = "<!-- No prompts selected -->"
PROMPT_NOT_FOUND = "Prompt text not found"

UPLOADED_LABEL_PREFIX = "Uploaded: "

# -----------------------------------------------------------------------------
# SELECTABILITY
# -----------------------------------------------------------------------------

DEFAULT_WHITELIST: List[str] = [
    ".py", ".pyi", ".ipynb",
    ".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs",
    ".html", ".css", ".scss",
    ".json", ".yaml", ".yml", ".toml", ".ini", ".cfg",
    ".md", ".rst", ".txt",
    ".rs", ".go", ".java", ".kt", ".c", ".h", ".cpp", ".hpp", ".cs",
    ".rb", ".php", ".swift", ".dart",
    ".sh", ".bash", ".ps1", ".sql",
    "dockerfile*", "makefile", ".gitignore",
]

# Best-effort language tags for fenced code blocks
LANGUAGE_BY_EXTENSION: Dict[str, str] = {
    ".py": "py",
    ".pyi": "py",
    ".html": "html",
    ".htm": "html",
    ".css": "css",
    ".scss": "scss",
    ".js": "js",
    ".mjs": "js",
    ".cjs": "js",
    ".jsx": "jsx",
    ".ts": "ts",
    ".tsx": "tsx",
    ".md": "md",
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
    ".rs": "rust",
    ".go": "go",
    ".java": "java",
    ".kt": "kotlin",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".rb": "ruby",
    ".php": "php",
    ".swift": "swift",
    ".sh": "bash",
    ".bash": "bash",
    ".ps1": "powershell",
    ".sql": "sql",
    ".xml": "xml",
}
