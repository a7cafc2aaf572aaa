from __future__ import annotations

"""
Bundle Section Formatting.

Pure string builders for the four bundle sections. The delimiters are
consumed verbatim by downstream tools, so every newline here matters.
"""

import os
from typing import Iterable, List, Optional, Sequence, Tuple

from repoprompt.domain.constants import (
    DEFAULT_INSTRUCTIONS,
    LANGUAGE_BY_EXTENSION,
    NO_FILE_CONTENTS,
    NO_FILES_SELECTED,
    NO_PROMPTS_SELECTED,
    PROMPT_NOT_FOUND,
)


def language_for(path: str) -> str:
    """Best-effort fence tag from the file extension ('' when unknown)."""
    _, ext = os.path.splitext(path.replace("\\", "/").rsplit("/", 1)[-1])
    return LANGUAGE_BY_EXTENSION.get(ext.lower(), "")


def format_file_map(root_label: str, tree_lines: Sequence[str]) -> str:
    body = "\n".join(tree_lines) if tree_lines else NO_FILES_SELECTED
    return f"<file_map>\n{root_label}\n{body}\n</file_map>"


def format_file_maps(blocks: Sequence[str]) -> str:
    """Join per-directory blocks; an empty selection gets a single placeholder map."""
    if not blocks:
        return f"<file_map>\n{NO_FILES_SELECTED}\n</file_map>"
    return "\n".join(blocks)


def format_file_block(path: str, content: str) -> str:
    return f"File: {path}\n```{language_for(path)}\n{content}\n```\n\n"


def format_file_contents(blocks: Sequence[str]) -> str:
    body = "".join(blocks) if blocks else f"{NO_FILE_CONTENTS}\n"
    return f"<file_contents>\n{body}</file_contents>"


def format_prompts(selected: Iterable[Tuple[str, Optional[str]]]) -> str:
    """
    Wrap selected prompts with ordinal tags, numbered from 1 in selection order.

    Args:
        selected: (name, text) pairs; a None text renders a not-found notice.
    """
    parts: List[str] = []
    for index, (name, text) in enumerate(selected, start=1):
        body = text if text is not None else PROMPT_NOT_FOUND
        parts.append(f'<meta prompt {index}="{name}">\n{body}\n</meta prompt {index}>\n')
    return "".join(parts) if parts else f"{NO_PROMPTS_SELECTED}\n"


def format_instructions(text: Optional[str]) -> str:
    body = text if text and text.strip() else DEFAULT_INSTRUCTIONS
    return f"<user_instructions>\n{body}\n</user_instructions>"


def join_sections(file_maps: str, file_contents: str, prompts: str, instructions: str) -> str:
    return f"{file_maps}\n\n{file_contents}\n\n{prompts}\n{instructions}"
