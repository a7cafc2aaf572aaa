from __future__ import annotations

"""
Reusable Prompt Snippet Library.

Named text snippets that can be appended to the context bundle. Names are
unique and kept in creation order.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class PromptLibrary:
    """
    In-memory CRUD over named prompt snippets.
    """

    def __init__(self, prompts: Optional[Dict[str, str]] = None) -> None:
        self._prompts: Dict[str, str] = {}
        for name, text in (prompts or {}).items():
            self.add(name, text)

    @property
    def names(self) -> List[str]:
        return list(self._prompts)

    def get(self, name: str) -> Optional[str]:
        return self._prompts.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._prompts

    def __len__(self) -> int:
        return len(self._prompts)

    def add(self, name: str, text: str) -> str:
        """
        Register a new snippet.

        Args:
            name: Unique display name (trimmed).
            text: Snippet body (trimmed).

        Returns:
            str: The stored name.

        Raises:
            ValueError: On empty name/text or duplicate name.
        """
        clean_name, clean_text = _validate(name, text)
        if clean_name in self._prompts:
            raise ValueError(f"A prompt named '{clean_name}' already exists.")
        self._prompts[clean_name] = clean_text
        return clean_name

    def edit(self, old_name: str, new_name: str, new_text: str) -> str:
        """
        Rename and/or rewrite a snippet, keeping its position.

        Raises:
            ValueError: If the snippet is unknown, the input is empty or the
                        new name collides with another snippet.
        """
        if old_name not in self._prompts:
            raise ValueError(f"Unknown prompt '{old_name}'.")
        clean_name, clean_text = _validate(new_name, new_text)
        if clean_name != old_name and clean_name in self._prompts:
            raise ValueError(f"A prompt named '{clean_name}' already exists.")

        self._prompts = {
            (clean_name if k == old_name else k): (clean_text if k == old_name else v)
            for k, v in self._prompts.items()
        }
        return clean_name

    def remove(self, name: str) -> bool:
        return self._prompts.pop(name, None) is not None

    # -------------------------------------------------------------------------
    # SERIALIZATION
    # -------------------------------------------------------------------------

    def to_json(self) -> Dict[str, str]:
        return dict(self._prompts)

    @classmethod
    def from_json(cls, value: Any) -> "PromptLibrary":
        """Rebuild from a persisted object, skipping invalid entries."""
        library = cls()
        if value is None:
            return library
        if not isinstance(value, dict):
            logger.warning("Malformed persisted prompt library. Starting empty.")
            return library
        for name, text in value.items():
            try:
                library.add(name, text)
            except ValueError as e:
                logger.warning(f"Skipping persisted prompt: {e}")
        return library


def _validate(name: Any, text: Any) -> Tuple[str, str]:
    clean_name = name.strip() if isinstance(name, str) else ""
    clean_text = text.strip() if isinstance(text, str) else ""
    if not clean_name:
        raise ValueError("Prompt name cannot be empty.")
    if not clean_text:
        raise ValueError("Prompt text cannot be empty.")
    return clean_name, clean_text
