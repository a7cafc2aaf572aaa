from __future__ import annotations

"""
Token Counting Engine.

Estimates the token size of an assembled bundle with tiktoken. Encodings
are loaded lazily and cached per name; when an encoding cannot be loaded
(unknown name, no network to fetch the BPE file) a character-density
heuristic is used instead so a build never fails on counting.
"""

import logging
import math
import threading
from typing import Any, Dict, Optional

import tiktoken

from repoprompt.domain.constants import DEFAULT_TOKEN_ENCODING

logger = logging.getLogger(__name__)

# Approximate characters per token for code and prose
CHARS_PER_TOKEN_AVG: int = 4

_ENCODING_CACHE: Dict[str, Optional[Any]] = {}
_CACHE_LOCK = threading.Lock()


def heuristic_count(text: str) -> int:
    """Ceiling of characters divided by the average token width."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN_AVG)


def _get_encoding(name: str) -> Optional[Any]:
    with _CACHE_LOCK:
        if name in _ENCODING_CACHE:
            return _ENCODING_CACHE[name]
        try:
            encoding = tiktoken.get_encoding(name)
        except (ValueError, KeyError, OSError) as e:
            logger.warning(f"Tokenizer: encoding '{name}' unavailable ({e}). Using heuristic estimate.")
            encoding = None
        _ENCODING_CACHE[name] = encoding
        return encoding


def count_tokens(text: str, encoding_name: str = DEFAULT_TOKEN_ENCODING) -> int:
    """
    Count the tokens of a text.

    Args:
        text: Text to measure.
        encoding_name: tiktoken encoding to use.

    Returns:
        int: Token count (heuristic if the encoding is unavailable).
    """
    if not text:
        return 0
    encoding = _get_encoding(encoding_name)
    if encoding is None:
        return heuristic_count(text)
    return len(encoding.encode(text, disallowed_special=()))
