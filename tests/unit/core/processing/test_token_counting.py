from __future__ import annotations

"""
Unit tests for the token counting engine.

tiktoken is patched so the tests never download BPE files.
"""

from unittest.mock import MagicMock, patch

import pytest

from repoprompt.core.processing import tokenizer
from repoprompt.core.processing.tokenizer import count_tokens, heuristic_count


@pytest.fixture(autouse=True)
def _clear_encoding_cache():
    tokenizer._ENCODING_CACHE.clear()
    yield
    tokenizer._ENCODING_CACHE.clear()


def test_heuristic_rounds_up() -> None:
    """TC-01: Four characters per token, rounded up."""
    assert heuristic_count("") == 0
    assert heuristic_count("abcd") == 1
    assert heuristic_count("abcde") == 2


def test_counts_with_tiktoken_encoding() -> None:
    """TC-02: The encoded length is returned and the encoding is cached."""
    encoding = MagicMock()
    encoding.encode.return_value = [1, 2, 3]

    with patch("repoprompt.core.processing.tokenizer.tiktoken.get_encoding", return_value=encoding) as get_enc:
        assert count_tokens("hello world", "cl100k_base") == 3
        assert count_tokens("again", "cl100k_base") == 3

    get_enc.assert_called_once_with("cl100k_base")
    encoding.encode.assert_called_with("again", disallowed_special=())


def test_unavailable_encoding_falls_back_to_heuristic() -> None:
    """TC-03: Load failures switch to the character estimate."""
    with patch("repoprompt.core.processing.tokenizer.tiktoken.get_encoding", side_effect=ValueError("unknown")):
        assert count_tokens("x" * 10, "bogus") == 3

    with patch("repoprompt.core.processing.tokenizer.tiktoken.get_encoding", side_effect=OSError("offline")):
        assert count_tokens("x" * 8, "offline-enc") == 2


def test_empty_text_is_zero() -> None:
    """TC-04: Empty input never touches the encoder."""
    with patch("repoprompt.core.processing.tokenizer.tiktoken.get_encoding") as get_enc:
        assert count_tokens("") == 0
    get_enc.assert_not_called()
