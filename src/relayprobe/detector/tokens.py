"""Reference token counting (cl100k_base). A comparison baseline only."""

from __future__ import annotations

import threading

import tiktoken

from .errors import TokenCountError

ENCODING_NAME = "cl100k_base"

_ENCODING = None
_ENCODING_LOCK = threading.Lock()


def _encoding():
    global _ENCODING
    if _ENCODING is not None:
        return _ENCODING
    with _ENCODING_LOCK:
        if _ENCODING is None:
            try:
                _ENCODING = tiktoken.get_encoding(ENCODING_NAME)
            except Exception as exc:
                raise TokenCountError(f"failed to load tokenizer {ENCODING_NAME}: {exc}") from exc
    return _ENCODING


def count_tokens(text: str) -> int:
    return len(_encoding().encode(text or "", disallowed_special=()))
