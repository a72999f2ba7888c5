"""
Tokenizer and Model Limits

Token counting must match the target model exactly: the chat API rejects
requests whose input exceeds the context window, so budgets are measured with
the model's own BPE encoding via tiktoken.
"""

from __future__ import annotations

from typing import Dict, List, Protocol

import tiktoken


DEFAULT_CONTEXT_WINDOW = 4096

MODEL_CONTEXT_WINDOWS: Dict[str, int] = {
    "gpt-3.5-turbo-1106": 16385,
    "gpt-3.5-turbo-0125": 16385,
    "gpt-3.5-turbo": 4096,
    "gpt-3.5-turbo-16k": 16385,
    "gpt-3.5-turbo-instruct": 4096,
    "gpt-3.5-turbo-0613": 4096,
    "gpt-3.5-turbo-16k-0613": 16385,
    "gpt-3.5-turbo-0301": 4096,
    "gpt-4o": 128000,
    "gpt-4o-mini": 128000,
}


class Tokenizer(Protocol):
    def encode(self, text: str) -> List[int]:
        ...


def context_window_for(model: str) -> int:
    """Return the model's input context window in tokens."""
    return MODEL_CONTEXT_WINDOWS.get(model, DEFAULT_CONTEXT_WINDOW)


class TiktokenTokenizer:
    """
    tiktoken-backed tokenizer for an OpenAI model.

    Text that looks like a special token (e.g. "<|endoftext|>") is encoded as
    ordinary text rather than rejected.
    """

    def __init__(self, model: str) -> None:
        self.model = model
        try:
            self._encoding = tiktoken.encoding_for_model(model)
        except KeyError:
            self._encoding = tiktoken.get_encoding("cl100k_base")

    def encode(self, text: str) -> List[int]:
        return self._encoding.encode(text, disallowed_special=())
