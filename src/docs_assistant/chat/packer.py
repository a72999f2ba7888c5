"""
Context Packer

Assembles the message list sent to the language model.

Two modes:

- Follow-up: the caller supplied pre-selected context messages. A short
  system instruction is prepended and everything is passed through verbatim.
- Retrieval: a system prompt is prepended and the first user message is
  rewritten to carry as many retrieved passages as fit in the model's context
  window. Passages are taken in relevance order and packing stops at the
  first passage that would not fit (first-fit, whole passages only).

Token counts come from the target model's tokenizer, so the packed prompt
never exceeds `context_window - 1` input tokens as long as the caller's own
conversation fits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Sequence

from .prompts import (
    CONTEXT_TEMPLATE,
    FOLLOW_UP_SYSTEM_PROMPT,
    QUESTION_TEMPLATE,
    SEPARATOR,
    build_system_prompt,
    wrap_question,
)
from ..api.models import ChatMessage
from ..llm.tokenizer import Tokenizer
from ..search.models import RetrievedPassage

logger = logging.getLogger("docs.chat")


@dataclass
class PackedPrompt:
    messages: List[ChatMessage]
    passages: List[RetrievedPassage] = field(default_factory=list)
    token_count: int = 0
    mode: Literal["retrieval", "follow_up"] = "retrieval"


class ContextPacker:
    def __init__(
        self,
        tokenizer: Tokenizer,
        context_window: int,
        reserved_tokens: int = 20,
    ) -> None:
        self._tokenizer = tokenizer
        self.context_window = context_window
        self.reserved_tokens = reserved_tokens

    @property
    def max_input_tokens(self) -> int:
        return self.context_window - 1

    @property
    def wrapping_reserve(self) -> int:
        """Tokens kept free for the Context/Question wrapper text."""
        wrapper = (
            self.count_tokens(CONTEXT_TEMPLATE.format(context=""))
            + self.count_tokens(QUESTION_TEMPLATE.format(question=""))
        )
        return max(self.reserved_tokens, wrapper)

    def count_tokens(self, text: str) -> int:
        return len(self._tokenizer.encode(text))

    def count_messages(self, messages: Sequence[ChatMessage]) -> int:
        return sum(self.count_tokens(m.content) for m in messages)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def pack(
        self,
        messages: Sequence[ChatMessage],
        passages: Sequence[RetrievedPassage] = (),
        additional_messages: Optional[Sequence[ChatMessage]] = None,
    ) -> PackedPrompt:
        if additional_messages:
            return self.pack_follow_up(messages, additional_messages)
        return self.pack_with_context(messages, passages)

    def pack_follow_up(
        self,
        messages: Sequence[ChatMessage],
        additional_messages: Sequence[ChatMessage],
    ) -> PackedPrompt:
        """
        Prepend the concise-answer instruction and the caller's context.
        """
        packed = [
            ChatMessage(role="system", content=FOLLOW_UP_SYSTEM_PROMPT),
            *additional_messages,
            *messages,
        ]
        return PackedPrompt(
            messages=packed,
            token_count=self.count_messages(packed),
            mode="follow_up",
        )

    def pack_with_context(
        self,
        messages: Sequence[ChatMessage],
        passages: Sequence[RetrievedPassage],
    ) -> PackedPrompt:
        """
        Prepend the system prompt and fold passages into the first question.
        """
        system = ChatMessage(role="system", content=build_system_prompt(bool(passages)))
        packed = [system, *messages]

        question_at = next(
            (i for i, m in enumerate(packed) if m.role == "user"),
            None,
        )
        if question_at is None:
            logger.warning("No user message to augment; sending conversation as is")
            return PackedPrompt(messages=packed, token_count=self.count_messages(packed))

        budget = self.max_input_tokens - self.count_messages(packed) - self.wrapping_reserve

        pieces: List[str] = []
        included: List[RetrievedPassage] = []
        used = 0
        for passage in passages:
            text = (passage.text or "").strip()
            if not text:
                continue

            piece = text + SEPARATOR
            used += self.count_tokens(piece)
            if used >= budget:
                break

            pieces.append(piece)
            included.append(passage)

        question = packed[question_at]
        while True:
            packed[question_at] = question.model_copy(
                update={"content": wrap_question(question.content, "".join(pieces))}
            )
            token_count = self.count_messages(packed)
            # BPE merges across piece boundaries can shift the sum slightly
            if token_count <= self.max_input_tokens or not pieces:
                break
            pieces.pop()
            included.pop()

        if len(included) < len(passages):
            logger.debug(
                "Packed %d of %d passages into a %d token budget",
                len(included),
                len(passages),
                budget,
            )

        return PackedPrompt(
            messages=packed,
            passages=included,
            token_count=token_count,
        )
