"""
Context Packer Tests

A one-token-per-character tokenizer keeps budgets easy to reason about.
"""

import random

import pytest

from docs_assistant.api.models import ChatMessage
from docs_assistant.chat.packer import ContextPacker
from docs_assistant.chat.prompts import (
    FOLLOW_UP_SYSTEM_PROMPT,
    REFUSAL_SENTENCE,
    SEPARATOR,
    build_system_prompt,
    wrap_question,
)
from docs_assistant.search.models import RetrievedPassage


class CharTokenizer:
    def encode(self, text):
        return [ord(ch) for ch in text]


QUESTION = "How do I install it?"


def _user(content=QUESTION):
    return ChatMessage(role="user", content=content)


def _packer(context_window=4096, reserved_tokens=20):
    return ContextPacker(CharTokenizer(), context_window=context_window, reserved_tokens=reserved_tokens)


class TestFollowUp:

    def test_passes_messages_through(self):
        packer = _packer()
        additional = [ChatMessage(role="user", content="# Page\nSome markdown")]
        messages = [_user()]

        prompt = packer.pack([_user()], passages=[], additional_messages=additional)

        assert prompt.mode == "follow_up"
        assert prompt.messages[0] == ChatMessage(role="system", content=FOLLOW_UP_SYSTEM_PROMPT)
        assert prompt.messages[1:] == additional + messages
        assert prompt.passages == []


class TestRetrievalPacking:

    def test_first_fit_skips_passage_that_overflows(self):
        """The long first passage fits; the short second one would not."""
        passages = [
            RetrievedPassage(slug="a", text="A" * 1000),
            RetrievedPassage(slug="b", text="B" * 50),
        ]
        packer = _packer()
        base = packer.count_messages(
            [ChatMessage(role="system", content=build_system_prompt(True)), _user()]
        )
        # room for passage A plus 20 spare tokens, not for A + B
        packer.context_window = base + packer.wrapping_reserve + 1000 + len(SEPARATOR) + 20 + 1

        prompt = packer.pack([_user()], passages)

        content = prompt.messages[1].content
        assert "A" * 1000 in content
        assert "B" not in content.replace(QUESTION, "")
        assert content.endswith(wrap_question(QUESTION))
        assert [p.slug for p in prompt.passages] == ["a"]
        assert prompt.token_count <= packer.max_input_tokens

    def test_packing_stops_at_first_overflow(self):
        """A small passage after an overflowing one is not considered."""
        passages = [
            RetrievedPassage(slug="big", text="X" * 500),
            RetrievedPassage(slug="small", text="y"),
        ]
        packer = _packer()
        base = packer.count_messages(
            [ChatMessage(role="system", content=build_system_prompt(True)), _user()]
        )
        packer.context_window = base + packer.wrapping_reserve + 100 + 1

        prompt = packer.pack([_user()], passages)

        assert prompt.passages == []
        assert prompt.messages[1].content == wrap_question(QUESTION)

    def test_context_block_format(self):
        passages = [
            RetrievedPassage(slug="a", text="  first  "),
            RetrievedPassage(slug="b", text=""),
            RetrievedPassage(slug="c", text="second"),
        ]

        prompt = _packer().pack([_user()], passages)

        expected = wrap_question(QUESTION, "first" + SEPARATOR + "second" + SEPARATOR)
        assert prompt.messages[1].content == expected
        assert [p.slug for p in prompt.passages] == ["a", "c"]

    def test_system_prompt_mentions_refusal(self):
        prompt = _packer().pack([_user()], [])

        assert prompt.messages[0].role == "system"
        assert REFUSAL_SENTENCE in prompt.messages[0].content
        assert prompt.messages[1].content == wrap_question(QUESTION)

    def test_only_first_user_message_is_wrapped(self):
        messages = [
            _user("first question"),
            ChatMessage(role="assistant", content="an answer"),
            _user("second question"),
        ]

        prompt = _packer().pack(messages, [RetrievedPassage(text="ctx")])

        assert prompt.messages[1].content.endswith(wrap_question("first question"))
        assert prompt.messages[2:] == messages[1:]

    def test_without_user_message(self):
        messages = [ChatMessage(role="assistant", content="hello")]

        prompt = _packer().pack(messages, [RetrievedPassage(text="ctx")])

        assert prompt.messages[1:] == messages
        assert prompt.passages == []

    @pytest.mark.parametrize("seed", range(30))
    def test_never_exceeds_context_window(self, seed):
        rng = random.Random(seed)
        passages = [
            RetrievedPassage(slug=str(i), text="w" * rng.randint(0, 800))
            for i in range(rng.randint(0, 25))
        ]
        window = rng.randint(1200, 6000)
        packer = _packer(context_window=window, reserved_tokens=rng.choice([0, 20, 100]))

        prompt = packer.pack([_user()], passages)

        assert packer.count_messages(prompt.messages) <= window - 1
        assert prompt.token_count <= window - 1
