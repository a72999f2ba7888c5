"""
Prompt templates for the documentation chat.
"""

REFUSAL_SENTENCE = "Sorry, I don't know how to help with that."

FOLLOW_UP_SYSTEM_PROMPT = "Be super short and concise."

_CONTEXT_INSTRUCTIONS = (
    "Given the following sections from the documentation, answer the question "
    "using only that information, outputted in markdown format (but not inside "
    "a code snippet). Only cite what is written in the given context. "
)

_BASE_INSTRUCTIONS = (
    "Answer in the same language the user writes in. "
    "If you are unsure and the answer is not explicitly written in the "
    f'documentation, say "{REFUSAL_SENTENCE}" Be super short and concise.'
)

SEPARATOR = "\n---\n"


QUESTION_TEMPLATE = 'Question: """\n{question}\n"""'

CONTEXT_TEMPLATE = 'Context: """\n{context}\n"""\n'


def build_system_prompt(has_context: bool) -> str:
    """System prompt for a retrieval-augmented first turn."""
    return (_CONTEXT_INSTRUCTIONS if has_context else "") + _BASE_INSTRUCTIONS


def wrap_question(question: str, context: str = "") -> str:
    """
    Wrap the user's question, prefixed with the collected context if any.
    """
    wrapped = QUESTION_TEMPLATE.format(question=question)
    if context:
        wrapped = CONTEXT_TEMPLATE.format(context=context) + wrapped
    return wrapped
