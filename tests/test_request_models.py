import pytest
from pydantic import TypeAdapter, ValidationError

from docs_assistant.api.models import (
    ChatMessage,
    ChatRequest,
    DocsChatRequest,
    SearchRequest,
    SemanticSearchRequest,
)
from docs_assistant.core.errors import InvalidNamespaceError
from docs_assistant.namespaces import namespace_file, validate_namespace
from docs_assistant.search.models import Section

docs_chat_adapter = TypeAdapter(DocsChatRequest)


def test_chat_request_type_default():
    """Verify default type is 'chat'."""
    req = ChatRequest(namespace="docs", messages=[ChatMessage(role="user", content="hello")])
    assert req.type == "chat"
    assert req.additional_messages == []


def test_additional_messages_alias():
    req = ChatRequest.model_validate(
        {
            "namespace": "docs",
            "messages": [{"role": "user", "content": "hello"}],
            "additionalMessages": [{"role": "user", "content": "# Page"}],
        }
    )
    assert req.additional_messages[0].content == "# Page"


def test_discriminated_request():
    req = docs_chat_adapter.validate_python(
        {"type": "semantic-search", "namespace": "docs", "query": "install"}
    )
    assert isinstance(req, SemanticSearchRequest)


def test_invalid_role_rejected():
    with pytest.raises(ValidationError):
        ChatMessage(role="tool", content="x")


def test_empty_message_rejected():
    with pytest.raises(ValidationError):
        ChatMessage(role="user", content="")


def test_search_request_key_validated():
    assert SearchRequest(key="en").query == ""
    with pytest.raises(ValidationError):
        SearchRequest(key="en/../../etc", query="x")


@pytest.mark.parametrize("namespace", ["docs", "docs-v1.2", "site:en_US"])
def test_valid_namespaces(namespace):
    assert validate_namespace(namespace) == namespace


@pytest.mark.parametrize("namespace", ["", ".", "..", "a/b", "a b", "x" * 129])
def test_invalid_namespaces(namespace):
    with pytest.raises(InvalidNamespaceError):
        validate_namespace(namespace)


def test_namespace_file(tmp_path):
    assert namespace_file(tmp_path, "en") == tmp_path / "en.json"


class TestSection:

    def test_title_falls_back_to_slug_basename(self):
        assert Section(slug="guide/getting-started").title == "getting-started"
        assert Section(slug="guide\\intro", name="Intro").title == "Intro"

    def test_parent_key(self):
        assert Section(slug="p", parent=3).parent_key is None
        assert Section(slug="h", type="h2", parent=3).parent_key == 3
        assert Section(slug="h", type="h2", parent="").parent_key is None
        assert Section(slug="h", type="h3", parent="page").parent_key == "page"

    def test_unknown_fields_ignored(self):
        section = Section.model_validate({"slug": "a", "keywords": ["x"]})
        assert section.slug == "a"

    def test_negative_index_rejected(self):
        with pytest.raises(ValidationError):
            Section(slug="a", index=-1)
