"""Tests for identifier case conversion and keyword escaping."""

import pytest

from llm_forge.mappers.naming import (
    camel_case,
    convention_for,
    escape_keyword,
    flat_case,
    kebab_case,
    pascal_case,
    screaming_snake_case,
    snake_case,
    split_words,
)


@pytest.mark.parametrize("name", ["user_id", "userId", "UserId", "user-id", "user id"])
def test_split_words_is_separator_agnostic(name):
    assert split_words(name) == ("user", "id")


def test_split_words_keeps_acronyms_together():
    assert split_words("HTTPResponse") == ("http", "response")
    assert split_words("getV1Models") == ("get", "v1", "models")


def test_case_conversions():
    assert pascal_case("chat_completion") == "ChatCompletion"
    assert camel_case("chat_completion") == "chatCompletion"
    assert snake_case("ChatCompletion") == "chat_completion"
    assert screaming_snake_case("maxTokens") == "MAX_TOKENS"
    assert kebab_case("Acme LLM") == "acme-llm"
    assert flat_case("acme-llm") == "acmellm"


def test_case_conversion_of_empty_input():
    assert pascal_case("") == ""
    assert snake_case("--") == ""


def test_escape_keyword_per_language():
    assert escape_keyword("class", "python") == "class_"
    assert escape_keyword("type", "rust") == "r#type"
    assert escape_keyword("self", "rust") == "self_"
    assert escape_keyword("string", "csharp") == "@string"
    assert escape_keyword("type", "go") == "type_"
    assert escape_keyword("default", "java") == "default_"
    assert escape_keyword("name", "python") == "name"


def test_escape_leading_digit():
    assert escape_keyword("2fa", "typescript") == "_2fa"


def test_conventions():
    py = convention_for("python")
    assert py.type_name("chat message") == "ChatMessage"
    assert py.property_name("maxTokens") == "max_tokens"
    assert py.property_name("from") == "from_"
    assert py.enum_member_name("end-turn") == "END_TURN"

    go = convention_for("go")
    assert go.property_name("user_id") == "UserId"
    assert go.enum_member_name("1024x1024") == "V1024x1024"

    ts = convention_for("typescript")
    assert ts.method_name("create_chat_completion") == "createChatCompletion"
    assert ts.package_name("Acme LLM") == "acme-llm"


def test_type_name_never_starts_with_digit():
    assert convention_for("java").type_name("3d model") == "V3dModel"


def test_conventions_are_cached():
    assert convention_for("rust") is convention_for("rust")
