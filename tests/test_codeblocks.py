from __future__ import annotations

import dataclasses

import pytest

from core.codeblocks import Codeblock, detect_codeblocks, parse_codeblock


def test_parse_language_line() -> None:
    codeblock = parse_codeblock("cs\nfoo")
    assert codeblock.language == "cs"
    assert codeblock.content == "foo"


def test_parse_single_line_with_space_is_content() -> None:
    codeblock = parse_codeblock("foo bar")
    assert codeblock.language is None
    assert codeblock.content == "foo bar"


def test_parse_whitespace_only() -> None:
    codeblock = parse_codeblock(" ")
    assert codeblock.language is None
    assert codeblock.content == ""


def test_parse_single_word_is_language_with_empty_content() -> None:
    codeblock = parse_codeblock("py3")
    assert codeblock.language == "py3"
    assert codeblock.content == ""


def test_parse_first_line_with_punctuation_is_content() -> None:
    codeblock = parse_codeblock("Console.WriteLine(\"Hello World\");\n")
    assert codeblock.language is None
    assert codeblock.content == "Console.WriteLine(\"Hello World\");"


def test_parse_language_line_must_be_ascii_alphanumeric() -> None:
    assert parse_codeblock("c++\nint x;").language is None
    assert parse_codeblock("c++\nint x;").content == "c++\nint x;"
    assert parse_codeblock("cs \nx").language is None
    assert parse_codeblock("pythön\nx").language is None


def test_parse_leading_newline_has_no_language() -> None:
    codeblock = parse_codeblock("\nHello World\n")
    assert codeblock.language is None
    assert codeblock.content == "Hello World"


def test_reparsing_content_does_not_invent_a_language() -> None:
    first = parse_codeblock("rust\nfn main() { println!(\"hi\"); }")
    again = parse_codeblock(first.content)
    assert again.language is None
    assert again.content == first.content


def test_codeblock_normalizes_blank_fields() -> None:
    codeblock = Codeblock(content="  \n ", language=" ")
    assert codeblock.content == ""
    assert codeblock.language is None


def test_codeblock_is_immutable() -> None:
    codeblock = Codeblock(content="x", language="py")
    with pytest.raises(dataclasses.FrozenInstanceError):
        codeblock.content = "y"  # type: ignore[misc]


def test_line_count() -> None:
    assert Codeblock(content="").line_count == 0
    assert Codeblock(content="one").line_count == 1
    assert Codeblock(content="one\ntwo\nthree").line_count == 3


def test_detect_codeblocks_from_message() -> None:
    text = "```\nHello World\n```Hello World\n```cs\nGoodbye World\n```"
    codeblocks = detect_codeblocks(text)
    assert codeblocks == [
        Codeblock(content="Hello World"),
        Codeblock(content="Goodbye World", language="cs"),
    ]


def test_detect_codeblocks_empty_fence_and_blank_input() -> None:
    assert detect_codeblocks("``` ```") == [Codeblock(content="")]
    assert detect_codeblocks("") == []
    assert detect_codeblocks("Hello World") == []
