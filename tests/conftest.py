"""
Pytest configuration and shared fixtures for datalist tests.

Provides immutable document fixtures shared by the pass and fail suites.
"""

from dataclasses import dataclass
from typing import Any

import pytest

from datalist import PairList


@dataclass(frozen=True)
class DatalistTestCase:
    """
    Immutable container for datalist test case data.

    Holds test input and expected behavior for consistent test execution.
    """

    description: str
    input_data: str
    should_fail: bool = False
    expected_output: Any = None
    expected_msg: str = ""
    expected_line: int = 1


@pytest.fixture
def datalist_pass_cases() -> list[DatalistTestCase]:
    """
    Provides documents covering every bracket dialect and the root forms.
    """
    return [
        DatalistTestCase("root map", "a=1 b=2", False, {"a": 1, "b": 2}),
        DatalistTestCase(
            "root pair list",
            "name: foo\nname: bar",
            False,
            PairList([("name", "foo"), ("name", "bar")]),
        ),
        DatalistTestCase(
            "root positional", "true false nil", False, [True, False, None]
        ),
        DatalistTestCase("flat brackets", "(1,2,3)", False, [1, 2, 3]),
        DatalistTestCase(
            "keyed square brackets keep duplicates",
            "[a:1 a:2]",
            False,
            PairList([("a", 1), ("a", 2)]),
        ),
        DatalistTestCase(
            "keyed braces overwrite duplicates", "{a:1 a:2}", False, {"a": 2}
        ),
        DatalistTestCase(
            "positional square brackets", "[1 2 3]", False, [1, 2, 3]
        ),
        DatalistTestCase("positional braces", "{x}", False, ["x"]),
        DatalistTestCase(
            "braces starting with a string", "{'a' 'b'}", False, ["a", "b"]
        ),
        DatalistTestCase(
            "nested maps",
            "{a=1 b={c=2}}",
            False,
            {"a": 1, "b": {"c": 2}},
        ),
        DatalistTestCase(
            "pair list inside a list",
            "[[a:1]]",
            False,
            [PairList([("a", 1)])],
        ),
        DatalistTestCase(
            "multi-line document with comments",
            "-- settings\na = 1 -- first\nb = (1 2)\n",
            False,
            {"a": 1, "b": [1, 2]},
        ),
        DatalistTestCase(
            "escaped quotes",
            '"he said \\"hi\\""',
            False,
            'he said "hi"',
        ),
        DatalistTestCase("single scalar", "42", False, 42),
        DatalistTestCase("empty document", "", False, []),
        DatalistTestCase("comment only", "-- nothing here\n", False, []),
        DatalistTestCase("empty containers", "() [] {}", False, [[], [], []]),
        DatalistTestCase(
            "keys are never coerced",
            "{1=one true=yes}",
            False,
            {"1": "one", "true": True},
        ),
    ]


@pytest.fixture
def datalist_fail_cases() -> list[DatalistTestCase]:
    """
    Provides malformed documents with the error each one must raise.
    """
    return [
        DatalistTestCase(
            "unterminated string",
            '"abc',
            True,
            expected_msg="Unterminated string",
        ),
        DatalistTestCase(
            "raw newline inside string",
            'a = 1\nb = "x\ny"',
            True,
            expected_msg="Unterminated string",
            expected_line=2,
        ),
        DatalistTestCase(
            "unsupported escape",
            'a=1\nb="\\q"',
            True,
            expected_msg="Invalid escape sequence",
            expected_line=2,
        ),
        DatalistTestCase(
            "backslash escape is not supported",
            '"a\\\\b"',
            True,
            expected_msg="Invalid escape sequence",
        ),
        DatalistTestCase(
            "truncated hex escape",
            '"\\x4"',
            True,
            expected_msg="Invalid escape sequence",
        ),
        DatalistTestCase(
            "mismatched closing bracket",
            "(1 2]",
            True,
            expected_msg="Invalid closing bracket",
        ),
        DatalistTestCase(
            "closing bracket at the root",
            ")",
            True,
            expected_msg="Invalid closing bracket",
        ),
        DatalistTestCase(
            "extra closing bracket",
            "{a=1}}",
            True,
            expected_msg="Invalid closing bracket",
        ),
        DatalistTestCase(
            "keyed content closed by the wrong bracket",
            "[a:1 }",
            True,
            expected_msg="Invalid closing bracket",
        ),
        DatalistTestCase(
            "unclosed flat list",
            "(1,2",
            True,
            expected_msg="Unclosed bracket",
        ),
        DatalistTestCase(
            "unclosed map",
            "{a=1",
            True,
            expected_msg="Unclosed bracket",
        ),
        DatalistTestCase(
            "string where a key is required",
            '{a=1 "b"=2}',
            True,
            expected_msg="Expecting key",
        ),
        DatalistTestCase(
            "key without separator",
            "{a=1 b}",
            True,
            expected_msg="Expecting value",
        ),
        DatalistTestCase(
            "separator at end of document",
            "a=",
            True,
            expected_msg="Expecting value",
        ),
        DatalistTestCase(
            "separator before closing bracket",
            "[a:]",
            True,
            expected_msg="Expecting value",
        ),
        DatalistTestCase(
            "mixed separators at the root",
            "a:1 b=2",
            True,
            expected_msg="Inconsistent separator",
        ),
        DatalistTestCase(
            "symbol inside a flat list",
            "(1 : 2)",
            True,
            expected_msg="Unexpected symbol",
        ),
        DatalistTestCase(
            "leading symbol",
            "= 1",
            True,
            expected_msg="Unexpected symbol",
        ),
        DatalistTestCase(
            "layer in a list",
            "(## x)",
            True,
            expected_msg="Invalid layer symbol",
        ),
        DatalistTestCase(
            "layer as a value",
            "a = **",
            True,
            expected_msg="Invalid layer symbol",
        ),
        DatalistTestCase(
            "unclosed bracket reported at end of input",
            "a = 1\n\nb = (1 2\n",
            True,
            expected_msg="Unclosed bracket",
            expected_line=4,
        ),
    ]
