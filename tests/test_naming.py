"""Tests for identifier conversion."""
import keyword

import pytest

from procwrap.introspect.naming import safe_identifier, to_identifier


@pytest.mark.parametrize("value, expected", [
    ("user_id", "UserId"),
    ("id", "Id"),
    ("", ""),
    ("ADD_USER", "AddUser"),
    ("add__user", "AddUser"),
    ("_leading_and_trailing_", "LeadingAndTrailing"),
    ("getUserName", "Getusername"),
    ("p_1st_value", "P1stValue"),
])
def test_to_identifier(value, expected):
    assert to_identifier(value) == expected


def test_to_identifier_only_underscores():
    assert to_identifier("___") == ""


def test_safe_identifier_keeps_valid_names():
    assert safe_identifier("UserId", fallback="Arg1") == "UserId"


def test_safe_identifier_replaces_invalid_characters():
    assert safe_identifier('"Weird-Name"', fallback="Arg1") == "Weird_Name"
    assert safe_identifier("$1", fallback="Arg1") == "_1"


def test_safe_identifier_leading_digit():
    assert safe_identifier("1st", fallback="Arg1") == "_1st"


def test_safe_identifier_keywords():
    assert keyword.iskeyword(to_identifier("none"))
    assert safe_identifier(to_identifier("none"), fallback="Arg1") == "None_"
    assert safe_identifier("class", fallback="Arg1") == "class_"


def test_safe_identifier_fallback_for_empty():
    assert safe_identifier("", fallback="Arg3") == "Arg3"
    assert safe_identifier('""', fallback="Arg3") == "Arg3"
