"""Tests for parameter extraction from procedure definitions."""
import logging

from procwrap.introspect.models import ProcedureInfo
from procwrap.introspect.signature import annotate_parameters, parameter_clause, parse_parameters

from conftest import ADD_USER_DEF, NOOP_DEF


class TestParseParameters:
    """parse_parameters() behaviour."""

    def test_direction_keywords_skipped(self):
        definition = "CREATE PROCEDURE name(IN a INT, OUT b VARCHAR(10))"
        assert parse_parameters(definition) == ["a", "b"]

    def test_empty_definition(self):
        assert parse_parameters("") == []

    def test_no_procedure_keyword(self):
        assert parse_parameters("no procedure keyword here") == []
        assert parse_parameters("CREATE FUNCTION f(IN a int) RETURNS int") == []

    def test_zero_argument_procedure(self):
        assert parse_parameters("CREATE PROCEDURE noop()") == []
        assert parse_parameters("CREATE PROCEDURE noop(   )") == []

    def test_keyword_is_case_insensitive(self):
        assert parse_parameters("create or replace procedure p(in x int, inout y text)") == ["x", "y"]

    def test_postgres_functiondef_output(self):
        assert parse_parameters(ADD_USER_DEF) == ["p_name", "p_age"]
        assert parse_parameters(NOOP_DEF) == []

    def test_nested_parentheses_stay_in_clause(self):
        definition = "CREATE PROCEDURE price(IN amount NUMERIC(10,2), IN currency CHAR(3))"
        assert parse_parameters(definition) == ["amount", "currency"]

    def test_default_values(self):
        definition = "CREATE PROCEDURE p(IN a integer DEFAULT 5, IN b text DEFAULT 'x, y')"
        assert parse_parameters(definition) == ["a", "b"]

    def test_single_token_clause_skipped(self):
        assert parse_parameters("CREATE PROCEDURE p(integer, IN b text)") == ["b"]

    def test_clause_without_name_takes_next_token(self):
        # No separate name: the type is taken as the name
        assert parse_parameters("CREATE PROCEDURE p(IN integer)") == ["integer"]

    def test_first_token_is_never_the_name(self):
        assert parse_parameters("CREATE PROCEDURE p(a integer)") == ["integer"]

    def test_all_direction_keywords_yield_nothing(self):
        assert parse_parameters("CREATE PROCEDURE p(IN OUT)") == []

    def test_unterminated_list(self):
        assert parse_parameters("CREATE PROCEDURE p(IN a integer") == []

    def test_order_preserved(self):
        definition = "CREATE PROCEDURE p(IN z int, IN a int, OUT m int)"
        assert parse_parameters(definition) == ["z", "a", "m"]

    def test_returns_independent_lists(self):
        first = parse_parameters(ADD_USER_DEF)
        first.append("extra")
        assert parse_parameters(ADD_USER_DEF) == ["p_name", "p_age"]


def test_parameter_clause():
    assert parameter_clause("CREATE PROCEDURE p( IN a int )") == "IN a int"
    assert parameter_clause("CREATE PROCEDURE p()") == ""
    assert parameter_clause("CREATE PROCEDURE p") is None
    assert parameter_clause("") is None


def test_annotate_parameters_fills_lists():
    procs = [
        ProcedureInfo(name="add_user", definition=ADD_USER_DEF),
        ProcedureInfo(name="noop", definition=NOOP_DEF),
    ]
    annotate_parameters(procs)

    assert procs[0].parameters == ["p_name", "p_age"]
    assert procs[1].parameters == []


def test_annotate_parameters_warns_on_missing_definition(caplog):
    procs = [
        ProcedureInfo(name="hidden", definition=""),
        ProcedureInfo(name="odd", definition="BEGIN END"),
    ]
    with caplog.at_level(logging.WARNING, logger="procwrap.introspect.signature"):
        annotate_parameters(procs)

    assert procs[0].parameters == []
    assert procs[1].parameters == []
    assert "hidden" in caplog.text
    assert "odd" in caplog.text
