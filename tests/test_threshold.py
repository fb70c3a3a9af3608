"""Tests for threshold expressions."""

from __future__ import annotations

import pytest

from src.probe.domain.exceptions import ConfigurationError, EvaluationError, ExpressionError
from src.probe.domain.threshold import ThresholdExpression, coerce


class TestEvaluate:
    @pytest.mark.parametrize(
        "expression,value,expected",
        [
            ("value >= 10", 12, True),
            ("value >= 10", 5, False),
            ("value * 2 + 1 > 20", 10, True),
            ("(value + 1) * 2 > 20", 9, False),
            ("value % 2 == 0", 4, True),
            ("-value < 0", 3, True),
            ("1 < value < 10", 5, True),
            ("1 < value < 10", 10, False),
            ("value > 1 and value < 10", 5, True),
            ("value < 1 or value > 10", 5, False),
            ("not value > 10", 5, True),
            ("value / 4 >= 2.5", 10, True),
        ],
    )
    def test_arithmetic_and_comparisons(self, expression, value, expected):
        assert ThresholdExpression(expression).evaluate(value) is expected

    @pytest.mark.parametrize(
        "expression,value,expected",
        [
            ("value = 5", 5, True),
            ("value <> 5", 4, True),
            ("value > 1 AND value < 10", 5, True),
            ("value < 1 OR value > 10", 11, True),
            ("NOT value > 10", 5, True),
            ("VALUE >= 1", 1, True),
            ("value = TRUE", True, True),
        ],
    )
    def test_spreadsheet_spellings(self, expression, value, expected):
        assert ThresholdExpression(expression).evaluate(value) is expected

    def test_functions(self):
        assert ThresholdExpression("ABS(value) > 5").evaluate(-7) is True
        assert ThresholdExpression("max(value, 3) = 3").evaluate(1) is True
        assert ThresholdExpression("round(value, 1) == 1.2").evaluate(1.23) is True

    def test_string_equality(self):
        assert ThresholdExpression("value = 'down'").evaluate("down") is True
        assert ThresholdExpression("value = 'down'").evaluate("up") is False

    def test_string_literal_is_not_rewritten(self):
        assert ThresholdExpression("value == 'a = b'").evaluate("a = b") is True

    def test_numeric_strings_are_coerced(self):
        assert ThresholdExpression("value >= 10").evaluate("12.5") is True
        assert coerce("42") == 42
        assert coerce(" 1e3 ") == 1000.0
        assert coerce("db01") == "db01"

    def test_str_is_the_expression(self):
        assert str(ThresholdExpression("  value >= 10 ")) == "value >= 10"


class TestEvaluationErrors:
    def test_non_numeric_comparison(self):
        with pytest.raises(EvaluationError) as exc_info:
            ThresholdExpression("value >= 10").evaluate("abc")
        assert exc_info.value.details["value"] == "abc"

    def test_division_by_zero(self):
        with pytest.raises(EvaluationError):
            ThresholdExpression("value / 0 > 1").evaluate(5)

    def test_non_boolean_result(self):
        with pytest.raises(EvaluationError):
            ThresholdExpression("value + 1").evaluate(5)

    def test_huge_exponent(self):
        with pytest.raises(EvaluationError):
            ThresholdExpression("value ** 100000 > 1").evaluate(10)

    def test_evaluation_errors_are_not_configuration_errors(self):
        assert not issubclass(EvaluationError, ConfigurationError)


class TestCompile:
    @pytest.mark.parametrize(
        "expression",
        [
            "",
            "value >=",
            "foo > 1",
            "__import__('os').system('true')",
            "value.real > 1",
            "[value] == [1]",
            "value if value else 0",
            "lambda: 1",
            "value in (1, 2)",
            "value is None",
            "sum(value) > 1",
            "value >> 2 > 1",
        ],
    )
    def test_invalid_expressions_fail_at_construction(self, expression):
        with pytest.raises(ExpressionError):
            ThresholdExpression(expression)

    def test_expression_errors_are_configuration_errors(self):
        with pytest.raises(ConfigurationError):
            ThresholdExpression("value >")
