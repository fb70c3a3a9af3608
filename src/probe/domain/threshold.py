"""Threshold expressions evaluated against the extracted value."""

import ast
import operator
import re
from typing import Any

from src.probe.domain.exceptions import EvaluationError, ExpressionError
from src.probe.domain.models import Scalar

VARIABLE = "value"

FUNCTIONS = {
    "abs": abs,
    "min": min,
    "max": max,
    "round": round,
}

BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

UNARY_OPERATORS = {
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
    ast.Not: operator.not_,
}

COMPARISON_OPERATORS = {
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
}

MAX_EXPONENT = 64

_STRING_LITERAL = re.compile(r"""('(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")""")
_NUMERIC_STRING = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")


def _normalize(text: str) -> str:
    """Rewrite spreadsheet-style spellings (=, <>, AND, TRUE) into Python syntax."""
    parts = _STRING_LITERAL.split(text.strip())
    for i in range(0, len(parts), 2):
        chunk = parts[i]
        chunk = chunk.replace("<>", "!=")
        chunk = re.sub(r"(?<![<>=!])=(?!=)", "==", chunk)
        chunk = re.sub(r"\b(and|or|not)\b", lambda m: m.group(1).lower(), chunk, flags=re.IGNORECASE)
        chunk = re.sub(r"\btrue\b", "True", chunk, flags=re.IGNORECASE)
        chunk = re.sub(r"\bfalse\b", "False", chunk, flags=re.IGNORECASE)
        chunk = re.sub(rf"\b{VARIABLE}\b", VARIABLE, chunk, flags=re.IGNORECASE)
        parts[i] = chunk
    return "".join(parts)


def coerce(value: Scalar) -> Scalar:
    """Turn numeric-looking strings into numbers; leave everything else alone."""
    if isinstance(value, str) and _NUMERIC_STRING.match(value):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            return float(text)
    return value


class ExpressionValidator(ast.NodeVisitor):
    """Reject any syntax outside the supported arithmetic/boolean subset."""

    def __init__(self, expression: str):
        self.expression = expression

    def generic_visit(self, node: ast.AST) -> None:
        allowed = (
            ast.Expression,
            ast.BoolOp,
            ast.And,
            ast.Or,
            ast.Load,
            *BINARY_OPERATORS,
            *UNARY_OPERATORS,
            *COMPARISON_OPERATORS,
        )
        if not isinstance(node, allowed):
            raise ExpressionError(self.expression, f"unsupported syntax '{type(node).__name__}'")
        super().generic_visit(node)

    def visit_BinOp(self, node: ast.BinOp) -> None:
        if type(node.op) not in BINARY_OPERATORS:
            raise ExpressionError(self.expression, f"unsupported operator '{type(node.op).__name__}'")
        super().generic_visit(node)

    def visit_UnaryOp(self, node: ast.UnaryOp) -> None:
        if type(node.op) not in UNARY_OPERATORS:
            raise ExpressionError(self.expression, f"unsupported operator '{type(node.op).__name__}'")
        super().generic_visit(node)

    def visit_Compare(self, node: ast.Compare) -> None:
        for op in node.ops:
            if type(op) not in COMPARISON_OPERATORS:
                raise ExpressionError(self.expression, f"unsupported comparison '{type(op).__name__}'")
        super().generic_visit(node)

    def visit_Constant(self, node: ast.Constant) -> None:
        if not isinstance(node.value, (int, float, str, bool)):
            raise ExpressionError(self.expression, f"unsupported literal {node.value!r}")

    def visit_Name(self, node: ast.Name) -> None:
        if node.id != VARIABLE:
            raise ExpressionError(self.expression, f"unknown variable '{node.id}'")

    def visit_Call(self, node: ast.Call) -> None:
        if not isinstance(node.func, ast.Name) or node.func.id.lower() not in FUNCTIONS:
            name = node.func.id if isinstance(node.func, ast.Name) else type(node.func).__name__
            raise ExpressionError(self.expression, f"unknown function '{name}'")
        if node.keywords:
            raise ExpressionError(self.expression, "keyword arguments are not supported")
        for arg in node.args:
            self.visit(arg)


class ThresholdExpression:
    """
    A boolean arithmetic condition over the single variable ``value``.

    Compiled once from configuration; evaluated once per record.

    Example:
        >>> ThresholdExpression("value >= 10").evaluate(12)
        True
    """

    def __init__(self, expression: str) -> None:
        self.expression = expression.strip()
        if not self.expression:
            raise ExpressionError(expression, "expression is empty")

        try:
            self._tree = ast.parse(_normalize(self.expression), mode="eval")
        except SyntaxError as e:
            raise ExpressionError(self.expression, e.msg or "syntax error") from e

        ExpressionValidator(self.expression).visit(self._tree)

    def __repr__(self) -> str:
        return f"ThresholdExpression({self.expression!r})"

    def __str__(self) -> str:
        return self.expression

    def evaluate(self, value: Scalar) -> bool:
        """
        Evaluate the condition with ``value`` bound.

        Raises:
            EvaluationError: On type mismatches, arithmetic faults, or a non-boolean result
        """
        bound = coerce(value)
        try:
            result = self._eval(self._tree.body, bound)
        except EvaluationError:
            raise
        except (TypeError, ValueError, ArithmeticError) as e:
            raise EvaluationError(self.expression, value, str(e)) from e

        if not isinstance(result, bool):
            raise EvaluationError(self.expression, value, f"result {result!r} is not a boolean")
        return result

    def _eval(self, node: ast.AST, value: Scalar) -> Any:
        if isinstance(node, ast.Constant):
            return node.value

        if isinstance(node, ast.Name):
            return value

        if isinstance(node, ast.BoolOp):
            if isinstance(node.op, ast.And):
                result = True
                for operand in node.values:
                    result = self._eval(operand, value)
                    if not result:
                        return result
                return result
            result = False
            for operand in node.values:
                result = self._eval(operand, value)
                if result:
                    return result
            return result

        if isinstance(node, ast.UnaryOp):
            return UNARY_OPERATORS[type(node.op)](self._eval(node.operand, value))

        if isinstance(node, ast.BinOp):
            left = self._eval(node.left, value)
            right = self._eval(node.right, value)
            if isinstance(node.op, ast.Pow) and isinstance(right, (int, float)) and abs(right) > MAX_EXPONENT:
                raise EvaluationError(self.expression, value, f"exponent {right} too large")
            return BINARY_OPERATORS[type(node.op)](left, right)

        if isinstance(node, ast.Compare):
            left = self._eval(node.left, value)
            for op, comparator in zip(node.ops, node.comparators):
                right = self._eval(comparator, value)
                if not COMPARISON_OPERATORS[type(op)](left, right):
                    return False
                left = right
            return True

        if isinstance(node, ast.Call):
            func = FUNCTIONS[node.func.id.lower()]
            return func(*(self._eval(arg, value) for arg in node.args))

        raise EvaluationError(self.expression, value, f"unsupported syntax '{type(node).__name__}'")
