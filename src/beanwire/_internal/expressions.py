from __future__ import annotations

import ast
import operator
from collections.abc import Callable
from typing import Any, Final

from beanwire.exceptions import BeanWireConditionError

VALUE_PLACEHOLDER: Final = "$"
_VALUE_NAME: Final = "__value__"

_BINARY_OPERATORS: dict[type[ast.operator], Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
}
_COMPARE_OPERATORS: dict[type[ast.cmpop], Callable[[Any, Any], Any]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda left, right: left in right,
    ast.NotIn: lambda left, right: left not in right,
}
_NAMED_CONSTANTS: dict[str, Any] = {"true": True, "false": False, "null": None}
_WORD_OPERATORS: dict[str, str] = {"&&": " and ", "||": " or "}


def coerce_scalar(value: Any) -> Any:
    """Turn numeric and boolean strings into numbers and booleans."""
    if not isinstance(value, str):
        return value
    text = value.strip()
    lowered = text.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    for convert in (int, float):
        try:
            return convert(text)
        except ValueError:
            continue
    return value


def evaluate_condition(expression: str, value: Any) -> bool:
    """Evaluate a boolean expression where ``$`` stands for ``value``.

    Only literals, ``$``, arithmetic, comparisons, ``in`` and boolean operators
    are accepted.

    Raises:
        BeanWireConditionError: If the expression is malformed, uses an
            unsupported construct, or does not produce a boolean.

    """
    source = _translate(expression, value)
    try:
        tree = ast.parse(source.strip(), mode="eval")
    except SyntaxError as error:
        msg = f"Invalid condition expression {expression!r}: {error.msg}."
        raise BeanWireConditionError(msg) from error

    try:
        result = _Evaluator(coerce_scalar(value)).visit(tree.body)
    except (TypeError, ZeroDivisionError) as error:
        msg = f"Cannot evaluate condition expression {expression!r} for value {value!r}: {error}"
        raise BeanWireConditionError(msg) from error
    if not isinstance(result, bool):
        msg = f"Condition expression {expression!r} produced {result!r}, expected a boolean."
        raise BeanWireConditionError(msg)
    return result


def _translate(expression: str, value: Any) -> str:
    """Rewrite ``expression`` into Python source.

    ``$`` inside a quoted literal is replaced by the text of ``value``; outside
    literals it names the value itself. ``&&``, ``||`` and ``!`` become
    ``and``, ``or`` and ``not``.
    """
    text = _value_text(value)
    parts: list[str] = []
    index = 0
    while index < len(expression):
        char = expression[index]
        pair = expression[index : index + 2]
        step = 1
        if char in "\"'":
            literal, step = _quoted_literal(expression, index, text)
            parts.append(literal)
        elif pair in _WORD_OPERATORS:
            parts.append(_WORD_OPERATORS[pair])
            step = 2
        elif char == "!" and pair != "!=":
            parts.append(" not ")
        elif char == VALUE_PLACEHOLDER:
            parts.append(f" {_VALUE_NAME} ")
        else:
            parts.append(char)
        index += step
    return "".join(parts)


def _quoted_literal(expression: str, start: int, text: str) -> tuple[str, int]:
    """Return the literal opening at ``start`` with ``$`` replaced, and its length."""
    quote = expression[start]
    escaped = text.replace("\\", "\\\\").replace(quote, "\\" + quote)
    chars = [quote]
    end = start + 1
    while end < len(expression) and expression[end] != quote:
        if expression[end] == "\\":
            chars.append(expression[end : end + 2])
            end += 2
            continue
        chars.append(escaped if expression[end] == VALUE_PLACEHOLDER else expression[end])
        end += 1
    chars.append(expression[end : end + 1])
    return "".join(chars), end + 1 - start


def _value_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class _Evaluator(ast.NodeVisitor):
    def __init__(self, value: Any) -> None:
        self._value = value

    def generic_visit(self, node: ast.AST) -> Any:
        msg = f"Unsupported syntax in condition expression: {type(node).__name__}."
        raise BeanWireConditionError(msg)

    def visit_Constant(self, node: ast.Constant) -> Any:  # noqa: N802
        return node.value

    def visit_Name(self, node: ast.Name) -> Any:  # noqa: N802
        if node.id == _VALUE_NAME:
            return self._value
        if node.id in _NAMED_CONSTANTS:
            return _NAMED_CONSTANTS[node.id]
        msg = f"Unknown name {node.id!r} in condition expression."
        raise BeanWireConditionError(msg)

    def visit_Tuple(self, node: ast.Tuple) -> Any:  # noqa: N802
        return tuple(self.visit(element) for element in node.elts)

    def visit_List(self, node: ast.List) -> Any:  # noqa: N802
        return [self.visit(element) for element in node.elts]

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:  # noqa: N802
        operand = self.visit(node.operand)
        if isinstance(node.op, ast.Not):
            return not operand
        if isinstance(node.op, ast.USub):
            return -operand
        if isinstance(node.op, ast.UAdd):
            return +operand
        return self.generic_visit(node)

    def visit_BinOp(self, node: ast.BinOp) -> Any:  # noqa: N802
        apply = _BINARY_OPERATORS.get(type(node.op))
        if apply is None:
            return self.generic_visit(node)
        return apply(self.visit(node.left), self.visit(node.right))

    def visit_BoolOp(self, node: ast.BoolOp) -> Any:  # noqa: N802
        if isinstance(node.op, ast.And):
            return all(self.visit(operand) for operand in node.values)
        return any(self.visit(operand) for operand in node.values)

    def visit_Compare(self, node: ast.Compare) -> Any:  # noqa: N802
        left = self.visit(node.left)
        for op, comparator in zip(node.ops, node.comparators):
            apply = _COMPARE_OPERATORS.get(type(op))
            if apply is None:
                return self.generic_visit(node)
            right = self.visit(comparator)
            if not apply(left, right):
                return False
            left = right
        return True


__all__ = ["VALUE_PLACEHOLDER", "coerce_scalar", "evaluate_condition"]
