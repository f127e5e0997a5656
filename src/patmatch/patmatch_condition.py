"""Guard condition expressions for PatMatch `when` clauses.

Conditions are small, pure boolean expressions over the variables bound by a
match.  There are no function calls, no assignment and no access to anything
outside the bindings.
"""

import operator
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from patmatch.patmatch_error import PatMatchNoMatchError
from patmatch.patmatch_value import format_value, is_number, type_name, values_equal


class PatMatchConditionExpr(ABC):
    """Abstract base class for condition expression nodes."""

    @abstractmethod
    def evaluate(self, bindings: Mapping[str, Any]) -> Any:
        """
        Evaluate the expression.

        Args:
            bindings: Variables bound by the match

        Returns:
            The value of the expression

        Raises:
            PatMatchNoMatchError: If the expression cannot be evaluated
        """

    @abstractmethod
    def describe(self) -> str:
        """Render the expression back into condition syntax."""


@dataclass(frozen=True)
class PatMatchConditionLiteral(PatMatchConditionExpr):
    """A number, string or boolean constant."""
    value: Any

    def evaluate(self, bindings: Mapping[str, Any]) -> Any:
        return self.value

    def describe(self) -> str:
        if isinstance(self.value, bool):
            return "true" if self.value else "false"

        return repr(self.value)


@dataclass(frozen=True)
class PatMatchConditionVariable(PatMatchConditionExpr):
    """A reference to a variable bound by the match."""
    name: str

    def evaluate(self, bindings: Mapping[str, Any]) -> Any:
        if self.name not in bindings:
            raise PatMatchNoMatchError(
                message=f"Condition variable is not bound: {self.name}",
                received=f"Bound variables: {', '.join(sorted(bindings)) or '(none)'}"
            )

        return bindings[self.name]

    def describe(self) -> str:
        return self.name


@dataclass(frozen=True)
class PatMatchConditionUnary(PatMatchConditionExpr):
    """A prefix operator: `not` or `-`."""
    op: str
    operand: PatMatchConditionExpr

    def evaluate(self, bindings: Mapping[str, Any]) -> Any:
        value = self.operand.evaluate(bindings)
        if self.op == 'not':
            if not isinstance(value, bool):
                raise _operand_error(self.op, value, "boolean")

            return not value

        if not is_number(value):
            raise _operand_error(self.op, value, "number")

        return -value

    def describe(self) -> str:
        separator = " " if self.op == 'not' else ""
        return f"{self.op}{separator}{self.operand.describe()}"


@dataclass(frozen=True)
class PatMatchConditionBinary(PatMatchConditionExpr):
    """An infix arithmetic, comparison or logical operator."""
    op: str
    left: PatMatchConditionExpr
    right: PatMatchConditionExpr

    ARITHMETIC_OPERATORS = {
        '+': operator.add,
        '-': operator.sub,
        '*': operator.mul,
        '/': operator.truediv,
    }

    ORDERING_OPERATORS = {
        '<': operator.lt,
        '<=': operator.le,
        '>': operator.gt,
        '>=': operator.ge,
    }

    def evaluate(self, bindings: Mapping[str, Any]) -> Any:
        # Logical operators short-circuit, so the right side is evaluated lazily
        if self.op == 'and':
            return self.left.evaluate(bindings) is True and self.right.evaluate(bindings) is True

        if self.op == 'or':
            return self.left.evaluate(bindings) is True or self.right.evaluate(bindings) is True

        left = self.left.evaluate(bindings)
        right = self.right.evaluate(bindings)

        if self.op == '==':
            return _equal(left, right)

        if self.op == '!=':
            return not _equal(left, right)

        if self.op in self.ORDERING_OPERATORS:
            return self._compare(self.ORDERING_OPERATORS[self.op], left, right)

        return self._arithmetic(self.ARITHMETIC_OPERATORS[self.op], left, right)

    def _compare(self, func: Callable[[Any, Any], bool], left: Any, right: Any) -> bool:
        if (is_number(left) and is_number(right)) or (isinstance(left, str) and isinstance(right, str)):
            return func(left, right)

        raise _operands_error(self.op, left, right)

    def _arithmetic(self, func: Callable[[Any, Any], Any], left: Any, right: Any) -> Any:
        if self.op == '+' and isinstance(left, str) and isinstance(right, str):
            return left + right

        if not (is_number(left) and is_number(right)):
            raise _operands_error(self.op, left, right)

        if self.op == '/' and right == 0:
            raise PatMatchNoMatchError(
                message="Division by zero in condition",
                received=f"{format_value(left)} / {format_value(right)}"
            )

        try:
            return func(left, right)

        except ArithmeticError as e:
            raise PatMatchNoMatchError(
                message=f"Arithmetic error in condition: {e}",
                received=f"{format_value(left)} {self.op} {format_value(right)}"
            ) from e

    def describe(self) -> str:
        return f"({self.left.describe()} {self.op} {self.right.describe()})"


@dataclass(frozen=True)
class PatMatchCondition:
    """
    A compiled `when` condition.

    Attributes:
        text: The condition as written in the pattern
        expr: Root of the expression tree
    """
    text: str
    expr: PatMatchConditionExpr

    def evaluate(self, bindings: Mapping[str, Any]) -> bool:
        """
        Evaluate the condition against the bindings of a successful match.

        Args:
            bindings: Variables bound by the match

        Returns:
            True only if the expression evaluates to boolean True

        Raises:
            PatMatchNoMatchError: If the expression cannot be evaluated
        """
        try:
            return self.expr.evaluate(bindings) is True

        except PatMatchNoMatchError as e:
            raise PatMatchNoMatchError(
                message=f"Condition could not be evaluated: {self.text}",
                context=e.message,
                received=e.received
            ) from e


def _equal(left: Any, right: Any) -> bool:
    """Equality that keeps booleans and numbers apart and compares sequences element-wise."""
    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        return len(left) == len(right) and all(_equal(a, b) for a, b in zip(left, right))

    if isinstance(left, (list, tuple)) or isinstance(right, (list, tuple)):
        return False

    if isinstance(left, (str, int, float, bool)) or left is None:
        return values_equal(left, right)

    return bool(left == right)


def _operand_error(op: str, value: Any, expected: str) -> PatMatchNoMatchError:
    return PatMatchNoMatchError(
        message=f"Invalid operand for '{op}' in condition",
        received=f"{format_value(value)} ({type_name(value)})",
        expected=expected
    )


def _operands_error(op: str, left: Any, right: Any) -> PatMatchNoMatchError:
    expected = "two numbers or two strings" if op in ('+', '<', '<=', '>', '>=') else "two numbers"
    return PatMatchNoMatchError(
        message=f"Invalid operands for '{op}' in condition",
        received=f"{format_value(left)} ({type_name(left)}) {op} {format_value(right)} ({type_name(right)})",
        expected=expected
    )
