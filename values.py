"""
Template Language Runtime Values
The value kinds produced by evaluation and their display form
"""

from typing import Tuple, Union
from dataclasses import dataclass

from syntax import AnnotatedExpression, Function, render


@dataclass(frozen=True)
class StringValue:
    value: str


@dataclass(frozen=True)
class IntValue:
    value: int


@dataclass(frozen=True)
class FunctionValue:
    """A function literal's parameters and unevaluated body. No environment is captured."""
    parameters: Tuple[str, ...]
    body: AnnotatedExpression


@dataclass(frozen=True)
class HtmlValue:
    """Markup that is already safe to emit verbatim"""
    markup: str


Value = Union[StringValue, IntValue, FunctionValue, HtmlValue]


def pretty(value: Value) -> str:
    """Display form of a value"""
    if isinstance(value, StringValue):
        return f'"{value.value}"'
    if isinstance(value, IntValue):
        return str(value.value)
    if isinstance(value, HtmlValue):
        return value.markup
    return render(Function(value.parameters, value.body.simplify()))


def kind_name(value: Value) -> str:
    if isinstance(value, StringValue):
        return "string"
    if isinstance(value, IntValue):
        return "int"
    if isinstance(value, HtmlValue):
        return "html"
    return "function"
