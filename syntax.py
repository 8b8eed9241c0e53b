"""
Template Language Syntax Tree
Expression variants generic over their child representation, plus the
annotated (source range + node id) instantiation produced by the parser
"""

from typing import Any, Callable, Generic, Iterator, List, Tuple, TypeVar, Union
from dataclasses import dataclass, field


R = TypeVar('R')


@dataclass(frozen=True)
class SourceRange:
    """Half-open [start, end) character offsets into the source text"""
    start: int
    end: int

    def __str__(self) -> str:
        return f"{self.start}..<{self.end}"

    def __len__(self) -> int:
        return self.end - self.start

    def text(self, source: str) -> str:
        return source[self.start:self.end]


# ============================================================================
# EXPRESSION VARIANTS
# ============================================================================

@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class IntLiteral:
    value: int


@dataclass(frozen=True)
class StringLiteral:
    value: str


@dataclass(frozen=True)
class Function(Generic[R]):
    parameters: Tuple[str, ...]
    body: R


@dataclass(frozen=True)
class Call(Generic[R]):
    callee: R
    arguments: Tuple[R, ...]


@dataclass(frozen=True)
class Let(Generic[R]):
    name: str
    value: R
    body: R


@dataclass(frozen=True)
class Tag(Generic[R]):
    name: str
    body: Tuple[R, ...]


Expression = Union[Variable, IntLiteral, StringLiteral, Function, Call, Let, Tag]


@dataclass(frozen=True)
class AnnotatedExpression:
    """
    An expression whose children are themselves annotated.

    `id` is the node's arena index within one parse. It keys trace events and
    visualization state and never takes part in equality or hashing.
    """
    range: SourceRange
    expression: Expression
    id: int = field(default=0, compare=False)

    def simplify(self) -> Expression:
        return simplify(self)

    def __str__(self) -> str:
        return f"{render(self.simplify())} @ {self.range}"


# ============================================================================
# STRUCTURE-PRESERVING OPERATIONS
# ============================================================================

def map_children(expression: Expression, f: Callable[[Any], Any]) -> Expression:
    """Return the same variant with every direct child replaced by f(child)"""
    if isinstance(expression, (Variable, IntLiteral, StringLiteral)):
        return expression
    if isinstance(expression, Function):
        return Function(expression.parameters, f(expression.body))
    if isinstance(expression, Call):
        return Call(f(expression.callee), tuple(f(a) for a in expression.arguments))
    if isinstance(expression, Let):
        return Let(expression.name, f(expression.value), f(expression.body))
    if isinstance(expression, Tag):
        return Tag(expression.name, tuple(f(b) for b in expression.body))
    raise TypeError(f"Not an expression: {expression!r}")


def children(expression: Expression) -> List[Any]:
    """Direct children in evaluation order"""
    if isinstance(expression, Function):
        return [expression.body]
    if isinstance(expression, Call):
        return [expression.callee, *expression.arguments]
    if isinstance(expression, Let):
        return [expression.value, expression.body]
    if isinstance(expression, Tag):
        return list(expression.body)
    return []


def simplify(node: AnnotatedExpression) -> Expression:
    """Strip ranges and ids, keeping only the expression shape"""
    return map_children(node.expression, simplify)


def walk(node: AnnotatedExpression) -> Iterator[AnnotatedExpression]:
    """Pre-order traversal of an annotated tree"""
    yield node
    for child in children(node.expression):
        yield from walk(child)


# ============================================================================
# RENDERING
# ============================================================================

def render(expression: Expression) -> str:
    """Render a plain tree back into concrete syntax"""
    if isinstance(expression, Variable):
        return expression.name
    if isinstance(expression, IntLiteral):
        return str(expression.value)
    if isinstance(expression, StringLiteral):
        return f'"{expression.value}"'
    if isinstance(expression, Function):
        params = ", ".join(expression.parameters)
        return f"func({params}) {{ {render(expression.body)} }}"
    if isinstance(expression, Call):
        args = ", ".join(render(a) for a in expression.arguments)
        return f"{render(expression.callee)}({args})"
    if isinstance(expression, Let):
        return f"let {expression.name} = {render(expression.value)} in {render(expression.body)}"
    if isinstance(expression, Tag):
        parts = []
        for child in expression.body:
            # Nested tags are written bare, everything else is interpolated
            parts.append(render(child) if isinstance(child, Tag) else f"{{ {render(child)} }}")
        return f"<{expression.name}>{''.join(parts)}</{expression.name}>"
    raise TypeError(f"Not an expression: {expression!r}")


def pretty_print_tree(node: AnnotatedExpression, source: str = "", indent: int = 0) -> str:
    """Indented dump of an annotated tree with ranges, for debugging"""
    expression = node.expression
    if isinstance(expression, (Variable, IntLiteral, StringLiteral)):
        label = render(expression)
    elif isinstance(expression, Function):
        label = f"func ({', '.join(expression.parameters)})"
    elif isinstance(expression, Let):
        label = f"let {expression.name}"
    elif isinstance(expression, Tag):
        label = f"tag {expression.name}"
    else:
        label = "call"

    result = "  " * indent + f"{label} [{node.range}]"
    if source:
        result += f" {node.range.text(source)!r}"
    result += "\n"

    for child in children(expression):
        result += pretty_print_tree(child, source, indent + 1)

    return result
