"""
Error types for the template language parser and evaluator, and the
caret-under-the-source formatting used by the command line tools
"""

from typing import List, Tuple, Union
from dataclasses import dataclass

from syntax import SourceRange
from values import Value, kind_name, pretty


# ============================================================================
# PARSE ERROR REASONS
# ============================================================================

@dataclass(frozen=True)
class UnexpectedEOF:
    def describe(self) -> str:
        return "Unexpected end of input"


@dataclass(frozen=True)
class ExpectedAtom:
    def describe(self) -> str:
        return "Expected a literal, variable, function or tag"


@dataclass(frozen=True)
class ExpectedIdentifier:
    def describe(self) -> str:
        return "Expected an identifier"


@dataclass(frozen=True)
class ExpectedOperator:
    def describe(self) -> str:
        return "Expected an operator"


@dataclass(frozen=True)
class ExpectedKeyword:
    word: str

    def describe(self) -> str:
        return f"Expected keyword '{self.word}'"


@dataclass(frozen=True)
class Expected:
    token: str

    def describe(self) -> str:
        return f"Expected '{self.token}'"


@dataclass(frozen=True)
class UnexpectedRemainder:
    text: str

    def describe(self) -> str:
        return f"Unexpected remainder: {self.text!r}"


@dataclass(frozen=True)
class IntegerTooLong:
    digits: int

    def describe(self) -> str:
        return f"Integer literal too long ({self.digits} digits)"


@dataclass(frozen=True)
class NestingTooDeep:
    def describe(self) -> str:
        return "Expression nested too deeply"


ParseReason = Union[UnexpectedEOF, ExpectedAtom, ExpectedIdentifier, ExpectedOperator,
                    ExpectedKeyword, Expected, UnexpectedRemainder, IntegerTooLong, NestingTooDeep]


# ============================================================================
# EVALUATION ERROR REASONS
# ============================================================================

@dataclass(frozen=True)
class VariableMissing:
    name: str

    def describe(self) -> str:
        return f"Unbound variable: {self.name}"


@dataclass(frozen=True)
class ExpectedFunction:
    got: Value

    def describe(self) -> str:
        return f"Expected a function, but got {kind_name(self.got)} {pretty(self.got)}"


@dataclass(frozen=True)
class WrongNumberOfArguments:
    expected: int
    got: int

    def describe(self) -> str:
        return f"Wrong number of arguments: expected {self.expected}, got {self.got}"


@dataclass(frozen=True)
class TypeMismatch:
    description: str

    def describe(self) -> str:
        return self.description


@dataclass(frozen=True)
class RecursionLimitExceeded:
    limit: int

    def describe(self) -> str:
        return f"Evaluation nested deeper than {self.limit} levels"


EvaluationReason = Union[VariableMissing, ExpectedFunction, WrongNumberOfArguments,
                         TypeMismatch, RecursionLimitExceeded]


# ============================================================================
# EXCEPTIONS
# ============================================================================

class ParseError(Exception):
    """Raised at the first position the parser cannot continue from"""
    def __init__(self, reason: ParseReason, position: int):
        self.reason = reason
        self.position = position
        super().__init__(f"{reason.describe()} (at offset {position})")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParseError):
            return NotImplemented
        return (self.reason, self.position) == (other.reason, other.position)

    def __hash__(self) -> int:
        return hash((self.reason, self.position))

    def __repr__(self) -> str:
        return f"ParseError({self.reason!r}, position={self.position})"


class EvaluationError(Exception):
    """Raised while walking a valid tree; carries the range of the offending node"""
    def __init__(self, reason: EvaluationReason, position: SourceRange):
        self.reason = reason
        self.position = position
        super().__init__(f"{reason.describe()} (at {position})")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EvaluationError):
            return NotImplemented
        return (self.reason, self.position) == (other.reason, other.position)

    def __hash__(self) -> int:
        return hash((self.reason, self.position))

    def __repr__(self) -> str:
        return f"EvaluationError({self.reason!r}, position={self.position})"


# ============================================================================
# PRESENTATION
# ============================================================================

def offset_to_line_col(source_text: str, offset: int) -> Tuple[int, int]:
    """Map a character offset to a 1-based (line, column) pair"""
    offset = max(0, min(offset, len(source_text)))
    line = source_text.count('\n', 0, offset) + 1
    line_start = source_text.rfind('\n', 0, offset) + 1
    return line, offset - line_start + 1


def get_context_lines(source_text: str, line_num: int, col_num: int, context_lines: int = 2,
                      width: int = 1) -> str:
    """Numbered source lines around the error with a caret under the column"""
    lines = source_text.split('\n')
    start_line = max(0, line_num - context_lines - 1)
    end_line = min(len(lines), line_num + context_lines)

    context_parts: List[str] = []
    for i in range(start_line, end_line):
        line_prefix = f"{i+1:4d}: "
        context_parts.append(f"{line_prefix}{lines[i]}")
        if i == line_num - 1:
            context_parts.append(f"{'':6}{' ' * (col_num - 1)}{'^' * max(1, width)}")

    return '\n'.join(context_parts)


def format_parse_error(error: ParseError, source_text: str) -> str:
    line, column = offset_to_line_col(source_text, error.position)
    error_msg = f"Parse error at line {line}, column {column}:\n"
    error_msg += f"  {error.reason.describe()}\n"
    error_msg += get_context_lines(source_text, line, column)
    return error_msg


def format_evaluation_error(error: EvaluationError, source_text: str) -> str:
    line, column = offset_to_line_col(source_text, error.position.start)
    end_line, _ = offset_to_line_col(source_text, error.position.end)
    # Underline the whole range only when it fits on one line
    width = len(error.position) if end_line == line else 1
    error_msg = f"Runtime error at line {line}, column {column}:\n"
    error_msg += f"  {error.reason.describe()}\n"
    error_msg += get_context_lines(source_text, line, column, width=width)
    return error_msg
