"""
Template Language Parser
Recursive-descent parser producing a source-range annotated syntax tree
"""

from typing import Callable, Iterator, List, Optional
from itertools import count

from pyparsing import ParseException, ParserElement, Regex, Word, nums

from syntax import (
    AnnotatedExpression, SourceRange, Expression,
    Variable, IntLiteral, StringLiteral, Function, Call, Let, Tag,
)
from error_handling import (
    ParseError, ParseReason,
    UnexpectedEOF, ExpectedAtom, ExpectedIdentifier, ExpectedOperator,
    ExpectedKeyword, Expected, UnexpectedRemainder, IntegerTooLong, NestingTooDeep,
)


# ============================================================================
# TOKENS
# ============================================================================

# Identifiers are letters followed by letters or underscores
IDENTIFIER_PATTERN = r"[^\W\d_][^\W\d]*"

OPERATOR_CHARS = "="


def keyword(word: str) -> ParserElement:
    """A keyword only matches when no identifier character follows it"""
    return Regex(rf"{word}(?![^\W\d])").leave_whitespace().set_name(word)


IDENTIFIER = Regex(IDENTIFIER_PATTERN).leave_whitespace().set_name("identifier")
INTEGER = Word(nums).leave_whitespace().set_name("integer")
OPERATOR = Word(OPERATOR_CHARS).leave_whitespace().set_name("operator")
WHITESPACE = Regex(r"\s+").leave_whitespace().set_name("whitespace")
STRING_BODY = Regex(r'[^"]*').leave_whitespace().set_name("string body")

LET = keyword("let")
IN = keyword("in")
FUNC = keyword("func")


class Scanner:
    """A cursor over the source text. Tokens are matched at the cursor and consumed on success."""

    def __init__(self, source: str):
        self.source = source
        self.position = 0

    @property
    def remainder(self) -> str:
        return self.source[self.position:]

    def at_end(self) -> bool:
        return self.position >= len(self.source)

    def peek(self) -> str:
        return self.source[self.position] if not self.at_end() else ""

    def match(self, element: ParserElement) -> Optional[str]:
        """Consume and return the text matched by `element`, or None without moving"""
        try:
            end = element.try_parse(self.source, self.position)
        except ParseException:
            return None
        text = self.source[self.position:end]
        self.position = end
        return text

    def remove_prefix(self, prefix: str) -> bool:
        if not self.source.startswith(prefix, self.position):
            return False
        self.position += len(prefix)
        return True

    def skip_whitespace(self) -> None:
        self.match(WHITESPACE)

    def error(self, reason: ParseReason) -> ParseError:
        return ParseError(reason, self.position)


# ============================================================================
# PARSER
# ============================================================================

class TemplateParser:
    """Parses one expression per call; node ids restart at zero for every parse"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self._ids: Iterator[int] = count()

    def parse(self, source: str) -> AnnotatedExpression:
        """Parse a complete program. The whole input must be consumed."""
        self._ids = count()
        scanner = Scanner(source)
        scanner.skip_whitespace()
        try:
            result = self.parse_expression(scanner)
        except RecursionError:
            raise scanner.error(NestingTooDeep()) from None
        scanner.skip_whitespace()
        if not scanner.at_end():
            raise scanner.error(UnexpectedRemainder(scanner.remainder))
        return result

    def parse_file(self, filepath: str) -> AnnotatedExpression:
        with open(filepath, 'r', encoding='utf-8') as f:
            content = f.read()
        return self.parse(content)

    def _annotate(self, start: int, end: int, expression: Expression) -> AnnotatedExpression:
        node = AnnotatedExpression(SourceRange(start, end), expression, next(self._ids))
        if self.debug:
            print(f"[PARSE] #{node.id} {type(expression).__name__} {node.range}")
        return node

    def parse_expression(self, s: Scanner) -> AnnotatedExpression:
        return self.parse_definition(s)

    def parse_definition(self, s: Scanner) -> AnnotatedExpression:
        start = s.position
        if s.match(LET) is None:
            return self.parse_function_call(s)
        s.skip_whitespace()
        name = self.parse_identifier(s)
        s.skip_whitespace()
        self.expect_operator(s, "=")
        s.skip_whitespace()
        value = self.parse_expression(s)
        s.skip_whitespace()
        if s.match(IN) is None:
            raise s.error(ExpectedKeyword("in"))
        s.skip_whitespace()
        body = self.parse_expression(s)
        return self._annotate(start, s.position, Let(name, value, body))

    def parse_function_call(self, s: Scanner) -> AnnotatedExpression:
        start = s.position
        result = self.parse_atom(s)
        while s.remove_prefix("("):
            s.skip_whitespace()
            arguments = self._parse_list(s, self.parse_expression)
            if not s.remove_prefix(")"):
                raise s.error(Expected(")"))
            result = self._annotate(start, s.position, Call(result, tuple(arguments)))
        return result

    def _parse_list(self, s: Scanner, parse_item: Callable[[Scanner], object]) -> List:
        """Comma separated items up to, not including, a closing ')'. Trailing commas are rejected."""
        items: List = []
        if s.peek() == ")":
            return items
        while True:
            items.append(parse_item(s))
            s.skip_whitespace()
            if not s.remove_prefix(","):
                return items
            s.skip_whitespace()

    def parse_atom(self, s: Scanner) -> AnnotatedExpression:
        start = s.position
        if s.at_end():
            raise s.error(UnexpectedEOF())

        digits = s.match(INTEGER)
        if digits is not None:
            try:
                value = int(digits)
            except ValueError:
                # int() refuses digit strings past sys.get_int_max_str_digits()
                raise ParseError(IntegerTooLong(len(digits)), start) from None
            return self._annotate(start, s.position, IntLiteral(value))

        if s.remove_prefix('"'):
            value = s.match(STRING_BODY)
            if not s.remove_prefix('"'):
                raise s.error(Expected('"'))
            return self._annotate(start, s.position, StringLiteral(value))

        if s.match(FUNC) is not None:
            return self.parse_function_literal(s, start)

        name = s.match(IDENTIFIER)
        if name is not None:
            return self._annotate(start, s.position, Variable(name))

        if s.peek() == "<":
            return self.parse_tag(s)

        raise s.error(ExpectedAtom())

    def parse_function_literal(self, s: Scanner, start: int) -> AnnotatedExpression:
        s.skip_whitespace()
        if not s.remove_prefix("("):
            raise s.error(Expected("("))
        s.skip_whitespace()
        parameters = self._parse_list(s, self.parse_identifier)
        if not s.remove_prefix(")"):
            raise s.error(Expected(")"))
        s.skip_whitespace()
        body = self._parse_braced(s)
        return self._annotate(start, s.position, Function(tuple(parameters), body))

    def _parse_braced(self, s: Scanner) -> AnnotatedExpression:
        if not s.remove_prefix("{"):
            raise s.error(Expected("{"))
        s.skip_whitespace()
        result = self.parse_expression(s)
        s.skip_whitespace()
        if not s.remove_prefix("}"):
            raise s.error(Expected("}"))
        return result

    def parse_tag(self, s: Scanner) -> AnnotatedExpression:
        start = s.position
        if not s.remove_prefix("<"):
            raise s.error(Expected("<"))
        s.skip_whitespace()
        name = self.parse_identifier(s)
        if not s.remove_prefix(">"):
            raise s.error(Expected(">"))
        s.skip_whitespace()

        closing = f"</{name}>"
        body: List[AnnotatedExpression] = []
        while not s.remove_prefix(closing):
            if s.at_end():
                raise s.error(UnexpectedEOF())
            body.append(self.parse_tag_child(s))
            s.skip_whitespace()
        return self._annotate(start, s.position, Tag(name, tuple(body)))

    def parse_tag_child(self, s: Scanner) -> AnnotatedExpression:
        if s.peek() == "<":
            return self.parse_tag(s)
        if s.peek() == "{":
            return self._parse_braced(s)
        raise s.error(Expected("{ or <"))

    def parse_identifier(self, s: Scanner) -> str:
        name = s.match(IDENTIFIER)
        if name is None:
            raise s.error(ExpectedIdentifier())
        return name

    def parse_operator(self, s: Scanner) -> str:
        op = s.match(OPERATOR)
        if op is None:
            raise s.error(ExpectedOperator())
        return op

    def expect_operator(self, s: Scanner, expected: str) -> str:
        """Consume exactly `expected`; a missing or different operator is Expected(expected)"""
        start = s.position
        try:
            op = self.parse_operator(s)
        except ParseError:
            op = None
        if op != expected:
            s.position = start
            raise s.error(Expected(expected))
        return op


# Factory functions for creating parsers
def create_parser(debug: bool = False) -> TemplateParser:
    """Create a template parser"""
    return TemplateParser(debug=debug)


def create_debug_parser() -> TemplateParser:
    """Create a template parser with debug enabled"""
    return TemplateParser(debug=True)


def parse(source: str) -> AnnotatedExpression:
    """Parse source text into an annotated expression, raising ParseError"""
    return TemplateParser().parse(source)
