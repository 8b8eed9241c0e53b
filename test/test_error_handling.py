"""
Tests for error presentation, value display and the small shared helpers
"""

import pytest
from parsing import parse
from syntax import SourceRange, Variable, IntLiteral, StringLiteral, Function, Call, Let, Tag, map_children, render
from values import StringValue, IntValue, HtmlValue, FunctionValue, pretty, kind_name
from error_handling import (
  ParseError, EvaluationError, Expected, UnexpectedEOF, VariableMissing, ExpectedFunction,
  offset_to_line_col, get_context_lines, format_parse_error, format_evaluation_error,
)
from interpreter import evaluate
from utilities import html_escape, truncate, format_bindings


class TestLineColumn:

  def test_first_line(self):
    assert offset_to_line_col("abc", 0) == (1, 1)

  def test_second_line(self):
    assert offset_to_line_col("ab\ncd", 4) == (2, 2)

  def test_end_of_input(self):
    assert offset_to_line_col("ab\n", 3) == (2, 1)

  def test_context_lines_caret(self):
    context = get_context_lines("one\ntwo\nthree", 2, 3)
    assert context.splitlines() == [
        "   1: one",
        "   2: two",
        "        ^",
        "   3: three",
    ]


class TestFormatting:

  def test_format_parse_error(self):
    source = "let x 1 in x"
    with pytest.raises(ParseError) as excinfo:
      parse(source)
    assert excinfo.value.reason == Expected("=")
    assert format_parse_error(excinfo.value, source).splitlines() == [
        "Parse error at line 1, column 7:",
        "  Expected '='",
        "   1: let x 1 in x",
        "            ^",
    ]

  def test_format_evaluation_error_underlines_range(self):
    source = "let x = 1 in x(2)"
    error = evaluate(parse(source)).error
    lines = format_evaluation_error(error, source).splitlines()
    assert lines[0] == "Runtime error at line 1, column 14:"
    assert lines[1] == "  Expected a function, but got int 1"
    assert lines[-1] == " " * 19 + "^^^^"

  def test_parse_error_equality(self):
    assert ParseError(UnexpectedEOF(), 3) == ParseError(UnexpectedEOF(), 3)
    assert ParseError(UnexpectedEOF(), 3) != ParseError(UnexpectedEOF(), 4)

  def test_evaluation_error_message(self):
    error = EvaluationError(VariableMissing("x"), SourceRange(0, 1))
    assert str(error) == "Unbound variable: x (at 0..<1)"


class TestValueDisplay:

  def test_pretty(self):
    assert pretty(StringValue("hi")) == '"hi"'
    assert pretty(IntValue(-3)) == "-3"
    assert pretty(HtmlValue("<p>x</p>")) == "<p>x</p>"

  def test_pretty_function_renders_body_structurally(self):
    tree = parse("func(a, b){ <p>{ a }<i>{ f(b) }</i></p> }")
    value = FunctionValue(tree.expression.parameters, tree.expression.body)
    assert pretty(value) == "func(a, b) { <p>{ a }<i>{ f(b) }</i></p> }"

  def test_kind_names(self):
    assert [kind_name(v) for v in (StringValue(""), IntValue(0), HtmlValue(""))] == ["string", "int", "html"]

  def test_expected_function_description(self):
    assert ExpectedFunction(StringValue("s")).describe() == 'Expected a function, but got string "s"'


class TestSyntaxHelpers:

  def test_render_let(self):
    assert render(Let("x", IntLiteral(1), StringLiteral("a"))) == 'let x = 1 in "a"'

  def test_render_round_trips_through_parser(self):
    source = 'let f = func(x, y) { y } in <div><p>{ f(1, "a") }</p></div>'
    assert render(parse(source).simplify()) == source

  def test_map_children(self):
    call = Call(Variable("f"), (IntLiteral(1), IntLiteral(2)))
    mapped = map_children(call, lambda child: Variable("z"))
    assert mapped == Call(Variable("z"), (Variable("z"), Variable("z")))

  def test_map_children_leaves_leaves_alone(self):
    assert map_children(Variable("x"), lambda child: None) == Variable("x")

  def test_tag_and_function_equality(self):
    assert Tag("a", (Function(("x",), Variable("x")),)) == Tag("a", (Function(("x",), Variable("x")),))


class TestUtilities:

  @pytest.mark.parametrize("text,expected", [
      ("plain", "plain"),
      ("<b>", "&lt;b&gt;"),
      ("a & b", "a &amp; b"),
      ("&lt;", "&amp;lt;"),
  ])
  def test_html_escape(self, text, expected):
    assert html_escape(text) == expected

  def test_truncate(self):
    assert truncate("x" * 10, 8) == "xxxxx..."
    assert truncate("a\nb") == "a b"

  def test_format_bindings_sorted(self):
    assert format_bindings({"b": IntValue(2), "a": StringValue("x")}) == 'a = "x", b = 2'
