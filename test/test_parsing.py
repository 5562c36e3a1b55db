"""
Parser tests for tinylisp
AST shapes produced by each grammar production
"""

import pytest
from parsing import (
    ASTNode, NodeKind, LispParser, ParseResult, try_parse, create_debug_parser,
    defun_parts, find_nodes_by_kind, pretty_print_ast, ast_to_dict
)
from error_handling import LispParseError, LispSyntaxError, ErrorKind


def ident(name):
  return ASTNode(NodeKind.IDENTIFIER, name)


def const(value):
  return ASTNode(NodeKind.CONSTANT, value)


def app(*children):
  return ASTNode(NodeKind.APPLICATION, children=list(children))


def body_of(parser, text):
  """Parse a program and return its body expressions"""
  _, _, body = defun_parts(parser.parse_string(text))
  return body


class TestProgram:
  """Test the program and func productions"""

  def test_simple_function(self, parser):
    program = parser.parse_string("(defun test_function (x) (+ 2 x))")
    assert program.kind is NodeKind.PROGRAM
    assert len(program.children) == 1

    defun = program.children[0]
    assert defun.kind is NodeKind.DEFUN
    assert defun.value is None
    assert defun.param_count == 1
    assert defun.children == [
        ident("test_function"),
        ident("x"),
        app(ident("+"), const(2), ident("x")),
    ]

  def test_multiple_body_expressions(self, parser):
    source = "(defun test_function (x) + (- 5 3) (+ 2 x) (/ 8 (+ 2 2)))"
    name, params, body = defun_parts(parser.parse_string(source))
    assert name == ident("test_function")
    assert params == [ident("x")]
    assert body == [
        ident("+"),
        app(ident("-"), const(5), const(3)),
        app(ident("+"), const(2), ident("x")),
        app(ident("/"), const(8), app(ident("+"), const(2), const(2))),
    ]

  def test_empty_parameter_list(self, parser):
    name, params, body = defun_parts(parser.parse_string("(defun f () 1)"))
    assert name.value == "f"
    assert params == []
    assert body == [const(1)]

  def test_several_parameters(self, parser):
    _, params, body = defun_parts(parser.parse_string("(defun add3 (a b c) (+ a b c))"))
    assert [p.value for p in params] == ["a", "b", "c"]
    assert body[0].children[0] == ident("+")

  def test_empty_body(self, parser):
    program = parser.parse_string("(defun noop (x y))")
    _, params, body = defun_parts(program)
    assert len(params) == 2
    assert body == []

  def test_whitespace_and_newlines(self, parser):
    source = """
    (defun   f
       (x)
       (g x))
    """
    assert body_of(parser, source) == [app(ident("g"), ident("x"))]


class TestIf:
  """Test the conditional arity of if"""

  def test_if_with_else(self, parser):
    (node,) = body_of(parser, "(defun f () (if #t 1 2))")
    assert node.kind is NodeKind.IF
    assert node.children == [const(True), const(1), const(2)]

  def test_if_without_else(self, parser):
    (node,) = body_of(parser, "(defun f () (if #t 1))")
    assert node.kind is NodeKind.IF
    assert len(node.children) == 2

  def test_nested_if(self, parser):
    (node,) = body_of(parser, "(defun f (x) (if (< x 0) (if #f 1) (- x)))")
    assert len(node.children) == 3
    assert node.children[0] == app(ident("<"), ident("x"), const(0))
    assert node.children[1].kind is NodeKind.IF
    assert len(node.children[1].children) == 2
    assert node.children[2] == app(ident("-"), ident("x"))

  def test_if_missing_then_branch(self, parser):
    with pytest.raises(LispSyntaxError) as excinfo:
      parser.parse_string("(defun f () (if #t))")
    assert excinfo.value.expected == ["expression"]
    assert excinfo.value.got.startswith("RPAREN")

  def test_if_too_many_branches(self, parser):
    with pytest.raises(LispSyntaxError) as excinfo:
      parser.parse_string("(defun f () (if a b c d))")
    assert excinfo.value.expected == ["RPAREN"]
    assert excinfo.value.got.startswith("IDENTIFIER")


class TestApplication:
  """Test function application"""

  def test_operator_is_first_child(self, parser):
    (node,) = body_of(parser, "(defun f (x) (max x 1 #f))")
    assert node.kind is NodeKind.APPLICATION
    assert node.children[0] == ident("max")
    assert node.children[1:] == [ident("x"), const(1), const(False)]

  def test_no_operands(self, parser):
    (node,) = body_of(parser, "(defun f () (now))")
    assert node == app(ident("now"))

  def test_computed_operator(self, parser):
    (node,) = body_of(parser, "(defun f (g) ((g 1) 2))")
    assert node == app(app(ident("g"), const(1)), const(2))

  def test_empty_application(self, parser):
    with pytest.raises(LispSyntaxError) as excinfo:
      parser.parse_string("(defun f () ())")
    assert excinfo.value.expected == ["IDENTIFIER"]

  def test_constant_operator(self, parser):
    with pytest.raises(LispSyntaxError) as excinfo:
      parser.parse_string("(defun f () (1 2))")
    assert excinfo.value.expected == ["IDENTIFIER"]
    assert excinfo.value.got.startswith("NUMBER")

  def test_deep_nesting(self, parser):
    depth = 50
    source = "(defun f (x) " + "(g " * depth + "x" + ")" * depth + ")"
    (node,) = body_of(parser, source)
    for _ in range(depth):
      assert node.kind is NodeKind.APPLICATION
      node = node.children[1]
    assert node == ident("x")


class TestQuote:
  """Test quote forms and datums"""

  def test_quote_keyword(self, parser):
    (node,) = body_of(parser, "(defun f () (quote 5))")
    assert node.kind is NodeKind.QUOTE
    assert node.children == [const(5)]

  def test_quote_sugar(self, parser):
    (node,) = body_of(parser, "(defun f () '#t)")
    assert node.kind is NodeKind.QUOTE
    assert node.children == [const(True)]

  def test_list_datum(self, parser):
    (node,) = body_of(parser, "(defun f () '(1 (2 #f) ()))")
    (datum,) = node.children
    assert datum.kind is NodeKind.LIST
    assert datum.children[0] == const(1)
    assert datum.children[1] == ASTNode(NodeKind.LIST, children=[const(2), const(False)])
    assert datum.children[2] == ASTNode(NodeKind.LIST)

  def test_quote_as_operand(self, parser):
    (node,) = body_of(parser, "(defun f () (len (quote (1 2))))")
    assert node.children[0] == ident("len")
    assert node.children[1].kind is NodeKind.QUOTE

  def test_identifier_is_not_a_datum(self, parser):
    with pytest.raises(LispSyntaxError) as excinfo:
      parser.parse_string("(defun f () (quote x))")
    assert excinfo.value.expected == ["datum"]

  def test_bare_quote_keyword(self, parser):
    with pytest.raises(LispSyntaxError) as excinfo:
      parser.parse_string("(defun f () quote)")
    assert excinfo.value.expected == ["expression"]

  def test_unterminated_list_datum(self, parser):
    with pytest.raises(LispSyntaxError) as excinfo:
      parser.parse_string("(defun f () '(1 2")
    assert excinfo.value.expected == ["RPAREN"]
    assert excinfo.value.got == "END"


class TestTreeStructure:
  """Test parent links, equality and helpers"""

  def test_parent_links(self, parser):
    program = parser.parse_string("(defun f (x) (if x (g 1) '(2)))")
    assert program.parent is None

    def check(node):
      for child in node.children:
        assert child.parent is node
        check(child)

    check(program)

  def test_structural_equality_ignores_spans(self, parser):
    first = parser.parse_string("(defun f (x) (g x))")
    second = parser.parse_string("(defun   f (x)\n  (g   x))")
    assert first == second

  def test_constant_types_are_distinct(self):
    assert const(1) != const(True)
    assert const(0) != const(False)

  def test_node_spans(self, parser):
    source = "(defun f (x) (g 42))"
    program = parser.parse_string(source)
    constant = find_nodes_by_kind(program, NodeKind.CONSTANT)[0]
    assert source[constant.span.start:constant.span.end] == "42"

  def test_find_nodes_by_kind(self, parser):
    program = parser.parse_string("(defun f (x) (+ x 1) (* x 2) (if #t 3))")
    applications = find_nodes_by_kind(program, NodeKind.APPLICATION)
    assert [a.children[0].value for a in applications] == ["+", "*"]
    assert len(find_nodes_by_kind(program, NodeKind.CONSTANT)) == 4

  def test_defun_parts_rejects_other_nodes(self):
    with pytest.raises(ValueError):
      defun_parts(const(1))

  def test_pretty_print(self, parser):
    program = parser.parse_string("(defun f (x) (+ x 1))")
    assert pretty_print_ast(program) == (
        "PROGRAM\n"
        "  DEFUN\n"
        "    IDENTIFIER('f')\n"
        "    IDENTIFIER('x')\n"
        "    APPLICATION\n"
        "      IDENTIFIER('+')\n"
        "      IDENTIFIER('x')\n"
        "      CONSTANT(1)\n"
    )

  def test_ast_to_dict(self, parser):
    program = parser.parse_string("(defun f () #t)", filename="f.lisp")
    data = ast_to_dict(program)
    assert data["kind"] == "PROGRAM"
    defun = data["children"][0]
    assert defun["param_count"] == 0
    assert defun["children"][1] == {
        "kind": "CONSTANT",
        "value": True,
        "span": {"filename": "f.lisp", "start": 12, "end": 14},
        "children": [],
    }


class TestParseResult:
  """Test the non-raising parse entry point"""

  def test_success(self):
    result = try_parse("(defun f () 1)")
    assert result.ok
    assert result.error is None
    assert result.unwrap().kind is NodeKind.PROGRAM

  def test_syntax_failure(self):
    result = try_parse("(defun f (x)")
    assert not result.ok
    assert result.program is None
    assert result.error.kind is ErrorKind.SYNTAX
    with pytest.raises(LispSyntaxError):
      result.unwrap()

  def test_lexical_failure(self):
    result = try_parse("(defun f (x) [x])")
    assert not result.ok
    assert result.error.kind is ErrorKind.LEXICAL

  def test_result_type(self):
    assert isinstance(try_parse(""), ParseResult)


class TestParserReuse:
  """Test that one parser instance can run consecutive parses"""

  def test_sequential_parses(self, parser):
    with pytest.raises(LispParseError):
      parser.parse_string("(defun broken")
    program = parser.parse_string("(defun ok () 1)")
    assert defun_parts(program)[0].value == "ok"

  def test_independent_instances(self):
    first, second = LispParser(), LispParser()
    assert first.parse_string("(defun a () 1)") == second.parse_string("(defun a () 1)")

  def test_debug_trace(self, capsys):
    create_debug_parser().parse_string("(defun f () (g 1))")
    out = capsys.readouterr().out
    assert "Parsing program" in out
    assert "Parsing application" in out
    assert "Lexed: IDENTIFIER('g')" in out


class TestNestingLimit:
  """Test input nested deeper than the interpreter stack allows"""

  SOURCE = "(defun f (x) " + "(g " * 1000 + "x" + ")" * 1000 + ")"

  def test_raises_syntax_error(self, parser):
    with pytest.raises(LispSyntaxError) as excinfo:
      parser.parse_string(self.SOURCE)
    assert excinfo.value.expected == ["shallower nesting"]
    assert excinfo.value.line == 1

  def test_try_parse_returns_error(self):
    result = try_parse(self.SOURCE)
    assert not result.ok
    assert result.error.kind is ErrorKind.SYNTAX

  def test_parser_usable_afterwards(self, parser):
    with pytest.raises(LispSyntaxError):
      parser.parse_string(self.SOURCE)
    assert parser.parse_string("(defun f () 1)").kind is NodeKind.PROGRAM
