"""
Tinylisp Parser
Recursive-descent parser building an AST for a single top-level defun

Grammar:

    program     = <func>
    func        = (defun <identifier> (<identifier>*) <expression>*)
    expression  = <constant> | <identifier>
                | (if <expression> <expression> [<expression>])
                | (quote <datum>) | '<datum>
                | <application>
    application = (<expression> <expression>*)
    datum       = <boolean> | <number> | (<datum>*)
"""

from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, field
from enum import Enum

from lexing import LispLexer, SourceSpan, Token, TokenKind
from error_handling import LispParseError, LispSyntaxError


class NodeKind(Enum):
    PROGRAM = "PROGRAM"
    DEFUN = "DEFUN"
    IDENTIFIER = "IDENTIFIER"
    CONSTANT = "CONSTANT"
    IF = "IF"
    QUOTE = "QUOTE"
    APPLICATION = "APPLICATION"
    LIST = "LIST"

    def __str__(self) -> str:
        return self.value


@dataclass(eq=False)
class ASTNode:
    """Abstract syntax tree node owning its children"""
    kind: NodeKind
    value: Any = None
    children: List['ASTNode'] = field(default_factory=list)
    parent: Optional['ASTNode'] = field(default=None, repr=False)
    span: Optional[SourceSpan] = field(default=None, repr=False)
    param_count: Optional[int] = None

    def add_child(self, child: 'ASTNode') -> 'ASTNode':
        child.parent = self
        self.children.append(child)
        return child

    def __eq__(self, other) -> bool:
        # Structural equality; parent and span are ignored
        if not isinstance(other, ASTNode):
            return NotImplemented
        return (self.kind is other.kind
                and type(self.value) is type(other.value)
                and self.value == other.value
                and self.param_count == other.param_count
                and self.children == other.children)

    def __str__(self) -> str:
        label = f"{self.kind}" if self.value is None else f"{self.kind}({self.value!r})"
        if self.children:
            children_str = ", ".join(str(child) for child in self.children)
            return f"{label}[{children_str}]"
        return label


@dataclass(frozen=True)
class ParseResult:
    """Outcome of a parse: either a program or the error that aborted it"""
    program: Optional[ASTNode] = None
    error: Optional[LispParseError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> ASTNode:
        if self.error is not None:
            raise self.error
        return self.program


CONSTANT_TOKENS = (TokenKind.NUMBER, TokenKind.BOOLEAN)


class LispParser:
    """Recursive-descent parser over LispLexer output

    One parse runs at a time per instance; the lexer and lookahead token are
    replaced at the start of every parse_string call.
    """

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.text = ""
        self.filename = "<input>"
        self.lexer: Optional[LispLexer] = None
        self.lookahead: Optional[Token] = None

    def parse_file(self, filepath: str) -> ASTNode:
        """Parse a tinylisp source file"""
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise LispParseError(f"File not found: {filepath}", filename=filepath)
        except UnicodeDecodeError as e:
            raise LispParseError(f"Cannot decode file {filepath}: {e}", filename=filepath)
        except OSError as e:
            raise LispParseError(f"Cannot read file {filepath}: {e}", filename=filepath)
        return self.parse_string(content, filepath)

    def parse_string(self, text: str, filename: str = "<input>") -> ASTNode:
        """Parse tinylisp source code from string"""
        self.text = text
        self.filename = filename
        self.lexer = LispLexer(text, filename, self.debug)
        self.lookahead = self.lexer.next_token()
        try:
            return self._program()
        except RecursionError:
            raise self._error("shallower nesting") from None

    def tokenize(self, text: str, filename: str = "<input>") -> List[Token]:
        """Tokenize tinylisp source code"""
        return LispLexer(text, filename, self.debug).tokenize()

    # ------------------------------------------------------------------
    # Token plumbing
    # ------------------------------------------------------------------

    def _accept(self, kind: TokenKind) -> Optional[Token]:
        """Consume and return the lookahead if it has the given kind"""
        token = self.lookahead
        if token.kind is not kind:
            return None
        if kind is not TokenKind.END:
            self.lookahead = self.lexer.next_token()
        return token

    def _expect(self, kind: TokenKind) -> Token:
        token = self._accept(kind)
        if token is None:
            raise self._error(str(kind))
        return token

    def _peek(self, *kinds: TokenKind) -> bool:
        return self.lookahead.kind in kinds

    def _error(self, expected: str) -> LispSyntaxError:
        found = self.lookahead
        return LispSyntaxError.at(
            self.text, found.span.start, expected, str(found.kind),
            lexeme=found.span.text, filename=self.filename
        )

    def _trace(self, production: str):
        if self.debug:
            print(f"Parsing {production}: lookahead={self.lookahead}")

    # ------------------------------------------------------------------
    # Grammar productions
    # ------------------------------------------------------------------

    def _program(self) -> ASTNode:
        self._trace("program")
        program = ASTNode(NodeKind.PROGRAM, span=self.lookahead.span)
        self._func(program)
        self._expect(TokenKind.END)
        return program

    def _func(self, program: ASTNode):
        self._trace("func")
        opener = self._expect(TokenKind.LPAREN)
        self._expect(TokenKind.DEFUN)
        defun = program.add_child(ASTNode(NodeKind.DEFUN, span=opener.span))

        self._identifier(defun)

        self._expect(TokenKind.LPAREN)
        params = 0
        while self._peek(TokenKind.IDENTIFIER):
            self._identifier(defun)
            params += 1
        self._expect(TokenKind.RPAREN)
        defun.param_count = params

        while not self._peek(TokenKind.RPAREN, TokenKind.END):
            self._expression(defun)
        self._expect(TokenKind.RPAREN)

    def _identifier(self, parent: ASTNode):
        token = self._expect(TokenKind.IDENTIFIER)
        parent.add_child(ASTNode(NodeKind.IDENTIFIER, token.value, span=token.span))

    def _expression(self, parent: ASTNode):
        self._trace("expression")
        token = self.lookahead

        if token.kind in CONSTANT_TOKENS:
            self._accept(token.kind)
            parent.add_child(ASTNode(NodeKind.CONSTANT, token.value, span=token.span))
            return

        if token.kind is TokenKind.IDENTIFIER:
            self._identifier(parent)
            return

        # 'datum takes no parentheses
        if token.kind is TokenKind.QUOTE and token.span.text == "'":
            self._accept(TokenKind.QUOTE)
            quote = parent.add_child(ASTNode(NodeKind.QUOTE, span=token.span))
            self._datum(quote)
            return

        if not self._accept(TokenKind.LPAREN):
            raise self._error("expression")

        head = self.lookahead
        if self._accept(TokenKind.IF):
            self._if(parent, head)
        elif head.kind is TokenKind.QUOTE and head.span.text == "quote":
            self._accept(TokenKind.QUOTE)
            quote = parent.add_child(ASTNode(NodeKind.QUOTE, span=head.span))
            self._datum(quote)
        else:
            self._application(parent)
        self._expect(TokenKind.RPAREN)

    def _if(self, parent: ASTNode, keyword: Token):
        self._trace("if")
        node = parent.add_child(ASTNode(NodeKind.IF, span=keyword.span))
        self._expression(node)
        self._expression(node)
        # Optional else branch
        if not self._peek(TokenKind.RPAREN, TokenKind.END):
            self._expression(node)

    def _application(self, parent: ASTNode):
        self._trace("application")
        # Operator must name a function or compute one
        if not self._peek(TokenKind.IDENTIFIER, TokenKind.LPAREN):
            raise self._error(str(TokenKind.IDENTIFIER))

        node = parent.add_child(ASTNode(NodeKind.APPLICATION, span=self.lookahead.span))
        self._expression(node)
        while not self._peek(TokenKind.RPAREN, TokenKind.END):
            self._expression(node)

    def _datum(self, parent: ASTNode):
        self._trace("datum")
        token = self.lookahead

        if token.kind in CONSTANT_TOKENS:
            self._accept(token.kind)
            parent.add_child(ASTNode(NodeKind.CONSTANT, token.value, span=token.span))
            return

        if not self._accept(TokenKind.LPAREN):
            raise self._error("datum")

        node = parent.add_child(ASTNode(NodeKind.LIST, span=token.span))
        while not self._peek(TokenKind.RPAREN, TokenKind.END):
            self._datum(node)
        self._expect(TokenKind.RPAREN)


# Factory functions for creating parsers
def create_parser(debug: bool = False) -> LispParser:
    """Create a tinylisp parser"""
    return LispParser(debug=debug)


def create_debug_parser() -> LispParser:
    """Create a tinylisp parser with debug enabled"""
    return LispParser(debug=True)


def try_parse(text: str, filename: str = "<input>") -> ParseResult:
    """Parse without raising; the caller decides how to present a failure"""
    try:
        return ParseResult(program=create_parser().parse_string(text, filename))
    except LispParseError as e:
        return ParseResult(error=e)


# Utility functions for working with the AST
def find_nodes_by_kind(ast: ASTNode, kind: NodeKind) -> List[ASTNode]:
    """Find all nodes of a specific kind in the AST"""
    result = []

    def search(node: ASTNode):
        if node.kind is kind:
            result.append(node)
        for child in node.children:
            search(child)

    search(ast)
    return result


def defun_parts(defun: ASTNode) -> Tuple[ASTNode, List[ASTNode], List[ASTNode]]:
    """Split a DEFUN node into (name, parameters, body)"""
    if defun.kind is NodeKind.PROGRAM:
        defun = defun.children[0]
    if defun.kind is not NodeKind.DEFUN:
        raise ValueError(f"Expected a DEFUN node, got {defun.kind}")
    name = defun.children[0]
    split = 1 + (defun.param_count or 0)
    return name, defun.children[1:split], defun.children[split:]


def pretty_print_ast(ast: ASTNode, indent: int = 0) -> str:
    """Pretty print an AST node for debugging"""
    result = "  " * indent + f"{ast.kind}"
    if ast.value is not None:
        result += f"({repr(ast.value)})"
    result += "\n"

    for child in ast.children:
        result += pretty_print_ast(child, indent + 1)

    return result


def ast_to_dict(ast: ASTNode) -> Dict[str, Any]:
    """Convert AST to dictionary representation"""
    result = {
        "kind": ast.kind.value,
        "value": ast.value,
        "span": {
            "filename": ast.span.filename,
            "start": ast.span.start,
            "end": ast.span.end,
        } if ast.span else None,
        "children": [ast_to_dict(child) for child in ast.children]
    }
    if ast.param_count is not None:
        result["param_count"] = ast.param_count
    return result


if __name__ == "__main__":
    parser = create_debug_parser()
    try:
        result = parser.parse_string("(defun test_function (x) + (- 5 3) (+ 2 x) (/ 8 (+ 2 2)))")
        print("\nProgram parse result:")
        print(pretty_print_ast(result))
    except LispParseError as e:
        print(f"Parse error: {e}")
