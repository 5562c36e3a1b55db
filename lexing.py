"""
Tinylisp Lexer
Pull-based maximal-munch tokenizer for the tinylisp language
"""

from typing import Iterator, List, Optional, Union
from dataclasses import dataclass
from enum import Enum
import string

from error_handling import LispLexicalError


class TokenKind(Enum):
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    IDENTIFIER = "IDENTIFIER"
    IF = "IF"
    DEFUN = "DEFUN"
    QUOTE = "QUOTE"
    END = "END"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SourceSpan:
    """Character offsets of a lexeme in its source text"""
    filename: str
    start: int
    end: int
    text: str = ""

    def __str__(self) -> str:
        return f"{self.filename}:{self.start}-{self.end}"


TokenValue = Union[int, bool, str, None]


@dataclass(frozen=True)
class Token:
    """Tinylisp token with source information"""
    kind: TokenKind
    value: TokenValue
    span: SourceSpan

    def __str__(self) -> str:
        if self.value is None:
            return f"{self.kind}"
        return f"{self.kind}({self.value!r})"


# Character classes
DIGITS = frozenset(string.digits)
INITIAL = frozenset(string.ascii_letters + "!$&*/:<=>?~_^")
SUBSEQUENT = INITIAL | DIGITS | frozenset(".+-")
# Identifiers that may only ever be a single character
PECULIAR = frozenset("+-")

KEYWORDS = {
    "if": TokenKind.IF,
    "defun": TokenKind.DEFUN,
    "quote": TokenKind.QUOTE,
}


class LispLexer:
    """Tinylisp lexer producing one token per next_token() call"""

    def __init__(self, text: str, filename: str = "<input>", debug: bool = False):
        self.text = text
        self.filename = filename
        self.debug = debug
        self.pos = 0

    def next_token(self) -> Token:
        """Return the next token, or an END token once the input is exhausted"""
        self._skip_whitespace()

        if self.pos >= len(self.text):
            token = Token(TokenKind.END, None, SourceSpan(self.filename, self.pos, self.pos))
        else:
            token = self._match_token_at_position(self.pos)
            if token is None:
                raise LispLexicalError.at(self.text, self.pos, self.filename)
            self.pos = token.span.end

        if self.debug:
            print(f"Lexed: {token} at {token.span}")
        return token

    def tokenize(self) -> List[Token]:
        """Drain the lexer; the returned list always ends with END"""
        tokens = []
        while True:
            token = self.next_token()
            tokens.append(token)
            if token.kind is TokenKind.END:
                return tokens

    def __iter__(self) -> Iterator[Token]:
        while True:
            token = self.next_token()
            if token.kind is TokenKind.END:
                return
            yield token

    def _skip_whitespace(self):
        text = self.text
        pos = self.pos
        while pos < len(text) and text[pos].isspace():
            pos += 1
        self.pos = pos

    def _match_token_at_position(self, pos: int) -> Optional[Token]:
        """Match a token at a specific position using priority order"""
        text = self.text
        char = text[pos]

        # Priority 1: Delimiters
        if char == ")":
            return self._make_token(TokenKind.RPAREN, None, pos, pos + 1)
        if char == "(":
            return self._make_token(TokenKind.LPAREN, None, pos, pos + 1)
        if char == "'":
            return self._make_token(TokenKind.QUOTE, None, pos, pos + 1)

        # Priority 2: Numbers, a lone '-' falls through to identifiers
        if char in DIGITS or (char == "-" and self._peek(pos + 1) in DIGITS):
            end = self._scan(pos + 1, DIGITS)
            return self._make_token(TokenKind.NUMBER, int(text[pos:end]), pos, end)

        # Priority 3: Booleans
        if char == "#":
            flag = self._peek(pos + 1)
            if flag in ("t", "f"):
                return self._make_token(TokenKind.BOOLEAN, flag == "t", pos, pos + 2)
            return None

        # Priority 4: Identifiers and keywords
        if char in INITIAL:
            end = self._scan(pos + 1, SUBSEQUENT)
            lexeme = text[pos:end]
            keyword = KEYWORDS.get(lexeme)
            if keyword is not None:
                return self._make_token(keyword, None, pos, end)
            return self._make_token(TokenKind.IDENTIFIER, lexeme, pos, end)

        if char in PECULIAR:
            return self._make_token(TokenKind.IDENTIFIER, char, pos, pos + 1)

        return None

    def _scan(self, pos: int, accepted: frozenset) -> int:
        """Extend a match while characters stay in the accepted class"""
        text = self.text
        while pos < len(text) and text[pos] in accepted:
            pos += 1
        return pos

    def _peek(self, pos: int) -> str:
        return self.text[pos] if pos < len(self.text) else ""

    def _make_token(self, kind: TokenKind, value: TokenValue, start: int, end: int) -> Token:
        span = SourceSpan(self.filename, start, end, self.text[start:end])
        return Token(kind, value, span)


def tokenize(text: str, filename: str = "<input>") -> List[Token]:
    """Tokenize tinylisp source code"""
    return LispLexer(text, filename).tokenize()
