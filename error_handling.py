"""
Error handling for the tinylisp lexer and parser
Pure functions build and render error dicts; exception classes wrap them
"""

from typing import Dict, List, Optional, Tuple
from enum import Enum

from pyparsing import col, lineno


class ErrorKind(Enum):
    LEXICAL = "Lexical"
    SYNTAX = "Syntax"


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_parse_error(
    message: str,
    kind: ErrorKind,
    location: int,
    line: int,
    column: int,
    expected: Optional[List[str]] = None,
    got: Optional[str] = None,
    context: Optional[str] = None,
    filename: str = "<input>"
) -> Dict:
    """Create an immutable parse error structure"""
    return {
        'message': message,
        'kind': kind,
        'location': location,
        'line': line,
        'column': column,
        'expected': expected or [],
        'got': got,
        'context': context,
        'filename': filename,
    }


def format_parse_error(error: Dict) -> str:
    """Format parse error as string"""
    error_msg = (f"{error['kind'].value} error at {error['filename']}, "
                 f"line {error['line']}, column {error['column']}:\n")
    error_msg += f"  {error['message']}\n"

    if error['expected']:
        error_msg += f"  Expected: {', '.join(error['expected'])}\n"

    if error['got']:
        error_msg += f"  Got: {error['got']}\n"

    if error['context']:
        error_msg += f"  Context:\n{error['context']}\n"

    return error_msg.rstrip("\n")


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def locate(source_text: str, location: int) -> Tuple[int, int]:
    """Translate a character offset into a 1-based (line, column) pair"""
    return lineno(location, source_text), col(location, source_text)


def get_context_lines(source_text: str, line_num: int, col_num: int, context_lines: int = 2) -> str:
    """Get context lines around the error"""
    lines = source_text.split('\n')
    start_line = max(0, line_num - context_lines - 1)
    end_line = min(len(lines), line_num + context_lines)

    context_parts = []
    for i in range(start_line, end_line):
        line_prefix = f"{i+1:4d}: "
        context_parts.append(f"{line_prefix}{lines[i]}")
        if i == line_num - 1:  # Error line
            context_parts.append(f"{'':6}{' ' * (col_num - 1)}^ Error here")

    return '\n'.join(context_parts)


def describe_lexeme(text: str) -> str:
    """Describe what was actually found at the error location"""
    if not text:
        return "end of input"
    return repr(text)


def build_error_dict(
    source_text: str,
    location: int,
    message: str,
    kind: ErrorKind,
    expected: Optional[List[str]] = None,
    got: Optional[str] = None,
    filename: str = "<input>"
) -> Dict:
    """Locate an error in its source and attach a context excerpt"""
    line_num, col_num = locate(source_text, location)
    context = get_context_lines(source_text, line_num, col_num)
    return make_parse_error(
        message=message,
        kind=kind,
        location=location,
        line=line_num,
        column=col_num,
        expected=expected,
        got=got,
        context=context,
        filename=filename
    )


# ============================================================================
# EXCEPTION CLASSES
# ============================================================================

class LispParseError(Exception):
    """Base class for every error that aborts a tinylisp parse"""
    def __init__(self, message: str, kind: ErrorKind = ErrorKind.SYNTAX, location: int = 0,
                 line: int = 0, column: int = 0, expected: Optional[List[str]] = None,
                 got: Optional[str] = None, context: Optional[str] = None,
                 filename: str = "<input>"):
        self.message = message
        self.kind = kind
        self.location = location
        self.line = line
        self.column = column
        self.expected = expected or []
        self.got = got
        self.context = context
        self.filename = filename
        super().__init__(message)

    @classmethod
    def from_dict(cls, error: Dict) -> "LispParseError":
        return cls(
            message=error['message'],
            kind=error['kind'],
            location=error['location'],
            line=error['line'],
            column=error['column'],
            expected=error['expected'],
            got=error['got'],
            context=error['context'],
            filename=error['filename']
        )

    def to_dict(self) -> Dict:
        return make_parse_error(
            self.message, self.kind, self.location, self.line, self.column,
            self.expected, self.got, self.context, self.filename
        )

    def __str__(self) -> str:
        if not self.line:
            return f"{self.kind.value} error: {self.message}"
        return format_parse_error(self.to_dict())


class LispLexicalError(LispParseError):
    """An input character starts no valid token"""

    @classmethod
    def at(cls, source_text: str, location: int, filename: str = "<input>") -> "LispLexicalError":
        char = source_text[location]
        error = build_error_dict(
            source_text, location,
            message=f"Unrecognized character {char!r}",
            kind=ErrorKind.LEXICAL,
            expected=["a token"],
            got=describe_lexeme(char),
            filename=filename
        )
        return cls.from_dict(error)


class LispSyntaxError(LispParseError):
    """The token required at the lookahead position was not present"""

    @classmethod
    def at(cls, source_text: str, location: int, expected: str, found: str,
           lexeme: str = "", filename: str = "<input>") -> "LispSyntaxError":
        got = found if not lexeme else f"{found} {describe_lexeme(lexeme)}"
        error = build_error_dict(
            source_text, location,
            message=f"Expected {expected} but found {found}",
            kind=ErrorKind.SYNTAX,
            expected=[expected],
            got=got,
            filename=filename
        )
        return cls.from_dict(error)
