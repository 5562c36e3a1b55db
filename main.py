"""
Tinylisp - Main Entry Point
Parses a single-defun tinylisp program and prints its abstract syntax tree
"""

import sys
import json
import argparse
from typing import Optional, List

from lexing import TokenKind
from parsing import create_parser, create_debug_parser, pretty_print_ast, ast_to_dict
from error_handling import LispParseError


VERSION = "tinylisp 0.1.0"


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      prog='tinylisp',
      description='Tinylisp parser - builds and prints the AST of one defun',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s program.lisp                       # Parse a file and show the AST
  %(prog)s -e "(defun f (x) (+ x 1))"         # Parse source given inline
  %(prog)s --tokens program.lisp              # Show the token stream
  %(prog)s --json program.lisp                # Show the AST as JSON
  cat program.lisp | %(prog)s -               # Read from standard input
        """
  )

  source = parser.add_mutually_exclusive_group()

  source.add_argument(
      'script',
      nargs='?',
      help="tinylisp source file ('-' for standard input)"
  )

  source.add_argument(
      '-e', '--expr',
      metavar='SOURCE',
      help='Parse SOURCE instead of a file'
  )

  parser.add_argument(
      '--tokens',
      action='store_true',
      help='Show the token stream instead of the AST'
  )

  parser.add_argument(
      '--json',
      action='store_true',
      help='Show the AST as JSON'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Trace lexer and parser steps'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=VERSION
  )

  return parser


def read_source(script_path: str) -> str:
  """Read program text from a file, or standard input for '-'"""
  if script_path == '-':
    return sys.stdin.read()
  with open(script_path, 'r', encoding='utf-8') as f:
    return f.read()


def show_tokens(source: str, filename: str, debug: bool = False) -> None:
  """Print one token per line"""
  parser = create_debug_parser() if debug else create_parser()
  for token in parser.tokenize(source, filename):
    if token.kind is TokenKind.END:
      break
    print(f"{token.span.start:5d}  {token}")


def show_ast(source: str, filename: str, as_json: bool = False, debug: bool = False) -> None:
  """Parse source and print its AST"""
  parser = create_debug_parser() if debug else create_parser()
  program = parser.parse_string(source, filename)

  if as_json:
    print(json.dumps(ast_to_dict(program), indent=2))
  else:
    print(pretty_print_ast(program), end='')


def run(source: str, filename: str, args: argparse.Namespace) -> int:
  """Run the requested action, returning the process exit status"""
  try:
    if args.tokens:
      show_tokens(source, filename, debug=args.debug)
    else:
      show_ast(source, filename, as_json=args.json, debug=args.debug)
  except LispParseError as e:
    print(f"Parse error in '{filename}':\n{e}")
    return 1
  except Exception as e:
    print(f"Unexpected error while processing '{filename}': {e}")
    if args.debug:
      import traceback
      traceback.print_exc()
    return 1
  return 0


def main(argv: Optional[List[str]] = None) -> None:
  """Main entry point for tinylisp"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args(argv)

  if args.expr is not None:
    sys.exit(run(args.expr, '<expr>', args))

  if not args.script:
    arg_parser.print_help()
    sys.exit(1)

  filename = '<stdin>' if args.script == '-' else args.script
  try:
    source = read_source(args.script)
  except FileNotFoundError:
    print(f"Error: Script file '{args.script}' not found")
    print(f"  Hint: Check the file path and make sure the file exists")
    sys.exit(1)
  except PermissionError:
    print(f"Error: Permission denied reading '{args.script}'")
    print(f"  Hint: Make sure you have read permissions for this file")
    sys.exit(1)
  except UnicodeDecodeError as e:
    print(f"Error: Cannot decode file '{args.script}': {e}")
    print(f"  Hint: Make sure the file is a text file with UTF-8 encoding")
    sys.exit(1)

  sys.exit(run(source, filename, args))


if __name__ == "__main__":
  main()
