"""
hilang Programming Language - Main Entry Point
A minimal pipeline language: values flow through stages joined by ->
"""

import sys
import argparse
from pathlib import Path
from typing import List, Optional

from error_handling import HilangLexError, HilangParseError, HilangRuntimeError
from parsing import create_parser, create_debug_parser
from semantics import analyze_program, pretty_print_ast
from interpreter import create_interpreter, create_debug_interpreter

VERSION = "hilang v0.1.0"


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      prog='hilang',
      description='hilang - a minimal pipeline-oriented language',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s fizzbuzz.hi            # Run a hilang program
  %(prog)s --parse fizzbuzz.hi    # Parse and show the AST
  %(prog)s --tokens fizzbuzz.hi   # Show the token stream
  %(prog)s --debug fizzbuzz.hi    # Run with tracing on stderr
        """
  )

  parser.add_argument(
      'script',
      help='hilang program file to execute'
  )

  parser.add_argument(
      '--parse',
      action='store_true',
      help='Parse file and show the AST instead of running it'
  )

  parser.add_argument(
      '--tokens',
      action='store_true',
      help='Tokenize file and show the tokens instead of running it'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Enable debug output for all stages'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=VERSION
  )

  return parser


def read_source(script_path: str) -> str:
  """Read a program file, exiting with a message when it cannot be read"""
  try:
    return Path(script_path).read_text(encoding='utf-8')
  except FileNotFoundError:
    print(f"Cannot open file: {script_path}", file=sys.stderr)
  except PermissionError:
    print(f"Cannot open file: {script_path} (permission denied)", file=sys.stderr)
  except OSError as e:
    print(f"Cannot open file: {script_path} ({e.strerror})", file=sys.stderr)
  except UnicodeDecodeError as e:
    print(f"Cannot read file: {script_path}: {e}", file=sys.stderr)
  sys.exit(1)


def show_tokens(script_path: str, debug: bool = False) -> None:
  """Tokenize a program file and print one token per line"""
  source = read_source(script_path)
  parser = create_debug_parser() if debug else create_parser()
  for token in parser.tokenize(source, script_path):
    print(f"{token.span}\t{token}")


def show_ast(script_path: str, debug: bool = False) -> None:
  """Parse and analyze a program file and print its AST"""
  source = read_source(script_path)
  parser = create_debug_parser() if debug else create_parser()
  cst = parser.parse_string(source, script_path)
  ast = analyze_program(cst, debug)
  print(pretty_print_ast(ast), end='')


def run_script_file(script_path: str, debug: bool = False) -> None:
  """Run a hilang program file"""
  source = read_source(script_path)
  interpreter = create_debug_interpreter() if debug else create_interpreter()
  if debug:
    print(f"Running {script_path}...", file=sys.stderr)
  interpreter.run_source(source, script_path)


def main(argv: Optional[List[str]] = None) -> int:
  """Main entry point for hilang"""
  args = create_arg_parser().parse_args(argv)

  try:
    if args.tokens:
      show_tokens(args.script, debug=args.debug)
    elif args.parse:
      show_ast(args.script, debug=args.debug)
    else:
      run_script_file(args.script, debug=args.debug)
  except HilangLexError as e:
    print(f"Lex error in '{args.script}': {e}", file=sys.stderr)
    return 1
  except HilangParseError as e:
    print(f"Cannot parse file: {args.script}\n{e}", file=sys.stderr)
    return 1
  except HilangRuntimeError as e:
    print(f"Cannot execute successfully: {args.script}\n{e}", file=sys.stderr)
    return 1

  return 0


if __name__ == "__main__":
  sys.exit(main())
