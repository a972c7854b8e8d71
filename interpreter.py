"""
hilang Interpreter - Pure Functional Style
Tree-walking evaluator threading one value and the environment through every stage
Side effects (output, input) handled at the boundary through the execution context
"""

import sys
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from error_handling import HilangRuntimeError, HilangNameError, HilangTypeError
from parsing import create_parser
from semantics import analyze_program
from utilities import is_value_dict, check_integer_range
from stdlib import (
    make_integer,
    make_text,
    make_boolean,
    make_tuple,
    make_unit,
    hilang_output,
    hilang_input,
    CONVERSIONS,
    BINARY_OPERATORS,
)


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def coerce_value(value: Any) -> Dict:
  """Turn a host value into a runtime value; runtime values pass through"""
  if is_value_dict(value):
    return value
  if isinstance(value, bool):
    return make_boolean(value)
  if isinstance(value, int):
    return make_integer(check_integer_range(value, "int"))
  if isinstance(value, str):
    return make_text(value)
  if value is None:
    return make_unit()
  if isinstance(value, tuple) and len(value) == 2:
    return make_tuple(coerce_value(value[0]), coerce_value(value[1]))
  raise HilangTypeError(f"Cannot use {type(value).__name__} as a hilang value")


def make_runtime_env(bindings: Optional[Mapping[str, Any]] = None) -> Dict:
  """Create an immutable runtime environment"""
  return {
      'bindings': {name: coerce_value(value) for name, value in (bindings or {}).items()}
  }


def env_bind_value(env: Dict, name: str, value: Dict) -> Dict:
  """Return new environment with name bound to value"""
  return {
      **env,
      'bindings': {**env['bindings'], name: value}
  }


def env_lookup_value(env: Dict, name: str) -> Optional[Dict]:
  """Look up a name in the environment"""
  return env['bindings'].get(name)


def _print_line(line: str) -> None:
  print(line)


def _read_line() -> str:
  return sys.stdin.readline()


def make_execution_context(output: Optional[Callable[[str], None]] = None,
                           input: Optional[Callable[[], str]] = None,
                           debug: bool = False,
                           filename: str = "<input>") -> Dict:
  """Create the execution context holding the program's I/O boundary"""
  return {
      'output': output or _print_line,
      'input': input or _read_line,
      'debug': debug,
      'filename': filename
  }


# ============================================================================
# EVALUATION
# ============================================================================

def eval_ast(ast_node: Dict, stream: Dict, env: Dict, context: Optional[Dict] = None) -> Tuple[Dict, Dict]:
  """
  Evaluate an AST node against the incoming value.
  Returns (result_value, updated_environment).
  """
  if context is None:
    context = make_execution_context()

  node_type = ast_node['type']

  if context['debug']:
    print(f"Evaluating: {node_type} <- {stream['type']}", file=sys.stderr)

  try:
    if node_type == "PIPELINE":
      return eval_pipeline(ast_node, stream, env, context)
    elif node_type == "LITERAL":
      return eval_literal(ast_node, stream, env, context)
    elif node_type == "CONVERT":
      return eval_convert(ast_node, stream, env, context)
    elif node_type == "STORE":
      return eval_store(ast_node, stream, env, context)
    elif node_type == "LOAD":
      return eval_load(ast_node, stream, env, context)
    elif node_type == "TUPLE":
      return eval_tuple(ast_node, stream, env, context)
    elif node_type == "BINARY_OP":
      return eval_binary_op(ast_node, stream, env, context)
    elif node_type == "OUTPUT":
      return hilang_output(stream, context), env
    elif node_type == "INPUT":
      return hilang_input(context), env
    elif node_type == "PASS":
      return make_unit(), env
    elif node_type == "GROUP":
      return eval_ast(ast_node['children'][0], stream, env, context)
    elif node_type == "ALTERNATION":
      return eval_alternation(ast_node, stream, env, context)
    elif node_type == "LOOP":
      return eval_loop(ast_node, stream, env, context)
    else:
      raise HilangRuntimeError(f"Unknown node type: {node_type}")
  except HilangRuntimeError as e:
    # Report the innermost failing stage
    if e.span is None:
      e.span = ast_node['span']
    raise


def eval_pipeline(ast_node: Dict, stream: Dict, env: Dict, context: Dict) -> Tuple[Dict, Dict]:
  """Feed each stage's result into the next stage"""
  for stage in ast_node['children']:
    stream, env = eval_ast(stage, stream, env, context)
  return stream, env


def eval_literal(ast_node: Dict, stream: Dict, env: Dict, context: Dict) -> Tuple[Dict, Dict]:
  """Evaluate string literal; the incoming value is ignored"""
  return make_text(ast_node['value']), env


def eval_convert(ast_node: Dict, stream: Dict, env: Dict, context: Dict) -> Tuple[Dict, Dict]:
  """Evaluate int / str conversion of the incoming value"""
  return CONVERSIONS[ast_node['value']](stream), env


def eval_store(ast_node: Dict, stream: Dict, env: Dict, context: Dict) -> Tuple[Dict, Dict]:
  """Bind the incoming value and pass it through unchanged"""
  return stream, env_bind_value(env, ast_node['value'], stream)


def eval_load(ast_node: Dict, stream: Dict, env: Dict, context: Dict) -> Tuple[Dict, Dict]:
  """Read a variable; the incoming value is ignored"""
  name = ast_node['value']
  value = env_lookup_value(env, name)

  if value is None:
    raise HilangNameError(f"Variable '{name}' is not set")

  return value, env


def eval_tuple(ast_node: Dict, stream: Dict, env: Dict, context: Dict) -> Tuple[Dict, Dict]:
  """Evaluate both sides against the same incoming value, left first"""
  left_ast, right_ast = ast_node['children']
  left_val, env = eval_ast(left_ast, stream, env, context)
  right_val, env = eval_ast(right_ast, stream, env, context)
  return make_tuple(left_val, right_val), env


def eval_binary_op(ast_node: Dict, stream: Dict, env: Dict, context: Dict) -> Tuple[Dict, Dict]:
  """Apply a binary operator to the incoming Tuple"""
  op_func = BINARY_OPERATORS[ast_node['value']]
  return op_func(stream), env


def eval_guarded(branch: Dict, stream: Dict, env: Dict, context: Dict) -> Tuple[bool, Dict, Dict]:
  """
  Run a guard and, when it holds, its action.
  Returns (taken, result_value, updated_environment).
  """
  verdict, env = eval_ast(branch['guard'], stream, env, context)
  if verdict['type'] != "Boolean":
    raise HilangTypeError(f"Guard must produce Boolean, got {verdict['type']}")
  if not verdict['value']:
    return False, verdict, env
  result, env = eval_ast(branch['action'], verdict, env, context)
  return True, result, env


def eval_alternation(ast_node: Dict, stream: Dict, env: Dict, context: Dict) -> Tuple[Dict, Dict]:
  """Try branches in source order; at most one action runs"""
  for branch in ast_node['value']['branches']:
    taken, result, env = eval_guarded(branch, stream, env, context)
    if taken:
      return result, env

  default = ast_node['value']['default']
  if default is not None:
    return eval_ast(default, stream, env, context)
  return make_unit(), env


def eval_loop(ast_node: Dict, stream: Dict, env: Dict, context: Dict) -> Tuple[Dict, Dict]:
  """Check the guard before every iteration; each action result feeds the next one"""
  body = ast_node['value']
  while True:
    taken, stream, env = eval_guarded(body, stream, env, context)
    if not taken:
      return make_unit(), env


# ============================================================================
# PROGRAM EVALUATION
# ============================================================================

def eval_program(ast: Dict, env: Optional[Dict] = None, stream: Optional[Dict] = None,
                 context: Optional[Dict] = None) -> Tuple[Dict, Dict]:
  """
  Evaluate a whole program and return (final_value, final_env).
  The environment lives for this one run only.
  """
  if env is None:
    env = make_runtime_env()
  if stream is None:
    stream = make_unit()
  if context is None:
    context = make_execution_context()

  return eval_ast(ast, stream, env, context)


def run(source: str, *, filename: str = "<input>",
        env: Optional[Mapping[str, Any]] = None,
        stream: Any = None,
        output: Optional[Callable[[str], None]] = None,
        input: Optional[Callable[[], str]] = None,
        debug: bool = False) -> Dict:
  """
  Parse and evaluate a hilang program.

  Args:
    source: Program text
    filename: Name used in error locations
    env: Bindings available before the first stage
    stream: Initial pipeline value (Unit when omitted)
    output: Callable receiving each output line (print by default)
    input: Callable returning one input line (stdin by default)
    debug: Trace parsing and evaluation on stderr

  Returns:
    The value produced by the last stage

  Raises:
    HilangLexError, HilangParseError, HilangRuntimeError
  """
  parser = create_parser(debug)
  cst = parser.parse_string(source, filename)
  ast = analyze_program(cst, debug)
  context = make_execution_context(output, input, debug, filename)
  value, _ = eval_program(ast, make_runtime_env(env), coerce_value(stream), context)
  return value


# ============================================================================
# FACTORY FUNCTIONS (for the command line wrapper)
# ============================================================================

class HilangInterpreter:
  """Interpreter bound to an output sink, an input source and a debug setting"""

  def __init__(self, debug: bool = False,
               output: Optional[Callable[[str], None]] = None,
               input: Optional[Callable[[], str]] = None):
    self.debug = debug
    self.output = output
    self.input = input
    self.parser = create_parser(debug)

  def interpret_program(self, ast: Dict, filename: str = "<input>",
                        env: Optional[Mapping[str, Any]] = None, stream: Any = None) -> Dict:
    context = make_execution_context(self.output, self.input, self.debug, filename)
    value, _ = eval_program(ast, make_runtime_env(env), coerce_value(stream), context)
    return value

  def run_source(self, text: str, filename: str = "<input>",
                 env: Optional[Mapping[str, Any]] = None, stream: Any = None) -> Dict:
    cst = self.parser.parse_string(text, filename)
    ast = analyze_program(cst, self.debug)
    return self.interpret_program(ast, filename, env, stream)

  def run_file(self, filepath: str) -> Dict:
    cst = self.parser.parse_file(filepath)
    ast = analyze_program(cst, self.debug)
    return self.interpret_program(ast, filepath)


def create_interpreter(debug: bool = False, output: Optional[Callable[[str], None]] = None,
                       input: Optional[Callable[[], str]] = None) -> HilangInterpreter:
  """Factory function returning an interpreter"""
  return HilangInterpreter(debug=debug, output=output, input=input)


def create_debug_interpreter() -> HilangInterpreter:
  """Factory function returning a debug interpreter"""
  return create_interpreter(debug=True)
