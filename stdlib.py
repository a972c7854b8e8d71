"""
hilang Standard Library
Runtime values, conversions, I/O stages and the closed set of binary operators
Pure functional style using immutable dictionaries
"""

from typing import Dict, Callable, Any, Optional
import operator
import re
from utilities import (
  binary_comparison_op,
  binary_arithmetic_op,
  validate_tuple_operands,
  check_integer_range,
  type_mismatch_error,
)
from error_handling import HilangTypeError, HilangDivisionError


# ============================================================================
# VALUE CONSTRUCTORS
# ============================================================================

def make_value(value: Any, type_name: str = "Unknown") -> Dict:
  """Create an immutable runtime value"""
  return {
      'value': value,
      'type': type_name
  }


def make_integer(value: int) -> Dict:
  return make_value(value, "Integer")


def make_text(value: str) -> Dict:
  return make_value(value, "Text")


def make_boolean(value: bool) -> Dict:
  return make_value(bool(value), "Boolean")


def make_tuple(left: Dict, right: Dict) -> Dict:
  return make_value((left, right), "Tuple")


def make_unit() -> Dict:
  return make_value(None, "Unit")


# ============================================================================
# RENDERING AND I/O STAGES
# ============================================================================

def hilang_show(value: Dict) -> str:
  """Render a value the way the output stage prints it"""
  if value['type'] == "Integer":
    return str(value['value'])
  elif value['type'] == "Text":
    return value['value']
  elif value['type'] == "Boolean":
    return "true" if value['value'] else "false"
  elif value['type'] == "Tuple":
    left, right = value['value']
    return f"<{hilang_show(left)}, {hilang_show(right)}>"
  else:
    raise type_mismatch_error("output", "a printable value", value)


def hilang_output(value: Dict, context: Dict) -> Dict:
  """Write one line to the context's output sink and pass the value through"""
  context['output'](hilang_show(value))
  return value


def hilang_input(context: Dict) -> Dict:
  """Read one line from the context's input source"""
  line = context['input']()
  return make_text(line.rstrip('\r\n'))


# ============================================================================
# CONVERSIONS
# ============================================================================

INTEGER_TEXT = re.compile(r'[+-]?[0-9]+')


def hilang_int(value: Dict) -> Dict:
  """Convert base-10 Text to Integer; Integer passes through"""
  if value['type'] == "Integer":
    return value
  if value['type'] != "Text":
    raise type_mismatch_error("int", "Text or Integer", value)
  if not INTEGER_TEXT.fullmatch(value['value']):
    raise HilangTypeError(f"int cannot convert {value['value']!r} to Integer")
  return make_integer(check_integer_range(int(value['value']), "int"))


def hilang_str(value: Dict) -> Dict:
  """Convert Integer to decimal Text; Text passes through"""
  if value['type'] == "Text":
    return value
  if value['type'] != "Integer":
    raise type_mismatch_error("str", "Integer or Text", value)
  return make_text(str(value['value']))


CONVERSIONS: Dict[str, Callable[[Dict], Dict]] = {
    'int': hilang_int,
    'str': hilang_str,
}


# ============================================================================
# COMPARISON OPERATORS
# ============================================================================

_hilang_le_impl = binary_comparison_op(operator.le, "le")
_hilang_lt_impl = binary_comparison_op(operator.lt, "lt")
_hilang_eq_impl = binary_comparison_op(operator.eq, "eq", ["Integer", "Text"])
_hilang_ne_impl = binary_comparison_op(operator.ne, "ne", ["Integer", "Text"])


def hilang_le(pair: Dict) -> Dict:
  """Less than or equal comparison"""
  return _hilang_le_impl(pair, make_value)


def hilang_lt(pair: Dict) -> Dict:
  """Less than comparison"""
  return _hilang_lt_impl(pair, make_value)


def hilang_eq(pair: Dict) -> Dict:
  """Equality comparison"""
  return _hilang_eq_impl(pair, make_value)


def hilang_ne(pair: Dict) -> Dict:
  """Not equal comparison"""
  return _hilang_ne_impl(pair, make_value)


# ============================================================================
# ARITHMETIC OPERATORS
# ============================================================================

_hilang_add_impl = binary_arithmetic_op(operator.add, "add")
_hilang_sub_impl = binary_arithmetic_op(operator.sub, "sub")
_hilang_mul_impl = binary_arithmetic_op(operator.mul, "mul")


def hilang_add(pair: Dict) -> Dict:
  """Addition"""
  return _hilang_add_impl(pair, make_value)


def hilang_sub(pair: Dict) -> Dict:
  """Subtraction"""
  return _hilang_sub_impl(pair, make_value)


def hilang_mul(pair: Dict) -> Dict:
  """Multiplication"""
  return _hilang_mul_impl(pair, make_value)


def hilang_mod(pair: Dict) -> Dict:
  """Remainder truncated toward zero, so it takes the sign of the dividend"""
  x, y = validate_tuple_operands("mod", pair, ["Integer"])
  if y['value'] == 0:
    raise HilangDivisionError("mod by zero")
  remainder = abs(x['value']) % abs(y['value'])
  return make_integer(-remainder if x['value'] < 0 else remainder)


# ============================================================================
# OPERATOR TABLE
# ============================================================================

BINARY_OPERATORS: Dict[str, Callable[[Dict], Dict]] = {
    'le': hilang_le,
    'lt': hilang_lt,
    'eq': hilang_eq,
    'ne': hilang_ne,
    'add': hilang_add,
    'sub': hilang_sub,
    'mul': hilang_mul,
    'mod': hilang_mod,
}

OPERATOR_ALIASES = {
    '=<': 'le',
    '==': 'eq',
    '!=': 'ne',
    '+': 'add',
    '-': 'sub',
    '*': 'mul',
    '%': 'mod',
}

# Operators producing a Boolean; these gate alternation branches and loops
COMPARISON_OPERATORS = frozenset({'le', 'lt', 'eq', 'ne'})


def resolve_operator_name(name: str) -> Optional[str]:
  """Map a method name or symbol to its canonical operator name"""
  canonical = OPERATOR_ALIASES.get(name, name)
  return canonical if canonical in BINARY_OPERATORS else None
