"""
Utilities module for the hilang interpreter
Contains common helper functions shared by the runtime stages
"""

from typing import Any, Dict, List, Optional, Callable, Tuple

from error_handling import (
  HilangTypeError,
  HilangOverflowError,
)


INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


# ==================== TYPE CHECKING UTILITIES ====================

def is_value_dict(val: Any) -> bool:
  """True if val is a runtime value dict with 'type' and 'value' keys"""
  return isinstance(val, dict) and 'type' in val and 'value' in val


def get_dict_type(val: Any) -> Optional[str]:
  """Safely get type from dict"""
  return val.get('type') if isinstance(val, dict) else None


def check_integer_range(value: int, op_name: str) -> int:
  """Raise if value does not fit a signed 64-bit integer"""
  if value < INT64_MIN or value > INT64_MAX:
    raise HilangOverflowError(
      f"{op_name} result {value} does not fit in a signed 64-bit integer"
    )
  return value


# ==================== ERROR MESSAGE BUILDERS ====================

def type_mismatch_error(
  stage_name: str,
  expected: str,
  actual: Dict
) -> HilangTypeError:
  """
  Generate type mismatch error

  Args:
    stage_name: Stage or operator name
    expected: Expected type
    actual: Actual value dict

  Returns:
    HilangTypeError with formatted message
  """
  actual_type = get_dict_type(actual) or 'Unknown'
  return HilangTypeError(
    f"{stage_name} requires {expected}, got {actual_type}"
  )


def operation_error(
  op: str,
  left_type: str,
  right_type: str
) -> HilangTypeError:
  """Generate operation error for mismatched operand tags"""
  return HilangTypeError(
    f"Cannot {op} {left_type} and {right_type}"
  )


# ==================== VALIDATION UTILITIES ====================

def validate_tuple_operands(
  op_name: str,
  pair: Dict,
  allowed_types: List[str]
) -> Tuple[Dict, Dict]:
  """
  Check that a binary operator received a Tuple of two allowed, equally tagged values

  Args:
    op_name: Operator name for error messages
    pair: The incoming runtime value
    allowed_types: Operand types the operator accepts

  Returns:
    The two operand value dicts

  Raises:
    HilangTypeError if validation fails
  """
  if get_dict_type(pair) != 'Tuple':
    raise type_mismatch_error(op_name, "Tuple", pair)

  x, y = pair['value']
  if x['type'] != y['type'] or x['type'] not in allowed_types:
    raise operation_error(op_name, x['type'], y['type'])
  return x, y


# ==================== BINARY OPERATION FACTORIES ====================

def binary_comparison_op(
  op: Callable[[Any, Any], bool],
  op_name: str,
  allowed_types: Optional[List[str]] = None
) -> Callable[[Dict, Callable], Dict]:
  """
  Factory for binary comparison operations

  Examples:
    hilang_le = binary_comparison_op(operator.le, "le")
    result = hilang_le(make_tuple(make_integer(1), make_integer(2)), make_value)
  """
  if allowed_types is None:
    allowed_types = ["Integer"]

  def comparison(pair: Dict, make_value: Callable) -> Dict:
    x, y = validate_tuple_operands(op_name, pair, allowed_types)
    return make_value(op(x['value'], y['value']), "Boolean")

  return comparison


def binary_arithmetic_op(
  op: Callable[[Any, Any], Any],
  op_name: str,
  allowed_types: Optional[List[str]] = None
) -> Callable[[Dict, Callable], Dict]:
  """
  Factory for binary arithmetic operations

  Examples:
    hilang_add = binary_arithmetic_op(operator.add, "add")
    result = hilang_add(make_tuple(make_integer(2), make_integer(3)), make_value)
  """
  if allowed_types is None:
    allowed_types = ["Integer"]

  def arithmetic(pair: Dict, make_value: Callable) -> Dict:
    x, y = validate_tuple_operands(op_name, pair, allowed_types)
    result = op(x['value'], y['value'])
    return make_value(check_integer_range(result, op_name), x['type'])

  return arithmetic
