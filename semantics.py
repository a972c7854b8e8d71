"""
hilang Semantic Analysis - Pure Functional Style
Turns the CST into the evaluator's AST: resolves methods against the closed
operator set and splits branch and loop bodies into guard and action
"""

import sys
from typing import Any, Dict, List, Optional, Tuple
from parsing import CSTNode, SourceSpan
from error_handling import HilangParseError
from stdlib import resolve_operator_name, COMPARISON_OPERATORS, BINARY_OPERATORS


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_ast_node(node_type: str, value: Any, children: Optional[List[Dict]] = None,
                  span: Optional[SourceSpan] = None) -> Dict:
  """Create an immutable AST node dictionary"""
  return {
      'type': node_type,
      'value': value,
      'children': children or [],
      'span': span
  }


def make_branch(guard: Dict, action: Dict) -> Dict:
  """A guarded body: the action runs only when the guard yields true"""
  return {
      'guard': guard,
      'action': action
  }


# Stage keywords and the AST node each one becomes
KEYWORD_NODES = {
    'int': ('CONVERT', 'int'),
    'str': ('CONVERT', 'str'),
    'output': ('OUTPUT', None),
    'input': ('INPUT', None),
    'pass': ('PASS', None),
}

VARIABLE_METHODS = ('store', 'load')


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def analysis_error(message: str, span: Optional[SourceSpan], expected: Optional[List[str]] = None,
                   got: Optional[str] = None, suggestions: Optional[List[str]] = None) -> HilangParseError:
  """Build a parse-time error for a structurally valid but meaningless program"""
  return HilangParseError(message, span, expected=expected, got=got, suggestions=suggestions)


def describe_cst(cst_node: CSTNode) -> str:
  """Short human description of a CST node for error messages"""
  if cst_node.type == "STRING":
    return f'string "{cst_node.value}"'
  elif cst_node.type in ("NAME", "ANGLE_NAME"):
    return f"name '{cst_node.value}'"
  elif cst_node.type == "KEYWORD":
    return f"'{cst_node.value}'"
  return cst_node.type.lower().replace('_', ' ')


def extract_variable_name(cst_node: CSTNode) -> Optional[str]:
  """Variable names come from a string literal, a bare identifier or <identifier>"""
  if cst_node.type in ("STRING", "NAME", "ANGLE_NAME"):
    return cst_node.value
  return None


def is_comparison_stage(ast_node: Dict) -> bool:
  """True for a top-level stage that produces the Boolean gating a branch or loop"""
  return ast_node['type'] == "BINARY_OP" and ast_node['value'] in COMPARISON_OPERATORS


def split_guard(pipeline: Dict, construct: str) -> Optional[Tuple[Dict, Dict]]:
  """
  Split a body into (guard, action) at its single top-level comparison.

  Returns None when the body has no top-level comparison. Comparisons nested
  inside tuples or groups do not count.
  """
  stages = pipeline['children']
  positions = [i for i, stage in enumerate(stages) if is_comparison_stage(stage)]

  if not positions:
    return None

  if len(positions) > 1:
    second = stages[positions[1]]
    raise analysis_error(
        f"A {construct} may contain only one guard comparison, found {len(positions)}",
        second['span'],
        expected=["a single comparison (le, lt, eq, ne) per guard"],
        got=f"'{second['value']}'",
        suggestions=["Nest further conditions in an inner [ ... ] alternation"]
    )

  cut = positions[0] + 1
  guard = make_ast_node("PIPELINE", None, stages[:cut], pipeline['span'])
  action_span = stages[cut]['span'] if cut < len(stages) else pipeline['span']
  action = make_ast_node("PIPELINE", None, stages[cut:], action_span)
  return guard, action


# ============================================================================
# STAGE ANALYSIS
# ============================================================================

def analyze_pipeline(cst_node: CSTNode, debug: bool = False) -> Dict:
  """Analyze a pipeline; a tuple stage expands to TUPLE followed by BINARY_OP"""
  stages = []
  for child in cst_node.children:
    stages.extend(analyze_stage(child, debug))
  return make_ast_node("PIPELINE", None, stages, cst_node.span)


def analyze_stage(cst_node: CSTNode, debug: bool = False) -> List[Dict]:
  """Analyze one stage of a pipeline into one or more AST stages"""
  if debug:
    print(f"Analyzing: {cst_node.type}", file=sys.stderr)

  node_type = cst_node.type

  if node_type == "METHOD_CALL":
    return analyze_method_call(cst_node, debug)
  elif node_type == "STRING":
    return [make_ast_node("LITERAL", cst_node.value, [], cst_node.span)]
  elif node_type == "KEYWORD":
    ast_type, value = KEYWORD_NODES[cst_node.value]
    return [make_ast_node(ast_type, value, [], cst_node.span)]
  elif node_type == "GROUP":
    body = analyze_pipeline(cst_node.children[0], debug)
    return [make_ast_node("GROUP", None, [body], cst_node.span)]
  elif node_type == "ALTERNATION":
    return [analyze_alternation(cst_node, debug)]
  elif node_type == "TUPLE":
    raise analysis_error(
        "A tuple must be followed by a binary operator",
        cst_node.span,
        expected=[f".{name}" for name in BINARY_OPERATORS],
        got="tuple without operator",
        suggestions=["Write <left, right>.add or <left, right>.eq"]
    )
  elif node_type in ("NAME", "ANGLE_NAME"):
    name = cst_node.value
    raise analysis_error(
        f"Variable name '{name}' needs a method",
        cst_node.span,
        expected=[".store", ".load"],
        got=describe_cst(cst_node),
        suggestions=[f'Write "{name}".load to read the variable']
    )
  else:
    raise analysis_error(f"Unknown stage: {node_type}", cst_node.span)


def analyze_method_call(cst_node: CSTNode, debug: bool = False) -> List[Dict]:
  """Resolve primary.method against the closed method set"""
  method = cst_node.value
  target = cst_node.children[0]
  span = cst_node.span
  method_span = cst_node.children[1].span

  if method in VARIABLE_METHODS:
    name = extract_variable_name(target)
    if name is None:
      raise analysis_error(
          f".{method} needs a variable name before it",
          span,
          expected=['"name"', "name", "<name>"],
          got=describe_cst(target)
      )
    var_ref = make_ast_node("VAR_REF", name, [], target.span)
    return [make_ast_node(method.upper(), name, [var_ref], span)]

  if method == "loop":
    if target.type != "GROUP":
      raise analysis_error(
          ".loop needs a parenthesized body before it",
          span,
          expected=["( ... ).loop"],
          got=describe_cst(target)
      )
    return [analyze_loop(target, span, debug)]

  operator_name = resolve_operator_name(method)
  if operator_name is not None:
    if target.type != "TUPLE":
      raise analysis_error(
          f"Binary operator '{method}' needs a tuple before it",
          span,
          expected=[f"<left, right>.{method}"],
          got=describe_cst(target)
      )
    left = analyze_pipeline(target.children[0], debug)
    right = analyze_pipeline(target.children[1], debug)
    return [
        make_ast_node("TUPLE", None, [left, right], target.span),
        make_ast_node("BINARY_OP", operator_name, [], method_span),
    ]

  raise analysis_error(
      f"Unknown method '{method}'",
      method_span,
      expected=[".store", ".load", ".loop"] + [f".{name}" for name in BINARY_OPERATORS],
      got=f"'{method}'"
  )


def analyze_loop(group: CSTNode, span: SourceSpan, debug: bool = False) -> Dict:
  """Analyze (body).loop; the body must carry exactly one guard comparison"""
  body = analyze_pipeline(group.children[0], debug)
  split = split_guard(body, "loop body")
  if split is None:
    raise analysis_error(
        "A loop body needs a guard comparison",
        span,
        expected=["a comparison such as <a, b>.le"],
        got="loop body without comparison",
        suggestions=["Start the body with its guard: (<\"i\".load, \"10\" -> int>.le; ...).loop"]
    )
  guard, action = split
  return make_ast_node("LOOP", make_branch(guard, action), [guard, action], span)


def analyze_alternation(cst_node: CSTNode, debug: bool = False) -> Dict:
  """Analyze [b1 | b2 | ...]; only the last branch may be unguarded (the default)"""
  branches = []
  default = None
  bodies = [analyze_pipeline(child, debug) for child in cst_node.children]

  for index, body in enumerate(bodies):
    split = split_guard(body, "branch")
    if split is not None:
      branches.append(make_branch(*split))
    elif index == len(bodies) - 1:
      default = body
    else:
      raise analysis_error(
          "Only the last branch of an alternation may omit its guard comparison",
          body['span'],
          expected=["a comparison such as <a, b>.eq"],
          got="unguarded branch",
          suggestions=["Move the unguarded branch to the end, e.g. [ ... | pass ]"]
      )

  children = []
  for branch in branches:
    children.extend([branch['guard'], branch['action']])
  if default is not None:
    children.append(default)

  return make_ast_node("ALTERNATION", {'branches': branches, 'default': default},
                       children, cst_node.span)


# ============================================================================
# MAIN ANALYSIS FUNCTION
# ============================================================================

def analyze_program(cst: CSTNode, debug: bool = False) -> Dict:
  """Analyze the top-level pipeline of a program into its AST"""
  ast = analyze_pipeline(cst, debug)
  if not ast['children']:
    raise analysis_error("Empty program: expected at least one stage", cst.span)
  if debug:
    print(f"Analyzed {len(ast['children'])} top-level stages", file=sys.stderr)
  return ast


# ============================================================================
# AST UTILITIES
# ============================================================================

def find_ast_nodes_by_type(ast: Dict, node_type: str) -> List[Dict]:
  """Find all nodes of a specific type in the AST"""
  result = []

  def search(node: Dict):
    if node['type'] == node_type:
      result.append(node)
    for child in node['children']:
      search(child)

  search(ast)
  return result


def pretty_print_ast(ast: Dict, indent: int = 0) -> str:
  """Pretty print an AST node for debugging"""
  pad = "  " * indent
  node_type = ast['type']

  if node_type == "ALTERNATION":
    result = f"{pad}ALTERNATION\n"
    for branch in ast['value']['branches']:
      result += f"{pad}  guard:\n" + pretty_print_ast(branch['guard'], indent + 2)
      result += f"{pad}  action:\n" + pretty_print_ast(branch['action'], indent + 2)
    if ast['value']['default'] is not None:
      result += f"{pad}  default:\n" + pretty_print_ast(ast['value']['default'], indent + 2)
    return result

  if node_type == "LOOP":
    result = f"{pad}LOOP\n"
    result += f"{pad}  guard:\n" + pretty_print_ast(ast['value']['guard'], indent + 2)
    result += f"{pad}  action:\n" + pretty_print_ast(ast['value']['action'], indent + 2)
    return result

  result = f"{pad}{node_type}"
  if ast['value'] is not None:
    result += f"({ast['value']!r})"
  result += "\n"
  if node_type in ("STORE", "LOAD"):
    return result
  for child in ast['children']:
    result += pretty_print_ast(child, indent + 1)
  return result


def ast_to_dict(ast: Dict) -> Dict:
  """Convert AST to a plain, JSON-friendly dictionary"""
  span = ast['span']
  value = ast['value']
  if ast['type'] == "ALTERNATION":
    value = {
        'branches': [{'guard': ast_to_dict(b['guard']), 'action': ast_to_dict(b['action'])}
                     for b in value['branches']],
        'default': ast_to_dict(value['default']) if value['default'] is not None else None,
    }
  elif ast['type'] == "LOOP":
    value = {'guard': ast_to_dict(value['guard']), 'action': ast_to_dict(value['action'])}
  return {
      'type': ast['type'],
      'value': value,
      'span': str(span) if span else None,
      'children': [] if ast['type'] in ("ALTERNATION", "LOOP")
      else [ast_to_dict(child) for child in ast['children']],
  }


# ============================================================================
# FACTORY FUNCTIONS
# ============================================================================

class HilangAnalyzer:
  """Analyzer bound to a debug setting"""

  def __init__(self, debug: bool = False):
    self.debug = debug

  def analyze(self, cst: CSTNode) -> Dict:
    return analyze_program(cst, self.debug)


def create_analyzer(debug: bool = False) -> HilangAnalyzer:
  """Factory function returning an analyzer"""
  return HilangAnalyzer(debug=debug)
