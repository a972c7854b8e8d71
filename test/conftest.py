"""
Test configuration for hilang tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from parsing import create_parser
from semantics import create_analyzer


@pytest.fixture
def examples_dir():
  """Directory holding the example programs"""
  return project_root / "examples"


@pytest.fixture
def analyze():
  """Parse and analyze a snippet into its AST"""
  parser = create_parser()
  analyzer = create_analyzer()

  def _analyze(code):
    return analyzer.analyze(parser.parse_string(code))

  return _analyze


@pytest.fixture
def run_program():
  """Run a snippet and return (final value, output lines)"""
  from interpreter import run

  def _run(code, **kwargs):
    lines = []
    value = run(code, output=lines.append, **kwargs)
    return value, lines

  return _run
