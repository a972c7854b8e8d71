"""
Error handling for hilang with detailed error messages
Exception hierarchy plus pure helpers for formatting and enhancing parse errors
"""

from typing import List, Optional, Dict
from pyparsing import ParseBaseException
import re


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_parse_error(
    message: str,
    location: int,
    line: int,
    column: int,
    expected: Optional[List[str]] = None,
    got: Optional[str] = None,
    context: Optional[str] = None,
    suggestions: Optional[List[str]] = None
) -> Dict:
    """Create an immutable parse error structure"""
    return {
        'message': message,
        'location': location,
        'line': line,
        'column': column,
        'expected': expected or [],
        'got': got,
        'context': context,
        'suggestions': suggestions or []
    }


def format_parse_error(error: Dict) -> str:
    """Format parse error as string"""
    error_msg = f"Parse error at line {error['line']}, column {error['column']}:\n"
    error_msg += f"  {error['message']}\n"

    if error['expected']:
        error_msg += f"  Expected: {', '.join(error['expected'])}\n"

    if error['got']:
        error_msg += f"  Got: {error['got']}\n"

    if error['context']:
        error_msg += f"  Context:\n{error['context']}\n"

    if error['suggestions']:
        error_msg += "  Suggestions:\n"
        for suggestion in error['suggestions']:
            error_msg += f"    - {suggestion}\n"

    return error_msg


# ============================================================================
# EXCEPTIONS
# ============================================================================

class HilangError(Exception):
    """Base class for every error surfaced by the interpreter"""
    def __init__(self, message: str, span=None):
        self.message = message
        self.span = span
        super().__init__(message)

    def __str__(self) -> str:
        if self.span:
            return f"{self.span}: {self.message}"
        return self.message


class HilangLexError(HilangError):
    """Unexpected character or unterminated string in the source text"""
    def __init__(self, message: str, span=None, character: str = ""):
        self.character = character
        super().__init__(message, span)


class HilangParseError(HilangError):
    """Structural error found while parsing or analyzing a program"""
    def __init__(self, message: str, span=None,
                 expected: Optional[List[str]] = None, got: Optional[str] = None,
                 context: Optional[str] = None, suggestions: Optional[List[str]] = None):
        self.expected = expected or []
        self.got = got
        self.context = context
        self.suggestions = suggestions or []
        super().__init__(message, span)

    def __str__(self) -> str:
        line = self.span.start_line if self.span else 0
        column = self.span.start_col if self.span else 0
        error_dict = make_parse_error(
            self.message, 0, line, column,
            self.expected, self.got, self.context, self.suggestions
        )
        return format_parse_error(error_dict).rstrip('\n')


class HilangRuntimeError(HilangError):
    """Error raised while evaluating a program"""
    kind = "RuntimeError"

    def __str__(self) -> str:
        if self.span:
            return f"{self.kind} at {self.span}: {self.message}"
        return f"{self.kind}: {self.message}"


class HilangTypeError(HilangRuntimeError):
    """A stage received a value of the wrong tag"""
    kind = "TypeError"


class HilangNameError(HilangRuntimeError):
    """A variable was loaded before it was stored"""
    kind = "NameError"


class HilangDivisionError(HilangRuntimeError):
    """Modulo by zero"""
    kind = "DivisionError"


class HilangOverflowError(HilangRuntimeError):
    """Integer result outside the signed 64-bit range"""
    kind = "OverflowError"


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def get_context_lines(source_text: str, line_num: int, col_num: int, context_lines: int = 2) -> str:
    """Get context lines around the error"""
    lines = source_text.split('\n')
    start_line = max(0, line_num - context_lines - 1)
    end_line = min(len(lines), line_num + context_lines)

    context_parts = []
    for i in range(start_line, end_line):
        line_prefix = f"{i+1:4d}: "
        context_parts.append(f"{line_prefix}{lines[i]}")
        if i == line_num - 1:
            context_parts.append(f"{'':6}{' ' * (col_num - 1)}^ Error here")

    return '\n'.join(context_parts)


def extract_expected(exc: ParseBaseException) -> List[str]:
    """Extract expected tokens from exception"""
    expected = []

    # pyparsing only reports what it expected inside the message text
    msg = exc.msg or str(exc)
    expected_match = re.search(r"Expected\s+(.+?)(?:,\s+found|\s+\(at|$)", msg)
    if expected_match:
        expected.append(expected_match.group(1))

    return expected if expected else ["valid syntax"]


def extract_got(source_text: str, line_num: int, col_num: int) -> str:
    """Extract what was actually found at the error location"""
    lines = source_text.split('\n')

    if 0 < line_num <= len(lines):
        error_line = lines[line_num - 1]
        if col_num <= len(error_line):
            start = max(0, col_num - 1)
            end = min(len(error_line), col_num + 10)
            got_text = error_line[start:end].strip()
            if got_text:
                return f"'{got_text}'"
        if line_num == len(lines):
            return "end of input"
        return "end of line"
    return "end of input"


def generate_suggestions(exc: ParseBaseException, got: str, expected: List[str]) -> List[str]:
    """Generate helpful suggestions based on the error"""
    suggestions = []

    if "{" in got or "}" in got:
        suggestions.append("Use [ ... | ... ] for alternation and ( ... ).loop for loops")

    if got.startswith("'\"") and "'.'" in str(expected):
        suggestions.append("Variable names take a method: \"name\".store or \"name\".load")

    if "','" in str(expected):
        suggestions.append("Tuples pair two pipelines: <left, right>.add")

    if "'>'" in str(expected):
        suggestions.append("Close the tuple with '>' before the operator: <a, b>.eq")

    if "end of text" in str(expected):
        suggestions.append("Join stages with '->' or ';'")

    return suggestions


def enhance_parse_exception_dict(exc: ParseBaseException, source_text: str) -> Dict:
    """Convert pyparsing exception to enhanced hilang error dict"""
    line_num = exc.lineno
    col_num = exc.column

    context = get_context_lines(source_text, line_num, col_num)
    expected = extract_expected(exc)
    got = extract_got(source_text, line_num, col_num)
    suggestions = generate_suggestions(exc, got, expected)

    return make_parse_error(
        message=exc.msg or str(exc),
        location=exc.loc,
        line=line_num,
        column=col_num,
        expected=expected,
        got=got,
        context=context,
        suggestions=suggestions
    )


# ============================================================================
# HANDLER CLASS
# ============================================================================

class HilangErrorHandler:
    """Wraps pyparsing exceptions for one source text"""
    def __init__(self, source_text: str, filename: str = "<input>"):
        self.source_text = source_text
        self.filename = filename

    def enhance_parse_exception(self, exc: ParseBaseException) -> HilangParseError:
        """Convert pyparsing exception to enhanced hilang error"""
        # Imported here: parsing imports this module at load time
        from parsing import SourceSpan

        error_dict = enhance_parse_exception_dict(exc, self.source_text)
        line, column = error_dict['line'], error_dict['column']
        span = SourceSpan(self.filename, line, column, line, column + 1, "")
        return HilangParseError(
            message=error_dict['message'],
            span=span,
            expected=error_dict['expected'],
            got=error_dict['got'],
            context=error_dict['context'],
            suggestions=error_dict['suggestions']
        )
