"""
hilang Programming Language Parser
Tokenizer and pyparsing grammar producing a CST with source spans
"""

from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field
import re
import sys

# Import pyparsing with error handling
try:
    from pyparsing import (
        Regex, QuotedString, Keyword, Literal, Suppress, Forward, Optional as PyParsingOptional,
        ZeroOrMore, StringEnd, ParserElement, ParseBaseException, one_of,
        python_style_comment, lineno, col
    )
    # Enable packrat parsing for performance
    ParserElement.enable_packrat()
except ImportError:
    raise ImportError("pyparsing library not found. Install with: pip install pyparsing")

from error_handling import HilangLexError, HilangParseError, HilangErrorHandler


@dataclass(frozen=True)
class SourceSpan:
    """Source location information for preserving CST"""
    filename: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int
    text: str = ""

    def __str__(self) -> str:
        if self.start_line == self.end_line:
            return f"{self.filename}:{self.start_line}:{self.start_col}-{self.end_col}"
        return f"{self.filename}:{self.start_line}:{self.start_col}-{self.end_line}:{self.end_col}"


@dataclass(frozen=True)
class Token:
    """hilang token with source information"""
    type: str
    value: Any
    span: SourceSpan

    def __str__(self) -> str:
        return f"{self.type}({self.value})"


@dataclass(frozen=True)
class CSTNode:
    """Concrete Syntax Tree node preserving all source information"""
    type: str
    value: Any
    children: List['CSTNode'] = field(default_factory=list)
    span: Optional[SourceSpan] = None

    def __str__(self) -> str:
        if self.children:
            children_str = ", ".join(str(child) for child in self.children)
            return f"{self.type}({self.value}, [{children_str}])"
        return f"{self.type}({self.value})"


# Stage keywords may not be used as bare variable names
STAGE_KEYWORDS = ('int', 'str', 'output', 'input', 'pass')
METHOD_KEYWORDS = ('loop', 'store', 'load')
OPERATOR_SYMBOLS = ('=<', '==', '!=', '%', '+', '-', '*')


class HilangTokenizer:
    """hilang tokenizer"""

    def __init__(self, filename: str = "<input>"):
        self.filename = filename
        self._setup_token_patterns()

    def _setup_token_patterns(self):
        """Setup all token patterns for hilang"""

        # Strings are single-line and carry no escapes
        self.string_pattern = re.compile(r'"[^"\n]*"')

        self.identifier_pattern = re.compile(r'[A-Za-z_][A-Za-z0-9_]*')

        # Same separators pyparsing skips; newlines are split off beforehand
        self.whitespace = {" ", "\t", "\r"}

        # Sequencing arrows and operator symbols usable as method names
        self.operators = {'->', ';'} | set(OPERATOR_SYMBOLS)

        self.keywords = set(STAGE_KEYWORDS) | set(METHOD_KEYWORDS)

        self.delimiters = {'(', ')', '<', '>', '[', ']', '.', ',', '|'}

        # Longest operators first so '->' wins over '-' and '=<' is never split
        operators_sorted = sorted(self.operators, key=len, reverse=True)
        self.operator_pattern = re.compile('|'.join(re.escape(op) for op in operators_sorted))

    def tokenize(self, text: str) -> List[Token]:
        """Tokenize hilang source code using a priority-based approach"""
        tokens = []

        for line_num, line in enumerate(text.split('\n'), 1):
            pos = 0
            while pos < len(line):
                if line[pos] in self.whitespace:
                    pos += 1
                    continue

                # Comment runs to the end of the line
                if line[pos] == '#':
                    break

                token = self._match_token_at_position(line, pos, line_num)
                tokens.append(token)
                pos += len(token.span.text)

        return tokens

    def _span(self, line_num: int, pos: int, text: str) -> SourceSpan:
        return SourceSpan(self.filename, line_num, pos + 1, line_num, pos + len(text) + 1, text)

    def _match_token_at_position(self, line: str, pos: int, line_num: int) -> Token:
        """Match a token at a specific position using priority order"""

        # Priority 1: String literals (can contain any characters)
        if line[pos] == '"':
            string_match = self.string_pattern.match(line, pos)
            if not string_match:
                span = self._span(line_num, pos, line[pos:])
                raise HilangLexError("Unterminated string literal", span, '"')
            value = string_match.group(0)
            return Token("STRING", value[1:-1], self._span(line_num, pos, value))

        # Priority 2: Operators (longest match first)
        op_match = self.operator_pattern.match(line, pos)
        if op_match:
            value = op_match.group(0)
            return Token("OPERATOR", value, self._span(line_num, pos, value))

        # Priority 3: Delimiters (single characters)
        if line[pos] in self.delimiters:
            value = line[pos]
            return Token("DELIMITER", value, self._span(line_num, pos, value))

        # Priority 4: Identifiers and keywords
        id_match = self.identifier_pattern.match(line, pos)
        if id_match:
            value = id_match.group(0)
            token_type = "KEYWORD" if value in self.keywords else "IDENTIFIER"
            return Token(token_type, value, self._span(line_num, pos, value))

        char = line[pos]
        span = self._span(line_num, pos, char)
        raise HilangLexError(f"Unexpected character '{char}'", span, char)


class HilangGrammar:
    """hilang grammar definition using pyparsing"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.filename = "<input>"
        self._setup_grammar()

    def _node(self, node_type: str, s: str, loc: int, value: Any = None,
              children: Optional[List[CSTNode]] = None, text: str = "") -> CSTNode:
        line = lineno(loc, s)
        column = col(loc, s)
        span = SourceSpan(self.filename, line, column, line, column + len(text), text)
        return CSTNode(node_type, value, children or [], span)

    def _setup_grammar(self):
        """Setup the hilang grammar"""

        pipeline = Forward()

        # Punctuation
        arrow = Suppress(Literal("->") | Literal(";"))
        lpar, rpar = Suppress("("), Suppress(")")
        langle, rangle = Suppress("<"), Suppress(">")
        lbrack, rbrack = Suppress("["), Suppress("]")
        dot, comma, bar = Suppress("."), Suppress(","), Suppress("|")

        # Keywords
        stage_keyword = one_of(list(STAGE_KEYWORDS), as_keyword=True)
        identifier = Regex(r'[A-Za-z_][A-Za-z0-9_]*')

        # Literals (no escapes: everything between the quotes is content)
        string_literal = QuotedString('"', convert_whitespace_escapes=False).set_parse_action(
            lambda s, l, t: self._node("STRING", s, l, t[0], text=f'"{t[0]}"')
        )

        name = (~stage_keyword + identifier).set_parse_action(
            lambda s, l, t: self._node("NAME", s, l, t[0], text=t[0])
        )

        # <name> only counts when the brackets hold a single identifier
        angle_name = (langle + ~stage_keyword + identifier + rangle).set_parse_action(
            lambda s, l, t: self._node("ANGLE_NAME", s, l, t[0], text=f"<{t[0]}>")
        )

        tuple_expr = (langle + pipeline + comma + pipeline + rangle).set_parse_action(
            lambda s, l, t: self._node("TUPLE", s, l, children=list(t))
        )

        group = (lpar + pipeline + rpar).set_parse_action(
            lambda s, l, t: self._node("GROUP", s, l, children=list(t))
        )

        alternation = (lbrack + pipeline + ZeroOrMore(bar + pipeline) + rbrack).set_parse_action(
            lambda s, l, t: self._node("ALTERNATION", s, l, children=list(t))
        )

        keyword_stage = stage_keyword.copy().set_parse_action(
            lambda s, l, t: self._node("KEYWORD", s, l, t[0], text=t[0])
        )

        primary = (
            string_literal |
            angle_name |
            tuple_expr |
            group |
            alternation |
            keyword_stage |
            name
        )

        # Method names: store, load, loop, operator names, or operator symbols
        method_name = (one_of(list(OPERATOR_SYMBOLS)) | identifier).set_parse_action(
            lambda s, l, t: self._node("METHOD", s, l, t[0], text=t[0])
        )

        # METHOD_CALL spans from the primary through the method name;
        # the METHOD child keeps the method's own location
        def make_stage(s, loc, tokens):
            if len(tokens) == 1:
                return tokens[0]
            primary, method = tokens[0], tokens[1]
            span = SourceSpan(self.filename, lineno(loc, s), col(loc, s),
                              method.span.end_line, method.span.end_col, method.value)
            return CSTNode("METHOD_CALL", method.value, [primary, method], span)

        stage = (primary + PyParsingOptional(dot + method_name)).set_parse_action(make_stage)

        pipeline <<= (stage + ZeroOrMore(arrow + stage)).set_parse_action(
            lambda s, l, t: self._node("PIPELINE", s, l, children=list(t))
        )

        program = pipeline + StringEnd()
        program.ignore(python_style_comment)
        # Keep columns in step with the tokenizer's
        program.parse_with_tabs()
        stage.parse_with_tabs()

        # Store the main parsers
        self.program = program
        self.pipeline = pipeline
        self.stage = stage
        self.primary = primary
        self.method_name = method_name

    def parse_program(self, text: str, filename: str = "<input>") -> CSTNode:
        """Parse a complete hilang program into its top-level PIPELINE node"""
        self.filename = filename
        if not self._has_code(text):
            span = SourceSpan(filename, 1, 1, 1, 1, "")
            raise HilangParseError("Empty program: expected at least one stage", span,
                                   expected=["stage"], got="end of input")
        try:
            result = self.program.parse_string(text, parse_all=True)
        except ParseBaseException as e:
            raise HilangErrorHandler(text, filename).enhance_parse_exception(e) from e
        except RecursionError:
            raise self._nesting_error(filename) from None
        if self.debug:
            print(f"Parsed program with {len(result[0].children)} top-level stages", file=sys.stderr)
        return result[0]

    def parse_stage(self, text: str, filename: str = "<input>") -> CSTNode:
        """Parse a single hilang stage"""
        self.filename = filename
        try:
            return self.stage.parse_string(text, parse_all=True)[0]
        except ParseBaseException as e:
            raise HilangErrorHandler(text, filename).enhance_parse_exception(e) from e
        except RecursionError:
            raise self._nesting_error(filename) from None

    def _nesting_error(self, filename: str) -> HilangParseError:
        span = SourceSpan(filename, 1, 1, 1, 1, "")
        return HilangParseError("Program nests too deeply", span,
                                expected=["fewer nested groups, tuples or alternations"],
                                got="nesting beyond the parser's recursion limit",
                                suggestions=["Split deeply nested stages into stored variables"])

    def _has_code(self, text: str) -> bool:
        """True unless the text holds only whitespace and comments"""
        for line in text.split('\n'):
            stripped = line.strip()
            if stripped and not stripped.startswith('#'):
                return True
        return False


class HilangParser:
    """Main hilang parser combining tokenizer and grammar"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.grammar = HilangGrammar(debug)

    def parse_file(self, filepath: str) -> CSTNode:
        """Parse a hilang source file"""
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise HilangParseError(f"File not found: {filepath}")
        except OSError as e:
            raise HilangParseError(f"Cannot open file {filepath}: {e.strerror}")
        except UnicodeDecodeError as e:
            raise HilangParseError(f"Cannot decode file {filepath}: {e}")
        return self.parse_string(content, filepath)

    def parse_string(self, text: str, filename: str = "<input>") -> CSTNode:
        """Parse hilang source code from string; lexical errors abort first"""
        tokens = self.tokenize(text, filename)
        if self.debug:
            print(f"Tokenized {filename}: {len(tokens)} tokens", file=sys.stderr)
        return self.grammar.parse_program(text, filename)

    def tokenize(self, text: str, filename: str = "<input>") -> List[Token]:
        """Tokenize hilang source code"""
        tokenizer = HilangTokenizer(filename)
        return tokenizer.tokenize(text)


# Factory functions for creating parsers
def create_parser(debug: bool = False) -> HilangParser:
    """Create a hilang parser"""
    return HilangParser(debug=debug)


def create_debug_parser() -> HilangParser:
    """Create a hilang parser with debug enabled"""
    return HilangParser(debug=True)


# Utility functions for working with CST
def find_nodes_by_type(cst: CSTNode, node_type: str) -> List[CSTNode]:
    """Find all nodes of a specific type in CST"""
    result = []

    def search(node: CSTNode):
        if node.type == node_type:
            result.append(node)
        for child in node.children:
            search(child)

    search(cst)
    return result


def pretty_print_cst(cst: CSTNode, indent: int = 0) -> str:
    """Pretty print a CST node for debugging"""
    result = "  " * indent + f"{cst.type}"
    if cst.value is not None:
        result += f"({repr(cst.value)})"
    result += "\n"

    for child in cst.children:
        result += pretty_print_cst(child, indent + 1)

    return result


def cst_to_dict(cst: CSTNode) -> Dict[str, Any]:
    """Convert CST to dictionary representation"""
    return {
        "type": cst.type,
        "value": cst.value,
        "span": {
            "filename": cst.span.filename,
            "start_line": cst.span.start_line,
            "start_col": cst.span.start_col,
            "end_line": cst.span.end_line,
            "end_col": cst.span.end_col,
        } if cst.span else None,
        "children": [cst_to_dict(child) for child in cst.children]
    }
