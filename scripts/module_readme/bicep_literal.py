"""Read parameter values out of Bicep example deployment files.

Example files invoke the module under test with a ``params`` object. The
parser below turns that object into plain Python data so it can be rendered in
several formats. Anything that is not a literal (a module output, a function
call, a parameter only known at deployment time, ...) is replaced with a
``<placeholder>`` named after the expression's trailing identifier, e.g.
``nestedDependencies.outputs.storageAccountResourceId`` becomes
``<storageAccountResourceId>``.

This is a best-effort reader for the literal subset of Bicep used in examples,
not a full Bicep parser.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import ReadmeValidationError

logger = logging.getLogger(__name__)

KEYWORD_VALUES = {"true": True, "false": False, "null": None}
EXPRESSION_KEYWORDS = {"true", "false", "null", "for", "in", "if"}
FALLBACK_PLACEHOLDER_NAME = "value"
REMOTE_REFERENCE_PREFIXES = ("br:", "br/", "ts:", "ts/")

STRING_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "\\": "\\", "'": "'", "$": "$"}

_IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_NUMBER_PATTERN = re.compile(r"-?\d+(?:\.\d+)?(?![A-Za-z0-9_.])")
_NAMING_TOKEN_PATTERN = re.compile(r"#_([A-Za-z0-9]+)_#")
_PLAIN_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_]\w*$")
_REFERENCE_PATTERN = re.compile(r"^[A-Za-z_]\w*(?:!?\.\??[A-Za-z_]\w*)+!?$")
_STRING_CONTENT_PATTERN = re.compile(r"'(?:[^'\\]|\\.)*'")
_FOR_EXPRESSION_PATTERN = re.compile(r"\[\s*for\s")
_DECLARATION_PATTERN = re.compile(
    r"^[ \t]*(?:param|var)[ \t]+([A-Za-z_]\w*)(?:[ \t]+[^=\n]+?)?[ \t]*=(?!=)[ \t]*", re.MULTILINE
)
_MODULE_PATTERN = re.compile(r"^[ \t]*module[ \t]+([A-Za-z_]\w*)[ \t]+'([^']+)'[ \t]*=", re.MULTILINE)


def replace_naming_tokens(text: str) -> str:
    """Replace pipeline naming tokens such as '#_namePrefix_#' with '<namePrefix>'."""
    return _NAMING_TOKEN_PATTERN.sub(lambda match: f"<{match.group(1)}>", text)


def trailing_identifier(expression: str) -> str:
    """Return the last identifier of an expression, ignoring string literal contents."""
    blanked = _STRING_CONTENT_PATTERN.sub("''", expression)
    names = [name for name in _IDENTIFIER_PATTERN.findall(blanked) if name not in EXPRESSION_KEYWORDS]
    return names[-1] if names else FALLBACK_PLACEHOLDER_NAME


@dataclass(frozen=True)
class ClassifiedExpression:
    """A non-literal expression and the placeholder standing in for it."""

    kind: str
    text: str
    name: str

    @property
    def placeholder(self) -> str:
        return f"<{self.name}>"


class ExpressionClassifier:
    """Classifies expressions and decides what value they render as.

    Kinds:
        identifier: a bare name; resolves to a known local symbol when one exists
        reference: a dotted member access, e.g. 'dep.outputs.subnetResourceId'
        call: anything containing a function call
        unclassified: everything else

    Every expression that does not resolve to a symbol renders as the
    placeholder of its trailing identifier.
    """

    def __init__(self, symbols: Optional[Dict[str, Any]] = None):
        self.symbols = {} if symbols is None else symbols

    def classify(self, text: str) -> ClassifiedExpression:
        expression = " ".join(text.split())
        if _PLAIN_IDENTIFIER_PATTERN.match(expression):
            kind = "identifier"
        elif _REFERENCE_PATTERN.match(expression):
            kind = "reference"
        elif "(" in expression:
            kind = "call"
        else:
            kind = "unclassified"
        return ClassifiedExpression(kind, expression, trailing_identifier(expression))

    def resolve(self, text: str) -> Any:
        """Return the value an expression renders as."""
        classified = self.classify(text)
        if classified.kind == "identifier" and classified.text in self.symbols:
            return self.symbols[classified.text]
        logger.debug(f"Substituting {classified.kind} expression '{classified.text}' with {classified.placeholder}")
        return classified.placeholder

    def interpolate(self, text: str) -> str:
        """Return the text an interpolated '${...}' expression renders as."""
        value = self.resolve(text)
        if isinstance(value, bool):
            return "true" if value else "false"
        if value is None:
            return "null"
        if isinstance(value, (dict, list)):
            return self.classify(text).placeholder
        return str(value)


class BicepLiteralParser:
    """Recursive-descent reader for Bicep values inside a source file."""

    def __init__(
        self,
        source: str,
        classifier: Optional[ExpressionClassifier] = None,
        source_path: Optional[Path] = None,
    ):
        self.source = source
        self.classifier = classifier or ExpressionClassifier()
        self.source_path = source_path

    def error(self, message: str, pos: int) -> ReadmeValidationError:
        line = self.source.count("\n", 0, pos) + 1
        return ReadmeValidationError(f"{message} at line {line}", source=self.source_path)

    def _skip_inline_space(self, pos: int) -> int:
        while pos < len(self.source) and self.source[pos] in " \t\r":
            pos += 1
        return pos

    def _skip_comment(self, pos: int) -> int:
        if self.source.startswith("//", pos):
            end = self.source.find("\n", pos)
            return len(self.source) if end == -1 else end
        end = self.source.find("*/", pos + 2)
        if end == -1:
            raise self.error("Unterminated comment", pos)
        return end + 2

    def _skip_trivia(self, pos: int, separators: bool = True) -> int:
        """Skip whitespace, newlines, comments and (optionally) comma separators."""
        while pos < len(self.source):
            ch = self.source[pos]
            if ch in " \t\r\n" or (separators and ch == ","):
                pos += 1
            elif self.source.startswith("//", pos) or self.source.startswith("/*", pos):
                pos = self._skip_comment(pos)
            else:
                break
        return pos

    def _at_value_end(self, pos: int) -> bool:
        pos = self._skip_inline_space(pos)
        if pos >= len(self.source):
            return True
        return self.source[pos] in "\n,}]" or self.source.startswith("//", pos) or self.source.startswith("/*", pos)

    def parse_value(self, pos: int = 0) -> Tuple[Any, int]:
        """Parse the value starting at (or after whitespace following) pos.

        Returns:
            The value and the position right after it.
        """
        pos = self._skip_trivia(pos, separators=False)
        if pos >= len(self.source):
            raise self.error("Expected a value", pos)

        ch = self.source[pos]
        if ch == "{":
            return self._parse_object(pos)
        if ch == "[":
            if _FOR_EXPRESSION_PATTERN.match(self.source, pos):
                return self._parse_expression(pos)
            return self._parse_array(pos)

        if self.source.startswith("'''", pos):
            value, end = self._parse_multiline_string(pos)
        elif ch == "'":
            value, end = self._parse_string(pos)
        else:
            number = _NUMBER_PATTERN.match(self.source, pos)
            word = _IDENTIFIER_PATTERN.match(self.source, pos)
            if number:
                text = number.group()
                value, end = (float(text) if "." in text else int(text)), number.end()
            elif word and word.group() in KEYWORD_VALUES:
                value, end = KEYWORD_VALUES[word.group()], word.end()
            else:
                return self._parse_expression(pos)

        # A literal followed by an operator ('a' == b ? ...) is an expression
        if self._at_value_end(end):
            return value, end
        return self._parse_expression(pos)

    def _parse_object(self, pos: int) -> Tuple[Dict[str, Any], int]:
        start = pos
        pos += 1
        result: Dict[str, Any] = {}
        while True:
            pos = self._skip_trivia(pos)
            if pos >= len(self.source):
                raise self.error("Unterminated object", start)
            if self.source[pos] == "}":
                return result, pos + 1
            if self.source.startswith("...", pos):
                spread, pos = self._parse_expression(pos + 3)
                logger.debug(f"Ignoring object spread of {spread}")
                continue

            if self.source[pos] == "'":
                key, pos = self._parse_string(pos, interpolate=False)
            else:
                match = _IDENTIFIER_PATTERN.match(self.source, pos)
                if not match:
                    raise self.error(f"Unexpected character {self.source[pos]!r} in object", pos)
                key, pos = match.group(), match.end()

            pos = self._skip_inline_space(pos)
            if pos >= len(self.source) or self.source[pos] != ":":
                raise self.error(f"Expected ':' after property '{key}'", pos)
            result[key], pos = self.parse_value(pos + 1)

    def _parse_array(self, pos: int) -> Tuple[List[Any], int]:
        start = pos
        pos += 1
        items: List[Any] = []
        while True:
            pos = self._skip_trivia(pos)
            if pos >= len(self.source):
                raise self.error("Unterminated array", start)
            if self.source[pos] == "]":
                return items, pos + 1
            item, pos = self.parse_value(pos)
            items.append(item)

    def _find_interpolation_end(self, pos: int) -> int:
        """Return the index of the '}' closing an interpolation whose body starts at pos."""
        start = pos
        depth = 0
        while pos < len(self.source):
            ch = self.source[pos]
            if ch == "'":
                pos = self._skip_string(pos)
                continue
            if ch == "\n":
                break
            if ch == "{":
                depth += 1
            elif ch == "}":
                if depth == 0:
                    return pos
                depth -= 1
            pos += 1
        raise self.error("Unterminated string interpolation", start)

    def _skip_string(self, pos: int) -> int:
        """Return the position right after the string literal starting at pos."""
        start = pos
        if self.source.startswith("'''", pos):
            end = self.source.find("'''", pos + 3)
            if end == -1:
                raise self.error("Unterminated multi-line string", start)
            return end + 3
        pos += 1
        while pos < len(self.source) and self.source[pos] != "\n":
            if self.source[pos] == "\\":
                pos += 2
            elif self.source.startswith("${", pos):
                pos = self._find_interpolation_end(pos + 2) + 1
            elif self.source[pos] == "'":
                return pos + 1
            else:
                pos += 1
        raise self.error("Unterminated string", start)

    def _parse_string(self, pos: int, interpolate: bool = True) -> Tuple[str, int]:
        start = pos
        pos += 1
        parts: List[str] = []
        while True:
            if pos >= len(self.source) or self.source[pos] == "\n":
                raise self.error("Unterminated string", start)
            ch = self.source[pos]
            if ch == "\\":
                if pos + 1 >= len(self.source):
                    raise self.error("Unterminated string", start)
                escaped = self.source[pos + 1]
                parts.append(STRING_ESCAPES.get(escaped, escaped))
                pos += 2
            elif ch == "'":
                pos += 1
                break
            elif self.source.startswith("${", pos):
                end = self._find_interpolation_end(pos + 2)
                if interpolate:
                    parts.append(self.classifier.interpolate(self.source[pos + 2:end]))
                else:
                    parts.append(self.source[pos:end + 1])
                pos = end + 1
            else:
                parts.append(ch)
                pos += 1
        return replace_naming_tokens("".join(parts)), pos

    def _parse_multiline_string(self, pos: int) -> Tuple[str, int]:
        end = self.source.find("'''", pos + 3)
        if end == -1:
            raise self.error("Unterminated multi-line string", pos)
        content = self.source[pos + 3:end]
        if content.startswith("\r\n"):
            content = content[2:]
        elif content.startswith("\n"):
            content = content[1:]
        return replace_naming_tokens(content), end + 3

    def _parse_expression(self, pos: int) -> Tuple[Any, int]:
        """Read an expression up to the end of its line, or past it while brackets are open."""
        start = pos
        depth = 0
        while pos < len(self.source):
            ch = self.source[pos]
            if ch == "'":
                pos = self._skip_string(pos)
                continue
            if self.source.startswith("//", pos):
                if depth == 0:
                    break
                pos = self._skip_comment(pos)
                continue
            if self.source.startswith("/*", pos):
                pos = self._skip_comment(pos)
                continue
            if ch in "([{":
                depth += 1
            elif ch in ")]}":
                if depth == 0:
                    break
                depth -= 1
            elif depth == 0 and ch in "\n,":
                break
            pos += 1

        if depth > 0:
            raise self.error("Unterminated function block", start)
        text = self.source[start:pos].strip()
        if not text:
            raise self.error("Expected a value", start)
        return self.classifier.resolve(text), pos


def parse_bicep_value(text: str, symbols: Optional[Dict[str, Any]] = None) -> Any:
    """Parse a single Bicep value from text."""
    value, _ = BicepLiteralParser(text, ExpressionClassifier(symbols)).parse_value(0)
    return value


def collect_symbols(source: str, source_path: Optional[Path] = None) -> Dict[str, Any]:
    """Collect the values of 'param' defaults and 'var' declarations of a file.

    Literal values are kept as they are; expressions become placeholders.
    Later declarations may refer to earlier ones.

    Args:
        source: The Bicep source.
        source_path: The file the source was read from, for error messages.

    Returns:
        Symbol values keyed by name.
    """
    symbols: Dict[str, Any] = {}
    parser = BicepLiteralParser(source, ExpressionClassifier(symbols), source_path)
    for match in _DECLARATION_PATTERN.finditer(source):
        value, _ = parser.parse_value(match.end())
        symbols[match.group(1)] = value
    return symbols


def is_remote_reference(reference: str) -> bool:
    """Whether a module reference points at a registry or template spec."""
    return reference.startswith(REMOTE_REFERENCE_PREFIXES)


def iter_module_references(source: str) -> List[Tuple[str, str, int]]:
    """Return (symbolic name, reference, end offset) for every module declaration."""
    return [(match.group(1), match.group(2), match.end()) for match in _MODULE_PATTERN.finditer(source)]


def _find_body_start(source: str, pos: int) -> int:
    """Find the '{' opening a module body, skipping loop and condition headers."""
    depth = 0
    while pos < len(source):
        ch = source[pos]
        if ch == "'":
            end = source.find("'", pos + 1)
            pos = len(source) if end == -1 else end + 1
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == "{" and depth == 0:
            return pos
        pos += 1
    return -1


def extract_module_parameters(source: str, source_path: Path, template_dir: Path) -> Dict[str, Any]:
    """Extract the 'params' passed to the module under test by an example file.

    Args:
        source: The example file's Bicep source.
        source_path: Path of the example file.
        template_dir: Directory of the template the example deploys.

    Returns:
        The parameter values, with non-literal expressions replaced by placeholders.

    Raises:
        ReadmeValidationError: If the example has no invocation of the template
            or the invocation cannot be read.
    """
    symbols = collect_symbols(source, source_path)
    parser = BicepLiteralParser(source, ExpressionClassifier(symbols), source_path)
    target = template_dir.resolve()

    for name, reference, end in iter_module_references(source):
        if is_remote_reference(reference):
            continue
        if (source_path.parent / reference).resolve().parent != target:
            continue

        body_start = _find_body_start(source, end)
        if body_start == -1:
            raise parser.error(f"Module '{name}' has no body", end)
        body, _ = parser.parse_value(body_start)
        params = body.get("params", {}) if isinstance(body, Mapping) else {}
        if not isinstance(params, Mapping):
            raise parser.error(f"The 'params' of module '{name}' is not an object", body_start)
        logger.debug(f"Found {len(params)} parameter(s) for module '{name}' in {source_path}")
        return dict(params)

    raise ReadmeValidationError("No module invocation of the template under test found", source=source_path)
