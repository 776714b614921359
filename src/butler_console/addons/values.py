"""Helm values editing: nested path access and the indented-text codec.

Two text representations are supported:

- ``encode`` / ``decode``: the console's indentation-based codec. It is kept for
  compatibility with text users have already hand-edited. It does not support
  scalar list items, multi-line block scalars, or inline comments; round-trips
  are exact only for nested mappings with scalar leaves. Strings that look like
  booleans or numbers are written quoted. ``None`` is written as ``null`` and
  reads back as the string ``"null"``, so it is not a supported leaf.
- ``dump_values`` / ``load_values``: standard YAML through PyYAML, for new code.
"""

import copy
import logging
import math
import re
from typing import Any

import yaml

from butler_console.models import ValuesSchema
from butler_console.utils.errors import CodecParseError

logger = logging.getLogger(__name__)

INDENT = "  "

_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def set_nested_value(values: dict[str, Any], path: str, value: Any) -> None:
    """Assign ``value`` at a dot-separated path, creating intermediate mappings.

    A non-mapping value sitting on an intermediate segment is replaced by a
    mapping.

    Args:
        values: Mapping to modify in place
        path: Dot-separated key path (e.g. ``prometheus.prometheusSpec.replicas``)
        value: Leaf value
    """
    keys = path.split(".")
    current = values
    for key in keys[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]
    current[keys[-1]] = value


def get_nested_value(values: dict[str, Any], path: str) -> Any:
    """Read the value at a dot-separated path.

    Returns:
        The value, or None when any segment is missing
    """
    current: Any = values
    for key in path.split("."):
        if isinstance(current, dict) and key in current:
            current = current[key]
        else:
            return None
    return current


def _format_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, str):
        # Quote strings the decoder would otherwise coerce or strip
        if value == "" or value != value.strip() or _coerce_scalar(value) != value:
            return f'"{value}"'
    return str(value)


def encode(values: dict[str, Any], depth: int = 0) -> str:
    """Render a values mapping as indented text.

    Mappings render as ``key:`` followed by a block indented two spaces deeper;
    lists render as ``- `` items (mapping items nested two levels deeper);
    scalars render as ``key: value`` with the empty string shown as ``""``.

    Args:
        values: Mapping to render
        depth: Current nesting depth

    Returns:
        Text with one ``\\n``-terminated line per entry
    """
    spaces = INDENT * depth
    lines: list[str] = []
    for key, value in values.items():
        if isinstance(value, dict):
            lines.append(f"{spaces}{key}:\n{encode(value, depth + 1)}")
        elif isinstance(value, (list, tuple)):
            lines.append(f"{spaces}{key}:\n")
            for item in value:
                if isinstance(item, dict):
                    lines.append(f"{spaces}{INDENT}-\n{encode(item, depth + 2)}")
                else:
                    lines.append(f"{spaces}{INDENT}- {_format_scalar(item)}\n")
        else:
            lines.append(f"{spaces}{key}: {_format_scalar(value)}\n")
    return "".join(lines)


def _coerce_scalar(raw: str) -> Any:
    """Coerce scalar text: boolean, then finite number, then quoted string, then raw."""
    if raw == "true":
        return True
    if raw == "false":
        return False
    if _NUMBER_RE.match(raw):
        number = float(raw)
        if math.isfinite(number):
            if re.fullmatch(r"[+-]?\d+", raw):
                return int(raw)
            return number
    if len(raw) >= 2 and raw.startswith('"') and raw.endswith('"'):
        return raw[1:-1]
    return raw


def decode(text: str, strict: bool = False) -> dict[str, Any]:
    """Parse indented text back into a values mapping.

    Line oriented: blank lines and ``#`` comments are skipped. A stack of
    (mapping, indent) pairs tracks nesting; entries at or above the current
    indent are popped before each line is attached. A key with an empty remainder
    opens a nested mapping; otherwise the remainder is coerced to a scalar.

    List item lines (``-``) are not supported: they are skipped, or rejected in
    strict mode.

    Args:
        text: Text to parse
        strict: Raise on lines that are not ``key: value`` entries instead of
            silently skipping them

    Returns:
        Parsed mapping

    Raises:
        CodecParseError: In strict mode, for a list item line or a line
            without a key
    """
    result: dict[str, Any] = {}
    stack: list[tuple[dict[str, Any], int]] = [(result, -1)]

    for line_number, line in enumerate(text.split("\n"), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        if stripped.startswith("-"):
            if strict:
                raise CodecParseError(
                    f"Line {line_number}: list items are not supported", line_number
                )
            continue

        key, sep, remainder = stripped.partition(":")
        key = key.strip()
        if not sep or not key:
            if strict:
                raise CodecParseError(
                    f"Line {line_number}: expected 'key: value', got '{stripped}'", line_number
                )
            continue

        indent = len(line) - len(line.lstrip())
        while len(stack) > 1 and stack[-1][1] >= indent:
            stack.pop()
        parent = stack[-1][0]

        remainder = remainder.strip()
        if not remainder:
            child: dict[str, Any] = {}
            parent[key] = child
            stack.append((child, indent))
        else:
            parent[key] = _coerce_scalar(remainder)

    return result


def dump_values(values: dict[str, Any]) -> str:
    """Render values as standard YAML."""
    if not values:
        return ""
    return yaml.safe_dump(values, default_flow_style=False, sort_keys=False)


def load_values(text: str) -> dict[str, Any]:
    """Parse standard YAML values text.

    Raises:
        CodecParseError: If the text is not valid YAML or not a mapping
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        line_number = None
        mark = getattr(e, "problem_mark", None)
        if mark is not None:
            line_number = mark.line + 1
        raise CodecParseError(f"Invalid YAML: {e}", line_number) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise CodecParseError("Values must be a mapping at the top level")
    return data


class ValuesEditor:
    """Keeps a structured values mapping and its text view synchronized.

    Every field edit re-renders the text. Every successful text edit replaces the
    structured value. A failed text edit keeps the previous structured value and
    exposes the problem through ``parse_error`` until the next successful edit.
    """

    def __init__(self, schema: ValuesSchema | None = None):
        self.schema = schema or ValuesSchema()
        self.values: dict[str, Any] = copy.deepcopy(self.schema.defaults)
        self.text = encode(self.values)
        self.parse_error: CodecParseError | None = None

    def set_field(self, path: str, value: Any) -> None:
        set_nested_value(self.values, path, value)
        self.text = encode(self.values)
        self.parse_error = None

    def get_field(self, path: str) -> Any:
        return get_nested_value(self.values, path)

    def set_text(self, text: str) -> bool:
        """Replace the text view and re-derive the structured value.

        Args:
            text: Hand-edited values text

        Returns:
            True if the text decoded and the structured value was replaced
        """
        self.text = text
        try:
            parsed = decode(text, strict=True)
        except CodecParseError as e:
            logger.debug(f"Keeping previous values, text did not parse: {e}")
            self.parse_error = e
            return False

        self.values = parsed
        self.parse_error = None
        return True

    def reset(self) -> None:
        """Restore schema defaults."""
        self.values = copy.deepcopy(self.schema.defaults)
        self.text = encode(self.values)
        self.parse_error = None

    def missing_required(self) -> list[str]:
        """Paths of required schema fields that are unset or empty."""
        return [
            f.path
            for f in self.schema.iter_fields()
            if f.required and get_nested_value(self.values, f.path) in (None, "")
        ]
