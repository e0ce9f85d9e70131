"""Flat ``key=value`` text codec used for record files.

Each record is a mapping of string keys to string values, one entry per
line.  Lines starting with ``#`` or ``!`` are comments and blank lines are
ignored.  Backslash, newline and carriage return are escaped in both keys
and values; ``=`` is additionally escaped in keys so the first unescaped
``=`` on a line always separates key from value.  A line without a
separator decodes to a key with an empty value.
"""

from __future__ import annotations

from typing import Dict, Optional

_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\r": "\\r"}
_UNESCAPES = {"n": "\n", "r": "\r", "t": "\t"}


def _escape(text: str, is_key: bool = False) -> str:
    out = []
    for ch in text:
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif is_key and ch in "=:":
            out.append("\\" + ch)
        else:
            out.append(ch)
    return "".join(out)


def _split_line(line: str) -> tuple[str, str]:
    """Split a raw line on the first unescaped ``=`` and unescape both halves."""
    key_chars = []
    i = 0
    while i < len(line):
        ch = line[i]
        if ch == "\\" and i + 1 < len(line):
            nxt = line[i + 1]
            key_chars.append(_UNESCAPES.get(nxt, nxt))
            i += 2
            continue
        if ch == "=":
            return "".join(key_chars).strip(), _unescape(line[i + 1:])
        key_chars.append(ch)
        i += 1
    return "".join(key_chars).strip(), ""


def _unescape(text: str) -> str:
    out = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\\" and i + 1 < len(text):
            nxt = text[i + 1]
            out.append(_UNESCAPES.get(nxt, nxt))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def dumps(props: Dict[str, str], header: Optional[str] = None) -> str:
    """Serialize a flat mapping to ``key=value`` text."""
    lines = []
    if header:
        lines.append(f"# {header}")
    for key, value in props.items():
        lines.append(f"{_escape(key, is_key=True)}={_escape(value)}")
    return "\n".join(lines) + "\n"


def loads(text: str) -> Dict[str, str]:
    """Parse ``key=value`` text into a flat mapping. Later duplicates win."""
    props: Dict[str, str] = {}
    # Only "\n" ends a line; other Unicode line breaks are ordinary value characters
    for raw in text.split("\n"):
        line = raw.rstrip("\r").lstrip()
        if not line or line[0] in "#!":
            continue
        key, value = _split_line(line)
        if key:
            props[key] = value
    return props


def parse_int_safe(text: Optional[str], default: int) -> int:
    """Parse an int; fall back to ``default`` on missing or malformed input."""
    if text is None:
        return default
    try:
        return int(text.strip())
    except (TypeError, ValueError):
        return default


def parse_bool(text: Optional[str], default: bool = False) -> bool:
    # Only the literal "true" (any case) is truthy
    if text is None:
        return default
    return text.strip().lower() == "true"
