"""Pretty-printing of values for assertion failure messages.

Values are explored recursively and rendered with their type, indented
and, when long, spread over several lines.
"""

from __future__ import annotations

import contextvars
import dataclasses
import datetime
import enum
import types
from collections.abc import Iterable, Mapping, Set
from typing import Any, Protocol, runtime_checkable

TRUNCATE_HELP_TEXT = """
This representation was truncated as it exceeds 'settings.max_length'.
Consider having the object provide a custom 'gomega_string' representation
or adjust the parameters in the format settings.
"""

_ESCAPES = {
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
    "\\": "\\\\",
    '"': '\\"',
}

_PLAIN_TYPES = (
    bool,
    int,
    float,
    complex,
    str,
    bytes,
    bytearray,
    list,
    tuple,
    dict,
    set,
    frozenset,
)

_SIZED_TYPES = (list, tuple, Set, Mapping, bytes, bytearray, contextvars.Context)

_FUNCTION_TYPES = (
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    types.LambdaType,
)


@dataclasses.dataclass
class Settings:
    """Knobs that control how values are rendered."""

    max_depth: int = 10
    max_length: int = 4000
    use_stringer_representation: bool = False
    print_context_objects: bool = False
    truncated_diff: bool = True
    truncate_threshold: int = 50
    characters_around_mismatch_to_include: int = 5
    indent: str = "    "
    long_form_threshold: int = 20


settings = Settings()


@runtime_checkable
class GomegaStringer(Protocol):
    """Objects that supply their own representation.

    The representation is always used and is never truncated.
    """

    def gomega_string(self) -> str: ...


def message(actual: Any, message: str, *args: Any) -> str:
    """Build an 'Expected <actual> <message> [<expected>]' failure message."""
    text = f"Expected\n{format_object(actual, 1)}\n{message}"
    if args:
        text += f"\n{format_object(args[0], 1)}"
    return text


def message_with_diff(actual: str, message: str, expected: str) -> str:
    """Like message(), but points at the first place two strings differ."""
    threshold = settings.truncate_threshold
    if settings.truncated_diff and len(actual) >= threshold and len(expected) >= threshold:
        diff_point = _find_first_mismatch(actual, expected)
        formatted_actual = _truncate_and_format(actual, diff_point)
        formatted_expected = _truncate_and_format(expected, diff_point)
        spaces_before_mismatch = _find_first_mismatch(formatted_actual, formatted_expected)

        type_label = f"<{_format_type('')}>: "
        space_from_message_to_actual = len(settings.indent) + len(type_label) - len(message)
        padding_count = space_from_message_to_actual + spaces_before_mismatch
        if padding_count < 0:
            return _message_strings(formatted_actual, message, formatted_expected)
        padding = " " * padding_count + "|"
        return _message_strings(formatted_actual, message + padding, formatted_expected)

    return _message_strings(_escaped(actual), message, _escaped(expected))


def format_object(obj: Any, indentation: int = 0) -> str:
    """Render obj with its type at the given indentation level."""
    indent = settings.indent * indentation
    return f"{indent}<{_format_type(obj)}>: {_format_value(obj, indentation)}"


def indent_string(s: str, indentation: int) -> str:
    """Indent every line of s by the given number of indentation levels."""
    prefix = settings.indent * indentation
    return "\n".join(prefix + line for line in s.split("\n"))


def _message_strings(actual: str, message_text: str, expected: str) -> str:
    return message(actual, message_text, expected)


def _quote(text: str) -> str:
    parts = []
    for ch in text:
        if ch in _ESCAPES:
            parts.append(_ESCAPES[ch])
        elif ch.isprintable():
            parts.append(ch)
        else:
            code = ord(ch)
            if code < 0x80:
                parts.append(f"\\x{code:02x}")
            elif code < 0x10000:
                parts.append(f"\\u{code:04x}")
            else:
                parts.append(f"\\U{code:08x}")
    return '"' + "".join(parts) + '"'


def _escaped(text: str) -> str:
    return _quote(text)[1:-1]


def _truncate_and_format(text: str, index: int) -> str:
    around = settings.characters_around_mismatch_to_include
    left, right = "...", "..."

    start = index - around
    if start < 0:
        start, left = 0, ""

    # the slice must include the mismatched character itself
    end = index + around + 1
    if end > len(text):
        end, right = len(text), ""

    return f'"{left}{text[start:end]}{right}"'


def _find_first_mismatch(a: str, b: str) -> int:
    for index, (x, y) in enumerate(zip(a, b)):
        if x != y:
            return index
    if len(a) > len(b):
        return len(b)
    if len(b) > len(a):
        return len(a) + 1
    return 0


def _truncate(text: str) -> str:
    limit = settings.max_length
    if limit > 0 and len(text) > limit:
        return text[:limit] + "...\n" + TRUNCATE_HELP_TEXT
    return text


def _format_type(obj: Any) -> str:
    if obj is None:
        return "None"
    name = type(obj).__qualname__
    if isinstance(obj, _SIZED_TYPES):
        return f"{name} | len:{len(obj)}"
    return name


def _stringer(obj: Any) -> str | None:
    cls = type(obj)
    if cls.__repr__ is not object.__repr__:
        return repr(obj)
    if cls.__str__ is not object.__str__:
        return str(obj)
    return None


def _format_value(obj: Any, indentation: int) -> str:
    if indentation > settings.max_depth:
        return "..."

    if obj is None:
        return "None"

    if isinstance(obj, GomegaStringer) and not isinstance(obj, type):
        return obj.gomega_string()

    if settings.use_stringer_representation and not isinstance(obj, _PLAIN_TYPES):
        representation = _stringer(obj)
        if representation is not None:
            return _truncate(representation)

    if isinstance(obj, contextvars.Context):
        if not settings.print_context_objects and indentation > 1:
            return "<suppressed context>"
        items = [(var.name, value) for var, value in obj.items()]
        return _truncate(_format_mapping(items, indentation))

    if isinstance(obj, bool):
        return str(obj)
    if isinstance(obj, enum.Enum):
        return f"{type(obj).__qualname__}.{obj.name}"
    if isinstance(obj, (int, float, complex)):
        return repr(obj)
    if isinstance(obj, str):
        return _truncate(_format_string(obj, indentation))
    if isinstance(obj, (bytes, bytearray)):
        text = bytes(obj).decode("utf-8", errors="replace")
        if text.isprintable():
            return _truncate(_format_string(text, indentation))
        return _truncate(_format_sequence(obj, "[", "]", indentation))
    if isinstance(obj, (datetime.date, datetime.time)):
        return obj.isoformat()
    if isinstance(obj, Mapping):
        return _truncate(_format_mapping(obj.items(), indentation))
    if isinstance(obj, list):
        return _truncate(_format_sequence(obj, "[", "]", indentation))
    if isinstance(obj, tuple):
        return _truncate(_format_sequence(obj, "(", ")", indentation))
    if isinstance(obj, Set):
        return _truncate(_format_sequence(obj, "{", "}", indentation))
    if isinstance(obj, _FUNCTION_TYPES):
        return f"0x{id(obj):x}"
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        fields = [(field.name, getattr(obj, field.name)) for field in dataclasses.fields(obj)]
        return _truncate(_format_struct(fields, indentation))
    if hasattr(obj, "__dict__") and not isinstance(obj, (type, types.ModuleType)):
        return _truncate(_format_struct(vars(obj).items(), indentation))
    return _truncate(repr(obj))


def _format_string(text: str, indentation: int) -> str:
    if indentation == 1:
        return ("\n" + settings.indent).join(text.split("\n"))
    return _quote(text)


def _layout(entries: list[str], opening: str, closing: str, indentation: int) -> str:
    if entries and max(len(entry) for entry in entries) > settings.long_form_threshold:
        outer = settings.indent * indentation
        inner = outer + settings.indent
        body = "".join(f"{inner}{entry},\n" for entry in entries)
        return f"{opening}\n{body}{outer}{closing}"
    if opening == "(" and len(entries) == 1:
        return f"({entries[0]},)"
    return f"{opening}{', '.join(entries)}{closing}"


def _format_sequence(items: Iterable[Any], opening: str, closing: str, indentation: int) -> str:
    entries = [_format_value(item, indentation + 1) for item in items]
    return _layout(entries, opening, closing, indentation)


def _format_mapping(items: Iterable[tuple[Any, Any]], indentation: int) -> str:
    entries = [
        f"{_format_value(key, indentation + 1)}: {_format_value(value, indentation + 1)}"
        for key, value in items
    ]
    return _layout(entries, "{", "}", indentation)


def _format_struct(items: Iterable[tuple[str, Any]], indentation: int) -> str:
    entries = [f"{name}: {_format_value(value, indentation + 1)}" for name, value in items]
    return _layout(entries, "{", "}", indentation)