r"""Structured JSON values with shape-checked accessors.

Payloads and responses exchanged with the service are wrapped in
``JsonValue`` so that reading a field of the wrong shape fails loudly with
``JsonShapeError`` instead of silently producing ``None``.

Example:
    ```pycon
    >>> from bcxapi.json_value import decode_json
    >>> project = decode_json('{"id": 7, "name": "Launch", "tags": ["a", "b"]}')
    >>> project["name"].as_str()
    'Launch'
    >>> project["id"].as_int()
    7
    >>> [tag.as_str() for tag in project["tags"]]
    ['a', 'b']

    ```
"""

from __future__ import annotations

__all__ = ["JsonKind", "JsonValue", "decode_json", "encode_json"]

import json
from enum import Enum
from typing import TYPE_CHECKING, Any

from bcxapi.exceptions import JsonShapeError

if TYPE_CHECKING:
    from collections.abc import Iterator


class JsonKind(Enum):
    """The six shapes a JSON value can take."""

    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


def _kind_of(raw: Any) -> JsonKind:
    if raw is None:
        return JsonKind.NULL
    # bool is a subclass of int, so it must be checked first
    if isinstance(raw, bool):
        return JsonKind.BOOL
    if isinstance(raw, (int, float)):
        return JsonKind.NUMBER
    if isinstance(raw, str):
        return JsonKind.STRING
    if isinstance(raw, (list, tuple)):
        return JsonKind.ARRAY
    if isinstance(raw, dict):
        return JsonKind.OBJECT
    msg = f"{type(raw).__name__} is not a JSON-compatible type"
    raise JsonShapeError(msg)


class JsonValue:
    r"""An immutable view over a decoded JSON document.

    Args:
        raw: A JSON-compatible Python value: ``None``, ``bool``, ``int``,
            ``float``, ``str``, ``list``/``tuple`` or ``dict`` with string
            keys, nested arbitrarily. Other types raise ``JsonShapeError``.

    Example:
        ```pycon
        >>> from bcxapi.json_value import JsonKind, JsonValue
        >>> value = JsonValue({"token": "abc"})
        >>> value.kind
        <JsonKind.OBJECT: 'object'>
        >>> value["token"].as_str()
        'abc'
        >>> value.get("missing").is_null
        True

        ```
    """

    __slots__ = ("_kind", "_raw")

    def __init__(self, raw: Any = None) -> None:
        if isinstance(raw, JsonValue):
            raw = raw.raw
        self._kind = _kind_of(raw)
        self._raw = raw

    @property
    def kind(self) -> JsonKind:
        return self._kind

    @property
    def raw(self) -> Any:
        """The wrapped Python value."""
        return self._raw

    @property
    def is_null(self) -> bool:
        return self._kind is JsonKind.NULL

    def _expect(self, kind: JsonKind, label: str) -> None:
        if self._kind is not kind:
            msg = f"Expected {label}, got {_ARTICLES[self._kind]}: {self._raw!r}"
            raise JsonShapeError(msg)

    def as_str(self) -> str:
        self._expect(JsonKind.STRING, "a string")
        return self._raw

    def as_bool(self) -> bool:
        self._expect(JsonKind.BOOL, "a boolean")
        return self._raw

    def as_int(self) -> int:
        """Return the value as an integer.

        Raises:
            JsonShapeError: If the value is not a number or has a
                fractional part.
        """
        self._expect(JsonKind.NUMBER, "an integer")
        if isinstance(self._raw, float):
            if not self._raw.is_integer():
                msg = f"Expected an integer, got a fractional number: {self._raw!r}"
                raise JsonShapeError(msg)
            return int(self._raw)
        return self._raw

    def as_float(self) -> float:
        self._expect(JsonKind.NUMBER, "a number")
        return float(self._raw)

    def as_list(self) -> list[JsonValue]:
        self._expect(JsonKind.ARRAY, "an array")
        return [JsonValue(item) for item in self._raw]

    def as_dict(self) -> dict[str, JsonValue]:
        self._expect(JsonKind.OBJECT, "an object")
        return {key: JsonValue(item) for key, item in self._raw.items()}

    def get(self, key: str, default: Any = None) -> JsonValue:
        """Return the member ``key`` of an object, or ``default`` wrapped
        as a JsonValue when the member is absent.

        Raises:
            JsonShapeError: If this value is not an object.
        """
        self._expect(JsonKind.OBJECT, "an object")
        if key in self._raw:
            return JsonValue(self._raw[key])
        return JsonValue(default)

    def __getitem__(self, item: str | int) -> JsonValue:
        if isinstance(item, str):
            self._expect(JsonKind.OBJECT, "an object")
            if item not in self._raw:
                msg = f"Object has no member {item!r}"
                raise JsonShapeError(msg)
            return JsonValue(self._raw[item])
        self._expect(JsonKind.ARRAY, "an array")
        try:
            return JsonValue(self._raw[item])
        except IndexError as exc:
            msg = f"Array index {item} out of range (length {len(self._raw)})"
            raise JsonShapeError(msg) from exc

    def __contains__(self, key: object) -> bool:
        if self._kind is JsonKind.OBJECT:
            return key in self._raw
        if self._kind is JsonKind.ARRAY:
            return any(JsonValue(item) == key for item in self._raw)
        return False

    def __iter__(self) -> Iterator[JsonValue]:
        self._expect(JsonKind.ARRAY, "an array")
        return (JsonValue(item) for item in self._raw)

    def __len__(self) -> int:
        if self._kind not in (JsonKind.ARRAY, JsonKind.OBJECT, JsonKind.STRING):
            msg = f"{_ARTICLES[self._kind].capitalize()} has no length"
            raise JsonShapeError(msg)
        return len(self._raw)

    def __bool__(self) -> bool:
        # only null is falsy; 0, "" and empty containers are present values
        return not self.is_null

    def __eq__(self, other: object) -> bool:
        if isinstance(other, JsonValue):
            return self._kind is other._kind and self._raw == other._raw
        try:
            return self == JsonValue(other)
        except JsonShapeError:
            return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"JsonValue({self._raw!r})"


_ARTICLES = {
    JsonKind.NULL: "null",
    JsonKind.BOOL: "a boolean",
    JsonKind.NUMBER: "a number",
    JsonKind.STRING: "a string",
    JsonKind.ARRAY: "an array",
    JsonKind.OBJECT: "an object",
}


def decode_json(text: str | bytes) -> JsonValue:
    r"""Decode a JSON document.

    A blank document decodes to the null value, which is what the service
    sends back for empty bodies.

    Args:
        text: The JSON text.

    Returns:
        The decoded value.

    Raises:
        ValueError: If the text is not valid JSON.

    Example:
        ```pycon
        >>> from bcxapi.json_value import decode_json
        >>> decode_json("[1, 2]").as_list()
        [JsonValue(1), JsonValue(2)]
        >>> decode_json("").is_null
        True

        ```
    """
    if isinstance(text, bytes):
        text = text.decode("utf-8")
    if not text.strip():
        return JsonValue(None)
    return JsonValue(json.loads(text))


def encode_json(value: Any) -> str:
    r"""Encode a JSON-compatible value (or a ``JsonValue``) to text.

    Raises:
        JsonShapeError: If the value cannot be represented as JSON.

    Example:
        ```pycon
        >>> from bcxapi.json_value import encode_json
        >>> encode_json({"name": "Launch"})
        '{"name": "Launch"}'

        ```
    """
    if isinstance(value, JsonValue):
        value = value.raw
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as exc:
        msg = f"Cannot serialize object to a JSON string: {exc}"
        raise JsonShapeError(msg) from exc
