"""JSON encoding of operation inputs and decoding of responses.

Every call takes a ``response`` argument describing what each JSON value
should become. Accepted forms:

- ``None`` or ``Any``: the parsed JSON value as-is
- a class with a ``from_dict`` classmethod: called with the parsed value
- a dataclass: built from a JSON object, recursing into annotated fields
- a JSON builtin or generic alias (``dict``, ``list[int]``, ``Optional[str]``):
  type-checked (and converted for nested dataclasses)
- any other callable: called with the parsed value

Example:
    >>> @dataclass
    ... class Point:
    ...     x: int = 0
    ...     y: int = 0
    >>> decode_json(b'{"x":1,"y":2,"z":3}', decoder_for(Point))
    Point(x=1, y=2)
"""

import dataclasses
import json
import types
import typing
from typing import Any, Callable, Union

from .errors import DecodeError, EncodeError

Decoder = Callable[[Any], Any]

_DECODE_ERRORS = (ValueError, TypeError, KeyError)


def _identity(value: Any) -> Any:
    return value


def decoder_for(response: Any = None) -> Decoder:
    """Build a decoder callable from a response type description.

    Args:
        response: Type, generic alias or callable (see module docs)

    Returns:
        Callable turning a parsed JSON value into the expected type.

    Raises:
        TypeError: If the description is not usable as a decoder
    """
    if response is None or response is Any:
        return _identity
    if hasattr(response, "from_dict"):
        return response.from_dict
    if typing.get_origin(response) is not None or isinstance(response, type):
        return lambda value: convert(response, value)
    if callable(response):
        return response
    raise TypeError(f"Unsupported response type: {response!r}")


def convert(tp: Any, value: Any) -> Any:
    """Check a parsed JSON value against a type, building dataclasses.

    Raises:
        TypeError: If the value does not match the type
    """
    if tp is Any or tp is object:
        return value

    origin = typing.get_origin(tp)
    if origin in (Union, types.UnionType):
        args = typing.get_args(tp)
        if value is None and type(None) in args:
            return None
        for arg in args:
            if arg is type(None):
                continue
            try:
                return convert(arg, value)
            except _DECODE_ERRORS:
                continue
        raise TypeError(f"{value!r} matches none of {tp}")

    if origin is list:
        _expect(list, value)
        (item,) = typing.get_args(tp) or (Any,)
        return [convert(item, v) for v in value]

    if origin is dict:
        _expect(dict, value)
        _, item = typing.get_args(tp) or (str, Any)
        return {k: convert(item, v) for k, v in value.items()}

    if tp is type(None):
        if value is not None:
            raise TypeError(f"expected null, got {type(value).__name__}")
        return None

    if hasattr(tp, "from_dict"):
        return tp.from_dict(value)

    if isinstance(tp, type) and dataclasses.is_dataclass(tp):
        return _from_dict(tp, value)

    # bool is an int subclass, JSON numbers are never booleans
    if tp is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"expected number, got {type(value).__name__}")
        return float(value)
    if tp is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"expected integer, got {type(value).__name__}")
        return value
    if tp in (str, bool, dict, list):
        _expect(tp, value)
        return value

    return tp(value)


def _expect(tp: type, value: Any) -> None:
    if not isinstance(value, tp):
        raise TypeError(f"expected {tp.__name__}, got {type(value).__name__}")


def _from_dict(cls: type, data: Any) -> Any:
    """Build a dataclass from a JSON object.

    Unknown keys are ignored. Missing keys fall back to field defaults, and a
    missing key without a default is a decode failure.
    """
    if not isinstance(data, dict):
        raise TypeError(f"expected object for {cls.__name__}, got {type(data).__name__}")
    hints = typing.get_type_hints(cls)
    kwargs = {}
    for f in dataclasses.fields(cls):
        if f.init and f.name in data:
            kwargs[f.name] = convert(hints.get(f.name, Any), data[f.name])
    return cls(**kwargs)


def decode_json(raw: bytes, decoder: Decoder) -> Any:
    """Parse one JSON document and run it through a decoder.

    The decoder may be caller code (``from_dict``, a plain callable), so any
    exception it raises counts as a decode failure.

    Raises:
        DecodeError: If the bytes are not JSON or do not fit the decoder
    """
    try:
        return decoder(json.loads(raw))
    except Exception as e:
        raise DecodeError() from e


def _encode_default(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def encode_input(value: Any) -> str:
    """Serialize an operation input to compact JSON.

    Raises:
        EncodeError: If the value is not serializable
    """
    try:
        return json.dumps(
            value,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
            default=_encode_default,
        )
    except (TypeError, ValueError) as e:
        raise EncodeError() from e
