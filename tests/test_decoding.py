"""Tests for response decoders and input encoding."""

from dataclasses import dataclass, field
from typing import Any, Optional

import pytest

from conftest import Pair
from wgexecute import DecodeError, EncodeError
from wgexecute.decoding import decode_json, decoder_for, encode_input


@dataclass
class Author:
    name: str
    tags: list[str] = field(default_factory=list)


@dataclass
class Post:
    id: int
    author: Author
    score: float = 0.0
    reviewer: Optional[Author] = None


@dataclass
class Event:
    """Carries its own parser, which wins over dataclass decoding."""

    kind: str
    data: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: dict) -> "Event":
        d = dict(d)
        return cls(kind=d.pop("event", "unknown"), data=d)


class TestDecoderFor:
    """Each accepted response description builds a working decoder."""

    def test_none_passes_json_through(self):
        assert decode_json(b'{"x":[1,2]}', decoder_for(None)) == {"x": [1, 2]}
        assert decode_json(b"null", decoder_for(Any)) is None

    def test_nested_dataclasses(self):
        raw = b'{"id":1,"author":{"name":"Ada","tags":["math"]},"score":3,"extra":true}'

        post = decode_json(raw, decoder_for(Post))

        assert post == Post(id=1, author=Author(name="Ada", tags=["math"]), score=3.0)
        assert isinstance(post.score, float)

    def test_optional_nested_dataclass(self):
        raw = b'{"id":2,"author":{"name":"A"},"reviewer":{"name":"B"}}'

        assert decode_json(raw, decoder_for(Post)).reviewer == Author(name="B")

    def test_missing_required_field(self):
        with pytest.raises(DecodeError):
            decode_json(b'{"id":1}', decoder_for(Post))

    def test_from_dict_is_preferred(self):
        event = decode_json(b'{"event":"tick","n":1}', decoder_for(Event))

        assert event == Event(kind="tick", data={"n": 1})

    def test_plain_callable(self):
        assert decode_json(b"[1,2,3]", decoder_for(sum)) == 6

    def test_generic_aliases(self):
        assert decode_json(b'[{"a":1},{"b":2}]', decoder_for(list[Pair])) == [Pair(a=1), Pair(b=2)]
        assert decode_json(b'{"x":{"a":1}}', decoder_for(dict[str, Pair])) == {"x": Pair(a=1)}
        assert decode_json(b"null", decoder_for(Optional[int])) is None

    @pytest.mark.parametrize(
        "tp, raw",
        [
            (int, b"true"),
            (int, b"1.5"),
            (float, b'"1.5"'),
            (str, b"1"),
            (bool, b"0"),
            (list[int], b'{"a":1}'),
            (dict, b"[]"),
            (Pair, b"[1]"),
            (Optional[int], b'"x"'),
        ],
    )
    def test_type_mismatch_is_decode_error(self, tp, raw):
        with pytest.raises(DecodeError, match="error reading JSON"):
            decode_json(raw, decoder_for(tp))

    def test_invalid_json_is_decode_error(self):
        with pytest.raises(DecodeError):
            decode_json(b'{"a":', decoder_for(None))

    def test_invalid_utf8_is_decode_error(self):
        with pytest.raises(DecodeError):
            decode_json(b'"\xff\xfe"', decoder_for(None))

    def test_unusable_description(self):
        with pytest.raises(TypeError, match="Unsupported response type"):
            decoder_for("not a type")


class TestEncodeInput:
    """Inputs are serialized as compact JSON."""

    def test_compact_separators(self):
        assert encode_input({"a": 1, "b": [1, 2]}) == '{"a":1,"b":[1,2]}'

    def test_dataclass_input(self):
        assert encode_input(Author(name="Ada")) == '{"name":"Ada","tags":[]}'

    def test_non_ascii_kept(self):
        assert encode_input({"name": "Zoë"}) == '{"name":"Zoë"}'

    def test_unserializable(self):
        with pytest.raises(EncodeError, match="error encoding input"):
            encode_input({"when": object()})

    def test_nan_is_rejected(self):
        with pytest.raises(EncodeError):
            encode_input({"x": float("nan")})
