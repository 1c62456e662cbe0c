from typing import Any, Literal, overload

import msgspec

__all__ = ("decode_json", "encode_json")

_encoder = msgspec.json.Encoder(enc_hook=str)
_decoder = msgspec.json.Decoder()


@overload
def encode_json(data: Any, *, as_bytes: Literal[False] = ...) -> str: ...


@overload
def encode_json(data: Any, *, as_bytes: Literal[True]) -> bytes: ...


def encode_json(data: Any, *, as_bytes: bool = False) -> "str | bytes":
    """Encode data to JSON.

    Values msgspec cannot encode natively fall back to ``str()``.
    """
    encoded = _encoder.encode(data)
    return encoded if as_bytes else encoded.decode("utf-8")


def decode_json(data: "str | bytes") -> Any:
    return _decoder.decode(data)
