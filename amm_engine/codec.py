"""Confirmation payload codec.

When the host instantiates a contract on the engine's behalf, it confirms
with a protobuf-encoded record:

    field 1 (tag 0x0a): contract address, UTF-8 string
    field 2 (tag 0x12): optional opaque data bytes

Both fields are length-delimited with base-128 varint lengths.
"""

from __future__ import annotations

from dataclasses import dataclass

from amm_engine.errors import FailedToParseReply

CONTRACT_ADDRESS_TAG = 0x0A
DATA_TAG = 0x12

# Varints longer than this cannot describe a payload we would accept
_MAX_VARINT_BYTES = 10


@dataclass(frozen=True)
class InstantiateResponse:
    contract_address: str
    data: bytes | None = None


def encode_varint(value: int) -> bytes:
    if value < 0:
        raise ValueError(f"varint must be non-negative, got {value}")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_varint(buf: bytes, pos: int) -> tuple[int, int]:
    """Decode a varint at `pos`, returning (value, next position).

    Raises:
        FailedToParseReply: If the varint is truncated or too long
    """
    result = 0
    for i in range(_MAX_VARINT_BYTES):
        if pos + i >= len(buf):
            raise FailedToParseReply("Truncated varint in instantiate response")
        byte = buf[pos + i]
        result |= (byte & 0x7F) << (7 * i)
        if not byte & 0x80:
            return result, pos + i + 1
    raise FailedToParseReply("Varint too long in instantiate response")


def _read_field(buf: bytes, pos: int, expected_tag: int) -> tuple[bytes, int]:
    if pos >= len(buf) or buf[pos] != expected_tag:
        raise FailedToParseReply(f"Expected field tag {expected_tag:#04x} at offset {pos}")
    length, start = decode_varint(buf, pos + 1)
    end = start + length
    if end > len(buf):
        raise FailedToParseReply(
            f"Field length {length} exceeds payload ({len(buf) - start} bytes left)"
        )
    return buf[start:end], end


def parse_instantiate_response(payload: bytes) -> InstantiateResponse:
    """Decode an instantiate confirmation.

    Raises:
        FailedToParseReply: If the payload is malformed or the address is
            missing or not UTF-8
    """
    raw_address, pos = _read_field(payload, 0, CONTRACT_ADDRESS_TAG)
    try:
        address = raw_address.decode("utf-8")
    except UnicodeDecodeError as err:
        raise FailedToParseReply("Contract address is not valid UTF-8") from err
    if not address:
        raise FailedToParseReply("Missing contract address in instantiate response")

    data = None
    if pos < len(payload):
        data, pos = _read_field(payload, pos, DATA_TAG)
    if pos != len(payload):
        raise FailedToParseReply(f"Trailing bytes after instantiate response: {len(payload) - pos}")

    return InstantiateResponse(contract_address=address, data=data)


def encode_instantiate_response(contract_address: str, data: bytes | None = None) -> bytes:
    """Encode a confirmation the way a host would deliver it."""
    raw = contract_address.encode("utf-8")
    out = bytes([CONTRACT_ADDRESS_TAG]) + encode_varint(len(raw)) + raw
    if data is not None:
        out += bytes([DATA_TAG]) + encode_varint(len(data)) + data
    return out
