"""Serialisation of MQTT packets into their wire format."""

from __future__ import annotations

import struct
from typing import Union

from ledmqtt.protocol import (
    CONNACK_TYPE,
    CONNECT_TYPE,
    DISCONNECT_TYPE,
    PUBACK_TYPE,
    PUBLISH_TYPE,
    SUB_UNSUB_FLAGS,
    SUBACK_TYPE,
    SUBSCRIBE_TYPE,
    UNSUBSCRIBE_TYPE,
    WILL_FLAG,
    Connack,
    Connect,
    ErrorCode,
    MqttError,
    Puback,
    Publish,
    Suback,
    Subscribe,
    Unsubscribe,
)

MAX_REMAINING_LENGTH = 268_435_455
_MAX_REMAINING_LENGTH_BYTES = 4
_UINT16_MAX = 0xFFFF


def _as_bytes(value: Union[str, bytes]) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


def _uint16(value: int) -> bytes:
    if not 0 <= value <= _UINT16_MAX:
        raise MqttError(ErrorCode.OUT_OF_BOUNDS, f"value {value} does not fit in 16 bits")
    return struct.pack("!H", value)


def _uint8(value: int) -> bytes:
    if not 0 <= value <= 0xFF:
        raise MqttError(ErrorCode.OUT_OF_BOUNDS, f"value {value} does not fit in 8 bits")
    return bytes((value,))


def _prefixed(value: Union[str, bytes]) -> bytes:
    """Encode a string as a 16-bit big-endian length followed by its bytes."""
    data = _as_bytes(value)
    return _uint16(len(data)) + data


def encode_remaining_length(value: int) -> bytes:
    """Encode a Remaining Length with MQTT's variable-length scheme (1-4 bytes)."""
    if value < 0:
        raise ValueError("remaining length cannot be negative")
    if value > MAX_REMAINING_LENGTH:
        raise MqttError(
            ErrorCode.MALFORMED_PACKET,
            f"remaining length {value} needs more than {_MAX_REMAINING_LENGTH_BYTES} bytes",
        )
    encoded = bytearray()
    while True:
        value, digit = divmod(value, 128)
        if value > 0:
            digit |= 0x80
        encoded.append(digit)
        if value == 0:
            return bytes(encoded)


def finalize_packet(body: bytes, header_byte: int) -> bytes:
    """Prepend the fixed header (type/flags byte and remaining length) to a body."""
    return _uint8(header_byte) + encode_remaining_length(len(body)) + bytes(body)


def pack_connect(conn: Connect) -> bytes:
    """Serialise a CONNECT packet."""
    if not conn.protocol_name:
        raise MqttError(ErrorCode.MALFORMED_PACKET, "protocol name is empty")
    if not conn.client_id:
        raise MqttError(ErrorCode.MALFORMED_PACKET, "client id is empty")

    parts = [
        _prefixed(conn.protocol_name),
        _uint8(conn.protocol_level),
        _uint8(conn.connect_flags),
        _uint16(conn.keep_alive),
        _prefixed(conn.client_id),
    ]
    if conn.connect_flags & WILL_FLAG:
        if not conn.will_topic:
            raise MqttError(ErrorCode.MALFORMED_PACKET, "will flag set but will topic is empty")
        if not conn.will_message:
            raise MqttError(ErrorCode.MALFORMED_PACKET, "will flag set but will message is empty")
        parts.append(_prefixed(conn.will_topic))
        parts.append(_prefixed(conn.will_message))
    return finalize_packet(b"".join(parts), CONNECT_TYPE)


def pack_connack(connack: Connack) -> bytes:
    """Serialise a CONNACK packet, which always has a remaining length of 2."""
    return finalize_packet(
        _uint8(connack.session_present) + _uint8(connack.return_code), CONNACK_TYPE
    )


def pack_publish(pub: Publish, flags: int) -> bytes:
    """Serialise a PUBLISH packet; ``flags`` fills the lower nibble of the header."""
    if not pub.topic:
        raise MqttError(ErrorCode.MALFORMED_PACKET, "publish topic is empty")
    body = _prefixed(pub.topic) + _uint16(pub.pkt_id) + _as_bytes(pub.payload)
    return finalize_packet(body, PUBLISH_TYPE | (flags & 0x0F))


def pack_puback(puback: Puback) -> bytes:
    """Serialise a PUBACK packet."""
    if not puback.pkt_id:
        raise MqttError(ErrorCode.MALFORMED_PACKET, "puback packet id must not be 0")
    return finalize_packet(_uint16(puback.pkt_id), PUBACK_TYPE)


def pack_subscribe(sub: Subscribe) -> bytes:
    """Serialise a SUBSCRIBE packet."""
    if not sub.pkt_id:
        raise MqttError(ErrorCode.MALFORMED_PACKET, "subscribe packet id must not be 0")
    if not sub.tuples:
        raise MqttError(ErrorCode.MALFORMED_PACKET, "subscribe carries no topic filters")
    for entry in sub.tuples:
        if not entry.qos:
            raise MqttError(ErrorCode.MALFORMED_PACKET, "subscription qos must not be 0")
        if not entry.topic:
            raise MqttError(ErrorCode.MALFORMED_PACKET, "subscription topic is empty")

    parts = [_uint16(sub.pkt_id)]
    for entry in sub.tuples:
        parts.append(_prefixed(entry.topic))
        parts.append(_uint8(entry.qos))
    return finalize_packet(b"".join(parts), SUBSCRIBE_TYPE | SUB_UNSUB_FLAGS)


def pack_suback(suback: Suback) -> bytes:
    """Serialise a SUBACK packet."""
    if not suback.pkt_id:
        raise MqttError(ErrorCode.MALFORMED_PACKET, "suback packet id must not be 0")
    if not suback.return_codes:
        raise MqttError(ErrorCode.MALFORMED_PACKET, "suback carries no return codes")
    body = _uint16(suback.pkt_id) + b"".join(_uint8(rc) for rc in suback.return_codes)
    return finalize_packet(body, SUBACK_TYPE)


def pack_unsubscribe(unsub: Unsubscribe) -> bytes:
    """Serialise an UNSUBSCRIBE packet."""
    if not unsub.pkt_id:
        raise MqttError(ErrorCode.MALFORMED_PACKET, "unsubscribe packet id must not be 0")
    if not unsub.tuples:
        raise MqttError(ErrorCode.MALFORMED_PACKET, "unsubscribe carries no topic filters")
    if any(not entry.topic for entry in unsub.tuples):
        raise MqttError(ErrorCode.MALFORMED_PACKET, "unsubscribe topic is empty")

    body = _uint16(unsub.pkt_id) + b"".join(_prefixed(entry.topic) for entry in unsub.tuples)
    return finalize_packet(body, UNSUBSCRIBE_TYPE | SUB_UNSUB_FLAGS)


def pack_disconnect() -> bytes:
    """Serialise a DISCONNECT packet."""
    return finalize_packet(b"", DISCONNECT_TYPE)