"""Parsing of MQTT packets from their wire format."""

from __future__ import annotations

from typing import Callable, Optional

from ledmqtt.protocol import (
    CONNACK_TYPE,
    CONNECT_TYPE,
    DISCONNECT_FLAGS,
    DISCONNECT_TYPE,
    PUBACK_TYPE,
    PUBLISH_QOS_0,
    PUBLISH_QOS_FLAG_MASK,
    PUBLISH_TYPE,
    QOS_0,
    QOS_1,
    QOS_2,
    SUB_UNSUB_FLAGS,
    SUBACK_FAIL,
    SUBACK_TYPE,
    SUBSCRIBE_TYPE,
    TYPE_MASK,
    UNSUBSCRIBE_TYPE,
    WILL_FLAG,
    Body,
    Connack,
    Connect,
    ErrorCode,
    Header,
    MqttError,
    Packet,
    Puback,
    Publish,
    Suback,
    Subscribe,
    SubscribeTuple,
    Unsubscribe,
    UnsubscribeTuple,
)

_MAX_MULTIPLIER = 128 * 128 * 128
_VALID_SUBACK_CODES = frozenset((QOS_0, QOS_1, QOS_2, SUBACK_FAIL))


class Reader:
    """A cursor over a received buffer that raises on out-of-bounds reads."""

    def __init__(self, data: bytes, offset: int = 0) -> None:
        self.data = bytes(data)
        self.offset = offset

    @property
    def remaining(self) -> int:
        """Number of unread bytes left in the buffer."""
        return max(len(self.data) - self.offset, 0)

    def _read_bytes(self, length: int) -> bytes:
        end = self.offset + length
        if length < 0 or end > len(self.data):
            raise MqttError(
                ErrorCode.OUT_OF_BOUNDS,
                f"reading {length} bytes at offset {self.offset} overruns "
                f"a {len(self.data)}-byte buffer",
            )
        chunk = self.data[self.offset:end]
        self.offset = end
        return chunk

    def read_uint8(self) -> int:
        """Read one byte."""
        return self._read_bytes(1)[0]

    def read_uint16(self) -> int:
        """Read a big-endian 16-bit unsigned integer."""
        return int.from_bytes(self._read_bytes(2), "big")

    def read_str(self, length: int) -> str:
        """Read ``length`` bytes and decode them as UTF-8."""
        raw = self._read_bytes(length)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MqttError(ErrorCode.MALFORMED_PACKET, "string is not valid UTF-8") from exc

    def decode_remaining_length(self) -> int:
        """Decode a variable-length Remaining Length field (at most 4 bytes)."""
        multiplier = 1
        value = 0
        while True:
            encoded = self.read_uint8()
            value += (encoded & 0x7F) * multiplier
            if multiplier > _MAX_MULTIPLIER:
                raise MqttError(
                    ErrorCode.MALFORMED_PACKET, "remaining length is longer than 4 bytes"
                )
            multiplier *= 128
            if not encoded & 0x80:
                return value


def unpack_connect(reader: Reader) -> Connect:
    """Parse the variable header and payload of a CONNECT packet."""
    protocol_name = reader.read_str(reader.read_uint16())
    protocol_level = reader.read_uint8()
    connect_flags = reader.read_uint8()
    if connect_flags & 1:
        raise MqttError(ErrorCode.MALFORMED_PACKET, "reserved connect flag must be 0")
    keep_alive = reader.read_uint16()
    client_id = reader.read_str(reader.read_uint16())

    will_topic: Optional[str] = None
    will_message: Optional[bytes] = None
    if connect_flags & WILL_FLAG:
        topic_len = reader.read_uint16()
        if topic_len:
            will_topic = reader.read_str(topic_len)
        message_len = reader.read_uint16()
        if message_len:
            will_message = reader._read_bytes(message_len)

    return Connect(
        client_id=client_id,
        protocol_name=protocol_name,
        protocol_level=protocol_level,
        connect_flags=connect_flags,
        keep_alive=keep_alive,
        will_topic=will_topic,
        will_message=will_message,
    )


def unpack_connack(reader: Reader) -> Connack:
    """Parse the body of a CONNACK packet."""
    flags = reader.read_uint8()
    if flags & 0b11111110:
        raise MqttError(ErrorCode.MALFORMED_PACKET, "only the session present flag may be set")
    return Connack(session_present=flags, return_code=reader.read_uint8())


def unpack_publish(reader: Reader, header: Header) -> Publish:
    """Parse the body of a PUBLISH packet described by ``header``."""
    topic_len = reader.read_uint16()
    topic = reader.read_str(topic_len)
    variable_header_size = 2 + topic_len

    pkt_id = 0
    if header.fixed_header & PUBLISH_QOS_FLAG_MASK != PUBLISH_QOS_0:
        pkt_id = reader.read_uint16()
        if pkt_id == 0:
            raise MqttError(ErrorCode.PACKET_ID_NOT_ALLOWED, "publish packet id must not be 0")
        variable_header_size += 2

    if variable_header_size > header.remaining_length:
        raise MqttError(
            ErrorCode.MALFORMED_PACKET, "variable header is longer than the remaining length"
        )
    payload = reader._read_bytes(header.remaining_length - variable_header_size)
    return Publish(topic=topic, payload=payload, pkt_id=pkt_id)


def _read_subscription(reader: Reader) -> tuple[SubscribeTuple, bool]:
    """Read one topic filter; the flag tells whether parsing may go on."""
    try:
        topic_len = reader.read_uint16()
    except MqttError:
        return SubscribeTuple("", QOS_0, SUBACK_FAIL), False
    try:
        topic = reader.read_str(topic_len) if topic_len else ""
    except MqttError:
        return SubscribeTuple("", QOS_0, SUBACK_FAIL), False
    try:
        qos = reader.read_uint8()
    except MqttError:
        return SubscribeTuple(topic, QOS_0, SUBACK_FAIL), False
    accepted = topic_len > 0 and qos in (QOS_0, QOS_1)
    return SubscribeTuple(topic, qos, qos if accepted else SUBACK_FAIL), True


def unpack_subscribe(reader: Reader) -> Subscribe:
    """Parse a SUBSCRIBE body; rejected filters carry a SUBACK_FAIL status."""
    try:
        pkt_id = reader.read_uint16()
    except MqttError:
        pkt_id = 0
    rejected = pkt_id == 0

    tuples: list[SubscribeTuple] = []
    while reader.remaining > 0:
        entry, complete = _read_subscription(reader)
        if rejected:
            entry.suback_status = SUBACK_FAIL
        tuples.append(entry)
        if not complete:
            break

    if not tuples:
        raise MqttError(ErrorCode.MALFORMED_PACKET, "subscribe carries no topic filters")
    return Subscribe(pkt_id=pkt_id, tuples=tuples)


def unpack_suback(reader: Reader) -> Suback:
    """Parse the body of a SUBACK packet."""
    pkt_id = reader.read_uint16()
    if reader.remaining == 0:
        raise MqttError(ErrorCode.MALFORMED_PACKET, "suback carries no return codes")
    return_codes = []
    while reader.remaining > 0:
        code = reader.read_uint8()
        if code not in _VALID_SUBACK_CODES:
            raise MqttError(ErrorCode.MALFORMED_PACKET, f"invalid suback return code 0x{code:02X}")
        return_codes.append(code)
    return Suback(pkt_id=pkt_id, return_codes=return_codes)


def unpack_unsubscribe(reader: Reader) -> Unsubscribe:
    """Parse the body of an UNSUBSCRIBE packet."""
    pkt_id = reader.read_uint16()
    if pkt_id == 0:
        raise MqttError(ErrorCode.PACKET_ID_NOT_ALLOWED, "unsubscribe packet id must not be 0")

    tuples: list[UnsubscribeTuple] = []
    while reader.remaining > 0:
        topic_len = reader.read_uint16()
        if topic_len == 0:
            raise MqttError(ErrorCode.MALFORMED_PACKET, "unsubscribe topic is empty")
        tuples.append(UnsubscribeTuple(reader.read_str(topic_len)))

    if not tuples:
        raise MqttError(ErrorCode.MALFORMED_PACKET, "unsubscribe carries no topic filters")
    return Unsubscribe(pkt_id=pkt_id, tuples=tuples)


def _connack(reader: Reader, header: Header) -> Connack:
    if header.flags() != 0:
        raise MqttError(ErrorCode.INCORRECT_FLAGS, "connack flags must be 0")
    if header.remaining_length != 2:
        raise MqttError(ErrorCode.MALFORMED_PACKET, "connack remaining length must be 2")
    return unpack_connack(reader)


def _puback(reader: Reader, header: Header) -> Puback:
    if header.remaining_length != 2:
        raise MqttError(ErrorCode.MALFORMED_PACKET, "puback remaining length must be 2")
    return Puback(pkt_id=reader.read_uint16())


def _subscribe(reader: Reader, header: Header) -> Subscribe:
    if header.flags() != SUB_UNSUB_FLAGS:
        raise MqttError(ErrorCode.INCORRECT_FLAGS, "subscribe flags must be 0x02")
    return unpack_subscribe(reader)


def _unsubscribe(reader: Reader, header: Header) -> Unsubscribe:
    if header.flags() != SUB_UNSUB_FLAGS:
        raise MqttError(ErrorCode.INCORRECT_FLAGS, "unsubscribe flags must be 0x02")
    return unpack_unsubscribe(reader)


def _disconnect(reader: Reader, header: Header) -> None:
    if header.flags() != DISCONNECT_FLAGS:
        raise MqttError(ErrorCode.MALFORMED_PACKET, "disconnect flags must be 0")
    return None


_HANDLERS: dict[int, Callable[[Reader, Header], Body]] = {
    CONNECT_TYPE: lambda reader, header: unpack_connect(reader),
    CONNACK_TYPE: _connack,
    PUBLISH_TYPE: lambda reader, header: unpack_publish(reader, header),
    PUBACK_TYPE: _puback,
    SUBSCRIBE_TYPE: _subscribe,
    SUBACK_TYPE: lambda reader, header: unpack_suback(reader),
    UNSUBSCRIBE_TYPE: _unsubscribe,
    DISCONNECT_TYPE: _disconnect,
}


def unpack(data: bytes) -> Packet:
    """Parse one packet from ``data``, dispatching on its type."""
    reader = Reader(data)
    fixed_header = reader.read_uint8()
    header = Header(fixed_header=fixed_header, remaining_length=reader.decode_remaining_length())
    handler = _HANDLERS.get(fixed_header & TYPE_MASK)
    if handler is None:
        raise MqttError(
            ErrorCode.GENERIC_ERR, f"unsupported packet type in header byte 0x{fixed_header:02X}"
        )
    return Packet(header=header, body=handler(reader, header))