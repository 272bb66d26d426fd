"""MQTT 3.1.1 packet model: packet types, flags, error codes and packet structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional, Union

DEFAULT_BUFF_SIZE = 1024
HEADER_SIZE = 2

# Fixed header type bytes (upper nibble of the first byte).
CONNECT_TYPE = 0x10
CONNACK_TYPE = 0x20
PUBLISH_TYPE = 0x30
PUBACK_TYPE = 0x40
PUBREC_TYPE = 0x50
PUBREL_TYPE = 0x60
PUBCOMP_TYPE = 0x70
SUBSCRIBE_TYPE = 0x80
SUBACK_TYPE = 0x90
UNSUBSCRIBE_TYPE = 0xA0
UNSUBACK_TYPE = 0xB0
PINGREQ_TYPE = 0xC0
PINGRESP_TYPE = 0xD0
DISCONNECT_TYPE = 0xE0

CONNACK_PACKET_SIZE = 4

TYPE_MASK = 0xF0
FLAG_MASK = 0x0F

# Publish flags (lower nibble of the fixed header).
PUBLISH_RETAIN_FLAG = 1 << 0
PUBLISH_QOS_FLAG_MASK = 0b00000110
PUBLISH_DUP_FLAG = 1 << 3
PUBLISH_QOS_0 = 0
PUBLISH_QOS_1 = 1 << 1
PUBLISH_QOS_2 = 1 << 2

# Quality of service levels.
QOS_0 = 0
QOS_1 = 1
QOS_2 = 1 << 1

SUB_UNSUB_FLAGS = 0x02
SUBACK_FAIL = 0x80
DISCONNECT_FLAGS = 0x00

# CONNACK return codes.
CONNACK_UNACCEPTABLE_PROTOCOL_VERSION = 0x01
CONNACK_ID_REJECTED = 0x02
CONNACK_SERVER_UNAVAILABLE = 0x03
CONNACK_BAD_USERNAME_OR_PASSWORD = 0x04
CONNACK_NOT_AUTHORIZED = 0x05

# CONNECT flags.
CLEAN_SESSION_FLAG = 1 << 1
WILL_FLAG = 1 << 2
WILL_QOS_FLAG_MASK = 0b00011000
WILL_QOS_AMO = 0x00
WILL_QOS_ALO = 1 << 3
WILL_QOS_EO = 1 << 4
WILL_RETAIN = 1 << 5
PASSWORD_FLAG = 1 << 6
USERNAME_FLAG = 1 << 7


class PacketType(IntEnum):
    """MQTT control packet types."""

    CONNECT = 1
    CONNACK = 2
    PUBLISH = 3
    PUBACK = 4
    PUBREC = 5
    PUBREL = 6
    PUBCOMP = 7
    SUBSCRIBE = 8
    SUBACK = 9
    UNSUBSCRIBE = 10
    UNSUBACK = 11
    PINGREQ = 12
    PINGRESP = 13
    DISCONNECT = 14

    @property
    def header_byte(self) -> int:
        """The fixed header byte for this type with all flags cleared."""
        return self.value << 4


class ErrorCode(IntEnum):
    """Failure codes for packing and parsing."""

    OK = 0
    GENERIC_ERR = -1
    INCORRECT_FLAGS = -2
    MALFORMED_PACKET = -3
    FAILED_MEM_ALLOC = -4
    INVALID_PACKET_TYPE = -5
    OUT_OF_BOUNDS = -6
    QOS_LEVEL_NOT_SUPPORTED = -7
    PACKET_ID_NOT_ALLOWED = -8


class MqttError(Exception):
    """Raised when a packet cannot be packed or parsed."""

    def __init__(self, code: ErrorCode, message: Optional[str] = None) -> None:
        self.code = ErrorCode(code)
        super().__init__(message or self.code.name.lower().replace("_", " "))


@dataclass
class Header:
    """Fixed header: the type/flags byte and the decoded remaining length."""

    fixed_header: int
    remaining_length: int = 0

    def packet_type(self) -> PacketType:
        """Return the packet type held in the upper nibble."""
        try:
            return PacketType((self.fixed_header & TYPE_MASK) >> 4)
        except ValueError:
            raise MqttError(
                ErrorCode.INVALID_PACKET_TYPE,
                f"invalid packet type in header byte 0x{self.fixed_header:02X}",
            ) from None

    def flags(self) -> int:
        """Return the flags held in the lower nibble."""
        return self.fixed_header & FLAG_MASK


@dataclass
class Connect:
    """CONNECT packet contents."""

    client_id: str = ""
    protocol_name: str = "MQTT"
    protocol_level: int = 4
    connect_flags: int = 0
    keep_alive: int = 0
    will_topic: Optional[str] = None
    will_message: Optional[bytes] = None

    @property
    def has_will(self) -> bool:
        return bool(self.connect_flags & WILL_FLAG)


@dataclass
class Connack:
    """CONNACK packet contents."""

    session_present: int = 0
    return_code: int = 0


@dataclass
class SubscribeTuple:
    """One topic filter in a SUBSCRIBE packet."""

    topic: str
    qos: int = QOS_0
    suback_status: int = 0


@dataclass
class Subscribe:
    """SUBSCRIBE packet contents."""

    pkt_id: int = 0
    tuples: list[SubscribeTuple] = field(default_factory=list)


@dataclass
class UnsubscribeTuple:
    """One topic filter in an UNSUBSCRIBE packet."""

    topic: str


@dataclass
class Unsubscribe:
    """UNSUBSCRIBE packet contents."""

    pkt_id: int = 0
    tuples: list[UnsubscribeTuple] = field(default_factory=list)


@dataclass
class Suback:
    """SUBACK packet contents."""

    pkt_id: int = 0
    return_codes: list[int] = field(default_factory=list)


@dataclass
class Publish:
    """PUBLISH packet contents."""

    topic: str = ""
    payload: bytes = b""
    pkt_id: int = 0


@dataclass
class Puback:
    """PUBACK packet contents."""

    pkt_id: int = 0


Body = Union[Connect, Connack, Publish, Puback, Subscribe, Suback, Unsubscribe, None]


@dataclass
class Packet:
    """A parsed packet: its fixed header and its type-specific body."""

    header: Header
    body: Body = None

    @property
    def packet_type(self) -> PacketType:
        return self.header.packet_type()


def default_connect(client_id: str) -> Connect:
    """Build a CONNECT for MQTT 3.1.1 with a clean session and no keep-alive."""
    return Connect(
        client_id=client_id,
        protocol_name="MQTT",
        protocol_level=4,
        connect_flags=CLEAN_SESSION_FLAG,
        keep_alive=0,
    )