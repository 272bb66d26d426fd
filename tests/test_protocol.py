import pytest

from ledmqtt.protocol import (
    CLEAN_SESSION_FLAG,
    CONNACK_TYPE,
    CONNECT_TYPE,
    DISCONNECT_TYPE,
    PUBLISH_TYPE,
    SUBSCRIBE_TYPE,
    WILL_FLAG,
    Connack,
    Connect,
    ErrorCode,
    Header,
    MqttError,
    Packet,
    PacketType,
    Publish,
    Subscribe,
    SubscribeTuple,
    default_connect,
)


@pytest.mark.parametrize(
    "byte, value",
    [
        (CONNECT_TYPE, 1),
        (CONNACK_TYPE, 2),
        (PUBLISH_TYPE, 3),
        (DISCONNECT_TYPE, 14),
    ],
)
def test_packet_type_values_match_protocol(byte, value):
    ptype = Header(byte).packet_type()
    assert ptype == value
    assert int(ptype) == value


@pytest.mark.parametrize(
    "ptype, byte",
    [
        (PacketType.CONNACK, CONNACK_TYPE),
        (PacketType.PUBLISH, PUBLISH_TYPE),
        (PacketType.SUBSCRIBE, SUBSCRIBE_TYPE),
        (PacketType.DISCONNECT, DISCONNECT_TYPE),
    ],
)
def test_header_byte_matches_type_constants(ptype, byte):
    assert ptype.header_byte == byte


def test_header_splits_type_and_flags():
    header = Header(fixed_header=SUBSCRIBE_TYPE | 0x02, remaining_length=10)
    assert header.packet_type() is PacketType.SUBSCRIBE
    assert header.flags() == 0x02
    assert header.remaining_length == 10


@pytest.mark.parametrize("ptype", list(PacketType))
def test_header_round_trips_every_type(ptype):
    assert Header(ptype.header_byte).packet_type() is ptype
    assert Header(ptype.header_byte).flags() == 0


@pytest.mark.parametrize("byte", [0x00, 0x0F, 0xF0])
def test_header_rejects_reserved_types(byte):
    with pytest.raises(MqttError) as info:
        Header(byte).packet_type()
    assert info.value.code is ErrorCode.INVALID_PACKET_TYPE


@pytest.mark.parametrize(
    "value, code",
    [
        (-3, ErrorCode.MALFORMED_PACKET),
        (-6, ErrorCode.OUT_OF_BOUNDS),
        (-8, ErrorCode.PACKET_ID_NOT_ALLOWED),
    ],
)
def test_error_codes_match_parser_values(value, code):
    err = MqttError(value)
    assert err.code is code
    assert err.code == value


def test_mqtt_error_carries_code_and_message():
    err = MqttError(ErrorCode.OUT_OF_BOUNDS)
    assert err.code is ErrorCode.OUT_OF_BOUNDS
    assert "out of bounds" in str(err)
    custom = MqttError(-3, "bad length")
    assert custom.code is ErrorCode.MALFORMED_PACKET
    assert str(custom) == "bad length"


def test_default_connect():
    conn = default_connect("Subscriber")
    assert conn.client_id == "Subscriber"
    assert conn.protocol_name == "MQTT"
    assert conn.protocol_level == 4
    assert conn.connect_flags == CLEAN_SESSION_FLAG
    assert conn.keep_alive == 0
    assert conn.will_topic is None
    assert conn.will_message is None
    assert conn.has_will is False


def test_connect_will_flag():
    conn = Connect(client_id="c", connect_flags=WILL_FLAG)
    assert conn.has_will is True


def test_packet_exposes_type_from_header():
    packet = Packet(Header(CONNACK_TYPE, 2), Connack(session_present=0, return_code=0))
    assert packet.packet_type is PacketType.CONNACK
    assert packet.body == Connack(0, 0)


def test_subscribe_lists_are_independent():
    first = Subscribe(pkt_id=1)
    second = Subscribe(pkt_id=2)
    first.tuples.append(SubscribeTuple("a/b", qos=1))
    assert second.tuples == []
    assert first.tuples[0].suback_status == 0


def test_publish_defaults():
    pub = Publish(topic="home/led")
    assert pub.payload == b""
    assert pub.pkt_id == 0