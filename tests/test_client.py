import pytest

from ledmqtt.client import MqttClient, SubscriptionEntry, match_topic
from ledmqtt.decoding import unpack
from ledmqtt.protocol import (
    PUBLISH_QOS_1,
    ErrorCode,
    MqttError,
    PacketType,
    Publish,
    SubscribeTuple,
    default_connect,
)


class FakeSocket:
    def __init__(self):
        self.sent = []

    def sendall(self, data):
        self.sent.append(bytes(data))


TOPIC = "home/chris/smart_led"


def make_entry(calls):
    return SubscriptionEntry(
        SubscribeTuple(TOPIC, qos=1),
        {"on": lambda arg: calls.append(("on", arg)), "off": lambda arg: calls.append(("off", arg))},
    )


def test_send_connect_round_trip():
    sock = FakeSocket()
    MqttClient(sock).send_connect("Subscriber")
    packet = unpack(sock.sent[0])
    assert packet.packet_type is PacketType.CONNECT
    assert packet.body == default_connect("Subscriber")


def test_subscribe_uses_increasing_packet_ids():
    sock = FakeSocket()
    client = MqttClient(sock)
    first = client.subscribe(SubscribeTuple(TOPIC, qos=1))
    second = client.subscribe(SubscribeTuple("other/topic", qos=1))
    assert first == 1
    assert second == first + 1
    packets = [unpack(raw) for raw in sock.sent]
    assert [p.body.pkt_id for p in packets] == [first, second]
    assert packets[0].body.tuples[0].topic == TOPIC
    assert packets[0].body.tuples[0].qos == 1


def test_subscribe_qos_zero_is_rejected_but_consumes_id():
    sock = FakeSocket()
    client = MqttClient(sock)
    with pytest.raises(MqttError) as info:
        client.subscribe(SubscribeTuple(TOPIC, qos=0))
    assert info.value.code is ErrorCode.MALFORMED_PACKET
    assert sock.sent == []
    assert client.packet_id == 2


def test_match_topic_finds_entry_and_misses():
    entry = make_entry([])
    assert match_topic(TOPIC, [entry]) is entry
    assert match_topic("missing", [entry]) is None


def test_handle_publish_runs_command_and_acks():
    calls = []
    sock = FakeSocket()
    client = MqttClient(sock)
    client.handle_publish(Publish(topic=TOPIC, payload=b"on", pkt_id=7), [make_entry(calls)])
    assert calls == [("on", None)]
    ack = unpack(sock.sent[0])
    assert ack.packet_type is PacketType.PUBACK
    assert ack.body.pkt_id == 7


def test_handle_publish_unknown_command_still_acks():
    calls = []
    sock = FakeSocket()
    MqttClient(sock).handle_publish(
        Publish(topic=TOPIC, payload=b"blink", pkt_id=3), [make_entry(calls)]
    )
    assert calls == []
    assert unpack(sock.sent[0]).body.pkt_id == 3


def test_handle_publish_unknown_topic_raises():
    sock = FakeSocket()
    with pytest.raises(KeyError):
        MqttClient(sock).handle_publish(Publish(topic="nope", payload=b"on", pkt_id=1), [])
    assert sock.sent == []


def test_handle_publish_zero_packet_id_fails_to_ack():
    calls = []
    sock = FakeSocket()
    with pytest.raises(MqttError) as info:
        MqttClient(sock).handle_publish(
            Publish(topic=TOPIC, payload=b"off", pkt_id=0), [make_entry(calls)]
        )
    assert info.value.code is ErrorCode.MALFORMED_PACKET
    assert calls == [("off", None)]
    assert sock.sent == []


def test_publish_round_trip():
    sock = FakeSocket()
    pub = Publish(topic=TOPIC, payload=b"on", pkt_id=5)
    MqttClient(sock).publish(pub, PUBLISH_QOS_1)
    assert unpack(sock.sent[0]).body == pub


def test_publish_empty_topic_raises():
    with pytest.raises(MqttError):
        MqttClient(FakeSocket()).publish(Publish(topic="", payload=b"x", pkt_id=1), 0)


def test_trigger_event_calls_registered_callback():
    seen = []
    client = MqttClient(FakeSocket())
    pub = Publish(topic=TOPIC, payload=b"on", pkt_id=1)
    client.register_callback(lambda event, packet: seen.append((event, packet)))
    client.trigger_event(PacketType.PUBLISH, pub)
    assert seen == [(PacketType.PUBLISH, pub)]


def test_trigger_event_without_callback_does_nothing():
    seen = []
    client = MqttClient(FakeSocket())
    client.register_callback(lambda event, packet: seen.append(event))
    client.register_callback(None)
    client.trigger_event(PacketType.PUBLISH, Publish(topic=TOPIC))
    assert seen == []


def test_too_many_commands_rejected():
    commands = {f"cmd{n}": (lambda arg: None) for n in range(11)}
    with pytest.raises(ValueError):
        SubscriptionEntry(SubscribeTuple(TOPIC, qos=1), commands)