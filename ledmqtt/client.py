"""Client-side MQTT actions: connecting, subscribing, publishing and command dispatch."""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from ledmqtt.encoding import pack_connect, pack_puback, pack_publish, pack_subscribe
from ledmqtt.protocol import Puback, Publish, Subscribe, SubscribeTuple, default_connect

MAX_COMMAND_NUM = 10
DEFAULT_CLIENT_ID = "Subscriber"

_UINT16_MAX = 0xFFFF

logger = logging.getLogger("ledmqtt.client")

CommandCallback = Callable[[object], None]
EventCallback = Callable[[int, Publish], None]


@dataclass
class SubscriptionEntry:
    """A subscribed topic and the payload commands it accepts."""

    subscription: SubscribeTuple
    commands: dict[str, CommandCallback] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if len(self.commands) > MAX_COMMAND_NUM:
            raise ValueError(
                f"a subscription accepts at most {MAX_COMMAND_NUM} commands, "
                f"got {len(self.commands)}"
            )

    @property
    def topic(self) -> str:
        return self.subscription.topic


def match_topic(
    topic: str, subscriptions: Iterable[SubscriptionEntry]
) -> Optional[SubscriptionEntry]:
    """Return the first subscription whose topic equals ``topic``, or None."""
    return next((entry for entry in subscriptions if entry.topic == topic), None)


class MqttClient:
    """Sends client packets to a broker over a connected stream socket."""

    def __init__(self, sock: socket.socket) -> None:
        self.sock = sock
        self.packet_id = 1  # packet id 0 is not allowed
        self._callback: Optional[EventCallback] = None

    def register_callback(self, callback: Optional[EventCallback]) -> None:
        """Set the function called by ``trigger_event``."""
        self._callback = callback

    def trigger_event(self, event_type: int, pub: Publish) -> None:
        """Call the registered callback, if any, with the event and packet."""
        if self._callback is not None:
            self._callback(event_type, pub)

    def _next_packet_id(self) -> int:
        current = self.packet_id
        self.packet_id = current + 1 if current < _UINT16_MAX else 1
        return current

    def send_connect(self, client_id: str = DEFAULT_CLIENT_ID) -> None:
        """Send a clean-session CONNECT for ``client_id``."""
        self.sock.sendall(pack_connect(default_connect(client_id)))

    def subscribe(self, subscription: SubscribeTuple) -> int:
        """Subscribe to a single topic and return the packet id used."""
        pkt_id = self._next_packet_id()
        packet = pack_subscribe(Subscribe(pkt_id=pkt_id, tuples=[subscription]))
        self.sock.sendall(packet)
        logger.info("subscribe packet %d sent for topic %r", pkt_id, subscription.topic)
        return pkt_id

    def handle_publish(self, pub: Publish, subscriptions: Iterable[SubscriptionEntry]) -> None:
        """Run the commands matching ``pub``'s payload, then acknowledge it."""
        entry = match_topic(pub.topic, subscriptions)
        if entry is None:
            raise KeyError(f"no subscription for topic {pub.topic!r}")
        payload = bytes(pub.payload)
        for name, callback in entry.commands.items():
            if payload == name.encode("utf-8"):
                callback(None)
        self.sock.sendall(pack_puback(Puback(pkt_id=pub.pkt_id)))

    def publish(self, pub: Publish, flags: int) -> None:
        """Send a PUBLISH packet with the given header flags."""
        self.sock.sendall(pack_publish(pub, flags))