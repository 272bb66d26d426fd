"""Smart LED controller: light state, broker session handling and the command entry point."""

from __future__ import annotations

import argparse
import ipaddress
import logging
import os
import socket
import threading
from typing import Optional, Sequence

from ledmqtt.client import MqttClient, SubscriptionEntry
from ledmqtt.color import LED_COUNT, build_frame
from ledmqtt.decoding import unpack
from ledmqtt.protocol import (
    DEFAULT_BUFF_SIZE,
    QOS_1,
    Connack,
    ErrorCode,
    MqttError,
    Packet,
    PacketType,
    Puback,
    Publish,
    Suback,
    SubscribeTuple,
)

SERVER_PORT = 1883
DEFAULT_TOPIC = "home/smart_led"
PIR_COOLDOWN_S = 4.0

# Connection failure codes.
SOCKET_CREATION_FAILED = -1
SOCKET_CONNECTION_FAILED = -2
INVALID_ADDRESS = -3
SERVER_IP_NOT_FOUND = -4

logger = logging.getLogger("ledmqtt.app")


class ConnectionFailure(Exception):
    """Raised when the TCP connection to the broker cannot be set up."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        super().__init__(message)


class SmartLed:
    """State of the LED strip: on/off and the motion-sensor cooldown."""

    def __init__(self, led_count: int = LED_COUNT) -> None:
        if led_count < 0:
            raise ValueError("led_count cannot be negative")
        self.led_count = led_count
        self._on = False
        self._pir_timer_active = False
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    @property
    def is_on(self) -> bool:
        return self._on

    @property
    def pir_timer_active(self) -> bool:
        return self._pir_timer_active

    def turn_on(self, arg: object = None) -> None:
        """Switch the strip on."""
        with self._lock:
            self._on = True
        logger.info("LED_ON")

    def turn_off(self, arg: object = None) -> None:
        """Switch the strip off."""
        with self._lock:
            self._on = False
        logger.info("LED_OFF")

    def toggle(self) -> bool:
        """Flip the strip's state, as the push button does, and return the new state."""
        with self._lock:
            self._on = not self._on
            return self._on

    def motion_detected(self) -> bool:
        """Handle a motion-sensor trigger.

        Turns the strip on and starts the cooldown timer, unless a cooldown is
        already running, in which case the trigger is ignored. Returns whether
        the trigger was acted upon.
        """
        with self._lock:
            if self._pir_timer_active:
                return False
            self._on = True
            self._pir_timer_active = True
            self._timer = threading.Timer(PIR_COOLDOWN_S, self.disable_timer)
            self._timer.daemon = True
            self._timer.start()
        return True

    def disable_timer(self) -> None:
        """End the motion cooldown and switch the strip off."""
        with self._lock:
            timer, self._timer = self._timer, None
            self._pir_timer_active = False
            self._on = False
        if timer is not None and timer is not threading.current_thread():
            timer.cancel()
        logger.info("PIR timer off")

    def frame(self) -> bytes:
        """The GRB pixel bytes the strip should currently show."""
        return build_frame(self._on, self.led_count)


class BrokerSession:
    """Handles the packets a broker sends to the light over one connection."""

    def __init__(self, sock: socket.socket, light: SmartLed, topic: str = DEFAULT_TOPIC) -> None:
        self.sock = sock
        self.light = light
        self.topic = topic
        self.client = MqttClient(sock)
        self.subscriptions: list[SubscriptionEntry] = []
        self.messages = 0

    def handle(self, data: bytes) -> Optional[Packet]:
        """Process one received buffer; return the parsed packet, or None if it was unparsable.

        Raises when the connection has to be dropped.
        """
        first = self.messages == 0
        try:
            packet = unpack(data)
        except MqttError as exc:
            if first:
                raise MqttError(
                    ErrorCode.INVALID_PACKET_TYPE,
                    "first packet from the broker must be CONNACK",
                ) from exc
            logger.error("error while parsing broker message: %s", exc)
            self.messages += 1
            return None

        packet_type = packet.packet_type
        if first and packet_type is not PacketType.CONNACK:
            raise MqttError(
                ErrorCode.INVALID_PACKET_TYPE, "first packet from the broker must be CONNACK"
            )
        if not first and packet_type is PacketType.CONNACK:
            raise MqttError(ErrorCode.MALFORMED_PACKET, "duplicate CONNACK from the broker")

        body = packet.body
        if isinstance(body, Connack):
            self._on_connack(body)
        elif isinstance(body, Publish):
            self.client.handle_publish(body, self.subscriptions)
        elif isinstance(body, Puback):
            logger.info("puback packet id: %d", body.pkt_id)
        elif isinstance(body, Suback):
            for index, code in enumerate(body.return_codes):
                logger.info("suback %d return code = %02X", index, code)
        else:
            logger.error("unexpected %s packet from the broker", packet_type.name)

        self.messages += 1
        return packet

    def _on_connack(self, connack: Connack) -> None:
        if connack.return_code != 0:
            raise ConnectionRefusedError(
                f"connection rejected by the broker, return code = {connack.return_code}"
            )
        logger.info("CONNACK received, connection with broker validated")
        subscription = SubscribeTuple(topic=self.topic, qos=QOS_1)
        self.client.subscribe(subscription)
        self.subscriptions.append(
            SubscriptionEntry(
                subscription=subscription,
                commands={"on": self.light.turn_on, "off": self.light.turn_off},
            )
        )

    def run(self) -> None:
        """Read and handle broker messages until the broker closes the connection."""
        while True:
            data = self.sock.recv(DEFAULT_BUFF_SIZE)
            if not data:
                logger.error("server communication channel closed")
                return
            logger.debug("received %d bytes: %s", len(data), data.hex(" ").upper())
            self.handle(data)


def setup_mqtt_connection(host: str, port: int = SERVER_PORT) -> socket.socket:
    """Open a TCP connection to the broker and send CONNECT; return the socket."""
    try:
        ipaddress.IPv4Address(host)
    except ValueError:
        raise ConnectionFailure(
            INVALID_ADDRESS, f"invalid address/address not supported: {host!r}"
        ) from None
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    except OSError as exc:
        raise ConnectionFailure(SOCKET_CREATION_FAILED, "socket creation error") from exc
    try:
        sock.connect((host, port))
    except OSError as exc:
        sock.close()
        raise ConnectionFailure(
            SOCKET_CONNECTION_FAILED, f"connection to {host}:{port} failed"
        ) from exc
    logger.info("connected to MQTT server")
    MqttClient(sock).send_connect()
    return sock


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Connect to the broker and drive the light from its messages."""
    parser = argparse.ArgumentParser(prog="ledmqtt", description="MQTT-controlled LED strip.")
    parser.add_argument(
        "host",
        nargs="?",
        default=os.environ.get("SERVER_IP", "127.0.0.1"),
        help="IPv4 address of the MQTT broker",
    )
    parser.add_argument("--port", type=int, default=SERVER_PORT)
    parser.add_argument("--topic", default=DEFAULT_TOPIC)
    parser.add_argument("--led-count", type=int, default=LED_COUNT)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")
    try:
        sock = setup_mqtt_connection(args.host, args.port)
    except ConnectionFailure as exc:
        logger.error("failed setting up MQTT connection (code %d): %s", exc.code, exc)
        return 1

    light = SmartLed(args.led_count)
    with sock:
        try:
            BrokerSession(sock, light, args.topic).run()
        except (MqttError, KeyError, OSError) as exc:
            logger.error("dropping connection: %s", exc)
            return 1
    return 0