# ledmqtt

An MQTT 3.1.1 packet codec and a small client built around a smart LED strip.
The client subscribes to a broker topic and switches the light on or off when a
command is published to that topic. It needs only the standard library.

## Modules

- `ledmqtt.protocol`: the model of the protocol. It holds `PacketType`,
  `ErrorCode`, the `MqttError` exception (its `code` attribute is an
  `ErrorCode`), the fixed `Header` with `packet_type()` and `flags()`, the packet
  dataclasses (`Connect`, `Connack`, `Publish`, `Puback`, `Subscribe`,
  `SubscribeTuple`, `Suback`, `Unsubscribe`, `UnsubscribeTuple`), and `Packet`,
  which pairs a header with a body. It also has `default_connect(client_id)`,
  which builds a protocol-level-4 CONNECT with a clean session and no keep-alive.
- `ledmqtt.encoding`: turns packets into bytes. The functions are
  `pack_connect`, `pack_connack`, `pack_publish(pub, flags)`, `pack_puback`,
  `pack_subscribe`, `pack_suback`, `pack_unsubscribe` and `pack_disconnect`,
  with `encode_remaining_length` and `finalize_packet` for the fixed header.
  A packet that may not be sent, such as one with packet id 0, an empty topic
  or a subscription at QoS 0, raises `MqttError`.
- `ledmqtt.decoding`: `unpack(data)` parses one packet into a `Packet`. It
  handles CONNECT, CONNACK, PUBLISH, PUBACK, SUBSCRIBE, SUBACK, UNSUBSCRIBE and
  DISCONNECT. Any other type, and any malformed or truncated input, raises
  `MqttError`. `Reader` is the bounds-checked cursor used underneath, and the
  per-type `unpack_*` functions can be called on their own.
- `ledmqtt.client`: `MqttClient` wraps a connected socket. It has
  `send_connect`, `subscribe` (which returns the packet id it used) and
  `publish`. Its `handle_publish` runs the command whose name equals the
  payload in the matching `SubscriptionEntry`, then replies with a PUBACK. It
  raises `KeyError` when no subscription matches the topic. `match_topic` does
  the lookup, and `register_callback` / `trigger_event` hook in an event
  callback.
- `ledmqtt.color`: `hsv_to_rgb(h, s, v)` and `build_frame(on, led_count)`.
  `build_frame` returns the GRB bytes for the whole strip: all zero when the
  strip is off, and blue-only pixels when it is on.
- `ledmqtt.led_encoder`: `LedStripEncoder(resolution)` turns GRB bytes into
  WS2812 timing `Symbol`s, most significant bit first, and ends each session
  with a 50 µs reset code. `reset()` abandons a session that was left
  unfinished.
- `ledmqtt.app`: `SmartLed` holds the light's state. It has `turn_on`,
  `turn_off`, `toggle`, `motion_detected` (which starts a 4-second cooldown and
  then switches the light off), `disable_timer` and `frame()`.
  `BrokerSession` handles the broker's packets on one connection.
  `setup_mqtt_connection(host, port)` opens the TCP connection and sends
  CONNECT. It raises `ConnectionFailure` on an invalid IPv4 address or a failed
  connect.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Command line

```
ledmqtt [host] [--port PORT] [--topic TOPIC] [--led-count N]
ledmqtt --help
```

| Argument | Default |
| --- | --- |
| `host` (an IPv4 address) | the `SERVER_IP` environment variable, or else `127.0.0.1` |
| `--port` | 1883 |
| `--topic` | `home/smart_led` |
| `--led-count` | 300 |

The command connects, sends CONNECT as client `Subscriber`, and waits for the
broker's CONNACK. It then subscribes to the topic with QoS 1. From then on a
published payload of `on` or `off` switches the light, and each PUBLISH is
answered with a PUBACK.

The command drops the connection and exits with status 1 in these cases:

- the first packet is not a CONNACK;
- the CONNACK rejects the client;
- a second CONNACK arrives;
- a PUBLISH arrives for a topic it has not subscribed to;
- a socket error occurs.

A packet that cannot be parsed after the first one is only logged. The command
also exits with status 1 when the connection cannot be set up. It exits with
status 0 when the broker closes the connection. Progress is logged at INFO
level.

## Library use

```python
from ledmqtt.protocol import default_connect
from ledmqtt.encoding import pack_connect
from ledmqtt.decoding import unpack
from ledmqtt.color import hsv_to_rgb, build_frame
from ledmqtt.led_encoder import LedStripEncoder

wire = pack_connect(default_connect("Subscriber"))
packet = unpack(wire)                 # Packet with a Connect body

red, green, blue = hsv_to_rgb(100, 50, 100)
symbols = list(LedStripEncoder(10_000_000).encode(build_frame(True, 3)))
```

Errors are reported by raising `MqttError`, never by returning status codes.

## What it does not do

- It does not drive any hardware. No GPIO pins, push button, motion sensor or
  LED strip are read or written. `SmartLed.toggle` and
  `SmartLed.motion_detected` must be called by your own code.
- `LedStripEncoder` and `build_frame` produce the symbols and pixel bytes, but
  nothing transmits them. The `ledmqtt` command only tracks whether the light
  is on.
- It does not manage Wi-Fi or any other network setup. It expects a reachable
  broker at an IPv4 address.
- It does not send keep-alive pings or reconnect. There is no QoS 2 flow
  (PUBREC/PUBREL/PUBCOMP), no authentication, and no TLS.