"""MQTT 3.1.1 packet codec, client and WS2812 encoding for a broker-controlled LED strip."""

__version__ = "0.1.0"