"""AFM gateway - ingesta MQTT de dispositivos, persistencia y página de estado."""

__version__ = "0.1.0"
