"""Transport layer - Recepción y publicación MQTT."""

from .mqtt_client import MessagingClient, parse_qos
from .message_handler import MessageHandler

__all__ = ["MessagingClient", "MessageHandler", "parse_qos"]
