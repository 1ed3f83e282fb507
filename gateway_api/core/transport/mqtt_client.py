"""Cliente MQTT del gateway.

Un único hilo (publisher) es dueño del cliente conectado: drena la cola de
publicaciones del contexto y, al recibir la parada, desconecta con un timeout
corto. Los mensajes entrantes se entregan al loop principal vía
``context.offer`` desde el hilo de red de paho.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Optional

import paho.mqtt.client as mqtt

from ..context import GatewayContext, PublishRequest
from ...errors import BrokerConnectionError

logger = logging.getLogger(__name__)

VALID_QOS = (0, 1, 2)


def parse_qos(value: object) -> int:
    """QoS desde texto numérico; cualquier valor no válido → 0."""
    try:
        qos = int(str(value).strip())
    except ValueError:
        logger.warning("[MQTT] Invalid QoS %r, using 0", value)
        return 0
    if qos not in VALID_QOS:
        logger.warning("[MQTT] QoS out of range %r, using 0", value)
        return 0
    return qos


def _default_client_factory(client_id: str) -> mqtt.Client:
    return mqtt.Client(
        client_id=client_id,
        protocol=mqtt.MQTTv311,
        clean_session=True,
        callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
    )


class MessagingClient:
    """Cliente MQTT: suscripción, entrega al loop y publicación.

    Responsabilidades:
    - Conexión síncrona al broker en ``start`` (fallo = fatal)
    - Suscripción al filtro en cada (re)conexión
    - Hilo publisher dueño del cliente
    - Desconexión acotada y acuse (``done``) en la parada
    """

    name = "mqtt"

    def __init__(
        self,
        context: GatewayContext,
        client_factory: Optional[Callable[[str], mqtt.Client]] = None,
        poll_interval: float = 0.1,
    ):
        self._ctx = context
        self._settings = context.settings
        self._client_factory = client_factory or _default_client_factory
        self._poll_interval = poll_interval

        self._client: Optional[mqtt.Client] = None
        self._thread: Optional[threading.Thread] = None
        self._connected = threading.Event()
        self._disconnected = threading.Event()
        self.done = threading.Event()

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Conecta, espera CONNACK y arranca el hilo publisher.

        Raises:
            BrokerConnectionError: broker inalcanzable o timeout de conexión
        """
        s = self._settings
        client = self._client_factory(self._ctx.client_id)
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message

        if s.mqtt_username and s.mqtt_password:
            client.username_pw_set(s.mqtt_username, s.mqtt_password)

        logger.info("[MQTT] Connecting to %s:%d as %s", s.mqtt_host, s.mqtt_port, self._ctx.client_id)
        try:
            client.connect(s.mqtt_host, s.mqtt_port, keepalive=60)
        except (OSError, ValueError) as e:
            raise BrokerConnectionError(f"failed to connect to {s.mqtt_host}:{s.mqtt_port}: {e}") from e

        client.loop_start()
        if not self._connected.wait(timeout=s.mqtt_connect_timeout):
            client.loop_stop()
            raise BrokerConnectionError(
                f"connection to {s.mqtt_host}:{s.mqtt_port} timed out after {s.mqtt_connect_timeout}s"
            )

        self._client = client
        self._thread = threading.Thread(target=self._run, name="mqtt-publisher", daemon=True)
        self._thread.start()
        logger.info("[MQTT] Started successfully")

    def _run(self) -> None:
        try:
            while not self._ctx.shutdown.is_set():
                try:
                    request = self._ctx.outbound.get(timeout=self._poll_interval)
                except queue.Empty:
                    continue
                self._publish(request)
        finally:
            self._disconnect()
            self.done.set()
            logger.info("[MQTT] Stopped")

    def _publish(self, request: PublishRequest) -> None:
        qos = parse_qos(request.qos)
        try:
            info = self._client.publish(request.topic, request.payload, qos=qos)
        except (OSError, ValueError, TypeError) as e:
            logger.error("[MQTT] Publish to %s failed: %s", request.topic, e)
            return

        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            logger.error("[MQTT] Publish to %s failed: %s", request.topic, mqtt.error_string(info.rc))
        else:
            logger.debug("[MQTT] Published to %s (qos=%d, mid=%s)", request.topic, qos, info.mid)

    def _disconnect(self) -> None:
        """Desconecta esperando como mucho ``mqtt_disconnect_timeout``."""
        if self._client is None:
            return
        try:
            self._client.disconnect()
            if not self._disconnected.wait(timeout=self._settings.mqtt_disconnect_timeout):
                logger.warning(
                    "[MQTT] Disconnect not confirmed after %.2fs", self._settings.mqtt_disconnect_timeout
                )
            self._client.loop_stop()
        except Exception as e:
            logger.warning("[MQTT] Error stopping: %s", e)

    # ------------------------------------------------------------------
    # Callbacks paho (hilo de red)
    # ------------------------------------------------------------------

    def _on_connect(self, client, userdata, flags, rc, properties=None):
        """Callback de conexión."""
        if rc == 0:
            self._disconnected.clear()
            topic = self._settings.mqtt_topic_filter
            client.subscribe(topic, qos=self._settings.mqtt_subscribe_qos)
            logger.info("[MQTT] Connected to broker, subscribed to %s", topic)
            self._connected.set()
        else:
            logger.error("[MQTT] Connection failed: rc=%s", rc)

    def _on_disconnect(self, client, userdata, flags, rc, properties=None):
        """Callback de desconexión."""
        self._connected.clear()
        self._disconnected.set()
        if self._ctx.shutdown.is_set():
            logger.info("[MQTT] Disconnected (rc=%s)", rc)
        else:
            logger.warning("[MQTT] Disconnected (rc=%s)", rc)

    def _on_message(self, client, userdata, msg):
        """Callback de mensaje - lo entrega al loop principal."""
        logger.debug("[MQTT] Message on %s (%d bytes)", msg.topic, len(msg.payload))
        self._ctx.offer(msg.topic, msg.payload)

    @property
    def is_connected(self) -> bool:
        return self._connected.is_set()
