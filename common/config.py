from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _default_env_file() -> str:
    # .env junto al directorio de trabajo, como en despliegues locales.
    return os.getenv("GATEWAY_ENV_FILE", str(Path.cwd() / ".env"))


@dataclass(frozen=True)
class Settings:
    # Broker
    mqtt_host: str
    mqtt_port: int
    mqtt_username: Optional[str]
    mqtt_password: Optional[str]
    mqtt_client_id: str
    mqtt_topic_filter: str
    mqtt_subscribe_qos: int
    mqtt_connect_timeout: float
    mqtt_disconnect_timeout: float

    # Base de datos
    database_url: str

    # HTTP
    http_host: str
    http_port: int
    http_shutdown_timeout: float

    # Gateway
    cache_dir: str
    identifier_path: str
    topic_match_mode: str
    shutdown_ack_timeout: float
    loop_poll_interval: float

    # Logging
    log_level: str
    log_format: str
    log_file: Optional[str]


def build_database_url() -> str:
    db_url = os.getenv("DATABASE_URL")
    if db_url:
        return db_url

    driver = os.getenv("DB_DRIVER", "mysql+pymysql")
    db_host = os.getenv("DB_HOST", "localhost")
    db_port = os.getenv("DB_PORT", "3306")
    db_user = os.getenv("DB_USER", "root")
    db_pass = os.getenv("DB_PASSWORD", "")
    db_name = os.getenv("DB_NAME", "afmcamera")
    return f"{driver}://{db_user}:{db_pass}@{db_host}:{db_port}/{db_name}"


def get_settings(env_file: Optional[str] = None) -> Settings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = env_file or _default_env_file()
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    topic_match_mode = os.getenv("TOPIC_MATCH_MODE", "substring").strip().lower()
    if topic_match_mode not in ("substring", "segment"):
        raise ValueError(f"TOPIC_MATCH_MODE must be 'substring' or 'segment', got {topic_match_mode!r}")

    return Settings(
        mqtt_host=os.getenv("MQTT_BROKER_HOST", "127.0.0.1"),
        mqtt_port=int(os.getenv("MQTT_BROKER_PORT", "1883")),
        mqtt_username=os.getenv("MQTT_USERNAME") or None,
        mqtt_password=os.getenv("MQTT_PASSWORD") or None,
        mqtt_client_id=os.getenv("MQTT_CLIENT_ID", "").strip(),
        mqtt_topic_filter=os.getenv("MQTT_TOPIC_FILTER", "afm/v1/#"),
        mqtt_subscribe_qos=int(os.getenv("MQTT_SUBSCRIBE_QOS", "1")),
        mqtt_connect_timeout=float(os.getenv("MQTT_CONNECT_TIMEOUT", "5.0")),
        mqtt_disconnect_timeout=float(os.getenv("MQTT_DISCONNECT_TIMEOUT", "0.25")),
        database_url=build_database_url(),
        http_host=os.getenv("HTTP_HOST", "localhost"),
        http_port=int(os.getenv("HTTP_PORT", "8080")),
        http_shutdown_timeout=float(os.getenv("HTTP_SHUTDOWN_TIMEOUT", "5.0")),
        cache_dir=os.getenv("CACHE_DIR", "/var/cache/afm/images"),
        identifier_path=os.getenv("IDENTIFIER_PATH", "/var/cache/afm/identifier.id"),
        topic_match_mode=topic_match_mode,
        shutdown_ack_timeout=float(os.getenv("SHUTDOWN_ACK_TIMEOUT", "10.0")),
        loop_poll_interval=float(os.getenv("LOOP_POLL_INTERVAL", "0.25")),
        log_level=os.getenv("LOG_LEVEL", "ERROR").upper(),
        log_format=os.getenv("LOG_FORMAT", "text").lower(),
        log_file=os.getenv("LOG_FILE", "/var/log/afm/camera.log").strip() or None,
    )
