"""CLI del gateway: run, initialize, version."""

from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from common.config import Settings, get_settings
from common.db import get_engine
from common.logging_setup import configure_logging

from . import __version__
from .core.classification.topic_classifier import TopicClassifier
from .core.context import GatewayContext
from .core.http_server import HTTPServer
from .core.identity import determine_client_id
from .core.orchestrator import Orchestrator
from .core.pipeline.dispatcher import Dispatcher
from .core.transport.message_handler import MessageHandler
from .core.transport.mqtt_client import MessagingClient
from .errors import DatabaseConnectionError, GatewayError, UnexpectedShutdown
from .infrastructure.persistence.repositories import Repositories
from .infrastructure.persistence.schema import apply_schema
from .infrastructure.storage.image_store import ImageStore
from .main import create_app

logger = logging.getLogger(__name__)


def _load(env_file: Optional[str]) -> Settings:
    settings = get_settings(env_file)
    configure_logging(settings.log_level, settings.log_format, settings.log_file)
    return settings


def _connect(settings: Settings):
    try:
        return get_engine(settings)
    except SQLAlchemyError as e:
        raise DatabaseConnectionError(f"unable to connect to database: {e}") from e


def build_handler(context: GatewayContext) -> MessageHandler:
    """Pipeline de mensajes sobre el engine y la caché del contexto."""
    settings = context.settings
    dispatcher = Dispatcher(Repositories.from_engine(context.engine), ImageStore(settings.cache_dir))
    return MessageHandler(
        dispatcher,
        classifier=TopicClassifier(settings.topic_match_mode),
        stats=context.stats,
    )


def cmd_run(args: argparse.Namespace) -> int:
    settings = _load(args.env_file)
    logger.info("[CLI] Starting up application v%s", __version__)

    try:
        engine = _connect(settings)
    except DatabaseConnectionError as e:
        logger.error("[CLI] %s", e)
        return 1

    try:
        client_id = settings.mqtt_client_id or determine_client_id(settings.identifier_path)
        context = GatewayContext(settings, engine=engine, client_id=client_id)

        handler = build_handler(context)
        workers = [
            MessagingClient(context),
            HTTPServer(context, create_app(context)),
        ]

        Orchestrator(context, handler, workers).run()
    except UnexpectedShutdown as e:
        logger.error("[CLI] %s", e)
        return 1
    except GatewayError as e:
        logger.error("[CLI] Fatal: %s", e)
        return 1
    finally:
        engine.dispose()

    logger.info("[CLI] Shutdown complete. %s", context.stats)
    return 0


def cmd_initialize(args: argparse.Namespace) -> int:
    settings = _load(args.env_file)
    try:
        engine = _connect(settings)
    except DatabaseConnectionError as e:
        logger.error("[CLI] %s", e)
        return 1

    try:
        count = apply_schema(engine, args.sql_file)
    except (OSError, SQLAlchemyError) as e:
        logger.error("[CLI] Initialization failed: %s", e)
        return 1
    finally:
        engine.dispose()

    print(f"Database initialized ({count} statements)")
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    logger.info("[CLI] Version %s", __version__)
    print(__version__)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="afm-gateway", description="AFM device gateway")
    sub = p.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="run the gateway until SIGINT/SIGTERM")
    run.add_argument("--env-file", default=None, help="env file to load (default: .env)")
    run.set_defaults(func=cmd_run)

    init = sub.add_parser("initialize", help="drop and recreate the database tables")
    init.add_argument("--env-file", default=None, help="env file to load (default: .env)")
    init.add_argument("--sql-file", default=None, help="schema file (default: bundled for the dialect)")
    init.set_defaults(func=cmd_initialize)

    version = sub.add_parser("version", help="print the gateway version")
    version.set_defaults(func=cmd_version)
    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
