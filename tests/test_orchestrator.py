"""Tests del orquestador: loop de mensajes y parada coordinada.

Los workers falsos esperan el evento de parada del contexto en su propio hilo
y confirman con ``done``, igual que el cliente MQTT y el servidor HTTP.
"""

import signal
import threading
import time

import pytest

from gateway_api.core.context import GatewayContext
from gateway_api.core.orchestrator import Orchestrator, OrchestratorState
from gateway_api.core.transport.message_handler import MessageHandler
from gateway_api.errors import BrokerConnectionError, UnexpectedShutdown


class FakeWorker:
    """Worker que para al ver el evento de parada."""

    def __init__(self, name, context, on_start=None, acknowledge=True):
        self.name = name
        self.done = threading.Event()
        self.saw_shutdown = threading.Event()
        self._ctx = context
        self._on_start = on_start
        self._acknowledge = acknowledge

    def start(self):
        if self._on_start:
            self._on_start()
        threading.Thread(target=self._run, daemon=True).start()

    def _run(self):
        self._ctx.shutdown.wait()
        self.saw_shutdown.set()
        if self._acknowledge:
            self.done.set()


def _fail():
    raise BrokerConnectionError("broker down")


def _wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached")
        time.sleep(0.01)


@pytest.fixture
def handler(dispatcher, context):
    return MessageHandler(dispatcher, stats=context.stats)


@pytest.fixture
def workers(context):
    return [FakeWorker("mqtt", context), FakeWorker("http", context)]


# =============================================================================
# PARADA
# =============================================================================

class TestShutdown:

    def test_sigint_is_clean_after_both_acknowledge(self, context, handler, workers):
        orch = Orchestrator(context, handler, workers, install_signal_handlers=False)
        threading.Timer(0.05, orch.notify_signal, args=(signal.SIGINT,)).start()

        orch.run()

        assert orch.state is OrchestratorState.STOPPED
        assert all(w.saw_shutdown.is_set() for w in workers)
        assert all(w.done.is_set() for w in workers)
        assert context.shutdown.is_set()

    def test_sigterm_reports_error(self, context, handler, workers):
        orch = Orchestrator(context, handler, workers, install_signal_handlers=False)
        threading.Timer(0.05, orch.notify_signal, args=(signal.SIGTERM,)).start()

        with pytest.raises(UnexpectedShutdown) as exc:
            orch.run()

        assert exc.value.signum == signal.SIGTERM
        assert "SIGTERM" in str(exc.value)
        assert orch.state is OrchestratorState.STOPPED
        assert all(w.done.is_set() for w in workers)

    def test_real_sigint_delivery(self, context, handler):
        previous = signal.getsignal(signal.SIGINT)
        workers = [
            FakeWorker("mqtt", context, on_start=lambda: signal.raise_signal(signal.SIGINT)),
            FakeWorker("http", context),
        ]
        orch = Orchestrator(context, handler, workers)

        orch.run()

        assert orch.state is OrchestratorState.STOPPED
        assert signal.getsignal(signal.SIGINT) is previous

    def test_unacknowledged_worker_does_not_block(self, settings_factory, handler):
        context = GatewayContext(settings_factory(shutdown_ack_timeout=0.2, loop_poll_interval=0.01))
        workers = [FakeWorker("mqtt", context), FakeWorker("http", context, acknowledge=False)]
        orch = Orchestrator(context, handler, workers, install_signal_handlers=False)
        orch.notify_signal(signal.SIGINT)

        orch.run()

        assert orch.unacknowledged == ["http"]
        assert orch.state is OrchestratorState.STOPPED

    def test_startup_failure_stops_started_workers(self, context, handler):
        first = FakeWorker("http", context)
        workers = [first, FakeWorker("mqtt", context, on_start=_fail)]
        orch = Orchestrator(context, handler, workers, install_signal_handlers=False)

        with pytest.raises(BrokerConnectionError):
            orch.run()

        assert first.done.is_set()
        assert context.shutdown.is_set()


# =============================================================================
# LOOP DE MENSAJES
# =============================================================================

class TestMessageLoop:

    def test_message_errors_do_not_stop_loop(self, context, handler, workers, repos):
        orch = Orchestrator(context, handler, workers, install_signal_handlers=False)

        def feed():
            context.offer("bad/topic", b"")
            context.offer("afm/v1/settings/dev9", b'{"model": "AFM-3"}')
            _wait_for(lambda: handler.stats.received >= 2)
            orch.notify_signal(signal.SIGINT)

        feeder = threading.Thread(target=feed, daemon=True)
        feeder.start()
        orch.run()
        feeder.join(timeout=1)

        assert handler.stats.failed == 1
        assert handler.stats.processed == 1
        assert repos.devices.load_by_field("dev9").model == "AFM-3"

    def test_offer_gives_up_after_shutdown(self, context):
        assert context.offer("afm/v1/video/dev1", b"1") is True
        context.shutdown.set()
        # cola llena y parada activa: no bloquea
        assert context.offer("afm/v1/video/dev1", b"2") is False
