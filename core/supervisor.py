import asyncio
import signal
from typing import List, Optional

from core.exceptions import ClusterQueryError, InstanceNotRunningError, InstanceUnknownError, KubePFError
from k8s.discovery import ClusterQueryClient
from k8s.matcher import match_instance
from logs.log_manager import log_console
from models.models import ExitCode, PodSpec, RunConfig
from pods.pod_forward import ForwardingSession
from pods.pod_monitor import PodMonitor

SHUTDOWN_SIGNALS = tuple(
    sig for sig in (getattr(signal, "SIGHUP", None), signal.SIGINT, signal.SIGTERM) if sig is not None
)


class Supervisor:
    def __init__(self, run_config: RunConfig, specs: List[PodSpec], client=None, spawner=None):
        self.run_config = run_config
        self.client = client or ClusterQueryClient(run_config)
        self.sessions = [ForwardingSession(spec, run_config, self, spawner) for spec in specs]
        self.monitor = PodMonitor(self, self.client, run_config)
        self.excluded: List[ForwardingSession] = []
        self.exit_code: Optional[int] = None
        self._stopped: Optional[asyncio.Future] = None
        self._signals = []

    @property
    def stopping(self) -> bool:
        return self._stopped is not None and self._stopped.done()

    async def run(self) -> int:
        loop = asyncio.get_running_loop()
        self._stopped = loop.create_future()
        self._install_signal_handlers(loop)

        log_console("🚀 Initializing...")
        if self.run_config.kubeconfig:
            log_console(f"Using config {self.run_config.kubeconfig}")
        if self.run_config.namespace:
            log_console(f"Using namespace {self.run_config.namespace}")

        bring_up = loop.create_task(self.bring_up())
        bring_up.add_done_callback(self._bring_up_done)
        try:
            self.exit_code = await self._stopped
        finally:
            if not bring_up.done():
                bring_up.cancel()
                await asyncio.gather(bring_up, return_exceptions=True)
            self._remove_signal_handlers(loop)
            await self.shutdown()
        return self.exit_code

    async def bring_up(self):
        while True:
            tables = await self.monitor.query_namespaces(s.namespace for s in self.sessions)
            if tables is not None:
                break
            await asyncio.sleep(self.run_config.health_interval)

        for session in self.sessions:
            session.instance_id = match_instance(
                tables[session.namespace], session.spec.name, silent=False, namespace=session.namespace
            )

        for session in list(self.sessions):
            if self.stopping:
                return
            await session.start(session.instance_id)

        if not self.stopping:
            self.monitor.start_monitoring()

    def _bring_up_done(self, task: asyncio.Task):
        if task.cancelled():
            return
        error = task.exception()
        if isinstance(error, (InstanceNotRunningError, InstanceUnknownError)):
            self.terminate(ExitCode.STARTUP_FAILURE, f"❌ {error}")
        elif isinstance(error, ClusterQueryError):
            self.terminate(ExitCode.FAILURE, f"❌ kubectl get pods failed: {error}")
        elif isinstance(error, KubePFError):
            self.terminate(ExitCode.FAILURE, f"❌ {error}")
        elif error is not None:
            self.terminate(ExitCode.FAILURE, f"❌ Unexpected error during start up: {error!r}")

    def request_restart(self, session):
        if self.stopping:
            return
        self.monitor.restart(session)

    def exclude(self, session):
        log_console(f"⚠️  Pod {session.name} seems to be already forwarded, excluding...")
        if session in self.sessions:
            self.sessions.remove(session)
            self.excluded.append(session)
        if not self.sessions:
            self.terminate(ExitCode.OK, "No pods left to port forward, exiting")

    def terminate(self, code: int, message: Optional[str] = None):
        if self._stopped is None or self._stopped.done():
            return
        if message:
            log_console(message)
        self._stopped.set_result(int(code))

    async def shutdown(self):
        self.monitor.stop_monitoring()

        failures = 0
        reapers = set()
        for session in self.sessions:
            if not session.shutdown():
                failures += 1
        for session in self.sessions + self.excluded:
            reapers |= session.pending_reapers()

        if reapers:
            await asyncio.wait(reapers, timeout=5)
        if failures:
            log_console(f"⚠️  Failed to stop {failures} port forwarding process(es)")
        log_console("👋 Port forwarding finished")
        return failures

    def _install_signal_handlers(self, loop):
        for sig in SHUTDOWN_SIGNALS:
            try:
                loop.add_signal_handler(
                    sig, self.terminate, ExitCode.for_signal(sig), f"Received {sig.name}, shutting down..."
                )
                self._signals.append(sig)
            except (NotImplementedError, RuntimeError, ValueError):
                # not supported on this platform or outside the main thread
                continue

    def _remove_signal_handlers(self, loop):
        for sig in self._signals:
            loop.remove_signal_handler(sig)
        self._signals = []
