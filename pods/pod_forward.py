import asyncio
from typing import List, Optional

from logs.log_manager import LogsManager, log_console
from models.models import ExitCode, LogEvent, PodSpec, RunConfig, SessionPhase
from pods.log_classifier import classify_log_line


async def spawn_tunnel(cmd: List[str]):
    return await asyncio.create_subprocess_exec(
        *cmd,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
    )


class ForwardingSession:
    """One ``kubectl port-forward`` process kept alive for a single pod.

    The session reacts to the lines its process prints and reports back to
    the supervisor when it needs a restart, has to be excluded, or when the
    whole run has to stop.
    """

    def __init__(self, spec: PodSpec, run_config: RunConfig, supervisor, spawner=None):
        self.spec = spec
        self.run_config = run_config
        self.supervisor = supervisor
        self.spawner = spawner or spawn_tunnel
        self.instance_id: Optional[str] = None
        self.phase = SessionPhase.RESOLVING
        self.process = None
        self.retry_handle: Optional[asyncio.TimerHandle] = None
        self.retry_count = 0
        self.logs = LogsManager(spec.name, self.handle_log_line, self._on_process_exit)
        self._retry_task: Optional[asyncio.Task] = None
        self._reapers = set()

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def namespace(self) -> Optional[str]:
        return self.run_config.namespace_for(self.spec)

    @property
    def is_closed(self) -> bool:
        return self.phase in (SessionPhase.EXCLUDED, SessionPhase.TERMINATED)

    def build_port_forward_command(self) -> List[str]:
        cmd = [self.run_config.kubectl, "port-forward", self.instance_id, self.spec.port_pair()]
        if self.run_config.kubeconfig:
            cmd.append(f"--kubeconfig={self.run_config.kubeconfig}")
        if self.namespace:
            cmd.append(f"--namespace={self.namespace}")
        return cmd

    async def start(self, instance_id: str) -> bool:
        if self.is_closed:
            return False

        self.cancel_retry()
        self.kill()
        self.instance_id = instance_id
        try:
            process = await self.spawner(self.build_port_forward_command())
        except FileNotFoundError:
            self.supervisor.terminate(ExitCode.STARTUP_FAILURE, "❌ kubectl command not found. Please install kubectl.")
            return False

        if self.is_closed:
            self._kill_process(process)
            return False

        self.process = process
        self.phase = SessionPhase.INITIALIZING
        self.retry_count = 0
        self.logs.start_streaming(process)
        return True

    def handle_log_line(self, line: str):
        event = classify_log_line(line)

        if event is LogEvent.ESTABLISHED:
            if self.phase is SessionPhase.INITIALIZING:
                self.phase = SessionPhase.ACTIVE
                self.retry_count = 0
                log_console(f"🟢 Started port forwarding for {self.name} on port {self.spec.port_pair()}")
        elif event is LogEvent.CONNECTION_HANDLED:
            log_console(f"Processing request for {self.name}")
        elif event is LogEvent.FORWARDING_ERROR:
            log_console(f"⚠️  Unable to process request for {self.name}")
            if self.phase.is_forwarding:
                self.supervisor.request_restart(self)
        elif event is LogEvent.PORT_IN_USE:
            if not self.is_closed:
                self.exclude()
        elif event is LogEvent.PERMISSION_DENIED:
            self.supervisor.terminate(
                ExitCode.PERMISSION_DENIED,
                f"❌ Permission denied to bind {self.name} on port {self.spec.source_port}",
            )
        elif self.phase is SessionPhase.INITIALIZING:
            self.supervisor.terminate(
                ExitCode.STARTUP_FAILURE,
                f"❌ Failed to initialize port forwarding for {self.name} on port {self.spec.source_port}: \n{line}",
            )
        else:
            log_console(f"{self.name}: {line}")

    def begin_restart(self) -> bool:
        if self.is_closed or self.phase is SessionPhase.RESTARTING:
            return False
        self.kill()
        self.phase = SessionPhase.RESTARTING
        self.retry_count = 0
        return True

    def exclude(self):
        self.phase = SessionPhase.EXCLUDED
        self.cancel_retry()
        self.kill()
        self.supervisor.exclude(self)

    def schedule_retry(self, delay: float, attempt):
        self.cancel_retry()
        loop = asyncio.get_running_loop()
        self.retry_handle = loop.call_later(delay, self._fire_retry, attempt)

    def cancel_retry(self):
        if self.retry_handle is not None:
            self.retry_handle.cancel()
            self.retry_handle = None

    def _fire_retry(self, attempt):
        self.retry_handle = None
        if self.phase is not SessionPhase.RESTARTING:
            return
        self._retry_task = asyncio.get_running_loop().create_task(attempt(self))
        self._retry_task.add_done_callback(self._retry_done)

    def _retry_done(self, task: asyncio.Task):
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.phase = SessionPhase.TERMINATED
            self.supervisor.terminate(
                ExitCode.FAILURE, f"❌ Failed to resume forwarding for {self.name}: {error}"
            )

    def _on_process_exit(self):
        # the process stopped without being killed by us
        if not self.phase.is_forwarding:
            return
        self._kill_process(self.process)
        self.process = None
        log_console(f"⚠️  Port forwarding for {self.name} stopped unexpectedly")
        self.supervisor.request_restart(self)

    def kill(self) -> bool:
        self.logs.stop_current_streaming()
        process, self.process = self.process, None
        return self._kill_process(process)

    def _kill_process(self, process) -> bool:
        if process is None:
            return True
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            except OSError as e:
                log_console(f"❌ Error stopping {self.name}: {e}")
                return False
        self._reap(process)
        return True

    def _reap(self, process):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        reaper = loop.create_task(process.wait())
        self._reapers.add(reaper)
        reaper.add_done_callback(self._reapers.discard)

    def shutdown(self) -> bool:
        self.cancel_retry()
        if self._retry_task is not None and not self._retry_task.done():
            self._retry_task.cancel()
        if self.phase is not SessionPhase.EXCLUDED:
            self.phase = SessionPhase.TERMINATED
        return self.kill()

    def pending_reapers(self):
        return set(self._reapers)
