import asyncio
from typing import Dict, Iterable, Optional, Set

from core.exceptions import ClusterQueryError
from k8s.matcher import is_instance_running, match_instance
from logs.log_manager import log_console
from models.models import ExitCode, RunConfig, SessionPhase

SKIPPED_PHASES = (
    SessionPhase.RESOLVING,
    SessionPhase.RESTARTING,
    SessionPhase.EXCLUDED,
    SessionPhase.TERMINATED,
)


class PodMonitor:
    """Periodically compares the pods kubectl reports with the running sessions.

    Sessions whose pod is gone, or whose tunnel never came up, are killed and
    handed to the reconnection protocol, which polls for a new Running
    instance every ``attempt_duration`` seconds until ``max_attempts`` misses.
    """

    def __init__(self, supervisor, client, run_config: RunConfig):
        self.supervisor = supervisor
        self.client = client
        self.run_config = run_config
        self.monitoring = False
        self.monitor_task: Optional[asyncio.Task] = None
        self._check_tasks: Set[asyncio.Task] = set()

    def start_monitoring(self):
        if self.monitoring:
            return
        self.monitoring = True
        self.monitor_task = asyncio.get_running_loop().create_task(self._monitor_loop())

    def stop_monitoring(self):
        self.monitoring = False
        if self.monitor_task is not None:
            self.monitor_task.cancel()
            self.monitor_task = None
        for task in list(self._check_tasks):
            task.cancel()

    async def _monitor_loop(self):
        loop = asyncio.get_running_loop()
        while self.monitoring:
            await asyncio.sleep(self.run_config.health_interval)
            # a slow check must not delay the next one
            task = loop.create_task(self.check_pods_status())
            self._check_tasks.add(task)
            task.add_done_callback(self._check_done)

    def _check_done(self, task: asyncio.Task):
        self._check_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if isinstance(error, ClusterQueryError):
            self.supervisor.terminate(ExitCode.FAILURE, f"❌ kubectl get pods failed: {error}")
        elif error is not None:
            self.supervisor.terminate(ExitCode.FAILURE, f"❌ Error in pod monitor: {error}")

    async def query_namespaces(self, namespaces: Iterable[Optional[str]]) -> Optional[Dict[Optional[str], str]]:
        """Return the pod listing per namespace, or None if the cluster is unreachable."""
        tables = {}
        for namespace in sorted(set(namespaces), key=lambda ns: ns or ""):
            result = await self.client.query_workloads(namespace)
            if not result.ok:
                return None
            tables[namespace] = result.table
        return tables

    async def check_pods_status(self):
        sessions = [s for s in self.supervisor.sessions if s.phase not in SKIPPED_PHASES]
        if not sessions:
            return

        tables = await self.query_namespaces(s.namespace for s in sessions)
        if tables is None:
            return

        for session in sessions:
            if session.phase in SKIPPED_PHASES:
                continue
            alive = is_instance_running(tables[session.namespace], session.instance_id)
            if not alive or session.phase is not SessionPhase.ACTIVE:
                log_console(f"💥 Detected death of {session.name}. Trying to restart port forwarding...")
                self.restart(session)

    def restart(self, session):
        if session.begin_restart():
            session.schedule_retry(0, self.try_reinit_pod)

    async def try_reinit_pod(self, session):
        if session.phase is not SessionPhase.RESTARTING:
            return

        try:
            tables = await self.query_namespaces([session.namespace])
        except ClusterQueryError as e:
            self.supervisor.terminate(ExitCode.FAILURE, f"❌ kubectl get pods failed: {e}")
            return

        if session.phase is not SessionPhase.RESTARTING:
            return
        if tables is None:
            session.schedule_retry(self.run_config.attempt_duration, self.try_reinit_pod)
            return

        instance_id = match_instance(tables[session.namespace], session.spec.name, silent=True)
        if instance_id:
            log_console(f"🔄 Resuming port forwarding for {session.name} ({instance_id})")
            await session.start(instance_id)
            return

        session.retry_count += 1
        if session.retry_count >= self.run_config.max_attempts:
            session.phase = SessionPhase.TERMINATED
            self.supervisor.terminate(ExitCode.RETRY_EXHAUSTED, f"❌ Failed to resume forwarding for {session.name}")
            return

        log_console(f"⏳ Waiting for {session.name} to come up ({session.retry_count})...")
        session.schedule_retry(self.run_config.attempt_duration, self.try_reinit_pod)
