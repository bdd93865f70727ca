import asyncio
from typing import Awaitable, Callable, List, Optional, Tuple

from core.exceptions import ClusterQueryError
from logs.log_manager import log_console
from models.models import QueryResult, RunConfig

NETWORK_ERROR_SIGNATURES = (
    "network is unreachable",
    "handshake timeout",
    "network is down",
    "i/o timeout",
)

CommandRunner = Callable[[List[str]], Awaitable[Tuple[int, str, str]]]


async def run_kubectl_command(cmd: List[str]) -> Tuple[int, str, str]:
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        return 127, "", f"{cmd[0]} command not found"
    try:
        stdout, stderr = await process.communicate()
    except asyncio.CancelledError:
        if process.returncode is None:
            process.kill()
        raise
    return process.returncode, stdout.decode(errors="replace"), stderr.decode(errors="replace")


def is_network_error(output: str) -> bool:
    output_lower = output.lower()
    return any(signature in output_lower for signature in NETWORK_ERROR_SIGNATURES)


class ClusterQueryClient:
    def __init__(self, run_config: RunConfig, runner: Optional[CommandRunner] = None):
        self.run_config = run_config
        self.runner = runner or run_kubectl_command
        self.network_failures = 0

    def build_get_pods_command(self, namespace: Optional[str] = None) -> List[str]:
        cmd = [self.run_config.kubectl, "get", "pods"]
        if self.run_config.kubeconfig:
            cmd += ["--kubeconfig", self.run_config.kubeconfig]
        namespace = namespace or self.run_config.namespace
        if namespace:
            cmd += ["--namespace", namespace]
        return cmd

    async def query_workloads(self, namespace: Optional[str] = None) -> QueryResult:
        try:
            returncode, stdout, stderr = await asyncio.wait_for(
                self.runner(self.build_get_pods_command(namespace)), self.run_config.query_timeout
            )
        except asyncio.TimeoutError:
            # a hung query leaves the cluster state unknown, same as a lost connection
            self.network_failures += 1
            log_console(f"🔌 kubectl get pods timed out, retrying ({self.network_failures})...")
            return QueryResult(network_error=True)

        if returncode != 0:
            if is_network_error(stderr):
                self.network_failures += 1
                log_console(f"🔌 Network error, retrying ({self.network_failures})...")
                return QueryResult(network_error=True)
            raise ClusterQueryError(stderr.strip() or f"kubectl exited with code {returncode}", returncode)

        recovered = self.network_failures > 0
        if recovered:
            self.network_failures = 0
            log_console("✅ Connection established, resuming port forwarding...")
        return QueryResult(table=stdout, recovered=recovered)
