from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional


@dataclass(frozen=True)
class PodSpec:
    name: str
    source_port: int
    destination_port: int
    namespace: Optional[str] = None

    def port_pair(self) -> str:
        return f"{self.source_port}:{self.destination_port}"


@dataclass(frozen=True)
class RunConfig:
    kubeconfig: Optional[str] = None
    namespace: Optional[str] = None
    health_interval: float = 5.0
    attempt_duration: float = 5.0
    max_attempts: int = 20
    query_timeout: float = 30.0
    kubectl: str = "kubectl"

    def namespace_for(self, spec: PodSpec) -> Optional[str]:
        return spec.namespace or self.namespace


@dataclass
class QueryResult:
    table: Optional[str] = None
    network_error: bool = False
    recovered: bool = False

    @property
    def ok(self) -> bool:
        return not self.network_error and self.table is not None


class SessionPhase(Enum):
    RESOLVING = "resolving"
    INITIALIZING = "forwarding-initializing"
    ACTIVE = "forwarding-active"
    RESTARTING = "restarting"
    EXCLUDED = "excluded"
    TERMINATED = "terminated"

    @property
    def is_forwarding(self) -> bool:
        return self in (SessionPhase.INITIALIZING, SessionPhase.ACTIVE)


class LogEvent(Enum):
    ESTABLISHED = "established"
    CONNECTION_HANDLED = "connection-handled"
    FORWARDING_ERROR = "forwarding-error"
    PORT_IN_USE = "port-in-use"
    PERMISSION_DENIED = "permission-denied"
    UNCLASSIFIED = "unclassified"


class ExitCode(IntEnum):
    OK = 0
    FAILURE = 1
    CONFIGURATION_ERROR = 2
    PERMISSION_DENIED = 3
    RETRY_EXHAUSTED = 4
    STARTUP_FAILURE = 5

    @staticmethod
    def for_signal(signum: int) -> int:
        return 128 + int(signum)
