from typing import List, Optional


class KubePFError(Exception):
    """Base class for every error raised by kubepf."""


class ConfigurationError(KubePFError):
    """The pods to forward could not be worked out from the arguments and pod files."""


class NameAmbiguousError(ConfigurationError):
    """A short pod name matches more than one configured pod.

    Attributes:
        name: The short name that was looked up
        candidates: Every configured name it matches
    """

    def __init__(self, name: str, candidates: List[str]) -> None:
        self.name = name
        self.candidates = list(candidates)
        super().__init__(f"More than one pod name matches {name}: {', '.join(self.candidates)}")


class NameUnresolvedError(ConfigurationError):
    """A pod name is not configured, or is configured without a port."""

    def __init__(self, name: str, message: Optional[str] = None) -> None:
        self.name = name
        super().__init__(message or f"Please specify port for {name}")


class InstanceNotRunningError(KubePFError):
    """The pod exists but is not in the Running phase."""

    def __init__(self, name: str, instance_id: str, status: str) -> None:
        self.name = name
        self.instance_id = instance_id
        self.status = status
        super().__init__(f"Pod {name} is in {status} state, needs to be Running")


class InstanceUnknownError(KubePFError):
    """No pod in the listing matches the requested name."""

    def __init__(self, name: str, namespace: Optional[str] = None, available: str = "") -> None:
        self.name = name
        self.namespace = namespace
        self.available = available
        where = f" (namespace: {namespace})" if namespace else ""
        super().__init__(f"Could not find pod {name}, available pods{where}: \n{available}")


class ClusterQueryError(KubePFError):
    """kubectl failed for a reason other than a lost connection to the cluster."""

    def __init__(self, message: str, returncode: Optional[int] = None) -> None:
        self.returncode = returncode
        super().__init__(message)
