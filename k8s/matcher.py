import re
from typing import Optional

from core.exceptions import InstanceNotRunningError, InstanceUnknownError


def filter_pod_lines(table: str, prefix: str) -> str:
    return "\n".join(line for line in table.split("\n") if line.startswith(prefix))


def match_instance(table: str, prefix: str, silent: bool, namespace: Optional[str] = None) -> Optional[str]:
    """Return the name of the first Running pod whose name starts with ``prefix``.

    The Running token may appear anywhere later on the matched line. When no
    Running pod exists, ``silent`` decides between returning ``None`` and
    raising an error describing why (wrong phase or no such pod).
    """
    joined = filter_pod_lines(table, prefix)
    name = re.escape(prefix)

    match = re.search(rf"({name}[-\da-z]*).*(Running)", joined)
    if match:
        return match.group(1)

    if silent:
        return None

    error_match = re.search(rf"({name}[-\da-z]*)\s*\d+/\d+\s*([a-zA-Z]*)\s", joined)
    if error_match:
        raise InstanceNotRunningError(prefix, error_match.group(1), error_match.group(2))
    raise InstanceUnknownError(prefix, namespace, joined)


def is_instance_running(table: str, instance_id: str) -> bool:
    return re.search(rf"^{re.escape(instance_id)}\s.*Running", table, re.MULTILINE) is not None
