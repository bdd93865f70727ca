import re

from models.models import LogEvent

# checked in order, the first matching pattern wins
LOG_PATTERNS = (
    (LogEvent.ESTABLISHED, re.compile(r"Forwarding from")),
    (LogEvent.CONNECTION_HANDLED, re.compile(r"Handling connection")),
    (LogEvent.FORWARDING_ERROR, re.compile(r"an error occurred forwarding")),
    (LogEvent.PORT_IN_USE, re.compile(r"address already in use|Unable to listen on any of the requested ports")),
    (LogEvent.PERMISSION_DENIED, re.compile(r"bind: permission denied")),
)


def classify_log_line(line: str) -> LogEvent:
    for event, pattern in LOG_PATTERNS:
        if pattern.search(line):
            return event
    return LogEvent.UNCLASSIFIED
