from pods.log_classifier import classify_log_line
from pods.pod_forward import ForwardingSession
from pods.pod_monitor import PodMonitor
from pods.resolver import PodResolver

__all__ = ["ForwardingSession", "PodMonitor", "PodResolver", "classify_log_line"]
