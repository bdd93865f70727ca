import argparse
import asyncio
import os
import signal
import sys
from typing import List, Optional

from config.config_manager import ConfigManager
from core.exceptions import ConfigurationError
from core.supervisor import Supervisor
from logs.log_manager import log_console
from models.models import ExitCode, RunConfig
from pods.resolver import PodResolver

extra_paths = [
    "/usr/local/bin",
    "/opt/homebrew/bin",
    "/usr/bin",
    "/bin",
    "/usr/sbin",
    "/sbin"
]

HELP_ALIASES = ("help", "-help", "?")


def _extend_path():
    current_path = os.environ.get("PATH", "")
    for p in extra_paths:
        if p not in current_path.split(os.pathsep):
            current_path += os.pathsep + p
    os.environ["PATH"] = current_path


def _exclusion_list(value: str) -> List[str]:
    return [name.strip() for name in value.split(",") if name.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kubepf",
        description="Keep kubectl port-forward tunnels to pods alive.",
    )
    parser.add_argument(
        "pods", nargs="*",
        help="pods to forward as name, name:port or name:port:destPort "
             "(defaults to every pod in ./pods.json)",
    )
    parser.add_argument("--kubeconfig", help="config file to use instead of ~/.kube/config")
    parser.add_argument("--namespace", help="override the namespace in the kubernetes config file")
    parser.add_argument(
        "--exclude", type=_exclusion_list, default=[],
        help="comma separated values of pods to exclude from forwarding",
    )
    parser.add_argument(
        "--health-interval", type=int, default=5000, metavar="MS",
        help="ms between health checks, e.g. 5000 is 5 seconds (default)",
    )
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    argv = list(sys.argv[1:] if argv is None else argv)
    argv = ["--help" if arg in HELP_ALIASES else arg for arg in argv]
    return build_parser().parse_args(argv)


def build_run_config(args: argparse.Namespace) -> RunConfig:
    if args.health_interval <= 0:
        raise ConfigurationError("--health-interval must be a positive number of milliseconds")
    return RunConfig(
        kubeconfig=args.kubeconfig,
        namespace=args.namespace,
        health_interval=args.health_interval / 1000,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    _extend_path()

    try:
        run_config = build_run_config(args)
        definitions, project_names = ConfigManager.load()
        if not args.pods and project_names:
            log_console("Forwarding ports for pods from pods.json")
        specs = PodResolver(definitions).resolve_targets(args.pods, args.exclude, project_names)
    except ConfigurationError as e:
        log_console(f"❌ {e}")
        return ExitCode.CONFIGURATION_ERROR

    supervisor = Supervisor(run_config, specs)
    try:
        return asyncio.run(supervisor.run())
    except KeyboardInterrupt:
        return ExitCode.for_signal(signal.SIGINT)


def run():
    sys.exit(int(main()))


if __name__ == "__main__":
    run()
