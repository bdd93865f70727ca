import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from logs.log_manager import log_console
from models.models import PodSpec

CONFIG_FILE_NAMES = ("pods.json", "pods.yml", "pods.yaml")


class ConfigManager:
    @staticmethod
    def get_user_config_dir() -> Path:
        env_var = "KUBEPF_CONFIG"
        if env_var in os.environ:
            return Path(os.environ[env_var])
        return Path.home() / ".kube"

    @staticmethod
    def get_project_config_dir() -> Path:
        return Path.cwd()

    @staticmethod
    def find_config_file(config_dir: Path) -> Optional[Path]:
        for file_name in CONFIG_FILE_NAMES:
            candidate = config_dir / file_name
            if candidate.exists():
                return candidate
        return None

    @staticmethod
    def read_pod_definitions(config_file: Optional[Path]) -> Dict[str, Any]:
        if config_file is None or not config_file.exists():
            return {}

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                content = f.read().strip()
            if not content:
                return {}
            if config_file.suffix == ".json":
                pods = json.loads(content)
            else:
                pods = yaml.safe_load(content)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
            log_console(f"⚠️  Could not read pod definitions from {config_file}: {e}")
            return {}

        if not isinstance(pods, dict):
            log_console(f"⚠️  Pod definitions in {config_file} have invalid format.")
            return {}
        return pods

    @staticmethod
    def merge_definitions(user_pods: Dict[str, Any], project_pods: Dict[str, Any]) -> Dict[str, Any]:
        merged = dict(user_pods)
        for name, value in project_pods.items():
            if isinstance(value, dict) and isinstance(merged.get(name), dict):
                merged[name] = {**merged[name], **value}
            else:
                merged[name] = value
        return merged

    @staticmethod
    def standardise_definitions(pods: Dict[str, Any]) -> Dict[str, PodSpec]:
        """Turn every supported entry format into a PodSpec, dropping broken ones.

        An entry is either a bare port (forwarded to the same remote port) or a
        record with ``from``, ``to`` and ``namespace``, where a missing ``from``
        or ``to`` takes the value of the other.
        """
        result = {}
        ignored = []

        for name, value in pods.items():
            try:
                if isinstance(value, dict):
                    source = value.get("from", value.get("to"))
                    destination = value.get("to", value.get("from"))
                    if source is None:
                        ignored.append(name)
                        continue
                    result[name] = PodSpec(
                        name=name,
                        source_port=int(source),
                        destination_port=int(destination),
                        namespace=value.get("namespace"),
                    )
                elif isinstance(value, bool) or value is None:
                    ignored.append(name)
                else:
                    port = int(value)
                    result[name] = PodSpec(name=name, source_port=port, destination_port=port)
            except (TypeError, ValueError):
                ignored.append(name)

        if ignored:
            log_console(f"⚠️  Ignoring pods {', '.join(ignored)}, they are incorrectly configured.")
        return result

    @staticmethod
    def load():
        """Read and merge the user-level and project-level pod files.

        Returns ``(merged, project)``: every usable PodSpec by name, and the
        names declared in the project file.
        """
        user_file = ConfigManager.find_config_file(ConfigManager.get_user_config_dir())
        project_file = ConfigManager.find_config_file(ConfigManager.get_project_config_dir())

        user_pods = ConfigManager.read_pod_definitions(user_file)
        project_pods = ConfigManager.read_pod_definitions(project_file)

        merged = ConfigManager.standardise_definitions(ConfigManager.merge_definitions(user_pods, project_pods))
        project_names = [name for name in project_pods if name in merged]
        return merged, project_names
