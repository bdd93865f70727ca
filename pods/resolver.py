from typing import Dict, Iterable, List, Optional

from core.exceptions import ConfigurationError, NameAmbiguousError, NameUnresolvedError
from models.models import PodSpec


class PodResolver:
    def __init__(self, definitions: Dict[str, PodSpec]):
        self.definitions = definitions

    def resolve_name(self, short_name: str) -> Optional[str]:
        if short_name in self.definitions:
            return short_name

        wanted = short_name.lower()
        candidates = [name for name in self.definitions if name.lower().startswith(wanted)]
        if len(candidates) == 1:
            return candidates[0]
        if len(candidates) > 1:
            raise NameAmbiguousError(short_name, candidates)
        return None

    def resolve_spec(self, token: str) -> PodSpec:
        """Build the PodSpec for one ``name``, ``name:port`` or ``name:port:destPort`` token.

        Explicit ports skip the pod files entirely.
        """
        if ":" in token:
            parts = token.split(":")
            if len(parts) > 3 or not parts[0] or not parts[1]:
                raise ConfigurationError(f"Invalid pod definition {token}, expected name:port[:destPort]")
            try:
                source = int(parts[1])
                destination = int(parts[2]) if len(parts) == 3 and parts[2] else source
            except ValueError:
                raise ConfigurationError(f"Invalid port in {token}")
            return PodSpec(name=parts[0], source_port=source, destination_port=destination)

        full_name = self.resolve_name(token)
        if not full_name:
            raise NameUnresolvedError(token)
        return self.definitions[full_name]

    def resolve_exclusions(self, names: Iterable[str]) -> List[str]:
        excluded = []
        for name in names:
            full_name = self.resolve_name(name)
            if not full_name:
                raise NameUnresolvedError(name, f"Unknown pod to exclude: {name}")
            excluded.append(full_name)
        return excluded

    def resolve_targets(self, tokens: List[str], exclusions: Iterable[str], project_names: List[str]) -> List[PodSpec]:
        if not tokens:
            if not project_names:
                raise ConfigurationError("No pod names provided")
            tokens = list(project_names)

        excluded = set(self.resolve_exclusions(exclusions))
        specs = []
        seen = set()
        for token in tokens:
            spec = self.resolve_spec(token)
            if spec.name in excluded or spec.name in seen:
                continue
            seen.add(spec.name)
            specs.append(spec)

        if not specs:
            raise ConfigurationError("No pod names provided")
        return specs
