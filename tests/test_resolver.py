import pytest

from core.exceptions import ConfigurationError, NameAmbiguousError, NameUnresolvedError
from models.models import PodSpec
from pods.resolver import PodResolver


@pytest.fixture
def resolver():
    return PodResolver({
        "api-gateway": PodSpec("api-gateway", 8080, 8080),
        "api-users": PodSpec("api-users", 8081, 80),
        "Billing": PodSpec("Billing", 9000, 9000, "finance"),
        "web": PodSpec("web", 3000, 3000),
        "web-admin": PodSpec("web-admin", 3001, 3001),
    })


def test_exact_match_wins(resolver):
    assert resolver.resolve_name("web") == "web"


def test_unique_prefix_resolves(resolver):
    assert resolver.resolve_name("bill") == "Billing"
    assert resolver.resolve_name("API-G") == "api-gateway"


def test_ambiguous_prefix_lists_candidates(resolver):
    with pytest.raises(NameAmbiguousError) as excinfo:
        resolver.resolve_name("api")
    assert excinfo.value.candidates == ["api-gateway", "api-users"]
    assert "api-gateway, api-users" in str(excinfo.value)


def test_unknown_name(resolver):
    assert resolver.resolve_name("db") is None


def test_explicit_ports_bypass_configuration(resolver):
    assert resolver.resolve_spec("db:5432") == PodSpec("db", 5432, 5432)
    assert resolver.resolve_spec("web:4000:80") == PodSpec("web", 4000, 80)


@pytest.mark.parametrize("token", ["db:abc", ":5432", "db:1:2:3"])
def test_invalid_explicit_tokens(resolver, token):
    with pytest.raises(ConfigurationError):
        resolver.resolve_spec(token)


def test_bare_token_uses_configuration(resolver):
    assert resolver.resolve_spec("bil") == PodSpec("Billing", 9000, 9000, "finance")


def test_bare_token_must_resolve(resolver):
    with pytest.raises(NameUnresolvedError, match="Please specify port for db"):
        resolver.resolve_spec("db")


def test_unknown_exclusion(resolver):
    with pytest.raises(NameUnresolvedError, match="Unknown pod to exclude: db"):
        resolver.resolve_exclusions(["db"])


def test_targets_default_to_project_pods(resolver):
    specs = resolver.resolve_targets([], [], ["web", "Billing"])
    assert [spec.name for spec in specs] == ["web", "Billing"]


def test_targets_without_any_pods(resolver):
    with pytest.raises(ConfigurationError, match="No pod names provided"):
        resolver.resolve_targets([], [], [])


def test_targets_skip_exclusions_and_duplicates(resolver):
    specs = resolver.resolve_targets(["web", "web", "bil", "api-u"], ["bill"], [])
    assert [spec.name for spec in specs] == ["web", "api-users"]


def test_everything_excluded(resolver):
    with pytest.raises(ConfigurationError):
        resolver.resolve_targets(["web"], ["web"], [])
