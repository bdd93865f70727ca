import pytest

from fakes import FakeKubectl, FakeSpawner, FakeSupervisor
from models.models import RunConfig


@pytest.fixture
def run_config():
    return RunConfig(health_interval=0.01, attempt_duration=0.001, max_attempts=20)


@pytest.fixture
def kubectl():
    return FakeKubectl()


@pytest.fixture
def spawner():
    return FakeSpawner()


@pytest.fixture
def fake_supervisor():
    return FakeSupervisor()


@pytest.fixture
def config_dirs(tmp_path, monkeypatch):
    """Point the user-level and project-level pod files at temporary directories."""
    user_dir = tmp_path / "user"
    project_dir = tmp_path / "project"
    user_dir.mkdir()
    project_dir.mkdir()
    monkeypatch.setenv("KUBEPF_CONFIG", str(user_dir))
    monkeypatch.chdir(project_dir)
    return user_dir, project_dir
