import pytest

from imageferry.services.image_runtime import DockerRuntime


@pytest.fixture
def docker(fake_docker, logger, monkeypatch):
    path, log = fake_docker
    monkeypatch.setenv("FAKE_DOCKER_LOG", str(log))
    monkeypatch.setenv("FAKE_DOCKER_FAIL_PULL", "")
    return DockerRuntime(logger, str(path)), log


def test_run_publishes_registry_port_detached(docker):
    runtime, log = docker

    result = runtime.run("registry:2", publish="127.0.0.1:5000:5000")

    assert result.is_success
    assert log.read_text().splitlines() == [
        "run --detach --publish 127.0.0.1:5000:5000 registry:2"
    ]


def test_teardown_commands(docker):
    runtime, log = docker

    runtime.kill("3f2a9c1d7e5b")
    runtime.rm("3f2a9c1d7e5b")

    assert log.read_text().splitlines() == ["kill 3f2a9c1d7e5b", "rm --force 3f2a9c1d7e5b"]


def test_failed_pull_reports_docker_status(docker, monkeypatch):
    runtime, _ = docker
    monkeypatch.setenv("FAKE_DOCKER_FAIL_PULL", "localhost:5000/a:1")

    result = runtime.pull("localhost:5000/a:1")

    assert result.returncode == 1
    assert "manifest unknown" in result.stderr
