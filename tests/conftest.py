import io
import os
import stat
import subprocess
from types import SimpleNamespace
from typing import Dict, List, Optional, Tuple

import pytest
from rich.console import Console

from imageferry.logger import TransferLogger
from imageferry.models.results import ExecutionResult, SSHResult
from imageferry.models.transfer import TunnelSpec
from imageferry.services import registry_service
from imageferry.services.image_runtime import ImageRuntime
from imageferry.services.ssh_service import RemoteExecutor

CONTAINER_ID = "3f2a9c1d7e5b4a6f8c0d1e2f3a4b5c6d7e8f9a0b1c2d3e4f5a6b7c8d9e0f1a2b"

FAKE_DOCKER = """#!/bin/sh
echo "$*" >> "$FAKE_DOCKER_LOG"
if [ "$1" = "pull" ] && [ "$2" = "$FAKE_DOCKER_FAIL_PULL" ]; then
  echo "Error response from daemon: manifest unknown" >&2
  exit 1
fi
exit 0
"""


class FakeRuntime(ImageRuntime):
    """Records every call; failures are configured per (operation, argument)."""

    def __init__(self):
        self.calls: List[Tuple[str, ...]] = []
        self.failures: Dict[Tuple[str, str], ExecutionResult] = {}
        self.containers: Dict[str, bool] = {}
        self.run_result: Optional[ExecutionResult] = None

    def fail(self, operation: str, argument: str, returncode: int = 1, stderr: str = "boom"):
        self.failures[(operation, argument)] = ExecutionResult(
            returncode=returncode, stderr=stderr, command=f"docker {operation} {argument}"
        )

    def _result(self, operation: str, argument: str) -> ExecutionResult:
        return self.failures.get(
            (operation, argument),
            ExecutionResult(returncode=0, command=f"docker {operation} {argument}"),
        )

    def tag(self, source, target):
        self.calls.append(("tag", source, target))
        return self._result("tag", source)

    def push(self, reference):
        self.calls.append(("push", reference))
        return self._result("push", reference)

    def pull(self, reference):
        self.calls.append(("pull", reference))
        return self._result("pull", reference)

    def rmi(self, reference):
        self.calls.append(("rmi", reference))
        return self._result("rmi", reference)

    def run(self, image, publish=None):
        self.calls.append(("run", image, publish))
        if self.run_result is not None:
            return self.run_result
        self.containers[CONTAINER_ID] = True
        return ExecutionResult(returncode=0, stdout=f"{CONTAINER_ID}\n", command="docker run")

    def kill(self, container_id):
        self.calls.append(("kill", container_id))
        self.containers[container_id] = False
        return self._result("kill", container_id)

    def rm(self, container_id):
        self.calls.append(("rm", container_id))
        self.containers.pop(container_id, None)
        return self._result("rm", container_id)

    def is_running(self, container_id):
        return self.containers.get(container_id)

    def operations(self, name: str) -> List[Tuple[str, ...]]:
        return [call for call in self.calls if call[0] == name]


class FakeExecutor(RemoteExecutor):
    """Returns a canned SSHResult and keeps the specs it was given."""

    def __init__(self, returncode: int = 0, stderr: str = ""):
        self.specs: List[TunnelSpec] = []
        self.returncode = returncode
        self.stderr = stderr

    def run_tunnel(self, spec):
        self.specs.append(spec)
        return SSHResult(
            returncode=self.returncode,
            stderr=self.stderr,
            host=spec.remote_host.host,
            command=spec.remote_script,
        )


class LocalShellExecutor(RemoteExecutor):
    """Runs the remote script with the local sh, standing in for the remote host."""

    def __init__(self, env: Dict[str, str]):
        self.env = env
        self.specs: List[TunnelSpec] = []

    def run_tunnel(self, spec):
        self.specs.append(spec)
        result = subprocess.run(
            ["sh", "-c", spec.remote_script],
            capture_output=True,
            text=True,
            env={**os.environ, **self.env},
        )
        return SSHResult(
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
            host=spec.remote_host.host,
            command=spec.remote_script,
        )


@pytest.fixture
def logger():
    return TransferLogger(
        log_dir=None,
        stdout_console=Console(file=io.StringIO(), width=120),
        stderr_console=Console(file=io.StringIO(), width=120),
    )


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture
def registry_up(monkeypatch):
    """Registry answers every probe with HTTP 200."""
    probes = []

    def fake_get(session, url, timeout=None):
        probes.append(url)
        return SimpleNamespace(status_code=200)

    monkeypatch.setattr(registry_service.requests.Session, "get", fake_get)
    return probes


@pytest.fixture
def registry_down(monkeypatch):
    """Registry never answers."""

    def fake_get(session, url, timeout=None):
        raise registry_service.requests.ConnectionError(f"Connection refused: {url}")

    monkeypatch.setattr(registry_service.requests.Session, "get", fake_get)


@pytest.fixture
def fake_docker(tmp_path):
    """A docker stand-in that logs its arguments; returns (path, log path)."""
    path = tmp_path / "docker"
    path.write_text(FAKE_DOCKER)
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return path, tmp_path / "docker.log"
