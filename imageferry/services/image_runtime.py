"""Image runtime adapters (local docker CLI)."""

import subprocess
from abc import ABC, abstractmethod
from typing import List, Optional

from imageferry.logger import TransferLogger, run_with_progress
from imageferry.models.results import ExecutionResult


class ImageRuntime(ABC):
    """
    Local image store and container runtime.

    Every operation reports its outcome as an ExecutionResult; callers decide
    which failures are fatal.
    """

    @abstractmethod
    def tag(self, source: str, target: str) -> ExecutionResult:
        pass

    @abstractmethod
    def push(self, reference: str) -> ExecutionResult:
        pass

    @abstractmethod
    def pull(self, reference: str) -> ExecutionResult:
        pass

    @abstractmethod
    def rmi(self, reference: str) -> ExecutionResult:
        pass

    @abstractmethod
    def run(self, image: str, publish: Optional[str] = None) -> ExecutionResult:
        """Start a detached container; stdout carries the container id."""
        pass

    @abstractmethod
    def kill(self, container_id: str) -> ExecutionResult:
        pass

    @abstractmethod
    def rm(self, container_id: str) -> ExecutionResult:
        pass

    @abstractmethod
    def is_running(self, container_id: str) -> Optional[bool]:
        """True/False for an existing container, None when it does not exist."""
        pass


class DockerRuntime(ImageRuntime):
    """ImageRuntime backed by the docker CLI."""

    def __init__(self, logger: TransferLogger, docker_bin: str = "docker"):
        """
        Initialize docker runtime.

        Args:
            logger: Logger receiving commands and their output
            docker_bin: docker executable name or path
        """
        self.logger = logger
        self.docker_bin = docker_bin

    def _run(self, args: List[str], description: str) -> ExecutionResult:
        return run_with_progress(self.logger, [self.docker_bin] + args, description)

    def tag(self, source: str, target: str) -> ExecutionResult:
        return self._run(["tag", source, target], f"Tagging {source} as {target}")

    def push(self, reference: str) -> ExecutionResult:
        return self._run(["push", reference], f"Pushing {reference}")

    def pull(self, reference: str) -> ExecutionResult:
        return self._run(["pull", reference], f"Pulling {reference}")

    def rmi(self, reference: str) -> ExecutionResult:
        return self._run(["rmi", reference], f"Removing tag {reference}")

    def run(self, image: str, publish: Optional[str] = None) -> ExecutionResult:
        args = ["run", "--detach"]
        if publish:
            args.extend(["--publish", publish])
        args.append(image)
        return self._run(args, f"Starting {image}")

    def kill(self, container_id: str) -> ExecutionResult:
        return self._run(["kill", container_id], f"Killing {container_id[:12]}")

    def rm(self, container_id: str) -> ExecutionResult:
        return self._run(["rm", "--force", container_id], f"Removing {container_id[:12]}")

    def is_running(self, container_id: str) -> Optional[bool]:
        # Queried silently; no spinner for a state lookup
        args = [self.docker_bin, "inspect", "--format", "{{.State.Running}}", container_id]
        self.logger.log_command(" ".join(args))
        try:
            result = subprocess.run(args, capture_output=True, text=True)
        except FileNotFoundError as e:
            self.logger.log_output(str(e), "stderr")
            return None
        if result.returncode != 0:
            self.logger.log_output(result.stderr, "stderr")
            return None
        return result.stdout.strip() == "true"
