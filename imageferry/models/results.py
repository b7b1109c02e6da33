"""
Result Models

Outcomes of the external commands a transfer runs, and of the transfer itself.
"""

from dataclasses import dataclass, field
from typing import Optional

from imageferry.models.transfer import ImageReference, RegistryHandle


@dataclass
class ExecutionResult:
    """Exit status and captured output of one local command (docker, etc.)."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    command: str = ""

    @property
    def is_success(self) -> bool:
        return self.returncode == 0

    @property
    def is_failure(self) -> bool:
        return not self.is_success

    def __repr__(self) -> str:
        return f"ExecutionResult(returncode={self.returncode}, command={self.command[:50]!r})"


@dataclass
class SSHResult(ExecutionResult):
    """ExecutionResult of an ssh session; command holds the remote script."""

    host: str = ""
    duration_seconds: float = 0.0

    def __repr__(self) -> str:
        return (
            f"SSHResult(host={self.host}, returncode={self.returncode}, "
            f"duration={self.duration_seconds:.2f}s)"
        )


@dataclass
class TransferResult:
    """Outcome of a completed transfer."""

    registry: RegistryHandle
    pushed: list[ImageReference] = field(default_factory=list)
    remote: Optional[SSHResult] = None

    @property
    def is_success(self) -> bool:
        return self.remote is not None and self.remote.is_success
