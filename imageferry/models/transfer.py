"""
Transfer Models

Dataclass models describing one image transfer and the resources it uses.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from imageferry.exceptions import ArgumentError

# name[:tag] as accepted by the docker CLI, plus digests and registry prefixes
IMAGE_REFERENCE_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._/:@+-]*$")
HOST_PATTERN = re.compile(r"^[^\s@]+$")


@dataclass(frozen=True)
class HostSpec:
    """Remote host to deliver images to ([user@]host)."""

    host: str
    user: Optional[str] = None

    @classmethod
    def parse(cls, value: str) -> "HostSpec":
        """
        Parse a [user@]host string.

        Raises:
            ArgumentError: If the host part is empty or malformed
        """
        if value.startswith("-"):
            # ssh would read it as an option
            raise ArgumentError(
                f"Invalid deploy target '{value}'", "Target must not start with '-'"
            )
        user, sep, host = value.rpartition("@")
        if sep and not user:
            raise ArgumentError(f"Invalid deploy target '{value}'", "Empty user name")
        if not HOST_PATTERN.match(host):
            raise ArgumentError(
                f"Invalid deploy target '{value}'", "Expected [user@]host"
            )
        return cls(host=host, user=user or None)

    @property
    def destination(self) -> str:
        """Get SSH destination string (user@host or host)."""
        if self.user:
            return f"{self.user}@{self.host}"
        return self.host

    def __str__(self) -> str:
        return self.destination


@dataclass(frozen=True)
class ImageReference:
    """A local image reference (name[:tag])."""

    value: str

    @classmethod
    def parse(cls, value: str) -> "ImageReference":
        """
        Validate an image reference.

        Raises:
            ArgumentError: If the reference is empty or contains whitespace
        """
        if not value or not value.strip():
            raise ArgumentError("Empty image reference")
        if any(ch.isspace() for ch in value):
            raise ArgumentError(
                f"Invalid image reference '{value}'", "Whitespace is not allowed"
            )
        if not IMAGE_REFERENCE_PATTERN.match(value):
            raise ArgumentError(
                f"Invalid image reference '{value}'", "Expected name[:tag]"
            )
        return cls(value)

    def qualified(self, registry_address: str) -> str:
        """Reference routed through a registry (address/name[:tag])."""
        return f"{registry_address}/{self.value}"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TransferRequest:
    """A parsed, validated transfer invocation. Immutable once built."""

    target: HostSpec
    images: tuple[ImageReference, ...]
    ssh_options: str = ""

    @classmethod
    def parse(
        cls, target: str, images: Iterable[str], ssh_options: Optional[str] = None
    ) -> "TransferRequest":
        """
        Build a request from raw command line values.

        Duplicate image references are dropped, keeping first-seen order.

        Raises:
            ArgumentError: If no images are given or any value is invalid
        """
        host = HostSpec.parse(target)
        refs = [ImageReference.parse(image) for image in images]
        if not refs:
            raise ArgumentError("At least one image is required")
        unique = tuple(dict.fromkeys(refs))
        return cls(target=host, images=unique, ssh_options=ssh_options or "")


@dataclass(frozen=True)
class RegistryHandle:
    """A running ephemeral registry container."""

    container_id: str
    host: str
    port: int

    @property
    def address(self) -> str:
        """Registry address used in image references (host:port)."""
        return f"{self.host}:{self.port}"

    @property
    def url(self) -> str:
        """Base URL of the registry HTTP API."""
        return f"http://{self.address}"

    def __repr__(self) -> str:
        return f"RegistryHandle(id={self.container_id[:12]}, address={self.address})"


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded polling policy, in seconds."""

    max_wait: float
    poll_interval: float

    def __post_init__(self):
        if self.max_wait < 0:
            raise ValueError(f"max_wait must be >= 0, got {self.max_wait}")
        if self.poll_interval < 0:
            raise ValueError(f"poll_interval must be >= 0, got {self.poll_interval}")


@dataclass(frozen=True)
class TunnelSpec:
    """One reverse-tunnelled ssh session and the script it runs."""

    local_port: int
    remote_bind_port: int
    remote_host: HostSpec
    connection_options: str
    remote_script: str

    @property
    def forward(self) -> str:
        """Reverse forward spec for ssh -R."""
        return f"{self.remote_bind_port}:localhost:{self.local_port}"
