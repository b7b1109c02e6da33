"""
imageferry Services Layer

Registry lifecycle, tunnelling, and transfer orchestration.
"""

from .retry import wait_for
from .image_runtime import ImageRuntime, DockerRuntime
from .registry_service import RegistryManager
from .ssh_service import RemoteExecutor, SSHService, TunnelCoordinator
from .cleanup_guard import CleanupGuard
from .transfer_service import TransferOrchestrator

__all__ = [
    "wait_for",
    "ImageRuntime",
    "DockerRuntime",
    "RegistryManager",
    "RemoteExecutor",
    "SSHService",
    "TunnelCoordinator",
    "CleanupGuard",
    "TransferOrchestrator",
]
