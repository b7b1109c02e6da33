"""
imageferry Domain Models

Clean dataclass-based models for type-safe data handling.
"""

from .transfer import (
    HostSpec,
    ImageReference,
    TransferRequest,
    RegistryHandle,
    RetryPolicy,
    TunnelSpec,
)
from .results import (
    ExecutionResult,
    SSHResult,
    TransferResult,
)

__all__ = [
    # Transfer
    "HostSpec",
    "ImageReference",
    "TransferRequest",
    "RegistryHandle",
    "RetryPolicy",
    "TunnelSpec",
    # Results
    "ExecutionResult",
    "SSHResult",
    "TransferResult",
]
