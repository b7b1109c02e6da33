"""Transfer orchestration: registry, local push, remote pull, teardown."""

from typing import Optional

from imageferry.exceptions import PushError, TagError
from imageferry.logger import TransferLogger
from imageferry.models.results import TransferResult
from imageferry.models.transfer import (
    ImageReference,
    RegistryHandle,
    RetryPolicy,
    TransferRequest,
)
from imageferry.services.cleanup_guard import CleanupGuard
from imageferry.services.image_runtime import ImageRuntime
from imageferry.services.registry_service import RegistryManager
from imageferry.services.ssh_service import TunnelCoordinator


class TransferOrchestrator:
    """
    Moves images to a remote host through an ephemeral registry.

    Local pushes are fail-fast: the first failing image aborts the batch.
    Remote pulls are best-effort per image: every image is attempted and
    any failure makes the whole transfer fail afterwards.
    """

    def __init__(
        self,
        runtime: ImageRuntime,
        registry_manager: RegistryManager,
        tunnel: TunnelCoordinator,
        logger: TransferLogger,
        readiness_policy: RetryPolicy,
    ):
        self.runtime = runtime
        self.registry_manager = registry_manager
        self.tunnel = tunnel
        self.logger = logger
        self.readiness_policy = readiness_policy

    def transfer(
        self, request: TransferRequest, guard: Optional[CleanupGuard] = None
    ) -> TransferResult:
        """
        Run a full transfer.

        Args:
            request: Validated transfer request
            guard: Cleanup guard to register the registry with (one is
                created when omitted)

        Returns:
            TransferResult with the pushed images and remote session result

        Raises:
            LaunchError, RegistryUnavailableError, TagError, PushError,
            TunnelConnectionError, RemoteExecutionError
        """
        if guard is None:
            guard = CleanupGuard(self.registry_manager)

        with guard:
            self.logger.step("Starting ephemeral registry")
            handle = self.registry_manager.start()
            guard.register(handle)
            self.logger.success(f"Registry container {handle.container_id[:12]} on {handle.address}")

            self.logger.step("Waiting for registry")
            self.registry_manager.wait_until_ready(handle, self.readiness_policy)
            self.logger.success(f"Registry ready at {handle.url}")

            result = TransferResult(registry=handle)

            self.logger.step(f"Pushing {len(request.images)} image(s)")
            for image in request.images:
                self._push_image(image, handle)
                result.pushed.append(image)
                self.logger.success(f"Pushed {image}")

            self.logger.step(f"Pulling on {request.target.destination}")
            result.remote = self.tunnel.run_remote(
                request.target,
                request.ssh_options,
                handle.port,
                request.images,
                handle.address,
            )
            self.logger.success(f"Pulled {len(request.images)} image(s) on {request.target.host}")
        return result

    def _push_image(self, image: ImageReference, handle: RegistryHandle) -> None:
        """
        Tag, push, and untag one image.

        The transient registry tag is removed even when the push fails.

        Raises:
            TagError: If tagging or removing the transient tag fails
            PushError: If the push fails
        """
        qualified = image.qualified(handle.address)

        tagged = self.runtime.tag(image.value, qualified)
        if tagged.is_failure:
            raise TagError(
                image.value,
                f"Could not tag {image} as {qualified}",
                context=tagged.stderr.strip() or None,
                exit_code=tagged.returncode,
            )

        pushed = self.runtime.push(qualified)
        removed = self.runtime.rmi(qualified)

        if pushed.is_failure:
            if removed.is_failure:
                self.logger.warning(f"Could not remove transient tag {qualified}")
            raise PushError(
                image.value,
                f"Could not push {qualified}",
                context=pushed.stderr.strip() or None,
                exit_code=pushed.returncode,
            )
        if removed.is_failure:
            raise TagError(
                image.value,
                f"Could not remove transient tag {qualified}",
                context=removed.stderr.strip() or None,
                exit_code=removed.returncode,
            )
