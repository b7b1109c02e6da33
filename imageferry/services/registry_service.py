"""Ephemeral registry lifecycle: launch, readiness, teardown."""

import socket
import time
from typing import Callable, Optional, Set

import requests

from imageferry.constants import (
    DEFAULT_REGISTRY_HOST,
    DEFAULT_REGISTRY_IMAGE,
    DEFAULT_REGISTRY_PORT,
    READINESS_REQUEST_TIMEOUT,
    READINESS_STATUSES,
    REGISTRY_BIND_ADDRESS,
    REGISTRY_CONTAINER_PORT,
)
from imageferry.exceptions import (
    LaunchError,
    RegistryNotReady,
    RegistryUnavailableError,
)
from imageferry.logger import TransferLogger
from imageferry.models.transfer import RegistryHandle, RetryPolicy
from imageferry.services.image_runtime import ImageRuntime
from imageferry.services.retry import wait_for


def find_free_port(bind_address: str = REGISTRY_BIND_ADDRESS) -> int:
    """Ask the OS for an unused TCP port on the given address."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((bind_address, 0))
        return sock.getsockname()[1]


class RegistryManager:
    """
    Owns the ephemeral registry container for one transfer.

    Responsibilities:
    - Launch the registry on a loopback port
    - Probe its HTTP API until it answers as a registry
    - Tear it down exactly once, never raising
    """

    def __init__(
        self,
        runtime: ImageRuntime,
        logger: TransferLogger,
        image: str = DEFAULT_REGISTRY_IMAGE,
        host: str = DEFAULT_REGISTRY_HOST,
        port: int = DEFAULT_REGISTRY_PORT,
        request_timeout: float = READINESS_REQUEST_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.runtime = runtime
        self.logger = logger
        self.image = image
        self.host = host
        self.port = port
        self.request_timeout = request_timeout
        self.sleep = sleep
        self._stopped: Set[str] = set()
        # Loopback probe; proxy settings from the environment must not answer for it
        self.session = requests.Session()
        self.session.trust_env = False

    def start(self) -> RegistryHandle:
        """
        Launch the registry container.

        Returns:
            Handle for the running container

        Raises:
            LaunchError: If the runtime cannot create the container
        """
        port = self.port or find_free_port()
        result = self.runtime.run(
            self.image,
            publish=f"{REGISTRY_BIND_ADDRESS}:{port}:{REGISTRY_CONTAINER_PORT}",
        )
        if result.is_failure:
            raise LaunchError(
                f"Could not start registry ({self.image}) on port {port}",
                context=result.stderr.strip() or None,
                exit_code=result.returncode,
            )

        container_id = result.stdout.strip().splitlines()[-1] if result.stdout.strip() else ""
        if not container_id:
            raise LaunchError(
                f"Registry container for {self.image} reported no id",
                context=result.command,
            )

        handle = RegistryHandle(container_id=container_id, host=self.host, port=port)
        self.logger.log(f"Registry started: {handle!r}")
        return handle

    def probe(self, handle: RegistryHandle) -> int:
        """
        Probe the registry API once.

        The registry is up once /v2/ answers 200, or 401 when it requires
        authentication.

        Returns:
            HTTP status code

        Raises:
            RegistryNotReady: If there was no response, or any other status
        """
        try:
            response = self.session.get(f"{handle.url}/v2/", timeout=self.request_timeout)
        except requests.RequestException as e:
            raise RegistryNotReady(
                f"No response from registry at {handle.address}", context=str(e)
            ) from e
        if response.status_code not in READINESS_STATUSES:
            raise RegistryNotReady(
                f"Registry at {handle.address} not ready",
                context=f"GET /v2/ answered HTTP {response.status_code}",
            )
        return response.status_code

    def wait_until_ready(self, handle: RegistryHandle, policy: RetryPolicy) -> int:
        """
        Poll the registry until it answers.

        Raises:
            RegistryUnavailableError: If it never answers within the policy budget
        """
        try:
            status = wait_for(
                lambda: self.probe(handle),
                policy,
                retry_on=(RegistryNotReady,),
                sleep=self.sleep,
            )
        except RegistryNotReady as e:
            raise RegistryUnavailableError(handle.address, policy.max_wait, e) from e
        self.logger.log(f"Registry probe answered with HTTP {status}")
        return status

    def stop(self, handle: Optional[RegistryHandle]) -> None:
        """
        Kill and remove the registry container.

        Best effort: failures are logged, never raised. A handle is only
        ever torn down once.
        """
        if handle is None or handle.container_id in self._stopped:
            return
        self._stopped.add(handle.container_id)

        try:
            self.logger.step("Removing ephemeral registry")
            running = self.runtime.is_running(handle.container_id)
            if running is None:
                self.logger.log(f"Registry {handle!r} already gone", "DEBUG")
                return

            if running:
                result = self.runtime.kill(handle.container_id)
                if result.is_failure:
                    self.logger.warning(
                        f"Could not kill registry {handle.container_id[:12]}: {result.stderr.strip()}"
                    )

            result = self.runtime.rm(handle.container_id)
            if result.is_failure:
                self.logger.warning(
                    f"Could not remove registry {handle.container_id[:12]}: {result.stderr.strip()}"
                )
            else:
                self.logger.success(f"Registry {handle.address} removed")
        except Exception as e:
            self.logger.warning(f"Registry teardown failed: {e}")
