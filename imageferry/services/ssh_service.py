"""SSH service: reverse tunnel to the remote host and the pull script run over it."""

import shlex
import subprocess
import time
from abc import ABC, abstractmethod
from typing import List, Sequence

from imageferry.constants import (
    DEFAULT_SSH_BIN,
    PROCESS_STOP_TIMEOUT,
    SSH_EXIT_CONNECTION_FAILURE,
    SSH_TUNNEL_OPTIONS,
)
from imageferry.exceptions import RemoteExecutionError, TunnelConnectionError
from imageferry.logger import TransferLogger, drain_in_background, stop_process
from imageferry.models.results import SSHResult
from imageferry.models.transfer import HostSpec, ImageReference, TunnelSpec

PROGRESS_PREFIX = "imageferry: "
FAILURE_MARKER = PROGRESS_PREFIX + "failed to transfer "


def build_remote_script(
    images: Sequence[ImageReference], registry_address: str, docker_bin: str = "docker"
) -> str:
    """
    Render the POSIX sh script that pulls and retags each image remotely.

    Each image runs its own pull && tag && rmi chain. A failing image is
    reported on stderr and recorded, and the next image is still attempted.
    The script exits 1 if any image failed.
    """
    docker = shlex.quote(docker_bin)
    lines = ["set -u", "status=0"]
    for image in images:
        name = shlex.quote(image.value)
        qualified = shlex.quote(image.qualified(registry_address))
        done = shlex.quote(f"{PROGRESS_PREFIX}pulled {image.value}")
        failure = shlex.quote(f"{FAILURE_MARKER}{image.value}")
        lines.append(
            f"{{ {docker} pull {qualified} && {docker} tag {qualified} {name} && "
            f"{docker} rmi {qualified} && echo {done}; }} || "
            f"{{ echo {failure} >&2; status=1; }}"
        )
    lines.append('exit "$status"')
    return "\n".join(lines) + "\n"


def failed_images(output: str) -> List[str]:
    """Image references the remote script reported as failed."""
    return [
        line[len(FAILURE_MARKER):].strip()
        for line in output.splitlines()
        if line.startswith(FAILURE_MARKER)
    ]


class RemoteExecutor(ABC):
    """Runs a command on a remote host inside a reverse-tunnelled session."""

    @abstractmethod
    def run_tunnel(self, spec: TunnelSpec) -> SSHResult:
        """
        Open the tunnel, run spec.remote_script, and close the tunnel when it exits.

        Returns the session's exit status; never raises for a non-zero exit.
        """
        pass


class SSHService(RemoteExecutor):
    """RemoteExecutor backed by the OpenSSH client."""

    def __init__(self, logger: TransferLogger, ssh_bin: str = DEFAULT_SSH_BIN):
        """
        Initialize SSH service.

        Args:
            logger: Logger receiving the command and remote output
            ssh_bin: ssh executable name or path
        """
        self.logger = logger
        self.ssh_bin = ssh_bin

    def build_command(self, spec: TunnelSpec) -> List[str]:
        """Build full SSH command for a tunnel spec."""
        remote_command = f"sh -c {shlex.quote(spec.remote_script)}"
        return (
            [self.ssh_bin, "-R", spec.forward]
            + SSH_TUNNEL_OPTIONS
            + shlex.split(spec.connection_options)
            + [spec.remote_host.destination, remote_command]
        )

    def run_tunnel(self, spec: TunnelSpec) -> SSHResult:
        ssh_cmd = self.build_command(spec)
        self.logger.log_command(shlex.join(ssh_cmd[:-1]) + " <remote script>")
        self.logger.log(f"Remote script:\n{spec.remote_script}", "DEBUG")

        start_time = time.time()
        try:
            process = subprocess.Popen(
                ssh_cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                bufsize=1,
            )
        except FileNotFoundError as e:
            return SSHResult(
                returncode=SSH_EXIT_CONNECTION_FAILURE,
                stderr=str(e),
                host=spec.remote_host.host,
                command=spec.remote_script,
            )

        stderr_reader, stderr_chunks = drain_in_background(process.stderr)
        stdout_lines = []
        try:
            for line in process.stdout:
                line_stripped = line.rstrip()
                stdout_lines.append(line_stripped)
                self.logger.log_output(line_stripped, "remote")
                if not self.logger.verbose and line_stripped.startswith(PROGRESS_PREFIX):
                    self.logger.success(line_stripped[len(PROGRESS_PREFIX):])
            process.wait()
        finally:
            # An interrupt must not leave the tunnel or the remote script running
            stop_process(process)
            stderr_reader.join(PROCESS_STOP_TIMEOUT)

        stderr_content = "".join(stderr_chunks)
        if stderr_content:
            self.logger.log_output(stderr_content, "remote-stderr")
        duration = time.time() - start_time

        return SSHResult(
            returncode=process.returncode,
            stdout="\n".join(stdout_lines),
            stderr=stderr_content,
            host=spec.remote_host.host,
            command=spec.remote_script,
            duration_seconds=duration,
        )


class TunnelCoordinator:
    """Runs the remote pull script over a reverse tunnel to the local registry."""

    def __init__(self, executor: RemoteExecutor, logger: TransferLogger, docker_bin: str = "docker"):
        self.executor = executor
        self.logger = logger
        self.docker_bin = docker_bin

    def build_spec(
        self,
        target: HostSpec,
        connection_options: str,
        local_port: int,
        images: Sequence[ImageReference],
        registry_address: str,
    ) -> TunnelSpec:
        return TunnelSpec(
            local_port=local_port,
            remote_bind_port=local_port,
            remote_host=target,
            connection_options=connection_options,
            remote_script=build_remote_script(images, registry_address, self.docker_bin),
        )

    def run_remote(
        self,
        target: HostSpec,
        connection_options: str,
        local_port: int,
        images: Sequence[ImageReference],
        registry_address: str,
    ) -> SSHResult:
        """
        Pull every image on the remote host through a reverse tunnel.

        Args:
            target: Remote host
            connection_options: Extra ssh arguments, passed through untouched
            local_port: Registry port, bound to the same port remotely
            images: Images to pull, in order
            registry_address: Registry address the images were pushed under

        Returns:
            SSHResult of the session

        Raises:
            TunnelConnectionError: If ssh could not connect or forward the port
            RemoteExecutionError: If the remote script exited non-zero
        """
        spec = self.build_spec(
            target, connection_options, local_port, images, registry_address
        )
        result = self.executor.run_tunnel(spec)

        if result.returncode == SSH_EXIT_CONNECTION_FAILURE:
            raise TunnelConnectionError(
                target.destination,
                f"Could not open tunnel to {target.destination}",
                context=result.stderr.strip() or None,
                exit_code=result.returncode,
            )
        if result.is_failure:
            failed = failed_images(result.stderr)
            context = f"Failed images: {', '.join(failed)}" if failed else result.stderr.strip() or None
            raise RemoteExecutionError(
                target.destination,
                f"Remote pull on {target.destination} exited with status {result.returncode}",
                context=context,
                exit_code=result.returncode,
            )
        return result
