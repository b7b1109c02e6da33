"""imageferry - Transfer command"""

from typing import Optional, Sequence

import rich_click as click

from imageferry import __version__
from imageferry.base import BaseCommand
from imageferry.config import Settings, load_settings
from imageferry.exceptions import ArgumentError
from imageferry.models.transfer import TransferRequest
from imageferry.services.cleanup_guard import CleanupGuard
from imageferry.services.image_runtime import DockerRuntime, ImageRuntime
from imageferry.services.registry_service import RegistryManager
from imageferry.services.ssh_service import RemoteExecutor, SSHService, TunnelCoordinator
from imageferry.services.transfer_service import TransferOrchestrator
from imageferry.ui_components import transfer_summary_table


class TransferCommand(BaseCommand):
    """Copy local images to a remote host through an ephemeral registry."""

    name = "transfer"

    def __init__(
        self,
        request: TransferRequest,
        settings: Settings,
        runtime: Optional[ImageRuntime] = None,
        executor: Optional[RemoteExecutor] = None,
    ):
        super().__init__(settings)
        self.request = request
        self.runtime = runtime
        self.executor = executor

    def build_orchestrator(self) -> TransferOrchestrator:
        """Wire runtime, registry manager, and tunnel for this run."""
        runtime = self.runtime or DockerRuntime(self.logger, self.settings.docker_bin)
        executor = self.executor or SSHService(self.logger, self.settings.ssh_bin)
        manager = RegistryManager(
            runtime,
            self.logger,
            image=self.settings.registry_image,
            host=self.settings.registry_host,
            port=self.settings.registry_port,
        )
        tunnel = TunnelCoordinator(executor, self.logger, self.settings.docker_bin)
        return TransferOrchestrator(
            runtime, manager, tunnel, self.logger, self.settings.readiness_policy
        )

    def execute(self) -> None:
        """Execute transfer command."""
        self.logger.log(f"Request: {self.request}")

        self.show_header(
            title="Transfer Images",
            details={
                "Target": self.request.target.destination,
                "Images": ", ".join(str(image) for image in self.request.images),
            },
        )

        orchestrator = self.build_orchestrator()
        result = orchestrator.transfer(
            self.request, CleanupGuard(orchestrator.registry_manager)
        )

        if not self.verbose:
            self.console.print()
            self.console.print(
                transfer_summary_table(
                    [str(image) for image in result.pushed],
                    result.registry.address,
                    self.request.target.destination,
                )
            )
        self.print_success(
            f"Transferred {len(result.pushed)} image(s) to {self.request.target.destination}"
        )


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("target", metavar="[USER@]HOST")
@click.argument("images", nargs=-1, metavar="NAME[:TAG]...")
@click.option(
    "--ssh_opts",
    "-s",
    "ssh_opts",
    default="",
    metavar="OPTS",
    help="Options passed to ssh as-is (e.g. \"-i ~/.ssh/id_ed25519 -C\")",
)
@click.option(
    "--port",
    "-p",
    type=click.IntRange(0, 65535),
    default=None,
    help="Registry port, local and remote (0 picks a free port) [default: 5000]",
)
@click.option("--registry-image", default=None, help="Registry image [default: registry:2]")
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
@click.version_option(version=__version__, prog_name="imageferry")
@click.pass_context
def transfer(
    ctx: click.Context,
    target: str,
    images: Sequence[str],
    ssh_opts: str,
    port: Optional[int],
    registry_image: Optional[str],
    verbose: bool,
):
    """
    Copy local Docker images to a remote host over SSH, without a shared registry

    \b
    Examples:
      imageferry alice@build01 myapp:latest
      imageferry -s "-i ~/.ssh/deploy" build01 api:1.2 worker:1.2
      imageferry --ssh_opts=-C --port 0 deploy@10.0.0.5 myapp
    """
    try:
        request = TransferRequest.parse(target, images, ssh_opts)
    except ArgumentError as e:
        raise click.UsageError(e.format_message(), ctx=ctx) from e

    settings = load_settings().with_overrides(
        registry_port=port,
        registry_image=registry_image,
        verbose=verbose or None,
    )
    TransferCommand(request, settings).run()
