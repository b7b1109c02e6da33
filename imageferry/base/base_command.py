"""
Base Command Class

Abstract base for imageferry CLI commands.
Provides common functionality and structure.
"""

from abc import ABC, abstractmethod
from typing import Optional

from rich.console import Console

from imageferry.config import Settings
from imageferry.constants import EXIT_INTERRUPTED
from imageferry.exceptions import ImageFerryError
from imageferry.logger import TransferLogger
from imageferry.ui_components import show_header


class BaseCommand(ABC):
    """
    Abstract base command class.

    Provides:
    - Logger initialization
    - Header display
    - Error handling with exit codes
    """

    name = "command"

    def __init__(self, settings: Settings, console: Optional[Console] = None):
        self.settings = settings
        self.verbose = settings.verbose
        self.console = console or Console()
        self.error_console = Console(stderr=True)
        self.logger: Optional[TransferLogger] = None

    def init_logger(self, command_name: str) -> TransferLogger:
        """
        Initialize command logger.

        Args:
            command_name: Command name, used in the log file name

        Returns:
            TransferLogger instance
        """
        self.logger = TransferLogger(
            command_name,
            log_dir=self.settings.log_dir,
            verbose=self.verbose,
            stdout_console=self.console,
            stderr_console=self.error_console,
        )
        return self.logger

    def show_header(
        self, title: str, subtitle: Optional[str] = None, details: Optional[dict] = None
    ) -> None:
        """Show command header (skip in verbose mode)."""
        if not self.verbose:
            show_header(
                title=title, subtitle=subtitle, details=details, console=self.console
            )

    def print_success(self, message: str) -> None:
        self.console.print(f"[green]✓ {message}[/green]")

    def handle_error(self, error: Exception) -> None:
        """Report an error through the logger (file and stderr)."""
        if isinstance(error, ImageFerryError):
            self.logger.log_error(error.message, context=error.context)
        else:
            self.logger.log_error(f"{type(error).__name__}: {error}")

    def _show_log_path(self) -> None:
        if self.logger.log_path:
            self.error_console.print(f"[dim]Logs saved to:[/dim] {self.logger.log_path}")

    @abstractmethod
    def execute(self, **kwargs) -> None:
        """
        Execute command logic.

        Must be implemented by subclasses.
        """
        pass

    def run(self, **kwargs) -> None:
        """
        Run command with error handling.

        The logger is open for the whole run and closed on every exit path.

        Raises:
            SystemExit: With the exit code matching the failure
        """
        with self.init_logger(self.name):
            try:
                self.execute(**kwargs)
            except KeyboardInterrupt:
                self.error_console.print("\n[yellow]⚠️  Operation cancelled by user[/yellow]")
                self.logger.has_errors = True
                self._show_log_path()
                raise SystemExit(EXIT_INTERRUPTED)
            except ImageFerryError as e:
                self.handle_error(e)
                self._show_log_path()
                raise SystemExit(e.exit_code)
            except Exception as e:
                self.handle_error(e)
                self._show_log_path()
                raise SystemExit(1)
