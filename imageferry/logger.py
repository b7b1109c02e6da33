"""
Logging system for imageferry
Provides real-time logging to files with clean console output
"""

import re
import shlex
import subprocess
import threading
from datetime import datetime
from pathlib import Path
from typing import IO, List, Optional, Sequence, TextIO, Tuple

from rich.console import Console
from rich.live import Live
from rich.padding import Padding
from rich.spinner import Spinner
from rich.text import Text

from imageferry.constants import LOG_DATE_FORMAT, LOG_TIME_FORMAT, PROCESS_STOP_TIMEOUT
from imageferry.models.results import ExecutionResult

console = Console()
error_console = Console(stderr=True)

ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


class TransferLogger:
    """
    Manages logging for transfer operations
    - Writes all output to a log file in real-time (when a log dir is set)
    - Narrates progress per phase on stdout
    - Sends errors to stderr
    """

    def __init__(
        self,
        operation: str = "transfer",
        log_dir: Optional[Path] = None,
        verbose: bool = False,
        stdout_console: Optional[Console] = None,
        stderr_console: Optional[Console] = None,
    ):
        """
        Initialize logger

        Args:
            operation: Operation name used in the log file name
            log_dir: Root directory for log files (None disables file logging)
            verbose: If True, show all command output in console
            stdout_console: Console for progress output
            stderr_console: Console for errors
        """
        self.operation = operation
        self.verbose = verbose
        self.console = stdout_console or console
        self.error_console = stderr_console or error_console
        self.log_file: Optional[TextIO] = None
        self.log_path: Optional[Path] = None
        self.current_step = ""
        self.has_errors = False

        if log_dir is not None:
            # Structure: {log_dir}/{date}/{time}_{operation}.log
            now = datetime.now()
            day_dir = Path(log_dir) / now.strftime(LOG_DATE_FORMAT)
            day_dir.mkdir(parents=True, exist_ok=True)

            self.log_path = day_dir / f"{now.strftime(LOG_TIME_FORMAT)}_{operation}.log"
            # Line buffered for real-time tailing
            self.log_file = open(self.log_path, "w", buffering=1)
            self._write_log_header()

    def _write_log_header(self):
        """Write log file header"""
        header = f"""
{"=" * 80}
imageferry Transfer Log
{"=" * 80}
Operation: {self.operation}
Started: {datetime.now().isoformat()}
{"=" * 80}

"""
        self.log_file.write(header)
        self.log_file.flush()

    def log(self, message: str, level: str = "INFO"):
        """
        Log a message to file and optionally console

        Args:
            message: Message to log
            level: Log level (INFO, WARNING, ERROR, DEBUG)
        """
        if self.log_file:
            timestamp = datetime.now().strftime("%H:%M:%S")
            self.log_file.write(f"[{timestamp}] [{level}] {message}\n")
            self.log_file.flush()

        if self.verbose:
            if level == "ERROR":
                self.error_console.print(f"[red]{message}[/red]")
            elif level == "WARNING":
                self.console.print(f"[yellow]{message}[/yellow]")
            elif level == "DEBUG":
                self.console.print(f"[dim]{message}[/dim]")
            else:
                self.console.print(message)

    def log_command(self, command: str):
        """Log a command being executed"""
        self.log(f"Executing: {command}", "DEBUG")

    def log_output(self, output: str, stream: str = "stdout"):
        """
        Log command output

        Always written to the log file, shown in console only if verbose.

        Args:
            output: Command output (single line or multiline)
            stream: Stream name (stdout, stderr)
        """
        if not output:
            return

        if self.log_file:
            clean_output = ANSI_ESCAPE.sub("", output)
            for line in clean_output.splitlines():
                self.log_file.write(f"  [{stream}] {line}\n")
            self.log_file.flush()

        if self.verbose:
            self.console.print(output, markup=False, highlight=False)

    def log_error(self, error: str, context: Optional[str] = None):
        """
        Log an error with context

        Args:
            error: Error message
            context: Additional context (e.g., command that failed)
        """
        self.has_errors = True

        if self.log_file:
            error_block = f"""
{"!" * 80}
ERROR OCCURRED
{"!" * 80}
{error}
"""
            if context:
                error_block += f"\nContext: {context}\n"
            error_block += f"{'!' * 80}\n\n"
            self.log_file.write(error_block)
            self.log_file.flush()

        self.error_console.print(f"[bold red]✗ {error}[/bold red]")
        if context:
            self.error_console.print(f"  [color(208)]{context}[/color(208)]")

    def step(self, step_name: str):
        """
        Start a new phase

        Args:
            step_name: Name of the phase
        """
        if self.current_step and not self.verbose:
            self.console.print()

        self.current_step = step_name
        self.log(f"Step: {step_name}", "INFO")

        if not self.verbose:
            self.console.print(f"[color(214)]▶[/color(214)] [white]{step_name}[/white]")

    def success(self, message: str):
        """Log a success message"""
        self.log(message, "INFO")

        if not self.verbose:
            self.console.print(f"  [dim]✓ {message}[/dim]")

    def warning(self, message: str):
        """Log a warning message"""
        self.log(message, "WARNING")

        if not self.verbose:
            self.console.print(f"  [yellow]⚠[/yellow] [dim]{message}[/dim]")

    def close(self):
        """Close log file"""
        if self.log_file:
            footer = f"""
{"=" * 80}
Completed: {datetime.now().isoformat()}
Status: {"FAILED" if self.has_errors else "SUCCESS"}
{"=" * 80}
"""
            self.log_file.write(footer)
            self.log_file.close()
            self.log_file = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, _exc_tb):
        if exc_type is not None and exc_type is not SystemExit:
            # Errors already reported by the command are not repeated
            if not self.has_errors:
                self.log_error(
                    str(exc_val) if exc_val else "Operation failed",
                    context=exc_type.__name__,
                )
        self.close()
        return False


def drain_in_background(stream: IO[str]) -> Tuple[threading.Thread, List[str]]:
    """
    Read a pipe to EOF on a daemon thread.

    Keeps a child from blocking on a full stderr pipe while stdout is read.

    Returns:
        The reader thread and the list its output is appended to
    """
    chunks: List[str] = []
    reader = threading.Thread(target=lambda: chunks.append(stream.read()), daemon=True)
    reader.start()
    return reader, chunks


def stop_process(process: subprocess.Popen, timeout: float = PROCESS_STOP_TIMEOUT) -> None:
    """Terminate a child that is still running, killing it if it will not exit."""
    if process.poll() is not None:
        return
    process.terminate()
    try:
        process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait()


def run_with_progress(
    logger: TransferLogger, args: Sequence[str], description: str
) -> ExecutionResult:
    """
    Run a command with progress indicator

    Args:
        logger: TransferLogger instance
        args: Command and arguments
        description: Description for progress indicator

    Returns:
        ExecutionResult of the command (a missing binary yields returncode 127)
    """
    command = shlex.join(args)
    logger.log_command(command)

    if logger.verbose:
        # Verbose mode: stream output as it arrives, keep it for the result
        try:
            process = subprocess.Popen(
                list(args),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                bufsize=1,
            )
        except FileNotFoundError as e:
            logger.log_output(str(e), "stderr")
            return ExecutionResult(returncode=127, stderr=str(e), command=command)

        stderr_reader, stderr_chunks = drain_in_background(process.stderr)
        stdout_lines = []
        try:
            for line in process.stdout:
                line_stripped = line.rstrip()
                stdout_lines.append(line_stripped)
                logger.log_output(line_stripped, "stdout")
            process.wait()
        finally:
            stop_process(process)
            stderr_reader.join(PROCESS_STOP_TIMEOUT)

        stderr_content = "".join(stderr_chunks)
        if stderr_content:
            logger.log_output(stderr_content, "stderr")

        return ExecutionResult(
            returncode=process.returncode,
            stdout="\n".join(stdout_lines),
            stderr=stderr_content,
            command=command,
        )

    # Non-verbose: show spinner, capture output
    spinner = Spinner("dots", text=f"[cyan]{description}...[/cyan]")
    padded_spinner = Padding(spinner, (0, 0, 0, 2))

    with Live(padded_spinner, console=logger.console, refresh_per_second=10) as live:
        try:
            result = subprocess.run(list(args), capture_output=True, text=True)
            returncode, stdout, stderr = result.returncode, result.stdout, result.stderr
        except FileNotFoundError as e:
            returncode, stdout, stderr = 127, "", str(e)

        if stdout:
            logger.log_output(stdout, "stdout")
        if stderr:
            logger.log_output(stderr, "stderr")

        if returncode == 0:
            checkmark = Text("  ✓ ", style="dim")
            checkmark.append(description, style="dim")
            live.update(checkmark)
        else:
            x_mark = Text("  ✗ ", style="red")
            x_mark.append(description, style="dim")
            live.update(x_mark)

    return ExecutionResult(
        returncode=returncode, stdout=stdout, stderr=stderr, command=command
    )
