import io

import pytest
from rich.console import Console

from imageferry.logger import TransferLogger, run_with_progress


def make_logger(tmp_path, verbose=False):
    return TransferLogger(
        log_dir=tmp_path,
        verbose=verbose,
        stdout_console=Console(file=io.StringIO(), width=120),
        stderr_console=Console(file=io.StringIO(), width=120),
    )


def test_log_file_has_header_output_and_footer(tmp_path):
    logger = make_logger(tmp_path)
    logger.step("Pushing 1 image(s)")
    logger.log_output("\x1b[32mlayer pushed\x1b[0m\ndigest: sha256:abc", "stdout")
    logger.close()

    text = logger.log_path.read_text()
    assert logger.log_path.name.endswith("_transfer.log")
    assert "imageferry Transfer Log" in text
    assert "Step: Pushing 1 image(s)" in text
    assert "  [stdout] layer pushed" in text
    assert "\x1b[" not in text
    assert "Status: SUCCESS" in text


def test_errors_go_to_stderr_and_mark_failure(tmp_path):
    logger = make_logger(tmp_path)
    logger.log_error("Could not push localhost:5000/a:1", context="denied")
    logger.close()

    assert "Could not push" in logger.error_console.file.getvalue()
    assert "Could not push" not in logger.console.file.getvalue()
    assert "Status: FAILED" in logger.log_path.read_text()


def test_context_manager_records_unhandled_exception(tmp_path):
    with pytest.raises(RuntimeError):
        with make_logger(tmp_path) as logger:
            raise RuntimeError("daemon not running")

    assert logger.log_file is None
    text = logger.log_path.read_text()
    assert "daemon not running" in text
    assert "Context: RuntimeError" in text


def test_no_log_dir_means_console_only():
    logger = TransferLogger(
        log_dir=None,
        stdout_console=Console(file=io.StringIO()),
        stderr_console=Console(file=io.StringIO()),
    )
    logger.success("Registry ready")
    logger.close()

    assert logger.log_path is None
    assert "Registry ready" in logger.console.file.getvalue()


@pytest.mark.parametrize("verbose", [False, True])
def test_run_with_progress_captures_output(tmp_path, verbose):
    logger = make_logger(tmp_path, verbose=verbose)

    result = run_with_progress(logger, ["sh", "-c", "echo out; echo err >&2; exit 4"], "Running")
    logger.close()

    assert result.returncode == 4
    assert result.stdout.strip() == "out"
    assert result.stderr.strip() == "err"
    assert result.command.startswith("sh -c")
    assert "[stderr] err" in logger.log_path.read_text()


def test_run_with_progress_missing_binary(tmp_path):
    logger = make_logger(tmp_path)

    result = run_with_progress(logger, ["/nonexistent/docker", "ps"], "Listing")

    assert result.returncode == 127


def test_verbose_run_survives_large_stderr(tmp_path):
    logger = make_logger(tmp_path, verbose=True)
    script = "head -c 200000 /dev/zero | tr '\\0' x >&2; echo done"

    result = run_with_progress(logger, ["sh", "-c", script], "Noisy")
    logger.close()

    assert result.returncode == 0
    assert result.stdout == "done"
    assert len(result.stderr) == 200000
