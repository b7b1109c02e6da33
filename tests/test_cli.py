import pytest

from conftest import CONTAINER_ID, FakeExecutor
from imageferry.commands import transfer as transfer_module
from imageferry.main import main
from imageferry.models.results import ExecutionResult


@pytest.fixture
def isolated_env(tmp_path, monkeypatch):
    """No .env pickup, logs under tmp_path."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("IMAGEFERRY_LOG_DIR", str(tmp_path / "logs"))
    for key in ("IMAGEFERRY_REGISTRY_PORT", "IMAGEFERRY_REGISTRY_IMAGE"):
        monkeypatch.delenv(key, raising=False)
    return tmp_path


@pytest.fixture
def wired(isolated_env, runtime, registry_up, monkeypatch):
    """Replace docker and ssh with fakes; returns (runtime, executor)."""
    executor = FakeExecutor()
    monkeypatch.setattr(transfer_module, "DockerRuntime", lambda logger, docker_bin: runtime)
    monkeypatch.setattr(transfer_module, "SSHService", lambda logger, ssh_bin: executor)
    return runtime, executor


def exit_code(argv):
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    return excinfo.value.code


def test_successful_transfer_exits_zero(wired, isolated_env):
    runtime, executor = wired

    assert main(["alice@build01", "myapp:latest"]) == 0

    assert ("push", "localhost:5000/myapp:latest") in runtime.calls
    assert runtime.calls[-1] == ("rm", CONTAINER_ID)
    assert executor.specs[0].remote_host.destination == "alice@build01"
    [log_path] = (isolated_env / "logs").rglob("*_transfer.log")
    assert "Status: SUCCESS" in log_path.read_text()


def test_zero_images_is_usage_error_without_registry(wired, capsys):
    runtime, _ = wired

    assert exit_code(["alice@build01"]) == 1

    assert runtime.calls == []
    assert "Usage:" in capsys.readouterr().err


def test_no_arguments_is_usage_error(wired, capsys):
    assert exit_code([]) == 1
    assert "Usage:" in capsys.readouterr().err


def test_unknown_flag_exits_125(wired, capsys):
    runtime, _ = wired

    assert exit_code(["--bogus", "build01", "myapp"]) == 125

    assert runtime.calls == []
    assert "Usage:" in capsys.readouterr().err


def test_flag_missing_value_exits_125(wired):
    assert exit_code(["build01", "myapp", "--ssh_opts"]) == 125


def test_invalid_image_reference_exits_1(wired):
    runtime, _ = wired

    assert exit_code(["build01", "my app"]) == 1
    assert runtime.calls == []


def test_target_that_looks_like_an_ssh_option_exits_1(wired):
    runtime, executor = wired

    assert exit_code(["--", "-oProxyCommand=sh", "myapp"]) == 1
    assert runtime.calls == []
    assert executor.specs == []


@pytest.mark.parametrize(
    "argv",
    [
        ["--ssh_opts=-i ~/.ssh/deploy", "build01", "myapp"],
        ["--ssh_opts", "-i ~/.ssh/deploy", "build01", "myapp"],
        ["-s", "-i ~/.ssh/deploy", "build01", "myapp"],
    ],
)
def test_ssh_opts_forms_are_passed_through(wired, argv):
    _, executor = wired

    assert main(argv) == 0

    assert executor.specs[0].connection_options == "-i ~/.ssh/deploy"


def test_port_flag_and_env_select_registry_port(wired, monkeypatch):
    runtime, executor = wired
    monkeypatch.setenv("IMAGEFERRY_REGISTRY_PORT", "6000")

    assert main(["--port", "7000", "build01", "myapp"]) == 0

    assert runtime.calls[0] == ("run", "registry:2", "127.0.0.1:7000:5000")
    assert executor.specs[0].forward == "7000:localhost:7000"


def test_launch_failure_propagates_runtime_status(wired, capsys):
    runtime, executor = wired
    runtime.run_result = ExecutionResult(returncode=3, stderr="port is already allocated")

    assert exit_code(["build01", "myapp"]) == 3

    assert executor.specs == []
    assert runtime.operations("rm") == []
    err = capsys.readouterr().err
    assert "Could not start registry" in err
    assert "Usage:" not in err


def test_remote_failure_exits_nonzero_after_cleanup(wired, isolated_env):
    runtime, executor = wired
    executor.returncode = 1
    executor.stderr = "imageferry: failed to transfer myapp\n"

    assert exit_code(["build01", "myapp", "other"]) == 1

    assert runtime.calls[-1] == ("rm", CONTAINER_ID)
    [log_path] = (isolated_env / "logs").rglob("*_transfer.log")
    log_text = log_path.read_text()
    assert "Failed images: myapp" in log_text
    assert "Status: FAILED" in log_text


def test_invalid_config_exits_1(wired, monkeypatch):
    monkeypatch.setenv("IMAGEFERRY_REGISTRY_PORT", "nope")
    runtime, _ = wired

    assert exit_code(["build01", "myapp"]) == 1
    assert runtime.calls == []


def test_help_exits_zero(isolated_env, capsys):
    assert main(["--help"]) == 0
    assert "ssh_opts" in capsys.readouterr().out
