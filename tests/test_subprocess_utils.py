from __future__ import annotations

import sys

import pytest

from apexdata_deploy.subprocess_utils import (
    CommandError,
    CommandNotFoundError,
    format_command,
    run_command,
)


def test_capture_mode_returns_stdout() -> None:
    result = run_command([sys.executable, "-c", "print('hello')"])

    assert result.ok
    assert result.stdout == "hello\n"


def test_input_is_piped_to_stdin() -> None:
    result = run_command(
        [sys.executable, "-c", "import sys; sys.stdout.write(sys.stdin.read().upper())"],
        input="kind: Namespace\n",
    )

    assert result.stdout == "KIND: NAMESPACE\n"


def test_env_is_merged_over_process_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APEXDATA_TEST_BASE", "base")

    result = run_command(
        [
            sys.executable,
            "-c",
            "import os; print(os.environ['APEXDATA_TEST_BASE'], os.environ['APEXDATA_TEST_EXTRA'])",
        ],
        env={"APEXDATA_TEST_EXTRA": "extra"},
    )

    assert result.stdout.split() == ["base", "extra"]


def test_failure_raises_command_error_with_stderr() -> None:
    cmd = [sys.executable, "-c", "import sys; sys.stderr.write('forbidden'); sys.exit(3)"]

    with pytest.raises(CommandError) as excinfo:
        run_command(cmd)

    assert excinfo.value.returncode == 3
    assert "exit=3" in str(excinfo.value)
    assert "forbidden" in str(excinfo.value)


def test_check_false_returns_failed_result() -> None:
    result = run_command([sys.executable, "-c", "import sys; sys.exit(1)"], check=False)

    assert result.returncode == 1
    assert not result.ok


def test_missing_executable() -> None:
    with pytest.raises(CommandNotFoundError) as excinfo:
        run_command(["apexdata-definitely-not-installed"])

    assert "apexdata-definitely-not-installed" in str(excinfo.value)


def test_timeout_raises_runtime_error() -> None:
    with pytest.raises(RuntimeError) as excinfo:
        run_command([sys.executable, "-c", "import time; time.sleep(5)"], timeout=0.2)

    assert "did not finish" in str(excinfo.value)


def test_format_command_quotes_arguments() -> None:
    assert format_command(["kubectl", "get", "pods", "-l", "app=a b"]) == "kubectl get pods -l 'app=a b'"
