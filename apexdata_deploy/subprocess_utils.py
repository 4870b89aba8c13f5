from __future__ import annotations

import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from textwrap import shorten
from typing import Mapping, Optional, Sequence

from .logging_utils import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class RunResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandError(RuntimeError):
    """외부 명령이 0 이 아닌 코드로 종료된 경우."""

    def __init__(self, cmd: Sequence[str], returncode: int, output: str = "") -> None:
        self.cmd = list(cmd)
        self.returncode = returncode
        self.output = output
        detail = ""
        if output.strip():
            detail = "\n" + shorten(output.strip(), width=2000)
        super().__init__(f"Command failed: {format_command(cmd)} (exit={returncode}){detail}")


class CommandNotFoundError(RuntimeError):
    """실행 파일이 PATH 에 없는 경우."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Required command not found: {name}")


def format_command(cmd: Sequence[str]) -> str:
    return " ".join(shlex.quote(c) for c in cmd)


def which(name: str) -> Optional[str]:
    return shutil.which(name)


def run_command(
    cmd: Sequence[str],
    *,
    input: Optional[str] = None,  # noqa: A002
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    timeout: float | None = 300.0,
    stream_output: bool = False,
    check: bool = True,
) -> RunResult:
    """
    subprocess 실행 공통 유틸.

    - stream_output=False: stdout/stderr 를 캡처한다. 실패 시 stderr(없으면 stdout) 요약을 예외에 포함.
    - stream_output=True : 터미널에 그대로 출력한다 (systemctl status, journalctl 등).
    - env 는 현재 프로세스 환경 위에 덮어쓴다.
    - check=False 이면 실패해도 예외 없이 RunResult 를 돌려준다.
    """
    logger.debug("명령 실행: %s", format_command(cmd))

    full_env = None
    if env is not None:
        full_env = {**os.environ, **env}

    try:
        proc = subprocess.run(  # noqa: S603
            list(cmd),
            input=input,
            text=True,
            capture_output=not stream_output,
            cwd=cwd,
            env=full_env,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise CommandNotFoundError(cmd[0]) from e
    except subprocess.TimeoutExpired as e:
        raise RuntimeError(
            f"Command did not finish within {timeout}s: {format_command(cmd)}"
        ) from e

    result = RunResult(
        returncode=proc.returncode,
        stdout=proc.stdout or "",
        stderr=proc.stderr or "",
    )
    if result.stdout:
        logger.debug("명령 stdout: %s", shorten(result.stdout.strip(), width=2000))
    if result.stderr:
        logger.debug("명령 stderr: %s", shorten(result.stderr.strip(), width=2000))

    if check and not result.ok:
        raise CommandError(cmd, result.returncode, result.stderr or result.stdout)
    return result
