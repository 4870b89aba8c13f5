"""
pytest 설정:

로컬 작업 환경에 설치된 다른 버전의 apexdata_deploy 패키지가 존재할 때,
`pytest` 실행 시 site-packages 쪽이 먼저 import 되어 테스트가 깨질 수 있다.

테스트는 항상 현재 레포의 소스를 대상으로 해야 하므로, repo root 를 sys.path 최상단에 고정한다.

외부 명령(kubectl/envsubst/systemctl/journalctl)은 실제로 실행하지 않고
FakeRunner 로 호출 내역만 기록한다.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest


def pytest_configure() -> None:
    repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


@dataclass
class Call:
    cmd: List[str]
    kwargs: Dict[str, Any] = field(default_factory=dict)

    @property
    def input(self) -> Optional[str]:
        return self.kwargs.get("input")


class FakeRunner:
    """run_command 대체. 명령 prefix 별로 결과를 지정할 수 있다."""

    def __init__(self) -> None:
        self.calls: List[Call] = []
        self._results: List[Tuple[Tuple[str, ...], Any]] = []

    def set_result(self, *prefix: str, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        from apexdata_deploy.subprocess_utils import RunResult

        self._results.insert(0, (prefix, RunResult(returncode=returncode, stdout=stdout, stderr=stderr)))

    def __call__(self, cmd, **kwargs):  # noqa: ANN001, ANN204
        from apexdata_deploy.subprocess_utils import CommandError, RunResult

        cmd = list(cmd)
        self.calls.append(Call(cmd=cmd, kwargs=kwargs))

        result = RunResult(returncode=0, stdout="", stderr="")
        for prefix, candidate in self._results:
            if tuple(cmd[: len(prefix)]) == prefix:
                result = candidate
                break

        if kwargs.get("check", True) and not result.ok:
            raise CommandError(cmd, result.returncode, result.stderr or result.stdout)
        return result

    @property
    def commands(self) -> List[List[str]]:
        return [c.cmd for c in self.calls]

    def find(self, *prefix: str) -> Call:
        for c in self.calls:
            if tuple(c.cmd[: len(prefix)]) == prefix:
                return c
        raise AssertionError(f"command not called: {prefix}; calls={self.commands}")


@pytest.fixture
def fake_runner(monkeypatch: pytest.MonkeyPatch) -> FakeRunner:
    from apexdata_deploy import kubernetes, systemd

    runner = FakeRunner()
    monkeypatch.setattr(kubernetes, "run_command", runner)
    monkeypatch.setattr(systemd, "run_command", runner)
    return runner


@pytest.fixture
def service_paths(tmp_path):  # noqa: ANN001, ANN201
    from apexdata_deploy.config import ServicePaths

    return ServicePaths.under(tmp_path / "root")


def _make_prompt(*answers: str) -> Callable[..., str]:
    """
    click.prompt 흉내. 빈 문자열 응답은 default 로 대체한다.
    """
    queue = list(answers)

    def _prompt(text: str, **kwargs: Any) -> str:  # noqa: ARG001
        value = queue.pop(0)
        if value == "":
            return kwargs.get("default", "")
        return value

    return _prompt


@pytest.fixture
def make_prompt() -> Callable[..., Callable[..., str]]:
    return _make_prompt
