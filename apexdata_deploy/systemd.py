"""
systemd
-------

호스트에 apexdata-agent 바이너리를 설치하고 systemd 서비스로 등록/관리하는 모듈.
설정은 /etc/apexdata-agent/config 에, 실제 실행 인자는 유닛 파일의 ExecStart 에 인라인으로 들어간다.
"""

from __future__ import annotations

import os
import re
import shutil
import socket
from importlib import resources
from pathlib import Path
from typing import Any, Callable

import click

from . import console
from .config import AgentConfig, ServicePaths
from .logging_utils import get_logger
from .subprocess_utils import RunResult, run_command


logger = get_logger(__name__)

Prompt = Callable[..., Any]

SERVICE_CLI = "apexdata-service"
UNIT_TEMPLATE = "apexdata-agent.service"

_PLACEHOLDER_RE = re.compile(r"%(BINARY_PATH|NODE_NAME|AUTH_TOKEN|ENDPOINT)%")

# 설치 후 update 시 ExecStart 안의 값만 교체한다. 닫는 따옴표는 남긴다.
# 한 번의 sub 로 처리해야 새로 쓴 값이 다음 패턴에 다시 걸리지 않는다.
_FLAG_RE = re.compile(r"(?<=[\s\"])(--node=|authorization=Basic |--endpoint=)[^\s\"]*")
_FLAG_FIELDS = {
    "--node=": "node_name",
    "authorization=Basic ": "auth_token",
    "--endpoint=": "endpoint",
}


def check_root() -> None:
    if os.geteuid() != 0:
        raise PermissionError("This script must be run as root (use sudo)")


def _systemctl(*args: str, check: bool = True, stream_output: bool = False) -> RunResult:
    return run_command(["systemctl", *args], check=check, stream_output=stream_output)


def _escape_specifiers(value: str) -> str:
    # systemd 는 유닛 파일의 % 를 specifier 로 해석한다.
    return value.replace("%", "%%")


def load_unit_template() -> str:
    return (
        resources.files("apexdata_deploy")
        .joinpath("templates")
        .joinpath(UNIT_TEMPLATE)
        .read_text(encoding="utf-8")
    )


def render_unit(template: str, cfg: AgentConfig, binary_path: Path) -> str:
    values = {
        "BINARY_PATH": str(binary_path),
        "NODE_NAME": cfg.node_name,
        "AUTH_TOKEN": cfg.auth_token,
        "ENDPOINT": cfg.endpoint,
    }
    return _PLACEHOLDER_RE.sub(lambda m: _escape_specifiers(values[m.group(1)]), template)


def update_unit_flags(text: str, cfg: AgentConfig) -> str:
    def _replace(m: re.Match) -> str:
        flag = m.group(1)
        return flag + _escape_specifiers(getattr(cfg, _FLAG_FIELDS[flag]))

    return _FLAG_RE.sub(_replace, text)


def find_local_binary(paths: ServicePaths, source_dir: str = ".") -> Path:
    binary = Path(source_dir) / paths.service_name
    if not binary.is_file():
        raise FileNotFoundError(f"Binary './{paths.service_name}' not found in {Path(source_dir).resolve()}")
    return binary


def prompt_agent_config(prompt: Prompt = click.prompt, default_node: str | None = None) -> AgentConfig:
    node_default = default_node or socket.gethostname()

    click.echo()
    click.echo("=== Service Configuration ===")
    endpoint = prompt("Enter OpenTelemetry endpoint (e.g., domain:port)", default="", show_default=False)
    auth_token = prompt("Enter Basic Auth token (base64 encoded)", default="", show_default=False)
    node_name = prompt("Enter node name", default=node_default)

    cfg = AgentConfig(
        endpoint=endpoint.strip(),
        auth_token=auth_token.strip(),
        node_name=node_name.strip() or node_default,
    )
    cfg.validate()
    return cfg


def install_service(paths: ServicePaths, source_dir: str = ".", prompt: Prompt = click.prompt) -> AgentConfig:
    """
    로컬 바이너리를 설치하고 설정/유닛 파일을 만든 뒤 서비스를 enable 한다.
    시작은 하지 않는다.
    """
    console.info("Installing ApexData Agent Service...")

    binary = find_local_binary(paths, source_dir)
    cfg = prompt_agent_config(prompt)

    cfg.save(paths.config_file)
    console.success(f"Configuration saved to {paths.config_file}")

    paths.binary_path.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(binary, paths.binary_path)
    paths.binary_path.chmod(paths.binary_path.stat().st_mode | 0o111)
    console.success(f"Binary installed to {paths.binary_path}")

    paths.service_file.parent.mkdir(parents=True, exist_ok=True)
    paths.service_file.write_text(
        render_unit(load_unit_template(), cfg, paths.binary_path),
        encoding="utf-8",
    )
    console.success(f"Service file created at {paths.service_file}")

    _systemctl("daemon-reload")
    _systemctl("enable", paths.service_name)

    console.success("Service installed and enabled")
    console.info(f"Use 'sudo {SERVICE_CLI} start' to start the service")
    return cfg


def uninstall_service(paths: ServicePaths) -> None:
    console.info("Uninstalling ApexData Agent Service...")

    name = paths.service_name
    if _systemctl("is-active", "--quiet", name, check=False).ok:
        _systemctl("stop", name)
        console.success("Service stopped")

    if _systemctl("is-enabled", "--quiet", name, check=False).ok:
        _systemctl("disable", name)
        console.success("Service disabled")

    for path, label in (
        (paths.service_file, "Service file"),
        (paths.binary_path, "Binary"),
        (paths.config_file, "Configuration"),
    ):
        if path.is_file():
            path.unlink()
            console.success(f"{label} removed")

    if paths.config_dir.is_dir():
        try:
            paths.config_dir.rmdir()
            console.success("Config directory removed")
        except OSError:
            logger.info("설정 디렉토리가 비어 있지 않아 남겨둡니다: %s", paths.config_dir)

    _systemctl("daemon-reload")
    console.success("Service uninstalled completely")


def start_service(paths: ServicePaths) -> None:
    console.info("Starting ApexData Agent Service...")
    _systemctl("start", paths.service_name)
    console.success("Service started")
    show_status(paths)


def stop_service(paths: ServicePaths) -> None:
    console.info("Stopping ApexData Agent Service...")
    _systemctl("stop", paths.service_name)
    console.success("Service stopped")


def restart_service(paths: ServicePaths) -> None:
    console.info("Restarting ApexData Agent Service...")
    _systemctl("restart", paths.service_name)
    console.success("Service restarted")
    show_status(paths)


def show_status(paths: ServicePaths) -> None:
    click.echo()
    click.echo("=== Service Status ===")
    # 비활성 서비스는 exit 3 을 돌려주므로 실패로 보지 않는다.
    _systemctl("status", paths.service_name, "--no-pager", "-l", check=False, stream_output=True)


def show_logs(paths: ServicePaths, lines: int = 50, follow: bool = False) -> None:
    click.echo()
    click.echo(f"=== Service Logs (last {lines} lines) ===")
    cmd = ["journalctl", "-u", paths.service_name, "-n", str(lines), "--no-pager"]
    if follow:
        cmd.append("-f")
    run_command(cmd, stream_output=True, timeout=None if follow else 300.0)


def show_config(paths: ServicePaths) -> None:
    if not paths.config_file.is_file():
        console.warn("Configuration file not found")
        return
    click.echo()
    click.echo("=== Current Configuration ===")
    click.echo(paths.config_file.read_text(encoding="utf-8").rstrip())


def update_config(paths: ServicePaths, prompt: Prompt = click.prompt) -> AgentConfig:
    """
    저장된 설정을 기본값으로 새 값을 입력받아 설정 파일과 유닛 파일의 인라인 플래그를 갱신한다.
    재시작은 사용자가 직접 한다.
    """
    console.info("Updating service configuration...")

    if not paths.config_file.is_file():
        raise RuntimeError("Service not installed. Run 'install' first.")

    current = AgentConfig.load(paths.config_file)

    click.echo()
    click.echo("=== Update Configuration ===")
    click.echo(f"Current endpoint: {current.endpoint}")
    endpoint = prompt("Enter new endpoint [keep current]", default=current.endpoint, show_default=False)

    click.echo(f"Current node name: {current.node_name}")
    node_name = prompt("Enter new node name [keep current]", default=current.node_name, show_default=False)

    click.echo("Auth token: [hidden]")
    auth_token = prompt("Enter new auth token [keep current]", default=current.auth_token, show_default=False)

    updated = AgentConfig(
        endpoint=endpoint.strip() or current.endpoint,
        auth_token=auth_token.strip() or current.auth_token,
        node_name=node_name.strip() or current.node_name,
    )
    updated.validate()
    updated.save(paths.config_file)

    if paths.service_file.is_file():
        text = paths.service_file.read_text(encoding="utf-8")
        paths.service_file.write_text(update_unit_flags(text, updated), encoding="utf-8")
    else:
        console.warn(f"Service file {paths.service_file} not found, only the configuration file was updated")

    _systemctl("daemon-reload")

    console.success("Configuration updated")
    console.info(f"Restart the service to apply changes: sudo {SERVICE_CLI} restart")
    return updated
