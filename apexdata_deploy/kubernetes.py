"""
kubernetes
----------

kubectl + envsubst 로 universal-deployment.yml 을 클러스터에 적용/삭제하고
배포 상태를 보여주는 모듈.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple

import click

from . import console
from .config import (
    EXAMPLE_CLUSTER_NAME,
    EXAMPLE_OTEL_ENDPOINT,
    LOG_DEPLOYMENTS,
    NAMESPACE,
    K8sDeployConfig,
    encode_credentials,
)
from .logging_utils import get_logger
from .subprocess_utils import CommandError, CommandNotFoundError, run_command, which


logger = get_logger(__name__)

Prompt = Callable[..., Any]


def check_dependencies() -> None:
    """
    kubectl / envsubst 설치 여부와 클러스터 접속 가능 여부를 확인한다.
    하나라도 실패하면 RuntimeError.
    """
    console.info("Checking dependencies...")

    if which("kubectl") is None:
        raise RuntimeError("kubectl not found. Please install kubectl.")
    if which("envsubst") is None:
        raise RuntimeError("envsubst not found. Please install gettext.")

    if not run_command(["kubectl", "cluster-info"], check=False).ok:
        raise RuntimeError("Unable to connect to Kubernetes cluster.")

    console.success("All dependencies are OK")


def interactive_setup(prompt: Prompt = click.prompt) -> K8sDeployConfig:
    console.info("Interactive parameter setup...")
    click.echo()
    console.heading("Enter deployment parameters:")
    click.echo()

    endpoint = prompt(
        f"OpenTelemetry endpoint (without port, example: {EXAMPLE_OTEL_ENDPOINT})",
        default="",
        show_default=False,
    ).strip()
    if not endpoint:
        raise ValueError("OTEL endpoint cannot be empty")

    username = prompt("Username", default="", show_default=False).strip()
    password = prompt("Password", default="", show_default=False, hide_input=True)
    if not username or not password:
        raise ValueError("Username and password cannot be empty")

    cluster_name = prompt(
        f"Cluster name (example: {EXAMPLE_CLUSTER_NAME})",
        default="",
        show_default=False,
    ).strip()
    if not cluster_name:
        raise ValueError("Cluster name cannot be empty")

    cfg = K8sDeployConfig(
        otel_endpoint=endpoint,
        credentials=encode_credentials(username, password),
        cluster_name=cluster_name,
    )
    console.success("Parameters configured")
    return cfg


def _require_manifest(manifest: Path) -> None:
    if not manifest.is_file():
        raise FileNotFoundError(f"File {manifest.name} not found in {manifest.parent.resolve()}")


def render_manifest(manifest: Path, cfg: Optional[K8sDeployConfig] = None) -> str:
    """
    envsubst 로 매니페스트의 ${APEXDATA_*} 를 치환한 결과를 반환한다.
    cfg 가 없으면 현재 프로세스 환경변수만 사용한다.
    """
    _require_manifest(manifest)
    text = manifest.read_text(encoding="utf-8")
    env = cfg.to_env() if cfg is not None else None
    return run_command(["envsubst"], input=text, env=env).stdout


def _echo_output(text: str) -> None:
    if text.strip():
        click.echo(text.rstrip())


def deploy(cfg: K8sDeployConfig, manifest: Path) -> None:
    console.info("Deploying ApexData Agent...")
    _require_manifest(manifest)

    try:
        rendered = render_manifest(manifest, cfg)
        result = run_command(["kubectl", "apply", "-f", "-"], input=rendered)
    except CommandError as e:
        logger.debug("kubectl apply 실패", exc_info=True)
        raise RuntimeError(f"Deployment failed\n{e}") from e

    _echo_output(result.stdout)
    console.success("Deployment completed successfully")

    click.echo()
    console.info("Checking pod status...")
    pods = run_command(["kubectl", "get", "pods", "-n", NAMESPACE], check=False)
    _echo_output(pods.stdout if pods.ok else pods.stderr)

    click.echo()
    console.info("To check logs use:")
    for name in LOG_DEPLOYMENTS:
        click.echo(f"  kubectl logs -n {NAMESPACE} deployment/{name}")


STATUS_SECTIONS: List[Tuple[str, List[str], str]] = [
    (
        "Namespace:",
        ["kubectl", "get", "namespace", NAMESPACE],
        f"Namespace '{NAMESPACE}' not found",
    ),
    (
        "Pods:",
        ["kubectl", "get", "pods", "-n", NAMESPACE],
        f"Pods not found in namespace '{NAMESPACE}'",
    ),
    (
        "Services:",
        ["kubectl", "get", "services", "-n", NAMESPACE],
        f"Services not found in namespace '{NAMESPACE}'",
    ),
]


def status() -> None:
    """
    네임스페이스/파드/서비스 상태를 출력한다. 조회 실패는 안내 문구로 대체하고 실패로 보지 않는다.
    """
    console.info("ApexData Agent deployment status:")

    for title, cmd, fallback in STATUS_SECTIONS:
        click.echo()
        console.heading(title)
        try:
            result = run_command(cmd, check=False)
        except CommandNotFoundError:
            result = None
        if result is not None and result.ok:
            _echo_output(result.stdout)
        else:
            click.echo(fallback)


def uninstall(manifest: Path, cfg: Optional[K8sDeployConfig] = None) -> None:
    """
    매니페스트가 있으면 그 리소스들을, 없으면 네임스페이스를 통째로 삭제한다.
    삭제 실패는 경고만 남기고 계속 진행한다.
    """
    try:
        if manifest.is_file():
            rendered = render_manifest(manifest, cfg)
            result = run_command(["kubectl", "delete", "-f", "-"], input=rendered)
        else:
            logger.info("매니페스트가 없어 네임스페이스를 삭제합니다: %s", NAMESPACE)
            result = run_command(["kubectl", "delete", "namespace", NAMESPACE])
        _echo_output(result.stdout)
    except (CommandError, CommandNotFoundError) as e:
        logger.warning("삭제 중 오류를 무시합니다: %s", e)
        console.warn(str(e))

    console.success("ApexData Agent removed")
