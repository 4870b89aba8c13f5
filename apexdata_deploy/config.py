from __future__ import annotations

import base64
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from dotenv import dotenv_values, load_dotenv


ENV_FILES_DEFAULT_ORDER = [".env"]

# Kubernetes 배포 관련 상수
NAMESPACE = "apexdata-ai"
DEFAULT_MANIFEST = "universal-deployment.yml"
LOG_DEPLOYMENTS = ("otel-collector", "apexdata-agent")

ENV_OTEL_ENDPOINT = "APEXDATA_OTEL_ENDPOINT"
ENV_CREDENTIALS = "APEXDATA_BASE64_CREDENTIALS"
ENV_CLUSTER_NAME = "APEXDATA_CLUSTER_NAME"

EXAMPLE_OTEL_ENDPOINT = "ec88v4-otel.app.apexdata.ai"
EXAMPLE_CLUSTER_NAME = "production-cluster"

# 호스트 서비스 관련 상수
SERVICE_NAME = "apexdata-agent"


def load_env_files(base_dir: str = ".",
                   files: Optional[List[str]] = None) -> List[str]:
    """
    주어진 디렉토리에서 .env 계열 파일을 순서대로 로드한다.
    후순위 파일이 같은 키를 덮어쓴다. 실제로 로드된 파일 경로 목록을 반환.
    """
    loaded: List[str] = []
    for name in files or ENV_FILES_DEFAULT_ORDER:
        path = os.path.join(base_dir, name)
        if os.path.exists(path):
            load_dotenv(path, override=True)
            loaded.append(path)
    return loaded


def encode_credentials(username: str, password: str) -> str:
    # `echo -n user:pass | base64` 와 같지만 76자 줄바꿈은 하지 않는다.
    return base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")


class MissingEnvironmentError(ValueError):
    def __init__(self, missing: List[str]) -> None:
        self.missing = missing
        super().__init__("Missing environment variables: " + " ".join(missing))


@dataclass
class K8sDeployConfig:
    otel_endpoint: str
    credentials: str
    cluster_name: str

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "K8sDeployConfig":
        env = os.environ if environ is None else environ
        missing: List[str] = []

        def req(name: str) -> str:
            val = env.get(name)
            if not val:
                missing.append(name)
            return val or ""

        cfg = cls(
            otel_endpoint=req(ENV_OTEL_ENDPOINT),
            credentials=req(ENV_CREDENTIALS),
            cluster_name=req(ENV_CLUSTER_NAME),
        )
        if missing:
            raise MissingEnvironmentError(missing)
        return cfg

    def to_env(self) -> Dict[str, str]:
        return {
            ENV_OTEL_ENDPOINT: self.otel_endpoint,
            ENV_CREDENTIALS: self.credentials,
            ENV_CLUSTER_NAME: self.cluster_name,
        }


_SHELL_SPECIAL = "$`\\"


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


@dataclass
class AgentConfig:
    """
    호스트 서비스 설정. `source` 가능한 KEY="value" 형식으로 저장된다.
    """

    endpoint: str
    auth_token: str
    node_name: str

    def validate(self) -> None:
        if not self.endpoint:
            raise ValueError("Endpoint cannot be empty")
        if not self.auth_token:
            raise ValueError("Auth token cannot be empty")
        # 값은 유닛 파일 ExecStart 에 인라인 플래그로 들어간다.
        for label, value in (
            ("Endpoint", self.endpoint),
            ("Auth token", self.auth_token),
            ("Node name", self.node_name),
        ):
            if any(ch.isspace() or ch in "\"'" for ch in value):
                raise ValueError(f"{label} must not contain whitespace or quotes")
            # 설정 파일은 `source` 되고 ExecStart 는 $VAR 와 \ 이스케이프를 해석한다.
            if any(ch in _SHELL_SPECIAL for ch in value):
                raise ValueError(f"{label} must not contain '$', '`' or '\\'")

    @classmethod
    def load(cls, path: Path) -> "AgentConfig":
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        values = dotenv_values(dotenv_path=path, interpolate=False)
        return cls(
            endpoint=values.get("ENDPOINT") or "",
            auth_token=values.get("AUTH_TOKEN") or "",
            node_name=values.get("NODE_NAME") or "",
        )

    def render(self) -> str:
        return (
            f"ENDPOINT={_quote(self.endpoint)}\n"
            f"AUTH_TOKEN={_quote(self.auth_token)}\n"
            f"NODE_NAME={_quote(self.node_name)}\n"
        )

    def save(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render(), encoding="utf-8")
        # 인증 토큰이 들어 있으므로 root 만 읽을 수 있게 한다.
        path.chmod(0o600)


@dataclass(frozen=True)
class ServicePaths:
    service_name: str = SERVICE_NAME
    service_file: Path = Path(f"/etc/systemd/system/{SERVICE_NAME}.service")
    binary_path: Path = Path(f"/usr/local/bin/{SERVICE_NAME}")
    config_file: Path = Path(f"/etc/{SERVICE_NAME}/config")

    @property
    def config_dir(self) -> Path:
        return self.config_file.parent

    @classmethod
    def under(cls, root: Path) -> "ServicePaths":
        """기본 경로들을 root 아래로 옮긴 인스턴스 (테스트/스테이징 용)."""
        default = cls()
        root = Path(root)

        def rebase(p: Path) -> Path:
            return root / p.relative_to(p.anchor)

        return cls(
            service_name=default.service_name,
            service_file=rebase(default.service_file),
            binary_path=rebase(default.binary_path),
            config_file=rebase(default.config_file),
        )
