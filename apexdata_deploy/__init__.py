"""
apexdata_deploy
---------------

ApexData Agent 배포 자동화 CLI 패키지.
Kubernetes 클러스터 배포(kubectl + envsubst)와
호스트 systemd 서비스 설치/관리 두 가지 진입점을 제공한다.
"""

__version__ = "0.1.0"

__all__ = [
    "config",
    "kubernetes",
    "systemd",
]
