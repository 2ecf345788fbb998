"""
docker_image
------------

로컬 Docker 로 이미지를 빌드하고 ECR 로 푸시한다.
"""

from __future__ import annotations

from typing import List

from . import subprocess_utils
from .config import DeployConfig
from .ecr import image_uri
from .logging_utils import get_logger


logger = get_logger(__name__)

LATEST_TAG = "latest"


def registry_tags(cfg: DeployConfig, registry: str, revision: str) -> List[str]:
    """푸시 대상 태그: 리비전 태그 + latest."""
    return [
        image_uri(registry, cfg.ecr_repo, revision),
        image_uri(registry, cfg.ecr_repo, LATEST_TAG),
    ]


def build_tags(cfg: DeployConfig, registry: str, revision: str) -> List[str]:
    """
    docker build 한 번에 붙일 모든 태그.

    local_image_name 이 설정되어 있으면 로컬 이름(bia-app:abc1234 등)도 함께 붙인다.
    로컬 태그는 푸시하지 않는다.
    """
    tags: List[str] = []
    if cfg.local_image_name:
        tags.append(f"{cfg.local_image_name}:{revision}")
        tags.append(f"{cfg.local_image_name}:{LATEST_TAG}")
    tags.extend(registry_tags(cfg, registry, revision))
    return tags


def build_image(cfg: DeployConfig, registry: str, revision: str, context_dir: str = ".") -> List[str]:
    """
    현재 디렉토리를 빌드 컨텍스트로 이미지를 빌드하고 붙인 태그 목록을 반환한다.
    실패 시 이미 붙은 태그는 정리하지 않는다.
    """
    tags = build_tags(cfg, registry, revision)
    logger.info("이미지 빌드 시작: %s", ", ".join(tags))

    cmd = ["docker", "build"]
    for tag in tags:
        cmd.extend(["-t", tag])
    cmd.append(context_dir)

    subprocess_utils.run_command(
        cmd,
        timeout=None,
        stream_output=True,
        spinner_message="docker build",
        progress=cfg.progress,
    )
    logger.info("이미지 빌드 완료: %s", tags[-2])
    return tags


def push_image(cfg: DeployConfig, registry: str, revision: str) -> List[str]:
    """리비전 태그, latest 순서로 하나씩 푸시한다."""
    tags = registry_tags(cfg, registry, revision)
    logger.info("ECR 푸시 시작")
    for tag in tags:
        subprocess_utils.run_command(
            ["docker", "push", tag],
            timeout=None,
            stream_output=True,
            spinner_message=f"docker push {tag}",
            progress=cfg.progress,
        )
    logger.info("ECR 푸시 완료")
    return tags
