from __future__ import annotations

from typing import Callable, Dict, List, Tuple

from .config import DeployConfig
from .errors import ImageNotFoundError, MissingTagError
from .logging_utils import get_logger
from .prerequisites import TOOL_AWS, TOOL_DOCKER, TOOL_GIT, check_prerequisites
from . import (
    docker_image,
    ecr,
    ecs_service,
    git_revision,
    task_definition,
)


logger = get_logger(__name__)

# CLI 에서 사용할 수 있도록 명령 이름을 상수로 노출
COMMANDS: List[str] = [
    "deploy",
    "build",
    "push",
    "update-service",
    "rollback",
    "list-images",
    "help",
]

# 명령별로 실제로 사용하는 도구만 점검한다.
REQUIRED_TOOLS: Dict[str, Tuple[str, ...]] = {
    "deploy": (TOOL_AWS, TOOL_GIT, TOOL_DOCKER),
    "build": (TOOL_AWS, TOOL_GIT, TOOL_DOCKER),
    "push": (TOOL_AWS, TOOL_GIT, TOOL_DOCKER),
    "update-service": (TOOL_AWS, TOOL_GIT),
    "rollback": (TOOL_AWS,),
    "list-images": (TOOL_AWS,),
}


def _summary(title: str, items: List[Tuple[str, str]]) -> str:
    lines = [f"# {title}"]
    for key, value in items:
        lines.append(f"- {key}: {value}")
    return "\n".join(lines)


def _roll_out(cfg: DeployConfig, image: str) -> task_definition.RegisteredTaskDefinition:
    registered = task_definition.create_task_definition(cfg, image)
    ecs_service.update_service(cfg, registered.reference)
    ecs_service.wait_services_stable(cfg)
    return registered


def deploy(cfg: DeployConfig) -> str:
    """빌드 → 푸시 → task definition 등록 → 서비스 갱신 → 안정화 대기."""
    check_prerequisites(REQUIRED_TOOLS["deploy"])
    revision = git_revision.resolve_revision(cfg.commit_length)
    registry = ecr.login(cfg)
    docker_image.build_image(cfg, registry, revision.short_hash)
    pushed = docker_image.push_image(cfg, registry, revision.short_hash)
    registered = _roll_out(cfg, pushed[0])

    logger.info("배포 완료! 이미지 태그: %s", revision.short_hash)
    return _summary(
        "Deploy summary",
        [
            ("status", f"배포 완료 ({revision.short_hash})"),
            ("commit", revision.short_hash),
            ("image", pushed[0]),
            ("task definition", registered.reference),
            ("cluster", cfg.cluster),
            ("service", cfg.service),
        ],
    )


def build(cfg: DeployConfig) -> str:
    check_prerequisites(REQUIRED_TOOLS["build"])
    revision = git_revision.resolve_revision(cfg.commit_length)
    registry = ecr.login(cfg)
    tags = docker_image.build_image(cfg, registry, revision.short_hash)
    return _summary("Build summary", [("commit", revision.short_hash)] + [("tag", t) for t in tags])


def push(cfg: DeployConfig) -> str:
    check_prerequisites(REQUIRED_TOOLS["push"])
    revision = git_revision.resolve_revision(cfg.commit_length)
    registry = ecr.login(cfg)
    tags = docker_image.push_image(cfg, registry, revision.short_hash)
    return _summary("Push summary", [("commit", revision.short_hash)] + [("pushed", t) for t in tags])


def update_service(cfg: DeployConfig) -> str:
    """
    이미 푸시된 현재 커밋 이미지로 task definition 을 새로 등록하고 서비스를 갱신한다.
    """
    check_prerequisites(REQUIRED_TOOLS["update-service"])
    revision = git_revision.resolve_revision(cfg.commit_length)
    registry = ecr.resolve_registry(cfg)
    image = ecr.image_uri(registry, cfg.ecr_repo, revision.short_hash)
    registered = _roll_out(cfg, image)
    return _summary(
        "Update-service summary",
        [
            ("image", image),
            ("task definition", registered.reference),
            ("service", cfg.service),
        ],
    )


def rollback(cfg: DeployConfig) -> str:
    """
    ECR 에 남아있는 이전 태그로 task definition 을 다시 등록하고 서비스를 되돌린다.
    """
    tag = cfg.rollback_tag
    if not tag:
        raise MissingTagError("rollback 할 태그가 지정되지 않았습니다. --tag TAG 를 사용하세요.")

    check_prerequisites(REQUIRED_TOOLS["rollback"])
    logger.info("rollback 시작: tag=%s", tag)

    registry = ecr.resolve_registry(cfg)
    if not ecr.image_exists(cfg, tag):
        raise ImageNotFoundError(cfg.ecr_repo, tag)

    image = ecr.image_uri(registry, cfg.ecr_repo, tag)
    registered = _roll_out(cfg, image)

    logger.info("rollback 완료: tag=%s", tag)
    return _summary(
        "Rollback summary",
        [
            ("status", f"rollback 완료 ({tag})"),
            ("image", image),
            ("task definition", registered.reference),
            ("service", cfg.service),
        ],
    )


def list_images(cfg: DeployConfig) -> str:
    check_prerequisites(REQUIRED_TOOLS["list-images"])
    images = ecr.list_images(cfg)
    return f"# ECR images ({cfg.ecr_repo})\n" + ecr.format_images_table(images)


_HANDLERS: Dict[str, Callable[[DeployConfig], str]] = {
    "deploy": deploy,
    "build": build,
    "push": push,
    "update-service": update_service,
    "rollback": rollback,
    "list-images": list_images,
}


def run(cfg: DeployConfig, command: str) -> str:
    """명령 이름에 해당하는 단계 묶음을 실행하고 요약 텍스트를 돌려준다."""
    try:
        handler = _HANDLERS[command]
    except KeyError:
        raise ValueError(f"알 수 없는 명령입니다: {command!r}") from None
    logger.info("명령 실행: %s (region=%s)", command, cfg.region)
    return handler(cfg)
