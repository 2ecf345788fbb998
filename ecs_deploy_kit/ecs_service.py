"""
ecs_service
-----------

ECS 서비스를 새 task definition 리비전으로 갱신하고 안정화될 때까지 기다린다.
"""

from __future__ import annotations

from . import subprocess_utils
from .config import DeployConfig
from .logging_utils import get_logger


logger = get_logger(__name__)


def update_service(cfg: DeployConfig, task_definition: str) -> None:
    """
    task_definition 은 family 또는 family:revision.
    """
    logger.info("ECS 서비스 갱신: cluster=%s service=%s task=%s", cfg.cluster, cfg.service, task_definition)
    subprocess_utils.run_command(
        [
            "aws",
            "ecs",
            "update-service",
            "--cluster",
            cfg.cluster,
            "--service",
            cfg.service,
            "--task-definition",
            task_definition,
            "--region",
            cfg.region,
            "--query",
            "service.serviceName",
            "--output",
            "text",
        ],
        progress=cfg.progress,
    )
    logger.info("ECS 서비스 갱신 완료")


def wait_services_stable(cfg: DeployConfig) -> None:
    """
    aws ecs wait services-stable 에 대기를 맡긴다.
    로컬 타임아웃/재시도는 두지 않고, 실패는 그대로 전파한다.
    """
    logger.info("서비스 안정화 대기 중...")
    subprocess_utils.run_command(
        [
            "aws",
            "ecs",
            "wait",
            "services-stable",
            "--cluster",
            cfg.cluster,
            "--services",
            cfg.service,
            "--region",
            cfg.region,
        ],
        timeout=None,
        spinner_message=f"{cfg.service} 안정화 대기",
        progress=cfg.progress,
    )
    logger.info("서비스 안정화 완료")
