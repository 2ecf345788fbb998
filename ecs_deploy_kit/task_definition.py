"""
task_definition
---------------

현재 task definition 을 가져와 이미지 한 곳만 바꾼 복제본을 새 리비전으로 등록한다.

read-modify-register 방식이며 compare-and-swap 보호는 없다.
(동시에 다른 등록이 일어나면 둘 다 새 리비전으로 남는다)
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass
from typing import Any, Dict

from . import subprocess_utils
from .config import DeployConfig
from .errors import CommandError, InvalidTaskDefinitionError
from .logging_utils import get_logger


logger = get_logger(__name__)

# register-task-definition 이 거부하는 서버 할당 필드
SERVER_ASSIGNED_FIELDS = (
    "taskDefinitionArn",
    "revision",
    "status",
    "requiresAttributes",
    "placementConstraints",
    "compatibilities",
    "registeredAt",
    "registeredBy",
    "deregisteredAt",
)


@dataclass(frozen=True)
class RegisteredTaskDefinition:
    arn: str
    family: str
    revision: int

    @property
    def reference(self) -> str:
        return f"{self.family}:{self.revision}"


def mutate_task_definition(task_definition: Dict[str, Any], image: str) -> Dict[str, Any]:
    """
    첫 번째 컨테이너의 image 만 바꾸고 서버 할당 필드를 제거한 사본을 반환한다.

    입력은 변경하지 않으며, 같은 image 로 여러 번 적용해도 결과가 같다.
    """
    containers = task_definition.get("containerDefinitions")
    if not containers:
        raise InvalidTaskDefinitionError("task definition 에 containerDefinitions 가 없습니다.")

    mutated = copy.deepcopy(task_definition)
    mutated["containerDefinitions"][0]["image"] = image
    for field in SERVER_ASSIGNED_FIELDS:
        mutated.pop(field, None)
    return mutated


def _load_json(raw: str, cmd: list[str]) -> Dict[str, Any]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise CommandError(cmd, 0, message=f"task definition JSON 을 해석할 수 없습니다: {e}") from e
    if not isinstance(data, dict):
        raise CommandError(cmd, 0, message="task definition 응답이 객체가 아닙니다.")
    return data


def describe_task_definition(cfg: DeployConfig) -> Dict[str, Any]:
    cmd = [
        "aws",
        "ecs",
        "describe-task-definition",
        "--task-definition",
        cfg.task_family,
        "--region",
        cfg.region,
        "--query",
        "taskDefinition",
        "--output",
        "json",
    ]
    try:
        result = subprocess_utils.run_command(cmd, progress=cfg.progress)
    except CommandError:
        logger.error("현재 task definition 조회 실패: %s", cfg.task_family)
        raise
    return _load_json(result.stdout, cmd)


def register_task_definition(cfg: DeployConfig, task_definition: Dict[str, Any]) -> RegisteredTaskDefinition:
    cmd = [
        "aws",
        "ecs",
        "register-task-definition",
        "--region",
        cfg.region,
        "--cli-input-json",
        "file:///dev/stdin",
        "--output",
        "json",
    ]
    # 컨테이너 환경변수가 명령 로그에 남지 않도록 본문은 stdin 으로 넘긴다.
    try:
        result = subprocess_utils.run_command(
            cmd,
            input_text=json.dumps(task_definition),
            progress=cfg.progress,
        )
    except CommandError:
        logger.error("새 task definition 등록 실패: %s", cfg.task_family)
        raise

    registered = _load_json(result.stdout, cmd).get("taskDefinition") or {}
    try:
        return RegisteredTaskDefinition(
            arn=registered["taskDefinitionArn"],
            family=registered.get("family", cfg.task_family),
            revision=int(registered["revision"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise CommandError(cmd, 0, message=f"등록 응답에 ARN/revision 이 없습니다: {e}") from e


def create_task_definition(cfg: DeployConfig, image: str) -> RegisteredTaskDefinition:
    """현재 리비전을 읽어 image 만 바꾼 새 리비전을 등록한다."""
    logger.info("새 task definition 생성: family=%s image=%s", cfg.task_family, image)
    current = describe_task_definition(cfg)
    registered = register_task_definition(cfg, mutate_task_definition(current, image))
    logger.info("새 task definition 등록 완료: %s", registered.arn)
    return registered
