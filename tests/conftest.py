"""
pytest 설정:

로컬 작업 환경에 설치된 다른 버전의 ecs_deploy_kit 패키지가 존재할 때,
`pytest` 실행 시 site-packages 쪽이 먼저 import 되어 테스트가 깨질 수 있다.

테스트는 항상 현재 레포의 소스를 대상으로 해야 하므로, repo root 를 sys.path 최상단에 고정한다.

외부 명령(aws/docker/git)은 FakeRunner 로 대체하여 호출 순서만 기록한다.
"""

from __future__ import annotations

import json
import os
import sys
from typing import Any, Dict, List, Optional, Tuple

import pytest


def pytest_configure() -> None:
    repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


CONFIG_ENV_KEYS = (
    "AWS_REGION",
    "ECS_CLUSTER",
    "ECS_SERVICE",
    "ECS_TASK_FAMILY",
    "ECR_REPOSITORY",
    "LOCAL_IMAGE_NAME",
    "COMMIT_HASH_LENGTH",
    "CLI_SHOW_PROGRESS",
)

ACCOUNT_ID = "123456789012"
REGISTRY = f"{ACCOUNT_ID}.dkr.ecr.us-east-1.amazonaws.com"
FULL_HASH = "deadbeef0123456789abcdef0123456789abcdef"


def sample_task_definition(image: str = f"{REGISTRY}/bia:oldtag1") -> Dict[str, Any]:
    return {
        "taskDefinitionArn": "arn:aws:ecs:us-east-1:123456789012:task-definition/task-def-bia:42",
        "family": "task-def-bia",
        "revision": 42,
        "status": "ACTIVE",
        "containerDefinitions": [
            {
                "name": "bia",
                "image": image,
                "memoryReservation": 400,
                "portMappings": [{"containerPort": 8080, "hostPort": 80}],
                "environment": [{"name": "DB_HOST", "value": "db.internal"}],
            }
        ],
        "networkMode": "bridge",
        "requiresAttributes": [{"name": "com.amazonaws.ecs.capability.ecr-auth"}],
        "placementConstraints": [],
        "compatibilities": ["EC2"],
        "requiresCompatibilities": ["EC2"],
        "registeredAt": "2024-05-01T10:00:00.000000+00:00",
        "registeredBy": "arn:aws:iam::123456789012:user/deployer",
    }


class FakeRunner:
    """subprocess_utils.run_command / find_executable 대체물."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.kwargs: List[Dict[str, Any]] = []
        self.missing_tools: set[str] = set()
        self._responses: List[Tuple[Tuple[str, ...], str, Optional[BaseException]]] = []

    def respond(self, *prefix: str, stdout: str = "", error: Optional[BaseException] = None) -> None:
        # 나중에 등록한 응답이 우선한다.
        self._responses.insert(0, (tuple(prefix), stdout, error))

    def __call__(self, cmd, **kwargs):  # noqa: ANN001, ANN003
        from ecs_deploy_kit.subprocess_utils import RunResult

        cmd = list(cmd)
        self.calls.append(cmd)
        self.kwargs.append(kwargs)
        for prefix, stdout, error in self._responses:
            if tuple(cmd[: len(prefix)]) == prefix:
                if error is not None:
                    raise error
                return RunResult(returncode=0, stdout=stdout, stderr="")
        return RunResult(returncode=0, stdout="", stderr="")

    def which(self, name: str) -> Optional[str]:
        if name in self.missing_tools:
            return None
        return f"/usr/bin/{name}"

    def prefixes(self, n: int = 3) -> List[List[str]]:
        return [c[:n] for c in self.calls]

    def find(self, *prefix: str) -> List[int]:
        return [i for i, c in enumerate(self.calls) if tuple(c[: len(prefix)]) == prefix]


@pytest.fixture(autouse=True)
def clean_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # setenv 후 delenv 해야 테스트 중 load_dotenv 로 생긴 값까지 원복된다.
    for key in CONFIG_ENV_KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


@pytest.fixture
def fake_runner(monkeypatch: pytest.MonkeyPatch) -> FakeRunner:
    from ecs_deploy_kit import subprocess_utils

    runner = FakeRunner()
    runner.respond("git", "rev-parse", "HEAD", stdout=FULL_HASH + "\n")
    runner.respond("git", "log", "-1", stdout="Fix login redirect\n\nlonger body\n")
    runner.respond("aws", "sts", "get-caller-identity", stdout=ACCOUNT_ID + "\n")
    runner.respond("aws", "ecr", "get-login-password", stdout="s3cr3t-token\n")
    runner.respond(
        "aws",
        "ecs",
        "describe-task-definition",
        stdout=json.dumps(sample_task_definition()),
    )
    runner.respond(
        "aws",
        "ecs",
        "register-task-definition",
        stdout=json.dumps(
            {
                "taskDefinition": {
                    "taskDefinitionArn": "arn:aws:ecs:us-east-1:123456789012:task-definition/task-def-bia:43",
                    "family": "task-def-bia",
                    "revision": 43,
                }
            }
        ),
    )
    runner.respond(
        "aws",
        "ecr",
        "describe-images",
        stdout=json.dumps({"imageDetails": [{"imageTags": ["abc12345"], "imagePushedAt": "2024-05-01T10:00:00+00:00"}]}),
    )

    monkeypatch.setattr(subprocess_utils, "run_command", runner)
    monkeypatch.setattr(subprocess_utils, "find_executable", runner.which)
    return runner
