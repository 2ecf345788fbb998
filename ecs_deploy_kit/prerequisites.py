"""
prerequisites
-------------

배포 전에 필요한 로컬 도구(aws, git, docker)를 점검한다.
실패하면 재시도 없이 바로 PrerequisiteError 를 던진다.
"""

from __future__ import annotations

from typing import Iterable

from . import subprocess_utils
from .errors import CommandError, PrerequisiteError
from .logging_utils import get_logger


logger = get_logger(__name__)

TOOL_AWS = "aws"
TOOL_GIT = "git"
TOOL_DOCKER = "docker"

_INSTALL_HINTS = {
    TOOL_AWS: "AWS CLI 를 찾을 수 없습니다. AWS CLI 를 먼저 설치하세요.",
    TOOL_GIT: "git 을 찾을 수 없습니다. git 을 먼저 설치하세요.",
    TOOL_DOCKER: "Docker 를 찾을 수 없습니다. Docker 를 먼저 설치하세요.",
}


def _require_executable(name: str) -> None:
    if subprocess_utils.find_executable(name) is None:
        raise PrerequisiteError(_INSTALL_HINTS[name])


def _check_docker_daemon() -> None:
    try:
        subprocess_utils.run_command(["docker", "info"], timeout=60.0)
    except CommandError as e:
        raise PrerequisiteError("Docker 데몬이 실행 중이 아닙니다. Docker 를 먼저 시작하세요.") from e


def _check_git_repository() -> None:
    try:
        subprocess_utils.run_command(["git", "rev-parse", "--git-dir"], timeout=30.0)
    except CommandError as e:
        raise PrerequisiteError("현재 디렉토리가 Git 저장소가 아닙니다.") from e


def check_prerequisites(tools: Iterable[str]) -> None:
    """
    요청된 도구만 점검한다.

    - aws    : 실행 파일 존재
    - git    : 실행 파일 존재 + 현재 디렉토리가 저장소
    - docker : 실행 파일 존재 + 데몬 응답
    """
    required = list(dict.fromkeys(tools))
    logger.info("사전 요구사항 점검: %s", ", ".join(required))

    for tool in required:
        if tool not in _INSTALL_HINTS:
            raise ValueError(f"알 수 없는 도구입니다: {tool!r}")
        _require_executable(tool)
        if tool == TOOL_DOCKER:
            _check_docker_daemon()
        elif tool == TOOL_GIT:
            _check_git_repository()

    logger.info("사전 요구사항 점검 완료")
