"""
errors
------

배포 단계에서 발생하는 예외 계층.

- PrerequisiteError : 도구 미설치, Docker 데몬 미기동, git 저장소 아님
- CommandError      : 외부 명령(aws/docker/git) 실패
- MissingTagError / ImageNotFoundError : 사용자 입력 오류 (rollback)

CLI 는 DeployError 를 잡아 [ERROR] 로그와 exit 1 로 변환한다.
"""

from __future__ import annotations

from typing import Sequence


class DeployError(Exception):
    """배포 CLI 가 처리하는 모든 예외의 기반 클래스."""


class PrerequisiteError(DeployError):
    pass


class CommandError(DeployError, RuntimeError):
    """외부 명령이 0 이 아닌 코드로 끝났거나 시간 초과된 경우."""

    def __init__(
        self,
        cmd: Sequence[str],
        returncode: int | None,
        detail: str = "",
        *,
        message: str | None = None,
    ) -> None:
        self.cmd = list(cmd)
        self.returncode = returncode
        self.detail = detail
        if message is None:
            message = f"명령 실행 실패: {' '.join(self.cmd)}"
            if returncode is not None:
                message += f" (exit={returncode})"
        if detail:
            message += "\n" + detail
        super().__init__(message)


class ToolNotFoundError(CommandError):
    def __init__(self, cmd: Sequence[str]) -> None:
        super().__init__(
            cmd,
            None,
            message=(
                f"필요한 명령을 찾을 수 없습니다: {cmd[0]} "
                "(aws/docker/git 이 설치되어 있는지 확인하세요)"
            ),
        )


class InvalidTaskDefinitionError(DeployError, ValueError):
    """task definition 응답이 복제할 수 없는 형태인 경우."""


class MissingTagError(DeployError):
    pass


class ImageNotFoundError(DeployError):
    def __init__(self, repository: str, tag: str) -> None:
        self.repository = repository
        self.tag = tag
        super().__init__(f"ECR 에서 이미지를 찾을 수 없습니다: {repository}:{tag}")
