from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, List, Optional

from dotenv import load_dotenv

from .subprocess_utils import ProgressSettings


ENV_FILES_DEFAULT_ORDER = [".env", ".env.deploy"]

DEFAULT_REGION = "us-east-1"
DEFAULT_CLUSTER = "cluster-bia"
DEFAULT_SERVICE = "service-bia"
DEFAULT_TASK_FAMILY = "task-def-bia"
DEFAULT_ECR_REPO = "bia"
DEFAULT_COMMIT_LENGTH = 8


def load_env_files(base_dir: str = ".",
                   files: Optional[List[str]] = None) -> None:
    """
    주어진 디렉토리에서 .env 계열 파일을 순서대로 로드한다.
    후순위 파일이 같은 키를 덮어쓴다.
    """
    order = files or ENV_FILES_DEFAULT_ORDER
    for name in order:
        path = os.path.join(base_dir, name)
        if os.path.exists(path):
            load_dotenv(path, override=True)


def _get_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


@dataclass(frozen=True)
class DeployConfig:
    region: str = DEFAULT_REGION
    cluster: str = DEFAULT_CLUSTER
    service: str = DEFAULT_SERVICE
    task_family: str = DEFAULT_TASK_FAMILY
    ecr_repo: str = DEFAULT_ECR_REPO

    # rollback 전용
    rollback_tag: Optional[str] = None

    # 로컬 이름으로도 태깅 (예: bia-app:abc1234)
    local_image_name: Optional[str] = None

    commit_length: int = DEFAULT_COMMIT_LENGTH
    show_progress: bool = True

    @property
    def progress(self) -> ProgressSettings:
        return ProgressSettings(show=self.show_progress)

    @classmethod
    def from_env(cls, **overrides: Any) -> "DeployConfig":
        """
        환경변수 + CLI 옵션으로 설정을 만든다.

        우선순위: overrides(CLI 옵션, None 은 무시) > 환경변수 > 기본값
        """
        invalid: List[str] = []

        def pick(key: str, env_name: Optional[str], default: Optional[str], required: bool = True) -> Optional[str]:
            value = overrides.get(key)
            if value is None and env_name:
                # export 만 되고 비어 있는 값(AWS_REGION= 등)은 미설정으로 본다.
                value = (os.getenv(env_name) or "").strip() or None
            if value is None:
                value = default
            if value is not None and not str(value).strip():
                if not required:
                    return None
                invalid.append(f"{key} (빈 값)")
            return value

        raw_length = os.getenv("COMMIT_HASH_LENGTH")
        if overrides.get("commit_length") is not None:
            raw_length = str(overrides["commit_length"])
        commit_length = DEFAULT_COMMIT_LENGTH
        if raw_length is not None and raw_length.strip():
            try:
                commit_length = int(raw_length)
            except ValueError:
                invalid.append(f"COMMIT_HASH_LENGTH={raw_length!r}")
            else:
                if not 4 <= commit_length <= 40:
                    invalid.append(f"COMMIT_HASH_LENGTH={commit_length} (4~40)")

        cfg = cls(
            region=pick("region", "AWS_REGION", DEFAULT_REGION),
            cluster=pick("cluster", "ECS_CLUSTER", DEFAULT_CLUSTER),
            service=pick("service", "ECS_SERVICE", DEFAULT_SERVICE),
            task_family=pick("task_family", "ECS_TASK_FAMILY", DEFAULT_TASK_FAMILY),
            ecr_repo=pick("ecr_repo", "ECR_REPOSITORY", DEFAULT_ECR_REPO),
            rollback_tag=(overrides.get("rollback_tag") or "").strip() or None,
            local_image_name=pick("local_image_name", "LOCAL_IMAGE_NAME", None, required=False),
            commit_length=commit_length,
            show_progress=_get_bool("CLI_SHOW_PROGRESS", True),
        )

        if invalid:
            raise ValueError("잘못된 설정 값이 있습니다: " + ", ".join(invalid))

        return cfg
