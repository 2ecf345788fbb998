"""
git_revision
------------

현재 커밋 해시에서 이미지 태그로 쓸 짧은 식별자를 만든다.
"""

from __future__ import annotations

from dataclasses import dataclass

from . import subprocess_utils
from .errors import CommandError
from .logging_utils import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class GitRevision:
    full_hash: str
    short_hash: str
    message: str = ""


def short_hash(full_hash: str, length: int) -> str:
    if length <= 0:
        raise ValueError(f"length 는 양수여야 합니다: {length}")
    return full_hash.strip()[:length]


def resolve_revision(length: int = 8) -> GitRevision:
    cmd = ["git", "rev-parse", "HEAD"]
    full = subprocess_utils.run_command(cmd, timeout=30.0).stdout.strip()
    if not full:
        raise CommandError(cmd, 0, message="git rev-parse HEAD 결과가 비어 있습니다.")

    log_out = subprocess_utils.run_command(["git", "log", "-1", "--pretty=%B"], timeout=30.0).stdout
    message = log_out.strip().splitlines()[0] if log_out.strip() else ""

    revision = GitRevision(full_hash=full, short_hash=short_hash(full, length), message=message)
    logger.info("현재 커밋: %s", revision.short_hash)
    logger.debug("커밋 메시지: %s", revision.message)
    return revision
