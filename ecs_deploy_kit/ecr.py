"""
ecr
---

ECR 레지스트리 관련 책임을 가지는 모듈.

- 계정 ID 조회 및 레지스트리 호스트 구성
- docker login (get-login-password → --password-stdin)
- 이미지 태그 존재 여부 확인 (rollback)
- 최근 이미지 목록 조회 (list-images)
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from . import subprocess_utils
from .config import DeployConfig
from .errors import CommandError
from .logging_utils import get_logger


logger = get_logger(__name__)

LIST_IMAGES_LIMIT = 10


@dataclass(frozen=True)
class ImageSummary:
    tag: Optional[str]
    pushed_at: Optional[datetime]
    digest: str = ""
    size_bytes: Optional[int] = None


def registry_host(account_id: str, region: str) -> str:
    return f"{account_id}.dkr.ecr.{region}.amazonaws.com"


def image_uri(registry: str, repository: str, tag: str) -> str:
    return f"{registry}/{repository}:{tag}"


def get_account_id(cfg: DeployConfig) -> str:
    cmd = [
        "aws",
        "sts",
        "get-caller-identity",
        "--query",
        "Account",
        "--output",
        "text",
        "--region",
        cfg.region,
    ]
    account_id = subprocess_utils.run_command(cmd, progress=cfg.progress).stdout.strip()
    if not account_id:
        raise CommandError(cmd, 0, message="AWS 계정 ID 를 확인할 수 없습니다 (빈 응답)")
    return account_id


def resolve_registry(cfg: DeployConfig) -> str:
    """로그인 없이 레지스트리 호스트만 계산한다."""
    registry = registry_host(get_account_id(cfg), cfg.region)
    logger.debug("ECR 레지스트리: %s", registry)
    return registry


def login(cfg: DeployConfig) -> str:
    """
    ECR 에 docker login 하고 레지스트리 호스트를 반환한다.

    토큰은 stdin 으로만 전달하며 로그에 남기지 않는다.
    """
    logger.info("ECR 로그인 중...")
    registry = resolve_registry(cfg)

    password = subprocess_utils.run_command(
        ["aws", "ecr", "get-login-password", "--region", cfg.region],
        secret_output=True,
        progress=cfg.progress,
    ).stdout.strip()

    subprocess_utils.run_command(
        ["docker", "login", "--username", "AWS", "--password-stdin", registry],
        input_text=password,
        progress=cfg.progress,
    )
    logger.info("ECR 로그인 완료: %s", registry)
    return registry


def image_exists(cfg: DeployConfig, tag: str) -> bool:
    """
    describe-images 로 태그 존재 여부를 한 번만 확인한다.

    ImageNotFoundException 만 '없음'으로 보고, 그 밖의 실패(권한, 리포 없음 등)는 그대로 전파한다.
    """
    cmd = [
        "aws",
        "ecr",
        "describe-images",
        "--repository-name",
        cfg.ecr_repo,
        "--image-ids",
        f"imageTag={tag}",
        "--region",
        cfg.region,
        "--output",
        "json",
    ]
    try:
        result = subprocess_utils.run_command(cmd, progress=cfg.progress)
    except CommandError as e:
        if "ImageNotFoundException" in str(e):
            return False
        raise

    details = _parse_json(result.stdout, cmd).get("imageDetails") or []
    return bool(details)


def _parse_json(raw: str, cmd: List[str]) -> Dict[str, Any]:
    try:
        data = json.loads(raw or "{}")
    except json.JSONDecodeError as e:
        raise CommandError(cmd, 0, message=f"JSON 응답을 해석할 수 없습니다: {e}") from e
    if not isinstance(data, dict):
        raise CommandError(cmd, 0, message="예상하지 못한 JSON 응답 형식입니다.")
    return data


def _parse_pushed_at(value: Any) -> Optional[datetime]:
    # aws CLI 는 ISO8601 문자열을, 일부 설정에서는 epoch 초를 돌려준다.
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.warning("imagePushedAt 값을 해석할 수 없습니다: %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def summarize_images(image_details: List[Dict[str, Any]], limit: int = LIST_IMAGES_LIMIT) -> List[ImageSummary]:
    """
    describe-images 의 imageDetails 를 push 시각 내림차순으로 정렬해 최대 limit 개만 돌려준다.
    push 시각이 없는 항목은 맨 뒤로 보낸다.
    """
    summaries: List[ImageSummary] = []
    for detail in image_details:
        tags = detail.get("imageTags") or []
        summaries.append(
            ImageSummary(
                tag=tags[0] if tags else None,
                pushed_at=_parse_pushed_at(detail.get("imagePushedAt")),
                digest=detail.get("imageDigest", ""),
                size_bytes=detail.get("imageSizeInBytes"),
            )
        )

    oldest = datetime.min.replace(tzinfo=timezone.utc)
    summaries.sort(key=lambda s: s.pushed_at or oldest, reverse=True)
    return summaries[: max(limit, 0)]


def list_images(cfg: DeployConfig, limit: int = LIST_IMAGES_LIMIT) -> List[ImageSummary]:
    logger.info("ECR 최근 이미지 %d개 조회: %s", limit, cfg.ecr_repo)
    cmd = [
        "aws",
        "ecr",
        "describe-images",
        "--repository-name",
        cfg.ecr_repo,
        "--region",
        cfg.region,
        "--output",
        "json",
    ]
    result = subprocess_utils.run_command(cmd, progress=cfg.progress)
    return summarize_images(_parse_json(result.stdout, cmd).get("imageDetails") or [], limit)


def format_images_table(images: List[ImageSummary]) -> str:
    if not images:
        return "(이미지가 없습니다)"

    rows = [("TAG", "PUSHED AT", "DIGEST")]
    for image in images:
        pushed = image.pushed_at.strftime("%Y-%m-%d %H:%M:%S %z") if image.pushed_at else "-"
        digest = image.digest[:19] if image.digest else "-"
        rows.append((image.tag or "<untagged>", pushed, digest))

    widths = [max(len(row[i]) for row in rows) for i in range(3)]
    lines: List[str] = []
    for idx, row in enumerate(rows):
        lines.append("  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)).rstrip())
        if idx == 0:
            lines.append("  ".join("-" * w for w in widths))
    return "\n".join(lines)
