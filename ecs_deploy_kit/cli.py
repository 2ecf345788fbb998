import os
import sys
from typing import List, Optional

import click

from .config import (
    DEFAULT_CLUSTER,
    DEFAULT_ECR_REPO,
    DEFAULT_REGION,
    DEFAULT_SERVICE,
    DEFAULT_TASK_FAMILY,
    DeployConfig,
    load_env_files,
)
from .errors import DeployError, MissingTagError
from .logging_utils import setup_logging, get_logger
from . import orchestrator


logger = get_logger(__name__)

PROG_NAME = "deploy-ecs"

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.command(context_settings=CONTEXT_SETTINGS)
@click.argument("command", metavar="COMMAND", type=click.Choice(orchestrator.COMMANDS))
@click.option("-r", "--region", default=None, help=f"AWS 리전 (기본: {DEFAULT_REGION}, env: AWS_REGION)")
@click.option("-c", "--cluster", default=None, help=f"ECS 클러스터 이름 (기본: {DEFAULT_CLUSTER})")
@click.option("-s", "--service", default=None, help=f"ECS 서비스 이름 (기본: {DEFAULT_SERVICE})")
@click.option("-f", "--family", "task_family", default=None, help=f"task definition 패밀리 (기본: {DEFAULT_TASK_FAMILY})")
@click.option("-e", "--ecr-repo", "ecr_repo", default=None, help=f"ECR 리포지토리 이름 (기본: {DEFAULT_ECR_REPO})")
@click.option("-t", "--tag", "rollback_tag", default=None, help="rollback 할 이미지 태그")
@click.option(
    "--local-image",
    "local_image_name",
    default=None,
    help="로컬 이미지 이름으로도 태깅합니다. (예: bia-app → bia-app:<commit>, bia-app:latest)",
)
@click.option(
    "-C",
    "--chdir",
    "chdir",
    type=click.Path(file_okay=False, dir_okay=True, exists=True),
    default=".",
    help="작업 디렉토리 (빌드 컨텍스트 / git 저장소 / .env 위치, 기본: 현재 디렉토리)",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="로그 레벨을 DEBUG로 올립니다.",
)
@click.pass_context
def main(
    ctx: click.Context,
    command: str,
    region: Optional[str],
    cluster: Optional[str],
    service: Optional[str],
    task_family: Optional[str],
    ecr_repo: Optional[str],
    rollback_tag: Optional[str],
    local_image_name: Optional[str],
    chdir: str,
    verbose: int,
) -> int:
    """
    빌드/푸시/ECS 배포 자동화 CLI.

    각 이미지는 현재 커밋 해시로 태깅되어 rollback 에 사용할 수 있다.

    \b
    COMMAND:
      deploy          build + push + task definition 등록 + 서비스 갱신
      build           커밋 태그로 이미지 빌드만 수행
      push            ECR 로 이미지 푸시만 수행
      update-service  현재 커밋 이미지로 ECS 서비스만 갱신
      rollback        --tag 로 지정한 이전 이미지로 되돌림
      list-images     ECR 의 최근 이미지 10개 출력
      help            이 도움말 출력

    \b
    예시:
      deploy-ecs deploy
      deploy-ecs --region us-west-2 deploy
      deploy-ecs rollback --tag abc12345
      deploy-ecs list-images
    """
    if command == "help":
        click.echo(ctx.get_help())
        return 0

    setup_logging(verbose)

    try:
        if chdir != ".":
            os.chdir(chdir)
        load_env_files(".")
        cfg = DeployConfig.from_env(
            region=region,
            cluster=cluster,
            service=service,
            task_family=task_family,
            ecr_repo=ecr_repo,
            rollback_tag=rollback_tag,
            local_image_name=local_image_name,
        )
    except (OSError, ValueError) as e:
        click.echo(f"[ERROR] 설정 로드 실패: {e}", err=True)
        return 1
    logger.debug("Config loaded: %s", cfg)

    try:
        summary = orchestrator.run(cfg, command)
    except MissingTagError as e:
        click.echo(f"[ERROR] {e}", err=True)
        click.echo(ctx.get_usage(), err=True)
        return 1
    except DeployError as e:
        logger.debug("실패 상세", exc_info=True)
        click.echo(f"[ERROR] {command} 실패: {e}", err=True)
        return 1

    click.echo(summary)
    return 0


def run(argv: Optional[List[str]] = None) -> int:
    """
    CLI 를 실행하고 종료 코드를 돌려준다.

    click 의 기본 사용법 오류 코드(2) 대신, 모든 확인된 실패를 exit 1 로 통일한다.
    """
    try:
        rv = main.main(args=argv, prog_name=PROG_NAME, standalone_mode=False)
    except click.UsageError as e:
        click.echo(f"[ERROR] {e.format_message()}", err=True)
        # 파서 단계 오류(옵션 값 누락 등)는 ctx 가 없을 수 있다.
        ctx = e.ctx if e.ctx is not None else click.Context(main, info_name=PROG_NAME)
        click.echo(ctx.get_help(), err=True)
        return 1
    except click.ClickException as e:
        e.show()
        return 1
    except click.Abort:
        click.echo("중단되었습니다.", err=True)
        return 1
    return int(rv or 0)


def entrypoint() -> None:
    sys.exit(run())
