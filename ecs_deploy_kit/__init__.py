"""
ecs_deploy_kit
--------------

ECR/ECS 용 배포 CLI 패키지.
현재 커밋 해시로 태깅한 이미지를 빌드/푸시하고, task definition 새 리비전을 등록해
ECS 서비스를 갱신한다. 이전 태그로의 rollback 과 최근 이미지 조회를 지원한다.
"""

__all__ = [
    "config",
    "orchestrator",
]
