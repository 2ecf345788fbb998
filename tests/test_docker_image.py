from ecs_deploy_kit.config import DeployConfig
from ecs_deploy_kit import docker_image

from conftest import REGISTRY


def test_build_tags_exactly_revision_and_latest(fake_runner) -> None:
    tags = docker_image.build_image(DeployConfig(), REGISTRY, "abc12345")

    assert tags == [f"{REGISTRY}/bia:abc12345", f"{REGISTRY}/bia:latest"]
    assert fake_runner.calls == [
        ["docker", "build", "-t", f"{REGISTRY}/bia:abc12345", "-t", f"{REGISTRY}/bia:latest", "."],
    ]
    # 빌드는 로컬 타임아웃 없이 출력을 스트리밍한다.
    assert fake_runner.kwargs[0]["timeout"] is None
    assert fake_runner.kwargs[0]["stream_output"] is True


def test_build_with_local_image_name_adds_local_tags(fake_runner) -> None:
    cfg = DeployConfig(local_image_name="bia-app", commit_length=7)

    tags = docker_image.build_image(cfg, REGISTRY, "abc1234")

    assert sorted(tags) == sorted(
        [
            "bia-app:abc1234",
            "bia-app:latest",
            f"{REGISTRY}/bia:abc1234",
            f"{REGISTRY}/bia:latest",
        ]
    )
    assert len(fake_runner.calls) == 1


def test_push_only_registry_tags_in_order(fake_runner) -> None:
    cfg = DeployConfig(local_image_name="bia-app")

    pushed = docker_image.push_image(cfg, REGISTRY, "abc12345")

    assert pushed == [f"{REGISTRY}/bia:abc12345", f"{REGISTRY}/bia:latest"]
    assert fake_runner.calls == [
        ["docker", "push", f"{REGISTRY}/bia:abc12345"],
        ["docker", "push", f"{REGISTRY}/bia:latest"],
    ]
