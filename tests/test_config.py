import pytest

from ecs_deploy_kit.config import DeployConfig, load_env_files


def test_defaults_when_nothing_is_set() -> None:
    cfg = DeployConfig.from_env()

    assert cfg.region == "us-east-1"
    assert cfg.cluster == "cluster-bia"
    assert cfg.service == "service-bia"
    assert cfg.task_family == "task-def-bia"
    assert cfg.ecr_repo == "bia"
    assert cfg.rollback_tag is None
    assert cfg.local_image_name is None
    assert cfg.commit_length == 8


def test_cli_overrides_win_over_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AWS_REGION", "eu-west-1")
    monkeypatch.setenv("ECS_CLUSTER", "env-cluster")

    cfg = DeployConfig.from_env(region="us-west-2", cluster=None)

    # None 인 override 는 무시되고 env 값이 사용된다.
    assert cfg.region == "us-west-2"
    assert cfg.cluster == "env-cluster"


def test_config_is_immutable() -> None:
    cfg = DeployConfig.from_env()

    with pytest.raises(AttributeError):
        cfg.region = "ap-northeast-2"  # type: ignore[misc]


def test_invalid_commit_length_raises_value_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COMMIT_HASH_LENGTH", "seven")

    with pytest.raises(ValueError) as excinfo:
        DeployConfig.from_env()

    assert "COMMIT_HASH_LENGTH" in str(excinfo.value)


def test_empty_service_name_is_rejected() -> None:
    with pytest.raises(ValueError) as excinfo:
        DeployConfig.from_env(service="  ")

    assert "service" in str(excinfo.value)


def test_blank_rollback_tag_is_treated_as_missing() -> None:
    assert DeployConfig.from_env(rollback_tag="  ").rollback_tag is None


def test_env_files_later_file_wins(tmp_path) -> None:
    (tmp_path / ".env").write_text("ECS_SERVICE=from-env\nECR_REPOSITORY=repo-a\n", encoding="utf-8")
    (tmp_path / ".env.deploy").write_text("ECS_SERVICE=from-deploy\nCOMMIT_HASH_LENGTH=7\n", encoding="utf-8")

    load_env_files(str(tmp_path))
    cfg = DeployConfig.from_env()

    assert cfg.service == "from-deploy"
    assert cfg.ecr_repo == "repo-a"
    assert cfg.commit_length == 7


def test_blank_env_values_fall_back_to_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    # CI 나 .env 템플릿에서 export 만 되어 있는 빈 값
    monkeypatch.setenv("AWS_REGION", "")
    monkeypatch.setenv("ECS_SERVICE", "   ")
    monkeypatch.setenv("CLI_SHOW_PROGRESS", "")

    cfg = DeployConfig.from_env()

    assert cfg.region == "us-east-1"
    assert cfg.service == "service-bia"
    assert cfg.show_progress is True
