import os
from typing import Optional

import pytest

from stackpilot.config import DeployConfig

TEST_AWS_ACCESS_KEY_ID = "test"
TEST_AWS_SECRET_ACCESS_KEY = "test"
TEST_AWS_REGION_NAME = "us-east-1"


@pytest.fixture(autouse=True)
def set_boto_test_credentials_and_region(monkeypatch):
    """
    Automatically sets the default credentials and region for all unit tests.
    """
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", TEST_AWS_ACCESS_KEY_ID)
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", TEST_AWS_SECRET_ACCESS_KEY)
    monkeypatch.setenv("AWS_DEFAULT_REGION", TEST_AWS_REGION_NAME)
    monkeypatch.delenv("AWS_PROFILE", raising=False)
    monkeypatch.delenv("AWS_ENDPOINT_URL", raising=False)


@pytest.fixture
def deploy_config() -> DeployConfig:
    return DeployConfig(
        region=TEST_AWS_REGION_NAME,
        template_bucket="deploy-bucket/templates",
        event_polling=1,
        event_polling_max_retries=2,
    )


@pytest.fixture
def create_stack_files(tmp_path):
    """Factory which writes the given files (name -> content) into a new stack directory and returns its path."""

    def _create(name: str = "my_stack", **files: Optional[str]) -> str:
        stack_dir = tmp_path / name
        stack_dir.mkdir()
        for file_name, content in files.items():
            (stack_dir / file_name.replace("_", ".", 1)).write_text(content)
        return os.fspath(stack_dir)

    return _create
