"""Tests for environment settings."""

import pytest

from settings import Settings


def test_defaults_from_empty_environment() -> None:
    settings = Settings.from_env({})

    assert settings.bucket is None
    assert settings.region is None
    assert settings.camera_index == 0
    assert settings.media_dir
    assert settings.files_dir.endswith(".camera_cloud")
    assert settings.log_level == "INFO"
    assert settings.log_file is None


def test_reads_prefixed_variables() -> None:
    settings = Settings.from_env(
        {
            "CAMCLOUD_BUCKET": "photos",
            "CAMCLOUD_REGION": "eu-west-1",
            "CAMCLOUD_CAMERA_INDEX": "2",
            "CAMCLOUD_MEDIA_DIR": "/srv/media",
            "CAMCLOUD_FILES_DIR": "/srv/files",
            "CAMCLOUD_LOG_LEVEL": "debug",
            "CAMCLOUD_LOG_FILE": "/var/log/camcloud.log",
        }
    )

    assert settings.bucket == "photos"
    assert settings.region == "eu-west-1"
    assert settings.camera_index == 2
    assert settings.media_dir == "/srv/media"
    assert settings.files_dir == "/srv/files"
    assert settings.log_level == "DEBUG"
    assert settings.log_file == "/var/log/camcloud.log"


def test_region_falls_back_to_aws_region() -> None:
    settings = Settings.from_env({"AWS_REGION": "us-east-2"})

    assert settings.region == "us-east-2"


def test_invalid_camera_index_names_variable() -> None:
    with pytest.raises(ValueError, match="CAMCLOUD_CAMERA_INDEX"):
        Settings.from_env({"CAMCLOUD_CAMERA_INDEX": "front"})


def test_blank_bucket_is_unset() -> None:
    assert Settings.from_env({"CAMCLOUD_BUCKET": ""}).bucket is None
