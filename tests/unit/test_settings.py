"""
Unit tests for pipeline settings.
"""

import pytest
from pydantic import ValidationError

from src.core.settings import PipelineSettings, load_settings


class TestLoadSettings:
    """Tests for load_settings"""

    def test_defaults(self):
        settings = load_settings(environ={})

        assert settings == PipelineSettings()
        assert settings.store_backend == "postgres"
        assert settings.max_batch_size == 10
        assert settings.consumer_workers == 1
        assert settings.blob_backend == "s3"
        assert settings.aws_endpoint_url is None

    def test_environment_overrides(self):
        settings = load_settings(
            environ={
                "SERVICE_NAME": "records",
                "MAX_BATCH_SIZE": "25",
                "CONSUMER_WORKERS": "4",
                "BUCKET_NAME": "exports",
                "AWS_ENDPOINT_URL": "http://localhost:4566",
                "DB_PORT": "6543",
            }
        )

        assert settings.service_name == "records"
        assert settings.max_batch_size == 25
        assert settings.consumer_workers == 4
        assert settings.bucket_name == "exports"
        assert settings.aws_endpoint_url == "http://localhost:4566"
        assert settings.db_port == 6543

    def test_empty_environment_values_ignored(self):
        assert load_settings(environ={"MAX_BATCH_SIZE": ""}).max_batch_size == 10

    def test_yaml_file(self, tmp_path):
        config = tmp_path / "pipeline.yaml"
        config.write_text("store_backend: memory\nblob_backend: local\nmax_batch_size: 5\n")

        settings = load_settings(config, environ={})

        assert settings.store_backend == "memory"
        assert settings.blob_backend == "local"
        assert settings.max_batch_size == 5

    def test_environment_beats_yaml(self, tmp_path):
        config = tmp_path / "pipeline.yaml"
        config.write_text("max_batch_size: 5\n")

        settings = load_settings(config, environ={"MAX_BATCH_SIZE": "7"})

        assert settings.max_batch_size == 7

    def test_config_path_from_environment(self, tmp_path):
        config = tmp_path / "pipeline.yaml"
        config.write_text("service_name: from-file\n")

        settings = load_settings(environ={"PIPELINE_CONFIG": str(config)})

        assert settings.service_name == "from-file"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "missing.yaml", environ={})

    def test_unknown_keys_rejected(self, tmp_path):
        config = tmp_path / "pipeline.yaml"
        config.write_text("max_batch_size: 5\nbogus: 1\n")

        with pytest.raises(ValueError, match="bogus"):
            load_settings(config, environ={})

    def test_non_mapping_rejected(self, tmp_path):
        config = tmp_path / "pipeline.yaml"
        config.write_text("- a\n- b\n")

        with pytest.raises(ValueError):
            load_settings(config, environ={})

    @pytest.mark.parametrize(
        "env",
        [
            {"MAX_BATCH_SIZE": "0"},
            {"CONSUMER_WORKERS": "-1"},
            {"STORE_BACKEND": "dynamo"},
            {"BLOB_BACKEND": "ftp"},
            {"DB_PORT": "not-a-port"},
        ],
    )
    def test_invalid_values(self, env):
        with pytest.raises(ValidationError):
            load_settings(environ=env)
