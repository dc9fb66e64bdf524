"""
Pipeline configuration.

Settings are resolved as defaults, overridden by an optional YAML file,
overridden by environment variables.

Expected YAML format (flat keys, all optional):
```yaml
service_name: record-pipeline
store_backend: postgres
db_host: localhost
max_batch_size: 10
consumer_workers: 4
blob_backend: s3
bucket_name: my-exports
```
"""

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

# Environment variable for each setting
ENV_VARS = {
    "service_name": "SERVICE_NAME",
    "service_version": "SERVICE_VERSION",
    "log_level": "LOG_LEVEL",
    "log_format": "LOG_FORMAT",
    "store_backend": "STORE_BACKEND",
    "db_host": "DB_HOST",
    "db_port": "DB_PORT",
    "db_name": "DB_NAME",
    "db_user": "DB_USER",
    "db_password": "DB_PASSWORD",
    "db_pool_min_size": "DB_POOL_MIN_SIZE",
    "db_pool_max_size": "DB_POOL_MAX_SIZE",
    "db_timeout": "DB_TIMEOUT",
    "max_batch_size": "MAX_BATCH_SIZE",
    "consumer_workers": "CONSUMER_WORKERS",
    "visibility_timeout_seconds": "VISIBILITY_TIMEOUT_SECONDS",
    "poll_interval_seconds": "POLL_INTERVAL_SECONDS",
    "blob_backend": "BLOB_BACKEND",
    "bucket_name": "BUCKET_NAME",
    "blob_root": "BLOB_ROOT",
    "aws_endpoint_url": "AWS_ENDPOINT_URL",
    "aws_region": "AWS_REGION",
    "metrics_port": "METRICS_PORT",
}

CONFIG_PATH_ENV = "PIPELINE_CONFIG"


class PipelineSettings(BaseModel):
    """
    Runtime settings shared by the consumer, ingress, exporter and CLI.

    Attributes:
        service_name: Name stamped on every log line
        service_version: Version stamped on every log line
        store_backend: "postgres" or "memory"
        max_batch_size: Largest batch the transport may deliver
        consumer_workers: Worker threads per batch (1 = sequential)
        visibility_timeout_seconds: How long a received message stays hidden
        blob_backend: "s3" or "local"
        bucket_name: S3 bucket for exports
        blob_root: Directory for exports when blob_backend is local
        aws_endpoint_url: Override endpoint for S3-compatible emulators
    """

    service_name: str = "record-pipeline"
    service_version: str = "1.0.0"
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"

    store_backend: Literal["postgres", "memory"] = "postgres"
    db_host: str = "localhost"
    db_port: int = Field(5432, ge=1, le=65535)
    db_name: str = "records"
    db_user: str = "pipeline"
    db_password: str | None = None
    db_pool_min_size: int = Field(1, ge=0)
    db_pool_max_size: int = Field(10, ge=1)
    db_timeout: float = Field(30.0, gt=0)

    max_batch_size: int = Field(10, ge=1)
    consumer_workers: int = Field(1, ge=1)
    visibility_timeout_seconds: int = Field(30, ge=0)
    poll_interval_seconds: float = Field(1.0, ge=0)

    blob_backend: Literal["s3", "local"] = "s3"
    bucket_name: str | None = None
    blob_root: str = "./exports-data"
    aws_endpoint_url: str | None = None
    aws_region: str = "us-east-1"

    metrics_port: int = Field(8000, ge=1, le=65535)


def _load_yaml(config_path: str | Path) -> dict[str, Any]:
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Pipeline configuration file not found: {config_path}")

    with open(path) as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValueError("Pipeline configuration file must contain a mapping")

    unknown = set(config) - set(PipelineSettings.model_fields)
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

    return config


def load_settings(
    config_path: str | Path | None = None,
    environ: dict[str, str] | None = None,
) -> PipelineSettings:
    """
    Load settings from an optional YAML file and the environment.

    Args:
        config_path: YAML file (defaults to env var PIPELINE_CONFIG, if set)
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated PipelineSettings

    Raises:
        FileNotFoundError: If the configuration file does not exist
        ValueError: If the file is not a mapping or has unknown keys
        pydantic.ValidationError: If a value is invalid
    """
    environ = os.environ if environ is None else environ
    config_path = config_path or environ.get(CONFIG_PATH_ENV)

    values: dict[str, Any] = {}
    if config_path:
        values.update(_load_yaml(config_path))

    for field_name, env_var in ENV_VARS.items():
        value = environ.get(env_var)
        if value not in (None, ""):
            values[field_name] = value

    return PipelineSettings(**values)
