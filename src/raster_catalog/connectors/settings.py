"""Settings resource for managing configuration from environment variables."""

import os
from pathlib import Path
from typing import Any, get_type_hints

from dagster import ConfigurableResource

from raster_catalog.config.constants import (
    CATALOG_BACKENDS,
    CATALOG_SOURCES,
    DEFAULT_BASE_URL,
    DEFAULT_CATALOG_BACKEND,
    DEFAULT_CATALOG_DIR,
    DEFAULT_CATALOG_SNAPSHOT_PATH,
    DEFAULT_CATALOG_SOURCE,
    DEFAULT_INGEST_WORKERS,
    DEFAULT_SERVICE_DESCRIPTION,
    DEFAULT_SERVICE_ID,
    DEFAULT_SERVICE_TITLE,
)


class SettingsResource(ConfigurableResource[Any]):
    """Catalog settings, one field per upper-cased environment variable."""

    catalog_source: str = DEFAULT_CATALOG_SOURCE
    catalog_dir: str = DEFAULT_CATALOG_DIR
    catalog_backend: str = DEFAULT_CATALOG_BACKEND
    catalog_snapshot_path: str = DEFAULT_CATALOG_SNAPSHOT_PATH
    ingest_workers: int = DEFAULT_INGEST_WORKERS

    service_id: str = DEFAULT_SERVICE_ID
    service_title: str = DEFAULT_SERVICE_TITLE
    service_description: str = DEFAULT_SERVICE_DESCRIPTION
    base_url: str = DEFAULT_BASE_URL

    aws_region: str | None = None
    aws_s3_endpoint: str | None = None
    aws_s3_bucket_name: str | None = None
    aws_s3_prefix: str = ""
    aws_s3_use_ssl: bool = False

    @staticmethod
    def create(swallow_errors: bool = False) -> "SettingsResource":
        """Create SettingsResource from environment variables.

        Variables that are not set, or cannot be converted when errors are
        swallowed, keep the field default.

        :param swallow_errors: If True, ignore validation errors
        :returns: SettingsResource instance
        """
        env_values: dict[str, Any] = {}
        conversion_errors = []
        for attr_name, attr_type in get_type_hints(SettingsResource).items():
            raw = os.environ.get(attr_name.upper())
            if raw is None:
                continue
            if attr_type is bool:
                env_values[attr_name] = raw.strip().lower() in ("true", "1", "yes", "y", "on")
            elif attr_type is int:
                try:
                    env_values[attr_name] = int(raw)
                except ValueError:
                    conversion_errors.append(f"{attr_name.upper()} must be an integer (got `{raw}`)")
            else:
                env_values[attr_name] = raw

        settings = SettingsResource(**env_values)
        try:
            if conversion_errors:
                raise ValueError(f"Invalid settings: {'; '.join(conversion_errors)}")
            settings.validate_settings()
        except ValueError:
            if not swallow_errors:
                raise
        return settings

    def validate_settings(self) -> None:
        """Validate source, backend and S3 settings."""
        errors = []
        if self.catalog_source not in CATALOG_SOURCES:
            errors.append(f"CATALOG_SOURCE must be one of {', '.join(CATALOG_SOURCES)}")
        if self.catalog_backend not in CATALOG_BACKENDS:
            errors.append(f"CATALOG_BACKEND must be one of {', '.join(CATALOG_BACKENDS)}")
        if self.catalog_source == "s3" and not self.aws_s3_bucket_name:
            errors.append("AWS_S3_BUCKET_NAME is required when CATALOG_SOURCE is s3")
        if self.catalog_source == "directory" and not Path(self.catalog_dir).is_dir():
            errors.append(f"CATALOG_DIR {self.catalog_dir} is not a directory")
        if self.ingest_workers < 1:
            errors.append("INGEST_WORKERS must be at least 1")

        if errors:
            raise ValueError(f"Invalid settings: {'; '.join(errors)}")

    def normalized_base_url(self) -> str:
        """Base URL with a trailing slash, so relative links join under it."""
        return self.base_url if self.base_url.endswith("/") else f"{self.base_url}/"
