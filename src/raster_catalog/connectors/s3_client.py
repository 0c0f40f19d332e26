"""S3 client connector for MinIO or AWS S3 bucket sources."""

import os
from typing import Any
from urllib.parse import urlparse

import boto3
from dagster import ConfigurableResource

from raster_catalog.connectors.settings import SettingsResource


def _credentials() -> tuple[str | None, str | None]:
    aws_access_key_id = os.environ.get("AWS_ACCESS_KEY_ID") or os.environ.get("MINIO_ROOT_USER")
    aws_secret_access_key = os.environ.get("AWS_SECRET_ACCESS_KEY") or os.environ.get("MINIO_ROOT_PASSWORD")
    return aws_access_key_id, aws_secret_access_key


class S3Resource(ConfigurableResource[Any]):
    """S3 resource for creating boto3 S3 clients."""

    settings: SettingsResource

    def create_client(self) -> Any:
        """Create S3 client.

        :returns: Configured S3 client
        """
        aws_access_key_id, aws_secret_access_key = _credentials()
        return boto3.client(
            "s3",
            endpoint_url=self.settings.aws_s3_endpoint,
            aws_access_key_id=aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key,
            region_name=self.settings.aws_region,
            use_ssl=self.settings.aws_s3_use_ssl,
        )

    def get_client(self) -> Any:
        """Get S3 client instance.

        :returns: Configured S3 client
        """
        return self.create_client()

    def gdal_env_options(self) -> dict[str, Any]:
        """GDAL options that let rasterio open `s3://` locators from the configured endpoint.

        :returns: Keyword arguments for `rasterio.Env`
        """
        aws_access_key_id, aws_secret_access_key = _credentials()
        options: dict[str, Any] = {}
        if aws_access_key_id and aws_secret_access_key:
            options["AWS_ACCESS_KEY_ID"] = aws_access_key_id
            options["AWS_SECRET_ACCESS_KEY"] = aws_secret_access_key
        if self.settings.aws_region:
            options["AWS_REGION"] = self.settings.aws_region

        endpoint = self.settings.aws_s3_endpoint
        if endpoint and not endpoint.startswith("https://s3"):
            parsed = urlparse(endpoint)
            options["AWS_S3_ENDPOINT"] = parsed.netloc or parsed.path
            options["AWS_HTTPS"] = "YES" if self.settings.aws_s3_use_ssl else "NO"
            options["AWS_VIRTUAL_HOSTING"] = False
        return options
