"""Dagster definitions for the raster catalog."""

from dagster import Definitions, load_assets_from_modules

from raster_catalog import assets  # noqa: TID252
from raster_catalog.connectors.s3_client import S3Resource
from raster_catalog.connectors.settings import SettingsResource
from raster_catalog.triggers.jobs import catalog_ingest_job
from raster_catalog.triggers.source_sensor import catalog_source_sensor

all_assets = load_assets_from_modules([assets])

settings = SettingsResource.create(swallow_errors=True)
s3 = S3Resource(settings=settings)

defs = Definitions(
    assets=all_assets,
    jobs=[catalog_ingest_job],
    sensors=[catalog_source_sensor],
    resources={
        "s3": s3,
        "settings": settings,
    },
)
