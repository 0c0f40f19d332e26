"""Dagster job definitions for asset materialization."""

from dagster import define_asset_job

catalog_ingest_job = define_asset_job(name="catalog_ingest_job", selection=["raster_catalog_snapshot"])
