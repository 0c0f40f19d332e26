"""Dagster assets for the raster catalog."""

from dagster import AssetExecutionContext, Output, asset

from raster_catalog.connectors.s3_client import S3Resource
from raster_catalog.connectors.settings import SettingsResource
from raster_catalog.ingestion import ingest_from_settings
from raster_catalog.models.models import IngestionReport
from raster_catalog.storage import InMemoryCatalogStore, write_geoparquet_snapshot


def _report_metadata(report: IngestionReport, snapshot_path: str) -> dict[str, str | int]:
    """Build asset materialization metadata from an ingestion report.

    :param report: Ingestion report
    :param snapshot_path: Path of the written snapshot
    :returns: Metadata dictionary
    """
    return {
        "snapshot_path": snapshot_path,
        "items_ingested": report.ingested,
        "entries_skipped": report.skipped,
        "duplicate_items": report.duplicates,
        "collections": ", ".join(report.collection_ids),
        "total_collections": len(report.collection_ids),
    }


@asset
def raster_catalog_snapshot(
    context: AssetExecutionContext, s3: S3Resource, settings: SettingsResource
) -> Output[str]:
    """Rebuild the catalog from the configured source and write a GeoParquet snapshot.

    The catalog is ingested into a fresh store, so removed files disappear
    from the snapshot. The snapshot file is replaced atomically.

    :param context: Dagster context
    :param s3: S3 resource
    :param settings: Settings resource
    :returns: Output with the snapshot path
    """
    store = InMemoryCatalogStore()
    report = ingest_from_settings(store, settings, s3=s3)
    snapshot_path = str(write_geoparquet_snapshot(store, settings.catalog_snapshot_path))
    context.log.info(f"Catalog snapshot with {report.ingested} items written to {snapshot_path}")

    return Output(snapshot_path, metadata=_report_metadata(report, snapshot_path))
