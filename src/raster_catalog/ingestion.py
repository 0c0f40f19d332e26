"""Ingestion pipeline populating a catalog store from a source enumeration."""

from collections.abc import Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from pathlib import PurePosixPath

from dagster import get_dagster_logger

from raster_catalog.connectors.s3_client import S3Resource
from raster_catalog.connectors.settings import SettingsResource
from raster_catalog.geospatial.raster_ops import (
    MetadataExtractor,
    extract_metadata,
    item_id_from_locator,
    make_extractor,
)
from raster_catalog.models.models import (
    ExtractedMetadata,
    ExtractionResult,
    IngestionReport,
    Item,
    SourceEntry,
    Unreadable,
)
from raster_catalog.sources import build_source
from raster_catalog.storage import CatalogStore

logger = get_dagster_logger(__name__)


def collection_id_for(grouping_path: str) -> str | None:
    """Collection ID for a grouping path: its last component.

    :param grouping_path: Parent directory or prefix of an entry
    :returns: Collection ID, or None if the entry has no grouping
    """
    name = PurePosixPath(grouping_path.replace("\\", "/").strip("/")).name
    return name or None


def build_item(entry: SourceEntry, metadata: ExtractedMetadata, collection_id: str) -> Item:
    """Create Item from extracted metadata.

    :param entry: Source entry
    :param metadata: Extracted metadata
    :param collection_id: Collection ID
    :returns: Item instance
    :raises ValueError: If the footprint is not a valid polygonal geometry
    """
    return Item.from_footprint(
        item_id=item_id_from_locator(entry.source_locator),
        collection_id=collection_id,
        footprint=metadata.footprint,
        properties=metadata.properties,
        source_locator=entry.source_locator,
    )


def _extract_all(
    entries: list[SourceEntry], extractor: MetadataExtractor, max_workers: int
) -> Iterator[tuple[SourceEntry, ExtractionResult]]:
    """Extract every entry, yielding results in entry order."""
    if max_workers <= 1:
        for entry in entries:
            yield entry, extractor(entry.source_locator)
        return

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        results = executor.map(extractor, [entry.source_locator for entry in entries])
        yield from zip(entries, results)


def ingest(
    store: CatalogStore,
    entries: Iterable[SourceEntry],
    extractor: MetadataExtractor = extract_metadata,
    max_workers: int = 1,
) -> IngestionReport:
    """Populate a catalog store from source entries.

    Entries without a grouping path and entries the extractor cannot read are
    skipped. Items are written one batch per collection, in entry order, so
    parallel extraction yields the same catalog as a sequential run.

    :param store: Catalog store
    :param entries: Source entries
    :param extractor: Metadata extractor
    :param max_workers: Number of extraction threads
    :returns: Ingestion report
    :raises StoreUnavailable: If the store backend fails
    """
    report = IngestionReport()
    candidates: list[SourceEntry] = []
    for entry in entries:
        if collection_id_for(entry.grouping_path) is None:
            logger.debug(f"Skipping {entry.source_locator}: no collection to join")
            report.skipped += 1
            continue
        candidates.append(entry)

    pending: dict[str, list[Item]] = {}
    for entry, result in _extract_all(candidates, extractor, max_workers):
        if isinstance(result, Unreadable):
            logger.debug(f"Skipping {entry.source_locator}: {result.reason}")
            report.skipped += 1
            continue

        collection_id = collection_id_for(entry.grouping_path)
        try:
            item = build_item(entry, result, collection_id)
        except ValueError as e:
            logger.warning(f"Skipping {entry.source_locator}: {e}")
            report.skipped += 1
            continue
        pending.setdefault(collection_id, []).append(item)

    for collection_id, items in pending.items():
        rejected = store.add_items(collection_id, items)
        for duplicate in rejected:
            logger.warning(f"Skipping {duplicate.item_id} in {collection_id}: {duplicate.message}")
        report.duplicates += len(rejected)
        report.ingested += len(items) - len(rejected)
        if len(rejected) < len(items):
            report.collection_ids.append(collection_id)

    logger.info(
        f"Ingested {report.ingested} items into {len(report.collection_ids)} collections "
        f"({report.skipped} skipped, {report.duplicates} duplicates)"
    )
    return report


def ingest_from_settings(
    store: CatalogStore, settings: SettingsResource, s3: S3Resource | None = None
) -> IngestionReport:
    """Ingest the source configured in settings.

    :param store: Catalog store
    :param settings: Settings resource
    :param s3: Optional S3 resource
    :returns: Ingestion report
    """
    extractor: MetadataExtractor = extract_metadata
    if settings.catalog_source == "s3":
        s3 = s3 or S3Resource(settings=settings)
        extractor = make_extractor(s3.gdal_env_options())
    source = build_source(settings, s3)
    logger.info(f"Ingesting catalog from {source!r}")
    return ingest(store, source, extractor=extractor, max_workers=settings.ingest_workers)
