"""Sensor detecting changes in the catalog source and triggering a rebuild."""

import hashlib
import json
from collections.abc import Generator, Iterable
from typing import Any

from dagster import (
    DefaultSensorStatus,
    RunRequest,
    SensorEvaluationContext,
    sensor,
)

from raster_catalog.connectors.s3_client import S3Resource
from raster_catalog.connectors.settings import SettingsResource
from raster_catalog.models.models import SourceEntry
from raster_catalog.sources import build_source
from raster_catalog.triggers.jobs import catalog_ingest_job


def _detect_source_changes(
    context: SensorEvaluationContext,
    source: Iterable[SourceEntry],
) -> Generator[RunRequest, None, None]:
    """Detect added or removed files by comparing the listing with the cursor.

    The cursor holds the last listing and a change counter. One rebuild is
    requested per change, keyed by the counter and the listing digest, so a
    listing seen before still triggers a rebuild when the source returns to it.

    :param context: Sensor evaluation context
    :param source: Source enumerator
    :yields: RunRequest when the listing changed
    """
    all_files = sorted(entry.source_locator for entry in source)
    previous = json.loads(context.cursor) if context.cursor else {"files": [], "generation": 0}
    previous_files = previous["files"]

    added = sorted(set(all_files) - set(previous_files))
    removed = sorted(set(previous_files) - set(all_files))
    generation = previous["generation"] + 1 if added or removed else previous["generation"]
    context.update_cursor(json.dumps({"files": all_files, "generation": generation}))

    if added or removed:
        context.log.info(f"Catalog source changed: {len(added)} added, {len(removed)} removed")
        digest = hashlib.sha256("\n".join(all_files).encode("utf-8")).hexdigest()
        yield RunRequest(run_key=f"{generation}-{digest}")


def create_source_sensor(job: Any, name: str) -> Any:
    """Create catalog source sensor.

    :param job: Asset job to trigger
    :param name: Sensor name
    :returns: Configured sensor function
    """

    @sensor(job=job, minimum_interval_seconds=30, default_status=DefaultSensorStatus.RUNNING, name=name)
    def sensor_fn(
        context: SensorEvaluationContext, s3: S3Resource, settings: SettingsResource
    ) -> Generator[RunRequest, None, None]:
        yield from _detect_source_changes(context, build_source(settings, s3))

    return sensor_fn


catalog_source_sensor = create_source_sensor(job=catalog_ingest_job, name="catalog_source_sensor")
