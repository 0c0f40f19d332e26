"""Raster metadata extraction for catalog ingestion."""

from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Any

import numpy as np
import rasterio
import rasterio.warp
from rasterio._err import CPLE_BaseError
from rasterio.errors import RasterioError
from shapely.errors import ShapelyError
from shapely.geometry import box, mapping, shape

from raster_catalog.config.constants import (
    CATALOG_CRS,
    METADATA_CLOUD_COVERAGE_KEY,
    METADATA_DESCRIPTION_KEY,
    METADATA_TIMESTAMP_KEY,
)
from raster_catalog.models.models import ExtractedMetadata, ExtractionResult, Unreadable, validate_footprint

MetadataExtractor = Callable[[str], ExtractionResult]


def item_id_from_locator(source_locator: str) -> str:
    """Item ID for a file path or object URI: the file name without its extension."""
    return PurePosixPath(source_locator.replace("\\", "/")).stem


def resolution_from_transform(transform: Any) -> tuple[float, float]:
    """Pixel size along x and y, skew included.

    :param transform: Affine geotransform
    :returns: Tuple of (x_resolution, y_resolution) in map units
    """
    return float(np.hypot(transform.a, transform.b)), float(np.hypot(transform.e, transform.d))


def footprint_from_dataset(src: Any) -> dict[str, Any]:
    """Footprint of a dataset's extent as a GeoJSON polygon in EPSG:4326.

    :param src: Open rasterio dataset
    :returns: GeoJSON geometry dictionary
    """
    native = mapping(box(*src.bounds))
    transformed = rasterio.warp.transform_geom(src_crs=src.crs, dst_crs=CATALOG_CRS, geom=native)
    footprint: dict[str, Any] = mapping(shape(transformed))
    return footprint


def _parse_cloud_coverage(tags: dict[str, str]) -> float | None:
    raw = tags.get(METADATA_CLOUD_COVERAGE_KEY)
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def _parse_timestamp(tags: dict[str, str]) -> str:
    raw = tags.get(METADATA_TIMESTAMP_KEY)
    if raw:
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00")).astimezone(timezone.utc).isoformat()
        except ValueError:
            pass
    return datetime.now(timezone.utc).isoformat()


def properties_from_dataset(src: Any, source_locator: str) -> dict[str, Any]:
    """Item properties reported for an open dataset.

    :param src: Open rasterio dataset
    :param source_locator: Path or URI of the dataset
    :returns: Properties dictionary
    """
    tags = src.tags()
    x_res, y_res = resolution_from_transform(src.transform)
    return {
        "title": item_id_from_locator(source_locator),
        "description": tags.get(METADATA_DESCRIPTION_KEY),
        "datetime": _parse_timestamp(tags),
        "spatial_resolution": (x_res + y_res) / 2.0,
        "crs": src.crs.to_string(),
        "num_bands": src.count,
        "cloud_coverage": _parse_cloud_coverage(tags),
    }


def extract_metadata(source_locator: str, env_options: dict[str, Any] | None = None) -> ExtractionResult:
    """Open a raster and report its footprint, bbox and properties.

    Files that cannot be opened, have no CRS or a CRS with no transformation
    to EPSG:4326, or yield an unusable footprint are reported as `Unreadable`
    rather than raised.

    :param source_locator: Local path or `s3://` URI
    :param env_options: Optional GDAL options for `rasterio.Env`
    :returns: ExtractedMetadata or Unreadable
    """
    try:
        with rasterio.Env(**(env_options or {})), rasterio.open(source_locator) as src:
            if src.crs is None:
                return Unreadable(source_locator=source_locator, reason="dataset has no CRS")
            footprint = footprint_from_dataset(src)
            properties = properties_from_dataset(src, source_locator)
    except (RasterioError, CPLE_BaseError, OSError, ValueError) as e:
        return Unreadable(source_locator=source_locator, reason=str(e))

    try:
        geometry = validate_footprint(footprint)
    except (ValueError, ShapelyError) as e:
        return Unreadable(source_locator=source_locator, reason=str(e))

    return ExtractedMetadata(footprint=footprint, bbox=geometry.bounds, properties=properties)


def make_extractor(env_options: dict[str, Any] | None = None) -> MetadataExtractor:
    """Bind GDAL options to `extract_metadata`.

    :param env_options: GDAL options for `rasterio.Env`
    :returns: Metadata extractor
    """

    def extractor(source_locator: str) -> ExtractionResult:
        return extract_metadata(source_locator, env_options=env_options)

    return extractor
