from collections.abc import Callable
from pathlib import Path
from typing import Any

import numpy as np
import pytest
import rasterio
from affine import Affine
from shapely.geometry import box, mapping

from raster_catalog.models.models import Item


@pytest.fixture
def make_item() -> Callable[..., Item]:
    """
    Factory for Items with a rectangular footprint.

    Returns:
      Callable taking (item_id, bounds, collection_id, spatial_resolution)
    """

    def _make_item(
        item_id: str,
        bounds: tuple[float, float, float, float],
        collection_id: str = "imagery",
        spatial_resolution: float | None = 1.0,
    ) -> Item:
        properties: dict[str, Any] = {"title": item_id}
        if spatial_resolution is not None:
            properties["spatial_resolution"] = spatial_resolution
        return Item.from_footprint(
            item_id=item_id,
            collection_id=collection_id,
            footprint=mapping(box(*bounds)),
            properties=properties,
            source_locator=f"/data/{collection_id}/{item_id}.tif",
        )

    return _make_item


@pytest.fixture
def write_geotiff() -> Callable[..., Path]:
    """
    Factory writing a single-band GeoTIFF for testing.

    Returns:
      Callable taking (path, width, height, transform, crs, tags)
    """

    def _write_geotiff(
        path: Path,
        width: int = 4,
        height: int = 4,
        transform: Affine | None = None,
        crs: str | None = "EPSG:4326",
        tags: dict[str, str] | None = None,
    ) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        transform = transform or Affine.translation(0, 0) * Affine.scale(1, -1)
        data = np.ones((height, width), dtype="float32")
        with rasterio.open(
            path,
            "w",
            driver="GTiff",
            height=height,
            width=width,
            count=1,
            dtype=data.dtype,
            crs=crs,
            transform=transform,
        ) as dst:
            dst.write(data, 1)
            if tags:
                dst.update_tags(**tags)
        return path

    return _write_geotiff
