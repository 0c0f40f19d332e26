from pathlib import Path

import pytest
from affine import Affine
from shapely.geometry import box, shape

from raster_catalog.geospatial import raster_ops
from raster_catalog.models.models import ExtractedMetadata, Unreadable

LOCAL_CS_WKT = 'LOCAL_CS["site grid",UNIT["metre",1],AXIS["Easting",EAST],AXIS["Northing",NORTH]]'


def test_extract_metadata_reports_footprint_and_resolution(tmp_path: Path, write_geotiff) -> None:
    """
    Test that a georeferenced raster yields its extent and pixel size.

    Verifies the footprint covers the raster bounds and spatial_resolution is
    the pixel size in map units.
    """
    path = write_geotiff(
        tmp_path / "imagery" / "scene.tif",
        width=5,
        height=5,
        transform=Affine.translation(10, 20) * Affine.scale(2, -2),
    )

    result = raster_ops.extract_metadata(str(path))

    assert isinstance(result, ExtractedMetadata)
    assert result.bbox == pytest.approx((10.0, 10.0, 20.0, 20.0))
    assert shape(result.footprint).equals(box(10, 10, 20, 20))
    assert result.properties["spatial_resolution"] == pytest.approx(2.0)
    assert result.properties["title"] == "scene"
    assert result.properties["num_bands"] == 1
    assert result.properties["crs"] == "EPSG:4326"


def test_extract_metadata_reprojects_to_wgs84(tmp_path: Path, write_geotiff) -> None:
    """
    Test that a projected raster's footprint is reported in longitude and latitude.
    """
    path = write_geotiff(
        tmp_path / "utm.tif",
        width=10,
        height=10,
        transform=Affine.translation(500000, 5000000) * Affine.scale(10, -10),
        crs="EPSG:32633",
    )

    result = raster_ops.extract_metadata(str(path))

    assert isinstance(result, ExtractedMetadata)
    minx, miny, maxx, maxy = result.bbox
    assert 14.9 < minx < maxx < 15.1
    assert 45.0 < miny < maxy < 45.2
    assert result.properties["spatial_resolution"] == pytest.approx(10.0)


def test_extract_metadata_reads_tags(tmp_path: Path, write_geotiff) -> None:
    path = write_geotiff(
        tmp_path / "s2.tif",
        tags={"CLOUD_COVERAGE_ASSESSMENT": "12.5", "PRODUCT_START_TIME": "2021-06-01T10:00:00Z"},
    )

    result = raster_ops.extract_metadata(str(path))

    assert result.properties["cloud_coverage"] == 12.5
    assert result.properties["datetime"] == "2021-06-01T10:00:00+00:00"


def test_extract_metadata_returns_unreadable_for_corrupt_file(tmp_path: Path) -> None:
    """
    Test that a file that is not a raster is reported instead of raised.
    """
    path = tmp_path / "broken.tif"
    path.write_bytes(b"this is not a GeoTIFF")

    result = raster_ops.extract_metadata(str(path))

    assert isinstance(result, Unreadable)
    assert result.source_locator == str(path)


def test_extract_metadata_returns_unreadable_without_crs(tmp_path: Path, write_geotiff) -> None:
    path = write_geotiff(tmp_path / "nocrs.tif", crs=None)

    result = raster_ops.extract_metadata(str(path))

    assert isinstance(result, Unreadable)
    assert "CRS" in result.reason


def test_resolution_from_transform_includes_skew() -> None:
    transform = Affine(3.0, 4.0, 0.0, 0.0, -1.0, 0.0)
    assert raster_ops.resolution_from_transform(transform) == (5.0, 1.0)


@pytest.mark.parametrize(
    ("locator", "expected"),
    [
        ("/data/imagery/scene_01.tif", "scene_01"),
        ("s3://bucket/imagery/scene.TIF", "scene"),
        ("C:\\data\\imagery\\tile.tiff", "tile"),
    ],
)
def test_item_id_from_locator(locator: str, expected: str) -> None:
    assert raster_ops.item_id_from_locator(locator) == expected


def test_make_extractor_binds_env_options(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []
    monkeypatch.setattr(
        raster_ops, "extract_metadata", lambda locator, env_options=None: calls.append((locator, env_options))
    )

    raster_ops.make_extractor({"AWS_HTTPS": "NO"})("s3://bucket/a.tif")

    assert calls == [("s3://bucket/a.tif", {"AWS_HTTPS": "NO"})]



def test_extract_metadata_returns_unreadable_for_untransformable_crs(tmp_path: Path, write_geotiff) -> None:
    """
    Test that a raster in a local engineering CRS is reported instead of raised.

    GDAL cannot transform such a CRS to EPSG:4326 and signals it with its own
    error type rather than a RasterioError.
    """
    path = write_geotiff(tmp_path / "local.tif", crs=LOCAL_CS_WKT)

    result = raster_ops.extract_metadata(str(path))

    assert isinstance(result, Unreadable)
    assert result.source_locator == str(path)
