"""Spatial predicates evaluated between query geometries and item footprints."""

from collections.abc import Iterable

import shapely
from shapely import wkt
from shapely.errors import ShapelyError
from shapely.geometry.base import BaseGeometry

from raster_catalog.config.constants import POLYGONAL_GEOMETRY_TYPES
from raster_catalog.exceptions import InvalidGeometry, InvalidPredicateGeometryType
from raster_catalog.models.models import BBox, Item, Predicate


def parse_wkt(text: str, parameter: str = "intersects") -> BaseGeometry:
    """Parse a well-known text geometry from a query parameter.

    :param text: WKT string
    :param parameter: Name of the query parameter, used in error messages
    :returns: Shapely geometry
    :raises InvalidGeometry: If the text is not non-empty WKT describing a valid geometry
    """
    try:
        geometry = wkt.loads(text.strip())
    except (ShapelyError, ValueError, AttributeError) as e:
        raise InvalidGeometry(parameter, str(e)) from e
    if geometry.is_empty:
        raise InvalidGeometry(parameter, "geometry is empty")
    if not geometry.is_valid:
        raise InvalidGeometry(parameter, shapely.is_valid_reason(geometry))
    return geometry


def check_predicate_geometry(predicate: Predicate, query_geometry: BaseGeometry) -> None:
    """Reject query geometries a predicate is not defined for.

    :param predicate: Spatial predicate
    :param query_geometry: Query geometry
    :raises InvalidPredicateGeometryType: If `contains` is given a non-polygonal geometry
    """
    if predicate is Predicate.CONTAINS and query_geometry.geom_type not in POLYGONAL_GEOMETRY_TYPES:
        raise InvalidPredicateGeometryType(predicate.value, query_geometry.geom_type)


def bboxes_overlap(a: BBox, b: BBox) -> bool:
    """Inclusive bounding box overlap test; touching boxes overlap."""
    return a[0] <= b[2] and b[0] <= a[2] and a[1] <= b[3] and b[1] <= a[3]


def evaluate(
    predicate: Predicate,
    query_geometry: BaseGeometry,
    item_footprint: BaseGeometry,
    footprint_bbox: BBox | None = None,
) -> bool:
    """Evaluate a spatial predicate for one footprint.

    `intersects` is true when the geometries share any point, boundaries
    included. `contains` is true when the footprint covers the whole query
    geometry. Coordinates are taken as-is; there is no antimeridian handling.

    :param predicate: Spatial predicate
    :param query_geometry: Query geometry in EPSG:4326
    :param item_footprint: Item footprint in EPSG:4326
    :param footprint_bbox: Optional cached footprint bbox used to skip disjoint footprints
    :returns: Whether the footprint matches
    :raises InvalidPredicateGeometryType: If `contains` is given a non-polygonal geometry
    """
    check_predicate_geometry(predicate, query_geometry)

    if footprint_bbox is not None and not bboxes_overlap(query_geometry.bounds, footprint_bbox):
        return False

    if predicate is Predicate.INTERSECTS:
        return bool(query_geometry.intersects(item_footprint))
    return bool(item_footprint.covers(query_geometry))


def matching_items(predicate: Predicate, query_geometry: BaseGeometry, items: Iterable[Item]) -> list[Item]:
    """Keep the items whose footprint matches the predicate, in input order.

    :param predicate: Spatial predicate
    :param query_geometry: Query geometry in EPSG:4326
    :param items: Candidate items
    :returns: Matching items
    """
    check_predicate_geometry(predicate, query_geometry)
    shapely.prepare(query_geometry)
    return [item for item in items if evaluate(predicate, query_geometry, item.geometry, footprint_bbox=item.bbox)]
