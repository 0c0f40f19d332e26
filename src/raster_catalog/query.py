"""Query pipeline answering collection queries and catalog searches.

A collection query resolves the collection, then optionally filters by a
spatial predicate, sorts and limits. Without a predicate it answers with the
collection itself; with one it answers with a feature list.
"""

from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict
from shapely.geometry import box
from shapely.geometry.base import BaseGeometry

from raster_catalog.config.constants import SORTABLE_PROPERTIES
from raster_catalog.exceptions import (
    ConflictingPredicates,
    FilterRequired,
    InvalidBbox,
    InvalidLimit,
    UnsupportedSortKey,
)
from raster_catalog.geospatial.predicates import check_predicate_geometry, matching_items, parse_wkt
from raster_catalog.models.models import (
    Collection,
    Item,
    Predicate,
    QueryFilter,
    SortDirection,
    SortKey,
)
from raster_catalog.storage import CatalogStore


class CollectionView(BaseModel):
    """Unfiltered answer: the collection and all of its items."""

    model_config = ConfigDict(frozen=True)

    collection: Collection
    items: tuple[Item, ...]


class FeatureList(BaseModel):
    """Filtered answer: matching items in result order."""

    model_config = ConfigDict(frozen=True)

    items: tuple[Item, ...]


def parse_bbox(bbox: str | Sequence[float]) -> BaseGeometry:
    """Parse `minx,miny,maxx,maxy` into a polygon.

    :param bbox: Comma-separated string or sequence of four numbers
    :returns: Bounding box polygon
    :raises InvalidBbox: If the bbox is malformed or degenerate
    """
    try:
        values = [float(v) for v in bbox.split(",")] if isinstance(bbox, str) else [float(v) for v in bbox]
    except (TypeError, ValueError) as e:
        raise InvalidBbox(bbox) from e
    if len(values) != 4 or values[0] >= values[2] or values[1] >= values[3]:
        raise InvalidBbox(bbox)
    return box(*values)


def parse_limit(limit: Any) -> int:
    """Parse a limit given as an integer or a numeric string.

    :param limit: Raw limit
    :returns: Positive integer
    :raises InvalidLimit: If the limit is not a positive integer
    """
    if isinstance(limit, bool):
        raise InvalidLimit(limit)
    if isinstance(limit, str):
        try:
            limit = int(limit.strip())
        except ValueError as e:
            raise InvalidLimit(limit) from e
    if not isinstance(limit, int) or limit <= 0:
        raise InvalidLimit(limit)
    return limit


def parse_sortby(sortby: str) -> SortKey:
    """Parse a `sortby` parameter.

    :param sortby: `spatial_resolution`, `+spatial_resolution` or `-spatial_resolution`
    :returns: Sort key
    :raises UnsupportedSortKey: If the property is not sortable
    """
    sort_key = SortKey.parse(sortby)
    if sort_key.field not in SORTABLE_PROPERTIES:
        raise UnsupportedSortKey(sort_key.field, SORTABLE_PROPERTIES)
    return sort_key


def build_query_filter(
    intersects: str | None = None,
    contains: str | None = None,
    sortby: str | None = None,
    limit: Any = None,
    bbox: str | Sequence[float] | None = None,
) -> QueryFilter:
    """Validate raw query parameters into a QueryFilter.

    At most one of `intersects`, `contains` and `bbox` may be given; `bbox`
    is an intersects filter.

    :param intersects: WKT geometry the footprints must intersect
    :param contains: WKT polygon the footprints must cover
    :param sortby: Sort parameter
    :param limit: Maximum number of features
    :param bbox: Bounding box the footprints must intersect
    :returns: Query filter
    """
    spatial_params = (("bbox", bbox), ("intersects", intersects), ("contains", contains))
    supplied = [name for name, value in spatial_params if value is not None]
    if len(supplied) > 1:
        raise ConflictingPredicates(supplied)

    predicate: Predicate | None = None
    geometry: BaseGeometry | None = None
    if intersects is not None:
        predicate, geometry = Predicate.INTERSECTS, parse_wkt(intersects, "intersects")
    elif contains is not None:
        predicate, geometry = Predicate.CONTAINS, parse_wkt(contains, "contains")
        check_predicate_geometry(predicate, geometry)
    elif bbox is not None:
        predicate, geometry = Predicate.INTERSECTS, parse_bbox(bbox)

    return QueryFilter(
        predicate=predicate,
        geometry=geometry,
        sortby=parse_sortby(sortby) if sortby is not None else None,
        limit=parse_limit(limit) if limit is not None else None,
    )


def sort_items(items: Sequence[Item], sort_key: SortKey) -> list[Item]:
    """Stable sort on a property; items without the property come last.

    :param items: Items in pre-sort order
    :param sort_key: Sort key
    :returns: Sorted items
    """
    present = [item for item in items if item.properties.get(sort_key.field) is not None]
    missing = [item for item in items if item.properties.get(sort_key.field) is None]
    present.sort(key=lambda item: item.properties[sort_key.field], reverse=sort_key.direction is SortDirection.DESC)
    return present + missing


def limit_items(items: Sequence[Item], limit: int) -> list[Item]:
    if limit <= 0:
        raise InvalidLimit(limit)
    return list(items[:limit])


def apply_filter(items: Sequence[Item], query_filter: QueryFilter) -> list[Item]:
    """Filter, sort and limit items.

    :param items: Candidate items
    :param query_filter: Query filter
    :returns: Result items
    """
    result = list(items)
    if query_filter.predicate is not None and query_filter.geometry is not None:
        result = matching_items(query_filter.predicate, query_filter.geometry, result)
    if query_filter.sortby is not None:
        result = sort_items(result, query_filter.sortby)
    if query_filter.limit is not None:
        result = limit_items(result, query_filter.limit)
    return result


def query_collection(
    store: CatalogStore, collection_id: str, query_filter: QueryFilter | None = None
) -> CollectionView | FeatureList:
    """Answer a query against one collection.

    :param store: Catalog store
    :param collection_id: Collection ID
    :param query_filter: Optional query filter
    :returns: CollectionView without a spatial filter, FeatureList with one
    :raises CollectionNotFound: If the collection does not exist
    :raises FilterRequired: If sorting or limiting is requested without a spatial filter
    """
    collection = store.get_collection(collection_id)
    items = store.list_items(collection_id)

    if query_filter is None or not query_filter.has_spatial_filter:
        if query_filter is not None and query_filter.has_ordering:
            raise FilterRequired()
        return CollectionView(collection=collection, items=tuple(items))

    return FeatureList(items=tuple(apply_filter(items, query_filter)))


def search(store: CatalogStore, query_filter: QueryFilter) -> FeatureList:
    """Search all collections.

    Sorting and limiting apply with or without a spatial filter.

    :param store: Catalog store
    :param query_filter: Query filter
    :returns: FeatureList
    """
    return FeatureList(items=tuple(apply_filter(store.all_items(), query_filter)))
