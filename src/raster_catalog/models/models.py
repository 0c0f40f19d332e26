"""Data models for the raster catalog."""

from enum import Enum
from functools import cached_property
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field as PydanticField, field_validator
from shapely.errors import ShapelyError
from shapely.geometry import shape
from shapely.geometry.base import BaseGeometry

from raster_catalog.config.constants import POLYGONAL_GEOMETRY_TYPES

BBox = tuple[float, float, float, float]


def validate_footprint(footprint: dict[str, Any]) -> BaseGeometry:
    """Check that a GeoJSON geometry is a usable footprint.

    :param footprint: GeoJSON geometry dictionary
    :returns: Shapely geometry
    :raises ValueError: If the geometry is not a non-empty, valid polygon or multipolygon
    """
    try:
        geometry = shape(footprint)
    except (AttributeError, KeyError, TypeError, ValueError, ShapelyError) as e:
        raise ValueError(f"footprint is not a GeoJSON geometry: {e}") from e
    if geometry.geom_type not in POLYGONAL_GEOMETRY_TYPES:
        raise ValueError(f"footprint must be a Polygon or MultiPolygon, got {geometry.geom_type}")
    if geometry.is_empty:
        raise ValueError("footprint is empty")
    if not geometry.is_valid:
        raise ValueError("footprint is not a valid geometry")
    return geometry


class Predicate(str, Enum):
    """Spatial predicate kinds accepted by collection queries."""

    INTERSECTS = "intersects"
    CONTAINS = "contains"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class SortKey(BaseModel):
    """Sort key parsed from a `sortby` parameter (`+field`, `-field` or `field`)."""

    model_config = ConfigDict(frozen=True)

    field: str = PydanticField(..., description="Property to sort on")
    direction: SortDirection = PydanticField(default=SortDirection.ASC, description="Sort direction")

    @classmethod
    def parse(cls, raw: str) -> "SortKey":
        value = raw.strip()
        if value.startswith("-"):
            return cls(field=value[1:].strip(), direction=SortDirection.DESC)
        if value.startswith("+"):
            value = value[1:].strip()
        return cls(field=value)


class Item(BaseModel):
    """One catalogued raster dataset.

    :param id: Item ID, unique across the catalog
    :param collection_id: ID of the owning collection
    :param footprint: GeoJSON Polygon or MultiPolygon in EPSG:4326
    :param bbox: Bounding box of the footprint
    :param properties: Properties reported by the metadata extractor
    :param source_locator: Path or URI of the source file
    """

    model_config = ConfigDict(frozen=True)

    id: str = PydanticField(..., min_length=1, description="Item ID derived from the file name")
    collection_id: str = PydanticField(..., min_length=1, description="ID of the owning collection")
    footprint: dict[str, Any] = PydanticField(..., description="GeoJSON footprint in EPSG:4326")
    bbox: BBox = PydanticField(..., description="Bounding box of the footprint")
    properties: dict[str, Any] = PydanticField(default_factory=dict, description="Item properties")
    source_locator: str = PydanticField(..., description="Path or URI back to the source file")

    @field_validator("footprint")
    @classmethod
    def _check_footprint(cls, value: dict[str, Any]) -> dict[str, Any]:
        validate_footprint(value)
        return value

    @cached_property
    def geometry(self) -> BaseGeometry:
        """Shapely geometry of the footprint."""
        return shape(self.footprint)

    @classmethod
    def from_footprint(
        cls,
        item_id: str,
        collection_id: str,
        footprint: dict[str, Any],
        properties: dict[str, Any],
        source_locator: str,
    ) -> "Item":
        """Create Item, deriving the bbox from the footprint.

        :param item_id: Item ID
        :param collection_id: Collection ID
        :param footprint: GeoJSON footprint
        :param properties: Item properties
        :param source_locator: Source path or URI
        :returns: Item instance
        """
        bounds = validate_footprint(footprint).bounds
        return cls(
            id=item_id,
            collection_id=collection_id,
            footprint=footprint,
            bbox=bounds,
            properties=properties,
            source_locator=source_locator,
        )


class Collection(BaseModel):
    """Group of items discovered under the same directory or bucket prefix."""

    model_config = ConfigDict(frozen=True)

    id: str = PydanticField(..., min_length=1, description="Collection ID derived from the directory name")
    title: str = PydanticField(..., description="Collection title")
    description: str = PydanticField(..., description="Collection description")
    item_ids: tuple[str, ...] = PydanticField(default=(), description="Member item IDs in discovery order")

    @classmethod
    def named(cls, collection_id: str) -> "Collection":
        return cls(id=collection_id, title=collection_id, description=collection_id)


class SourceEntry(NamedTuple):
    """Candidate file produced by a source enumerator."""

    source_locator: str
    grouping_path: str


class ExtractedMetadata(BaseModel):
    """Metadata reported for a raster that could be opened."""

    footprint: dict[str, Any] = PydanticField(..., description="GeoJSON footprint in EPSG:4326")
    bbox: BBox = PydanticField(..., description="Bounding box of the footprint")
    properties: dict[str, Any] = PydanticField(default_factory=dict, description="Raster properties")


class Unreadable(BaseModel):
    """Extraction failure for a single source entry."""

    source_locator: str = PydanticField(..., description="Path or URI of the entry")
    reason: str = PydanticField(..., description="Why the entry could not be read")


ExtractionResult = ExtractedMetadata | Unreadable


class QueryFilter(BaseModel):
    """Parsed, validated query parameters for a single request."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    predicate: Predicate | None = PydanticField(default=None, description="Spatial predicate")
    geometry: BaseGeometry | None = PydanticField(default=None, description="Query geometry in EPSG:4326")
    sortby: SortKey | None = PydanticField(default=None, description="Sort key")
    limit: int | None = PydanticField(default=None, description="Maximum number of features")

    @property
    def has_spatial_filter(self) -> bool:
        return self.predicate is not None

    @property
    def has_ordering(self) -> bool:
        return self.sortby is not None or self.limit is not None


class IngestionReport(BaseModel):
    """Outcome of one ingestion run."""

    ingested: int = PydanticField(default=0, description="Items added to the store")
    skipped: int = PydanticField(default=0, description="Entries without a collection or unreadable")
    duplicates: int = PydanticField(default=0, description="Items rejected as duplicate IDs")
    collection_ids: list[str] = PydanticField(default_factory=list, description="Collections that received items")
