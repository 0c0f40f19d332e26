"""Typed errors raised by the catalog store and the query pipeline.

Every error carries the HTTP status the API answers with, so the routing layer
maps them with a single handler.
"""

from typing import Any


class CatalogError(Exception):
    """Base class for catalog errors."""

    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize catalog error.

        :param message: Human-readable error message
        :param details: Additional details for the response body
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def code(self) -> str:
        return type(self).__name__


class NotFound(CatalogError):
    status_code = 404


class CollectionNotFound(NotFound):
    def __init__(self, collection_id: str) -> None:
        super().__init__(f"Collection not found: {collection_id}", {"collection_id": collection_id})
        self.collection_id = collection_id


class ItemNotFound(NotFound):
    def __init__(self, collection_id: str, item_id: str) -> None:
        super().__init__(
            f"Item not found: {item_id} in collection {collection_id}",
            {"collection_id": collection_id, "item_id": item_id},
        )
        self.collection_id = collection_id
        self.item_id = item_id


class DuplicateItemId(CatalogError):
    """Raised when an item id is already catalogued, in any collection."""

    status_code = 409

    def __init__(self, item_id: str, existing_collection_id: str) -> None:
        super().__init__(
            f"Item id {item_id} already exists in collection {existing_collection_id}",
            {"item_id": item_id, "existing_collection_id": existing_collection_id},
        )
        self.item_id = item_id
        self.existing_collection_id = existing_collection_id


class StoreUnavailable(CatalogError):
    """Raised when a catalog store backend cannot be read or written."""

    status_code = 503


class CatalogClientError(CatalogError):
    """Base class for malformed queries."""

    status_code = 400


class UnsupportedSortKey(CatalogClientError):
    def __init__(self, sort_key: str, supported: tuple[str, ...]) -> None:
        super().__init__(
            f"sortby currently only supports: {', '.join(supported)} (got `{sort_key}`)",
            {"sortby": sort_key, "supported": list(supported)},
        )


class InvalidLimit(CatalogClientError):
    def __init__(self, limit: Any) -> None:
        super().__init__(f"limit must be a positive integer (got `{limit}`)", {"limit": str(limit)})


class FilterRequired(CatalogClientError):
    def __init__(self) -> None:
        super().__init__("sortby and limit are only supported together with an `intersects` or `contains` filter")


class InvalidPredicateGeometryType(CatalogClientError):
    def __init__(self, predicate: str, geometry_type: str) -> None:
        super().__init__(
            f"`{predicate}` requires a Polygon or MultiPolygon geometry (got {geometry_type})",
            {"predicate": predicate, "geometry_type": geometry_type},
        )


class InvalidGeometry(CatalogClientError):
    def __init__(self, parameter: str, reason: str) -> None:
        super().__init__(
            f"Invalid WKT in `{parameter}` query param: {reason}. Example of a valid query: "
            f"?{parameter}=POLYGON ((30 10, 40 40, 20 40, 10 20, 30 10))",
            {"parameter": parameter},
        )


class InvalidBbox(CatalogClientError):
    def __init__(self, bbox: Any) -> None:
        super().__init__(
            "Invalid bbox. bbox must contain 4 numbers in the following format: bbox=minx,miny,maxx,maxy",
            {"bbox": str(bbox)[:100]},
        )


class ConflictingPredicates(CatalogClientError):
    def __init__(self, supplied: list[str]) -> None:
        super().__init__(
            f"Use only one of: bbox, intersects or contains (got {', '.join(supplied)})",
            {"supplied": supplied},
        )
