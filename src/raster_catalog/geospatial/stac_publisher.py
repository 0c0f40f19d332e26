"""Helper functions rendering catalog objects as STAC JSON documents."""

from collections.abc import Sequence
from typing import Any
from urllib.parse import urljoin

from raster_catalog.config.constants import (
    STAC_CORE_CONFORMANCE,
    STAC_MEDIA_TYPE_GEOJSON,
    STAC_MEDIA_TYPE_JSON,
    STAC_VERSION,
)
from raster_catalog.models.models import Collection, Item


def _link(rel: str, href: str, media_type: str = STAC_MEDIA_TYPE_JSON) -> dict[str, str]:
    return {"rel": rel, "href": href, "type": media_type}


def collection_url(base_url: str, collection_id: str) -> str:
    """URL of a collection under the service base URL (with trailing slash)."""
    return urljoin(urljoin(base_url, "collections/"), f"{collection_id}/")


def item_url(base_url: str, collection_id: str, item_id: str) -> str:
    return urljoin(collection_url(base_url, collection_id), item_id)


def spatial_extent(items: Sequence[Item]) -> list[float]:
    """Union of the item bboxes, or the whole world for an empty list.

    :param items: Items
    :returns: [minx, miny, maxx, maxy]
    """
    if not items:
        return [-180.0, -90.0, 180.0, 90.0]
    return [
        min(item.bbox[0] for item in items),
        min(item.bbox[1] for item in items),
        max(item.bbox[2] for item in items),
        max(item.bbox[3] for item in items),
    ]


def create_stac_item_json(item: Item, base_url: str) -> dict[str, Any]:
    """Create STAC Item JSON for a catalogued raster.

    The source locator is internal and is not rendered.

    :param item: Item
    :param base_url: Service base URL
    :returns: STAC Item dictionary
    """
    return {
        "type": "Feature",
        "stac_version": STAC_VERSION,
        "id": item.id,
        "collection": item.collection_id,
        "geometry": item.footprint,
        "bbox": list(item.bbox),
        "properties": dict(item.properties),
        "links": [
            _link("self", item_url(base_url, item.collection_id, item.id), STAC_MEDIA_TYPE_GEOJSON),
            _link("parent", collection_url(base_url, item.collection_id)),
            _link("collection", collection_url(base_url, item.collection_id)),
            _link("root", base_url),
        ],
        "assets": {},
    }


def create_feature_collection_json(items: Sequence[Item], base_url: str, self_href: str) -> dict[str, Any]:
    """Create a GeoJSON FeatureCollection of STAC Items.

    :param items: Items in result order
    :param base_url: Service base URL
    :param self_href: URL of the request
    :returns: FeatureCollection dictionary
    """
    return {
        "type": "FeatureCollection",
        "features": [create_stac_item_json(item, base_url) for item in items],
        "numberReturned": len(items),
        "links": [_link("self", self_href, STAC_MEDIA_TYPE_GEOJSON), _link("root", base_url)],
    }


def create_stac_collection_json(collection: Collection, items: Sequence[Item], base_url: str) -> dict[str, Any]:
    """Create STAC Collection JSON with one item link per member.

    :param collection: Collection
    :param items: Member items in insertion order
    :param base_url: Service base URL
    :returns: STAC Collection dictionary
    """
    return {
        "type": "Collection",
        "stac_version": STAC_VERSION,
        "id": collection.id,
        "title": collection.title,
        "description": collection.description,
        "license": "proprietary",
        "extent": {
            "spatial": {"bbox": [spatial_extent(items)]},
            "temporal": {"interval": [[None, None]]},
        },
        "links": [
            _link("root", base_url),
            _link("self", collection_url(base_url, collection.id)),
            *(_link("item", item_url(base_url, collection.id, item.id), STAC_MEDIA_TYPE_GEOJSON) for item in items),
        ],
    }


def create_landing_page_json(
    service_id: str, title: str, description: str, collections: Sequence[Collection], base_url: str
) -> dict[str, Any]:
    """Create the STAC API landing page.

    :param service_id: Service ID
    :param title: Service title
    :param description: Service description
    :param collections: Catalogued collections
    :param base_url: Service base URL
    :returns: Landing page dictionary
    """
    return {
        "type": "Catalog",
        "stac_version": STAC_VERSION,
        "id": service_id,
        "title": title,
        "description": description,
        "conformsTo": [STAC_CORE_CONFORMANCE],
        "links": [
            _link("root", base_url),
            _link("self", base_url),
            *(_link("child", collection_url(base_url, c.id)) for c in collections),
        ],
    }
