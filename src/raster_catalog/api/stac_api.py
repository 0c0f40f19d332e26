"""FastAPI application serving the raster catalog as a STAC API.

The catalog store is built once and handed to `create_app`; request handlers
only read from it.
"""

from typing import Any

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from raster_catalog.config.constants import STAC_CORE_CONFORMANCE
from raster_catalog.connectors.settings import SettingsResource
from raster_catalog.exceptions import CatalogError
from raster_catalog.geospatial.stac_publisher import (
    collection_url,
    create_feature_collection_json,
    create_landing_page_json,
    create_stac_collection_json,
    create_stac_item_json,
)
from raster_catalog.ingestion import ingest_from_settings
from raster_catalog.query import FeatureList, build_query_filter, query_collection, search
from raster_catalog.storage import CatalogStore, create_store


class SearchRequest(BaseModel):
    """Body of the cross-collection search endpoint.

    `limit` is validated by the query pipeline, so any malformed value is an
    `InvalidLimit` rather than a request validation error.
    """

    bbox: list[float] | None = None
    intersects: str | None = None
    contains: str | None = None
    sortby: str | None = None
    limit: Any = None


def get_store(request: Request) -> CatalogStore:
    store: CatalogStore = request.app.state.store
    return store


def get_base_url(request: Request) -> str:
    base_url: str = request.app.state.base_url
    return base_url


def _catalog_error_response(_request: Request, exc: CatalogError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "description": exc.message, **({"details": exc.details} if exc.details else {})},
    )


def create_app(store: CatalogStore, settings: SettingsResource) -> FastAPI:
    """Create the STAC API application for a catalog store.

    :param store: Catalog store to serve
    :param settings: Settings resource
    :returns: FastAPI application
    """
    app = FastAPI(
        title="STAC API",
        description=settings.service_description,
        version="0.1.0",
    )
    app.state.store = store
    app.state.base_url = settings.normalized_base_url()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_exception_handler(CatalogError, _catalog_error_response)

    @app.get("/")
    def landing(
        catalog: CatalogStore = Depends(get_store), base_url: str = Depends(get_base_url)
    ) -> dict[str, Any]:
        """STAC API landing page."""
        return create_landing_page_json(
            settings.service_id,
            settings.service_title,
            settings.service_description,
            catalog.list_collections(),
            base_url,
        )

    @app.get("/conformance")
    def conformance() -> dict[str, Any]:
        return {"conformsTo": [STAC_CORE_CONFORMANCE]}

    @app.get("/collections")
    def list_collections(
        catalog: CatalogStore = Depends(get_store), base_url: str = Depends(get_base_url)
    ) -> dict[str, Any]:
        """List every collection as a STAC Collection."""
        collections = [
            create_stac_collection_json(collection, catalog.list_items(collection.id), base_url)
            for collection in catalog.list_collections()
        ]
        return {"collections": collections, "links": [{"rel": "self", "href": f"{base_url}collections"}]}

    @app.get("/collections/{collection_id}")
    def get_collection(
        collection_id: str,
        intersects: str | None = Query(default=None, description="WKT geometry footprints must intersect"),
        contains: str | None = Query(default=None, description="WKT polygon footprints must fully cover"),
        sortby: str | None = Query(default=None, description="Sort property, e.g. '-spatial_resolution'"),
        limit: str | None = Query(default=None, description="Maximum number of features"),
        catalog: CatalogStore = Depends(get_store),
        base_url: str = Depends(get_base_url),
    ) -> dict[str, Any]:
        """Get a collection, or the features matching a spatial filter.

        Without `intersects` or `contains` the STAC Collection is returned.
        With one of them a FeatureCollection of matching items is returned,
        optionally sorted and limited.

        Example: /collections/imagery?intersects=POLYGON ((30 10, 40 40, 20 40, 10 20, 30 10))
        """
        query_filter = build_query_filter(intersects=intersects, contains=contains, sortby=sortby, limit=limit)
        result = query_collection(catalog, collection_id, query_filter)
        if isinstance(result, FeatureList):
            return create_feature_collection_json(result.items, base_url, collection_url(base_url, collection_id))
        return create_stac_collection_json(result.collection, result.items, base_url)

    @app.get("/collections/{collection_id}/items/{item_id}")
    def get_item(
        collection_id: str,
        item_id: str,
        catalog: CatalogStore = Depends(get_store),
        base_url: str = Depends(get_base_url),
    ) -> dict[str, Any]:
        """Get a STAC Item by ID."""
        return create_stac_item_json(catalog.get_item(collection_id, item_id), base_url)

    # Item links are rendered as /collections/{collection_id}/{item_id}.
    app.add_api_route("/collections/{collection_id}/{item_id}", get_item, methods=["GET"])

    @app.post("/stac/search")
    def search_all_collections(
        params: SearchRequest,
        catalog: CatalogStore = Depends(get_store),
        base_url: str = Depends(get_base_url),
    ) -> dict[str, Any]:
        """Search every collection at once."""
        query_filter = build_query_filter(
            intersects=params.intersects,
            contains=params.contains,
            sortby=params.sortby,
            limit=params.limit,
            bbox=params.bbox,
        )
        result = search(catalog, query_filter)
        return create_feature_collection_json(result.items, base_url, f"{base_url}stac/search")

    return app


def build_app_from_env() -> FastAPI:
    """Build settings and store from the environment, ingesting if the store is empty.

    :returns: FastAPI application
    """
    settings = SettingsResource.create()
    store = create_store(settings)
    if not store.list_collections():
        ingest_from_settings(store, settings)
    return create_app(store, settings)
