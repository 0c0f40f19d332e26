from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from raster_catalog.api import stac_api
from raster_catalog.connectors.settings import SettingsResource
from raster_catalog.storage import InMemoryCatalogStore

BASE_URL = "http://testserver/"
INNER_POLYGON = "POLYGON ((3 3, 4 3, 4 4, 3 4, 3 3))"


@pytest.fixture
def client(make_item) -> TestClient:
    store = InMemoryCatalogStore()
    store.add_items(
        "imagery",
        [
            make_item("ten", (0, 0, 10, 10), spatial_resolution=2.0),
            make_item("five", (2, 2, 7, 7), spatial_resolution=0.5),
            make_item("twenty", (-5, -5, 15, 15), spatial_resolution=5.0),
        ],
    )
    settings = SettingsResource(base_url="http://testserver", service_id="test-catalog")
    return TestClient(stac_api.create_app(store, settings))


def test_landing_page_links_collections(client: TestClient) -> None:
    response = client.get("/")

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == "test-catalog"
    assert {"rel": "child", "href": f"{BASE_URL}collections/imagery/", "type": "application/json"} in body["links"]


def test_conformance(client: TestClient) -> None:
    assert client.get("/conformance").json()["conformsTo"]


def test_list_collections(client: TestClient) -> None:
    body = client.get("/collections").json()
    assert [c["id"] for c in body["collections"]] == ["imagery"]


def test_get_collection_without_filter_returns_stac_collection(client: TestClient) -> None:
    """
    Test that a collection request without a predicate renders the STAC Collection.

    Verifies the extent is the union of item bboxes and item links keep insertion order.
    """
    response = client.get("/collections/imagery")

    assert response.status_code == 200
    body = response.json()
    assert body["type"] == "Collection"
    assert body["extent"]["spatial"]["bbox"] == [[-5.0, -5.0, 15.0, 15.0]]
    item_links = [link["href"] for link in body["links"] if link["rel"] == "item"]
    assert item_links == [f"{BASE_URL}collections/imagery/{name}" for name in ("ten", "five", "twenty")]


def test_contains_sortby_limit_returns_single_feature(client: TestClient) -> None:
    response = client.get(
        "/collections/imagery",
        params={"contains": INNER_POLYGON, "sortby": "spatial_resolution", "limit": "1"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["type"] == "FeatureCollection"
    assert body["numberReturned"] == 1
    feature = body["features"][0]
    assert feature["id"] == "five"
    assert feature["properties"]["spatial_resolution"] == 0.5
    assert "source_locator" not in feature["properties"]
    assert feature["assets"] == {}


def test_unknown_collection_is_404(client: TestClient) -> None:
    response = client.get("/collections/missing", params={"intersects": INNER_POLYGON})

    assert response.status_code == 404
    assert response.json()["code"] == "CollectionNotFound"


@pytest.mark.parametrize(
    ("params", "code"),
    [
        ({"sortby": "spatial_resolution"}, "FilterRequired"),
        ({"limit": "2"}, "FilterRequired"),
        ({"intersects": INNER_POLYGON, "sortby": "cloud_coverage"}, "UnsupportedSortKey"),
        ({"intersects": INNER_POLYGON, "limit": "0"}, "InvalidLimit"),
        ({"intersects": INNER_POLYGON, "limit": "many"}, "InvalidLimit"),
        ({"intersects": "POLYGON ((0 0"}, "InvalidGeometry"),
        ({"contains": "POINT (1 1)"}, "InvalidPredicateGeometryType"),
        ({"intersects": INNER_POLYGON, "contains": INNER_POLYGON}, "ConflictingPredicates"),
    ],
)
def test_malformed_queries_are_400(client: TestClient, params: dict[str, str], code: str) -> None:
    response = client.get("/collections/imagery", params=params)

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == code
    assert body["description"]


def test_get_item_by_both_routes(client: TestClient) -> None:
    """
    Test that an item resolves both at its items/ route and at the rendered self link.
    """
    nested = client.get("/collections/imagery/items/five")
    linked = client.get("/collections/imagery/five")

    assert nested.status_code == linked.status_code == 200
    assert nested.json() == linked.json()
    self_link = next(link for link in nested.json()["links"] if link["rel"] == "self")
    assert self_link["href"] == f"{BASE_URL}collections/imagery/five"


def test_unknown_item_is_404(client: TestClient) -> None:
    response = client.get("/collections/imagery/items/missing")
    assert response.status_code == 404
    assert response.json()["details"] == {"collection_id": "imagery", "item_id": "missing"}


def test_search_allows_sort_without_filter(client: TestClient) -> None:
    response = client.post("/stac/search", json={"sortby": "-spatial_resolution", "limit": 2})

    assert response.status_code == 200
    assert [f["id"] for f in response.json()["features"]] == ["twenty", "ten"]


@pytest.mark.parametrize("limit", [2.5, 0, "many", True, [1]])
def test_search_with_malformed_limit_is_400(client: TestClient, limit) -> None:
    """
    Test that a malformed search limit is a typed InvalidLimit rather than a request validation error.
    """
    response = client.post("/stac/search", json={"bbox": [0, 0, 1, 1], "limit": limit})

    assert response.status_code == 400
    assert response.json()["code"] == "InvalidLimit"


def test_search_by_bbox(client: TestClient) -> None:
    response = client.post("/stac/search", json={"bbox": [11, 11, 12, 12]})
    assert [f["id"] for f in response.json()["features"]] == ["twenty"]


def test_build_app_from_env_ingests_directory(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, write_geotiff
) -> None:
    """
    Test that the app factory ingests the configured directory at startup.
    """
    write_geotiff(tmp_path / "imagery" / "scene.tif")
    monkeypatch.setenv("CATALOG_DIR", str(tmp_path))
    monkeypatch.setenv("CATALOG_BACKEND", "memory")

    client = TestClient(stac_api.build_app_from_env())

    assert client.get("/collections/imagery/items/scene").status_code == 200
