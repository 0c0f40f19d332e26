"""Catalog store backends holding collections and items.

Callers depend only on `CatalogStore`. Writes happen at ingestion time; the
query pipeline only reads. Every backend publishes a collection's batch of
new items at once, so a reader sees either none or all of a batch.
"""

import json
import os
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path

import geopandas as gpd
from dagster import get_dagster_logger
from shapely.geometry import mapping

from raster_catalog.config.constants import CATALOG_CRS
from raster_catalog.connectors.settings import SettingsResource
from raster_catalog.exceptions import CollectionNotFound, DuplicateItemId, ItemNotFound, StoreUnavailable
from raster_catalog.models.models import Collection, Item

logger = get_dagster_logger(__name__)


class CatalogStore(ABC):
    """Storage-agnostic read/write contract for the catalog."""

    @abstractmethod
    def get_collection(self, collection_id: str) -> Collection:
        """Get collection by ID.

        :raises CollectionNotFound: If the collection does not exist
        """

    @abstractmethod
    def list_collections(self) -> list[Collection]:
        """List collections in creation order."""

    @abstractmethod
    def list_items(self, collection_id: str) -> list[Item]:
        """List the items of a collection in insertion order.

        :raises CollectionNotFound: If the collection does not exist
        """

    @abstractmethod
    def add_items(self, collection_id: str, items: Iterable[Item]) -> list[DuplicateItemId]:
        """Append items to a collection, creating the collection if needed.

        Accepted items become visible together. Items whose ID is already
        catalogued, or repeated within the batch, are rejected.

        :param collection_id: Collection ID
        :param items: Items to append
        :returns: Rejected duplicates
        """

    def add_item(self, collection_id: str, item: Item) -> None:
        """Append one item to a collection, creating the collection if needed.

        :raises DuplicateItemId: If the item ID is already catalogued
        """
        rejected = self.add_items(collection_id, [item])
        if rejected:
            raise rejected[0]

    def get_item(self, collection_id: str, item_id: str) -> Item:
        """Get an item of a collection by ID.

        :raises CollectionNotFound: If the collection does not exist
        :raises ItemNotFound: If the collection has no such item
        """
        for item in self.list_items(collection_id):
            if item.id == item_id:
                return item
        raise ItemNotFound(collection_id, item_id)

    def all_items(self) -> list[Item]:
        """List every item, collection by collection."""
        items: list[Item] = []
        for collection in self.list_collections():
            items.extend(self.list_items(collection.id))
        return items


class InMemoryCatalogStore(CatalogStore):
    """Reference backend keeping the catalog in process memory.

    Writers are serialised by a lock. Member tuples are replaced, never
    mutated, so readers take no lock.
    """

    def __init__(self) -> None:
        self._write_lock = threading.Lock()
        self._collections: dict[str, Collection] = {}
        self._members: dict[str, tuple[Item, ...]] = {}
        self._item_index: dict[str, str] = {}

    def get_collection(self, collection_id: str) -> Collection:
        try:
            return self._collections[collection_id]
        except KeyError:
            raise CollectionNotFound(collection_id) from None

    def list_collections(self) -> list[Collection]:
        return list(self._collections.values())

    def list_items(self, collection_id: str) -> list[Item]:
        try:
            return list(self._members[collection_id])
        except KeyError:
            raise CollectionNotFound(collection_id) from None

    def add_items(self, collection_id: str, items: Iterable[Item]) -> list[DuplicateItemId]:
        with self._write_lock:
            rejected, accepted = self._stage(collection_id, items)
            if accepted:
                members = self._members.get(collection_id, ()) + tuple(accepted)
                # Nothing is published unless the backend accepted the batch.
                self._persist(self._catalog_with(collection_id, members))
                self._publish(collection_id, members)
        return rejected

    def _stage(self, collection_id: str, items: Iterable[Item]) -> tuple[list[DuplicateItemId], list[Item]]:
        """Split a batch into accepted items and rejected duplicates, without publishing."""
        accepted: list[Item] = []
        rejected: list[DuplicateItemId] = []
        batch_ids: set[str] = set()
        for item in items:
            if item.collection_id != collection_id:
                raise ValueError(f"Item {item.id} belongs to {item.collection_id}, not {collection_id}")
            owner = self._item_index.get(item.id)
            if owner is not None or item.id in batch_ids:
                rejected.append(DuplicateItemId(item.id, owner or collection_id))
                continue
            batch_ids.add(item.id)
            accepted.append(item)
        return rejected, accepted

    def _catalog_with(self, collection_id: str, members: tuple[Item, ...]) -> list[Item]:
        """Every item the catalog holds once `members` replaces a collection's items."""
        items: list[Item] = []
        for existing_id in self._collections:
            items.extend(members if existing_id == collection_id else self._members[existing_id])
        if collection_id not in self._collections:
            items.extend(members)
        return items

    def _publish(self, collection_id: str, members: tuple[Item, ...]) -> None:
        collection = self._collections.get(collection_id) or Collection.named(collection_id)
        collection = collection.model_copy(update={"item_ids": tuple(item.id for item in members)})

        # Members are published before the collection so a reader resolving the
        # collection first never sees item IDs it cannot list.
        self._members[collection_id] = members
        self._collections[collection_id] = collection
        for item in members:
            self._item_index[item.id] = collection_id

    def _persist(self, items: list[Item]) -> None:
        """Hook run under the write lock before a batch is published.

        :param items: Every item of the catalog including the new batch
        :raises StoreUnavailable: If the backend rejects the write
        """


def write_geoparquet_items(items: list[Item], path: str | Path) -> Path:
    """Write items to a GeoParquet file, in list order.

    The file is written next to its destination and moved into place, so a
    concurrent reader never opens a partial file.

    :param items: Items to write
    :param path: Destination path
    :returns: Destination path
    :raises StoreUnavailable: If the file cannot be written
    """
    destination = Path(path)
    gdf = gpd.GeoDataFrame(
        {
            "id": [item.id for item in items],
            "collection_id": [item.collection_id for item in items],
            "source_locator": [item.source_locator for item in items],
            "properties": [json.dumps(item.properties, sort_keys=True, default=str) for item in items],
        },
        geometry=gpd.GeoSeries([item.geometry for item in items], crs=CATALOG_CRS),
    )

    tmp_path = destination.with_name(f".{destination.name}.tmp")
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        gdf.to_parquet(tmp_path, engine="pyarrow", index=False)
        os.replace(tmp_path, destination)
    except (OSError, ValueError) as e:
        raise StoreUnavailable(f"Could not write catalog snapshot to {destination}: {e}") from e

    logger.debug(f"Wrote {len(items)} items to {destination}")
    return destination


def write_geoparquet_snapshot(store: CatalogStore, path: str | Path) -> Path:
    """Write every item of a store to a GeoParquet file.

    :param store: Catalog store
    :param path: Destination path
    :returns: Destination path
    :raises StoreUnavailable: If the file cannot be written
    """
    return write_geoparquet_items(store.all_items(), path)


def read_geoparquet_snapshot(path: str | Path) -> list[Item]:
    """Read items from a GeoParquet snapshot, in file order.

    :param path: Snapshot path
    :returns: Items
    :raises StoreUnavailable: If the file cannot be read
    """
    try:
        gdf = gpd.read_parquet(path)
    except (OSError, ValueError) as e:
        raise StoreUnavailable(f"Could not read catalog snapshot {path}: {e}") from e

    items = []
    for row in gdf.itertuples(index=False):
        try:
            item = Item.from_footprint(
                item_id=row.id,
                collection_id=row.collection_id,
                footprint=mapping(row.geometry),
                properties=json.loads(row.properties),
                source_locator=row.source_locator,
            )
        except ValueError as e:
            raise StoreUnavailable(f"Corrupt row {row.id} in catalog snapshot {path}: {e}") from e
        items.append(item)
    return items


class GeoParquetCatalogStore(InMemoryCatalogStore):
    """File-based backend persisting the catalog to a GeoParquet file.

    Reads are served from memory; the file is loaded on construction and
    rewritten before every batch is published.
    """

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self.path = Path(path)
        if self.path.exists():
            self._load()

    def _load(self) -> None:
        grouped: dict[str, list[Item]] = {}
        for item in read_geoparquet_snapshot(self.path):
            grouped.setdefault(item.collection_id, []).append(item)
        with self._write_lock:
            for collection_id, items in grouped.items():
                rejected, accepted = self._stage(collection_id, items)
                for duplicate in rejected:
                    logger.warning(f"Ignoring duplicate in {self.path}: {duplicate.message}")
                if accepted:
                    self._publish(collection_id, tuple(accepted))
        logger.info(f"Loaded {sum(len(v) for v in grouped.values())} items from {self.path}")

    def _persist(self, items: list[Item]) -> None:
        write_geoparquet_items(items, self.path)


def create_store(settings: SettingsResource) -> CatalogStore:
    """Create the catalog store selected by settings.

    :param settings: Settings resource
    :returns: Catalog store
    """
    if settings.catalog_backend == "geoparquet":
        return GeoParquetCatalogStore(settings.catalog_snapshot_path)
    return InMemoryCatalogStore()
