"""MongoDB Order Store adapter supplying report snapshots."""

from __future__ import annotations

import os
from datetime import tzinfo
from typing import Any, Dict, Iterable, List, Optional

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from ..utils.config import Config
from ..utils.logging import get_logger
from .errors import OrderStoreUnavailable
from .timeutils import DateRange

logger = get_logger(__name__)


class OrderRepository:
    def __init__(
        self,
        url: Optional[str] = None,
        db_name: Optional[str] = None,
        orders_collection: Optional[str] = None,
        items_collection: Optional[str] = None,
        connection_url_env_key: Optional[str] = None,
        config: Optional[Config] = None,
    ) -> None:
        config = config or Config(".env")

        if connection_url_env_key:
            self._url = os.getenv(connection_url_env_key) or config.get("mongo_url")
        else:
            self._url = url or config.get("mongo_url")

        self._db = db_name or config.get("mongo_db")
        self._orders = orders_collection or config.get("orders_collection")
        self._items = items_collection or config.get("items_collection")
        if not self._url:
            raise ValueError("DB_CONNECTION_URL is required")
        self._client: Optional[MongoClient] = None

    def __enter__(self) -> "OrderRepository":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    def connect(self) -> None:
        if self._client is None:
            self._client = MongoClient(self._url, serverSelectionTimeoutMS=5000, tz_aware=True)

    def disconnect(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _collection(self, name: str):
        if self._client is None:
            self.connect()
        return self._client[self._db][name]

    def find_orders(
        self,
        date_range: DateRange,
        statuses: Optional[Iterable[str]] = None,
        tz: Optional[tzinfo] = None,
    ) -> List[Dict[str, Any]]:
        """Fetch orders placed within the range, matching on orderedAt or createdAt."""
        lower, upper = date_range.bounds(tz)
        query: Dict[str, Any] = {
            "$or": [
                {"orderedAt": {"$gte": lower, "$lt": upper}},
                {"orderedAt": None, "createdAt": {"$gte": lower, "$lt": upper}},
            ]
        }
        if statuses:
            query["status"] = {"$in": sorted(statuses)}
        try:
            orders = list(self._collection(self._orders).find(query))
        except PyMongoError as e:
            raise OrderStoreUnavailable(f"Failed to fetch orders for {date_range.start}..{date_range.end}: {e}") from e
        logger.info(f"Fetched {len(orders)} orders for {date_range.start}..{date_range.end}")
        return orders

    def find_items(self, order_ids: Iterable[Any]) -> List[Dict[str, Any]]:
        """Fetch line items belonging to the given orders."""
        ids = [order_id for order_id in order_ids if order_id is not None]
        if not ids:
            return []
        try:
            items = list(self._collection(self._items).find({"orderId": {"$in": ids}}))
        except PyMongoError as e:
            raise OrderStoreUnavailable(f"Failed to fetch items for {len(ids)} orders: {e}") from e
        logger.debug(f"Fetched {len(items)} items for {len(ids)} orders")
        return items

    def find_table_floors(self, tables_collection: str = "tables") -> Dict[Any, Any]:
        """Return the table catalog's ``tableId -> floor`` lookup."""
        try:
            cursor = self._collection(tables_collection).find({}, {"id": 1, "floor": 1})
            return {doc.get("id", doc.get("_id")): doc.get("floor") for doc in cursor}
        except PyMongoError as e:
            raise OrderStoreUnavailable(f"Failed to fetch table floors: {e}") from e
