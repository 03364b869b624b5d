"""
Reference Resolver - Maps natural keys (location code, UPC) to store ids.

Entities missing from the store are created on first sight: one multi-row
insert per entity type, falling back to one-by-one creation when the batch
insert fails. A failed single create is treated as "already exists" and the
key is re-fetched; a key that still cannot be resolved is left out of the
map and logged, so only the affected transactions are skipped.
"""
import logging
from typing import List, Dict, Any, Callable

from .errors import StoreError, ResolutionError
from .models import ReferenceMaps, utc_now
from .schema import CanonicalTransaction


def unique_in_order(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


class ReferenceResolver:

    def __init__(self, store):
        self.store = store

    def resolve(self, transactions: List[CanonicalTransaction]) -> ReferenceMaps:
        maps = ReferenceMaps()

        location_codes = unique_in_order([tx["location_code"] for tx in transactions])
        maps.locations = self._resolve_keys(
            entity="locations",
            key_field="name",
            keys=location_codes,
            fetch=self.store.fetch_locations,
            insert=self.store.insert_locations,
            build_row=self._new_location,
        )
        maps.unresolved_locations = [c for c in location_codes if c not in maps.locations]

        upc_codes = unique_in_order([tx["upc_code"] for tx in transactions])
        maps.products = self._resolve_keys(
            entity="products",
            key_field="sku",
            keys=upc_codes,
            fetch=self.store.fetch_products,
            insert=self.store.insert_products,
            build_row=self._new_product,
        )
        maps.unresolved_products = [c for c in upc_codes if c not in maps.products]

        logging.info(
            f"Resolved {len(maps.locations)}/{len(location_codes)} locations, "
            f"{len(maps.products)}/{len(upc_codes)} products"
        )
        return maps

    def _resolve_keys(self, entity: str, key_field: str, keys: List[str],
                      fetch: Callable, insert: Callable, build_row: Callable) -> Dict[str, Any]:
        if not keys:
            return {}

        try:
            existing = fetch(keys)
        except StoreError as e:
            raise ResolutionError(f"Failed to fetch {entity}", details=e.details) from e

        id_map = {row[key_field]: row["id"] for row in existing}
        missing = [k for k in keys if k not in id_map]
        if not missing:
            return id_map

        logging.info(f"Creating {len(missing)} new {entity}: {missing}")
        try:
            created = insert([build_row(k) for k in missing])
            for row in created:
                id_map[row[key_field]] = row["id"]
        except StoreError as e:
            logging.warning(f"Batch create of {entity} failed ({e.details}), creating one by one")
            for key in missing:
                self._create_one(entity, key_field, key, id_map, fetch, insert, build_row)

        return id_map

    def _create_one(self, entity: str, key_field: str, key: str, id_map: Dict[str, Any],
                    fetch: Callable, insert: Callable, build_row: Callable) -> None:
        try:
            for row in insert([build_row(key)]):
                id_map[row[key_field]] = row["id"]
            return
        except StoreError as e:
            logging.warning(f"Create {entity} '{key}' failed ({e.details}), re-fetching")

        # Another upload may have created it first
        try:
            for row in fetch([key]):
                id_map[row[key_field]] = row["id"]
        except StoreError as e:
            logging.error(f"Re-fetch of {entity} '{key}' failed: {e.details}")

        if key not in id_map:
            logging.error(f"Could not resolve {entity} '{key}'; its transactions will be skipped")

    def _new_location(self, code: str) -> Dict[str, Any]:
        now = utc_now()
        return {"name": code, "created_at": now, "updated_at": now}

    def _new_product(self, sku: str) -> Dict[str, Any]:
        now = utc_now()
        return {
            "sku": sku,
            "name": f"Product {sku}",
            "unit_price": 0,
            "created_at": now,
            "updated_at": now,
        }
