"""
Inventory Aggregator - Converts counted sales into stock-level decrements.

Each valid transaction is one unit sold. Sales are grouped per
(location_code, upc_code); every group becomes exactly one inventory update
(existing record, quantity floored at zero) or one insert (new record at
quantity 0 with default stock levels). This only models outflow: initial
stock comes from elsewhere.

The decrement is a read-then-write per pair, so two concurrent uploads on
the same pair can lose an update.
"""
import logging
from collections import OrderedDict
from typing import List, Dict, Tuple, Any, Optional

from .config import Config
from .errors import StoreError
from .load import chunked
from .models import ReferenceMaps, InventoryPlan, InventoryResult, utc_now
from .schema import CanonicalTransaction

SaleKey = Tuple[str, str]


def decrement(quantity: Optional[int], units_sold: int) -> int:
    return max(0, (quantity or 0) - units_sold)


class InventoryAggregator:

    def __init__(self, store, batch_size: int = Config.BATCH_SIZE):
        self.store = store
        self.batch_size = batch_size

    def aggregate(self, transactions: List[CanonicalTransaction], maps: ReferenceMaps,
                  user_id: Optional[str] = None) -> InventoryResult:
        plan = self.plan(transactions, maps, user_id)
        result = self.apply(plan)
        result.skipped = len(plan.skipped)
        return result

    def group_sales(self, transactions: List[CanonicalTransaction]) -> Dict[SaleKey, int]:
        units: Dict[SaleKey, int] = OrderedDict()
        for tx in transactions:
            key = (tx["location_code"], tx["upc_code"])
            units[key] = units.get(key, 0) + 1
        return units

    def plan(self, transactions: List[CanonicalTransaction], maps: ReferenceMaps,
             user_id: Optional[str] = None) -> InventoryPlan:
        plan = InventoryPlan()

        for (location_code, upc_code), units_sold in self.group_sales(transactions).items():
            location_id = maps.locations.get(location_code)
            product_id = maps.products.get(upc_code)

            if location_id is None or product_id is None:
                logging.error(
                    f"Missing location_id or product_id for {location_code}/{upc_code} "
                    f"(location_id={location_id}, product_id={product_id}); skipping"
                )
                plan.skipped.append((location_code, upc_code))
                continue

            try:
                existing = self.store.get_inventory(location_id, product_id)
            except StoreError as e:
                logging.error(f"Failed to check inventory for {location_code}/{upc_code}: {e.details}")
                plan.skipped.append((location_code, upc_code))
                continue

            now = utc_now()
            if existing:
                plan.updates.append({
                    "id": existing["id"],
                    "location_id": location_id,
                    "product_id": product_id,
                    "quantity": decrement(existing.get("quantity"), units_sold),
                    "last_updated": now,
                    "updated_by": user_id,
                })
            else:
                plan.inserts.append({
                    "location_id": location_id,
                    "product_id": product_id,
                    "quantity": 0,
                    "min_stock_level": Config.DEFAULT_MIN_STOCK_LEVEL,
                    "max_stock_level": Config.DEFAULT_MAX_STOCK_LEVEL,
                    "last_updated": now,
                    "updated_by": user_id,
                })

        logging.info(
            f"Inventory plan: {len(plan.updates)} updates, {len(plan.inserts)} inserts, "
            f"{len(plan.skipped)} skipped"
        )
        return plan

    def apply(self, plan: InventoryPlan) -> InventoryResult:
        result = InventoryResult()

        for batch in chunked(plan.updates, self.batch_size):
            try:
                self.store.upsert_inventory(batch)
                result.updated += len(batch)
            except StoreError as e:
                logging.error(f"Failed to update inventory batch: {e.details}")
                result.failed_batches += 1

        for batch in chunked(plan.inserts, self.batch_size):
            try:
                self.store.insert_inventory(batch)
                result.inserted += len(batch)
            except StoreError as e:
                logging.error(f"Failed to insert inventory batch: {e.details}")
                result.failed_batches += 1

        return result
