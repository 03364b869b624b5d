"""
Load Layer - Chunked persistence of validated sales transactions.

The sales insert is the primary record of an upload: the first failing
chunk stops the load and reports how many rows already made it in.
"""
import logging
from typing import List, Dict, Any, Iterator, Optional

from .config import Config
from .errors import StoreError, PersistenceError
from .models import ReferenceMaps
from .schema import CanonicalTransaction


def chunked(items: List[Any], size: int) -> Iterator[List[Any]]:
    for i in range(0, len(items), size):
        yield items[i:i + size]


class SalesLoader:

    def __init__(self, store, batch_size: int = Config.BATCH_SIZE):
        self.store = store
        self.batch_size = batch_size

    def load(self, transactions: List[CanonicalTransaction], upload_id: Any,
             maps: Optional[ReferenceMaps] = None) -> int:
        rows = [self._to_row(tx, upload_id, maps) for tx in transactions]
        unresolved = [r["location_code"] for r in rows if maps is not None and r["location_id"] is None]
        if unresolved:
            logging.warning(
                f"Upload {upload_id}: {len(unresolved)} sales rows saved without a location_id "
                f"(unresolved codes: {sorted(set(unresolved))})"
            )

        inserted = 0
        for batch in chunked(rows, self.batch_size):
            try:
                self.store.insert_sales_transactions(batch)
            except StoreError as e:
                raise PersistenceError(
                    "Failed to insert sales transactions",
                    details=e.details,
                    records_processed=inserted,
                ) from e
            inserted += len(batch)

        logging.info(f"Inserted {inserted} sales transactions for upload {upload_id}")
        return inserted

    def _to_row(self, tx: CanonicalTransaction, upload_id: Any, maps: Optional[ReferenceMaps]) -> Dict[str, Any]:
        row = dict(tx)
        row["csv_upload_id"] = upload_id
        if maps is not None:
            row["location_id"] = maps.locations.get(tx["location_code"])
        return row
