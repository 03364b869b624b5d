"""Shared fixtures: an in-memory stand-in for SupabaseStore with failure injection."""
import os
import tempfile
import itertools
from datetime import datetime, timezone

import pytest

os.environ.setdefault("LOG_FILE", os.path.join(tempfile.gettempdir(), "stockflow-test.log"))

from backend.ingest.errors import StoreError
from backend.supabase_client import PIPELINE_TABLES

VALID_TOKEN = "good-token"
USER_ID = "user-1"

VENDOR_A_CSV = (
    "Location_ID,Product_Name,Scancode,Trans_Date,Price,Total_Amount\n"
    "2.0_SW_02,Celsius Arctic,889392014,06/09/2025,3.50,3.82\n"
)

VENDOR_B_CSV = (
    "Site_Code,Item_Description,UPC,Sale_Date,Unit_Price,Final_Total\n"
    "SW_02,Celsius Arctic Berry,889392014,2025-06-09,3.50,3.82\n"
)


class FakeStore:
    """
    Mirrors the SupabaseStore method surface over plain lists.

    fail_when maps a method name to True (always fail) or to a predicate
    over the rows/keys passed in.
    """

    UNIQUE_KEYS = {
        "locations": ("name",),
        "products": ("sku",),
        "inventory": ("location_id", "product_id"),
    }

    def __init__(self):
        self.tables = {t: [] for t in PIPELINE_TABLES}
        self.fail_when = {}
        self.calls = []
        self._ids = itertools.count(1)

    def _maybe_fail(self, name, arg=None):
        self.calls.append(name)
        rule = self.fail_when.get(name)
        if rule is True or (callable(rule) and rule(arg)):
            raise StoreError(f"Failed to {name}", details=f"{name} unavailable")

    def _key(self, table, row):
        return tuple(row.get(f) for f in self.UNIQUE_KEYS.get(table, ()))

    def _insert(self, table, rows):
        if table in self.UNIQUE_KEYS:
            existing = {self._key(table, r) for r in self.tables[table]}
            for row in rows:
                key = self._key(table, row)
                if key in existing:
                    raise StoreError("duplicate key", details=f"duplicate key value violates unique constraint {key}")
                existing.add(key)
        created = []
        for row in rows:
            new = dict(row)
            new.setdefault("id", f"{table}-{next(self._ids)}")
            new.setdefault("created_at", datetime.now(timezone.utc).isoformat())
            self.tables[table].append(new)
            created.append(dict(new))
        return created

    def seed(self, table, **row):
        """Insert directly, returning the live stored row."""
        self._insert(table, [row])
        return self.tables[table][-1]

    # Auth
    def get_user_id(self, access_token):
        return USER_ID if access_token == VALID_TOKEN else None

    # Upload audit
    def create_upload(self, payload):
        self._maybe_fail("create_upload", payload)
        return self._insert("csv_uploads", [payload])[0]

    def update_upload(self, upload_id, changes):
        self._maybe_fail("update_upload", changes)
        for row in self.tables["csv_uploads"]:
            if row["id"] == upload_id:
                row.update(changes)

    def get_upload(self, upload_id):
        self._maybe_fail("get_upload", upload_id)
        for row in self.tables["csv_uploads"]:
            if row["id"] == upload_id:
                return dict(row)
        return None

    def list_uploads(self, limit):
        self._maybe_fail("list_uploads", limit)
        return [dict(r) for r in reversed(self.tables["csv_uploads"])][:limit]

    # Reference entities
    def fetch_locations(self, names):
        self._maybe_fail("fetch_locations", names)
        return [{"id": r["id"], "name": r["name"]} for r in self.tables["locations"] if r["name"] in names]

    def insert_locations(self, rows):
        self._maybe_fail("insert_locations", rows)
        return self._insert("locations", rows)

    def fetch_products(self, skus):
        self._maybe_fail("fetch_products", skus)
        return [{"id": r["id"], "sku": r["sku"]} for r in self.tables["products"] if r["sku"] in skus]

    def insert_products(self, rows):
        self._maybe_fail("insert_products", rows)
        return self._insert("products", rows)

    # Inventory & sales
    def get_inventory(self, location_id, product_id):
        self._maybe_fail("get_inventory", (location_id, product_id))
        for row in self.tables["inventory"]:
            if row["location_id"] == location_id and row["product_id"] == product_id:
                return {"id": row["id"], "quantity": row["quantity"]}
        return None

    def upsert_inventory(self, rows):
        self._maybe_fail("upsert_inventory", rows)
        by_id = {r["id"]: r for r in self.tables["inventory"]}
        for row in rows:
            if row.get("id") in by_id:
                by_id[row["id"]].update(row)
            else:
                self._insert("inventory", [row])

    def insert_inventory(self, rows):
        self._maybe_fail("insert_inventory", rows)
        self._insert("inventory", rows)

    def insert_sales_transactions(self, rows):
        self._maybe_fail("insert_sales_transactions", rows)
        self._insert("sales_transactions", rows)

    def list_sales(self, limit=None):
        self._maybe_fail("list_sales", limit)
        rows = sorted(self.tables["sales_transactions"], key=lambda r: r["transaction_date"], reverse=True)
        return rows[:limit] if limit else rows

    def list_inventory(self):
        self._maybe_fail("list_inventory")
        locations = {r["id"]: r for r in self.tables["locations"]}
        products = {r["id"]: r for r in self.tables["products"]}
        return [
            {**r, "location": locations.get(r["location_id"]), "product": products.get(r["product_id"])}
            for r in self.tables["inventory"]
        ]

    # Maintenance
    def clear_table(self, table):
        self._maybe_fail("clear_table", table)
        count = len(self.tables[table])
        self.tables[table] = []
        return count


@pytest.fixture
def store():
    return FakeStore()


def make_tx(location_code="sw_02", upc_code="889392014", **overrides):
    tx = {
        "location_code": location_code,
        "product_name": "Celsius Arctic",
        "upc_code": upc_code,
        "transaction_date": "2025-06-09T00:00:00+00:00",
        "unit_price": 3.5,
        "final_amount": 3.82,
        "vendor": "vendor_a",
        "csv_upload_id": None,
    }
    tx.update(overrides)
    return tx
