"""
Supabase Store Client - The pipeline's query interface to the relational store.

Tables: csv_uploads, locations, products, inventory, sales_transactions.
Every client exception is re-raised as StoreError so callers decide whether
a failure is fatal for the batch or only for one unit of work.
"""
import os
import logging
from typing import Dict, Any, List, Optional, Callable

from supabase import create_client, Client

from .ingest.errors import StoreError

PIPELINE_TABLES = [
    "sales_transactions",  # depends on csv_uploads
    "csv_uploads",
    "inventory",
    "locations",
    "products",
]

# Matches every row of a uuid-keyed table
NIL_UUID = "00000000-0000-0000-0000-000000000000"


class SupabaseStore:
    """
    Thin wrapper over the Supabase table API.
    """

    def __init__(self, client: Optional[Client] = None):
        self.url = os.environ.get("SUPABASE_URL")
        self.key = os.environ.get("SUPABASE_KEY")
        self.client = client
        self.admin_client = None

        if self.client is None and self.url and self.key:
            try:
                self.client = create_client(self.url, self.key)

                # Service role bypasses RLS for pipeline writes
                service_key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
                if service_key:
                    self.admin_client = create_client(self.url, service_key)

                logging.info("Supabase clients initialized.")
            except Exception as e:
                logging.warning(f"Failed to initialize Supabase client: {e}")

    @property
    def db(self) -> Client:
        client = self.admin_client or self.client
        if client is None:
            raise StoreError("Supabase is not configured")
        return client

    def _execute(self, action: str, query: Callable[[], Any]) -> Any:
        try:
            return query()
        except StoreError:
            raise
        except Exception as e:
            logging.error(f"Store failure during {action}: {e}")
            raise StoreError(f"Failed to {action}", details=str(e)) from e

    # ─────────────────────────────────────────────────────────────
    # Auth
    # ─────────────────────────────────────────────────────────────

    def get_user_id(self, access_token: str) -> Optional[str]:
        """Resolve a session access token to a user id, None when invalid."""
        if not access_token or self.client is None:
            return None
        try:
            res = self.client.auth.get_user(access_token)
            user = getattr(res, "user", None)
            return user.id if user else None
        except Exception as e:
            logging.warning(f"Session check failed: {e}")
            return None

    # ─────────────────────────────────────────────────────────────
    # Upload audit (csv_uploads)
    # ─────────────────────────────────────────────────────────────

    def create_upload(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        res = self._execute("create upload record",
                            lambda: self.db.table("csv_uploads").insert(payload).execute())
        if not res.data:
            raise StoreError("Failed to create upload record")
        return res.data[0]

    def update_upload(self, upload_id: str, changes: Dict[str, Any]) -> None:
        self._execute("update upload record",
                      lambda: self.db.table("csv_uploads").update(changes).eq("id", upload_id).execute())

    def get_upload(self, upload_id: str) -> Optional[Dict[str, Any]]:
        res = self._execute("fetch upload record",
                            lambda: self.db.table("csv_uploads").select("*").eq("id", upload_id).limit(1).execute())
        return res.data[0] if res.data else None

    def list_uploads(self, limit: int) -> List[Dict[str, Any]]:
        res = self._execute("fetch upload history",
                            lambda: self.db.table("csv_uploads").select("*")
                            .order("created_at", desc=True).limit(limit).execute())
        return res.data or []

    # ─────────────────────────────────────────────────────────────
    # Reference entities
    # ─────────────────────────────────────────────────────────────

    def fetch_locations(self, names: List[str]) -> List[Dict[str, Any]]:
        res = self._execute("fetch locations",
                            lambda: self.db.table("locations").select("id, name").in_("name", names).execute())
        return res.data or []

    def insert_locations(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        res = self._execute("create locations",
                            lambda: self.db.table("locations").insert(rows).execute())
        return res.data or []

    def fetch_products(self, skus: List[str]) -> List[Dict[str, Any]]:
        res = self._execute("fetch products",
                            lambda: self.db.table("products").select("id, sku").in_("sku", skus).execute())
        return res.data or []

    def insert_products(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        res = self._execute("create products",
                            lambda: self.db.table("products").insert(rows).execute())
        return res.data or []

    # ─────────────────────────────────────────────────────────────
    # Inventory & sales
    # ─────────────────────────────────────────────────────────────

    def get_inventory(self, location_id: Any, product_id: Any) -> Optional[Dict[str, Any]]:
        res = self._execute("check inventory",
                            lambda: self.db.table("inventory").select("id, quantity")
                            .eq("location_id", location_id).eq("product_id", product_id)
                            .limit(1).execute())
        return res.data[0] if res.data else None

    def upsert_inventory(self, rows: List[Dict[str, Any]]) -> None:
        self._execute("update inventory batch",
                      lambda: self.db.table("inventory").upsert(rows).execute())

    def insert_inventory(self, rows: List[Dict[str, Any]]) -> None:
        self._execute("insert inventory batch",
                      lambda: self.db.table("inventory").insert(rows).execute())

    def insert_sales_transactions(self, rows: List[Dict[str, Any]]) -> None:
        self._execute("insert sales transactions",
                      lambda: self.db.table("sales_transactions").insert(rows).execute())

    def list_sales(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        def query():
            q = self.db.table("sales_transactions").select("*").order("transaction_date", desc=True)
            if limit:
                q = q.limit(limit)
            return q.execute()
        res = self._execute("fetch sales transactions", query)
        return res.data or []

    def list_inventory(self) -> List[Dict[str, Any]]:
        res = self._execute("fetch inventory",
                            lambda: self.db.table("inventory")
                            .select("*, location:locations(*), product:products(*)")
                            .order("last_updated", desc=True).execute())
        return res.data or []

    # ─────────────────────────────────────────────────────────────
    # Maintenance
    # ─────────────────────────────────────────────────────────────

    def clear_table(self, table: str) -> int:
        """Delete every row of a pipeline table, returning the prior row count."""
        if table not in PIPELINE_TABLES:
            raise StoreError(f"Refusing to clear unknown table: {table}")
        count_res = self._execute(f"count {table}",
                                  lambda: self.db.table(table).select("id", count="exact").execute())
        count = count_res.count if getattr(count_res, "count", None) is not None else len(count_res.data or [])
        self._execute(f"clear {table}",
                      lambda: self.db.table(table).delete().neq("id", NIL_UUID).execute())
        return count
