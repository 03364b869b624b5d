"""Clears every pipeline table (child tables first). Reads SUPABASE_* from .env."""
import os

from backend.ingest.errors import StoreError
from backend.supabase_client import SupabaseStore, PIPELINE_TABLES

def load_dotenv(path):
    with open(path) as f:
        for line in f:
            if '=' in line and not line.startswith('#'):
                key, value = line.strip().split('=', 1)
                os.environ[key] = value

def clear_tables():
    load_dotenv(".env")
    store = SupabaseStore()

    for table in PIPELINE_TABLES:
        try:
            count = store.clear_table(table)
            print(f"Cleared {table}: {count} rows")
        except StoreError as e:
            print(f"Error clearing {table}: {e.details or e.message}")

if __name__ == "__main__":
    clear_tables()
