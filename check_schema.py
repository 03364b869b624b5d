
import os
from supabase import create_client

EXPECTED_COLUMNS = {
    "csv_uploads": ["filename", "vendor", "status", "records_processed", "errors_count", "error_log"],
    "locations": ["name"],
    "products": ["sku", "name", "unit_price"],
    "inventory": ["location_id", "product_id", "quantity", "min_stock_level", "max_stock_level"],
    "sales_transactions": ["location_code", "upc_code", "transaction_date", "csv_upload_id"],
}

def load_dotenv(path):
    with open(path) as f:
        for line in f:
            if '=' in line and not line.startswith('#'):
                key, value = line.strip().split('=', 1)
                os.environ[key] = value

def check_schema():
    load_dotenv(".env")
    url = os.environ.get("SUPABASE_URL")
    key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
    client = create_client(url, key)

    for table, columns in EXPECTED_COLUMNS.items():
        print(f"--- {table} ---")
        try:
            client.table(table).select(", ".join(columns)).limit(1).execute()
            print(f"SUCCESS: {', '.join(columns)}")
        except Exception as e:
            print(f"FAILED: table or columns missing: {e}")

if __name__ == "__main__":
    check_schema()
