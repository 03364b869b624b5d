"""
Transform Layer - Maps vendor columns onto the canonical transaction shape.

This module implements:
1. Per-vendor column maps (header name -> canonical field)
2. Location-code normalization so both vendors converge on one site key
3. Date parsing to ISO 8601 (UTC)
4. Amount parsing (unparseable cells become NaN for the validator to flag)
"""
import re
import logging
from typing import Dict, List, Any, Optional

import pandas as pd

from .detect import VendorSchema
from .errors import UnsupportedFormatError
from .schema import CandidateTransaction, RawRow


# ─────────────────────────────────────────────────────────────
# Column Maps (source header -> canonical field)
# ─────────────────────────────────────────────────────────────
COLUMN_MAPS = {
    VendorSchema.VENDOR_A: {
        "location_code": "Location_ID",
        "product_name": "Product_Name",
        "upc_code": "Scancode",
        "transaction_date": "Trans_Date",
        "unit_price": "Price",
        "final_amount": "Total_Amount",
    },
    VendorSchema.VENDOR_B: {
        "location_code": "Site_Code",
        "product_name": "Item_Description",
        "upc_code": "UPC",
        "transaction_date": "Sale_Date",
        "unit_price": "Unit_Price",
        "final_amount": "Final_Total",
    },
}

DATE_FORMATS = {
    VendorSchema.VENDOR_A: "%m/%d/%Y",
    VendorSchema.VENDOR_B: "%Y-%m-%d",
}

DISALLOWED_CODE_CHARS = re.compile(r'[^A-Za-z0-9_.]')
VENDOR_A_PREFIX = re.compile(r'^\d+\.\d+_')

# Dates must carry at least one digit; pandas reads bare words such as
# "now" or "today" as the current time.
DATE_LIKE = re.compile(r'\d')


def looks_like_date(text: str) -> bool:
    return bool(DATE_LIKE.search(text or ""))


def normalize_location_code(raw: Optional[str], vendor: VendorSchema) -> str:
    """
    '2.0_SW_02' (vendor A) and 'SW_02' (vendor B) both become 'sw_02'.
    """
    code = DISALLOWED_CODE_CHARS.sub('', str(raw or '')).lower()
    if vendor == VendorSchema.VENDOR_A:
        code = VENDOR_A_PREFIX.sub('', code)
    return code


class RowNormalizer:
    """
    Deterministic row normalizer.
    Produces CandidateTransaction records; nothing here rejects a row.
    """

    def normalize(self, rows: List[RawRow], headers: List[str], vendor: VendorSchema) -> List[CandidateTransaction]:
        """
        Normalize every data row (rows[0] is the header).

        Args:
            rows: Tokenized file including the header row
            headers: The header row
            vendor: Detected vendor schema

        Returns:
            One candidate per data row, in file order
        """
        column_map = COLUMN_MAPS.get(vendor)
        if column_map is None:
            raise UnsupportedFormatError("Unsupported CSV format")

        header_index = self._build_header_index(headers)
        date_format = DATE_FORMATS[vendor]

        candidates = [
            self._map_row(row, header_index, column_map, vendor, date_format)
            for row in rows[1:]
        ]
        logging.info(f"Normalized {len(candidates)} {vendor.value} rows")
        return candidates

    # ─────────────────────────────────────────────────────────────
    # Row Mapping
    # ─────────────────────────────────────────────────────────────

    def _build_header_index(self, headers: List[str]) -> Dict[str, int]:
        index = {}
        for i, header in enumerate(headers):
            # First occurrence wins for duplicated headers
            index.setdefault(str(header).strip(), i)
        return index

    def _map_row(self, row: RawRow, header_index: Dict[str, int], column_map: Dict[str, str],
                 vendor: VendorSchema, date_format: str) -> CandidateTransaction:
        def cell(field: str) -> str:
            return self._safe_get(row, header_index.get(column_map[field]))

        return {
            "location_code": normalize_location_code(cell("location_code"), vendor),
            "product_name": cell("product_name"),
            "upc_code": cell("upc_code"),
            "transaction_date": self._parse_date(cell("transaction_date"), date_format),
            "unit_price": self._parse_amount(cell("unit_price")),
            "final_amount": self._parse_amount(cell("final_amount")),
            "vendor": vendor.value,
            "raw_data": list(row),
        }

    # ─────────────────────────────────────────────────────────────
    # Utility Methods
    # ─────────────────────────────────────────────────────────────

    def _safe_get(self, row: RawRow, idx: Optional[int]) -> str:
        if idx is None or idx >= len(row):
            return ""
        return str(row[idx]).strip() if row[idx] else ""

    def _parse_amount(self, val: Any) -> float:
        val_str = str(val or "").replace('$', '').replace(',', '').strip()
        try:
            return float(val_str)
        except ValueError:
            return float('nan')

    def _parse_date(self, val: str, date_format: str) -> str:
        """Vendor format first, then free-form. Unparseable text is passed through."""
        text = str(val or "").strip()
        if not looks_like_date(text):
            return text

        ts = pd.to_datetime(text, format=date_format, errors="coerce")
        if pd.isna(ts):
            ts = pd.to_datetime(text, errors="coerce")
        if pd.isna(ts):
            return text

        ts = ts.tz_localize("UTC") if ts.tzinfo is None else ts.tz_convert("UTC")
        return ts.isoformat()
