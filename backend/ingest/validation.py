"""
Validation Engine - Per-row structural and semantic checks.

Every check runs for every row (no short-circuit) so a rejected row reports
all of its problems at once. Rows are partitioned into valid canonical
transactions and invalid records carrying their 1-based file row number.
"""
import math
import re
from typing import List, Dict, Any

import pandas as pd

from .config import Config
from .schema import CandidateTransaction, CanonicalTransaction, InvalidRecord, ValidationOutcome
from .transform import looks_like_date


UPC_PATTERN = re.compile(r'\d{9,12}')

# Header occupies file row 1 and candidates are 0-indexed
ROW_OFFSET = 2


class TransactionValidator:
    """
    Deterministic rule-based validator.
    """

    def __init__(self, reject_future_dates: bool = Config.REJECT_FUTURE_DATES):
        self.reject_future_dates = reject_future_dates
        self.stats = {"total": 0, "valid": 0, "invalid": 0}

    def validate(self, candidates: List[CandidateTransaction]) -> ValidationOutcome:
        self.stats = {"total": 0, "valid": 0, "invalid": 0}
        valid: List[CanonicalTransaction] = []
        invalid: List[InvalidRecord] = []

        for idx, candidate in enumerate(candidates):
            self.stats["total"] += 1
            errors = self.check(candidate)

            if errors:
                invalid.append({"row": idx + ROW_OFFSET, "errors": errors})
                self.stats["invalid"] += 1
            else:
                valid.append(self._to_canonical(candidate))
                self.stats["valid"] += 1

        return {"valid": valid, "invalid": invalid}

    def check(self, tx: CandidateTransaction) -> List[str]:
        errors = []

        # Required fields
        if not tx.get("location_code"):
            errors.append("Location code is required")
        if not tx.get("product_name"):
            errors.append("Product name is required")
        if not tx.get("upc_code"):
            errors.append("UPC code is required")
        if not tx.get("transaction_date"):
            errors.append("Transaction date is required")

        # Numbers
        unit_price = tx.get("unit_price")
        final_amount = tx.get("final_amount")
        if not self._is_finite(unit_price):
            errors.append("Unit price must be a valid number")
        elif unit_price <= 0:
            errors.append("Unit price must be greater than 0")
        if not self._is_finite(final_amount):
            errors.append("Final amount must be a valid number")
        elif final_amount <= 0:
            errors.append("Final amount must be greater than 0")

        # Date
        date_text = tx.get("transaction_date") or ""
        ts = pd.to_datetime(date_text, errors="coerce", utc=True) if looks_like_date(date_text) else pd.NaT
        if pd.isna(ts):
            errors.append("Invalid transaction date format")
        elif self.reject_future_dates and ts > pd.Timestamp.now(tz="UTC"):
            errors.append("Transaction date cannot be in the future")

        # UPC format
        if not UPC_PATTERN.fullmatch(tx.get("upc_code") or ""):
            errors.append("UPC code must be 9-12 digits")

        return errors

    def _is_finite(self, value: Any) -> bool:
        return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)

    def _to_canonical(self, tx: CandidateTransaction) -> CanonicalTransaction:
        ts = pd.to_datetime(tx["transaction_date"], utc=True)
        return {
            "location_code": tx["location_code"],
            "product_name": tx["product_name"],
            "upc_code": tx["upc_code"],
            "transaction_date": ts.isoformat(),
            "unit_price": float(tx["unit_price"]),
            "final_amount": float(tx["final_amount"]),
            "vendor": tx["vendor"],
            "csv_upload_id": None,
        }

    def get_stats(self) -> Dict[str, Any]:
        return self.stats.copy()
