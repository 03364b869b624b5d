"""
Transaction Schema - TypedDict definitions shared by every pipeline layer.

Two transaction shapes exist on purpose:
- CandidateTransaction: loosely-typed normalizer output, any field may be bad
- CanonicalTransaction: only ever built by the validator, safe to persist
"""
from typing import TypedDict, Dict, Any, Optional, List

RawRow = List[str]


class CandidateTransaction(TypedDict, total=False):
    """Normalized but not yet validated row"""
    location_code: str
    product_name: str
    upc_code: str
    transaction_date: str         # ISO 8601 when parseable, raw text otherwise
    unit_price: float             # NaN when the cell is not numeric
    final_amount: float           # NaN when the cell is not numeric
    vendor: str                   # 'vendor_a' | 'vendor_b'
    raw_data: RawRow


class CanonicalTransaction(TypedDict):
    """
    Validated sale - one row per unit sold.

    Maps directly onto the `sales_transactions` table.
    """
    location_code: str            # lowercase, prefix-stripped site key
    product_name: str
    upc_code: str                 # 9-12 digits
    transaction_date: str         # ISO 8601, UTC
    unit_price: float
    final_amount: float
    vendor: str
    csv_upload_id: Optional[str]  # set right before persistence


class InvalidRecord(TypedDict):
    row: int                      # 1-based file row, header is row 1
    errors: List[str]


class ValidationOutcome(TypedDict):
    valid: List[CanonicalTransaction]
    invalid: List[InvalidRecord]


class CSVPreview(TypedDict):
    vendor: str                   # display name or 'Unknown Format'
    headers: List[str]
    sampleRows: List[RawRow]
    totalRows: int


class UploadStats(TypedDict):
    totalRecords: int
    validRecords: int
    invalidRecords: int


class UploadResult(TypedDict, total=False):
    """Final output from the upload pipeline"""
    success: bool
    uploadId: Optional[str]
    stats: UploadStats
    preview: CSVPreview
    inventory: Dict[str, int]     # updated, inserted, skipped
    error: str
    details: Any
    status: int                   # HTTP-equivalent status code
