"""
Ingest Package - Vendor CSV sales reconciliation and inventory adjustment

Modules:
- extract: CSV tokenizing and upload preview
- detect: Vendor header-set detection
- transform: Per-vendor normalization and location-code rules
- validation: Row-level checks
- resolve: Location/product id resolution (create on first sight)
- inventory: Sales aggregation into inventory decrements
- load: Chunked sales-transaction insert
- export: CSV/XLSX reports
- pipeline: Upload orchestrator
- schema: TypedDict definitions
"""
from .pipeline import UploadPipeline
from .detect import VendorSchema, detect_vendor_format
from .schema import CandidateTransaction, CanonicalTransaction, ValidationOutcome, UploadResult

__all__ = [
    'UploadPipeline', 'VendorSchema', 'detect_vendor_format',
    'CandidateTransaction', 'CanonicalTransaction', 'ValidationOutcome', 'UploadResult',
]
