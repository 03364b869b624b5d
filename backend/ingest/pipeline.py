"""
Upload Pipeline Orchestrator - Coordinates one CSV upload end to end.

Flow: Tokenize → Detect → (audit: processing) → Normalize → Validate
      → Resolve references → Load sales → Aggregate inventory
      → (audit: completed | failed)

File-level problems are rejected before any audit row exists. Once the
audit row exists it always ends in exactly one terminal state.
"""
import logging
from typing import Dict, Any, List, Optional

from .config import Config
from .detect import VendorSchema, detect_vendor_format, VENDOR_A_HEADERS, VENDOR_B_HEADERS
from .errors import UploadError, UnsupportedFormatError, NoValidRecordsError, StoreError
from .extract import CSVTokenizer, build_preview, check_filename
from .inventory import InventoryAggregator
from .load import SalesLoader
from .models import UploadAudit, InventoryResult
from .resolve import ReferenceResolver
from .schema import UploadResult, InvalidRecord
from .transform import RowNormalizer
from .validation import TransactionValidator


class UploadPipeline:
    """
    Sequential, single-request unit of work per upload.
    """

    def __init__(self, store, batch_size: int = Config.BATCH_SIZE):
        self.store = store
        self.tokenizer = CSVTokenizer()
        self.normalizer = RowNormalizer()
        self.resolver = ReferenceResolver(store)
        self.loader = SalesLoader(store, batch_size)
        self.aggregator = InventoryAggregator(store, batch_size)

    def _read(self, filename: str, text: str):
        check_filename(filename)
        rows = self.tokenizer.tokenize(text)
        self.tokenizer.require_rows(rows)
        vendor = detect_vendor_format(rows[0])
        return rows, vendor, build_preview(rows, vendor)

    def preview(self, filename: str, text: str) -> Dict[str, Any]:
        """Detect, normalize and validate without touching the store."""
        rows, vendor, preview = self._read(filename, text)
        results = {"valid": 0, "invalid": []}

        if vendor != VendorSchema.UNKNOWN:
            candidates = self.normalizer.normalize(rows, rows[0], vendor)
            outcome = TransactionValidator().validate(candidates)
            results["valid"] = len(outcome["valid"])
            results["invalid"] = outcome["invalid"]

        return {"preview": preview, "validationResults": results}

    def process(self, filename: str, text: str, user_id: Optional[str] = None):
        """
        Process an upload through the complete pipeline.
        Yields (percentage, message, result_dict); result_dict is set on the last frame only.
        """
        audit: Optional[UploadAudit] = None
        invalid: List[InvalidRecord] = []

        try:
            # ─── 1. Tokenize & Detect (0-20%) ───
            yield 5, "Reading CSV...", None
            rows, vendor, preview = self._read(filename, text)
            logging.info(
                f"Upload {filename}: {len(rows) - 1} data rows, vendor={vendor.value}, "
                f"sha256={self.tokenizer.content_hash(text)}"
            )

            if vendor == VendorSchema.UNKNOWN:
                raise UnsupportedFormatError("Unsupported CSV format", details={
                    "headers": rows[0],
                    "expectedVendorA": VENDOR_A_HEADERS,
                    "expectedVendorB": VENDOR_B_HEADERS,
                })
            yield 20, f"Detected {preview['vendor']}.", None

            # ─── 2. Audit record (20-25%) ───
            audit = UploadAudit(filename=filename, vendor=vendor.value, uploaded_by=user_id)
            created = self.store.create_upload(audit.to_insert())
            audit.id = created.get("id")
            audit.created_at = created.get("created_at")
            yield 25, "Upload record created.", None

            # ─── 3. Normalize & Validate (25-50%) ───
            candidates = self.normalizer.normalize(rows, rows[0], vendor)
            validator = TransactionValidator()
            outcome = validator.validate(candidates)
            valid, invalid = outcome["valid"], outcome["invalid"]
            logging.info(f"Validation stats: {validator.get_stats()}")
            yield 50, f"{len(valid)} valid rows, {len(invalid)} invalid rows.", None

            if not valid:
                self._finish(audit, "failed", 0, invalid)
                raise NoValidRecordsError("No valid records found in CSV", details={"invalid": invalid})

            # ─── 4. Resolve references (50-65%) ───
            maps = self.resolver.resolve(valid)
            yield 65, "Locations and products resolved.", None

            # ─── 5. Load sales (65-80%) ───
            self.loader.load(valid, audit.id, maps)
            yield 80, "Sales transactions saved.", None

            # ─── 6. Inventory (80-95%), best effort ───
            try:
                inventory = self.aggregator.aggregate(valid, maps, user_id)
            except Exception:
                logging.exception(f"Inventory adjustment failed for upload {audit.id}")
                inventory = InventoryResult()
            yield 95, "Inventory updated.", None

            self._finish(audit, "completed", len(valid), invalid)

            yield 100, "Done", {
                "success": True,
                "uploadId": audit.id,
                "stats": {
                    "totalRecords": len(rows) - 1,
                    "validRecords": len(valid),
                    "invalidRecords": len(invalid),
                },
                "preview": preview,
                "inventory": inventory.to_dict(),
                "status": 200,
            }

        except UploadError as e:
            logging.warning(f"Upload {filename} rejected: {e.message}")
            self._fail(audit, getattr(e, "records_processed", 0), invalid)
            yield 0, f"Error: {e.message}", self._failure(e.message, e.status_code, e.details, audit)

        except Exception as e:
            logging.exception("PIPELINE_ERROR")
            self._fail(audit, 0, invalid)
            yield 0, f"Error: {str(e)}", self._failure("Internal Server Error", 500, str(e), audit)

    def run(self, filename: str, text: str, user_id: Optional[str] = None) -> UploadResult:
        result = None
        for _, _, res in self.process(filename, text, user_id):
            if res:
                result = res
        return result

    # ─────────────────────────────────────────────────────────────
    # Audit helpers
    # ─────────────────────────────────────────────────────────────

    def _finish(self, audit: UploadAudit, status: str, records_processed: int,
                invalid: List[InvalidRecord]) -> None:
        changes = audit.finish(status, records_processed, invalid)
        try:
            self.store.update_upload(audit.id, changes)
            logging.info(f"Upload {audit.id} marked {status}")
        except StoreError as e:
            logging.error(f"Failed to mark upload {audit.id} {status}: {e.details}")

    def _fail(self, audit: Optional[UploadAudit], records_processed: int,
              invalid: List[InvalidRecord]) -> None:
        if audit is None or audit.id is None or audit.is_terminal:
            return
        self._finish(audit, "failed", records_processed, invalid)

    def _failure(self, message: str, status: int, details: Any,
                 audit: Optional[UploadAudit]) -> UploadResult:
        result = {
            "success": False,
            "error": message,
            "status": status,
            "uploadId": audit.id if audit else None,
        }
        if details is not None:
            result["details"] = details
        return result

    # ─────────────────────────────────────────────────────────────
    # Status lookups
    # ─────────────────────────────────────────────────────────────

    def get_status(self, upload_id: str) -> Optional[UploadAudit]:
        row = self.store.get_upload(upload_id)
        return UploadAudit.from_row(row) if row else None

    def list_uploads(self, limit: int = Config.HISTORY_LIMIT) -> List[UploadAudit]:
        return [UploadAudit.from_row(row) for row in self.store.list_uploads(limit)]
