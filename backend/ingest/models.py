from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Tuple
from datetime import datetime, timezone
import json

TERMINAL_STATUSES = {"completed", "failed"}


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class UploadAudit:
    filename: str
    vendor: str
    id: Optional[str] = None
    status: str = "processing"
    processed_at: Optional[str] = None
    records_processed: int = 0
    errors_count: int = 0
    error_log: Optional[str] = None
    uploaded_by: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "UploadAudit":
        return cls(
            id=row.get("id"),
            filename=row.get("filename", ""),
            vendor=row.get("vendor", ""),
            status=row.get("status", "processing"),
            processed_at=row.get("processed_at"),
            records_processed=row.get("records_processed") or 0,
            errors_count=row.get("errors_count") or 0,
            error_log=row.get("error_log"),
            uploaded_by=row.get("uploaded_by"),
            created_at=row.get("created_at"),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def finish(self, status: str, records_processed: int, invalid: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Move to a terminal state and return the column changes to persist.
        A terminal audit is frozen; a second transition raises.
        """
        if status not in TERMINAL_STATUSES:
            raise ValueError(f"Not a terminal upload status: {status}")
        if self.is_terminal:
            raise ValueError(f"Upload {self.id} already {self.status}")

        self.status = status
        self.processed_at = utc_now()
        self.records_processed = records_processed
        self.errors_count = len(invalid)
        self.error_log = json.dumps(invalid) if invalid else None
        return {
            "status": self.status,
            "processed_at": self.processed_at,
            "records_processed": self.records_processed,
            "errors_count": self.errors_count,
            "error_log": self.error_log,
        }

    def to_insert(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "vendor": self.vendor,
            "status": self.status,
            "uploaded_by": self.uploaded_by,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "vendor": self.vendor,
            "status": self.status,
            "processed_at": self.processed_at,
            "records_processed": self.records_processed,
            "errors_count": self.errors_count,
            "error_log": self.error_log,
            "uploaded_by": self.uploaded_by,
            "created_at": self.created_at,
        }


@dataclass
class ReferenceMaps:
    """Batch-scoped natural key -> id lookups"""
    locations: Dict[str, Any] = field(default_factory=dict)
    products: Dict[str, Any] = field(default_factory=dict)
    unresolved_locations: List[str] = field(default_factory=list)
    unresolved_products: List[str] = field(default_factory=list)


@dataclass
class InventoryPlan:
    updates: List[Dict[str, Any]] = field(default_factory=list)
    inserts: List[Dict[str, Any]] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.updates) + len(self.inserts)


@dataclass
class InventoryResult:
    updated: int = 0
    inserted: int = 0
    skipped: int = 0
    failed_batches: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "updated": self.updated,
            "inserted": self.inserted,
            "skipped": self.skipped,
            "failed_batches": self.failed_batches,
        }
