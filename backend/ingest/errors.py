"""
Upload errors - each carries the HTTP-equivalent status the API layer returns.

400-class errors are problems with the uploaded file itself.
500-class errors come from the store collaborator.
"""
from typing import Any, Optional


class UploadError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        payload = {"error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class InvalidFileError(UploadError):
    status_code = 400


class EmptyInputError(UploadError):
    status_code = 400


class UnsupportedFormatError(UploadError):
    status_code = 400


class NoValidRecordsError(UploadError):
    status_code = 400


class StoreError(UploadError):
    status_code = 500


class ResolutionError(UploadError):
    status_code = 500


class PersistenceError(UploadError):
    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None, records_processed: int = 0):
        super().__init__(message, details)
        self.records_processed = records_processed
