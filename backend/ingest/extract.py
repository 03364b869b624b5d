import re
import hashlib
from typing import List, Optional

from .config import Config
from .detect import VendorSchema, display_name
from .errors import EmptyInputError, InvalidFileError
from .schema import RawRow, CSVPreview


class CSVTokenizer:
    """
    Splits raw CSV text into rows of trimmed string fields.

    A double-quoted run is one field (quotes stripped), so commas inside
    quotes survive. Escaped quotes inside a quoted field are not supported.
    """

    LINE_SPLIT = re.compile(r'\r?\n')
    # Commas followed by an even number of quotes are outside any quoted run
    FIELD_SPLIT = re.compile(r',(?=(?:[^"]*"[^"]*")*[^"]*$)')

    def tokenize(self, text: str) -> List[RawRow]:
        lines = [line for line in self.LINE_SPLIT.split(text or "") if line.strip()]
        return [self._split_line(line) for line in lines]

    def _split_line(self, line: str) -> RawRow:
        fields = []
        for field in self.FIELD_SPLIT.split(line):
            field = field.strip()
            if len(field) >= 2 and field.startswith('"') and field.endswith('"'):
                field = field[1:-1]
            fields.append(field.strip())
        return fields

    @staticmethod
    def require_rows(rows: List[RawRow]) -> None:
        if len(rows) < 2:
            raise EmptyInputError("CSV file must have at least a header row and one data row.")

    @staticmethod
    def content_hash(text: str) -> str:
        return hashlib.sha256((text or "").encode("utf-8")).hexdigest()


def check_filename(filename: Optional[str]) -> None:
    if not filename:
        raise InvalidFileError("No file provided")
    ext = filename.rsplit('.', 1)[-1].lower() if '.' in filename else ''
    if ext not in Config.ALLOWED_EXTENSIONS:
        raise InvalidFileError("Invalid file type. Please upload a CSV file.")


def build_preview(rows: List[RawRow], vendor: VendorSchema) -> CSVPreview:
    headers = rows[0] if rows else []
    return {
        "vendor": display_name(vendor),
        "headers": headers,
        "sampleRows": rows[1:1 + Config.PREVIEW_SAMPLE_ROWS],
        "totalRows": max(len(rows) - 1, 0),
    }
