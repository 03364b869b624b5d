"""Tokenizer, file checks and preview"""
import pytest

from backend.ingest.detect import VendorSchema
from backend.ingest.errors import EmptyInputError, InvalidFileError
from backend.ingest.extract import CSVTokenizer, build_preview, check_filename


def test_tokenize_splits_rows_and_trims_fields():
    rows = CSVTokenizer().tokenize("a, b ,c\r\n1,2,3\n")
    assert rows == [["a", "b", "c"], ["1", "2", "3"]]


def test_tokenize_drops_blank_lines():
    rows = CSVTokenizer().tokenize("h1,h2\n\n   \n1,2\n\n")
    assert rows == [["h1", "h2"], ["1", "2"]]


def test_quoted_field_keeps_commas():
    rows = CSVTokenizer().tokenize('loc,"Celsius, Arctic Berry",889392014')
    assert rows == [["loc", "Celsius, Arctic Berry", "889392014"]]


def test_unquoted_field_keeps_inner_spaces():
    rows = CSVTokenizer().tokenize("2.0_SW_02,Celsius Arctic,889392014")
    assert rows[0][1] == "Celsius Arctic"


def test_empty_cells_keep_column_positions():
    rows = CSVTokenizer().tokenize("a,,c")
    assert rows == [["a", "", "c"]]


def test_header_only_file_is_rejected():
    tokenizer = CSVTokenizer()
    rows = tokenizer.tokenize("Location_ID,Product_Name,Scancode,Trans_Date,Price,Total_Amount\n")
    with pytest.raises(EmptyInputError) as exc:
        tokenizer.require_rows(rows)
    assert "must have at least a header row and one data row" in str(exc.value)
    assert exc.value.status_code == 400


def test_content_hash_is_stable():
    assert CSVTokenizer.content_hash("a,b") == CSVTokenizer.content_hash("a,b")
    assert CSVTokenizer.content_hash("a,b") != CSVTokenizer.content_hash("a,c")


@pytest.mark.parametrize("name", ["sales.csv", "SALES.CSV", "export.2025.Csv"])
def test_csv_extension_accepted(name):
    check_filename(name)


@pytest.mark.parametrize("name", ["sales.txt", "sales", "sales.csv.xlsx"])
def test_other_extensions_rejected(name):
    with pytest.raises(InvalidFileError):
        check_filename(name)


def test_missing_filename_rejected():
    with pytest.raises(InvalidFileError) as exc:
        check_filename("")
    assert str(exc.value) == "No file provided"


def test_preview_shape():
    rows = [["h"]] + [[str(i)] for i in range(5)]
    preview = build_preview(rows, VendorSchema.VENDOR_B)
    assert preview == {
        "vendor": "Vendor B Systems",
        "headers": ["h"],
        "sampleRows": [["0"], ["1"], ["2"]],
        "totalRows": 5,
    }


def test_preview_unknown_vendor_label():
    assert build_preview([["x"], ["1"]], VendorSchema.UNKNOWN)["vendor"] == "Unknown Format"
