"""
Export Layer - Downloadable sales and inventory reports.

Supported formats: 'csv', 'xlsx'
"""
import pandas as pd
from io import BytesIO
from typing import List, Dict, Any
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side
from openpyxl.utils import get_column_letter

VENDOR_LABELS = {"vendor_a": "Vendor A", "vendor_b": "Vendor B"}

SALES_HEADERS = ["Date", "Location", "Product", "UPC", "Price", "Total Amount", "Vendor"]
INVENTORY_HEADERS = ["Location", "Product", "SKU", "Quantity", "Min Stock", "Max Stock", "Last Updated"]


def _short_date(value: Any) -> str:
    if not value:
        return ""
    ts = pd.to_datetime(value, errors="coerce", utc=True)
    return "" if pd.isna(ts) else ts.strftime("%Y-%m-%d")


def sales_frame(sales: List[Dict[str, Any]]) -> pd.DataFrame:
    rows = [[
        _short_date(s.get("transaction_date")),
        s.get("location_code"),
        s.get("product_name"),
        s.get("upc_code"),
        s.get("unit_price"),
        s.get("final_amount"),
        VENDOR_LABELS.get(s.get("vendor"), s.get("vendor")),
    ] for s in sales]
    return pd.DataFrame(rows, columns=SALES_HEADERS)


def inventory_frame(inventory: List[Dict[str, Any]]) -> pd.DataFrame:
    rows = []
    for item in inventory:
        location = item.get("location") or {}
        product = item.get("product") or {}
        rows.append([
            location.get("name") or "Unknown",
            product.get("name") or "Unknown",
            product.get("sku") or "Unknown",
            item.get("quantity"),
            item.get("min_stock_level"),
            item.get("max_stock_level"),
            _short_date(item.get("last_updated")),
        ])
    return pd.DataFrame(rows, columns=INVENTORY_HEADERS)


class ReportExporter:
    """
    Renders a report DataFrame as CSV or a formatted single-sheet workbook.
    """

    def __init__(self):
        self.currency_format = '$#,##0.00'
        self.header_font = Font(bold=True, color="FFFFFF")
        self.header_fill = PatternFill(start_color="2D5016", end_color="2D5016", fill_type="solid")
        self.warning_fill = PatternFill(start_color="FEE2E2", end_color="FEE2E2", fill_type="solid")
        self.border = Border(bottom=Side(style='thin', color='DDDDDD'))

    def generate(self, df: pd.DataFrame, title: str, target_format: str = "csv") -> BytesIO:
        if target_format == "xlsx":
            return self._generate_excel(df, title)
        if target_format == "csv":
            return self._generate_csv(df)
        raise ValueError(f"Unsupported export format: {target_format}")

    def _generate_csv(self, df: pd.DataFrame) -> BytesIO:
        output = BytesIO()
        df.to_csv(output, index=False)
        output.seek(0)
        return output

    def _generate_excel(self, df: pd.DataFrame, title: str) -> BytesIO:
        from openpyxl import Workbook

        output = BytesIO()
        wb = Workbook()
        ws = wb.active
        ws.title = title

        for col_idx, header in enumerate(df.columns, 1):
            cell = ws.cell(row=1, column=col_idx, value=header)
            cell.font = self.header_font
            cell.fill = self.header_fill
            cell.alignment = Alignment(horizontal='center')

        money_cols = {i for i, h in enumerate(df.columns, 1) if h in ("Price", "Total Amount")}
        qty_col = list(df.columns).index("Quantity") + 1 if "Quantity" in df.columns else None
        min_col = list(df.columns).index("Min Stock") + 1 if "Min Stock" in df.columns else None

        for row_idx, values in enumerate(df.itertuples(index=False), 2):
            for col_idx, val in enumerate(values, 1):
                cell = ws.cell(row=row_idx, column=col_idx, value=None if pd.isna(val) else val)
                if col_idx in money_cols:
                    cell.number_format = self.currency_format
                cell.border = self.border

            # Highlight stock at or below its minimum level
            if qty_col and min_col:
                qty, min_level = values[qty_col - 1], values[min_col - 1]
                if not pd.isna(qty) and not pd.isna(min_level) and qty <= min_level:
                    ws.cell(row=row_idx, column=qty_col).fill = self.warning_fill

        self._auto_width(ws)
        ws.freeze_panes = "A2"

        wb.save(output)
        output.seek(0)
        return output

    def _auto_width(self, ws) -> None:
        """Auto-adjust column widths"""
        for col_idx, column in enumerate(ws.columns, 1):
            max_length = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
            ws.column_dimensions[get_column_letter(col_idx)].width = min(max_length + 4, 60)
