"""
Format Detector - Classifies a header row as one of the known vendor schemas.

Detection is exact-match on the full required header set: column order is
irrelevant and extra columns are tolerated, but every required header must
be present. VendorA is checked first so the result stays deterministic.
"""
from enum import Enum
from typing import List


class VendorSchema(Enum):
    VENDOR_A = "vendor_a"
    VENDOR_B = "vendor_b"
    UNKNOWN = "unknown"


VENDOR_A_HEADERS = ["Location_ID", "Product_Name", "Scancode", "Trans_Date", "Price", "Total_Amount"]
VENDOR_B_HEADERS = ["Site_Code", "Item_Description", "UPC", "Sale_Date", "Unit_Price", "Final_Total"]

VENDOR_DISPLAY_NAMES = {
    VendorSchema.VENDOR_A: "Vendor A Vending",
    VendorSchema.VENDOR_B: "Vendor B Systems",
    VendorSchema.UNKNOWN: "Unknown Format",
}


def detect_vendor_format(headers: List[str]) -> VendorSchema:
    present = {str(h).strip() for h in headers}

    if all(h in present for h in VENDOR_A_HEADERS):
        return VendorSchema.VENDOR_A
    if all(h in present for h in VENDOR_B_HEADERS):
        return VendorSchema.VENDOR_B
    return VendorSchema.UNKNOWN


def display_name(vendor: VendorSchema) -> str:
    return VENDOR_DISPLAY_NAMES[vendor]
