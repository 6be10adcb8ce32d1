# expo_coupon/services/export.py
from datetime import date
from io import BytesIO

import pandas as pd
from openpyxl.utils import get_column_letter

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# column title -> width in characters
EXPORT_COLUMNS = [
    ("Customer Name", 25),
    ("Mobile Number", 15),
    ("Branch", 20),
    ("Coupon Code", 20),
    ("Staff Name", 20),
    ("WhatsApp Sent", 12),
    ("Date & Time", 20),
]

CONTACT_COLUMNS = [
    ("Customer Name", 30),
    ("Phone", 12),
    ("City", 15),
    ("Branch", 15),
    ("Date & Time", 20),
]


def workbook(rows, columns, sheet_name) -> BytesIO:
    df = pd.DataFrame(rows, columns=[title for title, _ in columns])

    output = BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=sheet_name)
        sheet = writer.sheets[sheet_name]
        for idx, (_, width) in enumerate(columns, start=1):
            sheet.column_dimensions[get_column_letter(idx)].width = width
    output.seek(0)
    return output


def coupons_workbook(rows, sheet_name="Coupons") -> BytesIO:
    return workbook(rows, EXPORT_COLUMNS, sheet_name)


def contacts_workbook(rows, sheet_name="Contacts") -> BytesIO:
    return workbook(rows, CONTACT_COLUMNS, sheet_name)


def export_filename(today: date | None = None, kind: str = "coupons") -> str:
    today = today or date.today()
    return f"{kind}-export-{today.isoformat()}.xlsx"
