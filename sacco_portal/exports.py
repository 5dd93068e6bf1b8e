from dataclasses import asdict, is_dataclass
from enum import Enum
from io import BytesIO

import pandas as pd
from flask import make_response

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _flat(record, columns=None):
    row = asdict(record) if is_dataclass(record) else dict(record)
    row = {k: (v.value if isinstance(v, Enum) else v) for k, v in row.items() if not isinstance(v, list)}
    if columns:
        row = {label: row.get(attr) for attr, label in columns.items()}
    return row


def records_frame(records, columns=None):
    """DataFrame of ``records``; ``columns`` maps attribute -> column header."""
    rows = [_flat(r, columns) for r in records]
    if not rows and columns:
        return pd.DataFrame(columns=list(columns.values()))
    return pd.DataFrame(rows)


def excel_response(df, sheet_name, filename):
    output = BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=sheet_name)
    output.seek(0)
    response = make_response(output.read())
    response.headers["Content-Disposition"] = f"attachment; filename={filename}"
    response.headers["Content-Type"] = XLSX_MIMETYPE
    return response
