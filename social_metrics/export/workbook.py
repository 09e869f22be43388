"""Excel export - unified data, extension fields and the mapping reference.

Sheets, in order:

    统一数据   one row per record, unified fields only
    扩展字段   row number, platform, title and every extension field
               (only written when at least one record has extensions)
    字段映射   unified field x platform native column reference
"""

import datetime
import io
import logging
from pathlib import Path

import pandas as pd

from social_metrics.schema.field_mapping import mapping_reference_rows
from social_metrics.schema.models import (
    PLATFORM_FIELD,
    TITLE,
    UNIFIED_FIELDS,
    UnifiedRecord,
)


logger = logging.getLogger(__name__)

SHEET_UNIFIED = "统一数据"
SHEET_EXTENSION = "扩展字段"
SHEET_MAPPING = "字段映射"
ROW_NUMBER = "行号"


def unified_rows(records: list[UnifiedRecord]) -> list[dict]:
    return [{label: r.get(label) for label in UNIFIED_FIELDS} for r in records]


def extension_rows(records: list[UnifiedRecord]) -> list[dict]:
    rows = []
    for index, r in enumerate(records, start=1):
        row = {ROW_NUMBER: index, PLATFORM_FIELD: r.platform.value, TITLE: r.title}
        row.update(r.extension_fields)
        rows.append(row)
    return rows


def build_workbook(records: list[UnifiedRecord], mappings: dict | None = None) -> bytes:
    """Render the export workbook and return the .xlsx bytes."""
    records = list(records)
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        pd.DataFrame(unified_rows(records), columns=UNIFIED_FIELDS).to_excel(
            writer, sheet_name=SHEET_UNIFIED, index=False
        )
        if any(r.extension_fields for r in records):
            pd.DataFrame(extension_rows(records)).to_excel(
                writer, sheet_name=SHEET_EXTENSION, index=False
            )
        pd.DataFrame(mapping_reference_rows(mappings)).to_excel(
            writer, sheet_name=SHEET_MAPPING, index=False
        )
    return buffer.getvalue()


def default_export_name(today: datetime.date | None = None) -> str:
    """``自媒体数据整合_YYYYMMDD.xlsx`` for *today* (default: the current date)."""
    today = today or datetime.date.today()
    return f"自媒体数据整合_{today:%Y%m%d}.xlsx"


def export_workbook(records: list[UnifiedRecord], path: str | Path | None = None,
                    mappings: dict | None = None) -> Path:
    """Write the export workbook to *path* (default name in the current directory)."""
    path = Path(path) if path is not None else Path(default_export_name())
    path.parent.mkdir(parents=True, exist_ok=True)
    data = build_workbook(records, mappings)
    path.write_bytes(data)
    logger.info("Exported %d record(s) to %s", len(records), path)
    return path
