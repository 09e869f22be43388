"""Export package - workbook output for processed records."""

from .workbook import (
    SHEET_EXTENSION,
    SHEET_MAPPING,
    SHEET_UNIFIED,
    build_workbook,
    default_export_name,
    export_workbook,
)
