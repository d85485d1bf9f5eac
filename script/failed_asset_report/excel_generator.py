"""
Excel report generation functionality for Failed Asset Reporting.
"""
import csv
from pathlib import Path
from typing import List

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font, PatternFill, Alignment
from openpyxl.utils import get_column_letter

from .models import AccountStatus, RunResult
from .row_flattener import CSV_HEADERS


def _clean(value):
    # Control characters from API fields are rejected by openpyxl
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub('', value)
    return value


class ExcelGenerator:
    """Builds an Excel copy of the CSV report with a per-account summary sheet."""

    def __init__(self):
        """Initialize Excel generator."""
        self.workbook = Workbook()

    def _new_sheet(self, title: str):
        # Drop openpyxl's default sheet before adding the first real one
        if len(self.workbook.worksheets) == 1 and self.workbook.active.title == "Sheet":
            self.workbook.remove(self.workbook.active)
        return self.workbook.create_sheet(title=title)

    def _write_headers(self, ws, fieldnames: List[str]) -> None:
        for col, fieldname in enumerate(fieldnames, 1):
            cell = ws.cell(row=1, column=col, value=fieldname)
            cell.font = Font(bold=True, color="FFFFFF")
            cell.fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
            cell.alignment = Alignment(horizontal="center")

    def create_failed_assets_sheet(self, csv_path: Path, sheet_name: str = "Failed Assets") -> int:
        """
        Copy the CSV report rows into a sheet.

        Args:
            csv_path: CSV report written during the run
            sheet_name: Name of the sheet

        Returns:
            Number of data rows copied
        """
        ws = self._new_sheet(sheet_name)
        self._write_headers(ws, CSV_HEADERS)

        row_count = 0
        if Path(csv_path).exists():
            with open(csv_path, 'r', newline='', encoding='utf-8') as csvfile:
                reader = csv.DictReader(csvfile)
                for row_count, record in enumerate(reader, 1):
                    for col, fieldname in enumerate(CSV_HEADERS, 1):
                        ws.cell(row=row_count + 1, column=col, value=_clean(record.get(fieldname, '')))

        last_col_letter = get_column_letter(len(CSV_HEADERS))
        ws.auto_filter.ref = f"A1:{last_col_letter}{row_count + 1}"
        self._auto_adjust_columns(ws)
        return row_count

    def create_summary_sheet(self, run_result: RunResult, sheet_name: str = "Summary") -> None:
        """Write one row per account, failed accounts first."""
        ws = self._new_sheet(sheet_name)
        fieldnames = ['Account Id', 'Status', 'Detail']
        self._write_headers(ws, fieldnames)

        for row, entry in enumerate(run_result.sorted_entries(), 2):
            ws.cell(row=row, column=1, value=entry.account_id)
            status_cell = ws.cell(row=row, column=2, value=entry.status.value)
            if entry.status is AccountStatus.FAILED:
                status_cell.font = Font(bold=True, color="C00000")
            ws.cell(row=row, column=3, value=_clean(entry.detail))

        self._auto_adjust_columns(ws)

    def _auto_adjust_columns(self, ws) -> None:
        """Auto-adjust column widths based on content."""
        for column in ws.columns:
            column_letter = get_column_letter(column[0].column)
            max_length = max(len(str(cell.value)) if cell.value is not None else 0 for cell in column)

            # Set minimum width and maximum width
            ws.column_dimensions[column_letter].width = min(max(max_length + 2, 10), 50)

    def save_workbook(self, output_path: Path) -> None:
        """
        Save the workbook to the specified path.

        Args:
            output_path: Path where to save the Excel file
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)
        self.workbook.save(output_path)
        print(f"Successfully wrote Excel report to {output_path}")

    def get_sheet_names(self) -> List[str]:
        """Get the names of all sheets in the workbook."""
        return [sheet.title for sheet in self.workbook.worksheets]
