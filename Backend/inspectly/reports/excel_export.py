from io import BytesIO
from datetime import datetime
from typing import Dict, Iterable, Tuple

import openpyxl
from openpyxl.styles import Font, PatternFill, Alignment

from inspectly.schemas.inspection import Inspection
from inspectly.schemas.template import Template
from inspectly.utils import format_date

HEADERS = ["ID", "Template", "Inspector", "Location", "Date", "Status", "Answered", "Questions"]
COLUMN_WIDTHS = [38, 25, 20, 25, 14, 12, 10, 10]


def export_inspections_xlsx(
    inspections: Iterable[Inspection],
    templates_by_id: Dict[str, Template],
) -> Tuple[bytes, str]:
    """Summary workbook of inspections; returns (content, filename)."""
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Inspections"

    ws.append(HEADERS)

    # Style header row
    header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    header_font = Font(bold=True, color="FFFFFF")
    for cell in ws[1]:
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)

    for inspection in inspections:
        template = templates_by_id.get(inspection.template_id)
        question_ids = set(template.question_ids()) if template is not None else set()
        # stale responses to removed questions are not counted
        answered = len(question_ids.intersection(inspection.responses.keys()))
        ws.append([
            inspection.id,
            template.name if template is not None else "(deleted template)",
            inspection.inspector_name,
            inspection.location,
            format_date(inspection.date),
            inspection.status.value,
            answered,
            len(question_ids),
        ])

    for i, width in enumerate(COLUMN_WIDTHS, 1):
        ws.column_dimensions[openpyxl.utils.get_column_letter(i)].width = width

    for row in ws.iter_rows(min_row=2, max_row=ws.max_row, min_col=1, max_col=len(HEADERS)):
        for cell in row:
            cell.alignment = Alignment(horizontal="left", vertical="center", wrap_text=True)

    output = BytesIO()
    wb.save(output)
    filename = f"inspections_{datetime.now().strftime('%Y%m%d_%H%M%S')}.xlsx"
    return output.getvalue(), filename
