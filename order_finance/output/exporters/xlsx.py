from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from openpyxl import Workbook
from openpyxl.styles import Font

from ...logic.periods import PERIOD_TYPES


HEADERS = ["Period", "Orders", "Revenue", "Costs", "Profit", "Margin %"]


def write_pl_workbook(report: Mapping[str, Any], path: Path) -> Path:
    """One sheet per period type (monthly, quarterly, yearly)."""
    wb = Workbook()
    wb.remove(wb.active)
    for period_type in PERIOD_TYPES:
        ws = wb.create_sheet(title=period_type.capitalize())
        ws.append(HEADERS)
        for cell in ws[1]:
            cell.font = Font(bold=True)
        for key, t in report.get(period_type, {}).items():
            ws.append([
                key,
                t.order_count,
                round(float(t.revenue), 2),
                round(float(t.costs), 2),
                round(float(t.profit), 2),
                round(float(t.profit_margin), 1),
            ])
        for row in ws.iter_rows(min_row=2, min_col=3, max_col=5):
            for cell in row:
                cell.number_format = "#,##0.00"
        ws.column_dimensions["A"].width = 12
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(path)
    return path
