# Overview: Data exports; category collection, row flattening, XLSX (openpyxl) and PDF (reportlab) builders.

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from io import BytesIO
from typing import Callable

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..time_utils import utcnow

BRAND = "Eno Livraison"
SHEET_TITLE_LIMIT = 31
HEADER_COLOR = "22C55E"

CATEGORIES = {
    "accounting": ("Comptabilité", ("transactions", "standard_orders", "partner_delivery_fees")),
    "salaries": ("Salaires", ("salaries",)),
    "partners": ("Partenaires", ("partners",)),
    "products": ("Produits", ("products",)),
    "stockMovements": ("Mouvements de Stock", ("stock_movements",)),
    "users": ("Utilisateurs", ("profiles",)),
}


@dataclass
class Section:
    """One exported category: every row of its tables, flattened."""

    key: str
    label: str
    tables: tuple
    rows: list[dict] = field(default_factory=list)

    @property
    def columns(self) -> list[str]:
        seen: dict[str, None] = {}
        for row in self.rows:
            for column in row:
                seen.setdefault(column, None)
        return list(seen)


def flatten_row(row: dict) -> dict:
    """Nested mappings become key_subkey columns; lists become JSON text."""
    flat = {}
    for key, value in row.items():
        if isinstance(value, dict):
            for sub_key, sub_value in value.items():
                flat[f"{key}_{sub_key}"] = sub_value
        elif isinstance(value, (list, tuple)):
            flat[key] = json.dumps(list(value), ensure_ascii=False)
        else:
            flat[key] = value
    return flat


def collect_sections(categories, fetch: Callable[[str], list[dict]]) -> list[Section]:
    """
    Read every table of each category through fetch(table).

    Categories keep the order given; empty categories are dropped. Raises
    ValueError for an unknown category or when nothing was selected.
    """
    categories = list(dict.fromkeys(categories or ()))
    if not categories:
        raise ValueError("Select at least one data type to export")
    unknown = [c for c in categories if c not in CATEGORIES]
    if unknown:
        raise ValueError(f"Unknown export category: {', '.join(unknown)}")

    sections = []
    for key in categories:
        label, tables = CATEGORIES[key]
        section = Section(key=key, label=label, tables=tables)
        for table in tables:
            section.rows.extend(flatten_row(row) for row in fetch(table) or [])
        if section.rows:
            sections.append(section)
    return sections


def _cell(value):
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def build_xlsx(sections: list[Section]) -> bytes:
    """One worksheet per section, bold green header row."""
    wb = Workbook()
    wb.remove(wb.active)
    for section in sections:
        ws = wb.create_sheet(title=section.label[:SHEET_TITLE_LIMIT])
        columns = section.columns
        for col, header in enumerate(columns, 1):
            cell = ws.cell(row=1, column=col)
            cell.value = header
            cell.font = Font(bold=True, color="FFFFFF")
            cell.fill = PatternFill(start_color=HEADER_COLOR, end_color=HEADER_COLOR, fill_type="solid")
            cell.alignment = Alignment(horizontal="center")
        for row_idx, row in enumerate(section.rows, 2):
            for col_idx, column in enumerate(columns, 1):
                ws.cell(row=row_idx, column=col_idx).value = _cell(row.get(column))
    if not wb.sheetnames:
        wb.create_sheet(title="Export")

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


class NumberedCanvas(canvas.Canvas):
    """Defers page output so the footer can print 'Page i sur n'."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_pages = []

    def showPage(self):
        self._saved_pages.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_pages)
        for state in self._saved_pages:
            self.__dict__.update(state)
            self._draw_footer(total)
            super().showPage()
        super().save()

    def _draw_footer(self, total: int) -> None:
        width, _ = self._pagesize
        self.setFont("Helvetica", 9)
        self.drawString(0.5 * inch, 0.4 * inch, f"© {BRAND}")
        self.drawRightString(width - 0.5 * inch, 0.4 * inch, f"Page {self._pageNumber} sur {total}")


def build_pdf(sections: list[Section], generated_at: datetime | None = None) -> bytes:
    """Title block, then one heading and striped table per section."""
    generated_at = generated_at or utcnow()
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=landscape(A4),
        leftMargin=0.5 * inch, rightMargin=0.5 * inch, topMargin=0.5 * inch, bottomMargin=0.7 * inch,
        title=f"{BRAND} - Rapport d'Exportation",
    )
    styles = getSampleStyleSheet()
    cell_style = ParagraphStyle(name="ExportCell", parent=styles["Normal"], fontSize=6.5, leading=8)
    head_style = ParagraphStyle(name="ExportHead", parent=cell_style, textColor=colors.white, fontName="Helvetica-Bold")

    story = [
        Paragraph(BRAND, styles["Title"]),
        Paragraph("Rapport d'Exportation", styles["Normal"]),
        Paragraph(f"Date: {generated_at.strftime('%d/%m/%Y %H:%M')}", styles["Normal"]),
        Spacer(1, 0.25 * inch),
    ]
    for section in sections:
        columns = section.columns
        data = [[Paragraph(_escape(c), head_style) for c in columns]]
        data.extend(
            [Paragraph(_escape(_cell(row.get(c))), cell_style) for c in columns]
            for row in section.rows
        )
        col_width = doc.width / max(len(columns), 1)
        table = Table(data, colWidths=[col_width] * len(columns), repeatRows=1)
        style = [
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor(f"#{HEADER_COLOR}")),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
        ]
        style.extend(
            ("BACKGROUND", (0, i), (-1, i), colors.whitesmoke)
            for i in range(2, len(data), 2)
        )
        table.setStyle(TableStyle(style))
        story.extend([Paragraph(section.label, styles["Heading2"]), table, Spacer(1, 0.2 * inch)])

    if not sections:
        story.append(Paragraph("Aucune donnée à exporter.", styles["Normal"]))

    doc.build(story, canvasmaker=NumberedCanvas)
    return buffer.getvalue()


def _escape(value) -> str:
    text = str(value)
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def export_filename(fmt: str, day: date | None = None) -> str:
    day = day or utcnow().date()
    return f"export_eno_livraison_{day.isoformat()}.{fmt}"
