# FILE: backend/ecopromise/services/report_service.py
# Renders the organization CSR report as an A4 PDF.
# 1. Input is the dict produced by analytics_service.get_csr_report.
# 2. Header band and footer are drawn on every page; content flows through one frame.

import io
import structlog
from datetime import datetime
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape
from reportlab.pdfgen import canvas
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.platypus import BaseDocTemplate, Frame, PageTemplate, Paragraph, Spacer, Table, TableStyle, Flowable
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.colors import HexColor, white
from reportlab.lib.enums import TA_RIGHT, TA_CENTER

from ..core.config import settings
from ..models.common import utcnow

logger = structlog.get_logger(__name__)

# --- STYLES & CONSTANTS ---
COLOR_PRIMARY_TEXT = HexColor("#111827")
COLOR_SECONDARY_TEXT = HexColor("#6B7280")
COLOR_BORDER = HexColor("#E5E7EB")
BRAND_COLOR = HexColor("#15803d")

STYLES = getSampleStyleSheet()
STYLES.add(ParagraphStyle(name='ReportTitle', parent=STYLES['h1'], fontSize=20, textColor=COLOR_PRIMARY_TEXT, fontName='Helvetica-Bold'))
STYLES.add(ParagraphStyle(name='Subtitle', parent=STYLES['Normal'], fontSize=10, textColor=COLOR_SECONDARY_TEXT, spaceAfter=6))
STYLES.add(ParagraphStyle(name='SectionTitle', parent=STYLES['h3'], fontSize=12, textColor=COLOR_PRIMARY_TEXT, spaceBefore=8, spaceAfter=6))
STYLES.add(ParagraphStyle(name='KpiValue', parent=STYLES['Normal'], fontName='Helvetica-Bold', fontSize=16, textColor=BRAND_COLOR, alignment=TA_CENTER))
STYLES.add(ParagraphStyle(name='KpiLabel', parent=STYLES['Normal'], fontSize=8, textColor=COLOR_SECONDARY_TEXT, alignment=TA_CENTER))
STYLES.add(ParagraphStyle(name='TableHeader', parent=STYLES['Normal'], fontName='Helvetica-Bold', fontSize=9, textColor=white))
STYLES.add(ParagraphStyle(name='TableCell', parent=STYLES['Normal'], fontSize=9, textColor=COLOR_PRIMARY_TEXT))
STYLES.add(ParagraphStyle(name='TableCellRight', parent=STYLES['TableCell'], alignment=TA_RIGHT))

def _fmt_date(value: Optional[datetime]) -> str:
    return value.strftime("%d/%m/%Y") if value else "-"

def _fmt_change(value: float) -> str:
    return f"{value:+.1f}%"

def _header_footer(c: canvas.Canvas, doc: BaseDocTemplate, org_name: str):
    c.saveState()
    c.setFillColor(BRAND_COLOR)
    c.rect(0, 280 * mm, 210 * mm, 17 * mm, fill=1, stroke=0)
    c.setFont('Helvetica-Bold', 16); c.setFillColor(white)
    c.drawString(15 * mm, 284 * mm, settings.PROJECT_NAME.replace(" API", ""))
    c.setFont('Helvetica-Bold', 12)
    c.drawRightString(195 * mm, 284 * mm, org_name[:60])
    c.setStrokeColor(COLOR_BORDER); c.line(15 * mm, 15 * mm, 195 * mm, 15 * mm)
    c.setFont('Helvetica', 8); c.setFillColor(COLOR_SECONDARY_TEXT)
    c.drawString(15 * mm, 10 * mm, f"CSR report generated {utcnow().strftime('%d/%m/%Y %H:%M')} UTC")
    c.drawRightString(195 * mm, 10 * mm, f"Page {doc.page}")
    c.restoreState()

def _build_doc(buffer: io.BytesIO, org_name: str) -> BaseDocTemplate:
    doc = BaseDocTemplate(buffer, pagesize=A4, leftMargin=15*mm, rightMargin=15*mm, topMargin=25*mm, bottomMargin=25*mm,
                          title=f"CSR Report - {org_name}")
    frame = Frame(doc.leftMargin, doc.bottomMargin, doc.width, doc.height - 20*mm, id='normal')
    template = PageTemplate(id='main', frames=[frame], onPage=lambda c, d: _header_footer(c, d, org_name))
    doc.addPageTemplates([template])
    return doc

def _kpi_table(stats: Dict[str, Any]) -> Table:
    kpis = [
        (f"{stats.get('total_carbon_saved', 0):,.2f} kg", "CO2 saved"),
        (str(stats.get("total_commitments", 0)), "Commitments"),
        (str(stats.get("active_members", 0)), "Active members"),
        (f"{stats.get('participation_rate', 0):.1f}%", "Participation"),
    ]
    cells = [[Paragraph(value, STYLES['KpiValue']) for value, _ in kpis],
             [Paragraph(label, STYLES['KpiLabel']) for _, label in kpis]]
    table = Table(cells, colWidths=[45*mm] * 4)
    table.setStyle(TableStyle([
        ('BOX', (0, 0), (-1, -1), 0.5, COLOR_BORDER),
        ('TOPPADDING', (0, 0), (-1, -1), 8),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
        ('BACKGROUND', (0, 0), (-1, -1), HexColor("#F0FDF4")),
    ]))
    return table

def _data_table(headers: List[str], rows: List[List[str]], col_widths: List[float]) -> Table:
    data = [[Paragraph(h, STYLES['TableHeader']) for h in headers]]
    for row in rows:
        data.append([Paragraph(row[0], STYLES['TableCell'])] +
                    [Paragraph(cell, STYLES['TableCellRight']) for cell in row[1:]])
    table = Table(data, colWidths=col_widths)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), BRAND_COLOR),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('LINEBELOW', (0, -1), (-1, -1), 1, COLOR_BORDER),
        ('TOPPADDING', (0, 0), (-1, -1), 6),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [HexColor("#FFFFFF"), HexColor("#F9FAFB")]),
    ]))
    return table

def generate_csr_report_pdf(report: Dict[str, Any]) -> io.BytesIO:
    organization = report["organization"]
    org_name = escape(organization.name)
    stats = report["stats"]
    period = report.get("period") or {}

    buffer = io.BytesIO()
    doc = _build_doc(buffer, organization.name)
    Story: List[Flowable] = [
        Spacer(1, 5*mm),
        Paragraph("Corporate Social Responsibility Report", STYLES['ReportTitle']),
        Paragraph(f"{org_name} | {_fmt_date(period.get('start_date'))} to {_fmt_date(period.get('end_date'))}",
                  STYLES['Subtitle']),
        Spacer(1, 6*mm),
        _kpi_table(stats),
        Spacer(1, 8*mm),
    ]

    # 1. SUMMARY
    Story.append(Paragraph("Summary", STYLES['SectionTitle']))
    summary_rows = [
        ["Total commitments", str(stats.get("total_commitments", 0))],
        ["Active commitments", str(stats.get("active_commitments", 0))],
        ["Completed commitments", str(stats.get("completed_commitments", 0))],
        ["Carbon saved (kg CO2)", f"{stats.get('total_carbon_saved', 0):,.2f}"],
        ["Estimated savings (kg CO2)", f"{stats.get('estimated_carbon_savings', 0):,.2f}"],
        ["Members", str(stats.get("member_count", 0))],
        ["Active members", str(stats.get("active_members", 0))],
        ["Participation rate", f"{stats.get('participation_rate', 0):.1f}%"],
    ]
    Story.append(_data_table(["Metric", "Value"], summary_rows, [120*mm, 60*mm]))

    # 2. CATEGORIES
    Story.append(Spacer(1, 6*mm))
    Story.append(Paragraph("Category breakdown", STYLES['SectionTitle']))
    breakdown = report.get("category_breakdown") or []
    if breakdown:
        rows = [[str(row["category"]).capitalize(), str(row["count"]), f"{row['carbon_saved']:,.2f}"]
                for row in breakdown]
        Story.append(_data_table(["Category", "Commitments", "CO2 saved (kg)"], rows, [90*mm, 40*mm, 50*mm]))
    else:
        Story.append(Paragraph("No commitments were made in this period.", STYLES['Normal']))

    # 3. COMPARISON
    comparison = report.get("comparison")
    if comparison:
        previous = comparison["previous_period"]
        changes = comparison["changes"]
        Story.append(Spacer(1, 6*mm))
        Story.append(Paragraph(
            f"Compared with {_fmt_date(previous.get('start_date'))} to {_fmt_date(previous.get('end_date'))}",
            STYLES['SectionTitle']))
        rows = [
            ["Carbon saved (kg CO2)", f"{previous['total_carbon_saved']:,.2f}", f"{stats.get('total_carbon_saved', 0):,.2f}",
             _fmt_change(changes["carbon_saved_change"])],
            ["Commitments", str(previous["total_commitments"]), str(stats.get("total_commitments", 0)),
             _fmt_change(changes["commitments_change"])],
        ]
        Story.append(_data_table(["Metric", "Previous", "Current", "Change"], rows, [70*mm, 35*mm, 35*mm, 40*mm]))

    doc.build(Story)
    buffer.seek(0)
    logger.info("csr_pdf_rendered", organization_id=str(organization.id), size=buffer.getbuffer().nbytes)
    return buffer
