"""
Shared building blocks for document exports.

PDFs are laid out with reportlab platypus, spreadsheets with openpyxl and
slide decks with python-pptx. Builders take already-fetched rows and return
bytes; views wrap them in an HttpResponse with the right content type.
"""
import io
import logging
import os
from decimal import Decimal

from django.http import HttpResponse
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from pptx import Presentation
from pptx.util import Inches, Pt
from reportlab.lib import colors
from reportlab.lib.enums import TA_RIGHT
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Image as RLImage, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = 'application/pdf'
XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
PPTX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.presentationml.presentation'

BRAND_COLOR = '#1E40AF'
HEADER_FILL = '1E40AF'


def file_response(content, filename, content_type):
    response = HttpResponse(content, content_type=content_type)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


def format_money(value):
    if value is None:
        return '0.00'
    return f"{Decimal(value):,.2f}"


def pdf_styles():
    styles = getSampleStyleSheet()
    title = ParagraphStyle('DocTitle', parent=styles['Title'], fontSize=16,
                           textColor=colors.HexColor(BRAND_COLOR), spaceAfter=6)
    subtitle = ParagraphStyle('DocSubtitle', parent=styles['Normal'], fontSize=9,
                              textColor=colors.HexColor('#6B7280'))
    section = ParagraphStyle('Section', parent=styles['Heading3'], fontSize=11,
                             textColor=colors.HexColor('#111827'), spaceBefore=8, spaceAfter=4)
    body = ParagraphStyle('Body', parent=styles['Normal'], fontSize=9)
    right = ParagraphStyle('Right', parent=body, alignment=TA_RIGHT)
    return title, subtitle, section, body, right


class PDFDocument:
    """Collects flowables for one document and renders them to bytes."""

    def __init__(self, title, company=None, landscape_mode=False):
        self.title = title
        self.company = company
        self.pagesize = landscape(A4) if landscape_mode else A4
        self.story = []
        self.title_style, self.subtitle_style, self.section_style, self.body_style, self.right_style = pdf_styles()
        self._header()

    def _header(self):
        if self.company is not None:
            self.story.append(Paragraph(self.company.name, self.section_style))
            lines = [self.company.address, self.company.city, self.company.state]
            details = ', '.join(x for x in lines if x)
            if self.company.gstin:
                details = f"{details}  GSTIN: {self.company.gstin}" if details else f"GSTIN: {self.company.gstin}"
            if details:
                self.story.append(Paragraph(details, self.subtitle_style))
        self.story.append(Paragraph(self.title, self.title_style))

    def heading(self, text):
        self.story.append(Paragraph(text, self.section_style))

    def paragraph(self, text):
        self.story.append(Paragraph(text, self.body_style))

    def spacer(self, height=0.4):
        self.story.append(Spacer(1, height * cm))

    def key_values(self, pairs):
        rows = [[Paragraph(f"<b>{k}</b>", self.body_style), Paragraph(str(v if v is not None else '-'), self.body_style)]
                for k, v in pairs]
        if not rows:
            return
        table = Table(rows, colWidths=[4.5 * cm, None], hAlign='LEFT')
        table.setStyle(TableStyle([
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 2),
        ]))
        self.story.append(table)

    def table(self, headers, rows, col_widths=None, numeric_columns=()):
        data = [headers] + [[str(c) if c is not None else '' for c in row] for row in rows]
        table = Table(data, colWidths=col_widths, repeatRows=1)
        style = [
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor(BRAND_COLOR)),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 8),
            ('GRID', (0, 0), (-1, -1), 0.3, colors.HexColor('#D1D5DB')),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('PADDING', (0, 0), (-1, -1), 4),
        ]
        for col in numeric_columns:
            style.append(('ALIGN', (col, 0), (col, -1), 'RIGHT'))
        for i in range(1, len(data)):
            if i % 2 == 0:
                style.append(('BACKGROUND', (0, i), (-1, i), colors.HexColor('#F3F4F6')))
        table.setStyle(TableStyle(style))
        self.story.append(table)

    def totals(self, pairs):
        rows = [[label, format_money(value)] for label, value in pairs]
        table = Table(rows, colWidths=[5 * cm, 4 * cm], hAlign='RIGHT')
        table.setStyle(TableStyle([
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
            ('LINEABOVE', (0, -1), (-1, -1), 0.8, colors.HexColor('#111827')),
        ]))
        self.story.append(table)

    def image(self, path, width=8 * cm, height=6 * cm):
        if path and os.path.exists(path):
            self.story.append(RLImage(path, width=width, height=height, kind='proportional'))

    def render(self):
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer, pagesize=self.pagesize,
            leftMargin=1.5 * cm, rightMargin=1.5 * cm,
            topMargin=1.5 * cm, bottomMargin=1.5 * cm,
            title=self.title,
        )
        doc.build(self.story)
        return buffer.getvalue()


def build_workbook(sheet_title, headers, rows, money_columns=(), title=None):
    """Single-sheet workbook with a styled header row; returns bytes."""
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = sheet_title[:31]
    start_row = 1
    if title:
        sheet.cell(row=1, column=1, value=title).font = Font(bold=True, size=14)
        start_row = 3

    for idx, header in enumerate(headers, start=1):
        cell = sheet.cell(row=start_row, column=idx, value=header)
        cell.font = Font(bold=True, color='FFFFFF')
        cell.fill = PatternFill('solid', fgColor=HEADER_FILL)
        cell.alignment = Alignment(wrap_text=True, vertical='center')
        sheet.column_dimensions[cell.column_letter].width = max(14, len(str(header)) + 4)

    for r, row in enumerate(rows, start=start_row + 1):
        for c, value in enumerate(row, start=1):
            if isinstance(value, Decimal):
                value = float(value)
            cell = sheet.cell(row=r, column=c, value=value)
            if c - 1 in money_columns:
                cell.number_format = '#,##0.00'

    sheet.freeze_panes = sheet.cell(row=start_row + 1, column=1)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


class SlideDeck:
    """Thin wrapper over python-pptx for title and detail slides."""

    def __init__(self):
        self.presentation = Presentation()
        self.presentation.slide_width = Inches(13.333)
        self.presentation.slide_height = Inches(7.5)

    def title_slide(self, title, subtitle=''):
        slide = self.presentation.slides.add_slide(self.presentation.slide_layouts[0])
        slide.shapes.title.text = title
        if len(slide.placeholders) > 1:
            slide.placeholders[1].text = subtitle
        return slide

    def detail_slide(self, title, pairs, image_paths=()):
        slide = self.presentation.slides.add_slide(self.presentation.slide_layouts[5])
        slide.shapes.title.text = title

        images = [p for p in image_paths if p and os.path.exists(p)]
        table_width = Inches(5.5) if images else Inches(12.3)
        shape = slide.shapes.add_table(max(len(pairs), 1), 2, Inches(0.5), Inches(1.5), table_width, Inches(0.4 * max(len(pairs), 1)))
        table = shape.table
        for i, (label, value) in enumerate(pairs):
            table.cell(i, 0).text = str(label)
            table.cell(i, 1).text = '' if value is None else str(value)
            for j in (0, 1):
                for paragraph in table.cell(i, j).text_frame.paragraphs:
                    paragraph.font.size = Pt(12)

        left = Inches(6.3)
        top = Inches(1.5)
        for idx, path in enumerate(images[:4]):
            try:
                slide.shapes.add_picture(
                    path,
                    left + Inches(3.4) * (idx % 2),
                    top + Inches(2.8) * (idx // 2),
                    width=Inches(3.2),
                )
            except Exception as e:
                logger.warning(f"Could not add image {path} to slide: {str(e)}")
        return slide

    def render(self):
        buffer = io.BytesIO()
        self.presentation.save(buffer)
        return buffer.getvalue()
