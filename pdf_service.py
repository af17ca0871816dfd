# pdf_service.py
import io
import re

from reportlab.pdfgen import canvas
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib import colors
from reportlab.pdfbase.pdfmetrics import stringWidth

from models import Invoice, InvoiceItem, CompanyInfo

PAGE_W, PAGE_H = A4
MARGIN = 20            # mm
CELL_PAD = 1           # mm, horizontal text padding inside a cell
CONTENT_W = PAGE_W / mm - 2 * MARGIN

BRAND = (102, 126, 234)
DARK = (51, 51, 51)
MUTED = (102, 102, 102)
BLACK = (0, 0, 0)
WHITE = (255, 255, 255)

# Items table: (title, width mm, align)
ITEM_COLUMNS = [
    ("Description", 70, "L"),
    ("Qty", 15, "C"),
    ("Rate", 25, "C"),
    ("% Total", 20, "C"),
    ("Amount", 30, "R"),
]
TOTALS_LABEL_W = 130
TOTALS_VALUE_W = 30

FOOTER_LINES = [
    "Thank you for your business!",
    "Payment is due within 30 days of invoice date.",
]


def _money(x) -> str:
    try:
        return f"${float(x):.2f}"
    except Exception:
        return f"${x}"


def _percent(x) -> str:
    return f"{float(x or 0.0):.1f}%"


def _safe_filename(name: str) -> str:
    # strip characters not allowed on Windows/mac paths
    return re.sub(r'[\\/*?:"<>|]', "", (name or "")).strip() or "Invoice"


def pdf_filename(inv: Invoice) -> str:
    return f"invoice-{_safe_filename(inv.invoice_num)}.pdf"


def _rgb(c) -> colors.Color:
    r, g, b = c
    return colors.Color(r / 255.0, g / 255.0, b / 255.0)


def _fit_text(text, font, size, max_width) -> str:
    """Clip a single-line cell value to the cell width."""
    text = str(text or "")
    if stringWidth(text, font, size) <= max_width:
        return text
    ellipsis = "..."
    while text and stringWidth(text + ellipsis, font, size) > max_width:
        text = text[:-1]
    return text + ellipsis if text else ""


def _wrap_text(text, font, size, max_width):
    words = str(text).split()
    lines = []
    current = ""

    def split_long_token(token: str):
        """Break a single long token (like an email) into width-safe chunks."""
        if stringWidth(token, font, size) <= max_width:
            return [token]
        chunks = []
        remaining = token
        while remaining:
            lo, hi = 1, len(remaining)
            fit = 1
            while lo <= hi:
                mid = (lo + hi) // 2
                piece = remaining[:mid]
                if stringWidth(piece, font, size) <= max_width:
                    fit = mid
                    lo = mid + 1
                else:
                    hi = mid - 1
            chunks.append(remaining[:fit])
            remaining = remaining[fit:]
        return chunks

    expanded_words = []
    for w in words:
        expanded_words.extend(split_long_token(w))

    for w in expanded_words:
        test = current + (" " if current else "") + w
        if stringWidth(test, font, size) <= max_width:
            current = test
        else:
            if current:
                lines.append(current)
            current = w
    if current:
        lines.append(current)
    return lines or [""]


def _split_notes_into_lines(notes_text: str, max_width, font="Helvetica", size=10):
    """
    Notes are free text. Each original line is wrapped to the box width;
    blank lines are kept as empty rows.
    """
    raw = (notes_text or "").strip()
    if not raw:
        return []
    out = []
    for ln in raw.splitlines():
        ln = ln.strip()
        if not ln:
            out.append("")
            continue
        out.extend(_wrap_text(ln, font, size, max_width))
    return out


# -----------------------------
# Drawing surface
# -----------------------------
class _Sheet:
    """
    Cursor-based cell drawing on top of a reportlab canvas.
    Positions are in mm from the top-left corner of the page.
    """

    def __init__(self, pdf: canvas.Canvas, margin: float = MARGIN):
        self.pdf = pdf
        self.margin = margin
        self.x = margin
        self.y = margin
        self.font = "Helvetica"
        self.size = 10
        self.text_color = BLACK
        self.fill_color = WHITE
        self.draw_color = BLACK
        self.line_width = 0.2

    def set_font(self, font: str, size: float):
        self.font = font
        self.size = size

    def set_text_color(self, c):
        self.text_color = c

    def set_fill_color(self, c):
        self.fill_color = c

    def set_draw_color(self, c):
        self.draw_color = c

    def set_line_width(self, w: float):
        self.line_width = w

    def ln(self, h: float):
        self.x = self.margin
        self.y += h

    def _text(self, x, y_top, w, h, text, align):
        pdf = self.pdf
        pdf.setFont(self.font, self.size)
        pdf.setFillColor(_rgb(self.text_color))
        max_w = max(0.0, (w - 2 * CELL_PAD) * mm)
        text = _fit_text(text, self.font, self.size, max_w)
        tw = stringWidth(text, self.font, self.size)
        if align == "R":
            tx = (x + w - CELL_PAD) * mm - tw
        elif align == "C":
            tx = (x + w / 2) * mm - tw / 2
        else:
            tx = (x + CELL_PAD) * mm
        # vertically centered baseline
        ty = PAGE_H - (y_top + h / 2) * mm - self.size * 0.3
        pdf.drawString(tx, ty, text)

    def rect(self, x, y_top, w, h, *, fill=False, stroke=True):
        pdf = self.pdf
        pdf.setFillColor(_rgb(self.fill_color))
        pdf.setStrokeColor(_rgb(self.draw_color))
        pdf.setLineWidth(self.line_width * mm)
        pdf.rect(x * mm, PAGE_H - (y_top + h) * mm, w * mm, h * mm,
                 stroke=1 if stroke else 0, fill=1 if fill else 0)

    def cell(self, w, h, text="", *, border=False, align="L", fill=False, ln=False):
        if w == 0:
            w = PAGE_W / mm - self.margin - self.x
        if fill or border:
            self.rect(self.x, self.y, w, h, fill=fill, stroke=border)
        if text:
            self._text(self.x, self.y, w, h, text, align)
        self.x += w
        if ln:
            self.ln(h)

    def multi_cell(self, w, h, text, x=None):
        left = self.x if x is None else x
        for line in _split_notes_into_lines(text, (w - 2 * CELL_PAD) * mm, self.font, self.size):
            self.x = left
            if line:
                self._text(left, self.y, w, h, line, "L")
            self.y += h
        self.x = self.margin


# -----------------------------
# Sections
# -----------------------------
def _draw_header(sheet: _Sheet, company: CompanyInfo):
    sheet.set_font("Helvetica-Bold", 24)
    sheet.set_text_color(DARK)
    sheet.cell(0, 12, company.name or "")
    sheet.ln(15)

    sheet.set_font("Helvetica", 10)
    sheet.set_text_color(MUTED)
    if company.address:
        sheet.cell(0, 5, company.address)
        sheet.ln(4)
    contact = []
    if company.phone:
        contact.append(f"Phone: {company.phone}")
    if company.email:
        contact.append(f"Email: {company.email}")
    if company.website:
        contact.append(company.website)
    if contact:
        sheet.cell(0, 5, " | ".join(contact))
    sheet.ln(15)

    # Title band
    sheet.set_fill_color(BRAND)
    sheet.set_text_color(WHITE)
    sheet.set_font("Helvetica-Bold", 20)
    sheet.cell(0, 12, "INVOICE", align="C", fill=True, ln=True)
    sheet.ln(10)

    sheet.set_text_color(BLACK)


def _draw_details(sheet: _Sheet, inv: Invoice):
    half = CONTENT_W / 2
    label_w = 25
    value_w = half - label_w

    sheet.set_font("Helvetica-Bold", 11)
    sheet.cell(half, 6, "Invoice Details")
    sheet.cell(half, 6, "Bill To")
    sheet.ln(8)

    rows = [
        ("Invoice #:", inv.invoice_num, inv.client.name),
        ("Date:", inv.date, inv.client.email),
        ("Due Date:", inv.due_date, inv.client.address),
        ("", "", inv.client.phone),
    ]
    for i, (label, value, client_line) in enumerate(rows):
        sheet.set_font("Helvetica", 10)
        sheet.cell(label_w, 5, label)
        sheet.set_font("Helvetica-Bold" if i == 0 else "Helvetica", 10)
        sheet.cell(value_w, 5, value)
        sheet.set_font("Helvetica-Bold" if i == 0 else "Helvetica", 11 if i == 0 else 10)
        sheet.cell(half, 5, client_line)
        sheet.ln(5)
    sheet.ln(15)


def _draw_items_table(sheet: _Sheet, items: list[InvoiceItem]):
    sheet.set_fill_color((240, 240, 240))
    sheet.set_text_color(BLACK)
    sheet.set_font("Helvetica-Bold", 10)
    sheet.set_draw_color((200, 200, 200))
    sheet.set_line_width(0.1)

    for title, width, align in ITEM_COLUMNS:
        sheet.cell(width, 8, title, border=True, align=align, fill=True)
    sheet.ln(8)

    sheet.set_font("Helvetica", 9)
    for i, it in enumerate(items):
        # alternating row shading
        sheet.set_fill_color((250, 250, 250) if i % 2 == 0 else WHITE)
        values = [
            it.description,
            str(it.quantity),
            _money(it.rate),
            _percent(it.percentage),
            _money(it.amount),
        ]
        for (_, width, align), value in zip(ITEM_COLUMNS, values):
            sheet.cell(width, 7, value, border=True, align=align, fill=True)
        sheet.ln(7)
    sheet.ln(15)


def _draw_totals(sheet: _Sheet, inv: Invoice):
    sheet.set_draw_color((200, 200, 200))
    sheet.set_line_width(0.1)

    sheet.set_font("Helvetica", 10)
    sheet.cell(TOTALS_LABEL_W, 7, "Subtotal:", border=True, align="R")
    sheet.cell(TOTALS_VALUE_W, 7, _money(inv.subtotal), border=True, align="R", ln=True)
    sheet.cell(TOTALS_LABEL_W, 7, "Tax:", border=True, align="R")
    sheet.cell(TOTALS_VALUE_W, 7, _money(inv.tax), border=True, align="R", ln=True)

    sheet.set_fill_color(BRAND)
    sheet.set_text_color(WHITE)
    sheet.set_font("Helvetica-Bold", 12)
    sheet.cell(TOTALS_LABEL_W, 9, "TOTAL:", border=True, align="R", fill=True)
    sheet.cell(TOTALS_VALUE_W, 9, _money(inv.total), border=True, align="R", fill=True, ln=True)

    sheet.set_text_color(BLACK)


def _draw_notes(sheet: _Sheet, notes: str):
    sheet.ln(11)
    sheet.set_font("Helvetica-Bold", 11)
    sheet.set_text_color(DARK)
    sheet.cell(40, 8, "Notes:")
    sheet.ln(8)

    sheet.set_draw_color((220, 220, 220))
    sheet.set_fill_color((248, 248, 248))
    sheet.set_font("Helvetica", 10)
    sheet.set_text_color(BLACK)

    box_w = CONTENT_W
    text_w = box_w - 10
    lines = _split_notes_into_lines(notes, (text_w - 2 * CELL_PAD) * mm, "Helvetica", 10)
    height = len(lines) * 5 + 6

    sheet.rect(sheet.margin, sheet.y - 2, box_w, height, fill=True, stroke=True)
    sheet.y += 1
    sheet.multi_cell(text_w, 5, notes, x=sheet.margin + 5)
    sheet.y += 1


def _draw_footer(sheet: _Sheet):
    sheet.ln(20)
    sheet.set_font("Helvetica-Oblique", 8)
    sheet.set_text_color((128, 128, 128))
    for line in FOOTER_LINES:
        sheet.cell(0, 5, line)
        sheet.ln(3)


# -----------------------------
# Entry point
# -----------------------------
def render_invoice_pdf(inv: Invoice, company: CompanyInfo, *, compress: bool = True) -> bytes:
    """
    Renders a single-page A4 invoice and returns the PDF bytes.

    Output depends only on the invoice and company info. Items beyond what
    fits on one page run off the bottom; there is no pagination.
    """
    buf = io.BytesIO()
    pdf = canvas.Canvas(buf, pagesize=A4, pageCompression=1 if compress else 0, invariant=1)
    pdf.setTitle(f"Invoice - {inv.invoice_num}")
    pdf.setAuthor(company.name or "")

    sheet = _Sheet(pdf)
    _draw_header(sheet, company)
    _draw_details(sheet, inv)
    _draw_items_table(sheet, inv.items)
    _draw_totals(sheet, inv)
    if inv.notes:
        _draw_notes(sheet, inv.notes)
    _draw_footer(sheet)

    pdf.showPage()
    pdf.save()
    return buf.getvalue()
