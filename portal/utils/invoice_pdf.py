# portal/utils/invoice_pdf.py

from __future__ import annotations

import io
from datetime import datetime, date

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib import colors
from reportlab.pdfgen import canvas
from reportlab.platypus import Table, TableStyle

from portal.config.studio import STUDIO_EMAIL, STUDIO_NAME, STUDIO_WEBSITE
from portal.services.money import format_currency


def _fmt_date(d):
    if not d:
        return "-"
    if isinstance(d, (datetime, date)):
        return d.strftime("%Y-%m-%d")
    return str(d)


def _enum_value(v):
    return getattr(v, "value", v)


def invoice_number(invoice) -> str:
    return f"INV-{str(invoice.id)[:8].upper()}"


def render_invoice_pdf(invoice) -> bytes:
    """
    Render an Invoice PDF (NO DB writes).
    Returns PDF bytes.
    """
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    width, height = A4

    INK = colors.HexColor("#111827")
    ACCENT = colors.HexColor("#4f46e5")
    GRAY = colors.HexColor("#6b7280")
    LINE = colors.HexColor("#e5e7eb")

    # --- Header bar ---
    c.setFillColor(INK)
    c.rect(0, height - 28 * mm, width, 28 * mm, stroke=0, fill=1)

    c.setFillColor(colors.white)
    c.setFont("Helvetica-Bold", 16)
    c.drawString(18 * mm, height - 16 * mm, STUDIO_NAME)

    c.setFont("Helvetica", 9)
    c.drawString(18 * mm, height - 22 * mm, f"{STUDIO_EMAIL}  |  {STUDIO_WEBSITE}")

    c.setFont("Helvetica-Bold", 12)
    c.drawRightString(width - 18 * mm, height - 14 * mm, f"INVOICE {invoice_number(invoice)}")

    c.setFont("Helvetica", 9)
    status = _enum_value(invoice.status)
    c.drawRightString(
        width - 18 * mm,
        height - 20 * mm,
        f"Status: {status}  |  Issued: {_fmt_date(invoice.created_at)}",
    )

    y = height - 40 * mm

    # --- Billed to / project ---
    client = invoice.client
    project = invoice.project

    c.setFillColor(INK)
    c.setFont("Helvetica-Bold", 11)
    c.drawString(18 * mm, y, "Billed To")
    c.drawString(width / 2 + 2 * mm, y, "Project")
    y -= 6 * mm

    c.setStrokeColor(LINE)
    c.setFillColor(colors.white)
    c.roundRect(18 * mm, y - 24 * mm, width / 2 - 22 * mm, 24 * mm, 6, stroke=1, fill=1)
    right_x = width / 2 + 2 * mm
    c.roundRect(right_x, y - 24 * mm, width - right_x - 18 * mm, 24 * mm, 6, stroke=1, fill=1)

    c.setFillColor(INK)
    c.setFont("Helvetica-Bold", 10)
    c.drawString(22 * mm, y - 8 * mm, (client.display_name if client else "-")[:60])
    c.setFont("Helvetica", 9)
    line_y = y - 14 * mm
    if client and client.company_name:
        c.drawString(22 * mm, line_y, client.company_name[:60])
        line_y -= 5 * mm
    if client:
        c.setFillColor(GRAY)
        c.drawString(22 * mm, line_y, client.email[:60])

    c.setFillColor(INK)
    c.setFont("Helvetica-Bold", 10)
    c.drawString(right_x + 4 * mm, y - 8 * mm, (project.name if project else "-")[:60])
    c.setFont("Helvetica", 9)
    c.drawString(right_x + 4 * mm, y - 14 * mm, f"Due: {_fmt_date(invoice.due_date)}")
    if invoice.paid_at:
        c.drawString(right_x + 4 * mm, y - 19 * mm, f"Paid: {_fmt_date(invoice.paid_at)}")

    y -= 34 * mm

    # --- Line table (one line per invoice) ---
    amount = format_currency(invoice.amount, invoice.currency)
    data = [
        ["Description", "Amount"],
        [invoice.description, amount],
    ]
    table = Table(data, colWidths=[136 * mm, 38 * mm], hAlign="LEFT")
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#f3f4f6")),
        ("TEXTCOLOR", (0, 0), (-1, 0), INK),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("ALIGN", (1, 0), (1, -1), "RIGHT"),
        ("GRID", (0, 0), (-1, -1), 0.5, LINE),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("PADDING", (0, 0), (-1, -1), 6),
    ]))

    tw, th = table.wrapOn(c, width - 36 * mm, height)
    table.drawOn(c, 18 * mm, y - th)
    y = y - th - 10 * mm

    # --- Total ---
    c.setFillColor(ACCENT)
    c.setFont("Helvetica-Bold", 12)
    c.drawRightString(width - 18 * mm, y, f"Total {amount}")
    c.setFillColor(GRAY)
    c.setFont("Helvetica", 9)
    c.drawRightString(width - 18 * mm, y - 6 * mm, f"Currency: {(invoice.currency or 'usd').upper()}")

    # --- Footer ---
    c.setFillColor(LINE)
    c.rect(0, 0, width, 12 * mm, stroke=0, fill=1)
    c.setFillColor(colors.HexColor("#374151"))
    c.setFont("Helvetica", 8)
    c.drawString(18 * mm, 4 * mm, f"{STUDIO_NAME}  |  Questions? {STUDIO_EMAIL}")
    c.setFillColor(GRAY)
    c.drawRightString(width - 18 * mm, 4 * mm, f"Generated: {_fmt_date(date.today())}")

    c.showPage()
    c.save()

    pdf = buf.getvalue()
    buf.close()
    return pdf
