"""
PDF statements and receipts.

Rendered in memory with reportlab's platypus layer and returned as bytes;
the router streams them back with a Content-Disposition header.
"""

import io
import logging
from datetime import datetime, timezone

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import (
    HRFlowable,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from airtime_api.config import settings
from airtime_api.models.account import Account
from airtime_api.models.transaction import Transaction
from airtime_api.utils import format_kes

logger = logging.getLogger(__name__)

BRAND_COLOR = colors.HexColor("#1B7F3B")
ROW_SHADE = colors.HexColor("#F4F6F5")
GRID_COLOR = colors.HexColor("#DDE2DF")

_KIND_LABELS = {
    "deposit": "Deposit",
    "airtime_purchase": "Airtime",
    "direct_purchase": "Direct Airtime",
    "adjustment": "Adjustment",
    "conversion": "Airtime to Cash",
}


def _styles() -> dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    return {
        "title": ParagraphStyle(
            "ReceiptTitle",
            parent=base["Heading1"],
            fontSize=18,
            spaceAfter=6,
            alignment=TA_CENTER,
            textColor=BRAND_COLOR,
        ),
        "subtitle": ParagraphStyle(
            "ReceiptSubtitle",
            parent=base["Heading2"],
            fontSize=12,
            spaceAfter=12,
            alignment=TA_CENTER,
        ),
        "body": ParagraphStyle(
            "ReceiptBody",
            parent=base["Normal"],
            fontSize=10,
            spaceAfter=4,
        ),
        "footer": ParagraphStyle(
            "ReceiptFooter",
            parent=base["Normal"],
            fontSize=8,
            alignment=TA_CENTER,
            textColor=colors.grey,
        ),
    }


def _document(buffer: io.BytesIO, title: str) -> SimpleDocTemplate:
    return SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75 * inch,
        leftMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.75 * inch,
        title=title,
        author=settings.APP_NAME,
    )


def _signed_amount(txn: Transaction) -> str:
    sign = "-" if txn.direction == "debit" else "+"
    return f"{sign}{format_kes(txn.amount_cents)}"


def _generated_line(styles) -> Paragraph:
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    return Paragraph(f"Generated {stamp} by {settings.APP_NAME}", styles["footer"])


def render_statement(account: Account, transactions: list[Transaction]) -> bytes:
    """Full transaction history for one account, newest first."""
    buffer = io.BytesIO()
    doc = _document(buffer, f"Statement {account.username}")
    styles = _styles()

    content = [
        Paragraph(settings.APP_NAME, styles["title"]),
        Paragraph("Transaction History", styles["subtitle"]),
        Paragraph(f"Username: {account.username}", styles["body"]),
        Paragraph(f"Email: {account.email}", styles["body"]),
        Paragraph(f"Current Balance: {format_kes(account.balance_cents)}", styles["body"]),
        Spacer(1, 12),
        HRFlowable(width="100%", color=BRAND_COLOR),
        Spacer(1, 12),
    ]

    if transactions:
        rows = [["Date", "Type", "Amount", "Status", "M-Pesa / To"]]
        for txn in transactions:
            rows.append([
                txn.created_at.strftime("%Y-%m-%d %H:%M"),
                _KIND_LABELS.get(txn.kind, txn.kind),
                _signed_amount(txn),
                txn.status.upper(),
                txn.receipt_code or txn.target_phone or "",
            ])

        table = Table(
            rows,
            colWidths=[1.4 * inch, 1.2 * inch, 1.3 * inch, 0.9 * inch, 1.7 * inch],
            repeatRows=1,
        )
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), BRAND_COLOR),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 8),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, ROW_SHADE]),
            ("GRID", (0, 0), (-1, -1), 0.5, GRID_COLOR),
            ("ALIGN", (2, 1), (2, -1), "RIGHT"),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ]))
        content.append(table)
    else:
        content.append(Paragraph("No transactions yet.", styles["body"]))

    content.append(Spacer(1, 20))
    content.append(_generated_line(styles))

    doc.build(content)
    pdf_bytes = buffer.getvalue()
    buffer.close()

    logger.info("Rendered statement for %s (%d transactions)", account.username, len(transactions))
    return pdf_bytes


def render_receipt(account: Account, txn: Transaction) -> bytes:
    """Single-transaction receipt."""
    buffer = io.BytesIO()
    doc = _document(buffer, f"Receipt {txn.reference}")
    styles = _styles()

    rows = [
        ["Reference:", txn.reference],
        ["Date:", txn.created_at.strftime("%Y-%m-%d %H:%M")],
        ["Type:", _KIND_LABELS.get(txn.kind, txn.kind)],
        ["Amount:", _signed_amount(txn)],
        ["Status:", txn.status.upper()],
        ["Account:", account.username],
    ]
    if txn.bonus_cents:
        rows.append(["Bonus:", format_kes(txn.bonus_cents)])
    if txn.fee_cents:
        rows.append(["Airtime Delivered:", format_kes(txn.amount_cents - txn.fee_cents)])
    if txn.receipt_code:
        rows.append(["M-Pesa Code:", txn.receipt_code])
    if txn.target_phone:
        rows.append(["Sent To:", txn.target_phone])
    if txn.description:
        rows.append(["Description:", txn.description])

    table = Table(rows, colWidths=[1.8 * inch, 4.2 * inch])
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), ROW_SHADE),
        ("TEXTCOLOR", (0, 0), (0, -1), BRAND_COLOR),
        ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 10),
        ("GRID", (0, 0), (-1, -1), 1, GRID_COLOR),
        ("LEFTPADDING", (0, 0), (-1, -1), 10),
        ("TOPPADDING", (0, 0), (-1, -1), 6),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
    ]))

    content = [
        Paragraph(settings.APP_NAME, styles["title"]),
        Paragraph("Transaction Receipt", styles["subtitle"]),
        table,
        Spacer(1, 20),
        _generated_line(styles),
    ]

    doc.build(content)
    pdf_bytes = buffer.getvalue()
    buffer.close()
    return pdf_bytes
