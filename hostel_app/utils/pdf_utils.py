"""
PDF receipt generation for bookings and payments
"""

import io
from datetime import datetime
from typing import Any, Mapping, Optional

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from reportlab.platypus.flowables import HRFlowable

HEADER_TITLE = "HOSTEL MANAGEMENT SYSTEM"


class InvoicePDFGenerator:
    """Renders receipts as A4 PDF documents"""

    def __init__(self, page_size=A4, margins=None):
        self.page_size = page_size
        self.margins = margins or {'top': 2*cm, 'bottom': 2*cm, 'left': 2*cm, 'right': 2*cm}
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        self.styles.add(ParagraphStyle(
            name='ReceiptHeader',
            parent=self.styles['Heading1'],
            fontSize=20,
            textColor=colors.darkblue,
            spaceAfter=6,
            alignment=TA_CENTER
        ))
        self.styles.add(ParagraphStyle(
            name='ReceiptTitle',
            parent=self.styles['Heading2'],
            fontSize=14,
            alignment=TA_CENTER,
            spaceAfter=18
        ))
        self.styles.add(ParagraphStyle(
            name='SectionHeading',
            parent=self.styles['Heading3'],
            textColor=colors.darkblue,
            spaceBefore=12,
            spaceAfter=6
        ))
        self.styles.add(ParagraphStyle(
            name='RightAligned',
            parent=self.styles['Normal'],
            alignment=TA_RIGHT
        ))

    def render(
        self,
        invoice: Mapping[str, Any],
        student: Mapping[str, Any],
        room: Optional[Mapping[str, Any]] = None,
    ) -> bytes:
        """
        Build the receipt.

        Args:
            invoice: invoice_number, issued_at, items [(description, amount)],
                total, currency and optional payment_method
            student: name plus optional email and phone
            room: booked room details, or None for non-booking payments

        Returns:
            The PDF document as bytes
        """
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=self.page_size,
            topMargin=self.margins['top'],
            bottomMargin=self.margins['bottom'],
            leftMargin=self.margins['left'],
            rightMargin=self.margins['right'],
            title=f"Invoice {invoice['invoice_number']}",
        )

        story = [
            Paragraph(HEADER_TITLE, self.styles['ReceiptHeader']),
            Paragraph("Room Booking Receipt" if room else "Payment Receipt", self.styles['ReceiptTitle']),
            HRFlowable(width="100%", thickness=1, color=colors.grey),
            Spacer(1, 8),
        ]

        issued_at = invoice.get('issued_at') or datetime.now()
        story.append(Paragraph(f"<b>Invoice No:</b> {invoice['invoice_number']}", self.styles['Normal']))
        story.append(Paragraph(f"<b>Date:</b> {issued_at:%d %b %Y}", self.styles['Normal']))

        story.append(Paragraph("Bill To", self.styles['SectionHeading']))
        story.append(Paragraph(student.get('name') or "Resident", self.styles['Normal']))
        for key in ('email', 'phone'):
            if student.get(key):
                story.append(Paragraph(str(student[key]), self.styles['Normal']))

        if room:
            story.append(Paragraph("Booking Details", self.styles['SectionHeading']))
            details = [
                ["Room", room.get('room_number', '-')],
                ["Type", room.get('room_type', '-')],
                ["Plan", room.get('plan_label', '-')],
            ]
            if room.get('check_in_date'):
                details.append(["Check-in", str(room['check_in_date'])])
            story.append(self._key_value_table(details))

        story.append(Paragraph("Charges", self.styles['SectionHeading']))
        currency = invoice.get('currency', 'INR')
        rows = [["Description", f"Amount ({currency})"]]
        for description, amount in invoice.get('items', []):
            rows.append([description, f"{amount:,.2f}"])
        rows.append(["Total Paid" if invoice.get('paid') else "Total Due", f"{invoice['total']:,.2f}"])
        story.append(self._items_table(rows))

        if invoice.get('payment_method'):
            story.append(Spacer(1, 12))
            story.append(Paragraph(f"Payment Method: {invoice['payment_method']}", self.styles['Normal']))

        doc.build(story)
        return buffer.getvalue()

    def _key_value_table(self, rows):
        table = Table(rows, colWidths=[4*cm, 10*cm])
        table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
        ]))
        return table

    def _items_table(self, rows):
        table = Table(rows, colWidths=[11*cm, 5*cm])
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.darkblue),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
            ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
            ('LINEABOVE', (0, -1), (-1, -1), 1, colors.black),
            ('GRID', (0, 0), (-1, -2), 0.5, colors.lightgrey),
        ]))
        return table


def render_invoice_pdf(
    invoice: Mapping[str, Any],
    student: Mapping[str, Any],
    room: Optional[Mapping[str, Any]] = None,
) -> bytes:
    """Render a receipt with the default page layout."""
    return InvoicePDFGenerator().render(invoice, student, room)
