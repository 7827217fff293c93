"""PDF receipts drawn with reportlab.

Two layouts share one page style: the fee receipt printed at the counter
and the admission slip printed against a print token.
"""
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import A5
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

BRAND = colors.HexColor("#1e3a8a")
MUTED = colors.HexColor("#64748b")
CARD = colors.HexColor("#eef2ff")

def money(amount):
    return f"PKR {float(amount or 0):,.0f}"

class _Receipt:
    def __init__(self, academy, title):
        self.buf = BytesIO()
        self.c = canvas.Canvas(self.buf, pagesize=A5)
        self.c.setTitle(title)
        self.width, self.height = A5
        self.margin = 14 * mm
        self._header(academy, title)

    def _header(self, academy, title):
        c, header_h = self.c, 26 * mm
        c.setFillColor(BRAND)
        c.rect(0, self.height - header_h, self.width, header_h, fill=1, stroke=0)
        c.setFillColor(colors.white)
        c.setFont("Helvetica-Bold", 14)
        c.drawString(self.margin, self.height - 11 * mm, academy.get("name") or "Academy")
        contact = "  ".join(filter(None, [academy.get("address"), academy.get("phone")]))
        c.setFont("Helvetica", 8.5)
        c.drawString(self.margin, self.height - 16 * mm, contact or "Official Receipt")
        c.setFont("Helvetica-Bold", 9)
        c.drawRightString(self.width - self.margin, self.height - 21 * mm, title.upper())
        self.y = self.height - header_h - 10 * mm

    def amount_card(self, label, amount):
        c, h = self.c, 14 * mm
        top = self.y - h
        c.setFillColor(CARD)
        c.roundRect(self.margin, top, self.width - 2 * self.margin, h, 3 * mm, fill=1, stroke=0)
        c.setFillColor(MUTED)
        c.setFont("Helvetica", 9)
        c.drawCentredString(self.width / 2, top + h - 5 * mm, label)
        c.setFillColor(colors.black)
        c.setFont("Helvetica-Bold", 16)
        c.drawCentredString(self.width / 2, top + 4.5 * mm, money(amount))
        self.y = top - 8 * mm

    def row(self, label, value):
        c = self.c
        c.setFont("Helvetica", 9)
        c.setFillColor(MUTED)
        c.drawString(self.margin, self.y, label)
        c.setFillColor(colors.black)
        c.setFont("Helvetica-Bold", 10)
        text = "-" if value in (None, "") else str(value)
        c.drawRightString(self.width - self.margin, self.y, text)
        self.y -= 6.5 * mm

    def rule(self):
        c = self.c
        c.setStrokeColor(colors.lightgrey)
        c.setDash(1, 2)
        c.line(self.margin, self.y + 3 * mm, self.width - self.margin, self.y + 3 * mm)
        c.setDash()
        self.y -= 4 * mm

    def finish(self, footer):
        c = self.c
        c.setFillColor(MUTED)
        c.setFont("Helvetica", 8.5)
        c.drawCentredString(self.width / 2, max(self.y, 16 * mm), footer)
        c.showPage()
        c.save()
        data = self.buf.getvalue()
        self.buf.close()
        return data

def fee_receipt_pdf(record, academy):
    """``record`` is a ``FeeRecord``; returns the PDF bytes."""
    student = record.student
    doc = _Receipt(academy, f"Fee Receipt {record.receipt_no}")
    doc.amount_card("Amount Received", record.amount)
    doc.row("Receipt No.", record.receipt_no)
    doc.row("Date", record.created_at.strftime("%Y-%m-%d %H:%M"))
    doc.row("Student", f"{student.name} ({student.student_no})")
    doc.row("Class", student.school_class.title if student.school_class else None)
    doc.row("Month", record.month)
    doc.row("Subject", record.subject)
    doc.row("Method", record.payment_method.replace("_", " ").title())
    if record.refunded_amount:
        doc.row("Refunded", money(record.refunded_amount))
    doc.rule()
    doc.row("Total Fee", money(student.total_fee))
    doc.row("Paid to Date", money(student.paid_amount))
    doc.row("Balance", money(max((student.total_fee or 0) - (student.paid_amount or 0), 0)))
    return doc.finish("Thank you for your payment.")

def admission_receipt_pdf(student, print_record, academy):
    """Admission slip for ``student``, stamped ORIGINAL on the first print."""
    copy = "ORIGINAL" if print_record.version == 1 else f"COPY {print_record.version - 1}"
    doc = _Receipt(academy, f"Admission Receipt {copy}")
    doc.amount_card("Net Payable", student.total_fee)
    doc.row("Receipt", print_record.receipt_id)
    doc.row("Student No.", student.student_no)
    doc.row("Name", student.name)
    doc.row("Father", student.father_name)
    doc.row("Class", student.school_class.title if student.school_class else None)
    doc.row("Group", student.group)
    doc.row("Subjects", ", ".join(student.subjects or []))
    doc.row("Seat", student.seat.label if student.seat else student.seat_number)
    doc.row("Admitted", student.admission_date.isoformat() if student.admission_date else None)
    doc.rule()
    if student.discount_amount:
        doc.row("Session Rate", money(student.session_rate))
        doc.row("Discount", money(student.discount_amount))
    doc.row("Total Fee", money(student.total_fee))
    doc.row("Received", money(student.paid_amount))
    doc.row("Balance", money(max((student.total_fee or 0) - (student.paid_amount or 0), 0)))
    doc.row("Fee Status", (student.fee_status or "").title())
    return doc.finish("Keep this slip for your records.")
