from hostel_app.models.payment.invoice import Invoice, InvoiceItem
from hostel_app.models.payment.payment_record import PaymentRecord

__all__ = ["Invoice", "InvoiceItem", "PaymentRecord"]
