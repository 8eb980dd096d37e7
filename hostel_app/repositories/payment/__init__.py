from hostel_app.repositories.payment.invoice_repository import InvoiceRepository
from hostel_app.repositories.payment.payment_record_repository import PaymentRecordRepository

__all__ = ["InvoiceRepository", "PaymentRecordRepository"]
