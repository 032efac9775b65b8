from payment_gateway.data import InvoiceRepository, TypedStore
from payment_gateway.domain import Invoice
from payment_gateway.gateway import PaymentGateway
from payment_gateway.poller import CallbackSink, InvoicePoller

__all__ = ["Invoice", "InvoiceRepository", "TypedStore", "PaymentGateway", "CallbackSink", "InvoicePoller"]
