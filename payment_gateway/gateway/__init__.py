from .manager import PaymentGateway, new_invoice_key

__all__ = ["PaymentGateway", "new_invoice_key"]
