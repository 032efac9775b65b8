from .reconciler import CycleReport, InvoicePoller
from .sink import CallbackSink

__all__ = ["CycleReport", "InvoicePoller", "CallbackSink"]
