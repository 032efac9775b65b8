from .models import Invoice, unix_time_millis, unix_time_seconds

__all__ = ["Invoice", "unix_time_millis", "unix_time_seconds"]
