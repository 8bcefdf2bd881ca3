"""Output targets for log entries: HTTP delivery and console echo."""

from .console import ConsoleSink
from .http_client import DeliveryOutcome, HttpDeliveryTransport

__all__ = ["ConsoleSink", "DeliveryOutcome", "HttpDeliveryTransport"]
