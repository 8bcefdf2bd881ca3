from .metrics import MetricsCollector, SenderMetrics

__all__ = ["MetricsCollector", "SenderMetrics"]
