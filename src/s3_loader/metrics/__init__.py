from .registry import metrics_registry, MetricsRegistry

__all__ = ["metrics_registry", "MetricsRegistry"]
