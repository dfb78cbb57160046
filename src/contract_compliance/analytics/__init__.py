"""Portfolio risk analytics."""

from .analytics_engine import AnalyticsEngine, GroupAccumulator, RiskPartial

__all__ = ["AnalyticsEngine", "GroupAccumulator", "RiskPartial"]
