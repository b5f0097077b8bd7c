"""
性能预测 - Performance Prediction

Gaming, productivity and general-use metrics, plus the aggregate scores of a
bottleneck analysis.
"""

from __future__ import annotations

import math
from datetime import date
from typing import Dict, Optional

from ..config import MetricsSettings
from ..schemas import ComponentPerformance, PCConfiguration, PerformanceMetrics, PerformanceSummary
from .scoring import clamp, years_between

ComponentAnalysis = Dict[str, ComponentPerformance]

# categories the catalog carries benchmark scores for
BENCHMARKED_CATEGORIES = ("cpu", "gpu")


def _perf(analysis: ComponentAnalysis, category: str, default: Optional[float] = None) -> Optional[float]:
    item = analysis.get(category)
    return item.performance_score if item is not None else default


class PerformancePredictor:
    def __init__(self, settings: MetricsSettings | None = None, *, reference_date: date | None = None):
        self.settings = settings or MetricsSettings()
        self.reference_date = reference_date

    def predict(self, analysis: ComponentAnalysis) -> PerformanceSummary:
        return PerformanceSummary(
            gaming=self.gaming(analysis),
            productivity=self.productivity(analysis),
            general=self.general(analysis),
        )

    def gaming(self, analysis: ComponentAnalysis) -> PerformanceMetrics:
        cpu, gpu = _perf(analysis, "cpu"), _perf(analysis, "gpu")
        memory, storage = _perf(analysis, "memory"), _perf(analysis, "storage")

        fps = gpu * 1.2 if gpu is not None else 30.0
        # cpu-limited and memory-limited corrections
        if cpu is not None and gpu is not None and cpu < gpu * 0.8:
            fps *= 0.85
        if memory is not None and memory < 60:
            fps *= 0.9
        load_time = max(5.0, 60 - storage * 0.5) if storage is not None else 45.0
        multitasking = memory if memory is not None else 40.0
        overall = fps * 0.4 + (100 - load_time) * 0.3 + multitasking * 0.3
        return PerformanceMetrics(
            fps=round(fps),
            load_time_seconds=round(load_time),
            multitasking=multitasking,
            overall=round(clamp(overall)),
        )

    def productivity(self, analysis: ComponentAnalysis) -> PerformanceMetrics:
        cpu = _perf(analysis, "cpu", 40.0)
        memory = _perf(analysis, "memory", 40.0)
        storage = _perf(analysis, "storage", 40.0)
        base = cpu * 0.4 + memory * 0.3 + storage * 0.3
        return PerformanceMetrics(
            fps=60,
            load_time_seconds=round(max(3.0, 30 - storage * 0.3), 1),
            multitasking=round(base),
            overall=round(clamp(base)),
        )

    def general(self, analysis: ComponentAnalysis) -> PerformanceMetrics:
        average = self.overall_score(analysis)
        return PerformanceMetrics(
            fps=30,
            load_time_seconds=round(max(5.0, 45 - average * 0.4), 1),
            multitasking=average,
            overall=average,
        )

    @staticmethod
    def overall_score(analysis: ComponentAnalysis) -> float:
        scores = [c.performance_score for c in analysis.values()]
        if not scores:
            return 0.0
        return float(round(clamp(sum(scores) / len(scores))))

    def balance_score(self, analysis: ComponentAnalysis) -> float:
        scores = [c.performance_score for c in analysis.values()]
        if not scores:
            return 0.0
        mean = sum(scores) / len(scores)
        std = math.sqrt(sum((x - mean) ** 2 for x in scores) / len(scores))
        return float(round(clamp(100 - std * self.settings.balance_std_weight)))

    def confidence(self, configuration: PCConfiguration, analysis: ComponentAnalysis) -> float:
        s = self.settings
        value = s.base_confidence + min(s.component_confidence_cap, len(analysis) * s.confidence_per_component)
        if configuration.purchase_date is not None:
            age = years_between(configuration.purchase_date, self.reference_date or date.today())
            value -= min(s.age_penalty_cap, age * s.age_penalty_per_year)
        value -= s.catalog_miss_penalty * sum(
            1 for category, c in analysis.items() if category in BENCHMARKED_CATEGORIES and not c.catalog_hit
        )
        low, high = s.confidence_bounds
        return round(clamp(value, low, high), 2)
