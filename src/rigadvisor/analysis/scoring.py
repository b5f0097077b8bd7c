"""
配件性能评分 - Component Performance Scoring

为单个配件计算性能、性价比和新旧程度评分，并给出升级建议和预期寿命。
Score a single part on performance, value and modernity, then derive the
recommended action and expected lifespan.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, List, Optional

from ..config import ScoringSettings
from ..data.catalog import PerformanceCatalog
from ..schemas import ComponentPerformance, PCConfiguration, Part, RecommendedAction

logger = logging.getLogger(__name__)

ANALYZED_CATEGORIES = ("cpu", "gpu", "motherboard", "memory", "storage", "psu", "case", "cooler")


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def years_between(start: date, end: date) -> float:
    return max(0.0, (end - start).days / 365.0)


class ComponentPerformanceScorer:
    """
    配件评分器 - Component Performance Scorer

    参数 Parameters:
        catalog: 性能目录
                 Benchmark catalog
        settings: 评分阈值
                  Scoring thresholds
        reference_date: 计算新旧程度的基准日期，缺省为今天
                        Date ages are measured against, defaults to today
    """

    def __init__(
        self,
        catalog: PerformanceCatalog,
        settings: ScoringSettings | None = None,
        *,
        reference_date: date | None = None,
    ):
        self.catalog = catalog
        self.settings = settings or ScoringSettings()
        self.reference_date = reference_date

    def _today(self) -> date:
        return self.reference_date or date.today()

    def score(
        self,
        part: Part,
        category: str | None = None,
        configuration: PCConfiguration | None = None,
    ) -> ComponentPerformance:
        s = self.settings
        category = category or part.category
        entry = self.catalog.lookup_part(part)
        if entry is None:
            logger.debug("[scoring] catalog miss for %s (%s)", part.id, part.name)

        performance = clamp(entry.score if entry is not None else s.default_performance)
        value = self._value_score(performance, part.price)
        release = part.release_date or (entry.release_date if entry is not None else None)
        modernity = self._modernity_score(release)

        strengths: List[str] = []
        weaknesses: List[str] = []
        if performance > s.strong_performance:
            strengths.append("high performance")
        if value > s.strong_value:
            strengths.append("good value")
        if modernity > s.strong_modernity:
            strengths.append("current generation")
        if performance < s.weak_performance:
            weaknesses.append("low performance")
        if value < s.weak_value:
            weaknesses.append("poor value")
        if modernity < s.weak_modernity:
            weaknesses.append("outdated")

        usage = configuration.usage if configuration is not None else "mixed"
        return ComponentPerformance(
            part_id=part.id,
            part_name=part.name,
            category=category,
            performance_score=performance,
            value_score=value,
            modernity_score=modernity,
            strengths=strengths,
            weaknesses=weaknesses,
            recommended_action=self._recommended_action(performance, value, modernity),
            expected_lifespan_months=self._expected_lifespan(performance, modernity, usage),
            maintenance_needed=self._maintenance_needed(configuration),
            compatibility_with_others=self._brand_affinity(part, configuration),
            catalog_hit=entry is not None,
        )

    def analyze_configuration(self, configuration: PCConfiguration) -> Dict[str, ComponentPerformance]:
        """Score the primary part of every populated category."""
        analysis: Dict[str, ComponentPerformance] = {}
        for category in ANALYZED_CATEGORIES:
            part = configuration.primary(category)
            if part is not None:
                analysis[category] = self.score(part, category, configuration)
        return analysis

    def _value_score(self, performance: float, price: float) -> float:
        s = self.settings
        if price <= 0:
            return s.neutral_value
        raw = performance / (price / s.value_price_unit) * s.value_multiplier
        return round(clamp(raw), 1)

    def _modernity_score(self, release: Optional[date]) -> float:
        s = self.settings
        if release is None:
            return s.default_modernity
        age = years_between(release, self._today())
        return float(round(clamp(max(s.modernity_floor, 100 - age * s.modernity_decay_per_year))))

    def _recommended_action(self, performance: float, value: float, modernity: float) -> RecommendedAction:
        s = self.settings
        overall = (performance + value + modernity) / 3
        if overall < s.replace_immediately_below:
            return "replace_immediately"
        if overall < s.upgrade_soon_below:
            return "upgrade_soon"
        if overall < s.upgrade_later_below:
            return "upgrade_later"
        return "keep"

    def _expected_lifespan(self, performance: float, modernity: float, usage: str) -> int:
        s = self.settings
        months = (
            s.base_lifespan_months
            + (performance - 50) * s.lifespan_performance_weight
            + (modernity - 50) * s.lifespan_modernity_weight
        )
        months *= s.lifespan_usage_multiplier.get(usage, 1.0)
        low, high = s.lifespan_bounds_months
        return int(round(clamp(months, low, high)))

    def _maintenance_needed(self, configuration: PCConfiguration | None) -> bool:
        if configuration is None or configuration.purchase_date is None:
            return False
        return years_between(configuration.purchase_date, self._today()) > self.settings.maintenance_age_years

    def _brand_affinity(self, part: Part, configuration: PCConfiguration | None) -> float:
        s = self.settings
        if configuration is None:
            return s.base_compatibility
        brand = self.catalog.canonical_manufacturer(part.manufacturer)
        if not brand:
            return s.base_compatibility
        same_brand = sum(
            1
            for other in configuration.all_parts()
            if other.id != part.id and self.catalog.canonical_manufacturer(other.manufacturer) == brand
        )
        return clamp(s.base_compatibility + same_brand * s.same_brand_bonus)
