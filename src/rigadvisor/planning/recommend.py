"""
升级方案生成 - Upgrade Plan Generation

从瓶颈列表生成三类方案：紧急、均衡分阶段和预算优先，按优先级降序排列。
Turn detected bottlenecks into up to three plans (urgent, balanced, budget)
ordered by priority.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Iterable, List, Sequence

from ..config import RecommendationSettings
from ..schemas import (
    BottleneckResult,
    CompatibilityIssue,
    ExpectedImprovement,
    PhaseImprovement,
    UpgradePhase,
    UpgradeRecommendation,
)

logger = logging.getLogger(__name__)

BACKUP_WARNING = "Back up your data before starting the work"


def plan_id(kind: str, bottlenecks: Sequence[BottleneckResult]) -> str:
    """Stable id derived from the plan type and the bottlenecks it addresses."""
    digest = hashlib.sha1()
    digest.update(kind.encode("utf-8"))
    for b in bottlenecks:
        digest.update(f"|{b.type}:{b.severity}:{','.join(b.affected_parts)}".encode("utf-8"))
    return f"{kind}-{digest.hexdigest()[:12]}"


class RecommendationGenerator:
    def __init__(self, settings: RecommendationSettings | None = None):
        self.settings = settings or RecommendationSettings()

    def generate(
        self,
        bottlenecks: Sequence[BottleneckResult],
        overall_score: float,
        compatibility_issues: Iterable[CompatibilityIssue] = (),
    ) -> List[UpgradeRecommendation]:
        """
        生成升级方案 - Generate Upgrade Plans

        参数 Parameters:
            bottlenecks: 按严重程度排序的瓶颈
                         Bottlenecks, most severe first
            overall_score: 整机综合评分，低于阈值时才生成预算方案
                           Overall score; the budget plan is only offered below the threshold
            compatibility_issues: 未解决的兼容性问题，作为风险附加到每个方案
                                  Unresolved issues attached to every plan as risks

        返回 Returns:
            按优先级降序排列的方案；没有瓶颈时为空列表
            Plans by priority descending, empty when there are no bottlenecks
        """
        if not bottlenecks:
            return []

        blocking = [
            f"Unresolved compatibility issue: {issue.message}"
            for issue in compatibility_issues
            if issue.must_resolve
        ]

        plans: List[UpgradeRecommendation] = []
        critical = [b for b in bottlenecks if b.severity == "critical"]
        major = [b for b in bottlenecks if b.severity == "major"]
        if critical:
            plans.append(self._urgent_plan(critical, blocking))
        if major:
            plans.append(self._balanced_plan(major, blocking))
        if overall_score < self.settings.budget_overall_threshold:
            budget = self._budget_plan(bottlenecks, blocking)
            if budget is not None:
                plans.append(budget)

        plans.sort(key=lambda p: p.priority, reverse=True)
        logger.debug("[recommend] generated %d plans from %d bottlenecks", len(plans), len(bottlenecks))
        return plans

    def _urgent_plan(self, critical: List[BottleneckResult], blocking: List[str]) -> UpgradeRecommendation:
        s = self.settings
        phases = [
            UpgradePhase(
                index=i,
                name=f"Resolve {b.type} bottleneck",
                description=b.recommended_solution,
                estimated_cost=b.cost_estimate,
                estimated_time_minutes=60,
                difficulty=b.difficulty_level,
                phase_improvement=PhaseImprovement(performance=b.improvement_potential, power_efficiency=0, stability=20),
                warnings=[BACKUP_WARNING],
                recommendations=[b.recommended_solution],
            )
            for i, b in enumerate(critical)
        ]
        return UpgradeRecommendation(
            id=plan_id("urgent", critical),
            name="Urgent fix plan",
            description="Resolve critical bottlenecks right away",
            type="immediate",
            total_cost=sum(b.cost_estimate for b in critical),
            timeframe="Act immediately",
            phases=phases,
            expected_improvement=ExpectedImprovement(
                performance_gain=max(b.improvement_potential for b in critical),
                value_gain=30,
                longevity_extension=12,
                power_efficiency_gain=5,
            ),
            risks=[f"Compatibility risk when upgrading the {b.type}; check compatibility first" for b in critical]
            + blocking,
            priority=s.urgent_priority,
            confidence=s.urgent_confidence,
        )

    def _balanced_plan(self, major: List[BottleneckResult], blocking: List[str]) -> UpgradeRecommendation:
        s = self.settings
        phases = [
            UpgradePhase(
                index=i,
                name=f"Stage {i + 1}: strengthen {b.type}",
                description=b.recommended_solution,
                estimated_cost=b.cost_estimate,
                estimated_time_minutes=90,
                difficulty=b.difficulty_level,
                phase_improvement=PhaseImprovement(
                    performance=b.improvement_potential * s.balanced_phase_factor,
                    power_efficiency=10,
                    stability=15,
                ),
                depends_on=[i - 1] if i > 0 else [],
                recommendations=[b.recommended_solution],
            )
            for i, b in enumerate(major)
        ]
        return UpgradeRecommendation(
            id=plan_id("balanced", major),
            name="Balanced improvement plan",
            description="Phased optimisation of the performance balance",
            type="phased",
            total_cost=sum(b.cost_estimate for b in major),
            timeframe="Staged over 3-6 months",
            phases=phases,
            expected_improvement=ExpectedImprovement(
                performance_gain=sum(b.improvement_potential for b in major) / len(major),
                value_gain=50,
                longevity_extension=24,
                power_efficiency_gain=15,
            ),
            risks=["Expected gains may not materialise; each stage can be re-evaluated"] + blocking,
            priority=s.balanced_priority,
            confidence=s.balanced_confidence,
        )

    def _budget_plan(self, bottlenecks: Sequence[BottleneckResult], blocking: List[str]) -> UpgradeRecommendation | None:
        s = self.settings
        cheap = sorted(
            (b for b in bottlenecks if b.cost_estimate < s.budget_item_limit),
            key=lambda b: b.improvement_potential,
            reverse=True,
        )[: s.budget_max_phases]
        if not cheap:
            return None
        phases = [
            UpgradePhase(
                index=i,
                name=f"Best value: {b.type}",
                description=f"Fix the {b.type} problem at low cost",
                estimated_cost=b.cost_estimate,
                estimated_time_minutes=45,
                difficulty="easy",
                phase_improvement=PhaseImprovement(performance=b.improvement_potential, power_efficiency=5, stability=10),
                recommendations=[b.recommended_solution],
            )
            for i, b in enumerate(cheap)
        ]
        return UpgradeRecommendation(
            id=plan_id("budget", cheap),
            name="Budget plan",
            description="Largest gain for the lowest cost",
            type="budget",
            total_cost=sum(b.cost_estimate for b in cheap),
            timeframe="Flexible, as budget allows",
            phases=phases,
            expected_improvement=ExpectedImprovement(
                performance_gain=max(b.improvement_potential for b in cheap),
                value_gain=80,
                longevity_extension=12,
                power_efficiency_gain=5,
            ),
            risks=["Limited long-term expandability"] + blocking,
            priority=s.budget_priority,
            confidence=s.budget_confidence,
        )
