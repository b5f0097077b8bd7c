"""
投资回报计算 - ROI Calculation

Pure function of a plan and a timeframe; no state is kept between calls.
"""

from __future__ import annotations

from ..config import ROISettings
from ..schemas import CostSavings, PerformanceValue, ROIAnalysis, UncertaintyRange, UpgradeRecommendation


class ROICalculator:
    def __init__(self, settings: ROISettings | None = None):
        self.settings = settings or ROISettings()

    def calculate(self, plan: UpgradeRecommendation, timeframe_months: int | None = None) -> ROIAnalysis:
        """
        计算投资回报 - Calculate ROI

        参数 Parameters:
            plan: 升级方案
                  Upgrade plan
            timeframe_months: 评估周期（月），缺省取配置值
                              Horizon in months, defaults to the configured value

        返回 Returns:
            投资回报分析；投资为 0 时 roi 为 None，月收益不为正时回本周期为 None
            ROI analysis; roi is None for a zero investment and payback is None
            when the monthly benefit is not positive
        """
        s = self.settings
        timeframe = s.default_timeframe_months if timeframe_months is None else timeframe_months
        if timeframe <= 0:
            raise ValueError(f"timeframe_months must be positive, got {timeframe}")

        gain = plan.expected_improvement
        investment = plan.total_cost
        hours = gain.performance_gain * s.hours_per_point
        performance_value = PerformanceValue(
            productivity_gain=gain.performance_gain * s.productivity_per_point,
            time_saved_hours=hours,
            time_saved_value=hours * s.hourly_value,
            frustration_reduction=gain.performance_gain * s.frustration_per_point,
        )
        cost_savings = CostSavings(
            power_savings=gain.power_efficiency_gain * s.power_savings_per_point,
            maintenance_reduction=gain.longevity_extension * s.maintenance_per_month,
            downtime_reduction=s.downtime_reduction,
        )
        monthly = (
            performance_value.productivity_gain
            + performance_value.time_saved_value
            + performance_value.frustration_reduction
            + cost_savings.power_savings
            + cost_savings.maintenance_reduction
            + cost_savings.downtime_reduction
        )
        total_benefit = monthly * timeframe
        net = total_benefit - investment

        payback = investment / monthly if monthly > 0 else None
        roi = net / investment * 100 if investment > 0 else None
        risk_adjusted = roi * s.risk_factor if roi is not None else None
        uncertainty = None
        if roi is not None:
            low, high = sorted((roi * s.uncertainty_low, roi * s.uncertainty_high))
            uncertainty = UncertaintyRange(min=low, max=high)

        return ROIAnalysis(
            investment_cost=investment,
            timeframe_months=timeframe,
            performance_value=performance_value,
            cost_savings=cost_savings,
            monthly_benefit=monthly,
            total_benefit=total_benefit,
            net_present_value=net,
            payback_period=payback,
            roi=roi,
            risk_adjusted_roi=risk_adjusted,
            uncertainty_range=uncertainty,
            confidence_interval=s.confidence_interval,
        )
