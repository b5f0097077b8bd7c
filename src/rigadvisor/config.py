"""
引擎配置 - Engine Settings

所有评分阈值集中在此，可通过 JSON 文件覆盖。
Every scoring threshold lives here as a named parameter and can be
overridden from a JSON file.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, Tuple

from pydantic import BaseModel, Field


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class ScoringSettings(BaseModel):
    default_performance: float = 50
    default_modernity: float = 60
    neutral_value: float = 50
    value_price_unit: float = 10000
    value_multiplier: float = 10
    modernity_decay_per_year: float = 15
    modernity_floor: float = 20
    strong_performance: float = 80
    weak_performance: float = 40
    strong_value: float = 70
    weak_value: float = 30
    strong_modernity: float = 85
    weak_modernity: float = 50
    replace_immediately_below: float = 30
    upgrade_soon_below: float = 50
    upgrade_later_below: float = 70
    base_lifespan_months: float = 60
    lifespan_performance_weight: float = 0.5
    lifespan_modernity_weight: float = 0.3
    lifespan_usage_multiplier: Dict[str, float] = Field(
        default_factory=lambda: {"gaming": 0.8, "office": 1.3}
    )
    lifespan_bounds_months: Tuple[int, int] = (12, 120)
    base_compatibility: float = 70
    same_brand_bonus: float = 5
    maintenance_age_years: float = 3


class CompatibilitySettings(BaseModel):
    socket_penalty: float = 30
    memory_penalty: float = 25
    connector_penalty: float = 25
    physical_penalty: float = 15
    power_budget_penalty: float = 20
    balance_penalty: Dict[str, float] = Field(
        default_factory=lambda: {"moderate": 5, "major": 10, "critical": 20}
    )
    warning_penalty: float = 3
    non_blocking_issue_penalty: float = 8
    clean_bonus: float = 5
    default_psu_wattage: float = 500
    default_cpu_power_connector: str = "8pin_cpu"
    gpu_length_warning_ratio: float = 0.9
    cooler_height_warning_ratio: float = 0.95
    power_critical_utilization: float = 0.9
    power_warning_utilization: float = 0.8
    psu_safety_margin: float = 0.2
    psu_rounding_watts: float = 50
    psu_oversize_factor: float = 1.8
    efficiency_markers: Tuple[str, ...] = ("80+", "80 plus", "bronze", "silver", "gold", "platinum", "titanium")
    # cpu/gpu score ratio bands, cpu-bound side; gpu-bound side is the reciprocal
    balance_bands: Tuple[float, float, float] = (0.4, 0.5, 0.6)
    long_gpu_mm: float = 300
    tall_cooler_mm: float = 160
    clearance_reference_mm: float = 350
    min_clearance_mm: float = 20


class BottleneckSettings(BaseModel):
    cpu_gpu_bands: Tuple[float, float, float] = (0.4, 0.5, 0.6)
    cpu_gpu_potential_cap: float = 90
    gpu_minimum_by_usage: Dict[str, float] = Field(
        default_factory=lambda: {"gaming": 70, "creative": 75, "development": 60}
    )
    gpu_minimum_default: float = 40
    gpu_deficit_critical: float = 30
    gpu_deficit_major: float = 20
    gpu_potential_cap: float = 95
    gpu_psu_headroom_watts: float = 100
    memory_gb_by_usage: Dict[str, int] = Field(
        default_factory=lambda: {"gaming": 32, "creative": 64, "development": 32}
    )
    memory_gb_default: int = 16
    memory_deficit_critical_gb: int = 32
    memory_deficit_major_gb: int = 16
    memory_potential_cap: float = 80
    storage_potential: float = 85
    psu_threshold: float = 0.8
    psu_major: float = 0.9
    psu_critical: float = 0.95
    psu_potential: float = 70
    default_cpu_tdp: float = 65
    default_fan_size_mm: float = 120
    cooling_bands: Tuple[float, float, float] = (1.0, 1.1, 1.2)
    cooling_potential_cap: float = 60
    cooling_potential_base: float = 1.3
    generation_gap_limit: int = 1
    generation_potential: float = 40
    cost_estimates: Dict[str, float] = Field(
        default_factory=lambda: {
            "cpu": 50000,
            "gpu": 80000,
            "psu": 15000,
            "cooler": 8000,
            "motherboard": 25000,
            "case": 10000,
            "compatibility": 50000,
        }
    )
    memory_cost_per_gb: float = 2000
    storage_cost_per_gb: float = 100
    storage_upgrade_gb: int = 500


class MetricsSettings(BaseModel):
    base_confidence: float = 0.8
    confidence_per_component: float = 0.02
    component_confidence_cap: float = 0.15
    age_penalty_per_year: float = 0.03
    age_penalty_cap: float = 0.2
    catalog_miss_penalty: float = 0.05
    confidence_bounds: Tuple[float, float] = (0.5, 1.0)
    balance_std_weight: float = 2


class RecommendationSettings(BaseModel):
    urgent_priority: float = 95
    urgent_confidence: float = 0.9
    balanced_priority: float = 70
    balanced_confidence: float = 0.8
    balanced_phase_factor: float = 0.8
    budget_priority: float = 60
    budget_confidence: float = 0.75
    budget_overall_threshold: float = 70
    budget_item_limit: float = 30000
    budget_max_phases: int = 3


class ROISettings(BaseModel):
    default_timeframe_months: int = 24
    productivity_per_point: float = 100
    hours_per_point: float = 0.5
    hourly_value: float = 1.0
    frustration_per_point: float = 50
    power_savings_per_point: float = 10
    maintenance_per_month: float = 5
    downtime_reduction: float = 500
    risk_factor: float = 0.8
    uncertainty_low: float = 0.6
    uncertainty_high: float = 1.4
    confidence_interval: float = 80


class EngineSettings(BaseModel):
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    compatibility: CompatibilitySettings = Field(default_factory=CompatibilitySettings)
    bottleneck: BottleneckSettings = Field(default_factory=BottleneckSettings)
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)
    recommendation: RecommendationSettings = Field(default_factory=RecommendationSettings)
    roi: ROISettings = Field(default_factory=ROISettings)


def load_settings(path: Path | None = None) -> EngineSettings:
    """
    加载引擎配置 - Load Engine Settings

    参数 Parameters:
        path: JSON 覆盖文件路径，缺省时读取 RIGADVISOR_SETTINGS_PATH
              JSON override file, falls back to RIGADVISOR_SETTINGS_PATH

    返回 Returns:
        合并后的配置
        Settings with overrides merged over defaults
    """
    if path is None:
        raw = os.getenv("RIGADVISOR_SETTINGS_PATH", "").strip()
        path = Path(raw) if raw else None

    settings = EngineSettings()
    if path is not None:
        if not path.exists():
            raise RuntimeError(f"settings file missing: {path}")
        overrides = json.loads(path.read_text(encoding="utf-8"))
        settings = EngineSettings.model_validate(_deep_merge(settings.model_dump(), overrides))
    settings.roi.default_timeframe_months = _env_int(
        "ROI_DEFAULT_TIMEFRAME_MONTHS", settings.roi.default_timeframe_months
    )
    return settings


def _deep_merge(base: dict, overrides: dict) -> dict:
    out = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _deep_merge(out[key], value)
        else:
            out[key] = value
    return out
