"""
功耗估算 - Power Estimation

部件未声明功耗时，依次回退到目录 TDP 与按类别的典型值。
Parts without a declared draw fall back to the catalog TDP (cpu/gpu) and
then to the per-category table in the catalog.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from ..data.catalog import PerformanceCatalog
from ..data.specs import cooler_spec, memory_spec, motherboard_spec, storage_spec
from ..schemas import PCConfiguration, Part


@dataclass
class PowerBudget:
    total_watts: float
    recommended_psu_watts: float
    per_part: Dict[str, float] = field(default_factory=dict)
    estimated: List[str] = field(default_factory=list)


class PowerEstimator:
    def __init__(self, catalog: PerformanceCatalog, *, safety_margin: float = 0.2, rounding_watts: float = 50):
        self.catalog = catalog
        self.safety_margin = safety_margin
        self.rounding_watts = rounding_watts

    def estimate(self, part: Part) -> Tuple[float, str]:
        """Return (watts, source) where source is declared, catalog or estimate."""
        if part.power_consumption is not None:
            return float(part.power_consumption), "declared"
        if part.category in ("cpu", "gpu"):
            entry = self.catalog.lookup_part(part)
            if entry is not None and entry.tdp:
                return float(entry.tdp), "catalog"
        return self.catalog.power_estimate(part.category, self._variant(part)), "estimate"

    def _variant(self, part: Part) -> str | None:
        if part.category == "motherboard":
            return motherboard_spec(part).form_factor
        if part.category == "memory":
            return memory_spec(part).memory_type
        if part.category == "storage":
            spec = storage_spec(part)
            haystack = f"{spec.storage_type} {spec.interface} {part.name.lower()}"
            if "nvme" in haystack:
                return "nvme"
            return "ssd" if spec.is_ssd else "hdd"
        if part.category == "cooler":
            return "aio" if cooler_spec(part).is_aio else "air"
        return None

    def budget(self, configuration: PCConfiguration) -> PowerBudget:
        per_part: Dict[str, float] = {}
        estimated: List[str] = []
        for part in configuration.all_parts():
            if part.category == "psu":
                continue
            watts, source = self.estimate(part)
            per_part[part.id] = watts
            if source != "declared":
                estimated.append(part.id)
        total = sum(per_part.values())
        return PowerBudget(
            total_watts=total,
            recommended_psu_watts=self.recommended_psu(total),
            per_part=per_part,
            estimated=estimated,
        )

    def recommended_psu(self, total_watts: float) -> float:
        step = self.rounding_watts
        return math.ceil(total_watts * (1 + self.safety_margin) / step) * step
