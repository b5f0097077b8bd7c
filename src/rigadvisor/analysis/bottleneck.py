"""
瓶颈检测 - Bottleneck Detection

根据各配件评分和规格找出限制整机性能的部件，按严重程度降序返回。
Find the parts that limit whole-system performance and return them ordered
by severity, most severe first.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from ..config import BottleneckSettings
from ..data.catalog import PerformanceCatalog
from ..data.specs import cooler_spec, cpu_spec, memory_spec, motherboard_spec, psu_spec, storage_spec
from ..schemas import BottleneckResult, BottleneckSeverity, ComponentPerformance, PCConfiguration
from .power import PowerEstimator
from .scoring import clamp

logger = logging.getLogger(__name__)

SEVERITY_RANK: Dict[str, int] = {"critical": 4, "major": 3, "moderate": 2, "minor": 1}

ComponentAnalysis = Dict[str, ComponentPerformance]


def sort_by_severity(bottlenecks: List[BottleneckResult]) -> List[BottleneckResult]:
    return sorted(bottlenecks, key=lambda b: SEVERITY_RANK[b.severity], reverse=True)


class BottleneckDetector:
    """
    瓶颈检测器 - Bottleneck Detector

    每个检测项独立运行，互不依赖。
    Each detector runs independently of the others.
    """

    def __init__(self, catalog: PerformanceCatalog, settings: BottleneckSettings | None = None):
        self.catalog = catalog
        self.settings = settings or BottleneckSettings()
        self.power = PowerEstimator(catalog)
        self._detectors: List[Callable[[PCConfiguration, ComponentAnalysis], Optional[BottleneckResult]]] = [
            self._cpu_gpu_balance,
            self._gpu_for_usage,
            self._memory_capacity,
            self._storage_type,
            self._psu_load,
            self._cooling,
            self._generation_gap,
        ]

    def detect(self, configuration: PCConfiguration, component_analysis: ComponentAnalysis) -> List[BottleneckResult]:
        found = []
        for detector in self._detectors:
            result = detector(configuration, component_analysis)
            if result is not None:
                found.append(result)
        logger.debug("[bottleneck] %s found=%d", configuration.id or configuration.name, len(found))
        return sort_by_severity(found)

    def _cost(self, category: str) -> float:
        return self.settings.cost_estimates.get(category, 0)

    def _cpu_gpu_balance(self, configuration: PCConfiguration, analysis: ComponentAnalysis) -> Optional[BottleneckResult]:
        s = self.settings
        cpu, gpu = analysis.get("cpu"), analysis.get("gpu")
        if cpu is None or gpu is None or gpu.performance_score <= 0:
            return None

        ratio = cpu.performance_score / gpu.performance_score
        critical, major, moderate = s.cpu_gpu_bands
        if ratio >= moderate:
            return None
        severity: BottleneckSeverity = "critical" if ratio < critical else "major" if ratio < major else "moderate"

        dependents: List[str] = []
        board = configuration.motherboard
        if board is not None and self.catalog.is_legacy_socket(motherboard_spec(board).socket):
            dependents.append("motherboard")

        return BottleneckResult(
            type="cpu",
            severity=severity,
            description=f"CPU performance is low relative to the GPU (ratio {ratio:.2f})",
            impact="Frame rates and responsiveness are held back by the processor",
            recommended_solution="Upgrade to a CPU that matches the GPU tier",
            improvement_potential=clamp(min(s.cpu_gpu_potential_cap, (1 - ratio) * 100)),
            cost_estimate=self._cost("cpu"),
            difficulty_level="moderate",
            affected_parts=[cpu.part_id],
            dependent_upgrades=dependents,
        )

    def _gpu_for_usage(self, configuration: PCConfiguration, analysis: ComponentAnalysis) -> Optional[BottleneckResult]:
        s = self.settings
        gpu = analysis.get("gpu")
        if gpu is None:
            return None
        minimum = s.gpu_minimum_by_usage.get(configuration.usage, s.gpu_minimum_default)
        deficit = minimum - gpu.performance_score
        if deficit <= 0:
            return None
        severity: BottleneckSeverity = (
            "critical" if deficit > s.gpu_deficit_critical else "major" if deficit > s.gpu_deficit_major else "moderate"
        )

        dependents: List[str] = []
        wattage = psu_spec(configuration.psu).wattage
        if self.power.budget(configuration).total_watts + s.gpu_psu_headroom_watts > wattage * s.psu_threshold:
            dependents.append("psu")

        return BottleneckResult(
            type="gpu",
            severity=severity,
            description=f"GPU score {gpu.performance_score:.0f} is below the {minimum:.0f} needed for {configuration.usage} use",
            impact="Graphics workloads run at reduced quality or frame rate",
            recommended_solution="Upgrade to a GPU suited to the intended workload",
            improvement_potential=clamp(min(s.gpu_potential_cap, deficit * 2)),
            cost_estimate=self._cost("gpu"),
            difficulty_level="easy",
            affected_parts=[gpu.part_id],
            dependent_upgrades=dependents,
        )

    def _memory_capacity(self, configuration: PCConfiguration, analysis: ComponentAnalysis) -> Optional[BottleneckResult]:
        s = self.settings
        if not configuration.memory:
            return None
        total = sum(memory_spec(p).total_gb for p in configuration.memory)
        recommended = s.memory_gb_by_usage.get(configuration.usage, s.memory_gb_default)
        deficit = recommended - total
        if deficit <= 0:
            return None
        severity: BottleneckSeverity = (
            "critical"
            if deficit >= s.memory_deficit_critical_gb
            else "major" if deficit >= s.memory_deficit_major_gb else "moderate"
        )
        return BottleneckResult(
            type="memory",
            severity=severity,
            description=f"{total}GB of memory is below the recommended {recommended}GB for {configuration.usage} use",
            impact="Multitasking and large projects swap to disk",
            recommended_solution=f"Add memory to reach {recommended}GB",
            improvement_potential=clamp(min(s.memory_potential_cap, deficit / recommended * 100)),
            cost_estimate=deficit * s.memory_cost_per_gb,
            difficulty_level="easy",
            affected_parts=[p.id for p in configuration.memory],
        )

    def _storage_type(self, configuration: PCConfiguration, analysis: ComponentAnalysis) -> Optional[BottleneckResult]:
        s = self.settings
        if not configuration.storage:
            return None
        if any(storage_spec(p).is_ssd for p in configuration.storage):
            return None
        return BottleneckResult(
            type="storage",
            severity="major",
            description="No SSD is installed",
            impact="Boot, load and file operations are slow",
            recommended_solution=f"Add an NVMe SSD of at least {s.storage_upgrade_gb}GB for the system drive",
            improvement_potential=s.storage_potential,
            cost_estimate=s.storage_upgrade_gb * s.storage_cost_per_gb,
            difficulty_level="easy",
            affected_parts=[p.id for p in configuration.storage],
        )

    def _psu_load(self, configuration: PCConfiguration, analysis: ComponentAnalysis) -> Optional[BottleneckResult]:
        s = self.settings
        psu = configuration.psu
        if psu is None:
            return None
        wattage = psu_spec(psu).wattage
        utilization = self.power.budget(configuration).total_watts / wattage if wattage > 0 else 1.0
        if utilization <= s.psu_threshold:
            return None
        severity: BottleneckSeverity = (
            "critical" if utilization > s.psu_critical else "major" if utilization > s.psu_major else "moderate"
        )
        return BottleneckResult(
            type="psu",
            severity=severity,
            description=f"Power supply runs at {utilization:.0%} of its {wattage:.0f}W rating",
            impact="Instability under load and reduced power supply lifespan",
            recommended_solution="Install a higher wattage power supply",
            improvement_potential=s.psu_potential,
            cost_estimate=self._cost("psu"),
            difficulty_level="moderate",
            affected_parts=[psu.id],
        )

    def _cooling(self, configuration: PCConfiguration, analysis: ComponentAnalysis) -> Optional[BottleneckResult]:
        s = self.settings
        cpu, cooler = configuration.cpu, configuration.cooler
        if cpu is None or cooler is None:
            return None
        tdp = cpu_spec(cpu).tdp or s.default_cpu_tdp
        cooling = cooler_spec(cooler)
        capacity = cooling.tdp_rating or s.default_cpu_tdp * (cooling.fan_size_mm or s.default_fan_size_mm) / s.default_fan_size_mm
        ratio = capacity / tdp
        critical, major, moderate = s.cooling_bands
        if ratio >= moderate:
            return None
        severity: BottleneckSeverity = "critical" if ratio < critical else "major" if ratio < major else "moderate"
        return BottleneckResult(
            type="cooling",
            severity=severity,
            description=f"CPU cooling capacity is short of the processor TDP (ratio {ratio:.2f})",
            impact="Thermal throttling, shorter lifespan and instability",
            recommended_solution=f"Use a cooler rated for at least {tdp * s.cooling_potential_base:.0f}W",
            improvement_potential=clamp(min(s.cooling_potential_cap, (s.cooling_potential_base - ratio) * 100)),
            cost_estimate=self._cost("cooler"),
            difficulty_level="moderate",
            affected_parts=[cooler.id],
        )

    def _generation_gap(self, configuration: PCConfiguration, analysis: ComponentAnalysis) -> Optional[BottleneckResult]:
        s = self.settings
        cpu, board = configuration.cpu, configuration.motherboard
        if cpu is None or board is None:
            return None
        board_gen = self.catalog.chipset_generation(motherboard_spec(board).chipset)
        cpu_gen = self.catalog.cpu_generation(cpu)
        if board_gen is None or cpu_gen is None:
            return None
        gap = abs(board_gen - cpu_gen)
        if gap <= s.generation_gap_limit:
            return None
        return BottleneckResult(
            type="compatibility",
            severity="major",
            description=f"Motherboard generation {board_gen} and CPU generation {cpu_gen} are mismatched",
            impact="Platform features and BIOS support may be limited",
            recommended_solution="Move the CPU and motherboard to the same platform generation",
            improvement_potential=s.generation_potential,
            cost_estimate=self._cost("compatibility"),
            difficulty_level="difficult",
            affected_parts=[cpu.id, board.id],
            dependent_upgrades=["memory"],
        )
