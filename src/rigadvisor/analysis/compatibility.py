"""
兼容性规则引擎 - Compatibility Rule Engine

由若干相互独立的检查组成：插槽、内存、电源接口、物理尺寸、功率预算和性能平衡。
Independent, composable checks over a configuration. Each check yields
issues and warnings; the engine aggregates them into a 0-100 score and an
``is_compatible`` verdict.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence, Tuple

from ..config import CompatibilitySettings
from ..data.catalog import PerformanceCatalog
from ..data.specs import (
    case_spec,
    cooler_spec,
    cpu_spec,
    gpu_spec,
    memory_spec,
    motherboard_spec,
    psu_spec,
)
from ..schemas import (
    CheckOutcome,
    CompatibilityIssue,
    CompatibilityResult,
    CompatibilityWarning,
    PCConfiguration,
    Part,
)
from .power import PowerEstimator
from .scoring import ComponentPerformanceScorer, clamp

logger = logging.getLogger(__name__)

ESSENTIAL_CATEGORIES = ("cpu", "motherboard", "memory", "psu")

CHECK_NAMES = (
    "socket",
    "memory",
    "power_connectors",
    "physical_fit",
    "power_budget",
    "performance_balance",
)


@dataclass
class CheckReport:
    name: str
    issues: List[CompatibilityIssue] = field(default_factory=list)
    warnings: List[CompatibilityWarning] = field(default_factory=list)
    data: Dict[str, object] = field(default_factory=dict)
    message: str = ""
    skipped: bool = False
    # severity stage for checks scored by stage rather than pass/fail
    stage: str | None = None

    @property
    def blocking(self) -> bool:
        return any(i.must_resolve or i.severity == "critical" for i in self.issues)

    @property
    def passed(self) -> bool:
        return not self.issues and self.stage is None


def _ids(*parts: Part | None) -> List[str]:
    return [p.id for p in parts if p is not None]


def _issue_id(kind: str, affected: Sequence[str], suffix: str = "") -> str:
    key = f"{kind}:{'+'.join(affected)}"
    return f"{key}:{suffix}" if suffix else key


class CompatibilityRuleEngine:
    """
    兼容性检查器 - Compatibility Checker

    参数 Parameters:
        catalog: 插槽/内存/接口元数据来源
                 Source of socket, memory and connector metadata
        settings: 扣分与阈值
                  Penalties and thresholds
        scorer: 性能平衡检查所用评分器
                Scorer used by the performance balance check
        checks: 启用的检查名称，缺省全部启用
                Names of the checks to run, all by default
    """

    def __init__(
        self,
        catalog: PerformanceCatalog,
        settings: CompatibilitySettings | None = None,
        *,
        scorer: ComponentPerformanceScorer | None = None,
        checks: Sequence[str] | None = None,
    ):
        self.catalog = catalog
        self.settings = settings or CompatibilitySettings()
        self.scorer = scorer or ComponentPerformanceScorer(catalog)
        self.power = PowerEstimator(
            catalog,
            safety_margin=self.settings.psu_safety_margin,
            rounding_watts=self.settings.psu_rounding_watts,
        )
        registry: Dict[str, Callable[[PCConfiguration], CheckReport]] = {
            "socket": self.check_socket,
            "memory": self.check_memory,
            "power_connectors": self.check_power_connectors,
            "physical_fit": self.check_physical_fit,
            "power_budget": self.check_power_budget,
            "performance_balance": self.check_performance_balance,
        }
        names = tuple(checks) if checks is not None else CHECK_NAMES
        unknown = [n for n in names if n not in registry]
        if unknown:
            raise ValueError(f"unknown compatibility checks: {', '.join(unknown)}")
        self._checks: List[Tuple[str, Callable[[PCConfiguration], CheckReport]]] = [
            (name, registry[name]) for name in names
        ]

    def check(self, configuration: PCConfiguration) -> CompatibilityResult:
        s = self.settings
        reports = [fn(configuration) for _, fn in self._checks]

        issues: List[CompatibilityIssue] = []
        warnings: List[CompatibilityWarning] = []
        for report in reports:
            issues.extend(report.issues)
            warnings.extend(report.warnings)

        missing = self._missing_essentials(configuration)
        issues.extend(missing)

        penalties = {
            "socket": s.socket_penalty,
            "memory": s.memory_penalty,
            "power_connectors": s.connector_penalty,
            "physical_fit": s.physical_penalty,
            "power_budget": s.power_budget_penalty,
        }
        score = 100.0
        for report in reports:
            if report.blocking and report.name in penalties:
                score -= penalties[report.name]
            if report.stage is not None:
                score -= s.balance_penalty.get(report.stage, 0)
        score -= s.warning_penalty * len(warnings)
        score -= s.non_blocking_issue_penalty * sum(
            1 for i in issues if not i.must_resolve and i.severity != "critical"
        )
        if not issues and not warnings and all(r.passed for r in reports):
            score += s.clean_bonus

        is_compatible = not missing and not any(i.must_resolve or i.severity == "critical" for i in issues)
        details = {
            r.name: CheckOutcome(
                name=r.name,
                passed=not r.blocking and r.stage is None,
                message=r.message,
                data=r.data,
            )
            for r in reports
        }
        logger.debug(
            "[compatibility] %s issues=%d warnings=%d score=%.1f",
            configuration.id or configuration.name,
            len(issues),
            len(warnings),
            score,
        )
        return CompatibilityResult(
            is_compatible=is_compatible,
            score=round(clamp(score), 1),
            issues=issues,
            warnings=warnings,
            details=details,
        )

    def _missing_essentials(self, configuration: PCConfiguration) -> List[CompatibilityIssue]:
        missing: List[CompatibilityIssue] = []
        for category in ESSENTIAL_CATEGORIES:
            if configuration.primary(category) is None:
                missing.append(
                    CompatibilityIssue(
                        id=f"missing_part:{category}",
                        type="missing_part",
                        severity="info",
                        message=f"No {category} selected",
                        solution=f"Select a {category} to complete the configuration",
                        must_resolve=False,
                        category=category,
                    )
                )
        return missing

    def check_socket(self, configuration: PCConfiguration) -> CheckReport:
        report = CheckReport(name="socket")
        cpu, board = configuration.cpu, configuration.motherboard
        if cpu is None or board is None:
            report.skipped = True
            report.message = "cpu or motherboard not selected"
            return report

        cpu_socket = cpu_spec(cpu).socket
        if not cpu_socket:
            entry = self.catalog.lookup_part(cpu)
            cpu_socket = entry.socket if entry is not None else ""
        board_info = motherboard_spec(board)
        board_socket = board_info.socket
        report.data = {"cpu_socket": cpu_socket, "motherboard_socket": board_socket}
        affected = _ids(cpu, board)

        if not cpu_socket or not board_socket:
            report.warnings.append(
                CompatibilityWarning(
                    id=_issue_id("socket_unknown", affected),
                    type="socket_unknown",
                    priority="medium",
                    message="Socket information is missing; CPU and motherboard fit could not be verified",
                    affected_parts=affected,
                    solution="Confirm the CPU socket and motherboard socket from the product specifications",
                )
            )
            report.message = "socket information missing"
            return report

        if cpu_socket.strip() != board_socket.strip():
            report.issues.append(
                CompatibilityIssue(
                    id=_issue_id("socket_mismatch", affected),
                    type="socket_mismatch",
                    severity="critical",
                    message=f"CPU socket {cpu_socket} does not match motherboard socket {board_socket}",
                    affected_parts=affected,
                    solution=f"Choose a motherboard with a {cpu_socket} socket or a CPU for {board_socket}",
                    must_resolve=True,
                    category="socket",
                )
            )
            report.message = "socket mismatch"
            return report

        chipsets = self.catalog.supported_chipsets(board_socket)
        if board_info.chipset and chipsets and board_info.chipset not in chipsets:
            report.warnings.append(
                CompatibilityWarning(
                    id=_issue_id("chipset_unverified", affected),
                    type="chipset_unverified",
                    priority="low",
                    message=f"Chipset {board_info.chipset} is not a known {board_socket} chipset",
                    affected_parts=affected,
                    solution="Check the motherboard CPU support list and BIOS version",
                )
            )
        report.message = f"socket {cpu_socket} matches"
        return report

    def check_memory(self, configuration: PCConfiguration) -> CheckReport:
        report = CheckReport(name="memory")
        board = configuration.motherboard
        modules = configuration.memory
        if board is None or not modules:
            report.skipped = True
            report.message = "motherboard or memory not selected"
            return report

        board_info = motherboard_spec(board)
        supported = board_info.memory_support or self.catalog.memory_types_for_socket(board_info.socket)
        max_gb = board_info.max_memory_gb or self.catalog.max_memory_for_socket(board_info.socket)

        total_gb = 0
        module_count = 0
        for part in modules:
            mem = memory_spec(part)
            total_gb += mem.total_gb
            module_count += mem.modules
            affected = _ids(part, board)
            if supported and mem.memory_type not in supported:
                report.issues.append(
                    CompatibilityIssue(
                        id=_issue_id("memory_type_mismatch", affected),
                        type="memory_type_mismatch",
                        severity="critical",
                        message=f"{mem.memory_type} memory is not supported (motherboard supports {', '.join(supported)})",
                        affected_parts=affected,
                        solution=f"Use {' or '.join(supported)} memory modules",
                        must_resolve=True,
                        category="memory",
                    )
                )
            standard = self.catalog.standard_speeds(mem.memory_type)
            if mem.speed_mhz and standard and mem.speed_mhz not in standard:
                report.warnings.append(
                    CompatibilityWarning(
                        id=_issue_id("memory_overclock", [part.id]),
                        type="memory_overclock",
                        priority="medium",
                        message=f"{mem.memory_type}-{mem.speed_mhz} is not a JEDEC standard speed and requires an overclock profile (XMP/EXPO)",
                        affected_parts=[part.id],
                        solution="Enable XMP/EXPO in BIOS or expect the standard speed",
                    )
                )

        if max_gb and total_gb > max_gb:
            affected = _ids(board, *modules)
            report.issues.append(
                CompatibilityIssue(
                    id=_issue_id("memory_capacity_exceeded", affected),
                    type="memory_capacity_exceeded",
                    severity="critical",
                    message=f"Total memory {total_gb}GB exceeds motherboard maximum {max_gb}GB",
                    affected_parts=affected,
                    solution=f"Reduce total memory to {max_gb}GB or less",
                    must_resolve=True,
                    category="memory",
                )
            )

        if module_count == 1:
            report.warnings.append(
                CompatibilityWarning(
                    id=_issue_id("single_channel", _ids(*modules)),
                    type="single_channel",
                    priority="low",
                    message="A single memory module runs in single-channel mode",
                    affected_parts=_ids(*modules),
                    solution="Use two matching modules for dual-channel bandwidth",
                )
            )

        report.data = {
            "supported_types": list(supported),
            "total_gb": total_gb,
            "max_gb": max_gb,
            "modules": module_count,
        }
        report.message = "memory issues found" if report.issues else "memory compatible"
        return report

    def check_power_connectors(self, configuration: PCConfiguration) -> CheckReport:
        s = self.settings
        report = CheckReport(name="power_connectors")
        psu = configuration.psu
        if psu is None:
            report.skipped = True
            report.message = "psu not selected"
            return report

        required: List[Tuple[str, Part | None]] = [("24pin", configuration.motherboard)]
        board_connectors = (
            motherboard_spec(configuration.motherboard).cpu_power_connectors
            if configuration.motherboard is not None
            else [s.default_cpu_power_connector]
        )
        required.extend((c, configuration.motherboard or configuration.cpu) for c in board_connectors)
        if configuration.gpu is not None:
            required.extend((c, configuration.gpu) for c in gpu_spec(configuration.gpu).power_connectors)

        psu_info = psu_spec(psu)
        if psu_info.connectors is not None:
            available = dict(psu_info.connectors)
            source = "declared"
        else:
            profile = self.catalog.psu_profile(psu_info.wattage)
            available = dict(profile.connectors) if profile is not None else {}
            source = f"profile:{profile.tier}" if profile is not None else "none"

        unmatched: List[Tuple[str, Part | None]] = []
        for name, owner in required:
            if available.get(name, 0) > 0:
                available[name] -= 1
            else:
                unmatched.append((name, owner))

        still_missing: List[Tuple[str, Part | None]] = []
        for name, owner in unmatched:
            for alternative in self.catalog.compatible_connectors(name):
                if available.get(alternative, 0) > 0:
                    available[alternative] -= 1
                    break
            else:
                still_missing.append((name, owner))

        for position, (name, owner) in enumerate(still_missing):
            affected = _ids(psu, owner)
            report.issues.append(
                CompatibilityIssue(
                    id=_issue_id("connector_missing", affected, f"{name}:{position}"),
                    type="connector_missing",
                    severity="critical",
                    message=f"Power supply has no free {name} connector",
                    affected_parts=affected,
                    solution=f"Choose a power supply that provides {name} or use a certified adapter",
                    must_resolve=True,
                    category="power",
                )
            )

        report.data = {
            "required": [name for name, _ in required],
            "source": source,
            "unmatched": [name for name, _ in still_missing],
        }
        report.message = "connectors missing" if still_missing else "all connectors satisfied"
        return report

    def check_physical_fit(self, configuration: PCConfiguration) -> CheckReport:
        s = self.settings
        report = CheckReport(name="physical_fit")
        case = configuration.case
        if case is None:
            report.skipped = True
            report.message = "case not selected"
            return report

        chassis = case_spec(case)
        board = configuration.motherboard
        if board is not None and chassis.form_factor_support is not None:
            form_factor = motherboard_spec(board).form_factor
            if form_factor and form_factor not in chassis.form_factor_support:
                affected = _ids(board, case)
                report.issues.append(
                    CompatibilityIssue(
                        id=_issue_id("form_factor_mismatch", affected),
                        type="form_factor_mismatch",
                        severity="critical",
                        message=f"{form_factor} motherboard does not fit a case supporting {', '.join(chassis.form_factor_support)}",
                        affected_parts=affected,
                        solution="Choose a case that supports the motherboard form factor",
                        must_resolve=True,
                        category="physical",
                    )
                )

        gpu = configuration.gpu
        gpu_info = gpu_spec(gpu) if gpu is not None else None
        if gpu_info is not None:
            self._check_dimension(
                report, "GPU length", gpu_info.length_mm, chassis.max_gpu_length_mm,
                s.gpu_length_warning_ratio, _ids(gpu, case),
            )
            self._check_dimension(
                report, "GPU height", gpu_info.height_mm, chassis.max_gpu_height_mm,
                s.gpu_length_warning_ratio, _ids(gpu, case),
            )

        cooler = configuration.cooler
        cooler_info = cooler_spec(cooler) if cooler is not None else None
        if cooler_info is not None:
            if cooler_info.is_aio:
                size = cooler_info.radiator_size_mm
                if size and chassis.radiator_support is not None and size not in chassis.radiator_support:
                    affected = _ids(cooler, case)
                    report.issues.append(
                        CompatibilityIssue(
                            id=_issue_id("size_conflict", affected, "radiator"),
                            type="size_conflict",
                            severity="critical",
                            message=f"{size}mm radiator is not supported by the case",
                            affected_parts=affected,
                            solution="Choose a radiator size the case supports",
                            must_resolve=True,
                            category="physical",
                        )
                    )
            else:
                self._check_dimension(
                    report, "Cooler height", cooler_info.height_mm, chassis.max_cooler_height_mm,
                    s.cooler_height_warning_ratio, _ids(cooler, case),
                )

        if gpu_info is not None and cooler_info is not None and not cooler_info.is_aio:
            gpu_length = gpu_info.length_mm or 0
            cooler_height = cooler_info.height_mm or 0
            clearance = s.clearance_reference_mm - gpu_length
            if gpu_length > s.long_gpu_mm and cooler_height > s.tall_cooler_mm and clearance < s.min_clearance_mm:
                affected = _ids(gpu, cooler)
                report.warnings.append(
                    CompatibilityWarning(
                        id=_issue_id("clearance", affected),
                        type="clearance",
                        priority="medium",
                        message=f"Long GPU and tall cooler leave about {clearance:.0f}mm of clearance",
                        affected_parts=affected,
                        solution="Check the interior layout or choose a lower profile cooler",
                    )
                )

        report.message = "physical conflicts found" if report.issues else "parts fit the case"
        return report

    @staticmethod
    def _check_dimension(
        report: CheckReport,
        label: str,
        size: float | None,
        limit: float | None,
        warning_ratio: float,
        affected: List[str],
    ) -> None:
        if not size or not limit:
            return
        key = label.lower().replace(" ", "_")
        if size > limit:
            report.issues.append(
                CompatibilityIssue(
                    id=_issue_id("size_conflict", affected, key),
                    type="size_conflict",
                    severity="critical",
                    message=f"{label} {size:.0f}mm exceeds the case limit of {limit:.0f}mm",
                    affected_parts=affected,
                    solution="Choose a larger case or a smaller part",
                    must_resolve=True,
                    category="physical",
                )
            )
        elif size > limit * warning_ratio:
            report.warnings.append(
                CompatibilityWarning(
                    id=_issue_id("size_conflict", affected, key),
                    type="size_conflict",
                    priority="medium",
                    message=f"{label} {size:.0f}mm is close to the case limit of {limit:.0f}mm",
                    affected_parts=affected,
                    solution="Verify cable routing and front fan space",
                )
            )

    def check_power_budget(self, configuration: PCConfiguration) -> CheckReport:
        s = self.settings
        report = CheckReport(name="power_budget")
        psu = configuration.psu
        budget = self.power.budget(configuration)
        if psu is None:
            report.skipped = True
            report.data = {"total_watts": budget.total_watts, "recommended_psu_watts": budget.recommended_psu_watts}
            report.message = "psu not selected"
            return report

        total = budget.total_watts
        psu_info = psu_spec(psu)
        wattage = psu_info.wattage or s.default_psu_wattage
        utilization = total / wattage if wattage > 0 else 1.0
        report.data = {
            "total_watts": total,
            "psu_watts": wattage,
            "utilization": round(utilization, 3),
            "recommended_psu_watts": budget.recommended_psu_watts,
            "estimated_parts": budget.estimated,
        }

        if utilization > s.power_critical_utilization:
            report.issues.append(
                CompatibilityIssue(
                    id=_issue_id("power_insufficient", [psu.id]),
                    type="power_insufficient",
                    severity="critical",
                    message=f"Estimated draw {total:.0f}W is {utilization:.0%} of the {wattage:.0f}W power supply",
                    affected_parts=[psu.id],
                    solution=f"Use a power supply of at least {budget.recommended_psu_watts:.0f}W",
                    must_resolve=True,
                    category="power",
                )
            )
        elif utilization > s.power_warning_utilization:
            report.warnings.append(
                CompatibilityWarning(
                    id=_issue_id("power_headroom", [psu.id]),
                    type="power_headroom",
                    priority="high",
                    message=f"Estimated draw {total:.0f}W leaves little headroom on the {wattage:.0f}W power supply",
                    affected_parts=[psu.id],
                    solution=f"Consider a {budget.recommended_psu_watts:.0f}W or larger power supply",
                )
            )
        elif total > 0 and wattage > budget.recommended_psu_watts * s.psu_oversize_factor:
            report.warnings.append(
                CompatibilityWarning(
                    id=_issue_id("psu_oversized", [psu.id]),
                    type="psu_oversized",
                    priority="low",
                    message=f"The {wattage:.0f}W power supply is far above the {budget.recommended_psu_watts:.0f}W this build needs",
                    affected_parts=[psu.id],
                    solution=f"A {budget.recommended_psu_watts:.0f}W unit runs closer to its efficiency peak",
                )
            )

        label = f"{psu.name} {psu_info.efficiency}".lower()
        if not any(marker in label for marker in s.efficiency_markers):
            report.warnings.append(
                CompatibilityWarning(
                    id=_issue_id("psu_efficiency", [psu.id]),
                    type="psu_efficiency",
                    priority="medium",
                    message="The power supply has no 80 PLUS efficiency certification",
                    affected_parts=[psu.id],
                    solution="Choose an 80 PLUS Bronze or better power supply",
                )
            )
        report.message = f"power utilization {utilization:.0%}"
        return report

    def check_performance_balance(self, configuration: PCConfiguration) -> CheckReport:
        s = self.settings
        report = CheckReport(name="performance_balance")
        cpu, gpu = configuration.cpu, configuration.gpu
        if cpu is None or gpu is None:
            report.skipped = True
            report.message = "cpu or gpu not selected"
            return report

        cpu_score = self.scorer.score(cpu, "cpu").performance_score
        gpu_score = self.scorer.score(gpu, "gpu").performance_score
        if gpu_score <= 0 or cpu_score <= 0:
            report.message = "scores unavailable"
            return report

        ratio = cpu_score / gpu_score
        critical, major, moderate = s.balance_bands
        stage: str | None = None
        limiting = ""
        if ratio < critical:
            stage, limiting = "critical", "cpu"
        elif ratio < major:
            stage, limiting = "major", "cpu"
        elif ratio < moderate:
            stage, limiting = "moderate", "cpu"
        elif ratio > 1 / critical:
            stage, limiting = "critical", "gpu"
        elif ratio > 1 / major:
            stage, limiting = "major", "gpu"
        elif ratio > 1 / moderate:
            stage, limiting = "moderate", "gpu"

        report.data = {"cpu_score": cpu_score, "gpu_score": gpu_score, "ratio": round(ratio, 3)}
        if stage is None:
            report.message = "cpu and gpu are balanced"
            return report

        report.stage = stage
        priority = {"critical": "high", "major": "medium", "moderate": "low"}[stage]
        affected = _ids(cpu, gpu)
        report.warnings.append(
            CompatibilityWarning(
                id=_issue_id("performance_imbalance", affected),
                type="performance_imbalance",
                priority=priority,
                message=f"The {limiting.upper()} limits the other component ({stage} imbalance, ratio {ratio:.2f})",
                affected_parts=affected,
                solution=f"Upgrade the {limiting.upper()} to balance the build",
            )
        )
        report.message = f"{stage} {limiting}-bound imbalance"
        return report
