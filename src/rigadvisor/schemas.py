from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


PartCategory = Literal[
    "cpu",
    "gpu",
    "motherboard",
    "memory",
    "storage",
    "psu",
    "case",
    "cooler",
    "other",
]

UsageType = Literal["gaming", "office", "creative", "development", "server", "mixed"]

RecommendedAction = Literal["keep", "upgrade_soon", "upgrade_later", "replace_immediately"]
BottleneckType = Literal["cpu", "gpu", "memory", "storage", "psu", "cooling", "compatibility"]
BottleneckSeverity = Literal["minor", "moderate", "major", "critical"]
Difficulty = Literal["easy", "moderate", "difficult", "expert"]
IssueSeverity = Literal["critical", "major", "minor", "info"]
WarningPriority = Literal["low", "medium", "high"]
PlanType = Literal["immediate", "phased", "budget"]

SINGLE_SLOTS = ("cpu", "motherboard", "gpu", "psu", "case", "cooler")
MULTI_SLOTS = ("memory", "storage", "other")


class Part(BaseModel):
    id: str
    name: str
    category: PartCategory
    manufacturer: str = ""
    model: Optional[str] = None
    price: float = 0
    release_date: Optional[date] = None
    power_consumption: Optional[float] = None
    specifications: Dict[str, Any] = Field(default_factory=dict)


class PCConfiguration(BaseModel):
    id: Optional[str] = None
    name: str = "My PC"
    usage: UsageType = "mixed"
    purchase_date: Optional[date] = None

    cpu: Optional[Part] = None
    motherboard: Optional[Part] = None
    gpu: Optional[Part] = None
    psu: Optional[Part] = None
    case: Optional[Part] = None
    cooler: Optional[Part] = None
    memory: List[Part] = Field(default_factory=list)
    storage: List[Part] = Field(default_factory=list)
    other: List[Part] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_slot_categories(self) -> "PCConfiguration":
        for slot in SINGLE_SLOTS:
            part = getattr(self, slot)
            if part is not None and part.category != slot:
                raise ValueError(f"part {part.id} of category {part.category} placed in {slot} slot")
        for slot in ("memory", "storage"):
            for part in getattr(self, slot):
                if part.category != slot:
                    raise ValueError(f"part {part.id} of category {part.category} placed in {slot} list")
        return self

    @classmethod
    def from_parts(
        cls,
        parts: Iterable[Part],
        *,
        usage: UsageType = "mixed",
        name: str = "My PC",
        purchase_date: Optional[date] = None,
        config_id: Optional[str] = None,
    ) -> "PCConfiguration":
        slots: Dict[str, Any] = {"memory": [], "storage": [], "other": []}
        for part in parts:
            if part.category in SINGLE_SLOTS:
                if part.category in slots:
                    raise ValueError(
                        f"duplicate {part.category}: {slots[part.category].id} and {part.id}"
                    )
                slots[part.category] = part
            else:
                slots[part.category].append(part)
        return cls(id=config_id, name=name, usage=usage, purchase_date=purchase_date, **slots)

    def all_parts(self) -> List[Part]:
        parts: List[Part] = []
        for slot in SINGLE_SLOTS:
            part = getattr(self, slot)
            if part is not None:
                parts.append(part)
        for slot in MULTI_SLOTS:
            parts.extend(getattr(self, slot))
        return parts

    def primary(self, category: str) -> Optional[Part]:
        if category in SINGLE_SLOTS:
            return getattr(self, category)
        items = getattr(self, category, None) or []
        return items[0] if items else None

    def part_ids(self) -> Dict[str, List[str]]:
        ids: Dict[str, List[str]] = {}
        for slot in SINGLE_SLOTS:
            part = getattr(self, slot)
            ids[slot] = [part.id] if part is not None else []
        for slot in MULTI_SLOTS:
            ids[slot] = [p.id for p in getattr(self, slot)]
        return ids


class ComponentPerformance(BaseModel):
    part_id: str
    part_name: str
    category: PartCategory
    performance_score: float = Field(ge=0, le=100)
    value_score: float = Field(ge=0, le=100)
    modernity_score: float = Field(ge=0, le=100)
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    recommended_action: RecommendedAction = "keep"
    expected_lifespan_months: int = 60
    maintenance_needed: bool = False
    compatibility_with_others: float = Field(default=70, ge=0, le=100)
    catalog_hit: bool = False


class BottleneckResult(BaseModel):
    type: BottleneckType
    severity: BottleneckSeverity
    description: str
    impact: str = ""
    recommended_solution: str = ""
    improvement_potential: float = Field(ge=0, le=100)
    cost_estimate: float = 0
    difficulty_level: Difficulty = "moderate"
    affected_parts: List[str] = Field(default_factory=list)
    dependent_upgrades: List[str] = Field(default_factory=list)


class CompatibilityIssue(BaseModel):
    id: str
    type: str
    severity: IssueSeverity
    message: str
    affected_parts: List[str] = Field(default_factory=list)
    solution: str = ""
    must_resolve: bool = False
    category: str = ""


class CompatibilityWarning(BaseModel):
    id: str
    type: str
    severity: Literal["warning"] = "warning"
    priority: WarningPriority = "medium"
    message: str
    affected_parts: List[str] = Field(default_factory=list)
    solution: str = ""
    must_resolve: bool = False


class CheckOutcome(BaseModel):
    name: str
    passed: bool = True
    message: str = ""
    data: Dict[str, Any] = Field(default_factory=dict)


PHYSICAL_FIT_TYPES = ("size_conflict", "clearance", "form_factor_mismatch")


class CompatibilityResult(BaseModel):
    is_compatible: bool
    score: float = Field(ge=0, le=100)
    issues: List[CompatibilityIssue] = Field(default_factory=list)
    warnings: List[CompatibilityWarning] = Field(default_factory=list)
    details: Dict[str, CheckOutcome] = Field(default_factory=dict)

    def physical_fit_issues(self) -> List[CompatibilityIssue | CompatibilityWarning]:
        found: List[CompatibilityIssue | CompatibilityWarning] = [
            i for i in self.issues if i.type in PHYSICAL_FIT_TYPES
        ]
        found.extend(w for w in self.warnings if w.type in PHYSICAL_FIT_TYPES)
        return found


class PerformanceMetrics(BaseModel):
    fps: float = 0
    load_time_seconds: float = 0
    multitasking: float = 0
    overall: float = 0


class PerformanceSummary(BaseModel):
    gaming: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    productivity: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    general: PerformanceMetrics = Field(default_factory=PerformanceMetrics)


class BottleneckAnalysis(BaseModel):
    overall_score: float = Field(ge=0, le=100)
    balance_score: float = Field(ge=0, le=100)
    component_analysis: Dict[str, ComponentPerformance] = Field(default_factory=dict)
    bottlenecks: List[BottleneckResult] = Field(default_factory=list)
    performance_metrics: PerformanceSummary = Field(default_factory=PerformanceSummary)
    compatibility_issues: List[CompatibilityIssue] = Field(default_factory=list)
    confidence: float = Field(default=0.8, ge=0, le=1)
    data_source: List[str] = Field(default_factory=list)


class PhaseImprovement(BaseModel):
    performance: float = 0
    power_efficiency: float = 0
    stability: float = 0


class UpgradePhase(BaseModel):
    index: int = Field(ge=0)
    name: str
    description: str = ""
    estimated_cost: float = 0
    estimated_time_minutes: int = 60
    difficulty: Difficulty = "moderate"
    phase_improvement: PhaseImprovement = Field(default_factory=PhaseImprovement)
    depends_on: List[int] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class ExpectedImprovement(BaseModel):
    performance_gain: float = 0
    value_gain: float = 0
    longevity_extension: float = 0
    power_efficiency_gain: float = 0


class PerformanceValue(BaseModel):
    productivity_gain: float = 0
    time_saved_hours: float = 0
    time_saved_value: float = 0
    frustration_reduction: float = 0


class CostSavings(BaseModel):
    power_savings: float = 0
    maintenance_reduction: float = 0
    downtime_reduction: float = 0


class UncertaintyRange(BaseModel):
    min: float
    max: float


class ROIAnalysis(BaseModel):
    investment_cost: float
    timeframe_months: int
    performance_value: PerformanceValue
    cost_savings: CostSavings
    monthly_benefit: float
    total_benefit: float
    net_present_value: float
    payback_period: Optional[float] = None
    roi: Optional[float] = None
    risk_adjusted_roi: Optional[float] = None
    uncertainty_range: Optional[UncertaintyRange] = None
    confidence_interval: float = 80


class UpgradeRecommendation(BaseModel):
    id: str
    name: str
    description: str = ""
    type: PlanType
    total_cost: float = 0
    timeframe: str = ""
    phases: List[UpgradePhase] = Field(default_factory=list)
    expected_improvement: ExpectedImprovement = Field(default_factory=ExpectedImprovement)
    roi: Optional[ROIAnalysis] = None
    risks: List[str] = Field(default_factory=list)
    priority: float = Field(ge=0, le=100)
    confidence: float = Field(ge=0, le=1)

    @model_validator(mode="after")
    def _check_phase_order(self) -> "UpgradeRecommendation":
        for position, phase in enumerate(self.phases):
            if phase.index != position:
                raise ValueError(f"phase index {phase.index} out of order at {position}")
            for dep in phase.depends_on:
                if dep >= phase.index:
                    raise ValueError(f"phase {phase.index} depends on later phase {dep}")
        return self


class AnalysisReport(BaseModel):
    fingerprint: str
    usage: UsageType
    analysis: BottleneckAnalysis
    compatibility: CompatibilityResult
    recommendations: List[UpgradeRecommendation] = Field(default_factory=list)


class AnalysisOutcome(BaseModel):
    session_id: str
    sequence: int
    applied: bool
    cached: bool = False
    report: AnalysisReport


class AnalyzeRequest(BaseModel):
    configuration: PCConfiguration
    session_id: Optional[str] = None


class PartIdsRequest(BaseModel):
    part_ids: List[str] = Field(default_factory=list)
    usage: UsageType = "mixed"
    purchase_date: Optional[date] = None


class ROIRequest(BaseModel):
    plan: UpgradeRecommendation
    timeframe_months: Optional[int] = None
