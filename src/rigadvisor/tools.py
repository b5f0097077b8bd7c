from __future__ import annotations

from datetime import date
from typing import List, Optional, Protocol

from langchain_core.tools import tool
from pydantic import BaseModel, Field

from .schemas import Part, PCConfiguration, UsageType
from .service import AnalysisService


class PartsRepoProtocol(Protocol):
    def all_parts(self) -> List[Part]: ...
    def by_category(self, category: str) -> List[Part]: ...
    def find_by_id(self, part_id: str) -> Part | None: ...
    def search(self, text: str = "", category: str | None = None, max_price: float | None = None) -> List[Part]: ...


class SearchPartsInput(BaseModel):
    query: str = Field(default="", description="Free text matched against manufacturer, name and model")
    category: Optional[str] = Field(default=None, description="Part category such as cpu, gpu, motherboard")
    max_price: Optional[float] = Field(default=None, description="Max acceptable price")
    limit: int = Field(default=10, ge=1, le=100)


class ConfigurationInput(BaseModel):
    part_ids: List[str] = Field(description="Ids of the parts that make up the machine")
    usage: UsageType = Field(default="mixed", description="Primary usage of the machine")
    purchase_date: Optional[date] = Field(default=None, description="When the machine was bought")


class ROIInput(ConfigurationInput):
    plan_index: int = Field(default=0, ge=0, description="Index of the recommended plan to evaluate")
    timeframe_months: Optional[int] = Field(default=None, gt=0, description="Evaluation horizon in months")


def build_configuration(
    repo: PartsRepoProtocol,
    part_ids: List[str],
    *,
    usage: UsageType = "mixed",
    purchase_date: date | None = None,
) -> PCConfiguration:
    parts: List[Part] = []
    missing: List[str] = []
    for part_id in part_ids:
        part = repo.find_by_id(part_id)
        if part is None:
            missing.append(part_id)
        else:
            parts.append(part)
    if missing:
        raise KeyError(f"unknown part ids: {', '.join(missing)}")
    return PCConfiguration.from_parts(parts, usage=usage, purchase_date=purchase_date)


class Toolset:
    def __init__(self, repo: PartsRepoProtocol, service: AnalysisService):
        self.repo = repo
        self.service = service

    def register(self):
        repo = self.repo
        service = self.service

        @tool("search_parts", args_schema=SearchPartsInput)
        def search_parts(
            query: str = "",
            category: Optional[str] = None,
            max_price: Optional[float] = None,
            limit: int = 10,
        ) -> List[dict]:
            """Search known parts by text, category and price ceiling, cheapest first."""
            found = sorted(repo.search(query, category, max_price), key=lambda p: (p.price, p.id))
            return [p.model_dump(mode="json") for p in found[:limit]]

        @tool("analyze_configuration", args_schema=ConfigurationInput)
        def analyze_configuration(
            part_ids: List[str],
            usage: UsageType = "mixed",
            purchase_date: Optional[date] = None,
        ) -> dict:
            """Run the full analysis: component scores, compatibility, bottlenecks and upgrade plans."""
            config = build_configuration(repo, part_ids, usage=usage, purchase_date=purchase_date)
            return service.analyze(config).model_dump(mode="json")

        @tool("check_compatibility", args_schema=ConfigurationInput)
        def check_compatibility(
            part_ids: List[str],
            usage: UsageType = "mixed",
            purchase_date: Optional[date] = None,
        ) -> dict:
            """Check socket, memory, power connector, physical fit, power budget and balance rules."""
            config = build_configuration(repo, part_ids, usage=usage, purchase_date=purchase_date)
            return service.check_compatibility(config).model_dump(mode="json")

        @tool("detect_bottlenecks", args_schema=ConfigurationInput)
        def detect_bottlenecks(
            part_ids: List[str],
            usage: UsageType = "mixed",
            purchase_date: Optional[date] = None,
        ) -> List[dict]:
            """List performance bottlenecks, most severe first."""
            config = build_configuration(repo, part_ids, usage=usage, purchase_date=purchase_date)
            return [b.model_dump(mode="json") for b in service.detect_bottlenecks(config)]

        @tool("calculate_roi", args_schema=ROIInput)
        def calculate_roi(
            part_ids: List[str],
            usage: UsageType = "mixed",
            purchase_date: Optional[date] = None,
            plan_index: int = 0,
            timeframe_months: Optional[int] = None,
        ) -> dict:
            """Estimate the return on investment of one of the recommended upgrade plans."""
            config = build_configuration(repo, part_ids, usage=usage, purchase_date=purchase_date)
            plans = service.generate_recommendations(config)
            if plan_index >= len(plans):
                return {"error": f"no plan at index {plan_index}", "plans": len(plans)}
            return service.calculate_roi(plans[plan_index], timeframe_months).model_dump(mode="json")

        return {
            "search_parts": search_parts,
            "analyze_configuration": analyze_configuration,
            "check_compatibility": check_compatibility,
            "detect_bottlenecks": detect_bottlenecks,
            "calculate_roi": calculate_roi,
        }
