from __future__ import annotations

import hashlib
import json
import logging
import time
from datetime import date
from typing import Dict, List, Literal, Optional, TypedDict

from langgraph.graph import END, StateGraph

from .analysis import (
    BottleneckDetector,
    CompatibilityRuleEngine,
    ComponentPerformanceScorer,
    PerformancePredictor,
)
from .config import EngineSettings
from .data.catalog import PerformanceCatalog
from .planning import RecommendationGenerator, ROICalculator
from .schemas import (
    AnalysisReport,
    BottleneckAnalysis,
    BottleneckResult,
    CompatibilityResult,
    ComponentPerformance,
    PCConfiguration,
    UpgradeRecommendation,
)

logger = logging.getLogger(__name__)

DATA_SOURCES = ["internal_catalog", "benchmark_data", "compatibility_matrix"]


def configuration_fingerprint(configuration: PCConfiguration, catalog_version: str) -> str:
    payload = {
        "parts": configuration.part_ids(),
        "content": [part.model_dump(mode="json") for part in configuration.all_parts()],
        "usage": configuration.usage,
        "purchase_date": configuration.purchase_date.isoformat() if configuration.purchase_date else None,
        "catalog": catalog_version,
    }
    raw = json.dumps(payload, sort_keys=True, ensure_ascii=False, default=str)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class AnalysisState(TypedDict):
    configuration: PCConfiguration
    timeframe_months: Optional[int]
    component_analysis: Dict[str, ComponentPerformance]
    compatibility: CompatibilityResult
    bottlenecks: List[BottleneckResult]
    recommendations: List[UpgradeRecommendation]
    report: Optional[AnalysisReport]


class AnalysisGraph:
    """
    分析流程 - Analysis Pipeline

    score_components -> check_compatibility -> detect_bottlenecks
        -> generate_recommendations -> attach_roi -> compose_report
    Configurations without bottlenecks skip straight to compose_report.
    """

    def __init__(
        self,
        catalog: PerformanceCatalog,
        settings: EngineSettings | None = None,
        *,
        reference_date: date | None = None,
    ):
        self.catalog = catalog
        self.settings = settings or EngineSettings()
        self.scorer = ComponentPerformanceScorer(catalog, self.settings.scoring, reference_date=reference_date)
        self.compatibility = CompatibilityRuleEngine(catalog, self.settings.compatibility, scorer=self.scorer)
        self.detector = BottleneckDetector(catalog, self.settings.bottleneck)
        self.predictor = PerformancePredictor(self.settings.metrics, reference_date=reference_date)
        self.recommender = RecommendationGenerator(self.settings.recommendation)
        self.roi = ROICalculator(self.settings.roi)
        self.graph = self._build_graph()

    def _build_graph(self):
        builder = StateGraph(AnalysisState)
        builder.add_node("score_components", self.score_components)
        builder.add_node("check_compatibility", self.check_compatibility)
        builder.add_node("detect_bottlenecks", self.detect_bottlenecks)
        builder.add_node("generate_recommendations", self.generate_recommendations)
        builder.add_node("attach_roi", self.attach_roi)
        builder.add_node("compose_report", self.compose_report)

        builder.set_entry_point("score_components")
        builder.add_edge("score_components", "check_compatibility")
        builder.add_edge("check_compatibility", "detect_bottlenecks")
        builder.add_conditional_edges(
            "detect_bottlenecks",
            self.route_after_detection,
            {"recommend": "generate_recommendations", "report": "compose_report"},
        )
        builder.add_edge("generate_recommendations", "attach_roi")
        builder.add_edge("attach_roi", "compose_report")
        builder.add_edge("compose_report", END)

        return builder.compile()

    def route_after_detection(self, state: AnalysisState) -> Literal["recommend", "report"]:
        if state.get("bottlenecks"):
            return "recommend"
        return "report"

    def score_components(self, state: AnalysisState):
        start = time.perf_counter()
        analysis = self.scorer.analyze_configuration(state["configuration"])
        logger.debug("[PERF] score_components took %.3fs", time.perf_counter() - start)
        return {"component_analysis": analysis}

    def check_compatibility(self, state: AnalysisState):
        start = time.perf_counter()
        result = self.compatibility.check(state["configuration"])
        logger.debug("[PERF] check_compatibility took %.3fs", time.perf_counter() - start)
        return {"compatibility": result}

    def detect_bottlenecks(self, state: AnalysisState):
        start = time.perf_counter()
        found = self.detector.detect(state["configuration"], state["component_analysis"])
        logger.debug("[PERF] detect_bottlenecks took %.3fs", time.perf_counter() - start)
        return {"bottlenecks": found}

    def generate_recommendations(self, state: AnalysisState):
        start = time.perf_counter()
        overall = self.predictor.overall_score(state["component_analysis"])
        plans = self.recommender.generate(state["bottlenecks"], overall, state["compatibility"].issues)
        logger.debug("[PERF] generate_recommendations took %.3fs", time.perf_counter() - start)
        return {"recommendations": plans}

    def attach_roi(self, state: AnalysisState):
        timeframe = state.get("timeframe_months")
        plans = [
            plan.model_copy(update={"roi": self.roi.calculate(plan, timeframe)})
            for plan in state["recommendations"]
        ]
        return {"recommendations": plans}

    def compose_report(self, state: AnalysisState):
        configuration = state["configuration"]
        components = state["component_analysis"]
        compatibility = state["compatibility"]
        analysis = BottleneckAnalysis(
            overall_score=self.predictor.overall_score(components),
            balance_score=self.predictor.balance_score(components),
            component_analysis=components,
            bottlenecks=state["bottlenecks"],
            performance_metrics=self.predictor.predict(components),
            compatibility_issues=compatibility.issues,
            confidence=self.predictor.confidence(configuration, components),
            data_source=list(DATA_SOURCES),
        )
        report = AnalysisReport(
            fingerprint=configuration_fingerprint(configuration, self.catalog.version),
            usage=configuration.usage,
            analysis=analysis,
            compatibility=compatibility,
            recommendations=state.get("recommendations", []),
        )
        return {"report": report}

    def invoke(self, configuration: PCConfiguration, timeframe_months: int | None = None) -> AnalysisReport:
        if timeframe_months is not None and timeframe_months <= 0:
            raise ValueError(f"timeframe_months must be positive, got {timeframe_months}")
        initial: AnalysisState = {
            "configuration": configuration,
            "timeframe_months": timeframe_months,
            "component_analysis": {},
            "compatibility": CompatibilityResult(is_compatible=False, score=0),
            "bottlenecks": [],
            "recommendations": [],
            "report": None,
        }
        start = time.perf_counter()
        out = self.graph.invoke(initial)
        logger.debug("[PERF] analysis total took %.3fs", time.perf_counter() - start)
        return out["report"]
