import pytest
from pydantic import ValidationError

import rigadvisor.service as service_module
from rigadvisor.graph import AnalysisGraph, configuration_fingerprint
from rigadvisor.service import AnalysisService

from conftest import BALANCED_BUILD

WEAK_BUILD = [
    "cpu-r5-3600",
    "mb-b550m",
    "ram-ddr4-16",
    "gpu-gtx1060",
    "hdd-2tb",
    "psu-450b",
    "case-matx-compact",
    "cooler-stock",
]


@pytest.fixture
def graph(catalog, reference_date):
    return AnalysisGraph(catalog, reference_date=reference_date)


@pytest.fixture
def service(graph):
    return AnalysisService(graph)


def test_balanced_build_report(service, build):
    report = service.analyze(build(BALANCED_BUILD))
    assert report.analysis.bottlenecks == []
    assert report.recommendations == []
    assert report.compatibility.is_compatible
    assert report.compatibility.score >= 95
    assert report.analysis.data_source


def test_weak_build_gets_plans_with_roi(service, build):
    report = service.analyze(build(WEAK_BUILD))
    assert report.analysis.bottlenecks
    assert report.recommendations
    assert all(plan.roi is not None for plan in report.recommendations)
    assert report.recommendations[0].type == "immediate"


def test_analyze_accepts_mappings(service, build):
    config = build(BALANCED_BUILD)
    assert service.analyze(config.model_dump(mode="json")).fingerprint == service.analyze(config).fingerprint


def test_analyze_rejects_wrong_types(service):
    with pytest.raises(TypeError):
        service.analyze(["cpu-i7-14700k"])
    with pytest.raises(ValidationError):
        service.analyze({"cpu": "not a part"})


def test_non_positive_timeframe_is_rejected(service, build):
    with pytest.raises(ValueError):
        service.analyze(build(WEAK_BUILD), timeframe_months=0)


def test_results_are_deterministic(graph, build):
    uncached = AnalysisService(graph, cache_store="none")
    config = build(WEAK_BUILD)
    assert uncached.analyze(config).model_dump() == uncached.analyze(config).model_dump()


def test_fingerprint_tracks_parts_usage_and_catalog(build):
    gaming = build(BALANCED_BUILD, usage="gaming")
    office = build(BALANCED_BUILD, usage="office")
    assert configuration_fingerprint(gaming, "1") == configuration_fingerprint(gaming, "1")
    assert configuration_fingerprint(gaming, "1") != configuration_fingerprint(office, "1")
    assert configuration_fingerprint(gaming, "1") != configuration_fingerprint(gaming, "2")


def test_submit_uses_cache_and_returns_copies(service, build):
    config = build(WEAK_BUILD)
    first = service.submit("s1", config)
    assert not first.cached
    first.report.recommendations.clear()

    second = service.submit("s1", config)
    assert second.cached
    assert second.report.recommendations
    assert second.sequence == first.sequence + 1
    assert second.applied


def test_cache_entries_expire(service, build, monkeypatch):
    clock = [1000.0]
    monkeypatch.setattr(service_module.time, "monotonic", lambda: clock[0])
    config = build(BALANCED_BUILD)
    assert not service.submit("s1", config).cached
    assert service.submit("s1", config).cached
    clock[0] += service.cache_ttl_seconds + 1
    assert not service.submit("s1", config).cached


def test_stale_results_are_not_applied(service, build):
    older = service.begin("s1")
    newer = service.begin("s1")
    weak = service.analyze(build(WEAK_BUILD))
    balanced = service.analyze(build(BALANCED_BUILD))

    assert service.apply("s1", newer, balanced)
    assert not service.apply("s1", older, weak)
    assert service.current("s1").fingerprint == balanced.fingerprint


def test_sessions_are_independent(service, build):
    service.submit("a", build(WEAK_BUILD))
    service.submit("b", build(BALANCED_BUILD))
    assert service.current("a").fingerprint != service.current("b").fingerprint
    assert service.current("missing") is None


def test_stale_sessions_are_swept(graph, build, monkeypatch):
    clock = [1000.0]
    monkeypatch.setattr(service_module.time, "monotonic", lambda: clock[0])
    svc = AnalysisService(graph, session_ttl_seconds=60, session_cleanup_interval_seconds=1)
    svc.submit("old", build(BALANCED_BUILD))
    clock[0] += 120
    svc.submit("new", build(BALANCED_BUILD))
    assert "old" not in svc.sessions
    assert "new" in svc.sessions


def test_engine_entry_points(service, build):
    config = build(WEAK_BUILD)
    compatibility = service.check_compatibility(config)
    assert compatibility.is_compatible
    assert [w.type for w in compatibility.warnings] == ["performance_imbalance"]
    bottlenecks = service.detect_bottlenecks(config)
    assert [b.type for b in bottlenecks] == [b.type for b in service.analyze(config).analysis.bottlenecks]
    plans = service.generate_recommendations(config)
    roi = service.calculate_roi(plans[0], 12)
    assert roi.timeframe_months == 12


def test_cache_store_validation(graph):
    with pytest.raises(ValueError):
        AnalysisService(graph, cache_store="disk")
    with pytest.raises((ValueError, RuntimeError)):
        AnalysisService(graph, cache_store="redis", cache_redis_url=None)


def test_clear_cache(service, build):
    config = build(BALANCED_BUILD)
    service.submit("s1", config)
    service.clear_cache()
    assert not service.submit("s1", config).cached


def test_same_part_id_with_changed_specs_is_not_served_from_cache(service, make_part):
    board = make_part("motherboard", id="board", specifications={"socket": "AM5", "chipset": "B650"})
    am5 = make_part("cpu", id="cpu", specifications={"socket": "AM5"})
    lga = make_part("cpu", id="cpu", specifications={"socket": "LGA1700"})

    first = service.submit("s1", {"cpu": am5.model_dump(), "motherboard": board.model_dump()})
    second = service.submit("s1", {"cpu": lga.model_dump(), "motherboard": board.model_dump()})

    assert not second.cached
    assert second.report.fingerprint != first.report.fingerprint
    assert not any(i.type == "socket_mismatch" for i in first.report.compatibility.issues)
    assert any(i.type == "socket_mismatch" for i in second.report.compatibility.issues)


def test_expired_cache_entries_are_swept_without_sessions(graph, build, make_part, monkeypatch):
    clock = [1000.0]
    monkeypatch.setattr(service_module.time, "monotonic", lambda: clock[0])
    svc = AnalysisService(graph, session_ttl_seconds=0, cache_cleanup_interval_seconds=1)
    for _ in range(5):
        svc.analyze(build(BALANCED_BUILD).model_copy(update={"other": [make_part("other")]}))
    assert len(svc._cache) == 5

    clock[0] += svc.cache_ttl_seconds + 10
    svc.analyze(build(WEAK_BUILD))
    assert len(svc._cache) == 1
    assert len(svc._key_locks) == 1


def test_zero_ttl_entries_survive_the_sweep(graph, build, monkeypatch):
    clock = [1000.0]
    monkeypatch.setattr(service_module.time, "monotonic", lambda: clock[0])
    svc = AnalysisService(graph, cache_ttl_seconds=0, cache_cleanup_interval_seconds=1)
    svc.analyze(build(BALANCED_BUILD))
    clock[0] += 100_000
    svc.analyze(build(WEAK_BUILD))
    assert len(svc._cache) == 2
    assert svc.submit("s1", build(BALANCED_BUILD)).cached
