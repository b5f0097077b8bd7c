import pytest

from rigadvisor.data.repository import InMemoryPartsRepository
from rigadvisor.graph import AnalysisGraph
from rigadvisor.service import AnalysisService
from rigadvisor.tools import Toolset, build_configuration

from conftest import BALANCED_BUILD


@pytest.fixture
def tools(catalog, repo, reference_date):
    service = AnalysisService(AnalysisGraph(catalog, reference_date=reference_date))
    return Toolset(repo, service).register()


def test_register_exposes_all_tools(tools):
    assert set(tools) == {
        "search_parts",
        "analyze_configuration",
        "check_compatibility",
        "detect_bottlenecks",
        "calculate_roi",
    }


def test_search_parts_filters_and_sorts_by_price(tools):
    found = tools["search_parts"].invoke({"category": "gpu", "max_price": 100000})
    assert [p["id"] for p in found] == ["gpu-gtx1060", "gpu-rtx4070"]


def test_search_parts_by_text(tools):
    found = tools["search_parts"].invoke({"query": "ryzen"})
    assert {p["id"] for p in found} == {"cpu-r7-7700x", "cpu-r5-3600"}


def test_compatibility_detects_socket_mismatch(tools):
    ids = ["cpu-i7-14700k" if pid == "cpu-r7-7700x" else pid for pid in BALANCED_BUILD]
    result = tools["check_compatibility"].invoke({"part_ids": ids, "usage": "gaming"})
    assert not result["is_compatible"]
    assert any(i["type"] == "socket_mismatch" for i in result["issues"])


def test_detect_bottlenecks_tool(tools):
    found = tools["detect_bottlenecks"].invoke({"part_ids": ["hdd-2tb"]})
    assert [b["type"] for b in found] == ["storage"]


def test_analyze_configuration_tool(tools):
    report = tools["analyze_configuration"].invoke({"part_ids": BALANCED_BUILD, "usage": "gaming"})
    assert report["analysis"]["bottlenecks"] == []
    assert report["compatibility"]["score"] >= 95


def test_calculate_roi_tool(tools):
    roi = tools["calculate_roi"].invoke(
        {"part_ids": ["cpu-r5-3600", "gpu-gtx1060", "hdd-2tb"], "usage": "gaming", "timeframe_months": 12}
    )
    assert roi["timeframe_months"] == 12
    assert roi["monthly_benefit"] > 0

    none = tools["calculate_roi"].invoke({"part_ids": BALANCED_BUILD, "usage": "gaming"})
    assert "error" in none


def test_unknown_part_ids_raise(repo):
    with pytest.raises(KeyError):
        build_configuration(repo, ["cpu-i7-14700k", "nope"])


def test_duplicate_single_slot_parts_raise(repo):
    with pytest.raises(ValueError):
        build_configuration(repo, ["cpu-i7-14700k", "cpu-r7-7700x"])


def test_toolset_over_in_memory_repository(catalog, repo, reference_date):
    memory_repo = InMemoryPartsRepository([repo.find_by_id("hdd-2tb")])
    memory_repo.add(repo.find_by_id("ssd-nvme-1tb"))
    assert len(memory_repo.by_category("storage")) == 2

    service = AnalysisService(AnalysisGraph(catalog, reference_date=reference_date), cache_store="none")
    tools = Toolset(memory_repo, service).register()
    assert tools["detect_bottlenecks"].invoke({"part_ids": ["hdd-2tb", "ssd-nvme-1tb"]}) == []
