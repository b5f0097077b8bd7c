import pytest

from rigadvisor.analysis.compatibility import CompatibilityRuleEngine
from rigadvisor.schemas import PCConfiguration

from conftest import BALANCED_BUILD


def _swap(ids, old, new):
    return [new if pid == old else pid for pid in ids]


def test_balanced_build_is_clean(catalog, build):
    result = CompatibilityRuleEngine(catalog).check(build(BALANCED_BUILD))
    assert result.is_compatible
    assert result.issues == []
    assert result.warnings == []
    assert result.score >= 95
    assert all(outcome.passed for outcome in result.details.values())


def test_compatibility_detects_socket_mismatch(catalog, build):
    config = build(_swap(BALANCED_BUILD, "cpu-r7-7700x", "cpu-i7-14700k"))
    result = CompatibilityRuleEngine(catalog).check(config)

    assert not result.is_compatible
    mismatch = [i for i in result.issues if i.type == "socket_mismatch"]
    assert len(mismatch) == 1
    assert mismatch[0].severity == "critical"
    assert mismatch[0].must_resolve
    assert "AM5" in mismatch[0].message and "LGA1700" in mismatch[0].message
    assert result.score <= 70


def test_memory_type_mismatch(catalog, build):
    config = build(_swap(BALANCED_BUILD, "ram-ddr5-32", "ram-ddr4-16"))
    result = CompatibilityRuleEngine(catalog).check(config)
    assert not result.is_compatible
    assert any(i.type == "memory_type_mismatch" for i in result.issues)


def test_memory_overclock_and_single_channel_warnings(catalog, build, make_part):
    stick = make_part("memory", specifications={"type": "DDR5", "speed": 7200, "capacity": 16})
    config = build(BALANCED_BUILD).model_copy(update={"memory": [stick]})
    result = CompatibilityRuleEngine(catalog).check(config)
    types = {w.type for w in result.warnings}
    assert {"memory_overclock", "single_channel"} <= types
    overclock = [w for w in result.warnings if w.type == "memory_overclock"]
    assert "not a JEDEC standard speed" in overclock[0].message
    assert result.is_compatible


def test_memory_capacity_exceeded(catalog, build, make_part):
    big = make_part("memory", specifications={"type": "DDR5", "capacity": 64, "modules": 4})
    config = build(BALANCED_BUILD).model_copy(update={"memory": [big]})
    result = CompatibilityRuleEngine(catalog).check(config)
    assert any(i.type == "memory_capacity_exceeded" for i in result.issues)


def test_missing_gpu_connector_on_small_psu(catalog, build):
    config = build(_swap(BALANCED_BUILD, "psu-750g", "psu-450b"))
    result = CompatibilityRuleEngine(catalog).check(config)
    missing = [i for i in result.issues if i.type == "connector_missing"]
    assert any("12VHPWR" in i.message for i in missing)
    assert all(i.must_resolve for i in missing)
    assert result.details["power_connectors"].data["source"] == "profile:budget"


def test_declared_connectors_satisfy_through_alternatives(catalog, build):
    # 12VHPWR is served by the 12V-2x6 lead, 8pin_cpu by a 4+4pin lead
    result = CompatibilityRuleEngine(catalog).check(build(BALANCED_BUILD))
    data = result.details["power_connectors"].data
    assert data["source"] == "declared"
    assert "12VHPWR" in data["required"]
    assert data["unmatched"] == []


def test_form_factor_and_cooler_height_conflicts(catalog, build):
    config = build(_swap(BALANCED_BUILD, "case-atx-mid", "case-matx-compact"))
    result = CompatibilityRuleEngine(catalog).check(config)
    fit = result.physical_fit_issues()
    assert any(i.type == "form_factor_mismatch" for i in fit)
    # 160mm cooler against a 157mm limit
    assert any(i.type == "size_conflict" and "Cooler height" in i.message for i in fit)
    assert not result.details["physical_fit"].passed


def test_gpu_near_case_limit_is_a_warning(catalog, build, make_part):
    long_gpu = make_part("gpu", power_consumption=200, specifications={"length": 340, "powerConnectors": ["8pin_pcie"]})
    config = build(BALANCED_BUILD).model_copy(update={"gpu": long_gpu})
    result = CompatibilityRuleEngine(catalog).check(config)
    assert not [i for i in result.issues if i.type == "size_conflict"]
    assert any(w.type == "size_conflict" for w in result.warnings)


def test_power_insufficient(catalog, make_part):
    psu = make_part("psu", specifications={"wattage": 500})
    cpu = make_part("cpu", power_consumption=250, specifications={"socket": "AM5"})
    gpu = make_part("gpu", power_consumption=350)
    config = PCConfiguration(cpu=cpu, gpu=gpu, psu=psu)
    result = CompatibilityRuleEngine(catalog).check(config)

    power = [i for i in result.issues if i.type == "power_insufficient"]
    assert len(power) == 1
    assert power[0].must_resolve
    assert result.details["power_budget"].data["utilization"] == pytest.approx(1.2)
    assert not result.is_compatible


def test_power_headroom_warning(catalog, make_part):
    psu = make_part("psu", specifications={"wattage": 500, "efficiency": "80+ Bronze"})
    gpu = make_part("gpu", power_consumption=425)
    result = CompatibilityRuleEngine(catalog, checks=["power_budget"]).check(PCConfiguration(gpu=gpu, psu=psu))
    assert [w.type for w in result.warnings] == ["power_headroom"]
    assert result.warnings[0].priority == "high"


def test_performance_imbalance_warning(catalog, build):
    config = build(_swap(BALANCED_BUILD, "gpu-rtx4080", "gpu-gtx1060"))
    result = CompatibilityRuleEngine(catalog).check(config)
    imbalance = [w for w in result.warnings if w.type == "performance_imbalance"]
    assert len(imbalance) == 1
    assert imbalance[0].priority == "high"
    assert "GPU" in imbalance[0].message


def test_missing_essentials_are_reported(catalog, build):
    result = CompatibilityRuleEngine(catalog).check(build(["gpu-rtx4070", "case-atx-mid"]))
    assert not result.is_compatible
    missing = {i.category for i in result.issues if i.type == "missing_part"}
    assert missing == {"cpu", "motherboard", "memory", "psu"}
    assert all(i.severity == "info" for i in result.issues if i.type == "missing_part")


def test_issue_ids_are_stable(catalog, build):
    config = build(_swap(BALANCED_BUILD, "cpu-r7-7700x", "cpu-i7-14700k"))
    engine = CompatibilityRuleEngine(catalog)
    assert [i.id for i in engine.check(config).issues] == [i.id for i in engine.check(config).issues]


def test_check_selection(catalog, build):
    engine = CompatibilityRuleEngine(catalog, checks=["socket"])
    result = engine.check(build(BALANCED_BUILD))
    assert list(result.details) == ["socket"]
    with pytest.raises(ValueError):
        CompatibilityRuleEngine(catalog, checks=["socket", "nope"])


def test_score_is_bounded(catalog, build):
    config = build(
        ["cpu-r5-3600", "mb-z790", "ram-ddr4-16", "gpu-rtx4080", "psu-450b", "case-matx-compact", "cooler-ak620"]
    )
    result = CompatibilityRuleEngine(catalog).check(config)
    assert 0 <= result.score <= 100
    assert not result.is_compatible


def _with_gpu(config, **update):
    specs = {**config.gpu.specifications, **update.pop("specifications", {})}
    return config.model_copy(update={"gpu": config.gpu.model_copy(update={"specifications": specs, **update})})


@pytest.mark.parametrize(
    "fault",
    ["socket", "memory_type", "connector", "gpu_length", "power_budget"],
)
def test_one_critical_fault_lowers_score_and_blocks(catalog, build, fault):
    engine = CompatibilityRuleEngine(catalog)
    clean = engine.check(build(BALANCED_BUILD))
    assert clean.is_compatible

    if fault == "socket":
        config = build(_swap(BALANCED_BUILD, "cpu-r7-7700x", "cpu-i7-14700k"))
    elif fault == "memory_type":
        config = build(_swap(BALANCED_BUILD, "ram-ddr5-32", "ram-ddr4-16"))
    elif fault == "connector":
        config = _with_gpu(build(BALANCED_BUILD), specifications={"powerConnectors": ["12VHPWR", "12VHPWR", "12VHPWR"]})
    elif fault == "gpu_length":
        config = _with_gpu(build(BALANCED_BUILD), specifications={"length": 400})
    else:
        config = _with_gpu(build(BALANCED_BUILD), power_consumption=700)

    result = engine.check(config)
    assert result.score < clean.score
    assert not result.is_compatible
    assert any(i.severity == "critical" for i in result.issues)


def test_slow_non_standard_speed_is_flagged(catalog, build, make_part):
    stick = make_part("memory", specifications={"type": "DDR4", "speed": 2000, "capacity": 8, "modules": 2})
    config = build(["cpu-r5-3600", "mb-b550m"]).model_copy(update={"memory": [stick]})
    result = CompatibilityRuleEngine(catalog, checks=["memory"]).check(config)
    overclock = [w for w in result.warnings if w.type == "memory_overclock"]
    assert len(overclock) == 1
    assert "DDR4-2000 is not a JEDEC standard speed" in overclock[0].message
