from datetime import date

from rigadvisor.analysis.scoring import ComponentPerformanceScorer

from conftest import BALANCED_BUILD


def test_catalog_hit_uses_benchmark_score(catalog, repo, reference_date):
    scorer = ComponentPerformanceScorer(catalog, reference_date=reference_date)
    result = scorer.score(repo.find_by_id("cpu-i7-14700k"))
    assert result.catalog_hit
    assert result.performance_score == 91
    assert result.value_score == 100
    assert result.modernity_score == 91
    assert "high performance" in result.strengths


def test_catalog_miss_falls_back_to_defaults(catalog, make_part, reference_date):
    scorer = ComponentPerformanceScorer(catalog, reference_date=reference_date)
    result = scorer.score(make_part("cpu", name="Mystery Chip"))
    assert not result.catalog_hit
    assert result.performance_score == 50
    assert result.value_score == 50
    assert result.modernity_score == 60


def test_modernity_decays_with_age_and_has_a_floor(catalog, make_part, reference_date):
    scorer = ComponentPerformanceScorer(catalog, reference_date=reference_date)
    recent = scorer.score(make_part("gpu", release_date=date(2024, 1, 1))).modernity_score
    older = scorer.score(make_part("gpu", release_date=date(2021, 1, 1))).modernity_score
    ancient = scorer.score(make_part("gpu", release_date=date(2005, 1, 1))).modernity_score
    assert recent > older > ancient
    assert ancient == 20


def test_value_score_never_increases_with_price(catalog, make_part, reference_date):
    scorer = ComponentPerformanceScorer(catalog, reference_date=reference_date)
    values = [scorer.score(make_part("cpu", price=price)).value_score for price in (5000, 20000, 80000, 300000)]
    assert values == sorted(values, reverse=True)


def test_weak_expensive_old_part_should_be_replaced(catalog, make_part, reference_date):
    scorer = ComponentPerformanceScorer(catalog, reference_date=reference_date)
    result = scorer.score(make_part("cpu", price=1_000_000, release_date=date(2010, 1, 1)))
    assert result.recommended_action == "replace_immediately"
    assert "poor value" in result.weaknesses
    assert "outdated" in result.weaknesses


def test_scores_stay_in_bounds(catalog, repo, reference_date):
    scorer = ComponentPerformanceScorer(catalog, reference_date=reference_date)
    for part in repo.all_parts():
        result = scorer.score(part)
        for value in (result.performance_score, result.value_score, result.modernity_score):
            assert 0 <= value <= 100
        assert 12 <= result.expected_lifespan_months <= 120


def test_scoring_is_deterministic(catalog, repo, reference_date):
    scorer = ComponentPerformanceScorer(catalog, reference_date=reference_date)
    part = repo.find_by_id("gpu-rtx4080")
    assert scorer.score(part) == scorer.score(part)


def test_configuration_analysis_scores_every_populated_category(catalog, build, reference_date):
    scorer = ComponentPerformanceScorer(catalog, reference_date=reference_date)
    config = build(BALANCED_BUILD, purchase_date=date(2020, 1, 1))
    analysis = scorer.analyze_configuration(config)
    assert set(analysis) == {"cpu", "motherboard", "memory", "gpu", "storage", "psu", "case", "cooler"}
    assert analysis["memory"].performance_score == 85
    assert all(c.maintenance_needed for c in analysis.values())
    # corsair memory shares a brand with the corsair power supply
    assert analysis["memory"].compatibility_with_others == 75


def test_gaming_usage_shortens_lifespan(catalog, build, reference_date):
    scorer = ComponentPerformanceScorer(catalog, reference_date=reference_date)
    gaming = scorer.analyze_configuration(build(["gpu-rtx4070"], usage="gaming"))
    office = scorer.analyze_configuration(build(["gpu-rtx4070"], usage="office"))
    assert gaming["gpu"].expected_lifespan_months < office["gpu"].expected_lifespan_months
