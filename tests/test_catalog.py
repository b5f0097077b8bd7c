import pytest

from rigadvisor.data.catalog import PerformanceCatalog, normalize_model
from rigadvisor.schemas import Part


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Intel Core i7-14700K", "i7-14700k"),
        ("i5 12400", "i5-12400"),
        ("AMD Ryzen 7 7700X", "ryzen7-7700x"),
        ("Ryzen 7 7800X3D", "ryzen7-7800x3d"),
        ("NVIDIA GeForce RTX 4080", "rtx4080"),
        ("RTX 4070 Ti", "rtx4070ti"),
        ("Radeon RX 7900 XTX", "rx7900xtx"),
        ("MZ-V9P1T0", "mzv9p1t0"),
    ],
)
def test_normalize_model(raw, expected):
    assert normalize_model(raw) == expected


def test_lookup_is_keyed_by_category_manufacturer_and_model(catalog):
    entry = catalog.lookup("cpu", "Intel", "Core i7-14700K")
    assert entry is not None
    assert entry.score == 91
    assert catalog.lookup("gpu", "Intel", "Core i7-14700K") is None


def test_lookup_resolves_manufacturer_aliases(catalog):
    entry = catalog.lookup("gpu", "NVIDIA Corporation", "GeForce RTX 4090")
    assert entry is not None and entry.score == 98


def test_lookup_part_falls_back_to_name():
    catalog = PerformanceCatalog()
    part = Part(id="x", name="AMD Ryzen 5 3600", category="cpu", manufacturer="AMD")
    entry = catalog.lookup_part(part)
    assert entry is not None
    assert entry.score == 48


def test_unknown_model_is_a_miss(catalog):
    assert catalog.lookup("cpu", "intel", "Pentium 4") is None


def test_socket_metadata(catalog):
    assert "Z790" in catalog.supported_chipsets("LGA1700")
    assert catalog.memory_types_for_socket("AM5") == ["DDR5"]
    assert catalog.is_legacy_socket("AM4")
    assert not catalog.is_legacy_socket("AM5")
    assert catalog.max_memory_for_socket("unknown") is None


def test_cpu_generation_parses_model_numbers(catalog):
    intel = Part(id="a", name="Intel Core i9-12900K", category="cpu", manufacturer="intel")
    amd = Part(id="b", name="AMD Ryzen 9 5950X", category="cpu", manufacturer="amd")
    assert catalog.cpu_generation(intel) == 12
    assert catalog.cpu_generation(amd) == 4


def test_psu_profile_selects_highest_matching_tier(catalog):
    assert catalog.psu_profile(1050).tier == "highend"
    assert catalog.psu_profile(750).tier == "mainstream"
    assert catalog.psu_profile(300).tier == "budget"


def test_injected_data_and_version():
    catalog = PerformanceCatalog(
        {
            "version": "test-1",
            "performance": [{"category": "cpu", "manufacturer": "acme", "model": "X1", "score": 42}],
        }
    )
    assert catalog.version == "test-1"
    assert catalog.lookup("cpu", "ACME", "x1").score == 42
    assert catalog.stats()["entries"] == 1


def test_missing_catalog_file_fails_fast(tmp_path):
    with pytest.raises(RuntimeError):
        PerformanceCatalog(data_path=tmp_path / "missing.json")


def test_from_file_matches_default(catalog):
    from rigadvisor.data.catalog import DEFAULT_CATALOG_PATH

    loaded = PerformanceCatalog.from_file(DEFAULT_CATALOG_PATH)
    assert loaded.version == catalog.version
    assert loaded.stats() == catalog.stats()
