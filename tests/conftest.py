from datetime import date
from pathlib import Path
from typing import Callable, List

import pytest

from rigadvisor.data.catalog import PerformanceCatalog
from rigadvisor.data.repository import JsonPartsRepository
from rigadvisor.schemas import Part, PCConfiguration

ROOT = Path(__file__).resolve().parents[1]
PARTS_PATH = ROOT / "src" / "rigadvisor" / "data" / "sample_parts.json"

REFERENCE_DATE = date(2024, 6, 1)

BALANCED_BUILD = [
    "cpu-r7-7700x",
    "mb-b650",
    "ram-ddr5-32",
    "gpu-rtx4080",
    "ssd-nvme-1tb",
    "psu-750g",
    "case-atx-mid",
    "cooler-ak620",
]


@pytest.fixture(scope="session")
def catalog() -> PerformanceCatalog:
    return PerformanceCatalog()


@pytest.fixture(scope="session")
def repo() -> JsonPartsRepository:
    return JsonPartsRepository(PARTS_PATH)


@pytest.fixture
def reference_date() -> date:
    return REFERENCE_DATE


@pytest.fixture
def make_part() -> Callable[..., Part]:
    counter = {"n": 0}

    def _make(category: str, **kwargs) -> Part:
        counter["n"] += 1
        kwargs.setdefault("id", f"{category}-{counter['n']}")
        kwargs.setdefault("name", f"Test {category} {counter['n']}")
        return Part(category=category, **kwargs)

    return _make


@pytest.fixture
def build(repo) -> Callable[..., PCConfiguration]:
    def _build(part_ids: List[str], usage: str = "gaming", **kwargs) -> PCConfiguration:
        parts = [repo.find_by_id(pid) for pid in part_ids]
        assert all(p is not None for p in parts), part_ids
        return PCConfiguration.from_parts(parts, usage=usage, **kwargs)

    return _build
