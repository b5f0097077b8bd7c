"""
性能目录 - Performance Catalog

以 (类别, 厂商, 型号) 为键的性能数据表，以及插槽、芯片组、内存和电源接口等兼容性元数据。
Benchmark table keyed by (category, manufacturer, model) plus the socket,
chipset, memory and PSU connector metadata used by the compatibility rules.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent / "catalog.json"

CatalogKey = Tuple[str, str, str]

_INTEL_CORE = re.compile(r"\bi([3579])[\s-]*(\d{4,5})([a-z]*)")
_RYZEN = re.compile(r"\bryzen[\s-]*([3579])[\s-]*(\d{4})\s*(x3d|xt|x|ge|g)?\b")
_NVIDIA = re.compile(r"\b(rtx|gtx)[\s-]*(\d{3,4})\s*(ti\s*super|ti|super)?\b")
_RADEON = re.compile(r"\brx[\s-]*(\d{3,4})\s*(xtx|xt|gre)?\b")


def normalize_model(text: str) -> str:
    """
    型号规范化 - Normalize Model Name

    "Intel Core i7-14700K" -> "i7-14700k", "NVIDIA GeForce RTX 4080" -> "rtx4080",
    "AMD Ryzen 7 7700X" -> "ryzen7-7700x", "Radeon RX 7900 XTX" -> "rx7900xtx".
    Anything else is lowercased with separators removed.
    """
    lowered = text.strip().lower()
    match = _INTEL_CORE.search(lowered)
    if match:
        return f"i{match.group(1)}-{match.group(2)}{match.group(3)}"
    match = _RYZEN.search(lowered)
    if match:
        return f"ryzen{match.group(1)}-{match.group(2)}{match.group(3) or ''}"
    match = _NVIDIA.search(lowered)
    if match:
        suffix = (match.group(3) or "").replace(" ", "")
        return f"{match.group(1)}{match.group(2)}{suffix}"
    match = _RADEON.search(lowered)
    if match:
        return f"rx{match.group(1)}{match.group(2) or ''}"
    return re.sub(r"[^a-z0-9]+", "", lowered)


class CatalogEntry(BaseModel):
    category: str
    manufacturer: str
    model: str
    score: float = Field(ge=0, le=100)
    release_date: Optional[date] = None
    generation: Optional[int] = None
    socket: str = ""
    tdp: Optional[float] = None


class SocketInfo(BaseModel):
    vendor: str
    chipsets: List[str] = Field(default_factory=list)
    memory_types: List[str] = Field(default_factory=list)
    max_memory_gb: int = 128
    legacy: bool = False


class PsuProfile(BaseModel):
    tier: str
    min_wattage: float
    connectors: Dict[str, int] = Field(default_factory=dict)


class PerformanceCatalog:
    """性能目录 - read-only lookups, loaded from a JSON file or injected data."""

    def __init__(self, data: dict | None = None, *, data_path: Path | None = None):
        if data is None and data_path is None:
            data_path = DEFAULT_CATALOG_PATH
        self.data_path = data_path
        self._initial_data = data
        self.version = "0"
        self._entries: Dict[CatalogKey, CatalogEntry] = {}
        self._by_model: Dict[Tuple[str, str], List[CatalogEntry]] = {}
        self._sockets: Dict[str, SocketInfo] = {}
        self._memory_speeds: Dict[str, Tuple[int, ...]] = {}
        self._chipset_generations: Dict[str, Dict[str, int]] = {}
        self._amd_series: Dict[int, int] = {}
        self._psu_profiles: List[PsuProfile] = []
        self._connector_compat: Dict[str, Tuple[str, ...]] = {}
        self._power_estimates: Dict[str, Dict[str, float]] = {}
        self._aliases: Dict[str, str] = {}
        self.reload()

    @classmethod
    def from_file(cls, path: Path) -> "PerformanceCatalog":
        return cls(data_path=path)

    def reload(self) -> None:
        if self._initial_data is not None:
            data = self._initial_data
        else:
            assert self.data_path is not None
            if not self.data_path.exists():
                raise RuntimeError(f"catalog file missing: {self.data_path}")
            data = json.loads(self.data_path.read_text(encoding="utf-8"))

        self.version = str(data.get("version", "0"))
        self._aliases = {
            k.strip().lower(): v.strip().lower()
            for k, v in (data.get("manufacturer_aliases") or {}).items()
        }

        entries: Dict[CatalogKey, CatalogEntry] = {}
        by_model: Dict[Tuple[str, str], List[CatalogEntry]] = {}
        for raw in data.get("performance", []):
            entry = CatalogEntry.model_validate(raw)
            entry.manufacturer = self.canonical_manufacturer(entry.manufacturer)
            entry.model = normalize_model(entry.model)
            key = (entry.category, entry.manufacturer, entry.model)
            entries[key] = entry
            by_model.setdefault((entry.category, entry.model), []).append(entry)
        self._entries = entries
        self._by_model = by_model

        self._sockets = {
            name: SocketInfo.model_validate(info) for name, info in (data.get("sockets") or {}).items()
        }
        self._memory_speeds = {
            mem_type.upper(): tuple(int(s) for s in speeds)
            for mem_type, speeds in (data.get("memory_standard_speeds") or {}).items()
        }
        self._chipset_generations = {
            vendor: {chip.upper(): int(gen) for chip, gen in table.items()}
            for vendor, table in (data.get("chipset_generations") or {}).items()
        }
        self._amd_series = {
            int(series): int(gen) for series, gen in (data.get("amd_series_generations") or {}).items()
        }
        profiles = [PsuProfile.model_validate(p) for p in data.get("psu_connector_profiles", [])]
        self._psu_profiles = sorted(profiles, key=lambda p: p.min_wattage, reverse=True)
        self._connector_compat = {
            required: tuple(options)
            for required, options in (data.get("connector_compatibility") or {}).items()
        }
        self._power_estimates = {
            category: {variant: float(watts) for variant, watts in table.items()}
            for category, table in (data.get("power_estimates") or {}).items()
        }
        logger.debug(
            "[catalog] loaded version=%s entries=%d sockets=%d",
            self.version,
            len(self._entries),
            len(self._sockets),
        )

    def canonical_manufacturer(self, name: str | None) -> str:
        value = (name or "").strip().lower()
        return self._aliases.get(value, value)

    def lookup(self, category: str, manufacturer: str | None, model: str) -> CatalogEntry | None:
        normalized = normalize_model(model)
        if not normalized:
            return None
        brand = self.canonical_manufacturer(manufacturer)
        entry = self._entries.get((category, brand, normalized))
        if entry is not None:
            return entry
        candidates = self._by_model.get((category, normalized), [])
        if len(candidates) == 1:
            return candidates[0]
        return None

    def lookup_part(self, part) -> CatalogEntry | None:
        for text in (part.model, part.name):
            if not text:
                continue
            entry = self.lookup(part.category, part.manufacturer, text)
            if entry is not None:
                return entry
        return None

    def socket(self, name: str | None) -> SocketInfo | None:
        if not name:
            return None
        return self._sockets.get(name.strip())

    def supported_chipsets(self, socket: str | None) -> List[str]:
        info = self.socket(socket)
        return list(info.chipsets) if info else []

    def memory_types_for_socket(self, socket: str | None) -> List[str]:
        info = self.socket(socket)
        return list(info.memory_types) if info else []

    def max_memory_for_socket(self, socket: str | None) -> int | None:
        info = self.socket(socket)
        return info.max_memory_gb if info else None

    def is_legacy_socket(self, socket: str | None) -> bool:
        info = self.socket(socket)
        return bool(info and info.legacy)

    def standard_speeds(self, memory_type: str) -> Tuple[int, ...]:
        return self._memory_speeds.get(memory_type.strip().upper(), ())

    def chipset_generation(self, chipset: str | None) -> int | None:
        if not chipset:
            return None
        key = chipset.strip().upper()
        for table in self._chipset_generations.values():
            if key in table:
                return table[key]
        return None

    def cpu_generation(self, part) -> int | None:
        """CPU 世代 - catalog value first, then parsed from the model number."""
        entry = self.lookup_part(part)
        if entry is not None and entry.generation is not None:
            return entry.generation

        text = f"{part.model or ''} {part.name}".lower()
        intel = _INTEL_CORE.search(text)
        if intel:
            digits = intel.group(2)
            return int(digits[:2]) if len(digits) == 5 else int(digits[0])
        ryzen = _RYZEN.search(text)
        if ryzen:
            series = int(ryzen.group(2)[0]) * 1000
            return self._amd_series.get(series)
        return None

    def psu_profile(self, wattage: float) -> PsuProfile | None:
        for profile in self._psu_profiles:
            if wattage >= profile.min_wattage:
                return profile
        return None

    def compatible_connectors(self, required: str) -> Tuple[str, ...]:
        return self._connector_compat.get(required, ())

    def power_estimate(self, category: str, variant: str | None = None) -> float:
        """Typical draw in watts for a category, refined by variant when the table has one."""
        table = self._power_estimates.get(category) or {}
        if variant and variant in table:
            return table[variant]
        return table.get("default", 0.0)

    def stats(self) -> dict:
        return {
            "version": self.version,
            "entries": len(self._entries),
            "sockets": sorted(self._sockets),
            "memory_types": sorted(self._memory_speeds),
            "psu_tiers": [p.tier for p in self._psu_profiles],
        }
