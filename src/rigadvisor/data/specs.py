"""
规格解析 - Specification Parsing

把 Part.specifications 的开放字典解析为各类别的强类型规格，缺失字段取文档化默认值。
Parse the open ``specifications`` bag of a part into a typed per-category
spec. camelCase and snake_case keys are both accepted; absent fields resolve
to documented defaults so the rule code never reads raw dictionaries.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

SPEC_SCHEMA_VERSION = 1

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")


class CpuSpec(BaseModel):
    socket: str = ""
    tdp: float = 65
    cores: Optional[int] = None
    threads: Optional[int] = None
    base_clock_ghz: Optional[float] = None
    boost_clock_ghz: Optional[float] = None
    integrated_graphics: bool = False


class GpuSpec(BaseModel):
    length_mm: Optional[float] = None
    height_mm: Optional[float] = None
    tdp: Optional[float] = None
    vram_gb: Optional[float] = None
    power_connectors: List[str] = Field(default_factory=list)
    recommended_psu_watts: Optional[float] = None


class MotherboardSpec(BaseModel):
    socket: str = ""
    chipset: str = ""
    form_factor: str = ""
    memory_support: List[str] = Field(default_factory=list)
    max_memory_gb: Optional[int] = None
    memory_slots: Optional[int] = None
    cpu_power_connectors: List[str] = Field(default_factory=lambda: ["8pin_cpu"])


class MemorySpec(BaseModel):
    memory_type: str = "DDR4"
    capacity_gb: int = 8
    modules: int = 1
    speed_mhz: int = 0

    @property
    def total_gb(self) -> int:
        return self.capacity_gb * self.modules


class StorageSpec(BaseModel):
    storage_type: str = ""
    interface: str = ""
    capacity_gb: Optional[int] = None
    is_ssd: bool = False


class PsuSpec(BaseModel):
    wattage: float = 500
    efficiency: str = ""
    modular: bool = False
    connectors: Optional[Dict[str, int]] = None


class CaseSpec(BaseModel):
    form_factor_support: Optional[List[str]] = None
    max_gpu_length_mm: Optional[float] = None
    max_gpu_height_mm: Optional[float] = None
    max_cooler_height_mm: Optional[float] = None
    radiator_support: Optional[List[int]] = None


class CoolerSpec(BaseModel):
    cooler_type: str = "air"
    height_mm: Optional[float] = None
    fan_size_mm: float = 120
    tdp_rating: Optional[float] = None
    radiator_size_mm: Optional[int] = None

    @property
    def is_aio(self) -> bool:
        return self.cooler_type in {"aio", "liquid", "water"}


PartSpec = Union[CpuSpec, GpuSpec, MotherboardSpec, MemorySpec, StorageSpec, PsuSpec, CaseSpec, CoolerSpec]


def _pick(specs: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = specs.get(key)
        if value is not None and value != "":
            return value
    return None


def _number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _NUMBER.search(str(value))
    return float(match.group()) if match else None


def _int(value: Any) -> Optional[int]:
    number = _number(value)
    return int(number) if number is not None else None


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def _string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, dict):
        out: List[str] = []
        for name, count in value.items():
            out.extend([str(name).strip()] * max(0, int(_number(count) or 0)))
        return out
    if isinstance(value, (list, tuple, set)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    # bare counts carry no connector or form factor names
    if isinstance(value, (int, float)):
        return []
    text = str(value).strip()
    return [text] if text else []


def _listish(value: Any) -> Any:
    """None for values that cannot name anything, such as a bare count."""
    return value if isinstance(value, (str, list, tuple, set, dict)) else None


def normalize_form_factor(value: str) -> str:
    key = re.sub(r"[\s_-]+", "", value.strip().lower())
    if key in {"microatx", "matx", "uatx"}:
        return "Micro-ATX"
    if key in {"miniitx", "itx"}:
        return "Mini-ITX"
    if key in {"eatx", "extendedatx"}:
        return "E-ATX"
    if key == "atx":
        return "ATX"
    return value.strip()


def memory_type_of(value: str) -> str:
    """'DDR5-6000' -> 'DDR5'"""
    return value.strip().upper().split("-")[0]


def _parse_cpu(specs: Dict[str, Any]) -> CpuSpec:
    return CpuSpec(
        socket=_text(_pick(specs, "socket")),
        tdp=_number(_pick(specs, "tdp", "TDP")) or 65,
        cores=_int(_pick(specs, "cores", "coreCount", "core_count")),
        threads=_int(_pick(specs, "threads", "threadCount", "thread_count")),
        base_clock_ghz=_number(_pick(specs, "baseClock", "base_clock", "base_clock_ghz")),
        boost_clock_ghz=_number(_pick(specs, "boostClock", "boost_clock", "boost_clock_ghz")),
        integrated_graphics=bool(_pick(specs, "integratedGraphics", "integrated_graphics")),
    )


def _parse_gpu(specs: Dict[str, Any]) -> GpuSpec:
    return GpuSpec(
        length_mm=_number(_pick(specs, "length", "lengthMm", "length_mm")),
        height_mm=_number(_pick(specs, "height", "heightMm", "height_mm")),
        tdp=_number(_pick(specs, "tdp", "TDP", "tgp")),
        vram_gb=_number(_pick(specs, "vram", "memory", "vram_gb")),
        power_connectors=_string_list(_pick(specs, "powerConnectors", "power_connectors")),
        recommended_psu_watts=_number(_pick(specs, "recommendedPsu", "recommended_psu")),
    )


def _parse_motherboard(specs: Dict[str, Any]) -> MotherboardSpec:
    support: List[str] = []
    for item in _string_list(_pick(specs, "memorySupport", "memory_support", "memoryType", "memory_type")):
        mem_type = memory_type_of(item)
        if mem_type and mem_type not in support:
            support.append(mem_type)
    cpu_power = _string_list(_pick(specs, "cpuPowerConnector", "cpu_power_connector", "cpuPowerConnectors"))
    return MotherboardSpec(
        socket=_text(_pick(specs, "socket")),
        chipset=_text(_pick(specs, "chipset")).upper(),
        form_factor=normalize_form_factor(_text(_pick(specs, "formFactor", "form_factor"))),
        memory_support=support,
        max_memory_gb=_int(_pick(specs, "maxMemory", "max_memory", "max_memory_gb")),
        memory_slots=_int(_pick(specs, "memorySlots", "memory_slots")),
        cpu_power_connectors=cpu_power or ["8pin_cpu"],
    )


def _parse_memory(specs: Dict[str, Any]) -> MemorySpec:
    raw_type = _text(_pick(specs, "type", "memoryType", "memory_type"))
    raw_speed = _pick(specs, "speed", "speedMhz", "speed_mhz", "frequency")
    memory_type = memory_type_of(raw_type) if raw_type else ""
    if isinstance(raw_speed, str) and raw_speed.upper().startswith("DDR"):
        memory_type = memory_type or memory_type_of(raw_speed)
        raw_speed = raw_speed.split("-", 1)[1] if "-" in raw_speed else None
    return MemorySpec(
        memory_type=memory_type or "DDR4",
        capacity_gb=_int(_pick(specs, "capacity", "capacityGb", "capacity_gb")) or 8,
        modules=_int(_pick(specs, "modules", "moduleCount", "module_count")) or 1,
        speed_mhz=_int(raw_speed) or 0,
    )


def _parse_storage(specs: Dict[str, Any], name: str) -> StorageSpec:
    storage_type = _text(_pick(specs, "type", "storageType", "storage_type")).lower()
    interface = _text(_pick(specs, "interface")).lower()
    haystack = f"{storage_type} {interface} {name.lower()}"
    return StorageSpec(
        storage_type=storage_type,
        interface=interface,
        capacity_gb=_int(_pick(specs, "capacity", "capacityGb", "capacity_gb")),
        is_ssd=any(token in haystack for token in ("ssd", "nvme", "m.2")),
    )


def _parse_psu(specs: Dict[str, Any]) -> PsuSpec:
    raw_connectors = _listish(_pick(specs, "connectors"))
    connectors: Optional[Dict[str, int]] = None
    if raw_connectors is not None:
        connectors = {}
        for name in _string_list(raw_connectors):
            connectors[name] = connectors.get(name, 0) + 1
    return PsuSpec(
        wattage=_number(_pick(specs, "wattage", "watt", "power")) or 500,
        efficiency=_text(_pick(specs, "efficiency", "certification")),
        modular=bool(_pick(specs, "modular")),
        connectors=connectors,
    )


def _parse_case(specs: Dict[str, Any]) -> CaseSpec:
    support = _listish(
        _pick(specs, "formFactorSupport", "form_factor_support", "supportedFormFactors", "motherboardSupport")
    )
    radiators = _pick(specs, "radiatorSupport", "radiator_support")
    return CaseSpec(
        form_factor_support=[normalize_form_factor(v) for v in _string_list(support)] if support is not None else None,
        max_gpu_length_mm=_number(_pick(specs, "maxGpuLength", "max_gpu_length", "max_gpu_length_mm")),
        max_gpu_height_mm=_number(_pick(specs, "maxGpuHeight", "max_gpu_height", "max_gpu_height_mm")),
        max_cooler_height_mm=_number(
            _pick(specs, "maxCpuCoolerHeight", "maxCoolerHeight", "max_cooler_height", "max_cooler_height_mm")
        ),
        radiator_support=[_int(v) for v in _string_list(radiators) if _int(v)] if radiators is not None else None,
    )


def _parse_cooler(specs: Dict[str, Any]) -> CoolerSpec:
    cooler_type = _text(_pick(specs, "type", "coolerType", "cooler_type")).lower() or "air"
    return CoolerSpec(
        cooler_type=cooler_type,
        height_mm=_number(_pick(specs, "height", "heightMm", "height_mm")),
        fan_size_mm=_number(_pick(specs, "fanSize", "fan_size", "fan_size_mm")) or 120,
        tdp_rating=_number(_pick(specs, "tdp", "tdpRating", "tdp_rating", "maxTdp")),
        radiator_size_mm=_int(_pick(specs, "radiatorSize", "radiator_size", "radiator_size_mm")),
    )


_PARSERS_V1: Dict[str, Callable[..., PartSpec]] = {
    "cpu": _parse_cpu,
    "gpu": _parse_gpu,
    "motherboard": _parse_motherboard,
    "memory": _parse_memory,
    "psu": _parse_psu,
    "case": _parse_case,
    "cooler": _parse_cooler,
}

_PARSERS = {1: _PARSERS_V1}


def parse_specs(part) -> Optional[PartSpec]:
    """
    解析配件规格 - Parse Part Specifications

    参数 Parameters:
        part: 任意类别的配件
              Part of any category

    返回 Returns:
        对应类别的强类型规格；"other" 类别返回 None
        Typed spec for the part's category, None for "other"
    """
    specs = part.specifications or {}
    version = _int(_pick(specs, "schemaVersion", "schema_version")) or SPEC_SCHEMA_VERSION
    parsers = _PARSERS.get(version)
    if parsers is None:
        logger.debug("[specs] unknown schema version %s for %s, using v%s", version, part.id, SPEC_SCHEMA_VERSION)
        parsers = _PARSERS[SPEC_SCHEMA_VERSION]
    if part.category == "storage":
        return _parse_storage(specs, part.name)
    parser = parsers.get(part.category)
    return parser(specs) if parser else None


def cpu_spec(part) -> CpuSpec:
    return parse_specs(part) if part is not None else CpuSpec()


def gpu_spec(part) -> GpuSpec:
    return parse_specs(part) if part is not None else GpuSpec()


def motherboard_spec(part) -> MotherboardSpec:
    return parse_specs(part) if part is not None else MotherboardSpec()


def memory_spec(part) -> MemorySpec:
    return parse_specs(part)


def storage_spec(part) -> StorageSpec:
    return parse_specs(part)


def psu_spec(part) -> PsuSpec:
    return parse_specs(part) if part is not None else PsuSpec()


def case_spec(part) -> CaseSpec:
    return parse_specs(part) if part is not None else CaseSpec()


def cooler_spec(part) -> CoolerSpec:
    return parse_specs(part) if part is not None else CoolerSpec()
