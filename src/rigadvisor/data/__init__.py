"""Data 模块：性能目录、规格解析与配件仓库"""

from .catalog import CatalogEntry, PerformanceCatalog, normalize_model
from .repository import InMemoryPartsRepository, JsonPartsRepository, PartsRepository
from .specs import parse_specs

__all__ = [
    "CatalogEntry",
    "PerformanceCatalog",
    "normalize_model",
    "PartsRepository",
    "JsonPartsRepository",
    "InMemoryPartsRepository",
    "parse_specs",
]
