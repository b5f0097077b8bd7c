"""配件仓库 - parts providers for the analysis engine"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, List

from ..schemas import Part

logger = logging.getLogger(__name__)

DEFAULT_PARTS_PATH = Path(__file__).resolve().parent / "sample_parts.json"


class PartsRepository:
    """配件仓库基类"""

    def __init__(self) -> None:
        self._parts: List[Part] = []
        self.reload()

    def reload(self) -> None:
        """重新加载数据"""
        raise NotImplementedError

    def all_parts(self) -> List[Part]:
        return self._parts

    def by_category(self, category: str) -> List[Part]:
        return [p for p in self._parts if p.category == category]

    def find_by_id(self, part_id: str) -> Part | None:
        for part in self._parts:
            if part.id == part_id:
                return part
        return None

    def search(self, text: str = "", category: str | None = None, max_price: float | None = None) -> List[Part]:
        needle = text.strip().lower()
        found = []
        for part in self._parts:
            if category and part.category != category:
                continue
            if max_price is not None and part.price > max_price:
                continue
            if needle and needle not in f"{part.manufacturer} {part.name} {part.model or ''}".lower():
                continue
            found.append(part)
        return found


class JsonPartsRepository(PartsRepository):
    """JSON 文件数据仓库"""

    def __init__(self, data_path: Path = DEFAULT_PARTS_PATH):
        self.data_path = data_path
        super().__init__()

    def reload(self) -> None:
        if not self.data_path.exists():
            raise RuntimeError(f"parts file missing: {self.data_path}")
        raw = json.loads(self.data_path.read_text(encoding="utf-8"))
        self._parts = [Part.model_validate(item) for item in raw]
        logger.debug("[parts] loaded %d parts from %s", len(self._parts), self.data_path)


class InMemoryPartsRepository(PartsRepository):
    """内存数据仓库，用于测试和嵌入式调用"""

    def __init__(self, parts: Iterable[Part] = ()):
        self._seed = list(parts)
        super().__init__()

    def reload(self) -> None:
        self._parts = list(self._seed)

    def add(self, part: Part) -> None:
        self._seed.append(part)
        self._parts.append(part)
