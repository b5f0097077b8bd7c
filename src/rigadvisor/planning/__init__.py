"""Planning 模块：升级方案与投资回报"""

from .recommend import RecommendationGenerator
from .roi import ROICalculator

__all__ = ["RecommendationGenerator", "ROICalculator"]
