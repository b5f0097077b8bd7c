"""Analysis 模块：评分、兼容性检查、功耗估算、瓶颈检测与性能预测"""

from .bottleneck import BottleneckDetector, sort_by_severity
from .compatibility import CompatibilityRuleEngine
from .metrics import PerformancePredictor
from .power import PowerBudget, PowerEstimator
from .scoring import ComponentPerformanceScorer, clamp

__all__ = [
    "BottleneckDetector",
    "sort_by_severity",
    "CompatibilityRuleEngine",
    "PerformancePredictor",
    "PowerBudget",
    "PowerEstimator",
    "ComponentPerformanceScorer",
    "clamp",
]
