"""
Pydantic schemas for Benchmark API responses.

Report fields are serialized with the presentation layer's
camelCase names.
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.clock import now_utc

# =======================
# COMMON
# =======================

class BaseResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    timestamp: datetime = Field(default_factory=now_utc)

# =======================
# 1. STRATEGIES
# =======================

class StrategyInfo(BaseModel):
    id: str
    title: str
    description: str
    read_complexity: str
    refresh_complexity: str
    supports_windowing: bool

class StrategyListResponse(BaseResponse):
    data: List[StrategyInfo]

# =======================
# 2. BENCHMARK REPORTS
# =======================

class SampleRow(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    record_id: int = Field(alias="recordId")
    score: float

class StrategyReportSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    strategy_id: str = Field(alias="strategyId")
    title: str
    refresh_latency_ms: str = Field(alias="refreshLatencyMs")        # "N/A" on failure
    average_read_latency_ms: str = Field(alias="averageReadLatencyMs")
    complexity_class: str = Field(alias="complexityClass")           # O(1), O(log n), O(n)
    sample_rows: List[SampleRow] = Field(alias="sampleRows")
    completed_iterations: int = Field(alias="completedIterations")
    iterations_requested: int = Field(alias="iterationsRequested")
    error: Optional[str] = None
    error_type: Optional[str] = Field(default=None, alias="errorType")

class BenchmarkRunResponse(BaseResponse):
    scenario: str
    data: StrategyReportSchema

class BenchmarkRunAllResponse(BaseResponse):
    data: List[StrategyReportSchema]

# =======================
# 3. RECOMMENDATION
# =======================

class RankedStrategy(BaseModel):
    strategy_id: str
    expected_cost_ms: float

class RecommendationDetail(BaseModel):
    strategy_id: str
    expected_cost_ms: float
    reads_per_change: int
    ranking: List[RankedStrategy]
    excluded: Dict[str, str]

class RecommendationResponse(BaseResponse):
    data: RecommendationDetail
