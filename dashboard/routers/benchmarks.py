from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.engine import Engine

from benchmarking.config import BenchmarkConfig
from benchmarking.cost_model import ChangePattern
from benchmarking.report import StrategyReport
from benchmarking.runner import recommend, run_all_strategies, run_benchmark
from benchmarking.scenarios import default_scenario
from core.exceptions import ComputeError, InvalidConfigError
from dashboard.schemas import (
    BenchmarkRunAllResponse,
    BenchmarkRunResponse,
    RecommendationResponse,
    StrategyListResponse,
)
from view_maintenance.registry import describe_strategies, resolve_kind

router = APIRouter(prefix="/benchmarks", tags=["Benchmarks"])

def get_engine(request: Request) -> Engine:
    return request.app.state.engine

def _benchmark_config(iterations: int, top_k: int, parallel: bool = False) -> BenchmarkConfig:
    return BenchmarkConfig(iterations=iterations, top_k=top_k, parallel=parallel)

@router.get("/strategies", response_model=StrategyListResponse)
def list_strategies():
    """
    List the four maintenance strategies and their cost classes.
    """
    return StrategyListResponse(success=True, data=describe_strategies())

@router.get("/run/{strategy_id}", response_model=BenchmarkRunResponse)
def run_strategy(
    strategy_id: str,
    iterations: int = Query(10, ge=1, le=1000),
    top_k: int = Query(5, ge=1, le=100),
    engine: Engine = Depends(get_engine),
):
    """
    Benchmark one strategy under its default definition change.

    A failed run still returns its report, with N/A latency
    and the raw error message.
    """
    try:
        kind = resolve_kind(strategy_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    scenario = default_scenario(kind)
    sample = run_benchmark(engine, kind, scenario=scenario, config=_benchmark_config(iterations, top_k))
    report = StrategyReport.from_sample(sample)
    return BenchmarkRunResponse(
        success=report.succeeded,
        message=report.error,
        scenario=scenario.name,
        data=report.to_dict(),
    )

@router.get("/run", response_model=BenchmarkRunAllResponse)
def run_all(
    iterations: int = Query(10, ge=1, le=1000),
    top_k: int = Query(5, ge=1, le=100),
    parallel: bool = False,
    engine: Engine = Depends(get_engine),
):
    """
    Benchmark all four strategies, each in its own session.
    """
    samples = run_all_strategies(engine, config=_benchmark_config(iterations, top_k, parallel))
    reports = [StrategyReport.from_sample(s) for s in samples.values()]
    failed = [r.strategy_id for r in reports if not r.succeeded]
    return BenchmarkRunAllResponse(
        success=not failed,
        message=f"Failed: {', '.join(failed)}" if failed else None,
        data=[r.to_dict() for r in reports],
    )

@router.get("/recommend", response_model=RecommendationResponse)
def get_recommendation(
    reads_per_change: int = Query(10, ge=0),
    full_reweight: float = Query(0.4, ge=0.0, le=1.0),
    single_dimension: float = Query(0.4, ge=0.0, le=1.0),
    window_width: float = Query(0.2, ge=0.0, le=1.0),
    iterations: int = Query(10, ge=1, le=1000),
    top_k: int = Query(5, ge=1, le=100),
    engine: Engine = Depends(get_engine),
):
    """
    Recommend the cheapest strategy for a mix of definition changes.
    """
    try:
        pattern = ChangePattern(
            full_reweight=full_reweight,
            single_dimension=single_dimension,
            window_width=window_width,
        )
    except InvalidConfigError as e:
        raise HTTPException(status_code=400, detail=e.message)

    try:
        choice = recommend(
            engine,
            pattern,
            reads_per_change=reads_per_change,
            config=_benchmark_config(iterations, top_k),
        )
    except ComputeError as e:
        raise HTTPException(status_code=503, detail=e.message)

    return RecommendationResponse(success=True, data=choice.to_dict())
