from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .config import _env_int, load_settings
from .data.catalog import DEFAULT_CATALOG_PATH, PerformanceCatalog
from .data.repository import DEFAULT_PARTS_PATH, JsonPartsRepository
from .graph import AnalysisGraph
from .schemas import AnalyzeRequest, PartIdsRequest, ROIRequest
from .service import AnalysisService
from .tools import Toolset

ROOT = Path(__file__).resolve().parents[2]

load_dotenv(ROOT / ".env")


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name, "").strip()
    return Path(raw) if raw else default


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()
CATALOG_PATH = _env_path("RIGADVISOR_CATALOG_PATH", DEFAULT_CATALOG_PATH)
PARTS_PATH = _env_path("RIGADVISOR_PARTS_PATH", DEFAULT_PARTS_PATH)
ANALYSIS_CACHE_STORE = os.getenv("ANALYSIS_CACHE_STORE", "memory").strip().lower()
ANALYSIS_REDIS_URL = os.getenv("ANALYSIS_REDIS_URL", "redis://127.0.0.1:6379/0").strip()
ANALYSIS_CACHE_TTL_SECONDS = _env_int("ANALYSIS_CACHE_TTL_SECONDS", 300)
SESSION_TTL_SECONDS = _env_int("SESSION_TTL_SECONDS", 3600)
SESSION_CLEANUP_INTERVAL_SECONDS = _env_int("SESSION_CLEANUP_INTERVAL_SECONDS", 600)

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


def _build_service(catalog: PerformanceCatalog) -> AnalysisService:
    if ANALYSIS_CACHE_STORE not in {"memory", "redis", "none"}:
        raise ValueError(f"ANALYSIS_CACHE_STORE must be memory, redis or none, got {ANALYSIS_CACHE_STORE!r}")
    graph = AnalysisGraph(catalog, load_settings())
    return AnalysisService(
        graph,
        cache_store=ANALYSIS_CACHE_STORE,
        cache_redis_url=ANALYSIS_REDIS_URL,
        cache_ttl_seconds=ANALYSIS_CACHE_TTL_SECONDS,
        session_ttl_seconds=SESSION_TTL_SECONDS,
        session_cleanup_interval_seconds=SESSION_CLEANUP_INTERVAL_SECONDS,
    )


catalog = PerformanceCatalog(data_path=CATALOG_PATH)
repo = JsonPartsRepository(PARTS_PATH)
service = _build_service(catalog)
tool_map = Toolset(repo, service).register()
logger.info(
    "[RigAdvisor] ready: catalog=%s parts=%d cache=%s",
    catalog.version,
    len(repo.all_parts()),
    ANALYSIS_CACHE_STORE,
)

app = FastAPI(title="RigAdvisor｜装机升级顾问")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def _invoke_part_tool(name: str, payload: PartIdsRequest):
    try:
        return tool_map[name].invoke(payload.model_dump())
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc.args[0])) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@app.get("/healthz")
def healthz():
    return {"status": "ok", "catalog_version": catalog.version, "cache_store": service.cache_store}


@app.post("/api/analyze")
def analyze(payload: AnalyzeRequest):
    if payload.session_id:
        return service.submit(payload.session_id, payload.configuration).model_dump(mode="json")
    return service.analyze(payload.configuration).model_dump(mode="json")


@app.post("/api/compatibility")
def compatibility(payload: PartIdsRequest):
    return _invoke_part_tool("check_compatibility", payload)


@app.post("/api/bottlenecks")
def bottlenecks(payload: PartIdsRequest):
    return _invoke_part_tool("detect_bottlenecks", payload)


@app.post("/api/roi")
def roi(payload: ROIRequest):
    try:
        result = service.calculate_roi(payload.plan, payload.timeframe_months)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return result.model_dump(mode="json")


@app.get("/api/parts")
def list_parts(category: str | None = None, q: str = "", max_price: float | None = None):
    return [p.model_dump(mode="json") for p in repo.search(q, category, max_price)]


@app.get("/api/catalog")
def catalog_info():
    return catalog.stats()
