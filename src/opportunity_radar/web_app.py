"""FastAPI web application: JSON API under /api and the dashboard at /."""

from __future__ import annotations

import html
from dataclasses import asdict
from datetime import UTC, datetime
from typing import Any

import aiosqlite
from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .analyze import LLMAnalysisError
from .api.auth import require_scheduler_auth
from .api.deps import get_app_settings, get_llm_clients, get_store
from .api.schemas import (
    AnalyzeRequest,
    ManualOpportunityRequest,
    NicheCreate,
    NicheUpdate,
    ResearchRequest,
    SourceCreate,
    SourceUpdate,
)
from .config import Settings
from .ingest import run_ingest
from .logging_config import get_logger
from .models import AIProvider
from .providers import LLMClient
from .research import run_research
from .scheduler import run_analysis
from .store import AsyncStore, OpportunityNotFound

logger = get_logger(__name__)

app = FastAPI(title="Opportunity Radar", version=__version__)


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    message = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'] if part != 'body') or 'body'}: {err['msg']}"
        for err in exc.errors()
    )
    return _error(400, message or "Invalid request")


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return _error(400, str(exc))


@app.exception_handler(OpportunityNotFound)
async def not_found_handler(request: Request, exc: OpportunityNotFound):
    return _error(404, str(exc))


@app.exception_handler(LLMAnalysisError)
async def llm_error_handler(request: Request, exc: LLMAnalysisError):
    logger.error("llm_request_failed", path=request.url.path, error=str(exc))
    return _error(500, str(exc))


@app.exception_handler(aiosqlite.IntegrityError)
async def integrity_error_handler(request: Request, exc: aiosqlite.IntegrityError):
    return _error(409, str(exc))


@app.exception_handler(aiosqlite.Error)
async def storage_error_handler(request: Request, exc: aiosqlite.Error):
    logger.error("storage_request_failed", path=request.url.path, error=str(exc))
    return _error(500, str(exc))


def _client_for(clients: dict[AIProvider, LLMClient], provider: AIProvider) -> LLMClient:
    client = clients.get(provider)
    if client is None:
        raise HTTPException(status_code=400, detail=f"Provider {provider.value} is not configured")
    return client


# --- Scheduler triggers ---


@app.api_route("/api/ingest", methods=["GET", "POST"], dependencies=[Depends(require_scheduler_auth)])
async def trigger_ingest(
    store: AsyncStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
):
    results = await run_ingest(store, settings)
    return {"results": [asdict(r) for r in results], "timestamp": _timestamp()}


@app.api_route("/api/analyze", methods=["GET", "POST"], dependencies=[Depends(require_scheduler_auth)])
async def trigger_analyze(
    request: Request,
    store: AsyncStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
    clients: dict[AIProvider, LLMClient] = Depends(get_llm_clients),
):
    payload: dict[str, Any] = dict(request.query_params)
    payload.pop("secret", None)
    if request.method == "POST" and await request.body():
        try:
            body = await request.json()
        except ValueError as e:
            raise HTTPException(status_code=400, detail="Request body must be valid JSON") from e
        if not isinstance(body, dict):
            raise HTTPException(status_code=400, detail="Request body must be a JSON object")
        payload.update(body)
    params = AnalyzeRequest.model_validate(payload)

    _client_for(clients, params.provider)
    summary = await run_analysis(
        store,
        clients,
        limit=params.limit,
        provider=params.provider,
        delay=settings.analysis_delay_seconds,
        overfetch=settings.analysis_overfetch,
    )
    return {**summary.to_dict(), "timestamp": _timestamp()}


# --- Opportunities ---


@app.get("/api/opportunities")
async def list_opportunities(
    status: str | None = None,
    priority: str | None = None,
    starred: bool = False,
    search: str | None = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    sort_by: str = Query(default="overall_score", alias="sortBy"),
    sort_order: str = Query(default="desc", alias="sortOrder"),
    store: AsyncStore = Depends(get_store),
):
    data, total = await store.list_opportunities(
        status=status,
        priority=priority,
        starred=starred,
        search=search,
        limit=limit,
        offset=offset,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return {
        "data": data,
        "count": total,
        "pagination": {
            "offset": offset,
            "limit": limit,
            "total": total,
            "hasMore": offset + len(data) < total,
        },
    }


@app.post("/api/opportunities", status_code=201)
async def create_opportunity(body: ManualOpportunityRequest, store: AsyncStore = Depends(get_store)):
    return await store.create_manual_opportunity(**body.model_dump())


@app.get("/api/opportunities/{opportunity_id}")
async def get_opportunity(opportunity_id: int, store: AsyncStore = Depends(get_store)):
    opportunity = await store.get_opportunity(opportunity_id)
    if opportunity is None:
        raise OpportunityNotFound(opportunity_id)
    return opportunity


@app.patch("/api/opportunities/{opportunity_id}")
async def update_opportunity(
    opportunity_id: int,
    updates: dict[str, Any] = Body(...),
    store: AsyncStore = Depends(get_store),
):
    opportunity = await store.update_opportunity(opportunity_id, updates)
    if opportunity is None:
        raise OpportunityNotFound(opportunity_id)
    return opportunity


@app.delete("/api/opportunities/{opportunity_id}")
async def delete_opportunity(opportunity_id: int, store: AsyncStore = Depends(get_store)):
    if not await store.delete_opportunity(opportunity_id):
        raise OpportunityNotFound(opportunity_id)
    return {"success": True}


# --- Research ---


@app.post("/api/research")
async def create_research(
    body: ResearchRequest,
    store: AsyncStore = Depends(get_store),
    clients: dict[AIProvider, LLMClient] = Depends(get_llm_clients),
):
    client = _client_for(clients, body.provider)
    return await run_research(store, client, body.opportunity_id, body.research_type)


@app.get("/api/research")
async def list_research(opportunity_id: int, store: AsyncStore = Depends(get_store)):
    return await store.list_research(opportunity_id)


# --- Sources ---


@app.get("/api/sources")
async def list_sources(store: AsyncStore = Depends(get_store)):
    return await store.list_sources()


@app.post("/api/sources", status_code=201)
async def create_source(body: SourceCreate, store: AsyncStore = Depends(get_store)):
    return await store.create_source(**body.model_dump())


@app.patch("/api/sources")
async def update_source(body: SourceUpdate, store: AsyncStore = Depends(get_store)):
    updates = body.model_dump(exclude_unset=True, exclude={"id"})
    source = await store.update_source(body.id, updates)
    if source is None:
        raise HTTPException(status_code=404, detail=f"Source {body.id} not found")
    return source


# --- Niches ---


@app.get("/api/niches")
async def list_niches(store: AsyncStore = Depends(get_store)):
    return {"niches": await store.list_niches()}


@app.post("/api/niches", status_code=201)
async def create_niche(body: NicheCreate, store: AsyncStore = Depends(get_store)):
    return {"niche": await store.create_niche(**body.model_dump())}


@app.get("/api/niches/{niche_id}")
async def get_niche(niche_id: int, store: AsyncStore = Depends(get_store)):
    niche = await store.get_niche(niche_id)
    if niche is None:
        raise HTTPException(status_code=404, detail=f"Niche {niche_id} not found")
    return {"niche": niche}


@app.put("/api/niches/{niche_id}")
async def update_niche(niche_id: int, body: NicheUpdate, store: AsyncStore = Depends(get_store)):
    niche = await store.update_niche(niche_id, body.model_dump(exclude_unset=True))
    if niche is None:
        raise HTTPException(status_code=404, detail=f"Niche {niche_id} not found")
    return {"niche": niche}


@app.delete("/api/niches/{niche_id}")
async def delete_niche(niche_id: int, store: AsyncStore = Depends(get_store)):
    if not await store.delete_niche(niche_id):
        raise HTTPException(status_code=404, detail=f"Niche {niche_id} not found")
    return {"success": True}


# --- Stats ---


@app.get("/api/stats")
async def get_stats(store: AsyncStore = Depends(get_store)):
    return await store.get_stats()


# --- Dashboard ---

HTML_BS = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Opportunity Radar</title>
    <script src="https://cdn.tailwindcss.com"></script>
</head>
<body class="bg-gray-50 text-gray-900 font-sans">
    <div class="max-w-6xl mx-auto py-12 px-4 sm:px-6 lg:px-8">
        {content}
    </div>
</body>
</html>
"""

PRIORITY_BADGES = {
    "high": "bg-red-100 text-red-800",
    "medium": "bg-yellow-100 text-yellow-800",
    "low": "bg-gray-100 text-gray-800",
}


def _stat_card(label: str, value: Any) -> str:
    return f"""
        <div class="bg-white shadow sm:rounded-lg p-6">
            <p class="text-sm font-medium text-gray-500">{html.escape(label)}</p>
            <p class="mt-1 text-3xl font-semibold text-gray-900">{html.escape(str(value))}</p>
        </div>
    """


def render_dashboard(stats: dict, opportunities: list[dict]) -> str:
    cards = "".join(
        [
            _stat_card("Opportunities", stats["opportunities"]["total"]),
            _stat_card("New", stats["opportunities"]["new"]),
            _stat_card("Starred", stats["opportunities"]["starred"]),
            _stat_card("Average score", stats["opportunities"]["average_score"]),
            _stat_card("Posts awaiting analysis", stats["posts"]["unprocessed"]),
        ]
    )

    if opportunities:
        rows = ""
        for opp in opportunities:
            badge = PRIORITY_BADGES.get(opp["priority"], PRIORITY_BADGES["low"])
            star = "★ " if opp["is_starred"] else ""
            rows += f"""
            <tr>
                <td class="px-4 py-3">
                    <p class="font-medium">{star}{html.escape(opp["title"])}</p>
                    <p class="text-sm text-gray-500">{html.escape(opp["problem_statement"])}</p>
                </td>
                <td class="px-4 py-3 text-center">{opp["overall_score"]}</td>
                <td class="px-4 py-3"><span class="px-2 py-1 rounded text-xs {badge}">{html.escape(opp["priority"])}</span></td>
                <td class="px-4 py-3 text-sm">{html.escape(opp["status"])}</td>
            </tr>
            """
        table = f"""
        <table class="min-w-full divide-y divide-gray-200 bg-white shadow sm:rounded-lg">
            <thead class="bg-gray-50">
                <tr>
                    <th class="px-4 py-2 text-left text-xs font-medium text-gray-500 uppercase">Opportunity</th>
                    <th class="px-4 py-2 text-xs font-medium text-gray-500 uppercase">Score</th>
                    <th class="px-4 py-2 text-left text-xs font-medium text-gray-500 uppercase">Priority</th>
                    <th class="px-4 py-2 text-left text-xs font-medium text-gray-500 uppercase">Status</th>
                </tr>
            </thead>
            <tbody class="divide-y divide-gray-200">{rows}</tbody>
        </table>
        """
    else:
        table = "<p class='text-center text-gray-500'>No opportunities yet. Run an ingest and an analysis.</p>"

    return HTML_BS.format(
        content=f"""
        <h1 class="text-4xl font-bold mb-2">Opportunity Radar</h1>
        <p class="text-lg text-gray-600 mb-8">Micro SaaS opportunities mined from public community posts.</p>
        <div class="grid grid-cols-2 md:grid-cols-5 gap-4 mb-10">{cards}</div>
        <h2 class="text-2xl font-bold mb-4">Top opportunities</h2>
        {table}
    """
    )


@app.get("/", response_class=HTMLResponse)
async def dashboard(store: AsyncStore = Depends(get_store)):
    stats = await store.get_stats()
    opportunities, _ = await store.list_opportunities(limit=25)
    return render_dashboard(stats, opportunities)
