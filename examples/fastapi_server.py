"""
prio-router FastAPI server example.

Exposes the router over REST so a mobile or web client can classify,
parse and refine tasks, and report corrections back for accuracy tracking.

Prerequisites:
    pip install prio-router fastapi uvicorn
    ollama pull gemma2:2b

Run:
    uvicorn examples.fastapi_server:app --reload

Usage:
    curl -X POST http://localhost:8000/complete \
        -H "Content-Type: application/json" \
        -d '{"request_type": "classify_priority", "input": "Submit taxes by Friday"}'
"""

from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Optional

from prio_router import (
    AiRequest,
    AiRouter,
    OllamaPlatformClient,
    PlatformAiProvider,
    Quadrant,
    RequestOptions,
    RequestType,
    RoutingMode,
)

try:
    from fastapi import FastAPI, HTTPException
    from pydantic import BaseModel
except ImportError:
    raise ImportError(
        "FastAPI is required for this example. "
        "Install with: pip install fastapi uvicorn"
    )

# ── Router Setup ──

router = AiRouter(platform=PlatformAiProvider(OllamaPlatformClient(model="gemma2:2b")))


# ── FastAPI App ──

@asynccontextmanager
async def lifespan(app: FastAPI):
    await router.initialize()
    yield
    await router.close()


app = FastAPI(title="prio-router", lifespan=lifespan)


class CompleteRequest(BaseModel):
    request_type: str
    input: str
    use_llm: bool = True
    min_confidence: Optional[float] = None
    timeout_ms: Optional[int] = None


class CompleteResponse(BaseModel):
    request_id: str
    success: bool
    result: Optional[dict] = None
    provider_id: str
    was_rule_based: bool
    confidence: float
    latency_ms: float
    error: Optional[str] = None


class OverrideRequest(BaseModel):
    request_id: str
    original_quadrant: str
    override_quadrant: str
    was_llm: bool = False


class ModeRequest(BaseModel):
    mode: str


@app.post("/complete", response_model=CompleteResponse)
async def complete(req: CompleteRequest):
    try:
        request_type = RequestType(req.request_type.lower())
        options = RequestOptions(
            use_llm=req.use_llm, min_confidence=req.min_confidence, timeout_ms=req.timeout_ms
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    response = await router.complete(AiRequest(request_type, req.input, options=options))
    result = asdict(response.result) if response.result is not None else None
    return CompleteResponse(
        request_id=response.request_id,
        success=response.success,
        result=result,
        provider_id=response.metadata.provider_id,
        was_rule_based=response.metadata.was_rule_based,
        confidence=response.metadata.confidence_score,
        latency_ms=response.metadata.latency_ms,
        error=response.error,
    )


@app.post("/override")
async def override(req: OverrideRequest):
    record = router.record_override(
        req.request_id,
        Quadrant.from_label(req.original_quadrant),
        req.override_quadrant,
        was_llm=req.was_llm,
    )
    return {"override_quadrant": record.override_quadrant.name, "accuracy": router.calculate_accuracy()}


@app.post("/mode")
async def mode(req: ModeRequest):
    try:
        routing_mode = RoutingMode[req.mode.upper()]
    except KeyError:
        raise HTTPException(status_code=422, detail=f"Unknown routing mode: {req.mode}")
    router.set_routing_mode(routing_mode)
    return {"routing_mode": routing_mode.name}


@app.get("/stats")
async def stats():
    return router.get_stats()


@app.get("/providers")
async def providers():
    return router.get_provider_status()


@app.get("/health")
async def health():
    return {"status": "ok", "routing_mode": router.routing_mode.value.name}
