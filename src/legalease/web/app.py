from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from legalease.bootstrap import build_app
from legalease.core.errors import InvalidRequestError
from legalease.core.outcomes import Failure, FailureKind
from legalease.services.cost_estimator import estimate_cost


class ChatRequest(BaseModel):
    # Optional so a missing field reaches the handler and becomes a 400
    message: Optional[str] = None
    api_key: Optional[str] = None


class DocumentRequest(BaseModel):
    content: Optional[str] = None
    filename: Optional[str] = None
    api_key: Optional[str] = None


class CostRequest(BaseModel):
    case_type: Optional[str] = None
    location: Optional[str] = None
    complexity: Optional[str] = None
    urgency: Optional[str] = None
    experience: Optional[str] = None
    factors: List[str] = []


_FAILURE_STATUS = {
    FailureKind.INVALID_CREDENTIAL: 400,
    FailureKind.AUTH_FAILED: 403,
    FailureKind.RATE_LIMITED: 429,
    FailureKind.UNAVAILABLE: 404,
    FailureKind.NETWORK_ERROR: 502,
}


def failure_status(failure: Failure) -> int:
    if failure.kind is FailureKind.TRANSIENT:
        # Mirror the upstream status when it is a real error code
        return failure.status if failure.status and failure.status >= 400 else 502
    return _FAILURE_STATUS[failure.kind]


def _failure_response(failure: Failure) -> JSONResponse:
    return JSONResponse(failure.to_dict(), status_code=failure_status(failure))


def create_app(config_path: Path, *, provider: Optional[str] = None) -> FastAPI:
    ctx = build_app(Path(config_path), provider=provider)
    cfg = ctx["cfg"]
    assistant = ctx["assistant"]
    policy = ctx["orchestrator"].policy

    transport = ctx["transport"]

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        transport.close()

    app = FastAPI(title="LegalEase", lifespan=lifespan)
    app.state.cfg = cfg
    app.state.transport = transport
    app.state.assistant = assistant

    # Sync endpoints: FastAPI runs them in its threadpool, so one request's
    # backoff sleep never blocks another request.

    @app.get("/api/config")
    def api_config():
        return JSONResponse(
            {
                "provider": cfg["provider"]["name"],
                "models": list(policy.models),
                "max_retries": policy.max_retries,
                "base_delay_ms": policy.base_delay_ms,
                "max_document_chars": assistant.max_document_chars,
            }
        )

    @app.post("/api/chat")
    def api_chat(req: ChatRequest):
        try:
            result = assistant.ask(req.message, api_key=req.api_key)
        except InvalidRequestError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if isinstance(result, Failure):
            return _failure_response(result)
        return JSONResponse(result.to_dict())

    @app.post("/api/analyze-document")
    def api_analyze_document(req: DocumentRequest):
        try:
            result = assistant.analyze_document(req.content, api_key=req.api_key)
        except InvalidRequestError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if isinstance(result, Failure):
            return _failure_response(result)
        analysis = result.to_dict()
        if req.filename:
            analysis["filename"] = req.filename
        return JSONResponse({"analysis": analysis})

    @app.post("/api/estimate-cost")
    def api_estimate_cost(req: CostRequest):
        try:
            estimate = estimate_cost(
                req.case_type, req.location, req.complexity,
                urgency=req.urgency, experience=req.experience, factors=req.factors,
            )
        except InvalidRequestError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return JSONResponse({"estimate": estimate.to_dict()})

    return app


def run(
    *,
    config: Path,
    host: str = "127.0.0.1",
    port: int = 8000,
    provider: Optional[str] = None,
) -> None:
    import uvicorn

    app = create_app(config, provider=provider)
    uvicorn.run(app, host=host, port=port)
