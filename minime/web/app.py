"""FastAPI app exposing minime's vector memory and chat over HTTP."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from minime.config import CONFIG
from minime.core.vector_store import DuplicateRecordError
from minime.log_setup import setup_logging
from minime.runtime import create_runtime

DEFAULT_HOST = CONFIG.server.host
DEFAULT_PORT = CONFIG.server.port
API_KEY = CONFIG.server.api_key

setup_logging()
logger = logging.getLogger("minime.web")

_runtime = create_runtime()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Remote init runs in the background so a slow or absent Chroma never blocks startup.
    init_task = asyncio.create_task(_runtime.memory.initialize())
    try:
        yield
    finally:
        if not init_task.done():
            init_task.cancel()


app = FastAPI(title="minime memory", version="0.1.0", lifespan=lifespan)


class HealthResponse(BaseModel):
    ok: bool
    backend: str
    llm: bool


class VectorAddRequest(BaseModel):
    """Payload for storing a document."""

    id: Optional[str] = Field(default=None, description="Record id; assigned by the store when omitted")
    text: Optional[str] = Field(default=None, description="Document text")
    meta: Optional[Dict[str, Any]] = Field(default=None, description="Arbitrary metadata")


class VectorQueryRequest(BaseModel):
    """Query by raw embedding, or by text embedded server-side."""

    text: Optional[str] = None
    embedding: Optional[List[float]] = None
    k: Optional[int] = Field(default=None, description="Result count; defaults to the configured top-k")


class ChatRequest(BaseModel):
    message: Optional[str] = None


async def require_api_key(
    x_api_key: Optional[str] = Header(default=None),
    api_key: Optional[str] = Query(default=None),
) -> None:
    """Reject requests without the root API key; open when none is configured."""

    if not API_KEY:
        return
    supplied = x_api_key or api_key
    if not supplied or supplied != API_KEY:
        raise HTTPException(status_code=401, detail="missing or invalid API key")


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(
        ok=True,
        backend=_runtime.memory.backend_kind.value,
        llm=_runtime.llm_client.enabled,
    )


@app.post("/api/vector")
async def add_vector(req: VectorAddRequest, _: None = Depends(require_api_key)) -> Dict[str, Any]:
    if not req.text:
        raise HTTPException(status_code=400, detail="text required")
    try:
        item = await _runtime.memory.add_vector(req.text, id=req.id, meta=req.meta)
    except DuplicateRecordError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception:
        logger.exception("addVector failed")
        raise HTTPException(status_code=500, detail="internal error")
    return {"ok": True, "item": item.to_dict()}


@app.post("/api/vector/query")
async def query_vectors(req: VectorQueryRequest, _: None = Depends(require_api_key)) -> Dict[str, Any]:
    if req.embedding is None and not req.text:
        raise HTTPException(status_code=400, detail="text or embedding required")
    try:
        if req.embedding is not None:
            results = await _runtime.memory.query_vectors(req.embedding, req.k)
        else:
            results = await _runtime.memory.query_text(req.text, req.k)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception:
        logger.exception("queryVectors failed")
        raise HTTPException(status_code=500, detail="internal error")
    return {"ok": True, "results": [result.to_dict() for result in results]}


@app.get("/api/vector/list")
async def list_vectors(_: None = Depends(require_api_key)) -> Dict[str, Any]:
    try:
        records = await _runtime.memory.list_vectors()
    except Exception:
        logger.exception("list vectors failed")
        raise HTTPException(status_code=500, detail="internal error")
    return {"ok": True, "items": [record.to_dict() for record in records]}


@app.post("/api/vector/clear")
async def clear_vectors(_: None = Depends(require_api_key)) -> Dict[str, Any]:
    try:
        ok = await _runtime.memory.clear_vectors()
    except Exception:
        logger.exception("clear vectors failed")
        raise HTTPException(status_code=500, detail="internal error")
    return {"ok": ok}


@app.post("/api/chat")
async def chat(req: ChatRequest, _: None = Depends(require_api_key)) -> Dict[str, Any]:
    if not req.message or not req.message.strip():
        raise HTTPException(status_code=400, detail="message required")
    try:
        result = await _runtime.chat.reply(req.message)
    except Exception as exc:
        logger.exception("chat handler failed")
        raise HTTPException(status_code=500, detail=f"internal error: {exc}")
    return {
        "reply": result.reply,
        "stored": result.stored.to_dict() if result.stored is not None else None,
    }


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
