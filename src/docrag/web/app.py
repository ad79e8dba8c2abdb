"""FastAPI application exposing retrieval as an HTTP tool."""

from __future__ import annotations

import asyncio
import logging
import threading
from functools import lru_cache
from pathlib import Path
from typing import Any, List

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from docrag.config import AppConfig
from docrag.embedding.encoder import EmbeddingConfig, EmbeddingModel, EmbeddingProvider
from docrag.service import RetrievalService

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="docrag", version="0.1.0")


class RetrievePayload(BaseModel):
    query: str
    docs: Path | None = None
    db: Path | None = None


class SearchPayload(RetrievePayload):
    top_k: int = 3


class RefreshPayload(BaseModel):
    directory: Path | None = None
    db: Path | None = None


class SearchHit(BaseModel):
    path: str
    file_name: str
    chunk_index: int
    score: float
    text: str


@lru_cache(maxsize=4)
def _get_embedder(model_name: str) -> EmbeddingProvider:
    return EmbeddingModel(EmbeddingConfig(model_name=model_name))


def _build_config(docs: Path | None = None, db: Path | None = None) -> AppConfig:
    defaults = AppConfig()
    return AppConfig(
        db_path=db if db is not None else defaults.db_path,
        docs_dir=docs if docs is not None else defaults.docs_dir,
    )


_checked_indexes: set[tuple[Path, Path]] = set()
_checked_lock = threading.Lock()


def _index_key(config: AppConfig) -> tuple[Path, Path]:
    return config.docs_dir.resolve(), config.resolve_db_path(Path.cwd()).resolve()


def _open_service(config: AppConfig) -> RetrievalService:
    with _checked_lock:
        checked = _index_key(config) in _checked_indexes
    return RetrievalService(
        config, embedder=_get_embedder(config.model_name), index_checked=checked
    )


def _remember_checked(config: AppConfig, service: RetrievalService) -> None:
    if service.index_checked:
        with _checked_lock:
            _checked_indexes.add(_index_key(config))


def _forget_checked(config: AppConfig) -> None:
    db_path = _index_key(config)[1]
    with _checked_lock:
        _checked_indexes.difference_update(
            {key for key in _checked_indexes if key[1] == db_path}
        )


def _retrieve(config: AppConfig, query: str) -> str:
    with _open_service(config) as service:
        result = service.retrieve(query)
        _remember_checked(config, service)
    return result


def _search(config: AppConfig, query: str, top_k: int) -> List[SearchHit]:
    with _open_service(config) as service:
        results = service.search(query, top_k=top_k)
        _remember_checked(config, service)
    return [
        SearchHit(
            path=str(result.path),
            file_name=result.file_name,
            chunk_index=result.chunk_index,
            score=result.score,
            text=result.text,
        )
        for result in results
    ]


def _refresh(config: AppConfig, directory: Path | None) -> bool:
    # A rebuild clears the store, so the next read must refresh the docs again
    _forget_checked(config)
    with _open_service(config) as service:
        return service.refresh_index(directory)


def _stats(config: AppConfig) -> dict[str, int]:
    with _open_service(config) as service:
        return service.stats()


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@app.post("/retrieve")
async def retrieve(payload: RetrievePayload) -> dict[str, str]:
    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Empty query")

    config = _build_config(payload.docs, payload.db)
    result = await asyncio.to_thread(_retrieve, config, query)
    return {"result": result}


@app.post("/search")
async def search_documents(payload: SearchPayload) -> dict[str, List[SearchHit]]:
    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Empty query")

    top_k = max(1, min(payload.top_k, 50))
    config = _build_config(payload.docs, payload.db)
    try:
        results = await asyncio.to_thread(_search, config, query, top_k)
    except Exception as exc:
        LOGGER.exception("Search failed: %s", exc)
        raise HTTPException(status_code=503, detail="Vector search unavailable") from exc
    return {"results": results}


@app.post("/refresh")
async def refresh_index(payload: RefreshPayload) -> dict[str, Any]:
    config = _build_config(db=payload.db)
    ok = await asyncio.to_thread(_refresh, config, payload.directory)
    if not ok:
        raise HTTPException(status_code=500, detail="Index rebuild failed")
    return {"status": "ok"}


@app.get("/stats")
async def index_stats(db: Path | None = None) -> dict[str, Any]:
    config = _build_config(db=db)
    if not config.resolve_db_path(Path.cwd()).exists():
        return {"stats": {"chunk_count": 0, "file_count": 0}}
    return {"stats": await asyncio.to_thread(_stats, config)}
