#!/usr/bin/env python3
import logging
import os
import threading

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from db.score_store import ScoreStore
from engine.core import load_config_or_default
from engine.paths import LOG_DIR, build_service_paths, ensure_dir
from scores.enrichment import enrich_activity
from scores.resolver import build_score_resolver

APP_NAME = "Somi Scores API"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s %(message)s"

_RESOLVER = None
_RESOLVER_LOCK = threading.Lock()


class EnrichActivityRequest(BaseModel):
    activity: dict


def _writes_to(handler, log_path):
    filename = getattr(handler, "baseFilename", None)
    return filename is not None and os.path.abspath(filename) == os.path.abspath(log_path)


def _setup_logging(log_dir):
    ensure_dir(log_dir)
    log_path = os.path.join(log_dir, "scores.log")
    root = logging.getLogger("")
    root.setLevel(logging.INFO)
    if any(_writes_to(handler, log_path) for handler in root.handlers):
        return
    file_handler = logging.FileHandler(log_path)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    file_handler.setLevel(logging.INFO)
    root.addHandler(file_handler)


def get_score_resolver():
    global _RESOLVER
    if _RESOLVER is not None:
        return _RESOLVER
    with _RESOLVER_LOCK:
        if _RESOLVER is None:
            paths = build_service_paths()
            config = load_config_or_default(paths.config_path)
            _RESOLVER = build_score_resolver(config, store=ScoreStore(paths.db_path))
            logging.info("Score resolver ready sources=%s", [adapter.name for adapter in _RESOLVER.adapters])
    return _RESOLVER


app = FastAPI(
    title=APP_NAME,
    description="Resolves lesson pieces to public-domain scores and recordings.",
)


@app.on_event("startup")
async def startup():
    _setup_logging(LOG_DIR)


@app.get("/api/scores/resolve")
async def api_resolve_score(title: str = Query(""), composer: str = Query("")):
    resolver = get_score_resolver()
    try:
        report = await resolver.resolve_with_report(title, composer)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return report.to_dict()


@app.get("/api/scores/sources")
async def api_score_sources():
    resolver = get_score_resolver()
    return {"sources": resolver.breaker_snapshot()}


@app.post("/api/activities/enrich")
async def api_enrich_activity(payload: EnrichActivityRequest):
    resolver = get_score_resolver()
    try:
        activity = await enrich_activity(payload.activity, resolver)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"activity": activity}
