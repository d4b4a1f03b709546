from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from warc_parser.config import settings
from warc_parser.models import SourceRequest
from warc_parser.parsers import build_projection, build_registry
from warc_parser.pipeline import ParserPipeline
from warc_parser.storage.base import AssetStore
from warc_parser.storage.local import LocalAssetStore
from warc_parser.storage.supabase import get_supabase

logger = logging.getLogger(__name__)
app = FastAPI(title=settings.app_name)


@app.on_event("startup")
async def configure_logging():
    logging.basicConfig(level=settings.log_level)


def get_asset_store() -> AssetStore:
    if settings.asset_backend == "supabase":
        store = get_supabase()
        if store is not None:
            return store
        logger.warning("Supabase is not configured, falling back to local assets")
    return LocalAssetStore(settings.base_storage_dir)


@lru_cache
def get_pipeline() -> ParserPipeline:
    return ParserPipeline(
        asset_store=get_asset_store(),
        parser=build_registry(settings.parser_plugins),
        projection=build_projection(settings.projection_plugin),
        config=settings,
    )


async def read_source_request(request: Request) -> SourceRequest:
    """Collect source attributes from the query string and, for POST, the form body."""
    params = dict(request.query_params)
    inline_bytes = None
    if request.method == "POST":
        form = await request.form()
        value = form.get("sourcebytes")
        if isinstance(value, UploadFile):
            inline_bytes = await value.read()
        for key, item in form.items():
            if isinstance(item, str):
                params.setdefault(key, item)

    return SourceRequest(
        inline_bytes=inline_bytes,
        inline_text=params.get("sourcebytes"),
        asset_name=params.get("sourceasset", ""),
        url=params.get("sourceurl", ""),
    )


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.api_route(settings.api_path, methods=["GET", "POST"])
async def parse_archive(request: Request, pipeline: ParserPipeline = Depends(get_pipeline)):
    source_request = await read_source_request(request)
    # The pipeline does blocking I/O for the whole scan
    result = await run_in_threadpool(pipeline.run, source_request)
    return JSONResponse(result.to_dict())
