from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .db import create_tables
from .routers import admin, posts


logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)

cors_kwargs = {
    "allow_credentials": True,
    "allow_methods": ["*"],
    "allow_headers": ["*"],
}
origins = [o.strip() for o in settings.backend_cors_origins.split(",") if o.strip()]
if settings.backend_cors_regex:
    app.add_middleware(CORSMiddleware, allow_origin_regex=settings.backend_cors_regex, **cors_kwargs)
else:
    app.add_middleware(CORSMiddleware, allow_origins=origins, **cors_kwargs)

app.include_router(posts.router)
app.include_router(admin.router)


@app.on_event("startup")
def on_startup():
    create_tables()
    logger.info("%s ready (cache %s)", settings.app_name, "on" if settings.redis_url else "off")


@app.get("/")
def root():
    return {"service": settings.app_name, "status": "ok"}
