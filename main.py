# main.py
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

import settings
from database import Base, engine
from errors import register_exception_handlers
from logging_config import setup_logging
from routers.v1 import api_v1

setup_logging()
logger = logging.getLogger("foundry.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # dev convenience; production schema comes from alembic
    if settings.DB_AUTO_CREATE:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables ensured")
    yield


# ------------------------------
# App bootstrap
# ------------------------------
app = FastAPI(title="Foundry Trial API", version="1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@app.middleware("http")
async def log_requests(request: Request, call_next):
    request.state.client_ip = client_ip(request)
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(
        "%s %s %s %.1fms ip=%s",
        request.method, request.url.path, response.status_code, elapsed_ms, request.state.client_ip,
    )
    return response


app.include_router(api_v1, prefix="/api")


@app.get("/api/ip")
def whoami(request: Request):
    return {"ip": client_ip(request)}


@app.get("/health", include_in_schema=False)
def health():
    return {"status": "ok"}
