"""HTTP surface for provider callbacks plus the optional Kafka consumer."""

import asyncio
import json
from contextlib import asynccontextmanager
from uuid import uuid4

import redis
from fastapi import FastAPI, Header, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from paydispatch.common.config import settings
from paydispatch.common.db import SessionLocal
from paydispatch.common.errors import DispatchError
from paydispatch.common.lifecycle import Applied
from paydispatch.common.logging import configure_logging, logger
from paydispatch.common.metrics import metrics_response
from paydispatch.common.startup import log_startup_config
from paydispatch.common.tracing import instrument_app, setup_tracing
from paydispatch.services.dispatcher.schemas import DispatchResponse
from paydispatch.services.dispatcher.service import DispatcherService, build_pipeline

configure_logging()
setup_tracing(settings.service_name)
log_startup_config(
    settings.service_name,
    [
        "SERVICE_NAME",
        "POSTGRES_DSN",
        "REDIS_URL",
        "KAFKA_BOOTSTRAP_SERVERS",
        "CALLBACKS_TOPIC",
        "CONSUME_CALLBACKS",
        "EXTRACTOR",
        "ACCOUNT_ID_FIELD",
        "NOTIFY_WEBHOOK_URL",
    ],
)
rdb = redis.Redis.from_url(settings.redis_url)
service = DispatcherService(build_pipeline(SessionLocal, rdb), service_name=settings.service_name)


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Run the callback consumer with app lifecycle when enabled."""

    consumer_task = None
    if settings.consume_callbacks:
        consumer_task = asyncio.create_task(service.start_consumers())
    yield
    if consumer_task is not None:
        consumer_task.cancel()


app = FastAPI(title="Payment Callback Dispatcher", lifespan=lifespan)
instrument_app(app)


async def _read_record(request: Request) -> dict | None:
    """Accept form-encoded (IPN style) or JSON callback bodies."""

    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        form = await request.form()
        return dict(form) or None
    body = await request.body()
    if not body:
        return None
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail=f"invalid JSON body: {exc}") from exc
    if payload is not None and not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="callback body must be a JSON object")
    return payload


@app.post("/callbacks", response_model=DispatchResponse)
async def receive_callback(request: Request, x_trace_id: str | None = Header(default=None)):
    """Run one provider callback through the transaction pipeline."""

    record = await _read_record(request)
    try:
        outcome = await run_in_threadpool(service.handle_record, record, x_trace_id or str(uuid4()))
    except DispatchError as exc:
        raise HTTPException(status_code=422, detail=f"{type(exc).__name__}: {exc}") from exc
    except Exception:
        logger.exception("callback processing failed")
        raise HTTPException(status_code=500, detail="callback processing failed") from None

    if isinstance(outcome, Applied):
        return DispatchResponse(outcome=outcome.outcome, value=outcome.value)
    return DispatchResponse(outcome=outcome.outcome, reason=outcome.reason.value, message=outcome.message)


@app.get("/health")
def health():
    """Container health probe endpoint."""

    return {"ok": True}


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()
