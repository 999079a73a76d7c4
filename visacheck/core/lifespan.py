import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from visacheck.ai.factory import build_ai_client
from visacheck.core.config import settings
from visacheck.core.evaluation_store import get_evaluation_store
from visacheck.core.visa_catalog import get_visa_catalog

logger = logging.getLogger(__name__)

PURGE_INTERVAL_S = 3600


@asynccontextmanager
async def lifespan(app):
    catalog = get_visa_catalog()
    logger.info("visa_catalog_loaded visa_types=%s", len(catalog.visa_types))

    app.state.oracle = build_ai_client() if settings.oracle_enabled else None
    logger.info("oracle_configured enabled=%s model=%s", app.state.oracle is not None, settings.ai_model)

    store = get_evaluation_store()
    store.purge_expired()

    stop_event = asyncio.Event()

    async def periodic_purge() -> None:
        while not stop_event.is_set():
            try:
                store.purge_expired()
            except Exception as exc:  # pragma: no cover
                logger.warning("evaluation_retention_purge_failed: %s", exc)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=PURGE_INTERVAL_S)
            except asyncio.TimeoutError:
                continue

    purge_task = asyncio.create_task(periodic_purge())
    yield
    stop_event.set()
    if not purge_task.done():
        purge_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await purge_task

    oracle = getattr(app.state, "oracle", None)
    if oracle is not None and hasattr(oracle, "aclose"):
        await oracle.aclose()
    app.state.oracle = None
