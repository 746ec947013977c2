"""
Lifespan FastAPI du service de checkout.

Démarrage: rate limiting du checkout (FastAPILimiter sur Redis).
- DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS=1: pas d'initialisation
- USE_FAKE_REDIS_FOR_TESTS=1: fakeredis en mémoire
- RATE_LIMIT_REDIS_URL: Redis réel (défaut redis://127.0.0.1:6379/0)
- Échec d'init: fallback local si LOCAL_RATE_LIMIT_FALLBACK=1, sinon désactivé.

Arrêt: fermeture du client Redis du limiter et bilan du watcher de règlement.
"""
import os
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi_limiter import FastAPILimiter

from flower_checkout.settlement import service as settlement_service

logger = logging.getLogger("uvicorn.error")

def _limiter_redis():
    if os.getenv("USE_FAKE_REDIS_FOR_TESTS") == "1":
        from fakeredis.aioredis import FakeRedis
        return FakeRedis(decode_responses=True)
    import redis.asyncio as aioredis
    url = os.getenv("RATE_LIMIT_REDIS_URL", "redis://127.0.0.1:6379/0")
    return aioredis.from_url(url, encoding="utf-8", decode_responses=True)

async def _start_rate_limit() -> bool:
    if os.getenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS") == "1":
        logger.info("checkout rate limit: disabled (DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS)")
        return False
    try:
        await FastAPILimiter.init(_limiter_redis())
    except Exception as e:
        fallback = os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1"
        logger.warning("checkout rate limit: redis init failed (%s), %s", e, "local fallback" if fallback else "disabled")
        return fallback
    logger.info("checkout rate limit: redis")
    return True

async def _stop_rate_limit() -> None:
    if getattr(FastAPILimiter, "redis", None) is None:
        return
    try:
        await FastAPILimiter.close()
    except Exception as e:
        logger.warning("checkout rate limit: close failed (%s)", e)
    FastAPILimiter.redis = None

@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.rate_limit_enabled = await _start_rate_limit()
    try:
        yield
    finally:
        await _stop_rate_limit()
        watcher = settlement_service.get_watcher()
        logger.info(
            "settlement watcher: completed_orders=%s tracked_sessions=%s",
            watcher.completed_orders,
            watcher.tracked_count,
        )
