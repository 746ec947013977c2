from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from flower_checkout.health import service as health_service
from flower_checkout.settlement import service as settlement_service
from flower_checkout.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root(request: Request):
    watcher = settlement_service.get_watcher()
    return {
        "ok": True,
        "completed_orders": watcher.completed_orders,
        "tracked_sessions": watcher.tracked_count,
        "rate_limit": rate_limit_health_info(request),
    }

@router.get("/supabase")
def health_supabase():
    return JSONResponse(health_service.health_supabase_info())
