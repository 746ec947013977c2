"""
Registre central des routers (API v1, health).
- API v1: florists, pricing, payments, settlement
- Health: health_router
"""
from fastapi import FastAPI
from flower_checkout.florists import views as florists_views
from flower_checkout.pricing import views as pricing_views
from flower_checkout.payments import views as payments_views
from flower_checkout.settlement import views as settlement_views
from flower_checkout.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    # API v1
    app.include_router(florists_views.router)
    app.include_router(pricing_views.router)
    app.include_router(payments_views.router)
    app.include_router(settlement_views.router)
    # Health & monitoring
    app.include_router(health_router)
