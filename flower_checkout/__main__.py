"""
Lance l'API de checkout avec uvicorn: `python -m flower_checkout` ou `flower-checkout`.

HOST / PORT: adresse d'écoute (0.0.0.0:8000)
LOG_LEVEL: niveau de logs uvicorn ("info")
UVICORN_RELOAD=1: rechargement auto (dev local)
"""
import os
import uvicorn

def main() -> None:
    reload_flag = os.environ.get("UVICORN_RELOAD", "").lower() in ("1", "true", "yes")
    uvicorn.run(
        "flower_checkout.asgi:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", 8000)),
        reload=reload_flag,
        log_level=os.environ.get("LOG_LEVEL", "info"),
        # Stripe et l'app mobile passent par le proxy: en-têtes X-Forwarded-* acceptés
        proxy_headers=True,
    )

if __name__ == "__main__":
    main()
