# flower_checkout.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale du pipeline de checkout.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe, géocodage)
- Expose les règles métier réglables: politique de matching, barème de livraison,
  jeux de moyens de paiement, attente de règlement
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _env_flag(name: str, default: str = "false") -> bool:
    return _clean_env(os.getenv(name, default)).lower() in ("1", "true", "yes", "on")

def _env_float(name: str, default: str) -> float:
    raw = _clean_env(os.getenv(name) or default)
    try:
        return float(raw)
    except ValueError:
        return float(default)

def _env_list(name: str, default: str, sep: str = ",") -> list:
    return [p.strip() for p in (os.getenv(name) or default).split(sep) if p.strip()]

# Supabase: URL et clés (anon/service)
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# CORS / hôtes
CORS_ORIGINS = _env_list("CORS_ORIGINS", "*")
ALLOWED_HOSTS = _env_list("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver")

BASE_URL = _clean_env(os.getenv("BASE_URL") or "http://localhost:8000").rstrip("/")

# Stripe: clés, devise, locale, moyens de paiement
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")
STRIPE_CURRENCY = _clean_env(os.getenv("STRIPE_CURRENCY") or "sek").lower()
STRIPE_LOCALE = _clean_env(os.getenv("STRIPE_LOCALE") or "sv")
STRIPE_PRODUCT_NAME = _clean_env(os.getenv("STRIPE_PRODUCT_NAME") or "Blomsterbeställning")
STRIPE_SHIPPING_COUNTRIES = [c.upper() for c in _env_list("STRIPE_SHIPPING_COUNTRIES", "SE")]
STRIPE_TIMEOUT_SECONDS = _env_float("STRIPE_TIMEOUT_SECONDS", "20")

# Jeux de moyens de paiement, du préféré au repli: "klarna,card;card"
STRIPE_PAYMENT_METHOD_SETS = [
    [m.strip() for m in chunk.split(",") if m.strip()]
    for chunk in _env_list("STRIPE_PAYMENT_METHOD_SETS", "klarna,card;card", sep=";")
]

# Pages de succès/annulation du checkout (Stripe remplace {CHECKOUT_SESSION_ID})
CHECKOUT_SUCCESS_PATH = os.getenv("CHECKOUT_SUCCESS_PATH", "/checkout/success")
CHECKOUT_CANCEL_PATH = os.getenv("CHECKOUT_CANCEL_PATH", "/checkout/cancel")

# Emails factices à ne jamais transmettre à Stripe (Klarna les refuse)
PLACEHOLDER_EMAIL_DOMAINS = [d.lower() for d in _env_list("PLACEHOLDER_EMAIL_DOMAINS", "daya.local")]

# Matching fleuriste
MATCH_ALLOW_OUT_OF_RADIUS = _env_flag("MATCH_ALLOW_OUT_OF_RADIUS", "true")
MATCH_DEFAULT_DISTANCE_KM = _env_float("MATCH_DEFAULT_DISTANCE_KM", "5")

# Frais de livraison: linéaire par défaut, par paliers si DELIVERY_FEE_TIERS="5:120,10:160"
DELIVERY_BASE_FEE = _clean_env(os.getenv("DELIVERY_BASE_FEE") or "120")
DELIVERY_INCLUDED_KM = _clean_env(os.getenv("DELIVERY_INCLUDED_KM") or "5")
DELIVERY_PER_KM_FEE = _clean_env(os.getenv("DELIVERY_PER_KM_FEE") or "15")
DELIVERY_FEE_TIERS = _clean_env(os.getenv("DELIVERY_FEE_TIERS") or "")

# Attente du règlement (webhook)
SETTLEMENT_POLL_INTERVAL = _env_float("SETTLEMENT_POLL_INTERVAL", "2")
SETTLEMENT_TIMEOUT_SECONDS = _env_float("SETTLEMENT_TIMEOUT_SECONDS", "900")
# Sessions suivies en mémoire: durée de rétention (s) et plafond
SETTLEMENT_RETENTION_SECONDS = _env_float("SETTLEMENT_RETENTION_SECONDS", "86400")
SETTLEMENT_MAX_TRACKED = int(_env_float("SETTLEMENT_MAX_TRACKED", "10000"))

# Géocodage (OpenStreetMap Nominatim)
GEOCODER_URL = _clean_env(os.getenv("GEOCODER_URL") or "https://nominatim.openstreetmap.org/search")
GEOCODER_USER_AGENT = _clean_env(os.getenv("GEOCODER_USER_AGENT") or "flower-checkout/1.0")
GEOCODER_TIMEOUT = _env_float("GEOCODER_TIMEOUT", "10")
