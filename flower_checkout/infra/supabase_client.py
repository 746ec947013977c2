"""
Clients Supabase partagés, créés à la première utilisation.
- anon: lectures publiques (fleuristes, codes promo, santé)
- service-role (bypass RLS): écritures serveur (commandes du webhook, panier, usage promo)
"""
from typing import Dict
from supabase import create_client, Client
from flower_checkout.config import SUPABASE_URL, SUPABASE_ANON, SUPABASE_SERVICE_KEY

_clients: Dict[str, Client] = {}

def _client(role: str, key: str, env_name: str) -> Client:
    if role not in _clients:
        if not SUPABASE_URL or not key:
            raise RuntimeError(f"SUPABASE_URL ou {env_name} manquant pour le client Supabase '{role}'")
        _clients[role] = create_client(SUPABASE_URL, key)
    return _clients[role]

def get_supabase() -> Client:
    return _client("anon", SUPABASE_ANON, "SUPABASE_ANON_KEY")

def get_service_supabase() -> Client:
    return _client("service", SUPABASE_SERVICE_KEY, "SUPABASE_SERVICE_KEY")
