from fastapi import Request, HTTPException

BUYER_HEADER = "X-Buyer-Id"
MAX_BUYER_ID_LENGTH = 128

def get_buyer_id(request: Request) -> str:
    # Identifiant d'appareil envoyé par l'application mobile
    buyer_id = (request.headers.get(BUYER_HEADER) or "").strip()
    if not buyer_id:
        raise HTTPException(status_code=401, detail="Acheteur non identifié")
    if len(buyer_id) > MAX_BUYER_ID_LENGTH:
        raise HTTPException(status_code=400, detail="Identifiant acheteur invalide")
    return buyer_id

def require_buyer(request: Request) -> str:
    return get_buyer_id(request)
