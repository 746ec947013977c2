"""
Taxonomie des erreurs du pipeline de checkout.
Chaque erreur porte un `code` stable (consommé par l'API et les clients mobiles)
en plus du message lisible.
"""


class CheckoutError(Exception):
    """Racine commune: permet un handler FastAPI unique."""

    status_code = 400

    def __init__(self, message: str, code: str = "invalid"):
        super().__init__(message)
        self.code = code


class MatchingError(CheckoutError):
    # code: not_found
    status_code = 404


class PricingError(CheckoutError):
    # codes: empty_cart, no_florist_matched
    status_code = 422


class PromoError(CheckoutError):
    """Non fatale: le prix est calculé sans remise et la raison est exposée."""

    # codes: not_found, inactive, expired, exhausted, below_minimum
    status_code = 422


class SessionError(CheckoutError):
    _STATUS_BY_CODE = {"timeout": 504, "invalid_config": 500, "invalid_amount": 422}

    def __init__(self, message: str, code: str = "provider_rejected"):
        super().__init__(message, code)
        self.status_code = self._STATUS_BY_CODE.get(code, 502)


class SettlementError(CheckoutError):
    # codes: unconfirmed (409), unknown_session (404: inconnue ou d'un autre acheteur)
    _STATUS_BY_CODE = {"unknown_session": 404}

    def __init__(self, message: str, code: str = "unconfirmed"):
        super().__init__(message, code)
        self.status_code = self._STATUS_BY_CODE.get(code, 409)
