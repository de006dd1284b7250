import base64
import hashlib
import hmac
import secrets

from pydantic import SecretStr


def secret_matches(candidate: str | None, secret: SecretStr) -> bool:
    if not candidate:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), secret.get_secret_value().encode("utf-8"))


class OperatorTokens:
    """
    Session-scoped operator authorization.

    A websocket session proves the shared secret once and receives a token;
    only the token digest is kept, so a leaked registry does not leak tokens.
    """

    def __init__(self, secret: SecretStr):
        self._secret = secret
        self._digests: set[str] = set()

    def _digest(self, token: str) -> str:
        salted = (token + self._secret.get_secret_value()).encode("utf-8")
        return base64.b64encode(hashlib.sha256(salted).digest()).decode("utf-8")

    def issue(self, candidate_secret: str | None) -> str | None:
        if not secret_matches(candidate_secret, self._secret):
            return None
        token = f"op_{secrets.token_urlsafe(24)}"
        self._digests.add(self._digest(token))
        return token

    def is_valid(self, token: str | None) -> bool:
        return bool(token) and self._digest(token) in self._digests

    def revoke(self, token: str | None) -> None:
        if token:
            self._digests.discard(self._digest(token))
