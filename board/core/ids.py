import secrets
import string
import uuid

_PROMO_ALPHABET = string.ascii_uppercase + string.digits


def gen_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def gen_promo_code(prefix: str = "PREMIUM_", length: int = 8) -> str:
    # e.g. PREMIUM_X7K2Q1ZZ
    return prefix + "".join(secrets.choice(_PROMO_ALPHABET) for _ in range(length))
