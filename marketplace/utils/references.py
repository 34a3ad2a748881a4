# marketplace/utils/references.py
import secrets
import string
import time

_UPPER = string.ascii_uppercase + string.digits
_LOWER = string.ascii_lowercase + string.digits


def _now_ms() -> int:
    return int(time.time() * 1000)


def _random(alphabet: str, length: int) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_order_number() -> str:
    # ORD-1718000000000-K3F9Q
    return f"ORD-{_now_ms()}-{_random(_UPPER, 5)}"


def generate_payment_reference(prefix: str = "PAY") -> str:
    return f"{prefix}_{_now_ms()}_{_random(_LOWER, 9)}"


def checkout_reference(order_id: str) -> str:
    return f"ORDER_{order_id}_{_now_ms()}"


def ledger_reference(order_id: str) -> str:
    # deterministyczny klucz idempotencji dla wpisow w portfelu
    return f"ORDER_{order_id}"
