# marketplace/api/routers/payments.py
import json

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from marketplace.data.database import get_db
from marketplace.domain.errors import (
    GatewayUnavailableError,
    PaymentNotSuccessfulError,
    SettlementError,
)
from marketplace.domain.schemas import CheckoutIn, CheckoutOut, SettlementResult
from marketplace.services.checkout_service import CheckoutService
from marketplace.services.paystack_client import SIGNATURE_HEADER, PaystackClient, verify_webhook_signature
from marketplace.services.rate_limit_service import RateLimitService, RedisCache
from marketplace.services.settlement_service import SettlementService
from marketplace.utils.settings import VERIFY_RATE_LIMIT, VERIFY_RATE_WINDOW_SECONDS
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])

ERROR_STATUS = {
    "not_found": 404,
    "not_yet_paid": 402,
    "gateway_unavailable": 503,
    "internal": 500,
}

SETTLEMENT_EVENTS = {"charge.success", "charge.failed"}


def get_gateway() -> PaystackClient:
    return PaystackClient()


# jeden klient redis (pula polaczen) na proces
verify_cache = RedisCache()


def get_rate_limiter() -> RateLimitService:
    return RateLimitService(
        verify_cache,
        limit=VERIFY_RATE_LIMIT,
        window=VERIFY_RATE_WINDOW_SECONDS,
        namespace="verify",
    )


def _http_error(e: SettlementError) -> HTTPException:
    return HTTPException(status_code=ERROR_STATUS.get(e.kind, 500), detail=e.to_dict())


@router.post("/initialize", response_model=CheckoutOut)
def initialize_payment(
    payload: CheckoutIn,
    db: Session = Depends(get_db),
    gateway: PaystackClient = Depends(get_gateway),
):
    svc = CheckoutService(db, gateway)
    try:
        return svc.initialize_payment(payload.user_id, payload.cart_id, payload.email)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SettlementError as e:
        raise _http_error(e)


@router.get("/verify", response_model=SettlementResult)
def verify_payment(
    request: Request,
    reference: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    gateway: PaystackClient = Depends(get_gateway),
    limiter: RateLimitService = Depends(get_rate_limiter),
):
    """
    Weryfikacja po powrocie z checkoutu (redirect). Wielokrotne
    odswiezenie strony zawsze zwraca ten sam wynik dla rozliczonego zamowienia.
    """
    client = request.client.host if request.client else "unknown"
    limit = limiter.hit(client)
    if not limit.allowed:
        raise HTTPException(
            status_code=429,
            detail={"kind": "rate_limited", "message": "Too many verification attempts"},
            headers={"Retry-After": str(limit.reset_in)},
        )

    svc = SettlementService(db, gateway)
    try:
        result = svc.settle_payment(reference)
    except SettlementError as e:
        raise _http_error(e)
    except Exception:
        logger.exception(f"Payment verification failed for {reference}")
        raise HTTPException(
            status_code=500,
            detail={"kind": "internal", "message": "Payment verification failed"},
        )

    if not result.success:
        raise _http_error(
            PaymentNotSuccessfulError(f"Payment status: {result.status}", reference, result.status)
        )

    return result


@router.post("/webhook")
async def paystack_webhook(
    request: Request,
    db: Session = Depends(get_db),
    gateway: PaystackClient = Depends(get_gateway),
):
    """
    Webhook bramki. Podpis sprawdzany przed jakimkolwiek rozliczeniem.
    Zamowienie juz rozliczone to nadal 200, inaczej bramka ponawia dostarczenie.
    """
    body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)

    if not signature:
        logger.error("Webhook without signature")
        raise HTTPException(status_code=400, detail="Missing signature")

    if not verify_webhook_signature(body, signature, gateway.secret_key):
        logger.error("Webhook with invalid signature")
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        event = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON")

    event_type = str(event.get("event") or "")
    data = event.get("data") or {}
    reference = data.get("reference")
    logger.info(f"Webhook event {event_type} reference={reference}")

    if event_type in SETTLEMENT_EVENTS:
        if not reference:
            logger.warning(f"Webhook {event_type} without reference, ignoring")
            return {"received": True}

        svc = SettlementService(db, gateway)
        try:
            result = await run_in_threadpool(svc.settle_payment, reference)
            logger.info(f"Webhook settlement {reference}: {result.status}")
        except GatewayUnavailableError as e:
            # 503 - bramka ponowi webhook pozniej
            raise _http_error(e)
        except SettlementError as e:
            # nieznana referencja / odrzucenie - potwierdzamy, zeby zatrzymac redelivery
            logger.error(f"Webhook settlement {reference} failed: {e.kind} {e.message}")
    elif event_type.startswith("transfer."):
        logger.info(f"Transfer event {event_type} for {reference}")
    else:
        logger.info(f"Unhandled webhook event: {event_type}")

    return {"received": True}
