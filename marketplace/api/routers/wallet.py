# marketplace/api/routers/wallet.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.data.database import get_db
from marketplace.domain.schemas import WalletOut
from marketplace.services.wallet_service import WalletService

router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.get("", response_model=WalletOut)
def get_wallet(
    user_id: str = Query(...),
    limit: int = Query(50, gt=0, le=200),
    db: Session = Depends(get_db),
):
    return WalletService(db).get_wallet(user_id, limit)
