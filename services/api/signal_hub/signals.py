import logging
from datetime import datetime
from sqlalchemy import select
from sqlalchemy.orm import Session

from .accounts import get as get_account
from .db import transaction, utcnow, as_utc
from .errors import NotFoundError, ValidationError
from .models import Account, Signal

logger = logging.getLogger(__name__)

ACTIONS = ("BUY", "SELL")
STATUSES = ("pending", "open", "closed")

def get(db: Session, signal_id: int) -> Signal:
    sig = db.get(Signal, signal_id)
    if not sig:
        raise NotFoundError(f"Signal {signal_id} not found")
    return sig

def create(db: Session, account_id: str, symbol: str, action: str, volume: float,
           entry_price: float | None = None, stop_loss: float | None = None,
           take_profit: float | None = None) -> Signal:
    action = (action or "").strip().upper()
    if action not in ACTIONS:
        raise ValidationError(f"action must be BUY or SELL, got {action or None!r}")
    if volume is None or volume <= 0:
        raise ValidationError("volume must be greater than 0")
    if not symbol:
        raise ValidationError("symbol is required")
    with transaction(db):
        get_account(db, account_id)
        sig = Signal(account_id=account_id, symbol=symbol.upper(), action=action, volume=volume,
                     entry_price=entry_price, stop_loss=stop_loss, take_profit=take_profit,
                     status="open", open_time=utcnow())
        db.add(sig)
    db.refresh(sig)
    logger.info("signal %s: %s %s %s from %s", sig.id, action, volume, sig.symbol, account_id)
    return sig

def duration_minutes(open_time: datetime, close_time: datetime) -> int:
    return int((close_time - open_time).total_seconds() // 60)

def update(db: Session, signal_id: int, current_price: float | None = None,
           profit_loss: float | None = None, status: str | None = None,
           close_time: datetime | None = None) -> Signal:
    """Partial update of a live signal.

    current_price and profit_loss are written on every call, so omitting them
    clears the stored values. status and close_time are only touched when given;
    a close_time closes the signal and fixes its duration. Closed signals stay
    closed.
    """
    if status is not None and status not in STATUSES:
        raise ValidationError(f"status must be one of {', '.join(STATUSES)}")
    close_time = as_utc(close_time)
    if close_time is not None:
        if status not in (None, "closed"):
            raise ValidationError("a signal with close_time must have status 'closed'")
        status = "closed"
    with transaction(db):
        sig = get(db, signal_id)
        if sig.close_time is not None and status not in (None, "closed"):
            raise ValidationError(f"signal {signal_id} is closed and cannot be set to {status!r}")
        sig.current_price = current_price
        sig.profit_loss = profit_loss
        if status:
            sig.status = status
        if close_time is not None:
            if close_time < sig.open_time:
                raise ValidationError("close_time is before open_time")
            sig.close_time = close_time
            sig.duration_minutes = duration_minutes(sig.open_time, close_time)
        sig.updated_at = utcnow()
    db.refresh(sig)
    return sig

def top_performing(db: Session, limit: int = 20, now: datetime | None = None) -> list[dict]:
    if limit < 1:
        raise ValidationError("limit must be at least 1")
    now = now or utcnow()
    q = (
        select(Signal, Account.account_name, Account.performance_score)
        .join(Account, Signal.account_id == Account.account_id)
        .where(Account.is_active.is_(True), Signal.status.in_(("open", "closed")))
        .order_by(Account.performance_score.desc(), Signal.profit_loss.desc().nulls_last(), Signal.created_at.desc())
        .limit(limit)
    )
    out = []
    for sig, account_name, score in db.execute(q).all():
        if sig.status == "open":
            current = duration_minutes(sig.open_time, now)
        else:
            current = sig.duration_minutes
        out.append({"signal": sig, "account_name": account_name,
                    "performance_score": score, "current_duration": current})
    return out

def pending(db: Session) -> list[Signal]:
    q = select(Signal).where(Signal.status == "pending").order_by(Signal.created_at)
    return db.execute(q).scalars().all()
