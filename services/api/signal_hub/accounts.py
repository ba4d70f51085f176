import logging
from datetime import datetime, timedelta
from sqlalchemy import select, func, and_
from sqlalchemy.orm import Session

from .db import transaction, utcnow
from .errors import NotFoundError, ValidationError
from .models import Account, Signal
from .scoring import performance_score

logger = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(hours=24)

STAT_FIELDS = ("balance", "equity", "profit_loss", "win_rate", "total_trades", "winning_trades")

def get(db: Session, account_id: str) -> Account:
    acc = db.execute(select(Account).where(Account.account_id == account_id)).scalars().first()
    if not acc:
        raise NotFoundError(f"Account {account_id} not found")
    return acc

def register(db: Session, account_id: str, account_name: str, broker: str | None = None) -> Account:
    """Create the account or overwrite its name and broker; stats are kept."""
    if not account_id:
        raise ValidationError("account_id is required")
    if not account_name:
        raise ValidationError("account_name is required")
    with transaction(db):
        acc = db.execute(select(Account).where(Account.account_id == account_id)).scalars().first()
        if acc is None:
            acc = Account(account_id=account_id)
            db.add(acc)
        acc.account_name = account_name
        acc.broker = broker
        acc.updated_at = utcnow()
    db.refresh(acc)
    logger.info("registered account %s (%s)", account_id, broker)
    return acc

def update_stats(db: Session, account_id: str, stats: dict) -> Account:
    total = stats.get("total_trades") or 0
    winning = stats.get("winning_trades") or 0
    if winning > total:
        raise ValidationError("winning_trades cannot exceed total_trades")
    with transaction(db):
        acc = get(db, account_id)
        for field in STAT_FIELDS:
            setattr(acc, field, stats.get(field))
        acc.performance_score = performance_score(stats)
        acc.updated_at = utcnow()
    db.refresh(acc)
    return acc

def deactivate(db: Session, account_id: str) -> Account:
    with transaction(db):
        acc = get(db, account_id)
        acc.is_active = False
        acc.updated_at = utcnow()
    logger.info("deactivated account %s", account_id)
    return acc

def list_active(db: Session, now: datetime | None = None) -> list[dict]:
    """Active accounts by score, each with its trailing 24h signal activity."""
    cutoff = (now or utcnow()) - RECENT_WINDOW
    q = (
        select(Account, func.count(Signal.id), func.avg(Signal.profit_loss))
        .outerjoin(Signal, and_(Signal.account_id == Account.account_id, Signal.created_at > cutoff))
        .where(Account.is_active.is_(True))
        .group_by(Account.id)
        .order_by(Account.performance_score.desc())
    )
    out = []
    for acc, recent, avg_pl in db.execute(q).all():
        out.append({"account": acc, "recent_signals": recent, "avg_profit_per_trade": avg_pl})
    return out
