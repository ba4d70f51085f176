import logging
from sqlalchemy import select
from sqlalchemy.orm import Session

from .db import transaction, utcnow
from .errors import ValidationError
from .models import MasterTrade, Signal
from .signals import get as get_signal

logger = logging.getLogger(__name__)

def copy_to_master(db: Session, signal_id: int, volume_multiplier: float = 1) -> dict:
    """Replicate a signal onto the master ledger and flag the source as copied.

    Both writes share one transaction. There is no guard against copying the
    same signal twice; each call adds a master trade.
    """
    if volume_multiplier is None or volume_multiplier <= 0:
        raise ValidationError("volume_multiplier must be greater than 0")
    with transaction(db):
        sig = get_signal(db, signal_id)
        mt = MasterTrade(
            original_signal_id=sig.id,
            symbol=sig.symbol,
            action=sig.action,
            volume=sig.volume * volume_multiplier,
            entry_price=sig.entry_price,
            stop_loss=sig.stop_loss,
            take_profit=sig.take_profit,
            copied_from_account=sig.account_id,
            status="open",
            open_time=utcnow(),
        )
        db.add(mt)
        sig.is_copied = True
        sig.copy_time = utcnow()
        db.flush()
        result = {"master_trade_id": mt.id, "original_signal_id": sig.id, "volume": mt.volume}
    logger.info("copied signal %s to master trade %s (x%s)", signal_id, result["master_trade_id"], volume_multiplier)
    return result

def list_master_trades(db: Session) -> list[dict]:
    q = (
        select(MasterTrade, Signal.account_id)
        .outerjoin(Signal, MasterTrade.original_signal_id == Signal.id)
        .order_by(MasterTrade.open_time.desc(), MasterTrade.id.desc())
    )
    return [{"trade": mt, "source_account": src} for mt, src in db.execute(q).all()]
