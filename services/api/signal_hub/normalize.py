"""Map MT5 / Expert Advisor payloads onto the hub's canonical field names.

EAs in the wild send the same thing under different keys (`lots` vs `volume`,
`sl` vs `stop_loss`, `ticket` vs `trade_id`). Each canonical field has an
ordered alias list; the first key present with a non-null value wins, otherwise
the documented default applies. Only types are coerced here; ranges are left to
the ledger.
"""
import math
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Optional, Any

from .db import as_utc
from .errors import ValidationError

TRADE_ALIASES = {
    "trade_id": ("trade_id", "ticket", "position_id", "order"),
    "account_id": ("account_id", "login", "account"),
    "symbol": ("symbol", "instrument"),
    "action": ("action", "type", "side", "cmd"),
    "volume": ("volume", "lots", "lot", "size"),
    "entry_price": ("entry_price", "price_open", "open_price", "price"),
    "current_price": ("current_price", "price_current"),
    "stop_loss": ("stop_loss", "sl"),
    "take_profit": ("take_profit", "tp"),
    "profit_loss": ("profit_loss", "profit", "pnl"),
    "status": ("status", "state"),
    "close_time": ("close_time", "time_close"),
}

TRADE_DEFAULTS = {"action": "buy", "volume": 0.01}

ACCOUNT_ALIASES = {
    "account_id": ("account_id", "login", "account_number"),
    "account_name": ("account_name", "name"),
    "broker": ("broker", "company", "server"),
    "balance": ("balance",),
    "equity": ("equity",),
    "profit_loss": ("profit_loss", "profit"),
    "win_rate": ("win_rate", "winrate"),
    "total_trades": ("total_trades", "trades"),
    "winning_trades": ("winning_trades", "wins"),
}

# MT5 ENUM_ORDER_TYPE / ENUM_POSITION_TYPE
MT5_ORDER_TYPES = {0: "BUY", 1: "SELL"}

@dataclass
class TradePayload:
    trade_id: Optional[int]
    account_id: Optional[str]
    symbol: Optional[str]
    action: str
    volume: float
    entry_price: Optional[float]
    current_price: Optional[float]
    stop_loss: Optional[float]
    take_profit: Optional[float]
    profit_loss: Optional[float]
    status: Optional[str]
    close_time: Optional[datetime]

@dataclass
class AccountPayload:
    account_id: Optional[str]
    account_name: Optional[str]
    broker: Optional[str]
    balance: Optional[float]
    equity: Optional[float]
    profit_loss: Optional[float]
    win_rate: Optional[float]
    total_trades: Optional[int]
    winning_trades: Optional[int]

    def stats(self) -> dict:
        d = asdict(self)
        for k in ("account_id", "account_name", "broker"):
            d.pop(k)
        return d

def pick(payload: dict, aliases, default: Any = None) -> Any:
    for key in aliases:
        value = payload.get(key)
        if value is not None:
            return value
    return default

def _float(name: str, value):
    if value is None or value == "":
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(f):
        raise ValidationError(f"{name} must be a finite number, got {value!r}")
    return f

def _int(name: str, value):
    f = _float(name, value)
    return None if f is None else int(f)

def _str(value):
    return None if value is None else str(value).strip()

def _action(value) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if not math.isfinite(value) or int(value) not in MT5_ORDER_TYPES:
            raise ValidationError(f"unsupported MT5 order type {value!r}")
        return MT5_ORDER_TYPES[int(value)]
    s = str(value).strip().upper()
    if s.isdigit() and int(s) in MT5_ORDER_TYPES:
        return MT5_ORDER_TYPES[int(s)]
    return s

def _status(value):
    return None if value is None else str(value).strip().lower()

def _time(value):
    if value is None or isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, (int, float)):
        # MT5 sends epoch seconds
        try:
            return datetime.fromtimestamp(value, timezone.utc).replace(tzinfo=None)
        except (OverflowError, OSError, ValueError):
            raise ValidationError(f"close_time is out of range: {value!r}")
    try:
        return as_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))
    except ValueError:
        raise ValidationError(f"close_time is not a valid timestamp: {value!r}")

def normalize_trade(payload: dict) -> TradePayload:
    def get(field):
        return pick(payload, TRADE_ALIASES[field], TRADE_DEFAULTS.get(field))

    return TradePayload(
        trade_id=_int("trade_id", get("trade_id")),
        account_id=_str(get("account_id")),
        symbol=_str(get("symbol")),
        action=_action(get("action")),
        volume=_float("volume", get("volume")),
        entry_price=_float("entry_price", get("entry_price")),
        current_price=_float("current_price", get("current_price")),
        stop_loss=_float("stop_loss", get("stop_loss")),
        take_profit=_float("take_profit", get("take_profit")),
        profit_loss=_float("profit_loss", get("profit_loss")),
        status=_status(get("status")),
        close_time=_time(get("close_time")),
    )

def normalize_account(payload: dict) -> AccountPayload:
    def get(field):
        return pick(payload, ACCOUNT_ALIASES[field])

    account_id = _str(get("account_id"))
    return AccountPayload(
        account_id=account_id,
        account_name=_str(get("account_name")) or None,
        broker=_str(get("broker")),
        balance=_float("balance", get("balance")),
        equity=_float("equity", get("equity")),
        profit_loss=_float("profit_loss", get("profit_loss")),
        win_rate=_float("win_rate", get("win_rate")),
        total_trades=_int("total_trades", get("total_trades")),
        winning_trades=_int("winning_trades", get("winning_trades")),
    )
