from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Any
from datetime import datetime

class AccountRegisterIn(BaseModel):
    account_id: str = Field(min_length=1)
    account_name: str = Field(min_length=1)
    broker: Optional[str] = None

class AccountStatsIn(BaseModel):
    balance: float
    equity: float
    profit_loss: float
    win_rate: float = Field(ge=0, le=100)
    total_trades: int = Field(ge=0)
    winning_trades: int = Field(ge=0)

class AccountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    account_id: str
    account_name: str
    broker: Optional[str]
    balance: Optional[float]
    equity: Optional[float]
    profit_loss: Optional[float]
    win_rate: Optional[float]
    total_trades: Optional[int]
    winning_trades: Optional[int]
    performance_score: Optional[float]
    is_active: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

class AccountSummaryOut(AccountOut):
    recent_signals: int = 0
    avg_profit_per_trade: Optional[float] = None

class SignalIn(BaseModel):
    account_id: str
    symbol: str
    action: str
    volume: float = Field(gt=0)
    entry_price: Optional[float] = None
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None

class SignalUpdateIn(BaseModel):
    current_price: Optional[float] = None
    profit_loss: Optional[float] = None
    status: Optional[str] = None
    close_time: Optional[datetime] = None

class SignalOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    account_id: str
    symbol: str
    action: str
    volume: float
    entry_price: Optional[float]
    current_price: Optional[float]
    stop_loss: Optional[float]
    take_profit: Optional[float]
    profit_loss: Optional[float]
    status: str
    open_time: Optional[datetime]
    close_time: Optional[datetime]
    duration_minutes: Optional[int]
    is_copied: bool
    copy_time: Optional[datetime]
    created_at: Optional[datetime]

class TopSignalOut(SignalOut):
    account_name: str
    performance_score: Optional[float]
    current_duration: Optional[int]

class CopyIn(BaseModel):
    volume_multiplier: float = Field(1.0, gt=0)

class MasterTradeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    original_signal_id: Optional[int]
    symbol: str
    action: str
    volume: float
    entry_price: Optional[float]
    current_price: Optional[float]
    stop_loss: Optional[float]
    take_profit: Optional[float]
    profit_loss: Optional[float]
    status: Optional[str]
    copied_from_account: Optional[str]
    open_time: Optional[datetime]
    close_time: Optional[datetime]
    source_account: Optional[str] = None

def dump(schema: type[BaseModel], obj: Any, base: type[BaseModel] | None = None, **extra) -> dict:
    """Serialize an ORM row through `schema`, adding computed columns from `extra`."""
    data = (base or schema).model_validate(obj).model_dump()
    data.update(extra)
    return schema(**data).model_dump(mode="json")
