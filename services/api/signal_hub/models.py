from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Float, CheckConstraint
from .db import Base, utcnow

class Account(Base):
    __tablename__ = "accounts"
    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(String(64), unique=True, nullable=False)  # MT5 login or any stable external key
    account_name = Column(String(200), nullable=False)
    broker = Column(String(200), nullable=True)

    balance = Column(Float, default=10000.0)
    equity = Column(Float, default=10000.0)
    profit_loss = Column(Float, default=0.0)
    win_rate = Column(Float, default=0.0)  # 0..100
    total_trades = Column(Integer, default=0)
    winning_trades = Column(Integer, default=0)
    performance_score = Column(Float, default=0.0)  # derived, see scoring.py

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

class Signal(Base):
    __tablename__ = "signals"
    __table_args__ = (
        CheckConstraint("action IN ('BUY', 'SELL')", name="ck_signals_action"),
        CheckConstraint("status IN ('pending', 'open', 'closed')", name="ck_signals_status"),
    )
    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(String(64), ForeignKey("accounts.account_id"), nullable=False, index=True)

    symbol = Column(String(50), nullable=False)
    action = Column(String(4), nullable=False)  # BUY|SELL
    volume = Column(Float, nullable=False)
    entry_price = Column(Float, nullable=True)
    current_price = Column(Float, nullable=True)
    stop_loss = Column(Float, nullable=True)
    take_profit = Column(Float, nullable=True)
    profit_loss = Column(Float, nullable=True, default=0.0)

    status = Column(String(10), nullable=False, default="open")  # pending|open|closed
    open_time = Column(DateTime, default=utcnow)
    close_time = Column(DateTime, nullable=True)
    duration_minutes = Column(Integer, nullable=True)

    is_copied = Column(Boolean, default=False, nullable=False)
    copy_time = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow)

class MasterTrade(Base):
    __tablename__ = "master_trades"
    id = Column(Integer, primary_key=True, autoincrement=True)
    original_signal_id = Column(Integer, ForeignKey("signals.id", ondelete="SET NULL"), nullable=True)

    symbol = Column(String(50), nullable=False)
    action = Column(String(4), nullable=False)
    volume = Column(Float, nullable=False)
    entry_price = Column(Float, nullable=True)
    current_price = Column(Float, nullable=True)
    stop_loss = Column(Float, nullable=True)
    take_profit = Column(Float, nullable=True)
    profit_loss = Column(Float, default=0.0)

    status = Column(String(10), default="open")
    copied_from_account = Column(String(64), nullable=True)  # snapshot, not a foreign key
    open_time = Column(DateTime, default=utcnow)
    close_time = Column(DateTime, nullable=True)
