import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Depends, Request, Body, Query
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from . import accounts, signals, copy_relay
from .db import Base, make_engine, make_session_factory, utcnow
from .errors import HubError, NotFoundError, ValidationError, STORE_FAILURE
from .normalize import normalize_trade, normalize_account
from .schemas import (AccountRegisterIn, AccountStatsIn, AccountOut, AccountSummaryOut, SignalIn,
                      SignalUpdateIn, SignalOut, TopSignalOut, CopyIn, MasterTradeOut, dump)

logger = logging.getLogger(__name__)

SERVICE_NAME = "Copy Trading Signal Hub"

def db_dep(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()

def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})

def create_app(session_factory: Optional[sessionmaker] = None) -> FastAPI:
    if session_factory is None:
        session_factory = make_session_factory(make_engine())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        Base.metadata.create_all(bind=session_factory.kw["bind"])
        logger.info("database ready")
        yield

    app = FastAPI(title=SERVICE_NAME, lifespan=lifespan)
    app.state.session_factory = session_factory
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    @app.exception_handler(HubError)
    async def hub_error(request: Request, exc: HubError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_invalid(request: Request, exc: RequestValidationError):
        errs = exc.errors()
        if errs:
            loc = ".".join(str(p) for p in errs[0].get("loc", ()) if p != "body")
            message = f"{loc}: {errs[0].get('msg')}" if loc else errs[0].get("msg")
        else:
            message = "invalid request"
        logger.warning("%s %s rejected: %s", request.method, request.url.path, message)
        return _error(400, message)

    @app.exception_handler(SQLAlchemyError)
    async def store_error(request: Request, exc: SQLAlchemyError):
        logger.error("%s %s store failure: %s", request.method, request.url.path, exc)
        return _error(500, STORE_FAILURE)

    register_routes(app)
    return app

def register_routes(app: FastAPI):

    @app.get("/", tags=["system"])
    def home():
        return {"message": f"{SERVICE_NAME} is running", "status": "healthy",
                "timestamp": utcnow().isoformat()}

    @app.get("/health", tags=["system"])
    def health():
        return {"status": "OK", "timestamp": utcnow().isoformat(), "service": SERVICE_NAME}

    # --- accounts ---
    @app.post("/api/accounts/register", tags=["accounts"])
    def register_account(payload: AccountRegisterIn, db: Session = Depends(db_dep)):
        acc = accounts.register(db, payload.account_id, payload.account_name, payload.broker)
        return {"success": True, "account": dump(AccountOut, acc)}

    @app.put("/api/accounts/{account_id}/stats", tags=["accounts"])
    def update_account_stats(account_id: str, payload: AccountStatsIn, db: Session = Depends(db_dep)):
        accounts.update_stats(db, account_id, payload.model_dump())
        return {"success": True, "message": "Account stats updated"}

    @app.post("/api/accounts/{account_id}/deactivate", tags=["accounts"])
    def deactivate_account(account_id: str, db: Session = Depends(db_dep)):
        accounts.deactivate(db, account_id)
        return {"success": True, "message": "Account deactivated"}

    @app.get("/api/accounts", tags=["accounts"])
    def list_accounts(db: Session = Depends(db_dep)):
        rows = accounts.list_active(db)
        return {"success": True, "accounts": [
            dump(AccountSummaryOut, r["account"], base=AccountOut,
                 recent_signals=r["recent_signals"], avg_profit_per_trade=r["avg_profit_per_trade"])
            for r in rows]}

    # --- signals ---
    @app.post("/api/signals", tags=["signals"])
    def create_signal(payload: SignalIn, db: Session = Depends(db_dep)):
        sig = signals.create(db, **payload.model_dump())
        return {"success": True, "signal": dump(SignalOut, sig)}

    @app.get("/api/signals/top", tags=["signals"])
    def top_signals(limit: int = Query(50, ge=1, le=500), db: Session = Depends(db_dep)):
        rows = signals.top_performing(db, limit)
        return {"success": True, "signals": [
            dump(TopSignalOut, r["signal"], base=SignalOut, account_name=r["account_name"],
                 performance_score=r["performance_score"], current_duration=r["current_duration"])
            for r in rows]}

    @app.get("/api/signals/pending", tags=["signals"])
    def pending_signals(db: Session = Depends(db_dep)):
        return {"success": True, "signals": [dump(SignalOut, s) for s in signals.pending(db)]}

    @app.put("/api/signals/{signal_id}", tags=["signals"])
    def update_signal(signal_id: int, payload: SignalUpdateIn, db: Session = Depends(db_dep)):
        signals.update(db, signal_id, **payload.model_dump())
        return {"success": True, "message": "Signal updated"}

    # --- copy trading ---
    @app.post("/api/copy/{signal_id}", tags=["copy"])
    def copy_signal(signal_id: int, payload: Optional[CopyIn] = Body(None), db: Session = Depends(db_dep)):
        multiplier = payload.volume_multiplier if payload else 1.0
        result = copy_relay.copy_to_master(db, signal_id, multiplier)
        return {"success": True, "result": result}

    @app.get("/api/master/trades", tags=["copy"])
    def master_trades(db: Session = Depends(db_dep)):
        rows = copy_relay.list_master_trades(db)
        return {"success": True, "trades": [
            dump(MasterTradeOut, r["trade"], source_account=r["source_account"]) for r in rows]}

    # --- MT5 webhooks ---
    @app.post("/api/webhook/trade", tags=["webhook"])
    def webhook_trade(payload: dict = Body(...), db: Session = Depends(db_dep)):
        t = normalize_trade(payload)
        if t.trade_id is not None:
            # no status in the payload leaves the stored one alone
            close_time = t.close_time
            status = t.status
            if close_time is not None:
                status = "closed"
            elif status == "closed":
                close_time = utcnow()
            sig = signals.update(db, t.trade_id, current_price=t.current_price, profit_loss=t.profit_loss,
                                 status=status, close_time=close_time)
        else:
            if not t.account_id:
                raise ValidationError("account_id is required")
            sig = signals.create(db, t.account_id, t.symbol, t.action, t.volume,
                                 entry_price=t.entry_price, stop_loss=t.stop_loss, take_profit=t.take_profit)
        return {"success": True, "message": "Trade data received", "signal_id": sig.id}

    @app.post("/api/webhook/account", tags=["webhook"])
    def webhook_account(payload: dict = Body(...), db: Session = Depends(db_dep)):
        a = normalize_account(payload)
        try:
            known = accounts.get(db, a.account_id)
        except NotFoundError:
            known = None
        # heartbeats usually carry only the login; keep the stored name and broker
        name = a.account_name or (known.account_name if known else a.account_id)
        broker = a.broker if a.broker is not None or known is None else known.broker
        acc = accounts.register(db, a.account_id, name, broker)
        if a.total_trades is not None:
            # fields the EA left out keep their stored values
            stats = {k: (v if v is not None else getattr(acc, k)) for k, v in a.stats().items()}
            acc = accounts.update_stats(db, a.account_id, stats)
        return {"success": True, "account": dump(AccountOut, acc)}

app = create_app()

def serve():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "3000"))
    logger.info("%s listening on %s:%s", SERVICE_NAME, host, port)
    uvicorn.run(app, host=host, port=port)

if __name__ == "__main__":
    serve()
