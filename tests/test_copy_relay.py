"""
Tests for copying signals onto the master ledger.
"""

from unittest.mock import patch

import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import OperationalError

from signal_hub import accounts, signals, copy_relay
from signal_hub.errors import NotFoundError, StoreError, ValidationError
from signal_hub.models import MasterTrade


class TestCopyToMaster:
    def setup_method(self):
        self.signal_kwargs = dict(entry_price=1.1, stop_loss=1.09, take_profit=1.13)

    def make_signal(self, db, volume=0.5):
        accounts.register(db, "1001", "Demo One", None)
        return signals.create(db, "1001", "EURUSD", "BUY", volume, **self.signal_kwargs)

    def master_count(self, db):
        return db.execute(select(func.count(MasterTrade.id))).scalar_one()

    def test_scales_volume_and_marks_source(self, db):
        sig = self.make_signal(db, volume=0.5)
        result = copy_relay.copy_to_master(db, sig.id, volume_multiplier=2)
        assert result["volume"] == pytest.approx(1.0)
        assert result["original_signal_id"] == sig.id

        mt = db.get(MasterTrade, result["master_trade_id"])
        assert mt.copied_from_account == "1001"
        assert (mt.symbol, mt.action) == ("EURUSD", "BUY")
        assert (mt.entry_price, mt.stop_loss, mt.take_profit) == (1.1, 1.09, 1.13)
        assert mt.status == "open"

        sig = signals.get(db, sig.id)
        assert sig.is_copied is True
        assert sig.copy_time is not None

    def test_default_multiplier(self, db):
        sig = self.make_signal(db, volume=0.3)
        assert copy_relay.copy_to_master(db, sig.id)["volume"] == pytest.approx(0.3)

    def test_copying_twice_creates_two_master_trades(self, db):
        sig = self.make_signal(db)
        first = copy_relay.copy_to_master(db, sig.id)
        second = copy_relay.copy_to_master(db, sig.id)
        assert first["master_trade_id"] != second["master_trade_id"]
        assert self.master_count(db) == 2
        assert signals.get(db, sig.id).is_copied is True

    def test_unknown_signal(self, db):
        with pytest.raises(NotFoundError):
            copy_relay.copy_to_master(db, 404)
        assert self.master_count(db) == 0

    @pytest.mark.parametrize("multiplier", [0, -1])
    def test_non_positive_multiplier(self, db, multiplier):
        sig = self.make_signal(db)
        with pytest.raises(ValidationError):
            copy_relay.copy_to_master(db, sig.id, multiplier)

    def test_store_failure_leaves_no_partial_state(self, db):
        sig = self.make_signal(db)
        boom = OperationalError("INSERT INTO master_trades", {}, Exception("disk I/O error"))
        with patch.object(db, "flush", side_effect=boom):
            with pytest.raises(StoreError) as excinfo:
                copy_relay.copy_to_master(db, sig.id)
        assert excinfo.value.message == "store operation failed"
        assert "INSERT" not in str(excinfo.value)
        assert self.master_count(db) == 0
        sig = signals.get(db, sig.id)
        assert sig.is_copied is False
        assert sig.copy_time is None


def test_list_master_trades_newest_first(db):
    accounts.register(db, "1001", "Demo One", None)
    a = signals.create(db, "1001", "EURUSD", "BUY", 0.1)
    b = signals.create(db, "1001", "GBPUSD", "SELL", 0.2)
    copy_relay.copy_to_master(db, a.id)
    copy_relay.copy_to_master(db, b.id, 3)
    rows = copy_relay.list_master_trades(db)
    assert [r["trade"].symbol for r in rows] == ["GBPUSD", "EURUSD"]
    assert rows[0]["trade"].volume == pytest.approx(0.6)
    assert all(r["source_account"] == "1001" for r in rows)
