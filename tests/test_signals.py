"""
Tests for the signal ledger.
"""

from datetime import timedelta

import pytest

from signal_hub import accounts, signals
from signal_hub.errors import NotFoundError, ValidationError


@pytest.fixture
def account(db):
    return accounts.register(db, "1001", "Demo One", "ICMarkets")


class TestCreate:
    def test_new_signal_is_open(self, db, account):
        sig = signals.create(db, "1001", "eurusd", "buy", 0.5, entry_price=1.1, stop_loss=1.09, take_profit=1.12)
        assert sig.id is not None
        assert sig.status == "open"
        assert sig.action == "BUY"
        assert sig.symbol == "EURUSD"
        assert sig.open_time is not None
        assert sig.close_time is None
        assert sig.is_copied is False

    def test_ids_are_sequential(self, db, account):
        a = signals.create(db, "1001", "EURUSD", "BUY", 0.1)
        b = signals.create(db, "1001", "EURUSD", "SELL", 0.1)
        assert b.id == a.id + 1

    @pytest.mark.parametrize("action", ["HOLD", "", None])
    def test_invalid_action(self, db, account, action):
        with pytest.raises(ValidationError):
            signals.create(db, "1001", "EURUSD", action, 0.1)

    @pytest.mark.parametrize("volume", [0, -0.1])
    def test_non_positive_volume(self, db, account, volume):
        with pytest.raises(ValidationError):
            signals.create(db, "1001", "EURUSD", "BUY", volume)

    def test_unknown_account(self, db):
        with pytest.raises(NotFoundError):
            signals.create(db, "9999", "EURUSD", "BUY", 0.1)


class TestUpdate:
    def test_close_sets_duration(self, db, account):
        sig = signals.create(db, "1001", "EURUSD", "BUY", 0.1)
        close = sig.open_time + timedelta(minutes=90)
        sig = signals.update(db, sig.id, current_price=1.2, profit_loss=45.0, close_time=close)
        assert sig.status == "closed"
        assert sig.close_time == close
        assert sig.duration_minutes == 90

    def test_omitted_prices_are_cleared(self, db, account):
        sig = signals.create(db, "1001", "EURUSD", "BUY", 0.1)
        signals.update(db, sig.id, current_price=1.2, profit_loss=12.5)
        sig = signals.update(db, sig.id, status="pending")
        assert sig.current_price is None
        assert sig.profit_loss is None
        assert sig.status == "pending"

    def test_status_untouched_when_not_given(self, db, account):
        sig = signals.create(db, "1001", "EURUSD", "BUY", 0.1)
        sig = signals.update(db, sig.id, current_price=1.3)
        assert sig.status == "open"
        assert sig.duration_minutes is None

    def test_close_time_requires_closed_status(self, db, account):
        sig = signals.create(db, "1001", "EURUSD", "BUY", 0.1)
        with pytest.raises(ValidationError):
            signals.update(db, sig.id, status="open", close_time=sig.open_time + timedelta(minutes=5))

    def test_close_before_open_rejected(self, db, account):
        sig = signals.create(db, "1001", "EURUSD", "BUY", 0.1)
        with pytest.raises(ValidationError):
            signals.update(db, sig.id, close_time=sig.open_time - timedelta(minutes=5))
        assert signals.get(db, sig.id).status == "open"

    @pytest.mark.parametrize("status", ["open", "pending"])
    def test_closed_signal_stays_closed(self, db, account, status):
        sig = signals.create(db, "1001", "EURUSD", "BUY", 0.1)
        signals.update(db, sig.id, close_time=sig.open_time + timedelta(minutes=90))
        with pytest.raises(ValidationError):
            signals.update(db, sig.id, status=status)
        sig = signals.get(db, sig.id)
        assert sig.status == "closed"
        assert sig.duration_minutes == 90

    def test_closed_signal_takes_price_updates(self, db, account):
        sig = signals.create(db, "1001", "EURUSD", "BUY", 0.1)
        signals.update(db, sig.id, close_time=sig.open_time + timedelta(minutes=90))
        sig = signals.update(db, sig.id, current_price=1.25, profit_loss=8.0)
        assert sig.status == "closed"
        assert sig.close_time is not None
        assert sig.current_price == 1.25

    def test_invalid_status(self, db, account):
        sig = signals.create(db, "1001", "EURUSD", "BUY", 0.1)
        with pytest.raises(ValidationError):
            signals.update(db, sig.id, status="cancelled")

    def test_unknown_signal(self, db):
        with pytest.raises(NotFoundError):
            signals.update(db, 12345, current_price=1.0)


class TestTopPerforming:
    def setup_ledger(self, db):
        accounts.register(db, "good", "Good", None)
        accounts.update_stats(db, "good", {"balance": 1, "equity": 1, "profit_loss": 800, "win_rate": 70,
                                           "total_trades": 40, "winning_trades": 28})
        accounts.register(db, "meh", "Meh", None)
        low = signals.create(db, "meh", "GBPUSD", "SELL", 0.1)
        signals.update(db, low.id, profit_loss=500.0)
        small = signals.create(db, "good", "EURUSD", "BUY", 0.1)
        signals.update(db, small.id, profit_loss=5.0)
        big = signals.create(db, "good", "XAUUSD", "BUY", 0.1)
        signals.update(db, big.id, profit_loss=50.0)
        pend = signals.create(db, "good", "USDJPY", "BUY", 0.1)
        signals.update(db, pend.id, profit_loss=999.0, status="pending")
        return low, small, big, pend

    def test_ordering_and_filtering(self, db):
        low, small, big, pend = self.setup_ledger(db)
        rows = signals.top_performing(db, limit=10)
        assert [r["signal"].id for r in rows] == [big.id, small.id, low.id]
        assert rows[0]["account_name"] == "Good"

    def test_limit(self, db):
        self.setup_ledger(db)
        assert len(signals.top_performing(db, limit=2)) == 2
        with pytest.raises(ValidationError):
            signals.top_performing(db, limit=0)

    def test_current_duration(self, db, account):
        open_sig = signals.create(db, "1001", "EURUSD", "BUY", 0.1)
        closed = signals.create(db, "1001", "EURUSD", "SELL", 0.1)
        signals.update(db, closed.id, close_time=closed.open_time + timedelta(minutes=15))
        now = open_sig.open_time + timedelta(minutes=30)
        rows = {r["signal"].id: r for r in signals.top_performing(db, limit=10, now=now)}
        assert rows[open_sig.id]["current_duration"] == 30
        assert rows[closed.id]["current_duration"] == 15

    def test_inactive_accounts_excluded(self, db):
        self.setup_ledger(db)
        accounts.deactivate(db, "good")
        assert {r["signal"].account_id for r in signals.top_performing(db)} == {"meh"}


def test_pending(db, account):
    a = signals.create(db, "1001", "EURUSD", "BUY", 0.1)
    signals.create(db, "1001", "EURUSD", "BUY", 0.1)
    signals.update(db, a.id, status="pending")
    assert [s.id for s in signals.pending(db)] == [a.id]
