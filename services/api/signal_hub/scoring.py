MIN_TRADES = 5
PROFIT_SATURATION = 1000.0  # +/- this much P&L pins the profit component
VOLUME_SATURATION = 50  # trades

def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))

def performance_score(stats) -> float:
    """Blend profitability, win rate and activity into a 0-100 score.

    `stats` is any mapping with profit_loss, win_rate (already 0-100) and
    total_trades. Accounts with fewer than MIN_TRADES trades score 0.
    """
    total_trades = stats.get("total_trades") or 0
    if total_trades < MIN_TRADES:
        return 0.0
    profit_loss = stats.get("profit_loss") or 0.0
    win_rate = stats.get("win_rate") or 0.0

    profit_score = _clamp(profit_loss / PROFIT_SATURATION * 50 + 50, 0, 100)
    volume_score = min(100.0, total_trades / VOLUME_SATURATION * 100)
    return profit_score * 0.4 + win_rate * 0.3 + volume_score * 0.3
