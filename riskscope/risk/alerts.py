"""Per-position risk alerts — pure functions, no I/O."""

from riskscope.risk.models import AccountState, RiskAlert

DEFAULT_ALERT_THRESHOLD_PCT = 10.0


def build_alerts(
    account: AccountState,
    alert_threshold_pct: float = DEFAULT_ALERT_THRESHOLD_PCT,
) -> list[RiskAlert]:
    """List the positions that need attention.

    - ``danger``: leveraged size exceeds *alert_threshold_pct* of balance.
    - ``warning``: position has no stop loss.

    A non-positive balance with open positions produces a single ``danger``
    alert, since no ratio can be computed.
    """
    if not account.positions:
        return []
    if account.balance <= 0:
        return [
            RiskAlert(
                level="danger",
                message="Account balance is not positive with open positions",
            )
        ]

    alerts: list[RiskAlert] = []
    for idx, p in enumerate(account.positions):
        exposure_pct = p.size * p.leverage / account.balance * 100.0
        if exposure_pct > alert_threshold_pct:
            alerts.append(
                RiskAlert(
                    level="danger",
                    message=(
                        f"Position size {exposure_pct:.1f}% exceeds "
                        f"{alert_threshold_pct:g}% of account balance"
                    ),
                    position_index=idx,
                )
            )
        if not p.has_stop_loss:
            alerts.append(
                RiskAlert(
                    level="warning",
                    message="Position opened without stop loss",
                    position_index=idx,
                )
            )
    return alerts
