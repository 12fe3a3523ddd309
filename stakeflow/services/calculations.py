"""
Pure reward and scoring math.

Money is Decimal throughout; rounding is half-up.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from stakeflow.models import RiskLevel


HUNDRED = Decimal(100)
DAYS_PER_YEAR = Decimal(365)
WEEKS_PER_YEAR = Decimal(52)

RISK_WEIGHTS = {
    RiskLevel.LOW.value: Decimal(25),
    RiskLevel.MEDIUM.value: Decimal(50),
    RiskLevel.HIGH.value: Decimal(75),
}
DEFAULT_RISK_SCORE = Decimal(50)


def to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def quantize(value: Decimal, places: int) -> Decimal:
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def round2(value: Decimal) -> Decimal:
    return quantize(value, 2)


def daily_rate(apy: Any) -> Decimal:
    return to_decimal(apy) / HUNDRED / DAYS_PER_YEAR


def weekly_rate(apy: Any) -> Decimal:
    return to_decimal(apy) / HUNDRED / WEEKS_PER_YEAR


def daily_reward(amount: Any, apy: Any, places: int = 6) -> Decimal:
    """
    One day of simple accrual.

    >>> daily_reward(1000, Decimal("12.5"))
    Decimal('0.342466')
    """
    return quantize(to_decimal(amount) * daily_rate(apy), places)


def compound_reward(total_unclaimed: Any, apy: Any, places: int = 6) -> Decimal:
    """One week of interest on the unclaimed reward balance."""
    return quantize(to_decimal(total_unclaimed) * weekly_rate(apy), places)


def total(values: Iterable[Any]) -> Decimal:
    return sum((to_decimal(v) for v in values), Decimal(0))


def mean(values: Iterable[Any]) -> Decimal:
    items = [to_decimal(v) for v in values]
    if not items:
        return Decimal(0)
    return sum(items, Decimal(0)) / len(items)


def risk_score(weighted: Iterable[Tuple[Any, Optional[str]]]) -> Decimal:
    """
    Amount-weighted risk over (amount, risk_level) pairs.

    low=25, medium=50, high=75; unknown levels count as medium.
    Returns 50 when nothing is staked.
    """
    pairs = [(to_decimal(amount), level) for amount, level in weighted]
    staked = sum((amount for amount, _ in pairs), Decimal(0))
    if staked <= 0:
        return DEFAULT_RISK_SCORE

    score = sum(
        (amount / staked * RISK_WEIGHTS.get(level or "", RISK_WEIGHTS["medium"]) for amount, level in pairs),
        Decimal(0)
    )
    return round2(score)


def diversification_score(amount_by_protocol: Mapping[Any, Any]) -> Decimal:
    """(1 - HHI) * 100 over per-protocol shares; 0 when nothing is staked."""
    amounts = [to_decimal(v) for v in amount_by_protocol.values()]
    staked = sum(amounts, Decimal(0))
    if staked <= 0:
        return Decimal("0.00")

    hhi = sum(((amount / staked) ** 2 for amount in amounts), Decimal(0))
    score = (1 - hhi) * HUNDRED
    return round2(min(max(score, Decimal(0)), HUNDRED))


def distribution(amount_by_key: Mapping[str, Any]) -> Dict[str, float]:
    """Percentage share of each key, rounded to 2 dp."""
    staked = total(amount_by_key.values())
    if staked <= 0:
        return {}
    return {
        key: float(round2(to_decimal(amount) / staked * HUNDRED))
        for key, amount in amount_by_key.items()
    }


def annualised_apy(rewards: Any, staked: Any, days: int) -> Decimal:
    """Realised yield over `days`, scaled to a year, in percent."""
    staked_d = to_decimal(staked)
    if staked_d <= 0 or days <= 0:
        return Decimal(0)
    return to_decimal(rewards) / staked_d * (DAYS_PER_YEAR / Decimal(days)) * HUNDRED


def performance_ratio(actual_apy: Any, expected_apy: Any) -> Decimal:
    expected = to_decimal(expected_apy)
    if expected <= 0:
        return Decimal(0)
    return to_decimal(actual_apy) / expected


def growth_percentage(current: Any, previous: Any) -> Decimal:
    """
    Percent change from `previous` to `current`.

    100 when growing from zero, 0 when both are zero.
    """
    current_d = to_decimal(current)
    previous_d = to_decimal(previous)
    if previous_d == 0:
        return Decimal("100.00") if current_d > 0 else Decimal("0.00")
    return round2((current_d - previous_d) / previous_d * HUNDRED)


RISK_RANKS = {
    RiskLevel.LOW.value: 1,
    RiskLevel.MEDIUM.value: 2,
    RiskLevel.HIGH.value: 3,
}


def portfolio_risk_level(levels: Iterable[Optional[str]]) -> str:
    """
    Unweighted risk bucket over the stakes' protocol risk levels.

    Each stake counts once (low=1, medium=2, high=3, unknown as medium);
    an average up to 1.5 is low, up to 2.5 medium, above that high.
    """
    ranks = [RISK_RANKS.get(level or "", RISK_RANKS["medium"]) for level in levels]
    if not ranks:
        return RiskLevel.MEDIUM.value

    average = Decimal(sum(ranks)) / len(ranks)
    if average <= Decimal("1.5"):
        return RiskLevel.LOW.value
    if average <= Decimal("2.5"):
        return RiskLevel.MEDIUM.value
    return RiskLevel.HIGH.value
