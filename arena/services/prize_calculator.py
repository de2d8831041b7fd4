"""
Prize pool figures for a tournament.

Entry-fee tournaments split the collected fees by percentage; free
tournaments pay the fixed amounts the host funded. Both computations are
pure functions of the tournament row, so a preview and the recheck done
right before a payout always agree for the same state.
"""
from decimal import Decimal, ROUND_DOWN
from typing import Dict

from arena.core.errors import ValidationError
from arena.models.tournament import Tournament
from arena.schemas.tournament import PrizeBreakdown


def _floor_share(percentage, pool: int) -> int:
    share = Decimal(str(percentage)) * Decimal(pool) / Decimal(100)
    return int(share.quantize(Decimal("1"), rounding=ROUND_DOWN))


def pool_basis(tournament: Tournament) -> int:
    """Credits the split is computed against: everything collected, not what is left"""
    if tournament.is_manual_pool:
        return sum((tournament.manual_prize_pool or {}).values())
    return (
        (tournament.current_prize_pool or 0)
        + (tournament.total_prizes_distributed or 0)
        + (tournament.host_earnings_amount or 0)
    )


def prize_positions(tournament: Tournament) -> Dict[str, float]:
    """Positions that carry a prize"""
    source = tournament.manual_prize_pool if tournament.is_manual_pool else tournament.prize_distribution
    return {position: value for position, value in (source or {}).items() if value > 0}


def position_amount(tournament: Tournament, position: str) -> int:
    if tournament.is_manual_pool:
        manual = tournament.manual_prize_pool or {}
        if position not in manual:
            raise ValidationError(f"Position '{position}' has no prize in this tournament")
        return int(manual[position])

    distribution = tournament.prize_distribution or {}
    if position not in distribution:
        raise ValidationError(f"Position '{position}' has no prize in this tournament")
    return _floor_share(distribution[position], pool_basis(tournament))


def host_share(tournament: Tournament) -> int:
    """Host commission: the percentage not allocated to any position"""
    if tournament.is_manual_pool:
        return 0
    allocated = sum(Decimal(str(pct)) for pct in (tournament.prize_distribution or {}).values())
    return _floor_share(Decimal(100) - allocated, pool_basis(tournament))


def breakdown(tournament: Tournament) -> PrizeBreakdown:
    positions = tournament.manual_prize_pool if tournament.is_manual_pool else tournament.prize_distribution
    return PrizeBreakdown(
        mode="manual" if tournament.is_manual_pool else "percentage",
        pool_basis=pool_basis(tournament),
        positions={position: position_amount(tournament, position) for position in (positions or {})},
        host_share=host_share(tournament),
        remaining_pool=tournament.current_prize_pool or 0,
    )
