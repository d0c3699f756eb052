"""
matching.py - Order Compatibility, Price Ranking and Greedy Fill Planning

Pure functions over Order snapshots:
1. check_compatibility() - pairwise check of a resting order against an incoming one
2. rank_by_price() - stable ascending price ordering
3. greedy_select() - single-pass budget allocation over ranked candidates
4. plan_fill() - filter, rank and allocate; the fill plan or Insufficient
5. balance_update() - net vault change of executing a set of orders

Nothing here performs I/O or raises for business outcomes: an incompatible
candidate or an unfillable order is returned as data.

Known limitation: plan_fill is a first-fit greedy allocator, not a knapsack
solver. A candidate skipped because it no longer fits the remaining budget
is never reconsidered, so a cheaper or a successful combination may exist
that the pass does not find.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import InvalidOperation
from functools import cmp_to_key
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from .core import Asset, BalanceUpdate, IncompatibilityReason, Order


# ============================================================================
# RESULT TYPES
# ============================================================================

@dataclass(frozen=True, slots=True)
class CompatibilityCheck:
    """
    Result of checking one candidate against an incoming order.

    Attributes:
        order: The candidate, unchanged
        reason: None if compatible, otherwise why it was rejected
    """
    order: Order
    reason: Optional[IncompatibilityReason] = None

    @property
    def is_compatible(self) -> bool:
        return self.reason is None


@dataclass(frozen=True, slots=True)
class GreedySelection:
    """
    Trace of one greedy pass.

    Attributes:
        selected: Admitted candidates, in admission order
        skipped: Candidates whose cost exceeded the remaining budget when reached
        remaining_budget: Source amount left after the pass
    """
    selected: Tuple[Order, ...]
    skipped: Tuple[Order, ...]
    remaining_budget: int

    @property
    def total_cost(self) -> int:
        return sum(order.target_asset.amount for order in self.selected)

    @property
    def total_received(self) -> int:
        return sum(order.source_asset.amount for order in self.selected)


@dataclass(frozen=True, slots=True)
class FillPlan:
    """
    Resting orders chosen to fill an incoming order.

    Attributes:
        incoming: The order being filled
        selected: Resting orders to consume, in price order
        spent: Source amount the incoming party pays in total
        received: Target amount the incoming party receives in total
        rejected: Incompatible candidates (diagnostic only)
    """
    incoming: Order
    selected: Tuple[Order, ...]
    spent: int
    received: int
    rejected: Tuple[CompatibilityCheck, ...] = ()


@dataclass(frozen=True, slots=True)
class FillFailure:
    """Base for planning failures. Carries the order that could not be filled."""
    incoming: Order


@dataclass(frozen=True, slots=True)
class Insufficient(FillFailure):
    """No first-fit combination of compatible candidates reaches the target amount."""
    rejected: Tuple[CompatibilityCheck, ...] = ()


PlanResult = Union[FillPlan, FillFailure]


# ============================================================================
# COMPATIBILITY
# ============================================================================

def check_compatibility(incoming: Order, candidate: Order) -> CompatibilityCheck:
    """
    Check whether a resting order can serve an incoming order.

    A candidate is compatible iff:
    1. Its assets are the inverse of the incoming order's assets
    2. It offers at least the amount the incoming order wants
    3. It asks no more than the amount the incoming order is willing to spend

    Rules are evaluated in that order and the first violation is reported.

    Args:
        incoming: The order looking for counterparties
        candidate: A resting order

    Returns:
        CompatibilityCheck with the unchanged candidate and the rejection
        reason (None when compatible)
    """
    if not (candidate.source_asset.same_class(incoming.target_asset)
            and candidate.target_asset.same_class(incoming.source_asset)):
        return CompatibilityCheck(candidate, IncompatibilityReason.ASSETS_NOT_MATCHING)

    if candidate.source_asset.amount < incoming.target_asset.amount:
        return CompatibilityCheck(candidate, IncompatibilityReason.TOO_FEW_SOURCE_ASSETS)

    if candidate.target_asset.amount > incoming.source_asset.amount:
        return CompatibilityCheck(candidate, IncompatibilityReason.TOO_MANY_TARGET_ASSETS)

    return CompatibilityCheck(candidate)


def compatible_orders(incoming: Order, candidates: Iterable[Order]) -> List[Order]:
    """Keep the candidates compatible with incoming, in input order."""
    return [
        check.order for check in (check_compatibility(incoming, c) for c in candidates)
        if check.is_compatible
    ]


# ============================================================================
# RANKING
# ============================================================================

def _compare_price(a: Order, b: Order) -> int:
    # Undecidable comparisons count as a tie so the sort never fails.
    try:
        pa, pb = a.price, b.price
        if pa < pb:
            return -1
        if pa > pb:
            return 1
    except (InvalidOperation, ZeroDivisionError):
        pass
    return 0


def rank_by_price(orders: Iterable[Order]) -> List[Order]:
    """
    Sort orders by ascending price.

    The sort is stable: orders with equal price keep their relative input
    order.
    """
    return sorted(orders, key=cmp_to_key(_compare_price))


# ============================================================================
# FILL PLANNING
# ============================================================================

def greedy_select(ranked: Sequence[Order], budget: int) -> GreedySelection:
    """
    Single pass over ranked candidates within a source budget.

    A candidate is admitted iff its target amount (its cost to the incoming
    party) fits the remaining budget; the cost is then deducted. Candidates
    that do not fit are skipped for good. The pass stops once the budget is
    exhausted.

    Args:
        ranked: Candidates in priority order
        budget: Source amount available

    Returns:
        GreedySelection with admitted and skipped candidates
    """
    remaining = budget
    selected: List[Order] = []
    skipped: List[Order] = []

    for candidate in ranked:
        if remaining == 0:
            break
        cost = candidate.target_asset.amount
        if cost <= remaining:
            selected.append(candidate)
            remaining -= cost
        else:
            skipped.append(candidate)

    return GreedySelection(tuple(selected), tuple(skipped), remaining)


def plan_fill(incoming: Order, resting: Iterable[Order]) -> PlanResult:
    """
    Select resting orders that fill an incoming order within its budget.

    Steps:
    1. Drop candidates that fail check_compatibility()
    2. Rank the rest by ascending price
    3. Run greedy_select() with the incoming source amount as budget
    4. Compare the total received with the incoming target amount

    Args:
        incoming: The order to fill
        resting: Snapshot of resting orders

    Returns:
        FillPlan if the admitted orders deliver at least the target amount,
        otherwise Insufficient(incoming). A partial selection is discarded.
    """
    checks = [check_compatibility(incoming, candidate) for candidate in resting]
    compatible = [c.order for c in checks if c.is_compatible]
    rejected = tuple(c for c in checks if not c.is_compatible)

    ranked = rank_by_price(compatible)
    selection = greedy_select(ranked, incoming.source_asset.amount)

    received = selection.total_received
    if received < incoming.target_asset.amount:
        return Insufficient(incoming=incoming, rejected=rejected)

    return FillPlan(
        incoming=incoming,
        selected=selection.selected,
        spent=selection.total_cost,
        received=received,
        rejected=rejected,
    )


def balance_update(orders: Sequence[Order]) -> Optional[BalanceUpdate]:
    """
    Compute the vault change of consuming the given resting orders.

    The participant spends what the orders ask for (their targets) and
    receives what they offer (their sources). Issuers are taken from the
    first order; all orders of a plan share them.

    Returns:
        BalanceUpdate, or None for an empty list
    """
    if not orders:
        return None
    first = orders[0]
    spend = sum(order.target_asset.amount for order in orders)
    receive = sum(order.source_asset.amount for order in orders)
    return BalanceUpdate(
        spend=Asset(first.target_asset.issuer, spend),
        receive=Asset(first.source_asset.issuer, receive),
    )
