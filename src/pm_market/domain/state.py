"""Market lifecycle state machine.

    active ──► pending_resolution ──► resolving ──► resolved
      │               │                   │
      └───────────────┴───────────────────┴───────► cancelled

resolved and cancelled are terminal. Entering either happens exactly once.
"""

from src.pm_common.enums import MarketStatus
from src.pm_common.errors import AlreadyResolvedError, InvalidStateTransitionError

_TRANSITIONS: dict[MarketStatus, frozenset[MarketStatus]] = {
    MarketStatus.ACTIVE: frozenset(
        {MarketStatus.PENDING_RESOLUTION, MarketStatus.CANCELLED}
    ),
    MarketStatus.PENDING_RESOLUTION: frozenset(
        {MarketStatus.RESOLVING, MarketStatus.CANCELLED}
    ),
    MarketStatus.RESOLVING: frozenset(
        {MarketStatus.RESOLVED, MarketStatus.CANCELLED}
    ),
    MarketStatus.RESOLVED: frozenset(),
    MarketStatus.CANCELLED: frozenset(),
}

# Forward order used when an operation walks several edges in one transaction.
_FORWARD = (
    MarketStatus.ACTIVE,
    MarketStatus.PENDING_RESOLUTION,
    MarketStatus.RESOLVING,
    MarketStatus.RESOLVED,
)

TERMINAL_STATUSES = frozenset({MarketStatus.RESOLVED, MarketStatus.CANCELLED})


def is_terminal(status: str) -> bool:
    return MarketStatus(status) in TERMINAL_STATUSES


def can_transition(current: str, target: str) -> bool:
    return MarketStatus(target) in _TRANSITIONS[MarketStatus(current)]


def ensure_not_terminal(market_id: str, status: str) -> None:
    """Reject any resolve/cancel attempt on a terminal market."""
    if not is_terminal(status):
        return
    if MarketStatus(status) is MarketStatus.RESOLVED:
        raise AlreadyResolvedError(market_id)
    raise InvalidStateTransitionError(f"Market is already cancelled: {market_id}")


def transition_path(market_id: str, current: str, target: str) -> list[MarketStatus]:
    """Statuses visited when moving ``current`` to ``target``, target included.

    A direct edge yields ``[target]``. Otherwise the forward chain is walked
    and every hop must be a legal edge; anything else raises
    InvalidStateTransitionError.
    """
    src, dst = MarketStatus(current), MarketStatus(target)
    ensure_not_terminal(market_id, src)
    if can_transition(src, dst):
        return [dst]
    if src in _FORWARD and dst in _FORWARD:
        start, end = _FORWARD.index(src), _FORWARD.index(dst)
        if start < end:
            return list(_FORWARD[start + 1 : end + 1])
    raise InvalidStateTransitionError(
        f"Market {market_id} cannot move from {src.value} to {dst.value}"
    )
