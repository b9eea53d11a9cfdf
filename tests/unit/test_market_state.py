# tests/unit/test_market_state.py
"""Unit tests for the market lifecycle state machine."""
import pytest

from src.pm_common.enums import MarketStatus
from src.pm_common.errors import AlreadyResolvedError, InvalidStateTransitionError
from src.pm_market.domain.state import (
    can_transition,
    ensure_not_terminal,
    is_terminal,
    transition_path,
)


class TestEdges:
    @pytest.mark.parametrize(
        "current,target",
        [
            ("active", "pending_resolution"),
            ("active", "cancelled"),
            ("pending_resolution", "resolving"),
            ("pending_resolution", "cancelled"),
            ("resolving", "resolved"),
            ("resolving", "cancelled"),
        ],
    )
    def test_legal_edges(self, current: str, target: str) -> None:
        assert can_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            ("active", "resolved"),
            ("resolved", "cancelled"),
            ("cancelled", "active"),
            ("resolving", "active"),
        ],
    )
    def test_illegal_edges(self, current: str, target: str) -> None:
        assert not can_transition(current, target)

    def test_terminal(self) -> None:
        assert is_terminal("resolved")
        assert is_terminal("cancelled")
        assert not is_terminal("resolving")


class TestEnsureNotTerminal:
    def test_resolved_raises_already_resolved(self) -> None:
        with pytest.raises(AlreadyResolvedError):
            ensure_not_terminal("mkt_1", "resolved")

    def test_cancelled_raises_invalid_state(self) -> None:
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            ensure_not_terminal("mkt_1", "cancelled")
        assert not isinstance(exc_info.value, AlreadyResolvedError)

    def test_open_statuses_pass(self) -> None:
        for status in ("active", "pending_resolution", "resolving"):
            ensure_not_terminal("mkt_1", status)


class TestTransitionPath:
    def test_active_walks_forward_chain(self) -> None:
        assert transition_path("mkt_1", "active", "resolved") == [
            MarketStatus.PENDING_RESOLUTION,
            MarketStatus.RESOLVING,
            MarketStatus.RESOLVED,
        ]

    def test_pending_resolution_to_resolved(self) -> None:
        assert transition_path("mkt_1", "pending_resolution", "resolved") == [
            MarketStatus.RESOLVING,
            MarketStatus.RESOLVED,
        ]

    def test_direct_edge(self) -> None:
        assert transition_path("mkt_1", "resolving", "resolved") == [MarketStatus.RESOLVED]
        assert transition_path("mkt_1", "active", "cancelled") == [MarketStatus.CANCELLED]

    def test_from_resolved_fails(self) -> None:
        with pytest.raises(AlreadyResolvedError):
            transition_path("mkt_1", "resolved", "resolved")

    def test_from_cancelled_fails(self) -> None:
        with pytest.raises(InvalidStateTransitionError):
            transition_path("mkt_1", "cancelled", "resolved")

    def test_backwards_fails(self) -> None:
        with pytest.raises(InvalidStateTransitionError):
            transition_path("mkt_1", "resolving", "active")
