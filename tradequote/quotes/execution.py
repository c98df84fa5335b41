"""
Execution-state contract consumed by the quote engine.

The engine only reads hop states; it produces three mutations: confirmed
quote, active quote and the aborted-request flag.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from tradequote.models.quote import TradeQuote


class HopExecutionState(str, Enum):
    AWAITING_INPUT = "AwaitingInput"
    AWAITING_SWAP = "AwaitingSwap"
    EXECUTING = "Executing"
    COMPLETE = "Complete"
    FAILED = "Failed"


class ExecutionStateStore(Protocol):
    def get_hop_state(self, trade_id: str, hop_index: int) -> HopExecutionState: ...

    def get_active_quote(self) -> TradeQuote | None: ...

    def set_confirmed_quote(self, quote: TradeQuote | None) -> None: ...

    def set_active_quote(self, quote: TradeQuote | None) -> None: ...

    def set_is_trade_quote_request_aborted(self, aborted: bool) -> None: ...


@dataclass
class InMemoryExecutionStore:
    """Dict-backed store; hops without a recorded state are awaiting swap."""

    hop_states: dict[tuple[str, int], HopExecutionState] = field(default_factory=dict)
    confirmed_quote: TradeQuote | None = None
    active_quote: TradeQuote | None = None
    is_trade_quote_request_aborted: bool = False

    def get_hop_state(self, trade_id: str, hop_index: int) -> HopExecutionState:
        return self.hop_states.get((trade_id, hop_index), HopExecutionState.AWAITING_SWAP)

    def set_hop_state(self, trade_id: str, hop_index: int, state: HopExecutionState) -> None:
        self.hop_states[(trade_id, hop_index)] = state

    def get_active_quote(self) -> TradeQuote | None:
        return self.active_quote

    def set_confirmed_quote(self, quote: TradeQuote | None) -> None:
        self.confirmed_quote = quote

    def set_active_quote(self, quote: TradeQuote | None) -> None:
        self.active_quote = quote

    def set_is_trade_quote_request_aborted(self, aborted: bool) -> None:
        self.is_trade_quote_request_aborted = aborted
