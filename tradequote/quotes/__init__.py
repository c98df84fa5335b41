from tradequote.quotes.adapters import DEFAULT_POLLING_INTERVAL_S, QuoteProviderAdapter
from tradequote.quotes.engine import ApiQuoteEntry, TradeQuoteEngine
from tradequote.quotes.execution import ExecutionStateStore, HopExecutionState, InMemoryExecutionStore
from tradequote.quotes.input import (
    SKIP,
    AccountMetadata,
    ActiveTradeSnapshot,
    QuoteInputError,
    TradeInputs,
    build_trade_quote_input,
    should_skip,
)
from tradequote.quotes.ranking import QUOTE_META_VERSION, QuoteSummary, build_quote_summary, sort_api_quotes

__all__ = [
    "DEFAULT_POLLING_INTERVAL_S",
    "QUOTE_META_VERSION",
    "SKIP",
    "AccountMetadata",
    "ActiveTradeSnapshot",
    "ApiQuoteEntry",
    "ExecutionStateStore",
    "HopExecutionState",
    "InMemoryExecutionStore",
    "QuoteInputError",
    "QuoteProviderAdapter",
    "QuoteSummary",
    "TradeInputs",
    "TradeQuoteEngine",
    "build_quote_summary",
    "build_trade_quote_input",
    "should_skip",
    "sort_api_quotes",
]
