"""
Trade quote aggregation.

``TradeQuoteEngine`` owns the shared quote-request input and the ApiQuoteSet
(one entry per provider). Ordering rules:

- every ``update_inputs`` bumps the input generation, cancels the old
  generation's polling tasks and clears the quote set; a call overtaken
  by a newer one while cancelling returns without publishing;
- each fetch takes the next per-provider sequence number; a completion whose
  generation or sequence is no longer current is dropped, so the last-issued
  fetch for a provider always wins;
- the automatic active-quote transition and explicit user selection share one
  lock and one monotonic request clock; a user selection requested after the
  triggering fetch was issued is never overwritten.

Fetching is permitted only while the snapshot hop is ``AwaitingSwap`` and the
active quote is not yet executable.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Literal, Mapping, Sequence

from tradequote.config import AppConfig, FeeModelConfig
from tradequote.models.quote import ApiQuote, QuoteError, TradeQuote, TradeQuoteErrorCode
from tradequote.obs.logging import log_event
from tradequote.obs.telemetry import QUOTES_RECEIVED_EVENT, ClosableTelemetrySink, TelemetrySink, build_telemetry_sink
from tradequote.quotes.adapters import DEFAULT_POLLING_INTERVAL_S, QuoteProviderAdapter
from tradequote.quotes.execution import ExecutionStateStore, HopExecutionState
from tradequote.quotes.input import (
    SKIP,
    ActiveTradeSnapshot,
    QuoteInputError,
    QuoteRequestInput,
    TradeInputs,
    build_trade_quote_input,
    should_skip,
)
from tradequote.quotes.ranking import QuoteSummary, build_quote_summary, sort_api_quotes

EntryStatus = Literal["loading", "settled"]


@dataclass(frozen=True)
class ApiQuoteEntry:
    """
    Live ApiQuoteSet entry of one provider.

    While ``loading`` the previous response (if any) stays readable in
    ``api_quote``.
    """
    provider: str
    status: EntryStatus
    api_quote: ApiQuote | None
    generation: int
    fetch_seq: int
    requested_at: int

    @property
    def is_loading(self) -> bool:
        return self.status == "loading"


class TradeQuoteEngine:
    def __init__(
        self,
        adapters: Sequence[QuoteProviderAdapter],
        store: ExecutionStateStore,
        snapshot: ActiveTradeSnapshot,
        *,
        telemetry: TelemetrySink | None = None,
        fee_parameters: Mapping[str, FeeModelConfig] | None = None,
        default_polling_interval_s: float = DEFAULT_POLLING_INTERVAL_S,
        polling_intervals_s: Mapping[str, float] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._adapters = {adapter.name: adapter for adapter in adapters}
        self._store = store
        self._snapshot = snapshot
        self._telemetry = telemetry
        self._owned_sink: ClosableTelemetrySink | None = None
        self._fee_parameters = fee_parameters
        self._default_polling_interval_s = default_polling_interval_s
        self._polling_intervals_s = dict(polling_intervals_s or {})
        self._logger = logger or logging.getLogger(__name__)

        self._confirmed_provider = snapshot.provider
        self._generation = 0
        self._input: QuoteRequestInput = SKIP
        self._inputs: TradeInputs | None = None
        self._entries: dict[str, ApiQuoteEntry] = {}
        self._fetch_seq: dict[str, int] = {name: 0 for name in self._adapters}
        self._tasks: dict[str, asyncio.Task[None]] = {}

        self._mutation_lock = asyncio.Lock()
        self._request_clock = itertools.count(1)
        self._last_user_selection_at = 0
        self._auto_selected_generation = 0

    @classmethod
    def from_config(
        cls,
        adapters: Sequence[QuoteProviderAdapter],
        store: ExecutionStateStore,
        snapshot: ActiveTradeSnapshot,
        config: AppConfig,
        *,
        telemetry: TelemetrySink | None = None,
        logger: logging.Logger | None = None,
    ) -> "TradeQuoteEngine":
        """
        Build an engine over the adapters enabled in ``quotes.enabled_providers`` (all when unset).

        Without an explicit ``telemetry`` sink one is built from
        ``obs.telemetry_path``; the engine owns it and closes it in ``aclose``.
        """
        enabled = config.quotes.enabled_providers
        owned_sink = None
        if telemetry is None:
            owned_sink = build_telemetry_sink(config.obs.telemetry_path, logger or logging.getLogger(__name__))
            telemetry = owned_sink
        engine = cls(
            [adapter for adapter in adapters if enabled is None or adapter.name in enabled],
            store,
            snapshot,
            telemetry=telemetry,
            fee_parameters=config.fees.models,
            default_polling_interval_s=config.quotes.default_polling_interval_s,
            polling_intervals_s=config.quotes.polling_intervals_s,
            logger=logger,
        )
        engine._owned_sink = owned_sink
        return engine

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def quote_input(self) -> QuoteRequestInput:
        return self._input

    @property
    def confirmed_provider(self) -> str | None:
        return self._confirmed_provider

    @property
    def is_any_loading(self) -> bool:
        return any(entry.is_loading for entry in self._entries.values())

    def entry(self, provider: str) -> ApiQuoteEntry | None:
        return self._entries.get(provider)

    def api_quotes(self) -> list[ApiQuote]:
        return [entry.api_quote for entry in self._entries.values() if entry.api_quote is not None]

    def sorted_quotes(self) -> list[ApiQuote]:
        return sort_api_quotes(self.api_quotes())

    def polling_interval_for(self, provider: str) -> float:
        if provider in self._polling_intervals_s:
            return self._polling_intervals_s[provider]
        adapter = self._adapters.get(provider)
        if adapter is not None and adapter.polling_interval_s:
            return adapter.polling_interval_s
        return self._default_polling_interval_s

    def is_fetch_permitted(self) -> bool:
        trade_id = self._snapshot.trade_id
        if trade_id is None:
            return False
        if self._store.get_hop_state(trade_id, self._snapshot.hop_index) != HopExecutionState.AWAITING_SWAP:
            return False
        active = self._store.get_active_quote()
        return not (active is not None and active.is_executable)

    async def update_inputs(self, inputs: TradeInputs) -> QuoteRequestInput:
        """
        React to a change of any tracked input.

        Raises:
            QuoteInputError: Firm quote input could not be built; the input
                stays SKIP for this generation.
        """
        if not self.is_fetch_permitted():
            log_event(
                self._logger,
                logging.DEBUG,
                "quote_fetch_not_permitted",
                "Input change ignored outside AwaitingSwap or with an executable quote",
                trade_id=self._snapshot.trade_id,
            )
            return self._input

        self._generation += 1
        generation = self._generation
        await self._cancel_polling()
        if generation != self._generation:
            log_event(
                self._logger,
                logging.DEBUG,
                "quote_input_superseded",
                "Input change overtaken by a newer one",
                generation=generation,
                current_generation=self._generation,
            )
            return self._input
        self._entries.clear()
        self._inputs = inputs

        if should_skip(inputs):
            self._input = SKIP
            self._store.set_is_trade_quote_request_aborted(True)
            log_event(
                self._logger,
                logging.INFO,
                "quote_request_aborted",
                "Quote request skipped for incomplete input",
                generation=generation,
                sell_asset_id=inputs.sell_asset.asset_id,
                buy_asset_id=inputs.buy_asset.asset_id,
            )
            return SKIP

        try:
            quote_input = build_trade_quote_input(inputs, fee_parameters=self._fee_parameters)
        except QuoteInputError as exc:
            self._input = SKIP
            log_event(
                self._logger,
                logging.ERROR,
                "quote_input_failed",
                "Quote input construction failed",
                generation=generation,
                error=str(exc),
            )
            raise

        self._input = quote_input
        self._store.set_is_trade_quote_request_aborted(False)
        log_event(
            self._logger,
            logging.INFO,
            "quote_input_published",
            "Published quote request input",
            generation=generation,
            sell_amount_base_unit=quote_input.sell_amount_base_unit,
            affiliate_bps=quote_input.affiliate_bps,
            providers=list(self._adapters),
        )
        for name in self._adapters:
            self._tasks[name] = asyncio.create_task(self._poll(name, generation))
        return quote_input

    async def fetch_provider(self, provider: str) -> ApiQuote | None:
        """
        Fetch one provider for the current input generation.

        Returns the response written to the quote set, or None when the input
        is SKIP or the response went stale while in flight.
        """
        adapter = self._adapters[provider]
        quote_input = self._input
        if quote_input is SKIP:
            return None

        generation = self._generation
        fetch_seq = self._fetch_seq[provider] + 1
        self._fetch_seq[provider] = fetch_seq
        requested_at = next(self._request_clock)
        previous = self._entries.get(provider)
        self._entries[provider] = ApiQuoteEntry(
            provider=provider,
            status="loading",
            api_quote=previous.api_quote if previous else None,
            generation=generation,
            fetch_seq=fetch_seq,
            requested_at=requested_at,
        )

        try:
            api_quote = await adapter.fetch_quote(quote_input)  # type: ignore[arg-type]
        except Exception as exc:
            log_event(
                self._logger,
                logging.WARNING,
                "quote_provider_failed",
                "Quote provider raised",
                provider=provider,
                generation=generation,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            api_quote = ApiQuote(
                provider=provider,
                quote=None,
                errors=(QuoteError(error=TradeQuoteErrorCode.UNKNOWN_ERROR.value, message=str(exc)),),
            )

        if generation != self._generation or fetch_seq != self._fetch_seq[provider]:
            log_event(
                self._logger,
                logging.DEBUG,
                "quote_response_stale",
                "Dropped superseded quote response",
                provider=provider,
                generation=generation,
                current_generation=self._generation,
                fetch_seq=fetch_seq,
                current_fetch_seq=self._fetch_seq[provider],
            )
            return None

        self._entries[provider] = ApiQuoteEntry(
            provider=provider,
            status="settled",
            api_quote=api_quote,
            generation=generation,
            fetch_seq=fetch_seq,
            requested_at=requested_at,
        )
        await self._maybe_auto_select(api_quote, generation, requested_at)
        self._maybe_emit_telemetry()
        return api_quote

    async def select_quote(self, provider: str) -> TradeQuote | None:
        """Explicit user selection of a provider's current quote."""
        requested_at = next(self._request_clock)
        async with self._mutation_lock:
            self._last_user_selection_at = requested_at
            entry = self._entries.get(provider)
            quote = entry.api_quote.quote if entry and entry.api_quote else None
            if quote is None:
                log_event(
                    self._logger,
                    logging.WARNING,
                    "quote_selection_missing",
                    "No quote to select for provider",
                    provider=provider,
                )
                return None
            self._store.set_active_quote(quote)
            log_event(
                self._logger,
                logging.INFO,
                "quote_selected",
                "Active quote set",
                provider=provider,
                automatic=False,
                quote_id=quote.id,
            )
            return quote

    def summarize(self) -> QuoteSummary | None:
        if self._inputs is None:
            return None
        return build_quote_summary(
            self.api_quotes(),
            sell_asset=self._inputs.sell_asset,
            buy_asset=self._inputs.buy_asset,
            sell_amount_usd=self._inputs.sell_amount_usd if self._inputs.sell_asset_usd_rate is not None else None,
        )

    async def aclose(self) -> None:
        await self._cancel_polling()
        if self._owned_sink is not None:
            self._owned_sink.close()
            self._owned_sink = None

    async def _poll(self, provider: str, generation: int) -> None:
        interval = self.polling_interval_for(provider)
        while generation == self._generation and self._input is not SKIP and self.is_fetch_permitted():
            await self.fetch_provider(provider)
            await asyncio.sleep(interval)

    async def _cancel_polling(self) -> None:
        tasks = [task for task in self._tasks.values() if task is not asyncio.current_task()]
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _maybe_auto_select(self, api_quote: ApiQuote, generation: int, requested_at: int) -> None:
        quote = api_quote.quote
        if api_quote.provider != self._confirmed_provider or quote is None:
            return

        async with self._mutation_lock:
            if generation != self._generation or self._auto_selected_generation == generation:
                return
            if self._last_user_selection_at > requested_at:
                log_event(
                    self._logger,
                    logging.INFO,
                    "quote_auto_select_skipped",
                    "User selection is newer than the triggering fetch",
                    provider=api_quote.provider,
                    generation=generation,
                )
                return
            active = self._store.get_active_quote()
            if active is not None and active.is_executable and not quote.is_executable:
                log_event(
                    self._logger,
                    logging.INFO,
                    "quote_auto_select_skipped",
                    "Executable active quote is not replaced by a rate",
                    provider=api_quote.provider,
                    generation=generation,
                )
                return

            self._store.set_confirmed_quote(quote)
            self._store.set_active_quote(quote)
            self._auto_selected_generation = generation
            log_event(
                self._logger,
                logging.INFO,
                "quote_selected",
                "Active quote set",
                provider=api_quote.provider,
                automatic=True,
                quote_id=quote.id,
                generation=generation,
            )

    def _maybe_emit_telemetry(self) -> None:
        if self._telemetry is None or self.is_any_loading:
            return
        summary = self.summarize()
        if summary is None:
            return
        self._telemetry.track(QUOTES_RECEIVED_EVENT, summary.to_payload())
