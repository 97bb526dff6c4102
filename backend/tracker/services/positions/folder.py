# backend/tracker/services/positions/folder.py
"""
Ledger folder: opening balances + transaction ledger -> positions.

The folder is a one-shot batch transform. It builds a private, mutable
position map while replaying the ledger and hands back frozen Position
snapshots in a read-only mapping. Nothing here does I/O, and the same
inputs always produce the same output.

Steps:
    A. Seed     - one position per upper-cased ticker from initial balances
    B. Replay   - ledger sorted by transaction_date (ties keep input order),
                  TO side then FROM side of every entry
    C. Cleanup  - dust to zero, negative cost basis clamped, cash re-anchored
                  at face value, avg_cost re-derived from cost_basis

Cash accounting:
    Cash and stablecoins are never weighted-averaged. Their avg_cost is the
    face value in USD (1 for USD-class, 1 / fx_rate for THB-class) and their
    cost_basis is |quantity| × face, always in USD.

Short accounting:
    Giving up a non-cash asset that is not held opens or adds to a short
    (negative quantity). Receiving it while short covers the short and
    realizes (entry price - cover price) × units covered.

Usage:
    positions = calculate_positions(balances, entries, fx_rate=Decimal("35"))
    positions["AAPL"].cost_basis
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from types import MappingProxyType

from tracker.config import Settings, settings as default_settings
from tracker.services.constants import DEFAULT_ASSET_TYPE, ZERO
from tracker.services.positions.classifier import CashClassifier
from tracker.services.positions.types import (
    Diagnostic,
    DiagnosticKind,
    FoldResult,
    InitialBalance,
    LedgerEntry,
    Position,
)
from tracker.utils.fx_conversion import (
    USD,
    convert_amount,
    normalize_currency,
    safe_fx_rate,
    to_decimal,
)

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


# =============================================================================
# MUTABLE FOLD STATE
# =============================================================================

@dataclass
class _PositionState:
    """Working copy of one position. Never leaves this module."""

    ticker: str
    asset_type: str
    is_cash: bool
    quantity: Decimal = ZERO
    avg_cost: Decimal = ZERO
    cost_basis: Decimal = ZERO
    cost_currency: str = USD
    realized_pnl: Decimal = ZERO

    @property
    def is_untouched(self) -> bool:
        """Nothing held, no cost and no history of realized P&L."""
        return (
            self.quantity == ZERO
            and self.cost_basis == ZERO
            and self.realized_pnl == ZERO
        )

    def freeze(self) -> Position:
        return Position(
            ticker=self.ticker,
            asset_type=self.asset_type,
            quantity=self.quantity,
            avg_cost=self.avg_cost,
            cost_basis=self.cost_basis,
            cost_currency=self.cost_currency,
            realized_pnl=self.realized_pnl,
        )


def _clean_ticker(ticker: str | None) -> str | None:
    if ticker is None:
        return None
    cleaned = str(ticker).strip().upper()
    return cleaned or None


def ledger_sort_key(entry: LedgerEntry) -> datetime:
    """
    Chronological sort key for a ledger entry.

    Dates become midnight UTC, naive datetimes are read as UTC, and a
    missing date sorts first. Used with sorted(), which is stable, so
    entries sharing a timestamp keep their input order.
    """
    value = entry.transaction_date
    if value is None:
        return _EPOCH
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    raise TypeError(f"Unsupported transaction_date: {value!r}")


# =============================================================================
# LEDGER FOLDER
# =============================================================================

class LedgerFolder:
    """
    Folds initial balances and a ledger into positions.

    One folder is bound to one current FX rate (THB per USD), which prices
    cash face values and stands in for entries without fx_rate_at_time.
    A zero, negative or missing rate falls back to settings.default_fx_rate.
    """

    def __init__(
            self,
            fx_rate: object = None,
            classifier: CashClassifier | None = None,
            config: Settings | None = None,
    ) -> None:
        config = config or default_settings
        self._classifier = classifier or CashClassifier(config)
        self._default_fx_rate = config.default_fx_rate
        self._fx_rate = safe_fx_rate(fx_rate, config.default_fx_rate)
        self._dust = config.dust_epsilon

    @property
    def fx_rate(self) -> Decimal:
        return self._fx_rate

    def fold(
            self,
            initial_balances: Iterable[InitialBalance] = (),
            ledger_entries: Iterable[LedgerEntry] = (),
    ) -> FoldResult:
        """
        Run steps A-C and return the finished positions.

        Args:
            initial_balances: Opening holdings (any order)
            ledger_entries: Ledger rows (any order; sorted here)

        Returns:
            FoldResult with a read-only ticker -> Position map, in the order
            tickers were first seen, and every diagnostic raised on the way
        """
        states: dict[str, _PositionState] = {}
        diagnostics: list[Diagnostic] = []

        for balance in initial_balances:
            self._seed(states, balance, diagnostics)

        for entry in sorted(ledger_entries, key=ledger_sort_key):
            self._apply_entry(states, entry, diagnostics)

        for state in states.values():
            self._cleanup(state, diagnostics)

        positions = MappingProxyType(
            {ticker: state.freeze() for ticker, state in states.items()}
        )
        return FoldResult(positions=positions, diagnostics=diagnostics)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _face_value(self, ticker: str) -> Decimal:
        return self._classifier.cash_face_value_usd(
            ticker, self._fx_rate, self._default_fx_rate
        )

    def _get_or_create(
            self,
            states: dict[str, _PositionState],
            ticker: str,
            asset_type: str | None,
    ) -> _PositionState:
        state = states.get(ticker)
        if state is None:
            is_cash = self._classifier.is_cash_asset(ticker)
            state = _PositionState(
                ticker=ticker,
                asset_type=asset_type or DEFAULT_ASSET_TYPE,
                is_cash=is_cash,
                avg_cost=self._face_value(ticker) if is_cash else ZERO,
            )
            states[ticker] = state
        elif asset_type and state.asset_type == DEFAULT_ASSET_TYPE:
            state.asset_type = asset_type
        return state

    def _reanchor_cash(self, state: _PositionState) -> None:
        face = self._face_value(state.ticker)
        state.avg_cost = face
        state.cost_basis = abs(state.quantity) * face
        state.cost_currency = USD

    @staticmethod
    def _diagnose(
            diagnostics: list[Diagnostic],
            kind: DiagnosticKind,
            ticker: str,
            message: str,
    ) -> None:
        logger.warning(f"Position {ticker}: {message}")
        diagnostics.append(Diagnostic(kind=kind, ticker=ticker, message=message))

    # -------------------------------------------------------------------------
    # Step A: seed
    # -------------------------------------------------------------------------

    def _seed(
            self,
            states: dict[str, _PositionState],
            balance: InitialBalance,
            diagnostics: list[Diagnostic],
    ) -> None:
        ticker = _clean_ticker(balance.ticker)
        if ticker is None:
            logger.debug("Skipping initial balance without a ticker")
            return

        quantity = to_decimal(balance.quantity)
        seen = ticker in states
        state = self._get_or_create(states, ticker, balance.asset_type)

        if seen and quantity != ZERO and state.quantity != ZERO:
            if (quantity > ZERO) != (state.quantity > ZERO):
                self._diagnose(
                    diagnostics,
                    DiagnosticKind.MIXED_OPENING_LOTS,
                    ticker,
                    f"opening lots mix long and short quantities "
                    f"({state.quantity} and {quantity}); netted",
                )

        if state.is_cash:
            # Stated avg_cost is ignored for cash
            state.quantity += quantity
            self._reanchor_cash(state)
            return

        avg_cost = to_decimal(balance.avg_cost)
        currency = normalize_currency(balance.cost_currency)
        lot_cost = abs(quantity) * avg_cost

        if not seen:
            state.quantity = quantity
            state.avg_cost = avg_cost
            state.cost_basis = lot_cost
            state.cost_currency = currency
            return

        if currency != state.cost_currency:
            lot_cost = convert_amount(
                lot_cost, currency, state.cost_currency, self._fx_rate
            )
        state.quantity += quantity
        state.cost_basis += lot_cost
        if state.quantity != ZERO:
            state.avg_cost = state.cost_basis / abs(state.quantity)

    # -------------------------------------------------------------------------
    # Step B: replay
    # -------------------------------------------------------------------------

    def _apply_entry(
            self,
            states: dict[str, _PositionState],
            entry: LedgerEntry,
            diagnostics: list[Diagnostic],
    ) -> None:
        rate = safe_fx_rate(entry.fx_rate_at_time, self._fx_rate)
        currency = normalize_currency(entry.transaction_currency)
        from_ticker = _clean_ticker(entry.from_ticker)
        to_ticker = _clean_ticker(entry.to_ticker)
        from_amount = to_decimal(entry.from_amount)
        to_amount = to_decimal(entry.to_amount)
        fees = abs(to_decimal(entry.fees))
        fee_ticker = _clean_ticker(entry.fee_currency)

        has_from = from_ticker is not None and from_amount > ZERO
        has_to = to_ticker is not None and to_amount > ZERO

        from_is_cash = has_from and self._classifier.is_cash_asset(from_ticker)
        to_is_cash = has_to and self._classifier.is_cash_asset(to_ticker)

        # A cash leg is denominated in its own currency
        paid_currency = self._classifier.cash_currency(from_ticker) if from_is_cash else currency
        received_currency = self._classifier.cash_currency(to_ticker) if to_is_cash else currency

        # Asset-for-asset swap: value moves across at the from side's book cost
        carried: tuple[Decimal, str] | None = None
        if has_from and has_to and not from_is_cash and not to_is_cash:
            source = states.get(from_ticker)
            if source is not None:
                carried = (from_amount * source.avg_cost, source.cost_currency)
            else:
                carried = (ZERO, currency)

        if has_to:
            state = self._get_or_create(states, to_ticker, entry.to_asset_type)
            fee_in = fees if fee_ticker == to_ticker else ZERO

            if state.is_cash:
                state.quantity += to_amount
                self._reanchor_cash(state)
            elif state.quantity < ZERO:
                self._cover_short(
                    state, to_amount, from_amount if has_from else None,
                    carried, paid_currency, rate, diagnostics,
                )
            else:
                if carried is not None:
                    cost_in, cost_in_currency = carried
                    cost_in += fee_in
                else:
                    cost_in, cost_in_currency = from_amount + fee_in, paid_currency
                self._buy(state, to_amount, cost_in, cost_in_currency, rate)

        if has_from:
            state = self._get_or_create(states, from_ticker, entry.from_asset_type)
            fee_out = fees if fee_ticker == from_ticker else ZERO

            if state.is_cash:
                state.quantity -= from_amount + fee_out
                self._reanchor_cash(state)
            elif state.quantity > ZERO:
                self._sell(
                    state, from_amount + fee_out,
                    to_amount if has_to else None,
                    carried, received_currency, rate, diagnostics,
                )
            else:
                self._open_short(
                    state, from_amount, to_amount if has_to else None,
                    carried, received_currency, rate,
                )

    def _buy(
            self,
            state: _PositionState,
            units: Decimal,
            cost_in: Decimal,
            cost_in_currency: str,
            rate: Decimal,
    ) -> None:
        """Weighted-average buy into a long or empty position."""
        if state.is_untouched:
            state.cost_currency = cost_in_currency
        else:
            cost_in = convert_amount(
                cost_in, cost_in_currency, state.cost_currency, rate
            )

        state.quantity += units
        state.cost_basis += cost_in
        state.avg_cost = (
            state.cost_basis / state.quantity if state.quantity > ZERO else ZERO
        )

    def _cover_short(
            self,
            state: _PositionState,
            units: Decimal,
            cash_paid: Decimal | None,
            carried: tuple[Decimal, str] | None,
            currency: str,
            rate: Decimal,
            diagnostics: list[Diagnostic],
    ) -> None:
        """Buy back (part of) a short at the price implied by the from side."""
        short_qty = abs(state.quantity)
        covered = min(units, short_qty)

        if units > short_qty:
            self._diagnose(
                diagnostics,
                DiagnosticKind.COVER_EXCEEDS_SHORT,
                state.ticker,
                f"cover of {units} exceeds short of {short_qty}; "
                f"excess {units - short_qty} ignored",
            )

        if carried is not None:
            paid = convert_amount(carried[0], carried[1], state.cost_currency, rate)
            price = paid / covered
        elif cash_paid is not None:
            paid = convert_amount(cash_paid, currency, state.cost_currency, rate)
            price = paid / covered
        else:
            # Units returned without a cash leg close at the entry price
            price = state.avg_cost

        state.realized_pnl += (state.avg_cost - price) * covered
        state.quantity += covered
        state.cost_basis = abs(state.quantity) * state.avg_cost

    def _sell(
            self,
            state: _PositionState,
            units_sold: Decimal,
            cash_received: Decimal | None,
            carried: tuple[Decimal, str] | None,
            currency: str,
            rate: Decimal,
            diagnostics: list[Diagnostic],
    ) -> None:
        """Sell from a long at the average cost; avg_cost is not touched."""
        cost_of_sold = units_sold * state.avg_cost

        if carried is not None:
            proceeds = convert_amount(carried[0], carried[1], state.cost_currency, rate)
        elif cash_received is not None:
            proceeds = convert_amount(cash_received, currency, state.cost_currency, rate)
        else:
            # Transfer out: no proceeds, nothing realized
            proceeds = cost_of_sold

        state.realized_pnl += proceeds - cost_of_sold
        state.cost_basis -= cost_of_sold
        state.quantity -= units_sold

        if state.quantity < self._dust:
            if state.quantity < -self._dust:
                self._diagnose(
                    diagnostics,
                    DiagnosticKind.OVERSOLD,
                    state.ticker,
                    f"sold {units_sold} units, {-state.quantity} more than held; "
                    f"position closed at zero",
                )
            state.quantity = ZERO
            state.cost_basis = ZERO

    def _open_short(
            self,
            state: _PositionState,
            units: Decimal,
            cash_received: Decimal | None,
            carried: tuple[Decimal, str] | None,
            currency: str,
            rate: Decimal,
    ) -> None:
        """Open or add to a short; the short's avg_cost is the entry price."""
        if carried is not None:
            proceeds, proceeds_currency = carried
        elif cash_received is not None:
            proceeds, proceeds_currency = cash_received, currency
        else:
            proceeds, proceeds_currency = None, currency

        if state.is_untouched:
            state.cost_currency = proceeds_currency

        if proceeds is None:
            price = state.avg_cost
        else:
            price = convert_amount(
                proceeds, proceeds_currency, state.cost_currency, rate
            ) / units

        prev_qty = abs(state.quantity)
        new_qty = prev_qty + units
        state.avg_cost = (prev_qty * state.avg_cost + units * price) / new_qty
        state.quantity -= units
        state.cost_basis = abs(state.quantity) * state.avg_cost

    # -------------------------------------------------------------------------
    # Step C: cleanup
    # -------------------------------------------------------------------------

    def _cleanup(
            self,
            state: _PositionState,
            diagnostics: list[Diagnostic],
    ) -> None:
        if abs(state.quantity) < self._dust:
            state.quantity = ZERO
            state.cost_basis = ZERO

        if state.cost_basis < ZERO:
            self._diagnose(
                diagnostics,
                DiagnosticKind.NEGATIVE_COST_BASIS,
                state.ticker,
                f"negative cost_basis {state.cost_basis} clamped to 0",
            )
            state.cost_basis = ZERO
            state.avg_cost = ZERO

        if state.is_cash:
            self._reanchor_cash(state)
        elif state.quantity != ZERO:
            state.avg_cost = state.cost_basis / abs(state.quantity)


# =============================================================================
# MODULE ENTRY POINT
# =============================================================================

def calculate_positions(
        initial_balances: Iterable[InitialBalance] = (),
        ledger_entries: Iterable[LedgerEntry] = (),
        fx_rate: object = None,
        *,
        classifier: CashClassifier | None = None,
        config: Settings | None = None,
) -> Mapping[str, Position]:
    """
    Fold balances and ledger into a read-only ticker -> Position map.

    Closed positions (quantity 0) stay in the map so their realized P&L and
    last avg_cost remain visible. Use LedgerFolder.fold() to also receive
    the diagnostics.
    """
    folder = LedgerFolder(fx_rate=fx_rate, classifier=classifier, config=config)
    return folder.fold(initial_balances, ledger_entries).positions
