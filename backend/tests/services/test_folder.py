# tests/services/test_folder.py
"""
Unit tests for the ledger folder.

These tests verify the pure folding logic: no sources, no prices.

Test Coverage:
- Reference scenarios (seed, buy, sell, short, cover, negative cash)
- Invariants: cost_basis == |qty| × avg_cost, cash face value
- Idempotence, input order on equal timestamps, dust cleanup
- Multi-lot seeding, THB cost currency, swaps, fees, transfers
- Diagnostics for clamped anomalies
"""

from decimal import Decimal

import pytest

from tests.conftest import BASE_TIME, balance, entry
from tracker.services.positions.folder import (
    LedgerFolder,
    calculate_positions,
    ledger_sort_key,
)
from tracker.services.positions.types import DiagnosticKind, LedgerEntry

TOLERANCE = Decimal("1e-6")
FX = Decimal("35")


def fold(balances=(), entries=(), fx_rate=FX, config=None):
    return LedgerFolder(fx_rate=fx_rate, config=config).fold(balances, entries)


def kinds(result) -> list[DiagnosticKind]:
    return [d.kind for d in result.diagnostics]


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def aapl_opening():
    """Scenario 1 opening balance: 10 AAPL at $100."""
    return [balance("AAPL", 10, 100)]


@pytest.fixture
def aapl_buy():
    """Scenario 2 buy: $500 for 5 AAPL."""
    return entry(1, "USD", 500, "AAPL", 5, transaction_type="buy")


@pytest.fixture
def aapl_sell():
    """Scenario 3 sell: 5 AAPL for $600."""
    return entry(2, "AAPL", 5, "USD", 600, transaction_type="sell")


# =============================================================================
# REFERENCE SCENARIOS
# =============================================================================

class TestReferenceScenarios:
    """The five reference scenarios for the folder."""

    def test_scenario_1_seed_only(self, aapl_opening):
        """Opening balance with no ledger is taken verbatim."""
        positions = calculate_positions(aapl_opening, [], FX)

        aapl = positions["AAPL"]
        assert aapl.quantity == Decimal("10")
        assert aapl.avg_cost == Decimal("100")
        assert aapl.cost_basis == Decimal("1000")
        assert aapl.cost_currency == "USD"
        assert aapl.realized_pnl == Decimal("0")

    def test_scenario_2_weighted_average_buy(self, aapl_opening, aapl_buy):
        """Buying at the same price keeps the average."""
        positions = calculate_positions(aapl_opening, [aapl_buy], FX)

        aapl = positions["AAPL"]
        assert aapl.quantity == Decimal("15")
        assert aapl.cost_basis == Decimal("1500")
        assert aapl.avg_cost == Decimal("100")

    def test_scenario_3_sell_realizes_pnl(self, aapl_opening, aapl_buy, aapl_sell):
        """Selling realizes proceeds minus average cost; avg_cost unchanged."""
        positions = calculate_positions(aapl_opening, [aapl_buy, aapl_sell], FX)

        aapl = positions["AAPL"]
        assert aapl.quantity == Decimal("10")
        assert aapl.cost_basis == Decimal("1000")
        assert aapl.avg_cost == Decimal("100")
        assert aapl.realized_pnl == Decimal("100")

    def test_scenario_4_short_entry_and_cover(self):
        """Short at $200, cover at $150: +$500 realized."""
        short = entry(1, "TSLA", 10, "USD", 2000, transaction_type="sell")
        cover = entry(2, "USD", 1500, "TSLA", 10, transaction_type="buy")

        after_short = calculate_positions([], [short], FX)["TSLA"]
        assert after_short.quantity == Decimal("-10")
        assert after_short.avg_cost == Decimal("200")
        assert after_short.cost_basis == Decimal("2000")

        after_cover = calculate_positions([], [short, cover], FX)["TSLA"]
        assert after_cover.quantity == Decimal("0")
        assert after_cover.cost_basis == Decimal("0")
        assert after_cover.realized_pnl == Decimal("500")

    def test_scenario_5_negative_cash_keeps_face_value(self):
        """Negative cash never weighted-averages; avg_cost stays 1."""
        entries = [
            entry(1, "USD", 300, "AAPL", 2),
            entry(2, "AAPL", 1, "USD", 180),
            entry(3, "USD", 55.5, "MSFT", 0.1),
        ]
        positions = calculate_positions([balance("USD", -10, 7, asset_type="cash")], entries, FX)

        usd = positions["USD"]
        assert usd.quantity == Decimal("-10") - 300 + 180 - Decimal("55.5")
        assert usd.avg_cost == Decimal("1")
        assert usd.cost_basis == abs(usd.quantity)
        assert usd.cost_currency == "USD"


# =============================================================================
# INVARIANTS
# =============================================================================

class TestInvariants:
    """Properties that hold after every fold."""

    @pytest.fixture
    def busy_ledger(self):
        return [
            entry(1, "USD", 1000, "AAPL", 7),
            entry(2, "USD", 333.33, "AAPL", 3),
            entry(3, "AAPL", 4, "USD", 700),
            entry(4, "NVDA", 3, "USD", 1234.56),
            entry(5, "NVDA", 2, "USD", 999.99),
            entry(6, "USD", 1000, "NVDA", 1),
            entry(7, "THB", 7000, "PTT", 200, transaction_currency="THB"),
            entry(8, "PTT", 50, "THB", 1900, transaction_currency="THB"),
            entry(9, "BTC", 0.1, "ETH", 1.7),
            entry(10, "USD", 100, "USDT", 100, fees=1, fee_currency="USD"),
        ]

    def test_cost_basis_matches_quantity_times_avg_cost(self, busy_ledger):
        """cost_basis == |quantity| × avg_cost within 1e-6."""
        opening = [balance("BTC", 1, 30000, asset_type="crypto"), balance("THB", 50000)]
        positions = calculate_positions(opening, busy_ledger, FX)

        for position in positions.values():
            expected = abs(position.quantity) * position.avg_cost
            assert abs(position.cost_basis - expected) <= TOLERANCE, position.ticker
            assert position.cost_basis >= 0

    def test_cash_avg_cost_is_face_value(self, busy_ledger):
        """USD-class cash is 1, THB cash is 1 / fx_rate, whatever happened."""
        opening = [balance("THB", 50000, 99), balance("USDT", 5, 3)]
        positions = calculate_positions(opening, busy_ledger, FX)

        assert positions["USD"].avg_cost == Decimal("1")
        assert positions["USDT"].avg_cost == Decimal("1")
        assert positions["THB"].avg_cost == Decimal("1") / FX
        assert positions["THB"].cost_currency == "USD"

    def test_idempotent(self, busy_ledger):
        """Folding twice gives identical output."""
        opening = [balance("BTC", 1, 30000)]

        first = calculate_positions(opening, busy_ledger, FX)
        second = calculate_positions(opening, busy_ledger, FX)

        assert dict(first) == dict(second)

    def test_result_is_read_only(self, aapl_opening):
        """The returned mapping cannot be mutated."""
        positions = calculate_positions(aapl_opening, [], FX)

        with pytest.raises(TypeError):
            positions["AAPL"] = None  # type: ignore[index]


# =============================================================================
# ORDERING
# =============================================================================

class TestOrdering:
    """Chronological replay and tie handling."""

    @pytest.fixture
    def sell_then_buy(self):
        """Two entries with the same timestamp: a sell, then a buy."""
        return [
            entry(1, "AAPL", 5, "USD", 600),
            entry(1, "USD", 1000, "AAPL", 5),
        ]

    def test_ties_keep_input_order(self, aapl_opening, sell_then_buy):
        """Sell first: realize at $100 cost, then average in at $200."""
        aapl = calculate_positions(aapl_opening, sell_then_buy, FX)["AAPL"]

        assert aapl.realized_pnl == Decimal("100")
        assert aapl.quantity == Decimal("10")
        assert aapl.cost_basis == Decimal("1500")
        assert aapl.avg_cost == Decimal("150")

    def test_reversed_ties_give_reversed_result(self, aapl_opening, sell_then_buy):
        """Buy first: the sell realizes against the higher average."""
        aapl = calculate_positions(aapl_opening, list(reversed(sell_then_buy)), FX)["AAPL"]

        assert aapl.quantity == Decimal("10")
        assert aapl.realized_pnl < Decimal("0")

    def test_entries_sorted_by_date(self, aapl_opening):
        """Out-of-order input is replayed chronologically."""
        later_sell = entry(5, "AAPL", 10, "USD", 2000)
        earlier_buy = entry(1, "USD", 1000, "AAPL", 10)

        aapl = calculate_positions(aapl_opening, [later_sell, earlier_buy], FX)["AAPL"]

        assert aapl.quantity == Decimal("10")
        assert aapl.realized_pnl == Decimal("1000")

    def test_sort_key_mixes_dates_and_datetimes(self):
        """Dates sort as midnight UTC; naive datetimes are read as UTC."""
        day = LedgerEntry(transaction_date=BASE_TIME.date())
        naive = LedgerEntry(transaction_date=BASE_TIME.replace(tzinfo=None))

        assert ledger_sort_key(day) < ledger_sort_key(naive)


# =============================================================================
# DUST AND CLEANUP
# =============================================================================

class TestCleanup:
    """Step C: dust, clamps and re-derivation."""

    def test_dust_becomes_zero(self):
        """A long reduced to 1e-10 reports quantity 0 and cost_basis 0."""
        result = fold(
            [balance("ETH", 1, 2000)],
            [entry(1, "ETH", "0.9999999999", "USD", 2500)],
        )

        eth = result.positions["ETH"]
        assert eth.quantity == Decimal("0")
        assert eth.cost_basis == Decimal("0")
        assert eth.avg_cost == Decimal("2000")
        assert DiagnosticKind.OVERSOLD not in kinds(result)

    def test_oversold_long_is_closed_with_diagnostic(self):
        """Selling more than held zeroes the position and reports it."""
        result = fold([balance("AAPL", 10, 100)], [entry(1, "AAPL", 15, "USD", 1500)])

        aapl = result.positions["AAPL"]
        assert aapl.quantity == Decimal("0")
        assert aapl.cost_basis == Decimal("0")
        assert kinds(result) == [DiagnosticKind.OVERSOLD]

    def test_negative_cost_basis_is_clamped(self):
        """A negative cost basis is clamped to zero and reported."""
        result = fold([balance("XYZ", 10, -5)])

        xyz = result.positions["XYZ"]
        assert xyz.cost_basis == Decimal("0")
        assert xyz.avg_cost == Decimal("0")
        assert kinds(result) == [DiagnosticKind.NEGATIVE_COST_BASIS]

    def test_closed_positions_are_kept(self, aapl_opening):
        """Fully sold positions stay in the map with their realized P&L."""
        positions = calculate_positions(
            aapl_opening, [entry(1, "AAPL", 10, "USD", 1200)], FX
        )

        assert positions["AAPL"].is_closed
        assert positions["AAPL"].realized_pnl == Decimal("200")


# =============================================================================
# SEEDING
# =============================================================================

class TestSeeding:
    """Step A: opening balances."""

    def test_cash_ignores_stated_avg_cost(self):
        """Cash is seeded at face value in USD."""
        thb = calculate_positions([balance("THB", 35000, 99, "THB")], [], FX)["THB"]

        assert thb.avg_cost == Decimal("1") / FX
        assert thb.cost_currency == "USD"
        assert abs(thb.cost_basis - Decimal("1000")) <= TOLERANCE

    def test_opening_short(self):
        """A negative opening quantity is a short with a positive cost basis."""
        tsla = calculate_positions([balance("TSLA", -4, 250)], [], FX)["TSLA"]

        assert tsla.quantity == Decimal("-4")
        assert tsla.is_short
        assert tsla.cost_basis == Decimal("1000")

    def test_same_ticker_lots_are_combined(self):
        """Two long lots merge with a weighted average cost."""
        positions = calculate_positions(
            [balance("AAPL", 10, 100), balance("aapl", 10, 200)], [], FX
        )

        aapl = positions["AAPL"]
        assert list(positions) == ["AAPL"]
        assert aapl.quantity == Decimal("20")
        assert aapl.cost_basis == Decimal("3000")
        assert aapl.avg_cost == Decimal("150")

    def test_lots_in_other_currency_are_converted(self):
        """A THB lot joins a USD position at the current rate."""
        aapl = calculate_positions(
            [balance("AAPL", 10, 100, "USD"), balance("AAPL", 10, 3500, "THB")], [], FX
        )["AAPL"]

        assert aapl.cost_currency == "USD"
        assert aapl.cost_basis == Decimal("2000")
        assert aapl.avg_cost == Decimal("100")

    def test_mixed_sign_lots_are_reported(self):
        """Long and short lots for one ticker raise a diagnostic."""
        result = fold([balance("AAPL", 10, 100), balance("AAPL", -4, 100)])

        assert result.positions["AAPL"].quantity == Decimal("6")
        assert kinds(result) == [DiagnosticKind.MIXED_OPENING_LOTS]

    def test_blank_ticker_is_skipped(self):
        positions = calculate_positions([balance("  ", 5, 1)], [], FX)

        assert len(positions) == 0


# =============================================================================
# REPLAY
# =============================================================================

class TestReplay:
    """Step B: individual transaction shapes."""

    def test_cash_legs_move_at_face(self):
        """Buying spends cash; selling receives it."""
        positions = calculate_positions(
            [balance("USD", 1000)],
            [entry(1, "USD", 600, "AAPL", 6), entry(2, "AAPL", 2, "USD", 300)],
            FX,
        )

        assert positions["USD"].quantity == Decimal("700")
        assert positions["USD"].cost_basis == Decimal("700")

    def test_tickers_are_case_insensitive(self):
        positions = calculate_positions(
            [], [entry(1, "usd", 100, "aapl", 1), entry(2, "USD", 100, "AAPL", 1)], FX
        )

        assert set(positions) == {"USD", "AAPL"}
        assert positions["AAPL"].quantity == Decimal("2")

    def test_adding_to_short_averages_entry_price(self):
        """Shorting more at $300 moves a $200 short to $250."""
        positions = calculate_positions(
            [],
            [entry(1, "TSLA", 10, "USD", 2000), entry(2, "TSLA", 10, "USD", 3000)],
            FX,
        )

        tsla = positions["TSLA"]
        assert tsla.quantity == Decimal("-20")
        assert tsla.avg_cost == Decimal("250")
        assert tsla.cost_basis == Decimal("5000")

    def test_partial_cover_keeps_short_avg_cost(self):
        positions = calculate_positions(
            [],
            [entry(1, "TSLA", 10, "USD", 2000), entry(2, "USD", 1000, "TSLA", 4)],
            FX,
        )

        tsla = positions["TSLA"]
        assert tsla.quantity == Decimal("-6")
        assert tsla.avg_cost == Decimal("200")
        assert tsla.realized_pnl == Decimal("-200")

    def test_cover_beyond_short_is_capped_and_reported(self):
        """Only the short is covered; the excess is reported, not bought."""
        result = fold(
            [],
            [entry(1, "TSLA", 10, "USD", 2000), entry(2, "USD", 1500, "TSLA", 15)],
        )

        tsla = result.positions["TSLA"]
        assert tsla.quantity == Decimal("0")
        assert tsla.realized_pnl == Decimal("500")
        assert kinds(result) == [DiagnosticKind.COVER_EXCEEDS_SHORT]

    def test_fee_in_kind_on_buy_adds_to_cost(self):
        positions = calculate_positions(
            [], [entry(1, "USD", 1000, "AAPL", 10, fees=5, fee_currency="AAPL")], FX
        )

        assert positions["AAPL"].cost_basis == Decimal("1005")
        assert positions["AAPL"].avg_cost == Decimal("100.5")

    def test_cash_fee_reduces_cash(self):
        positions = calculate_positions(
            [], [entry(1, "USD", 1000, "AAPL", 10, fees=5, fee_currency="USD")], FX
        )

        assert positions["USD"].quantity == Decimal("-1005")
        assert positions["AAPL"].cost_basis == Decimal("1000")

    def test_fee_in_kind_on_sell_counts_as_units_sold(self):
        positions = calculate_positions(
            [balance("BTC", 1, 20000)],
            [entry(1, "BTC", "0.5", "USD", 15000, fees="0.01", fee_currency="BTC")],
            FX,
        )

        btc = positions["BTC"]
        assert btc.quantity == Decimal("0.49")
        assert btc.realized_pnl == Decimal("15000") - Decimal("0.51") * 20000

    def test_swap_carries_book_cost(self):
        """Asset-for-asset swaps move book cost and realize nothing."""
        positions = calculate_positions(
            [balance("BTC", 1, 30000, asset_type="crypto")],
            [entry(1, "BTC", "0.5", "ETH", 10, to_asset_type="crypto")],
            FX,
        )

        assert positions["BTC"].quantity == Decimal("0.5")
        assert positions["BTC"].realized_pnl == Decimal("0")
        assert positions["ETH"].cost_basis == Decimal("15000")
        assert positions["ETH"].avg_cost == Decimal("1500")
        assert positions["ETH"].asset_type == "crypto"

    def test_deposit_without_cash_leg(self):
        """Receiving units with no from side costs nothing."""
        positions = calculate_positions([], [entry(1, None, None, "AAPL", 3)], FX)

        assert positions["AAPL"].quantity == Decimal("3")
        assert positions["AAPL"].cost_basis == Decimal("0")

    def test_withdrawal_realizes_nothing(self, aapl_opening):
        """Giving up units with no to side leaves realized P&L at 0."""
        aapl = calculate_positions(aapl_opening, [entry(1, "AAPL", 4)], FX)["AAPL"]

        assert aapl.quantity == Decimal("6")
        assert aapl.cost_basis == Decimal("600")
        assert aapl.realized_pnl == Decimal("0")

    def test_asset_type_upgraded_from_other(self):
        positions = calculate_positions(
            [],
            [entry(1, "USD", 100, "AAPL", 1), entry(2, "USD", 100, "AAPL", 1, to_asset_type="stock")],
            FX,
        )

        assert positions["AAPL"].asset_type == "stock"


# =============================================================================
# CURRENCIES
# =============================================================================

class TestCurrencies:
    """THB cost tracking and FX handling."""

    def test_first_buy_adopts_transaction_currency(self):
        ptt = calculate_positions(
            [], [entry(1, "THB", 3500, "PTT", 100, transaction_currency="THB")], FX
        )["PTT"]

        assert ptt.cost_currency == "THB"
        assert ptt.avg_cost == Decimal("35")

    def test_buy_in_other_currency_is_converted(self):
        """A USD buy into a THB position uses fx_rate_at_time."""
        ptt = calculate_positions(
            [balance("PTT", 100, 35, "THB")],
            [entry(1, "USD", 100, "PTT", 100, fx_rate_at_time=Decimal("36"))],
            FX,
        )["PTT"]

        assert ptt.cost_basis == Decimal("3500") + Decimal("3600")
        assert ptt.avg_cost == Decimal("35.5")

    def test_sell_proceeds_converted_to_cost_currency(self):
        ptt = calculate_positions(
            [balance("PTT", 100, 35, "THB")],
            [entry(1, "PTT", 50, "USD", 60, fx_rate_at_time=Decimal("36"))],
            FX,
        )["PTT"]

        assert ptt.realized_pnl == Decimal("2160") - Decimal("1750")

    def test_missing_trade_rate_uses_current_rate(self):
        ptt = calculate_positions(
            [balance("PTT", 100, 35, "THB")],
            [entry(1, "PTT", 50, "USD", 60, fx_rate_at_time=Decimal("0"))],
            FX,
        )["PTT"]

        assert ptt.realized_pnl == Decimal("2100") - Decimal("1750")

    @pytest.mark.parametrize("bad_rate", [None, 0, -1])
    def test_unusable_current_rate_falls_back(self, bad_rate):
        assert LedgerFolder(fx_rate=bad_rate).fx_rate == Decimal("35.0")

    def test_thb_cash_received(self):
        positions = calculate_positions(
            [balance("PTT", 100, 35, "THB")],
            [entry(1, "PTT", 100, "THB", 4000, transaction_currency="THB")],
            FX,
        )

        thb = positions["THB"]
        assert thb.quantity == Decimal("4000")
        assert thb.avg_cost == Decimal("1") / FX
        assert positions["PTT"].realized_pnl == Decimal("500")

    def test_thb_cash_leg_paid_in_thb(self):
        """THB cash spent is THB cost even when the entry says USD."""
        positions = calculate_positions(
            [balance("THB", 50000)],
            [entry(1, "THB", 35000, "PTT", 1000)],
            FX,
        )

        ptt = positions["PTT"]
        assert ptt.cost_currency == "THB"
        assert ptt.cost_basis == Decimal("35000")
        assert ptt.avg_cost == Decimal("35")
        assert positions["THB"].quantity == Decimal("15000")

    def test_thb_cash_proceeds_converted_from_thb(self):
        """THB received for a USD-cost position converts at the trade rate."""
        aapl = calculate_positions(
            [balance("AAPL", 10, 100)],
            [entry(1, "AAPL", 10, "THB", 38500)],
            FX,
        )["AAPL"]

        assert aapl.realized_pnl == Decimal("100")
