"""
Unit tests for stats module.

Covers returns, population standard deviation, volatility, ratio helpers,
label breakdowns and holder concentration.
"""

import math

import pytest

from stats import (buy_sell_ratio, daily_returns, holder_concentration, pct_change,
                   percentage_breakdown, population_std, safe_ratio, volatility)


class TestVolatility:
    """Tests for daily returns and their population standard deviation."""

    @pytest.mark.unit
    def test_daily_returns(self):
        assert daily_returns([100, 110, 99]) == pytest.approx([0.1, -0.1])

    @pytest.mark.unit
    def test_zero_previous_price_is_skipped(self):
        assert daily_returns([0, 10, 20]) == pytest.approx([1.0])

    @pytest.mark.unit
    @pytest.mark.parametrize("prices", [[], [42.0]])
    def test_short_series_has_no_volatility(self, prices):
        assert volatility(prices) == 0.0

    @pytest.mark.unit
    def test_constant_growth_has_no_volatility(self):
        """Equal returns every day have zero spread."""
        assert volatility([100, 110, 121, 133.1]) == pytest.approx(0.0, abs=1e-12)

    @pytest.mark.unit
    def test_population_not_sample_std(self):
        # returns +0.1, -0.1 -> mean 0, population variance 0.01
        assert volatility([100, 110, 99]) == pytest.approx(0.1)

    @pytest.mark.unit
    def test_population_std_known_values(self):
        assert population_std([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(2.0)
        assert population_std([]) == 0.0


class TestRatios:
    """Tests for ratio and percentage helpers."""

    @pytest.mark.unit
    def test_safe_ratio_guards_denominator(self):
        assert safe_ratio(5, 10) == 0.5
        assert safe_ratio(5, 0) is None
        assert safe_ratio(5, None, default=0.0) == 0.0

    @pytest.mark.unit
    def test_pct_change(self):
        assert pct_change(50, 75) == pytest.approx(50.0)
        assert pct_change(0, 75) is None

    @pytest.mark.unit
    @pytest.mark.parametrize("buys,sells,expected", [
        (100, 10, 10.0),
        (10, 100, 0.1),
        (5, 0, 2.0),
        (0, 0, 1.0),
    ])
    def test_buy_sell_ratio(self, buys, sells, expected):
        assert buy_sell_ratio(buys, sells) == pytest.approx(expected)


class TestBreakdownAndConcentration:
    """Tests for label shares and holder concentration."""

    @pytest.mark.unit
    def test_percentage_breakdown_rounds(self):
        labels = ["positive", "positive", "negative"]
        assert percentage_breakdown(labels) == {"positive": 67, "neutral": 0, "negative": 33}

    @pytest.mark.unit
    def test_empty_breakdown_is_neutral(self):
        assert percentage_breakdown([]) == {"positive": 0, "neutral": 100, "negative": 0}

    @pytest.mark.unit
    def test_concentration_sorts_descending(self):
        top, top10 = holder_concentration([5, 60, 10])
        assert top == 60
        assert top10 == 75

    @pytest.mark.unit
    def test_concentration_uses_first_ten_only(self):
        top, top10 = holder_concentration([5.0] * 15)
        assert top == 5.0
        assert top10 == 50.0

    @pytest.mark.unit
    def test_empty_holders(self):
        assert holder_concentration([]) == (0.0, 0.0)
        assert not math.isnan(holder_concentration([None])[0])
