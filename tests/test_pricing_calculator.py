"""Tests for the quote pricing calculator.

Tests cover:
- Cost rollup and suggested price
- The reference scenario (FDM job, 5h print, 2h labor)
- Coercion of missing / non-finite inputs
- Config-driven rates
- Price normalization to cents
"""

from __future__ import annotations

import math
from decimal import Decimal

import pytest

from src.calculators.pricing import (
    calculate_pricing,
    coerce_number,
    normalize_price,
    to_cents,
)
from src.schemas.pricing import PricingConfig, PricingInput
from src.schemas.shop import PrintType


def _input(material: object = 0, print_time: object = 0, labor: object = 0, rate: object = 0) -> PricingInput:
    """Helper to build a PricingInput from raw field values."""
    return PricingInput(
        material_cost=material, print_time=print_time, labor_time=labor, print_rate=rate,
    )


class TestPricingRollup:
    """Test the derived cost fields."""

    def test_reference_scenario(self) -> None:
        """$10 material, 5h print at $0.14/h, 2h labor → $40.70 total."""
        fdm = PrintType(id=1, name="FDM", power_cost=0.10, maintenance_cost=0.04)
        result = calculate_pricing(_input(10, 5, 2, fdm.print_rate))
        assert result.print_cost == pytest.approx(0.70)
        assert result.labor_cost == pytest.approx(30.0)
        assert result.total_cost == pytest.approx(40.70)
        assert result.suggested_price == pytest.approx(58.14, abs=0.005)

    @pytest.mark.parametrize(
        ("material", "print_time", "labor", "rate"),
        [
            (0, 0, 0, 0),
            (12.5, 3.25, 0.5, 0.2),
            (1000, 48, 6, 1.75),
            (0.01, 0.1, 0.1, 0.01),
        ],
    )
    def test_total_is_sum_of_parts(self, material, print_time, labor, rate) -> None:
        result = calculate_pricing(_input(material, print_time, labor, rate))
        assert math.isclose(
            result.total_cost,
            material + result.print_cost + result.labor_cost,
            abs_tol=1e-9,
        )
        assert math.isclose(result.suggested_price, result.total_cost / 0.7, abs_tol=1e-9)
        assert result.suggested_price >= result.total_cost

    def test_labor_uses_fixed_rate(self) -> None:
        """Labor is billed at $15/h by default, independent of print type."""
        result = calculate_pricing(_input(labor=3, rate=99))
        assert result.labor_cost == pytest.approx(45.0)

    def test_idempotent(self) -> None:
        data = _input(10, 5, 2, 0.14)
        assert calculate_pricing(data) == calculate_pricing(data)


class TestPricingCoercion:
    """Non-finite or missing inputs count as zero."""

    @pytest.mark.parametrize("bad", [None, float("nan"), float("inf"), float("-inf"), "abc", ""])
    def test_bad_material_cost(self, bad) -> None:
        result = calculate_pricing(_input(material=bad, labor=1))
        assert result.total_cost == pytest.approx(15.0)

    def test_string_numbers_accepted(self) -> None:
        result = calculate_pricing(_input("10", "5", "2", "0.14"))
        assert result.total_cost == pytest.approx(40.70)

    def test_input_model_accepts_junk(self) -> None:
        """Building the input never raises; junk is carried as None."""
        data = PricingInput(material_cost="abc", print_time="", labor_time=float("nan"), print_rate=None)
        assert data.material_cost is None
        assert data.print_time is None
        assert data.labor_time is None
        assert calculate_pricing(data).total_cost == 0.0

    def test_coerce_number(self) -> None:
        assert coerce_number(None) == 0.0
        assert coerce_number(Decimal("2.5")) == 2.5
        assert coerce_number(float("nan")) == 0.0


class TestPricingConfig:
    """Rates come from configuration, not literals."""

    def test_custom_labor_rate(self) -> None:
        config = PricingConfig(labor_rate=20.0)
        result = calculate_pricing(_input(labor=2), config)
        assert result.labor_cost == pytest.approx(40.0)

    def test_custom_target_ratio(self) -> None:
        config = PricingConfig(target_cost_ratio=0.5)
        result = calculate_pricing(_input(material=100), config)
        assert result.suggested_price == pytest.approx(200.0)

    def test_ratio_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            PricingConfig(target_cost_ratio=0)


class TestNormalizePrice:
    """actual_price is stored at cent granularity."""

    def test_rounds_half_up(self) -> None:
        assert normalize_price(2.675) == 2.68
        assert normalize_price("19.994") == 19.99

    def test_missing(self) -> None:
        assert normalize_price(None) is None
        assert normalize_price(float("nan")) is None
        assert normalize_price("n/a") is None

    def test_to_cents(self) -> None:
        assert to_cents(0.7000000000000001) == Decimal("0.70")
        assert to_cents(58.142857142857146) == Decimal("58.14")
        assert to_cents(None) is None
