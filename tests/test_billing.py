"""Tests for the slab-rate calculator and its helpers in billing.py."""

import json
import math

import pytest

from billing import (DEFAULT_SCHEDULE, RateSchedule, compute, exceeds_top_tier, parse_usage,
                     round_display, describe_schedule, generate_bill_text, build_estimate_table,
                     load_rate_schedule, slab_labels, estimate_figures, ESTIMATE_FIELDS, BLANK_FIGURE)
from tests.conftest import SAMPLE_TARIFF


class TestCompute:
    """Slab arithmetic on the default LT-A schedule."""

    def test_zero_usage_has_no_energy_cost(self):
        bill = compute(0)
        assert bill.energy_cost == 0
        assert bill.fixed_charges == pytest.approx(94)
        assert bill.total_payable == pytest.approx(94 * 1.05)

    def test_first_slab_boundary(self):
        assert compute(75).energy_cost == pytest.approx(394.5)

    def test_usage_spanning_three_slabs(self):
        bill = compute(205)
        assert bill.energy_cost == pytest.approx(1332.45)
        assert bill.taxable_base == pytest.approx(1426.45)
        assert bill.tax_amount == pytest.approx(71.3225)
        assert bill.total_payable == pytest.approx(1497.7725)

    def test_slab_lines_split_usage_by_band(self):
        bill = compute(205)
        units = [line.units for line in bill.slabs]
        assert units == pytest.approx([75, 125, 5, 0])
        assert [line.label for line in bill.slabs] == ["0-75", "76-200", "201-300", "301-400"]
        assert sum(line.cost for line in bill.slabs) == pytest.approx(bill.energy_cost)

    def test_top_ceiling(self):
        assert compute(400).energy_cost == pytest.approx(2855.5)
        assert compute(400).total_payable == pytest.approx(3096.975)

    def test_usage_above_top_ceiling_is_not_charged(self):
        assert compute(1000).energy_cost == compute(400).energy_cost
        assert compute(1000).total_payable == compute(400).total_payable

    def test_invariants_hold(self):
        for usage in (0, 12.5, 75, 199.99, 300, 401):
            bill = compute(usage)
            assert bill.taxable_base == pytest.approx(bill.energy_cost + bill.fixed_charges)
            assert bill.total_payable == bill.taxable_base + bill.tax_amount
            assert bill.fixed_charges == bill.demand_charge + bill.meter_rent

    def test_repeated_calls_are_bit_identical(self):
        assert compute(287.3) == compute(287.3)

    def test_no_internal_rounding(self):
        assert compute(205).total_payable != round(compute(205).total_payable)

    @pytest.mark.parametrize("usage", [-1, -0.01, math.nan, math.inf, "205", None, True])
    def test_invalid_usage_rejected(self, usage):
        with pytest.raises(ValueError):
            compute(usage)


class TestSlabShape:
    """Continuity, monotonicity and slopes of the cost curve."""

    def test_total_strictly_increasing_up_to_top_ceiling(self):
        usages = [step * 0.5 for step in range(0, 801)]
        totals = [compute(u).total_payable for u in usages]
        assert all(later > earlier for earlier, later in zip(totals, totals[1:]))

    def test_total_flat_above_top_ceiling(self):
        totals = {compute(u).total_payable for u in (400, 450, 1000, 10_000)}
        assert len(totals) == 1

    def test_continuous_at_boundaries(self):
        for ceiling in (75, 200, 300, 400):
            below = compute(ceiling - 1e-9).energy_cost
            above = compute(ceiling + 1e-9).energy_cost
            assert above - below == pytest.approx(0, abs=1e-6)

    @pytest.mark.parametrize("low,high,rate", [
        (10, 60, 5.26),
        (80, 190, 7.20),
        (210, 290, 7.59),
        (310, 390, 8.02),
    ])
    def test_slope_inside_each_band(self, low, high, rate):
        slope = (compute(high).energy_cost - compute(low).energy_cost) / (high - low)
        assert slope == pytest.approx(rate)


class TestRateSchedule:
    def test_custom_schedule_any_number_of_tiers(self):
        schedule = RateSchedule([(10, 1.0), (20, 2.0)], demand_charge=0, meter_rent=0, tax_rate=0)
        assert compute(15, schedule).energy_cost == pytest.approx(20)
        assert compute(100, schedule).energy_cost == pytest.approx(30)

    def test_single_tier(self):
        schedule = RateSchedule([(50, 3.0)], demand_charge=5, meter_rent=0, tax_rate=0.1)
        bill = compute(20, schedule)
        assert bill.energy_cost == pytest.approx(60)
        assert bill.total_payable == pytest.approx(71.5)

    @pytest.mark.parametrize("tiers", [
        [],
        [(200, 1.0), (100, 2.0)],
        [(100, 1.0), (100, 2.0)],
        [(0, 1.0)],
        [(100, -1.0)],
        [(math.inf, 1.0)],
    ])
    def test_invalid_tiers_rejected(self, tiers):
        with pytest.raises(ValueError):
            RateSchedule(tiers, demand_charge=0, meter_rent=0, tax_rate=0)

    def test_negative_add_on_rejected(self):
        with pytest.raises(ValueError, match="meter_rent"):
            RateSchedule([(100, 1.0)], demand_charge=0, meter_rent=-10, tax_rate=0)

    def test_default_schedule_values(self):
        assert [tier.ceiling for tier in DEFAULT_SCHEDULE.tiers] == [75, 200, 300, 400]
        assert [tier.rate for tier in DEFAULT_SCHEDULE.tiers] == [5.26, 7.20, 7.59, 8.02]
        assert DEFAULT_SCHEDULE.demand_charge == 84
        assert DEFAULT_SCHEDULE.meter_rent == 10
        assert DEFAULT_SCHEDULE.tax_rate == 0.05
        assert DEFAULT_SCHEDULE.top_ceiling == 400

    def test_slab_labels(self):
        assert slab_labels(DEFAULT_SCHEDULE) == ["0-75", "76-200", "201-300", "301-400"]


class TestLoadRateSchedule:
    def test_sample_file_matches_default(self):
        schedule = load_rate_schedule(str(SAMPLE_TARIFF))
        assert schedule.name == "LT-A Residential"
        assert schedule.tiers == DEFAULT_SCHEDULE.tiers
        assert compute(205, schedule) == compute(205, DEFAULT_SCHEDULE)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_rate_schedule(str(tmp_path / "nope.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{ tiers: ", encoding="utf-8")
        with pytest.raises(ValueError, match="not valid JSON"):
            load_rate_schedule(str(path))

    def test_missing_field(self, tmp_path):
        path = tmp_path / "partial.json"
        path.write_text(json.dumps({"tiers": [{"ceiling": 100, "rate": 2}]}), encoding="utf-8")
        with pytest.raises(ValueError):
            load_rate_schedule(str(path))

    def test_decreasing_ceilings(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({
            "tiers": [{"ceiling": 100, "rate": 2}, {"ceiling": 50, "rate": 3}],
            "demand_charge": 0, "meter_rent": 0, "tax_rate": 0,
        }), encoding="utf-8")
        with pytest.raises(ValueError, match="strictly increasing"):
            load_rate_schedule(str(path))

    def test_name_defaults_to_file_name(self, tmp_path):
        path = tmp_path / "flat_rate.json"
        path.write_text(json.dumps({
            "tiers": [{"ceiling": 1000, "rate": 4}],
            "demand_charge": 0, "meter_rent": 0, "tax_rate": 0.15, "tax_label": "GST",
        }), encoding="utf-8")
        schedule = load_rate_schedule(str(path))
        assert schedule.name == "flat_rate"
        assert schedule.tax_label == "GST"


class TestDisplayHelpers:
    @pytest.mark.parametrize("text,expected", [
        ("", 0.0),
        ("   ", 0.0),
        (None, 0.0),
        ("205", 205.0),
        (" 12.5 ", 12.5),
    ])
    def test_parse_usage(self, text, expected):
        assert parse_usage(text) == expected

    @pytest.mark.parametrize("text", ["abc", "-5", "inf", "nan", "1,000"])
    def test_parse_usage_rejects(self, text):
        with pytest.raises(ValueError):
            parse_usage(text)

    def test_round_display(self):
        assert round_display(1497.7725) == 1498
        assert round_display(2.5) == 3
        assert round_display(3.5) == 4
        assert round_display(98.49) == 98

    def test_exceeds_top_tier(self):
        assert not exceeds_top_tier(400)
        assert exceeds_top_tier(400.01)

    def test_describe_schedule(self):
        text = describe_schedule()
        assert "0-75 @ 5.26, 76-200 @ 7.20, 201-300 @ 7.59, 301-400 @ 8.02" in text
        assert "5% VAT" in text

    def test_estimate_figures(self):
        figures = estimate_figures(compute(205))
        assert figures["energy_cost"] == "1332.45"
        assert figures["taxable_base"] == "1426.45"
        assert figures["tax_amount"] == "71.32"
        assert figures["total"].endswith("1498")

    def test_estimate_figures_blank_without_bill(self):
        figures = estimate_figures(None)
        assert set(figures) == set(ESTIMATE_FIELDS) | {"total"}
        assert all(BLANK_FIGURE in value for value in figures.values())
        assert not any(char.isdigit() for value in figures.values() for char in value)


class TestBillText:
    def test_itemized_bill(self):
        text = generate_bill_text(205)
        assert "Total Consumption: 205.00 kWh" in text
        assert "1332.45" in text
        assert "1426.45" in text
        assert "71.32" in text
        assert "1497.77" in text
        assert "1498" in text
        assert "NOTE" not in text

    def test_warning_above_top_ceiling(self):
        text = generate_bill_text(500)
        assert "NOTE: Usage above 400 kWh" in text


class TestEstimateTable:
    def test_rows_match_compute(self):
        df = build_estimate_table([0, 75, 205])
        assert list(df.columns) == ["usage_kwh", "energy_cost", "fixed_charges", "taxable_base",
                                    "tax_amount", "total_payable", "rounded_total"]
        assert len(df) == 3
        assert df.loc[2, "total_payable"] == pytest.approx(1497.7725)
        assert df.loc[2, "rounded_total"] == 1498
        assert df.loc[1, "energy_cost"] == pytest.approx(394.5)

    def test_empty(self):
        df = build_estimate_table([])
        assert df.empty
