import json
import math
import numbers
import os
from collections import namedtuple

import pandas as pd

# --- Billing Types ---
Tier = namedtuple("Tier", ["ceiling", "rate"])
SlabLine = namedtuple("SlabLine", ["label", "units", "rate", "cost"])
BillBreakdown = namedtuple("BillBreakdown", [
    "usage",
    "energy_cost",
    "demand_charge",
    "meter_rent",
    "fixed_charges",
    "taxable_base",
    "tax_amount",
    "total_payable",
    "slabs",
])

CURRENCY = "৳"


def _is_non_negative_number(value):
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return math.isfinite(value) and value >= 0


def _fmt(value):
    return f"{value:g}"


class RateSchedule:
    """A slab tariff: ordered tiers plus the flat add-ons and the tax rate."""

    def __init__(self, tiers, demand_charge, meter_rent, tax_rate, name="Custom Tariff", tax_label="VAT"):
        tiers = tuple(Tier(float(ceiling), float(rate)) for ceiling, rate in tiers)
        if not tiers:
            raise ValueError("A rate schedule needs at least one tier.")

        previous = 0.0
        for tier in tiers:
            if not math.isfinite(tier.ceiling) or tier.ceiling <= previous:
                raise ValueError(f"Tier ceilings must be finite and strictly increasing (got {tier.ceiling:g} after {previous:g}).")
            if not math.isfinite(tier.rate) or tier.rate < 0:
                raise ValueError(f"Tier rate must be a non-negative number (got {tier.rate}).")
            previous = tier.ceiling

        for label, value in (("demand_charge", demand_charge), ("meter_rent", meter_rent), ("tax_rate", tax_rate)):
            if not _is_non_negative_number(value):
                raise ValueError(f"'{label}' must be a non-negative number (got {value!r}).")

        self.tiers = tiers
        self.demand_charge = float(demand_charge)
        self.meter_rent = float(meter_rent)
        self.tax_rate = float(tax_rate)
        self.name = name
        self.tax_label = tax_label

    @property
    def top_ceiling(self):
        return self.tiers[-1].ceiling

    def __repr__(self):
        return f"RateSchedule(name={self.name!r}, tiers={list(self.tiers)!r})"


# --- Default Tariff (LT-A Residential) ---
DEFAULT_SCHEDULE = RateSchedule(
    tiers=[
        (75, 5.26),   # 0-75 units
        (200, 7.20),  # 76-200 units
        (300, 7.59),  # 201-300 units
        (400, 8.02),  # 301-400 units
    ],
    demand_charge=84,
    meter_rent=10,
    tax_rate=0.05,
    name="LT-A Residential",
    tax_label="VAT",
)


def slab_labels(schedule):
    """Returns the band labels of a schedule, e.g. '0-75', '76-200'."""
    labels = []
    lower = 0.0
    for index, tier in enumerate(schedule.tiers):
        start = _fmt(lower) if index == 0 else _fmt(lower + 1)
        labels.append(f"{start}-{_fmt(tier.ceiling)}")
        lower = tier.ceiling
    return labels


def compute(usage, schedule=DEFAULT_SCHEDULE):
    """
    Calculates the estimated bill for a usage quantity using slab (telescopic) rates.

    Each unit is charged at the rate of the band it falls in. Units above the
    top ceiling are not charged at all; see exceeds_top_tier().
    Raises ValueError for negative, non-finite or non-numeric usage.
    """
    if not _is_non_negative_number(usage):
        raise ValueError(f"Usage must be a finite, non-negative number (got {usage!r}).")

    slabs = []
    energy_cost = 0.0
    lower = 0.0

    for label, tier in zip(slab_labels(schedule), schedule.tiers):
        units_in_this_slab = max(0.0, min(usage, tier.ceiling) - lower)
        slab_cost = units_in_this_slab * tier.rate
        energy_cost += slab_cost
        slabs.append(SlabLine(label, units_in_this_slab, tier.rate, slab_cost))
        lower = tier.ceiling

    fixed_charges = schedule.demand_charge + schedule.meter_rent
    taxable_base = energy_cost + fixed_charges
    tax_amount = taxable_base * schedule.tax_rate

    return BillBreakdown(
        usage=usage,
        energy_cost=energy_cost,
        demand_charge=schedule.demand_charge,
        meter_rent=schedule.meter_rent,
        fixed_charges=fixed_charges,
        taxable_base=taxable_base,
        tax_amount=tax_amount,
        total_payable=taxable_base + tax_amount,
        slabs=tuple(slabs),
    )


def exceeds_top_tier(usage, schedule=DEFAULT_SCHEDULE):
    """True when part of the usage lies above the top ceiling and goes uncharged."""
    return usage > schedule.top_ceiling


def parse_usage(text):
    """Converts the usage input box text to a number. A blank box counts as 0."""
    text = (text or "").strip()
    if not text:
        return 0.0
    try:
        usage = float(text)
    except ValueError:
        raise ValueError(f"'{text}' is not a number.")
    if not math.isfinite(usage) or usage < 0:
        raise ValueError("Units used must be a non-negative number.")
    return usage


def round_display(amount):
    """Whole-currency rounding for the headline total (halves round up)."""
    return int(math.floor(amount + 0.5))


def load_rate_schedule(path):
    """Reads a rate schedule from a JSON tariff file."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Tariff file {path} not found")

    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Tariff file {path} is not valid JSON: {e}")

    if not isinstance(data, dict):
        raise ValueError("Tariff file must contain a JSON object.")

    try:
        tiers = [(tier["ceiling"], tier["rate"]) for tier in data["tiers"]]
        return RateSchedule(
            tiers=tiers,
            demand_charge=data["demand_charge"],
            meter_rent=data["meter_rent"],
            tax_rate=data["tax_rate"],
            name=data.get("name", os.path.splitext(os.path.basename(path))[0]),
            tax_label=data.get("tax_label", "VAT"),
        )
    except (KeyError, TypeError) as e:
        raise ValueError(f"Tariff file {path} is missing or has a bad field: {e}")


def describe_schedule(schedule=DEFAULT_SCHEDULE):
    """Short explainer of the applied slab rates, shown under the estimator."""
    bands = [f"{label} @ {tier.rate:.2f}" for label, tier in zip(slab_labels(schedule), schedule.tiers)]
    return (
        f"This calculation uses the {schedule.name} slab rates: "
        f"{', '.join(bands)}. "
        f"Includes {schedule.tax_rate * 100:g}% {schedule.tax_label} on the total base amount."
    )


def generate_bill_text(usage, schedule=DEFAULT_SCHEDULE):
    """Creates the itemized estimate text shared by the CLI and the GUI."""
    bill = compute(usage, schedule)
    tax_percent = f"{schedule.tax_rate * 100:g}%"

    bill_text = f"--- ESTIMATED ELECTRICITY BILL ---\n\n"
    bill_text += f"Tariff: {schedule.name}\n"
    bill_text += f"Total Consumption: {usage:.2f} kWh\n"
    bill_text += "----------------------------------\n\n"
    bill_text += "ITEMIZED CHARGES:\n\n"
    bill_text += "A. Energy Cost (Slab Rate):\n"
    for line in bill.slabs:
        label = f"  - {line.label} kWh:"
        bill_text += f"{label:<18} {line.units:>7.2f} kWh @ {CURRENCY}{line.rate:.2f}/unit = {CURRENCY}{line.cost:.2f}\n"
    bill_text += f"   Total Energy Cost:       {CURRENCY}{bill.energy_cost:>10.2f}\n\n"
    bill_text += f"B. Demand Charge:            {CURRENCY}{bill.demand_charge:>10.2f}\n"
    bill_text += f"C. Meter Rent:               {CURRENCY}{bill.meter_rent:>10.2f}\n"
    bill_text += "----------------------------------\n"
    bill_text += f"   Total Base (A+B+C):      {CURRENCY}{bill.taxable_base:>10.2f}\n"
    tax_line = f"D. {schedule.tax_label} ({tax_percent}):"
    bill_text += f"{tax_line:<29}{CURRENCY}{bill.tax_amount:>10.2f}\n\n"
    bill_text += f"--- EST. TOTAL PAYABLE ---\n"
    bill_text += f"   (A+B+C+D):               {CURRENCY}{bill.total_payable:>10.2f}\n"
    bill_text += f"   Rounded:                 {CURRENCY}{round_display(bill.total_payable):>7}\n"
    bill_text += "----------------------------------\n"

    if exceeds_top_tier(usage, schedule):
        bill_text += (
            f"\nNOTE: Usage above {_fmt(schedule.top_ceiling)} kWh is not covered by any slab "
            f"and is not charged. This estimate is lower than the actual bill.\n"
        )

    bill_text += f"\n\n--- APPLIED TARIFF ({schedule.name}) ---\n"
    bill_text += f"Demand Charge:     {CURRENCY}{schedule.demand_charge:.2f}/month\n"
    bill_text += f"Meter Rent:        {CURRENCY}{schedule.meter_rent:.2f}/month\n"
    bill_text += f"{schedule.tax_label + ':':<19}{tax_percent}\n"
    bill_text += "Energy Charges (Slabs):\n"
    for label, tier in zip(slab_labels(schedule), schedule.tiers):
        band = f"  - {label} kWh:"
        bill_text += f"{band:<21}{CURRENCY}{tier.rate:.2f}/unit\n"
    return bill_text


def build_estimate_table(usages, schedule=DEFAULT_SCHEDULE):
    """One row per usage value with the full breakdown, for export and charts."""
    rows = []
    for usage in usages:
        bill = compute(usage, schedule)
        rows.append({
            "usage_kwh": usage,
            "energy_cost": bill.energy_cost,
            "fixed_charges": bill.fixed_charges,
            "taxable_base": bill.taxable_base,
            "tax_amount": bill.tax_amount,
            "total_payable": bill.total_payable,
            "rounded_total": round_display(bill.total_payable),
        })
    columns = ["usage_kwh", "energy_cost", "fixed_charges", "taxable_base",
               "tax_amount", "total_payable", "rounded_total"]
    return pd.DataFrame(rows, columns=columns)


ESTIMATE_FIELDS = ("energy_cost", "demand_charge", "meter_rent", "taxable_base", "tax_amount")
BLANK_FIGURE = "--"


def estimate_figures(bill=None):
    """Display strings for the live estimate panel. Without a bill every figure is blanked."""
    if bill is None:
        figures = {key: BLANK_FIGURE for key in ESTIMATE_FIELDS}
        figures["total"] = f"{CURRENCY}{BLANK_FIGURE}"
        return figures

    figures = {key: f"{getattr(bill, key):.2f}" for key in ESTIMATE_FIELDS}
    figures["total"] = f"{CURRENCY}{round_display(bill.total_payable)}"
    return figures
