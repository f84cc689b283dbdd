from __future__ import annotations

from lease_vs_buy.scenario.inputs import WEEKDAYS, WEEKS_PER_YEAR, ScenarioInputs, WeeklyPlan


def weekly_distance(plan: WeeklyPlan) -> float:
    total = 0.0
    for day in WEEKDAYS:
        for group in plan.day(day):
            total += group.trips * group.km_per_trip
    return float(total)


def annual_distance(inputs: ScenarioInputs) -> float:
    """
    Yearly distance implied by the weekly plan and its modifiers.

    Custom weeks replace that many standard weeks at `multiplier` intensity,
    so they only contribute the delta against the baseline week. One-off trips
    are added whole; their month hint does not matter here.
    """
    base_weekly = weekly_distance(inputs.weekly_plan)
    active_weeks = WEEKS_PER_YEAR - inputs.weeks_off

    annual = base_weekly * active_weeks
    for cw in inputs.custom_weeks:
        annual += base_weekly * (cw.multiplier - 1.0) * cw.weeks
    for trip in inputs.one_off_trips:
        annual += trip.round_trip_km + trip.in_destination_km

    return max(0.0, float(annual))
