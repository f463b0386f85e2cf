"""Alert rule checks for one treated dose group vs the baseline group.

Each check is a pure function taking a RuleContext (the group, its entities, the
baseline's entities and the thresholds) and returning zero or more alert drafts:
dicts with category, severity, message, endpoint and metric. Ids and study/group
references are stamped on by the alert engine.

Escalation tiers differ per check (x1.5, x2 or none) and are kept as tuned.
Checks that divide by a control mean or a count emit nothing when that
denominator is 0: a missing baseline is not a signal.
"""

import math
from dataclasses import dataclass
from enum import Enum

from models.dataset import Animal, Fetus, Group, Litter, Pup
from services.analysis.aggregation import achievement_days
from services.analysis.statistics import mean, percent, round_half_up
from services.analysis.thresholds import AlertThresholds

RED = "red"
YELLOW = "yellow"
GREEN = "green"


class MetricKind(str, Enum):
    """Closed set of endpoints an alert can be about; downstream views switch on these."""
    MATERNAL_BODY_WEIGHT = "maternal_body_weight"
    FOOD_CONSUMPTION = "food_consumption"
    MATERNAL_DEATH = "maternal_death"
    CLINICAL_SIGNS = "clinical_signs"
    EARLY_RESORPTIONS = "early_resorptions"
    LATE_RESORPTIONS = "late_resorptions"
    FETAL_WEIGHT = "fetal_weight"
    MALFORMATIONS = "malformations"
    PUP_MORTALITY = "pup_mortality"
    PUP_WEIGHT = "pup_weight"
    MILESTONE_DELAY = "milestone_delay"


@dataclass(frozen=True)
class RuleContext:
    study_id: str
    group: Group
    animals: list[Animal]
    litters: list[Litter]
    fetuses: list[Fetus]
    pups: list[Pup]  # live pups only
    control_animals: list[Animal]
    control_litters: list[Litter]
    control_pups: list[Pup]  # live pups only
    milestones: list[str]
    thresholds: AlertThresholds


def _draft(category: str, severity: str, message: str, endpoint: str, metric: MetricKind) -> dict:
    return {
        "category": category,
        "severity": severity,
        "message": message,
        "endpoint": endpoint,
        "metric": metric.value,
    }


def _fixed(value: float, digits: int) -> str:
    """Message number with ``digits`` decimals; halves round away from zero (12.5 -> "13")."""
    return f"{math.copysign(round_half_up(abs(value), digits), value):.{digits}f}"


def _maternal(severity: str, message: str, metric: MetricKind) -> dict:
    return _draft("maternal", severity, message, "maternal", metric)


# ── Maternal ────────────────────────────────────────────────────────────

def check_individual_body_weight_loss(ctx: RuleContext) -> list[dict]:
    """One red alert if any dam's worst % change from baseline exceeds the loss threshold."""
    limit = ctx.thresholds.maternal.body_weight_loss_percent
    for animal in ctx.animals:
        if not animal.body_weights:
            continue
        worst = min(bw.change_from_baseline for bw in animal.body_weights)
        if worst < -limit:
            return [_maternal(
                RED,
                f"Maternal body weight loss >{limit:g}% in {ctx.group.name}",
                MetricKind.MATERNAL_BODY_WEIGHT,
            )]
    return []


def check_group_mean_body_weight(ctx: RuleContext) -> list[dict]:
    """Mean first-recorded vs mean last-recorded weight of the group's dams."""
    limit = ctx.thresholds.maternal.body_weight_loss_percent
    first = [a.body_weights[0].weight for a in ctx.animals if a.body_weights]
    last = [a.body_weights[-1].weight for a in ctx.animals if a.body_weights]
    first = [w for w in first if w]
    last = [w for w in last if w]
    if not first or not last:
        return []

    mean_first = mean(first)
    if mean_first <= 0:
        return []
    pct_change = (mean(last) - mean_first) / mean_first * 100
    if pct_change >= -limit * 0.5:
        return []
    return [_maternal(
        RED if pct_change < -limit else YELLOW,
        f"Mean maternal body weight change {_fixed(pct_change, 1)}% in {ctx.group.name}",
        MetricKind.MATERNAL_BODY_WEIGHT,
    )]


def check_food_consumption(ctx: RuleContext) -> list[dict]:
    """Pooled group food consumption vs pooled control consumption."""
    limit = ctx.thresholds.maternal.food_consumption_decrease_percent
    group_fc = [fc.consumption for a in ctx.animals for fc in a.food_consumption]
    control_fc = [fc.consumption for a in ctx.control_animals for fc in a.food_consumption]
    if not group_fc or not control_fc:
        return []

    control_mean = mean(control_fc)
    if control_mean <= 0:
        return []
    pct_decrease = (control_mean - mean(group_fc)) / control_mean * 100
    if pct_decrease > limit:
        severity = RED
    elif pct_decrease > limit * 0.5:
        severity = YELLOW
    else:
        return []
    return [_maternal(
        severity,
        f"Food consumption decreased {_fixed(pct_decrease, 0)}% vs control in {ctx.group.name}",
        MetricKind.FOOD_CONSUMPTION,
    )]


def check_maternal_deaths(ctx: RuleContext) -> list[dict]:
    deaths = sum(1 for a in ctx.animals if a.maternal_death_flag)
    if deaths == 0 or deaths < ctx.thresholds.maternal.death_count:
        return []
    return [_maternal(
        RED if deaths >= 2 else YELLOW,
        f"{deaths} maternal death(s) in {ctx.group.name}",
        MetricKind.MATERNAL_DEATH,
    )]


def check_clinical_signs(ctx: RuleContext) -> list[dict]:
    """Share of dams with at least one clinical observation."""
    if not ctx.animals:
        return []
    with_signs = sum(1 for a in ctx.animals if a.clinical_observations)
    pct = percent(with_signs, len(ctx.animals))
    if pct <= ctx.thresholds.maternal.clinical_sign_incidence_percent:
        return []
    return [_maternal(
        RED if pct > 50 else YELLOW,
        f"{_fixed(pct, 0)}% dams with clinical signs in {ctx.group.name}",
        MetricKind.CLINICAL_SIGNS,
    )]


# ── Developmental ───────────────────────────────────────────────────────

def check_resorptions(ctx: RuleContext) -> list[dict]:
    """Mean early (escalates at 1.5x) and late (single tier) resorptions per litter."""
    dev = ctx.thresholds.developmental
    alerts = []

    mean_early = mean(lt.resorptions_early for lt in ctx.litters)
    if mean_early > dev.early_resorption_threshold:
        alerts.append(_draft(
            "developmental",
            RED if mean_early > dev.early_resorption_threshold * 1.5 else YELLOW,
            f"Mean early resorptions {_fixed(mean_early, 1)}/litter in {ctx.group.name}",
            "litter",
            MetricKind.EARLY_RESORPTIONS,
        ))

    mean_late = mean(lt.resorptions_late for lt in ctx.litters)
    if mean_late > dev.late_resorption_threshold:
        alerts.append(_draft(
            "developmental",
            YELLOW,
            f"Mean late resorptions {_fixed(mean_late, 1)}/litter in {ctx.group.name}",
            "litter",
            MetricKind.LATE_RESORPTIONS,
        ))
    return alerts


def check_fetal_weight(ctx: RuleContext) -> list[dict]:
    limit = ctx.thresholds.developmental.fetal_weight_decrease_percent
    control_mean = mean(lt.mean_fetal_weight for lt in ctx.control_litters)
    if control_mean <= 0:
        return []

    group_mean = mean(lt.mean_fetal_weight for lt in ctx.litters)
    pct_decrease = (control_mean - group_mean) / control_mean * 100
    if pct_decrease > limit:
        severity = RED
    elif pct_decrease > limit * 0.5:
        severity = YELLOW
    else:
        return []
    return [_draft(
        "developmental",
        severity,
        f"Mean fetal weight decreased {_fixed(pct_decrease, 0)}% vs control in {ctx.group.name}",
        "fetal",
        MetricKind.FETAL_WEIGHT,
    )]


def check_malformations(ctx: RuleContext) -> list[dict]:
    """Share of litters with at least one fetus carrying a malformation."""
    limit = ctx.thresholds.developmental.malformation_incidence_percent
    malformed_litters = {
        f.litter_id for f in ctx.fetuses
        if any(ff.classification == "malformation" for ff in f.findings)
    }
    affected = sum(1 for lt in ctx.litters if lt.litter_id in malformed_litters)
    pct = percent(affected, len(ctx.litters))
    if pct <= limit:
        return []
    return [_draft(
        "developmental",
        RED if pct > limit * 2 else YELLOW,
        f"{_fixed(pct, 0)}% litters with malformations in {ctx.group.name}",
        "fetal",
        MetricKind.MALFORMATIONS,
    )]


# ── Postnatal ───────────────────────────────────────────────────────────

def check_perinatal_mortality(ctx: RuleContext) -> list[dict]:
    """Pups born but not surviving to PND4, pooled over the group's litters."""
    limit = ctx.thresholds.postnatal.perinatal_mortality_percent
    born = sum(lt.postnatal_pups or 0 for lt in ctx.litters)
    if born <= 0:
        return []
    surviving = sum(lt.pups_surviving_pnd4 or 0 for lt in ctx.litters)
    mortality = (born - surviving) / born * 100
    if mortality <= limit:
        return []
    return [_draft(
        "postnatal",
        RED if mortality > limit * 2 else YELLOW,
        f"Perinatal pup mortality {_fixed(mortality, 0)}% in {ctx.group.name}",
        "postnatal",
        MetricKind.PUP_MORTALITY,
    )]


def _last_weight(pup: Pup) -> float:
    return pup.body_weights[-1].weight if pup.body_weights else 0.0


def check_pup_weight(ctx: RuleContext) -> list[dict]:
    """Mean last-recorded live pup weight vs control; single (red) tier."""
    limit = ctx.thresholds.postnatal.pup_weight_gain_decrease_percent
    control_mean = mean(_last_weight(p) for p in ctx.control_pups)
    if control_mean <= 0:
        return []

    pct_decrease = (control_mean - mean(_last_weight(p) for p in ctx.pups)) / control_mean * 100
    if pct_decrease <= limit:
        return []
    return [_draft(
        "postnatal",
        RED,
        f"Pup weight gain decreased {_fixed(pct_decrease, 0)}% vs control in {ctx.group.name}",
        "postnatal",
        MetricKind.PUP_WEIGHT,
    )]


def check_milestone_delay(ctx: RuleContext) -> list[dict]:
    """One alert per milestone whose mean achievement day lags control by more than the threshold."""
    limit = ctx.thresholds.postnatal.milestone_delay_days
    alerts = []
    for milestone in ctx.milestones:
        group_days = achievement_days(ctx.pups, milestone)
        control_days = achievement_days(ctx.control_pups, milestone)
        if not group_days or not control_days:
            continue
        delay = mean(group_days) - mean(control_days)
        if delay > limit:
            alerts.append(_draft(
                "postnatal",
                RED if delay > limit * 2 else YELLOW,
                f"{milestone} delayed {_fixed(delay, 1)} days vs control in {ctx.group.name}",
                "postnatal",
                MetricKind.MILESTONE_DELAY,
            ))
    return alerts


MATERNAL_RULES = [
    check_individual_body_weight_loss,
    check_group_mean_body_weight,
    check_food_consumption,
    check_maternal_deaths,
    check_clinical_signs,
]

DEVELOPMENTAL_RULES = [
    check_resorptions,
    check_fetal_weight,
    check_malformations,
]

POSTNATAL_RULES = [
    check_perinatal_mortality,
    check_pup_weight,
    check_milestone_delay,
]
