"""Group aggregation: per-group time series, box-plot summaries and incidence tables.

Everything here groups already-loaded entities by dose group (and a secondary key
such as day, finding term or milestone) and reduces them with the primitives in
``statistics``. Output dicts carry group_name/group_id so the frontend can render
them without another lookup.
"""

from collections.abc import Callable, Iterable

import pandas as pd

from models.dataset import Fetus, Group, Litter, Pup
from services.analysis.statistics import (
    max_or_zero, mean, median, min_or_zero, percent, quantile, round_half_up,
    sample_sd, sem,
)


# ── Time series ─────────────────────────────────────────────────────────

def time_series(
    groups: list[Group],
    entities_for: Callable[[Group], list],
    observations: Callable[[object], Iterable[tuple[int, float]]],
) -> list[dict]:
    """Mean/SEM per day (or interval start) for each group.

    ``observations(entity)`` yields (key, value) pairs. Keys are the sorted union of
    keys observed across the group's entities; at each key only entities that have
    an observation there contribute (no imputation). If an entity has several
    observations for one key, the first one is used.
    """
    series = []
    for group in groups:
        rows = [
            {"entity": idx, "key": key, "value": value}
            for idx, entity in enumerate(entities_for(group))
            for key, value in observations(entity)
        ]
        points = []
        if rows:
            df = pd.DataFrame(rows).drop_duplicates(subset=["entity", "key"], keep="first")
            for key, grp in df.groupby("key", sort=True):
                vals = grp["value"].tolist()
                points.append({
                    "key": key.item() if hasattr(key, "item") else key,
                    "mean": round_half_up(mean(vals)),
                    "sem": round_half_up(sem(vals)),
                })
        series.append({
            "group_name": group.name,
            "group_id": group.group_id,
            "dose_level": group.dose_level,
            "points": points,
        })
    return series


# ── Box-plot summaries ──────────────────────────────────────────────────

def box_summary(group: Group, values: list[float]) -> dict:
    """Five-number summary plus mean; each statistic rounded independently."""
    return {
        "group_name": group.name,
        "group_id": group.group_id,
        "values": list(values),
        "mean": round_half_up(mean(values)),
        "median": round_half_up(median(values)),
        "min": round_half_up(min_or_zero(values)),
        "max": round_half_up(max_or_zero(values)),
        "q1": round_half_up(quantile(values, 0.25)),
        "q3": round_half_up(quantile(values, 0.75)),
    }


def box_by_group(
    groups: list[Group],
    entities_for: Callable[[Group], list],
    extractor: Callable[[object], float],
) -> list[dict]:
    return [
        box_summary(group, [extractor(e) for e in entities_for(group)])
        for group in groups
    ]


def pre_implantation_loss(litter: Litter) -> float:
    """(corpora lutea - implantations) / corpora lutea * 100; 0 without corpora lutea."""
    if litter.corpora_lutea <= 0:
        return 0.0
    return round_half_up(
        (litter.corpora_lutea - litter.implantations) / litter.corpora_lutea * 100
    )


def post_implantation_loss(litter: Litter) -> float:
    """(implantations - live fetuses) / implantations * 100; 0 without implantations."""
    if litter.implantations <= 0:
        return 0.0
    return round_half_up(
        (litter.implantations - litter.live_fetuses) / litter.implantations * 100
    )


# ── Incidence tables ────────────────────────────────────────────────────

def incidence_table(
    categories: Iterable[str],
    groups: list[Group],
    count: Callable[[str, Group], tuple[int, int]],
) -> list[dict]:
    """One row per distinct category (alphabetical), with affected/total per group.

    ``count(category, group)`` returns (affected, total); the denominator is up to
    the caller (dams, litters or fetuses).
    """
    rows = []
    for category in sorted(set(categories)):
        cells = []
        for group in groups:
            affected, total = count(category, group)
            cells.append({
                "group_name": group.name,
                "group_id": group.group_id,
                "affected": affected,
                "total": total,
                "percent": round_half_up(percent(affected, total)),
            })
        rows.append({"category": category, "groups": cells})
    return rows


def finding_catalogue(fetuses: list[Fetus]) -> dict[str, dict]:
    """Map each fetal finding term to the metadata of its first occurrence.

    Later occurrences of a term never overwrite the code/exam type/classification
    recorded first, even if the source data disagrees.
    """
    catalogue: dict[str, dict] = {}
    for fetus in fetuses:
        for finding in fetus.findings:
            if finding.finding_term not in catalogue:
                catalogue[finding.finding_term] = {
                    "finding_code": finding.finding_code,
                    "exam_type": finding.exam_type,
                    "classification": finding.classification,
                }
    return catalogue


# ── Developmental milestones ────────────────────────────────────────────

def milestone_names(pups: list[Pup]) -> list[str]:
    return sorted({m.milestone for p in pups for m in p.milestones})


def achievement_days(pups: list[Pup], milestone: str) -> list[int]:
    """Achievement days of the pups that reached ``milestone``."""
    days = (p.milestone_day(milestone) for p in pups)
    return [d for d in days if d is not None]


def milestone_baseline(control_days: list[int]) -> tuple[float, float]:
    """Control (mean, SD) for delay classification.

    SD falls back to 1 when the control group has one or no observations.
    """
    return mean(control_days), sample_sd(control_days, default=1.0)


def count_delayed(days: list[int], control_mean: float, control_sd: float) -> int:
    """Number of achievement days later than control mean + 1 SD."""
    return sum(1 for d in days if d > control_mean + control_sd)
