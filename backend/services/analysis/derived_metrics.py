"""Derived metrics bundles (maternal, litter, fetal findings, postnatal).

Assembles the aggregation helpers into the structures each study tab consumes.
All functions are pure: the same dataset always yields the same output.
"""

from models.dataset import Animal, Fetus, Group, Litter, Pup, StudyDataset
from services.analysis.aggregation import (
    achievement_days, box_by_group, box_summary, count_delayed, finding_catalogue,
    incidence_table, milestone_baseline, milestone_names, post_implantation_loss,
    pre_implantation_loss, time_series,
)
from services.analysis.statistics import mean, percent, round_half_up

PUP_SEXES = ("male", "female")


# ── Maternal ────────────────────────────────────────────────────────────

def _body_weights(animal: Animal):
    return [(bw.day, bw.weight) for bw in animal.body_weights]


def _body_weight_change(animal: Animal):
    return [(bw.day, bw.change_from_baseline) for bw in animal.body_weights]


def _food_consumption(animal: Animal):
    return [(fc.day_start, fc.consumption) for fc in animal.food_consumption]


def compute_body_weight_by_group(ds: StudyDataset) -> list[dict]:
    return time_series(ds.groups, lambda g: ds.animals_in(g.group_id), _body_weights)


def compute_body_weight_change_by_group(ds: StudyDataset) -> list[dict]:
    return time_series(ds.groups, lambda g: ds.animals_in(g.group_id), _body_weight_change)


def compute_food_consumption_by_group(ds: StudyDataset) -> list[dict]:
    """Food consumption keyed by interval start day."""
    return time_series(ds.groups, lambda g: ds.animals_in(g.group_id), _food_consumption)


def compute_clinical_signs_incidence(ds: StudyDataset) -> list[dict]:
    """Dams showing each clinical finding term / dams in group."""
    terms = {obs.finding_term for a in ds.animals for obs in a.clinical_observations}

    def count(term: str, group: Group) -> tuple[int, int]:
        animals = ds.animals_in(group.group_id)
        affected = sum(
            1 for a in animals
            if any(obs.finding_term == term for obs in a.clinical_observations)
        )
        return affected, len(animals)

    return incidence_table(terms, ds.groups, count)


def compute_pregnancy_outcomes(ds: StudyDataset) -> list[dict]:
    outcomes = []
    for group in ds.groups:
        statuses = [a.pregnancy_status for a in ds.animals_in(group.group_id)]
        outcomes.append({
            "group_name": group.name,
            "group_id": group.group_id,
            "pregnant": statuses.count("pregnant"),
            "not_pregnant": statuses.count("not pregnant"),
            "aborted": statuses.count("aborted"),
        })
    return outcomes


def compute_maternal_data(ds: StudyDataset) -> dict:
    return {
        "body_weight": compute_body_weight_by_group(ds),
        "body_weight_change": compute_body_weight_change_by_group(ds),
        "food_consumption": compute_food_consumption_by_group(ds),
        "clinical_signs_incidence": compute_clinical_signs_incidence(ds),
    }


# ── Litter ──────────────────────────────────────────────────────────────

def _litter_summary_row(ds: StudyDataset, group: Group) -> dict:
    animals = ds.animals_in(group.group_id)
    litters = ds.litters_in(group.group_id)
    return {
        "group_name": group.name,
        "group_id": group.group_id,
        "dose_level": group.dose_level,
        "dams": len(animals),
        "pregnant_dams": sum(1 for a in animals if a.pregnancy_status == "pregnant"),
        "litters_evaluated": len(litters),
        "mean_litter_size": round_half_up(mean(lt.live_fetuses + lt.dead_fetuses for lt in litters)),
        "mean_implantations": round_half_up(mean(lt.implantations for lt in litters)),
        "mean_resorptions": round_half_up(
            mean(lt.resorptions_early + lt.resorptions_late for lt in litters)
        ),
        "mean_live_fetuses": round_half_up(mean(lt.live_fetuses for lt in litters)),
        "mean_fetal_weight": round_half_up(mean(lt.mean_fetal_weight for lt in litters)),
    }


def compute_litter_data(ds: StudyDataset) -> dict:
    def litters_for(g: Group) -> list[Litter]:
        return ds.litters_in(g.group_id)

    return {
        "implantations": box_by_group(ds.groups, litters_for, lambda lt: lt.implantations),
        "early_resorptions": box_by_group(ds.groups, litters_for, lambda lt: lt.resorptions_early),
        "late_resorptions": box_by_group(ds.groups, litters_for, lambda lt: lt.resorptions_late),
        "live_fetuses": box_by_group(ds.groups, litters_for, lambda lt: lt.live_fetuses),
        "pre_implantation_loss": box_by_group(ds.groups, litters_for, pre_implantation_loss),
        "post_implantation_loss": box_by_group(ds.groups, litters_for, post_implantation_loss),
        "fetal_weights": box_by_group(ds.groups, litters_for, lambda lt: lt.mean_fetal_weight),
        "litter_summary_table": [_litter_summary_row(ds, g) for g in ds.groups],
    }


# ── Fetal findings ──────────────────────────────────────────────────────

def _has_finding(fetus: Fetus, term: str) -> bool:
    return any(f.finding_term == term for f in fetus.findings)


def compute_fetal_findings_data(ds: StudyDataset) -> dict:
    """Litter- and fetus-level incidence of every fetal finding term."""
    catalogue = finding_catalogue(ds.fetuses)
    fetuses_by_litter: dict[str, list[Fetus]] = {}
    for fetus in ds.fetuses:
        fetuses_by_litter.setdefault(fetus.litter_id, []).append(fetus)

    def litter_count(term: str, group: Group) -> tuple[int, int]:
        litters = ds.litters_in(group.group_id)
        affected = sum(
            1 for lt in litters
            if any(_has_finding(f, term) for f in fetuses_by_litter.get(lt.litter_id, []))
        )
        return affected, len(litters)

    def fetus_count(term: str, group: Group) -> tuple[int, int]:
        fetuses = ds.fetuses_in(group.group_id)
        return sum(1 for f in fetuses if _has_finding(f, term)), len(fetuses)

    by_litter = incidence_table(catalogue, ds.groups, litter_count)
    by_fetus = incidence_table(catalogue, ds.groups, fetus_count)

    rows = []
    for litter_row, fetus_row in zip(by_litter, by_fetus):
        term = litter_row["category"]
        groups = []
        for lc, fc in zip(litter_row["groups"], fetus_row["groups"]):
            groups.append({
                "group_name": lc["group_name"],
                "group_id": lc["group_id"],
                "affected_litters": lc["affected"],
                "total_litters": lc["total"],
                "percent_litters": lc["percent"],
                "affected_fetuses": fc["affected"],
                "total_fetuses": fc["total"],
                "percent_fetuses": fc["percent"],
            })
        rows.append({"finding_term": term, **catalogue[term], "groups": groups})

    categories = sorted({meta["exam_type"] for meta in catalogue.values()})
    return {"incidence_table": rows, "categories": categories}


# ── Postnatal ───────────────────────────────────────────────────────────

def _pup_weights(pup: Pup):
    return [(bw.day, bw.weight) for bw in pup.body_weights]


def compute_milestone_incidence(ds: StudyDataset) -> list[dict]:
    """Mean achievement day and share of pups delayed beyond control mean + 1 SD."""
    control_pups = ds.live_pups_in(ds.baseline_group.group_id)
    rows = []
    for milestone in milestone_names(ds.pups):
        control_mean, control_sd = milestone_baseline(achievement_days(control_pups, milestone))
        groups = []
        for group in ds.groups:
            days = achievement_days(ds.live_pups_in(group.group_id), milestone)
            delayed = count_delayed(days, control_mean, control_sd)
            groups.append({
                "group_name": group.name,
                "group_id": group.group_id,
                "mean_day": round_half_up(mean(days)),
                "affected": delayed,
                "total": len(days),
                "percent_delayed": round_half_up(percent(delayed, len(days))),
            })
        rows.append({"milestone": milestone, "groups": groups})
    return rows


def compute_postnatal_data(ds: StudyDataset) -> dict:
    """Pup weight, milestone and neurobehavior bundles; empty for studies without pups."""
    if not ds.pups:
        return {
            "pup_weight_by_group": [],
            "pup_weight_by_group_and_sex": [],
            "milestone_incidence": [],
            "neurobehavior_by_group": [],
        }

    pup_weight_by_group = time_series(
        ds.groups, lambda g: ds.live_pups_in(g.group_id), _pup_weights,
    )
    pup_weight_by_group_and_sex = [
        {
            "sex": sex,
            "series": time_series(
                ds.groups, lambda g, s=sex: ds.live_pups_in(g.group_id, sex=s), _pup_weights,
            ),
        }
        for sex in PUP_SEXES
    ]

    neurobehavior_by_group = [
        box_summary(group, [
            p.neurobehavior_score for p in ds.pups
            if p.group_id == group.group_id and p.neurobehavior_score is not None
        ])
        for group in ds.groups
    ]

    return {
        "pup_weight_by_group": pup_weight_by_group,
        "pup_weight_by_group_and_sex": pup_weight_by_group_and_sex,
        "milestone_incidence": compute_milestone_incidence(ds),
        "neurobehavior_by_group": neurobehavior_by_group,
    }
