"""Composite study views: overview, study list summaries, animal drill-down, cross-study heatmap."""

from models.dataset import StudyDataset
from services.analysis.alert_engine import derive_risk_badge, evaluate_alerts
from services.analysis.alert_rules import GREEN, RED, YELLOW, MetricKind
from services.analysis.derived_metrics import (
    compute_body_weight_by_group, compute_food_consumption_by_group, compute_pregnancy_outcomes,
)
from services.analysis.statistics import percent, round_half_up
from services.analysis.thresholds import AlertThresholds

# Cross-study heatmap rows -> metric kinds that feed them
CROSS_STUDY_ENDPOINTS: dict[str, set[MetricKind]] = {
    "Maternal Body Weight": {MetricKind.MATERNAL_BODY_WEIGHT},
    "Food Consumption": {MetricKind.FOOD_CONSUMPTION},
    "Early Resorptions": {MetricKind.EARLY_RESORPTIONS},
    "Late Resorptions": {MetricKind.LATE_RESORPTIONS},
    "Fetal Weight": {MetricKind.FETAL_WEIGHT},
    "Malformations": {MetricKind.MALFORMATIONS},
    # no rule alerts on variations, so this row stays green
    "Variations": set(),
    "Pup Mortality": {MetricKind.PUP_MORTALITY},
    "Pup Weight": {MetricKind.PUP_WEIGHT},
}

SEVERITY_SCORE = {RED: 2, YELLOW: 1, GREEN: 0}


def _status(alerts: list[dict], red: str, yellow: str, none: str) -> str:
    badge = derive_risk_badge(alerts)
    if badge == RED:
        return red
    if badge == YELLOW:
        return yellow
    return none


def build_overview(ds: StudyDataset, thresholds: AlertThresholds | None = None) -> dict:
    alerts = evaluate_alerts(ds, thresholds)
    maternal = [a for a in alerts if a["category"] == "maternal"]
    developmental = [a for a in alerts if a["category"] in ("developmental", "postnatal")]
    return {
        "study": ds.study.model_dump(),
        "maternal_toxicity_status": _status(
            maternal,
            "Maternal toxicity detected at high dose",
            "Possible maternal effects at high dose",
            "No significant maternal toxicity",
        ),
        "developmental_toxicity_status": _status(
            developmental,
            "Developmental toxicity detected",
            "Emerging developmental signals",
            "No significant developmental toxicity",
        ),
        "body_weight_by_group": compute_body_weight_by_group(ds),
        "food_consumption_by_group": compute_food_consumption_by_group(ds),
        "pregnancy_outcome_by_group": compute_pregnancy_outcomes(ds),
        "alerts": alerts,
    }


def build_study_summary(ds: StudyDataset, thresholds: AlertThresholds | None = None) -> dict:
    alerts = evaluate_alerts(ds, thresholds)
    total_dams = len(ds.animals)
    pregnant = sum(1 for a in ds.animals if a.pregnancy_status == "pregnant")
    return {
        **ds.study.model_dump(),
        "risk_badge": derive_risk_badge(alerts),
        "total_dams": total_dams,
        "percent_pregnant": int(round_half_up(percent(pregnant, total_dams), 0)),
        "active_alerts": len(alerts),
    }


def build_animal_details(ds: StudyDataset) -> list[dict]:
    """Each dam with its group, litter, fetuses and pups attached."""
    litters_by_dam = {lt.dam_animal_id: lt for lt in ds.litters}
    groups = {g.group_id: g for g in ds.groups}
    details = []
    for animal in ds.animals:
        litter = litters_by_dam.get(animal.animal_id)
        group = groups.get(animal.group_id)
        litter_id = litter.litter_id if litter else None
        details.append({
            **animal.model_dump(),
            "group_name": group.name if group else "",
            "dose_level": group.dose_level if group else 0,
            "litter": litter.model_dump() if litter else None,
            "fetuses": [f.model_dump() for f in ds.fetuses if litter_id and f.litter_id == litter_id],
            "pups": [p.model_dump() for p in ds.pups if litter_id and p.litter_id == litter_id],
        })
    return details


def build_cross_study(datasets: list[StudyDataset], thresholds: AlertThresholds | None = None) -> dict:
    """Worst alert severity per study, endpoint and dose group."""
    heatmap = []
    for ds in datasets:
        alerts = evaluate_alerts(ds, thresholds)
        for endpoint, metrics in CROSS_STUDY_ENDPOINTS.items():
            metric_values = {m.value for m in metrics}
            cells = []
            for group in ds.groups:
                relevant = [
                    a for a in alerts
                    if a["group_id"] == group.group_id and a["metric"] in metric_values
                ]
                severity = derive_risk_badge(relevant)
                cells.append({
                    "group_name": group.name,
                    "value": SEVERITY_SCORE[severity],
                    "severity": severity,
                })
            heatmap.append({"study_id": ds.study.study_id, "endpoint": endpoint, "groups": cells})

    return {
        "studies": [
            {
                "study_id": ds.study.study_id,
                "study_name": ds.study.study_name,
                "species": ds.study.species,
                "study_type": ds.study.study_type,
            }
            for ds in datasets
        ],
        "endpoints": list(CROSS_STUDY_ENDPOINTS),
        "heatmap": heatmap,
    }
