"""Alert engine: runs the rule checks for every treated group and derives the risk badge."""

import logging
import threading

from models.dataset import Group, StudyDataset
from services.analysis.aggregation import milestone_names
from services.analysis.alert_rules import (
    DEVELOPMENTAL_RULES, GREEN, MATERNAL_RULES, POSTNATAL_RULES, RED, YELLOW, RuleContext,
)
from services.analysis.thresholds import DEFAULT_THRESHOLDS, AlertThresholds

logger = logging.getLogger(__name__)


class AlertIdSequence:
    """Thread-safe counter minting display ids ALT-0001, ALT-0002, ...

    A fresh sequence per evaluation makes ids reproducible for a given dataset;
    share one sequence across calls when ids must be unique between evaluations.
    """

    def __init__(self, prefix: str = "ALT", width: int = 4):
        self.prefix = prefix
        self.width = width
        self._count = 0
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            self._count += 1
            n = self._count
        return f"{self.prefix}-{n:0{self.width}d}"


def build_rule_context(ds: StudyDataset, group: Group, thresholds: AlertThresholds) -> RuleContext:
    control_id = ds.baseline_group.group_id
    return RuleContext(
        study_id=ds.study.study_id,
        group=group,
        animals=ds.animals_in(group.group_id),
        litters=ds.litters_in(group.group_id),
        fetuses=ds.fetuses_in(group.group_id),
        pups=ds.live_pups_in(group.group_id),
        control_animals=ds.animals_in(control_id),
        control_litters=ds.litters_in(control_id),
        control_pups=ds.live_pups_in(control_id),
        milestones=milestone_names(ds.pups),
        thresholds=thresholds,
    )


def evaluate_alerts(
    ds: StudyDataset,
    thresholds: AlertThresholds | None = None,
    sequence: AlertIdSequence | None = None,
) -> list[dict]:
    """Evaluate all rules for every non-baseline group, in rule order.

    Postnatal rules only run when the dataset has pups. The baseline group is
    never compared with itself.
    """
    thresholds = thresholds or DEFAULT_THRESHOLDS
    sequence = sequence or AlertIdSequence()

    rules = MATERNAL_RULES + DEVELOPMENTAL_RULES
    if ds.pups:
        rules = rules + POSTNATAL_RULES

    alerts = []
    for group in ds.treated_groups:
        ctx = build_rule_context(ds, group, thresholds)
        for rule in rules:
            for draft in rule(ctx):
                alerts.append({
                    "alert_id": sequence.next_id(),
                    "study_id": ds.study.study_id,
                    "group_id": group.group_id,
                    **draft,
                })

    logger.debug("Study %s: %d alerts across %d treated groups",
                 ds.study.study_id, len(alerts), len(ds.treated_groups))
    return alerts


def _severity(alert) -> str:
    return alert["severity"] if isinstance(alert, dict) else alert.severity


def derive_risk_badge(alerts) -> str:
    """Overall severity: red if any alert is red, else yellow if any is yellow, else green."""
    severities = {_severity(a) for a in alerts}
    if RED in severities:
        return RED
    if YELLOW in severities:
        return YELLOW
    return GREEN
