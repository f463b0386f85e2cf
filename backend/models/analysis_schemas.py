"""Pydantic models for derived metrics and alert API responses."""

from typing import Literal

from pydantic import BaseModel

Severity = Literal["red", "yellow", "green"]


class SeriesPoint(BaseModel):
    key: int
    mean: float
    sem: float


class GroupTimeSeries(BaseModel):
    group_name: str
    group_id: str
    dose_level: float
    points: list[SeriesPoint] = []


class GroupBoxData(BaseModel):
    group_name: str
    group_id: str
    values: list[float] = []
    mean: float = 0
    median: float = 0
    min: float = 0
    max: float = 0
    q1: float = 0
    q3: float = 0


class IncidenceCell(BaseModel):
    group_name: str
    group_id: str
    affected: int
    total: int
    percent: float = 0


class IncidenceRow(BaseModel):
    category: str
    groups: list[IncidenceCell] = []


class PregnancyOutcome(BaseModel):
    group_name: str
    group_id: str
    pregnant: int
    not_pregnant: int
    aborted: int


class MaternalData(BaseModel):
    body_weight: list[GroupTimeSeries] = []
    body_weight_change: list[GroupTimeSeries] = []
    food_consumption: list[GroupTimeSeries] = []
    clinical_signs_incidence: list[IncidenceRow] = []


class LitterSummaryRow(BaseModel):
    group_name: str
    group_id: str
    dose_level: float
    dams: int
    pregnant_dams: int
    litters_evaluated: int
    mean_litter_size: float
    mean_implantations: float
    mean_resorptions: float
    mean_live_fetuses: float
    mean_fetal_weight: float


class LitterData(BaseModel):
    implantations: list[GroupBoxData] = []
    early_resorptions: list[GroupBoxData] = []
    late_resorptions: list[GroupBoxData] = []
    live_fetuses: list[GroupBoxData] = []
    pre_implantation_loss: list[GroupBoxData] = []
    post_implantation_loss: list[GroupBoxData] = []
    fetal_weights: list[GroupBoxData] = []
    litter_summary_table: list[LitterSummaryRow] = []


class FetalFindingGroup(BaseModel):
    group_name: str
    group_id: str
    affected_litters: int
    total_litters: int
    percent_litters: float
    affected_fetuses: int
    total_fetuses: int
    percent_fetuses: float


class FetalFindingRow(BaseModel):
    finding_term: str
    finding_code: str
    exam_type: str
    classification: str
    groups: list[FetalFindingGroup] = []


class FetalFindingsData(BaseModel):
    incidence_table: list[FetalFindingRow] = []
    categories: list[str] = []


class MilestoneGroup(BaseModel):
    group_name: str
    group_id: str
    mean_day: float
    affected: int
    total: int
    percent_delayed: float


class MilestoneIncidence(BaseModel):
    milestone: str
    groups: list[MilestoneGroup] = []


class SexSeries(BaseModel):
    sex: str
    series: list[GroupTimeSeries] = []


class PostnatalData(BaseModel):
    pup_weight_by_group: list[GroupTimeSeries] = []
    pup_weight_by_group_and_sex: list[SexSeries] = []
    milestone_incidence: list[MilestoneIncidence] = []
    neurobehavior_by_group: list[GroupBoxData] = []


class Alert(BaseModel):
    alert_id: str
    study_id: str
    group_id: str | None = None
    category: Literal["maternal", "developmental", "postnatal"]
    severity: Severity
    message: str
    endpoint: str
    metric: str


class RiskBadge(BaseModel):
    study_id: str
    risk_badge: Severity
    active_alerts: int


class OverviewData(BaseModel):
    study: dict
    maternal_toxicity_status: str
    developmental_toxicity_status: str
    body_weight_by_group: list[GroupTimeSeries] = []
    food_consumption_by_group: list[GroupTimeSeries] = []
    pregnancy_outcome_by_group: list[PregnancyOutcome] = []
    alerts: list[Alert] = []


class StudySummary(BaseModel):
    study_id: str
    study_name: str = ""
    test_article: str = ""
    species: str = ""
    strain: str = ""
    route: str = ""
    glp_flag: bool = False
    start_date: str | None = None
    end_date: str | None = None
    study_type: str = ""
    status: str = ""
    risk_badge: Severity
    total_dams: int
    percent_pregnant: int
    active_alerts: int


class HeatmapCell(BaseModel):
    group_name: str
    value: int
    severity: Severity


class HeatmapRow(BaseModel):
    study_id: str
    endpoint: str
    groups: list[HeatmapCell] = []


class CrossStudyData(BaseModel):
    studies: list[dict] = []
    endpoints: list[str] = []
    heatmap: list[HeatmapRow] = []
