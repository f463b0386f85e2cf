"""Read-only API over loaded DART study datasets."""

from fastapi import APIRouter, HTTPException

from models.analysis_schemas import (
    Alert,
    CrossStudyData,
    FetalFindingsData,
    LitterData,
    MaternalData,
    OverviewData,
    PostnatalData,
    RiskBadge,
    StudySummary,
)
from models.dataset import StudyDataset
from services.analysis.alert_engine import derive_risk_badge, evaluate_alerts
from services.analysis.derived_metrics import (
    compute_fetal_findings_data,
    compute_litter_data,
    compute_maternal_data,
    compute_postnatal_data,
)
from services.analysis.study_views import (
    build_animal_details,
    build_cross_study,
    build_overview,
    build_study_summary,
)
from services.analysis.thresholds import DEFAULT_THRESHOLDS, AlertThresholds

router = APIRouter(prefix="/api")

# Populated at startup
_datasets: dict[str, StudyDataset] = {}
_thresholds: dict[str, AlertThresholds] = {"active": DEFAULT_THRESHOLDS}


def init_studies(datasets: dict[str, StudyDataset], thresholds: AlertThresholds | None = None):
    _datasets.clear()
    _datasets.update(datasets)
    _thresholds["active"] = thresholds or DEFAULT_THRESHOLDS


def _get_dataset(study_id: str) -> StudyDataset:
    if study_id not in _datasets:
        raise HTTPException(status_code=404, detail=f"Study '{study_id}' not found")
    return _datasets[study_id]


@router.get("/health")
def health():
    return {"status": "ok", "service": "dart-study-monitor-backend", "studies": len(_datasets)}


@router.get("/studies", response_model=list[StudySummary])
def list_studies():
    return [build_study_summary(ds, _thresholds["active"]) for _, ds in sorted(_datasets.items())]


@router.get("/studies/{study_id}")
def get_study(study_id: str):
    return _get_dataset(study_id).model_dump()


@router.get("/studies/{study_id}/overview", response_model=OverviewData)
def get_overview(study_id: str):
    return build_overview(_get_dataset(study_id), _thresholds["active"])


@router.get("/studies/{study_id}/maternal", response_model=MaternalData)
def get_maternal(study_id: str):
    return compute_maternal_data(_get_dataset(study_id))


@router.get("/studies/{study_id}/litter", response_model=LitterData)
def get_litter(study_id: str):
    return compute_litter_data(_get_dataset(study_id))


@router.get("/studies/{study_id}/fetal", response_model=FetalFindingsData)
def get_fetal(study_id: str):
    return compute_fetal_findings_data(_get_dataset(study_id))


@router.get("/studies/{study_id}/postnatal", response_model=PostnatalData)
def get_postnatal(study_id: str):
    return compute_postnatal_data(_get_dataset(study_id))


@router.get("/studies/{study_id}/animals")
def get_animals(study_id: str):
    return build_animal_details(_get_dataset(study_id))


@router.get("/studies/{study_id}/alerts", response_model=list[Alert])
def get_alerts(study_id: str):
    return evaluate_alerts(_get_dataset(study_id), _thresholds["active"])


@router.get("/studies/{study_id}/risk", response_model=RiskBadge)
def get_risk(study_id: str):
    alerts = evaluate_alerts(_get_dataset(study_id), _thresholds["active"])
    return {"study_id": study_id, "risk_badge": derive_risk_badge(alerts), "active_alerts": len(alerts)}


@router.get("/cross-study", response_model=CrossStudyData)
def get_cross_study():
    datasets = [ds for _, ds in sorted(_datasets.items())]
    return build_cross_study(datasets, _thresholds["active"])
