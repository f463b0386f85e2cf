"""Pydantic models for DART study datasets (study, groups, dams, litters, fetuses, pups).

Datasets are loaded once and never mutated, so every model is frozen. JSON input
may use either the snake_case field names or the camelCase names of the source
files (``groupId``, ``bodyWeights``, ``pupsSurvivingPND4``...).
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class _Frozen(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


DayType = Literal["GD", "PND"]
PregnancyStatus = Literal["pregnant", "not pregnant", "aborted", "N/A"]
ExamType = Literal["external", "visceral", "skeletal"]
Classification = Literal["malformation", "variation"]
Viability = Literal["live", "dead"]


# ── Study ───────────────────────────────────────────────────────────────

class StudyDesign(_Frozen):
    ich_type: str = ""
    dosing_window: str = ""
    number_of_groups: int = 0
    dams_per_group: int = 0


class Study(_Frozen):
    study_id: str
    study_name: str = ""
    test_article: str = ""
    species: str = ""
    strain: str = ""
    route: str = ""
    glp_flag: bool = False
    start_date: str | None = None
    end_date: str | None = None
    study_type: str = ""  # EFD | Fertility | PPND | DNT
    status: str = ""
    design: StudyDesign = StudyDesign()


class Group(_Frozen):
    group_id: str
    study_id: str = ""
    name: str
    dose_level: float = 0
    dose_units: str = ""
    sex: str = "female"
    planned_dams: int = 0
    actual_dams: int = 0
    role: Literal["baseline", "treated"] | None = None


# ── Dam records ─────────────────────────────────────────────────────────

class BodyWeightRecord(_Frozen):
    day: int
    day_type: DayType = "GD"
    weight: float
    change_from_baseline: float = 0  # %


class FoodConsumptionRecord(_Frozen):
    day_start: int
    day_end: int
    day_type: DayType = "GD"
    consumption: float  # g/day


class ClinicalObservation(_Frozen):
    day: int
    day_type: DayType = "GD"
    finding_term: str
    severity: str = "none"


class Animal(_Frozen):
    animal_id: str
    study_id: str = ""
    group_id: str
    sex: str = "female"
    litter_id: str | None = None
    mating_pair_id: str | None = None
    pregnancy_status: PregnancyStatus = "N/A"
    maternal_death_flag: bool = False
    maternal_termination_reason: str | None = None
    body_weights: list[BodyWeightRecord] = []
    food_consumption: list[FoodConsumptionRecord] = []
    clinical_observations: list[ClinicalObservation] = []


# ── Litter / fetus / pup ────────────────────────────────────────────────

class Litter(_Frozen):
    litter_id: str
    study_id: str = ""
    dam_animal_id: str
    group_id: str
    implantations: int = 0
    corpora_lutea: int = 0
    resorptions_early: int = 0
    resorptions_late: int = 0
    live_fetuses: int = 0
    dead_fetuses: int = 0
    sex_ratio: float = 0
    litter_weight: float = 0
    mean_fetal_weight: float = 0
    # PPND only
    postnatal_pups: int | None = None
    pups_surviving_pnd4: int | None = Field(None, alias="pupsSurvivingPND4")
    pups_surviving_pnd21: int | None = Field(None, alias="pupsSurvivingPND21")


class FetalFinding(_Frozen):
    finding_code: str
    finding_term: str
    classification: Classification
    exam_type: ExamType
    laterality: str = "N/A"
    location: str = ""


class Fetus(_Frozen):
    fetus_id: str
    litter_id: str
    study_id: str = ""
    group_id: str
    sex: str = ""
    weight: float = 0
    viability_status: Viability = "live"
    exam_type: ExamType = "external"
    findings: list[FetalFinding] = []
    gestational_day_of_observation: int = 0


class PupWeightRecord(_Frozen):
    day: int  # PND
    weight: float


class DevelopmentalMilestone(_Frozen):
    milestone: str
    day_achieved: int | None = None  # None = not yet achieved


class Pup(_Frozen):
    pup_id: str
    litter_id: str
    study_id: str = ""
    group_id: str
    sex: str = ""
    viability_status: Viability = "live"
    death_day: int | None = None
    body_weights: list[PupWeightRecord] = []
    milestones: list[DevelopmentalMilestone] = []
    neurobehavior_score: float | None = None

    def milestone_day(self, milestone: str) -> int | None:
        """Day the first record for ``milestone`` was achieved, None if absent or not achieved."""
        for m in self.milestones:
            if m.milestone == milestone:
                return m.day_achieved
        return None


# ── Dataset ─────────────────────────────────────────────────────────────

class StudyDataset(_Frozen):
    study: Study
    groups: list[Group]
    animals: list[Animal] = []
    litters: list[Litter] = []
    fetuses: list[Fetus] = []
    pups: list[Pup] = []
    # Pass-through collections the engine does not read
    findings: list[dict] = []
    timepoints: list[dict] = []

    @model_validator(mode="after")
    def _check_baseline(self):
        if not self.groups:
            raise ValueError(f"Study '{self.study.study_id}' has no dose groups")
        tagged = [g.group_id for g in self.groups if g.role == "baseline"]
        if len(tagged) > 1:
            raise ValueError(
                f"Study '{self.study.study_id}' has more than one baseline group: {tagged}"
            )
        return self

    @property
    def baseline_group(self) -> Group:
        """The control/vehicle group: the one tagged ``role: baseline``, else ``groups[0]``."""
        for g in self.groups:
            if g.role == "baseline":
                return g
        return self.groups[0]

    @property
    def treated_groups(self) -> list[Group]:
        baseline_id = self.baseline_group.group_id
        return [g for g in self.groups if g.group_id != baseline_id]

    def animals_in(self, group_id: str) -> list[Animal]:
        return [a for a in self.animals if a.group_id == group_id]

    def litters_in(self, group_id: str) -> list[Litter]:
        return [lt for lt in self.litters if lt.group_id == group_id]

    def fetuses_in(self, group_id: str) -> list[Fetus]:
        return [f for f in self.fetuses if f.group_id == group_id]

    def live_pups_in(self, group_id: str, sex: str | None = None) -> list[Pup]:
        return [
            p for p in self.pups
            if p.group_id == group_id
            and p.viability_status == "live"
            and (sex is None or p.sex == sex)
        ]
