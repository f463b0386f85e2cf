"""Tests for the individual alert rule checks, run through a rule context."""

import pytest

from builders import make_animal, make_dataset, make_fetus, make_finding, make_group, make_litter, make_pup
from services.analysis.alert_engine import build_rule_context
from services.analysis.alert_rules import (
    check_clinical_signs, check_fetal_weight, check_food_consumption, check_group_mean_body_weight,
    check_individual_body_weight_loss, check_malformations, check_maternal_deaths,
    check_milestone_delay, check_perinatal_mortality, check_pup_weight, check_resorptions,
)
from services.analysis.thresholds import DEFAULT_THRESHOLDS

CONTROL = make_group("G1", "Control", 0)
HIGH = make_group("G4", "High", 300)


def _ctx(animals=(), litters=(), fetuses=(), pups=(), thresholds=DEFAULT_THRESHOLDS):
    ds = make_dataset([CONTROL, HIGH], animals, litters, fetuses, pups)
    return build_rule_context(ds, HIGH, thresholds)


def _food(group_id, values):
    return [make_animal(f"{group_id}-{i}", group_id, food={6: v}) for i, v in enumerate(values)]


class TestBodyWeightLoss:
    def test_individual_loss_beyond_limit(self):
        animals = [
            make_animal("A1", "G4", changes={0: 0, 10: -12}),
            make_animal("A2", "G4", changes={0: 0, 10: -15}),
        ]
        alerts = check_individual_body_weight_loss(_ctx(animals))
        assert len(alerts) == 1
        assert alerts[0]["severity"] == "red"
        assert alerts[0]["message"] == "Maternal body weight loss >10% in High"
        assert alerts[0]["metric"] == "maternal_body_weight"

    def test_individual_loss_at_limit_is_quiet(self):
        assert check_individual_body_weight_loss(_ctx([make_animal("A1", "G4", changes={10: -10})])) == []

    def test_group_mean_yellow_tier(self):
        animals = [make_animal("A1", "G4", weights={0: 200, 20: 186})]
        alerts = check_group_mean_body_weight(_ctx(animals))
        assert [a["severity"] for a in alerts] == ["yellow"]
        assert alerts[0]["message"] == "Mean maternal body weight change -7.0% in High"

    def test_group_mean_red_tier(self):
        animals = [make_animal("A1", "G4", weights={0: 200, 20: 170})]
        assert check_group_mean_body_weight(_ctx(animals))[0]["severity"] == "red"

    def test_group_mean_gain_is_quiet(self):
        animals = [make_animal("A1", "G4", weights={0: 200, 20: 290})]
        assert check_group_mean_body_weight(_ctx(animals)) == []


class TestFoodConsumption:
    def test_red_above_threshold(self):
        animals = _food("G1", [20, 20]) + _food("G4", [15, 15])
        alerts = check_food_consumption(_ctx(animals))
        assert len(alerts) == 1
        assert alerts[0]["severity"] == "red"
        assert "Food consumption decreased 25%" in alerts[0]["message"]
        assert alerts[0]["message"].endswith("vs control in High")

    def test_yellow_between_half_and_full_threshold(self):
        animals = _food("G1", [20]) + _food("G4", [17])
        assert check_food_consumption(_ctx(animals))[0]["severity"] == "yellow"

    def test_quiet_below_half_threshold(self):
        animals = _food("G1", [20]) + _food("G4", [19])
        assert check_food_consumption(_ctx(animals)) == []

    def test_no_control_data(self):
        assert check_food_consumption(_ctx(_food("G4", [5]))) == []

    def test_zero_control_mean(self):
        animals = _food("G1", [0]) + _food("G4", [5])
        assert check_food_consumption(_ctx(animals)) == []


class TestDeathsAndSigns:
    def test_no_deaths_no_alert(self):
        assert check_maternal_deaths(_ctx([make_animal("A1", "G4")])) == []

    def test_single_death_yellow(self):
        alerts = check_maternal_deaths(_ctx([make_animal("A1", "G4", dead=True)]))
        assert alerts[0]["severity"] == "yellow"
        assert alerts[0]["message"] == "1 maternal death(s) in High"

    def test_two_deaths_red(self):
        animals = [make_animal("A1", "G4", dead=True), make_animal("A2", "G4", dead=True)]
        assert check_maternal_deaths(_ctx(animals))[0]["severity"] == "red"

    def test_death_count_threshold(self):
        raised = DEFAULT_THRESHOLDS.model_copy(update={
            "maternal": DEFAULT_THRESHOLDS.maternal.model_copy(update={"death_count": 2}),
        })
        assert check_maternal_deaths(_ctx([make_animal("A1", "G4", dead=True)], thresholds=raised)) == []

    @pytest.mark.parametrize("with_signs,expected", [(1, []), (2, ["yellow"]), (3, ["red"])])
    def test_clinical_signs_tiers(self, with_signs, expected):
        animals = [
            make_animal(f"A{i}", "G4", signs=["piloerection"] if i < with_signs else [])
            for i in range(4)
        ]
        assert [a["severity"] for a in check_clinical_signs(_ctx(animals))] == expected

    def test_clinical_signs_message(self):
        animals = [make_animal("A1", "G4", signs=["ptosis"]), make_animal("A2", "G4")]
        assert check_clinical_signs(_ctx(animals))[0]["message"] == "50% dams with clinical signs in High"

    def test_clinical_signs_empty_group(self):
        assert check_clinical_signs(_ctx()) == []


class TestDevelopmental:
    def test_early_resorptions_tiers(self):
        yellow = [make_litter("L1", "G4", resorptions_early=2)]
        red = [make_litter("L1", "G4", resorptions_early=3)]
        assert [a["severity"] for a in check_resorptions(_ctx(litters=yellow))] == ["yellow"]
        alerts = check_resorptions(_ctx(litters=red))
        assert [a["severity"] for a in alerts] == ["red"]
        assert alerts[0]["message"] == "Mean early resorptions 3.0/litter in High"
        assert alerts[0]["endpoint"] == "litter"

    def test_late_resorptions_never_escalate(self):
        alerts = check_resorptions(_ctx(litters=[make_litter("L1", "G4", resorptions_late=5)]))
        assert [(a["metric"], a["severity"]) for a in alerts] == [("late_resorptions", "yellow")]

    def test_no_litters_no_alert(self):
        assert check_resorptions(_ctx()) == []

    def test_fetal_weight_decrease(self):
        litters = [
            make_litter("L1", "G1", mean_fetal_weight=4.0),
            make_litter("L2", "G4", mean_fetal_weight=3.4),
        ]
        alerts = check_fetal_weight(_ctx(litters=litters))
        assert alerts[0]["severity"] == "red"
        assert alerts[0]["message"] == "Mean fetal weight decreased 15% vs control in High"
        assert alerts[0]["endpoint"] == "fetal"

    def test_fetal_weight_without_control(self):
        assert check_fetal_weight(_ctx(litters=[make_litter("L2", "G4", mean_fetal_weight=3.0)])) == []

    def test_malformations(self):
        malformation = make_finding("anophthalmia")
        variation = make_finding("wavy rib", classification="variation")
        litters = [make_litter(f"L{i}", "G4") for i in range(10)]
        fetuses = [
            make_fetus("F1", "L0", "G4", findings=[malformation]),
            make_fetus("F2", "L0", "G4", findings=[malformation]),
            make_fetus("F3", "L1", "G4", findings=[variation]),
        ]
        alerts = check_malformations(_ctx(litters=litters, fetuses=fetuses))
        assert [a["severity"] for a in alerts] == ["yellow"]
        assert alerts[0]["message"] == "10% litters with malformations in High"

    def test_malformations_red_above_double_threshold(self):
        malformation = make_finding("anophthalmia")
        litters = [make_litter(f"L{i}", "G4") for i in range(5)]
        fetuses = [make_fetus("F1", "L0", "G4", findings=[malformation])]
        assert check_malformations(_ctx(litters=litters, fetuses=fetuses))[0]["severity"] == "red"


class TestPostnatal:
    def test_perinatal_mortality(self):
        litters = [
            make_litter("L1", "G4", postnatal_pups=10, pups_surviving_pnd4=8),
            make_litter("L2", "G4", postnatal_pups=10, pups_surviving_pnd4=9),
        ]
        alerts = check_perinatal_mortality(_ctx(litters=litters))
        assert alerts[0]["severity"] == "yellow"
        assert alerts[0]["message"] == "Perinatal pup mortality 15% in High"

    def test_perinatal_mortality_without_births(self):
        assert check_perinatal_mortality(_ctx(litters=[make_litter("L1", "G4")])) == []

    def test_pup_weight_single_tier(self):
        pups = [
            make_pup("P1", "L1", "G1", weights={1: 6, 21: 50}),
            make_pup("P2", "L2", "G4", weights={1: 6, 21: 40}),
        ]
        alerts = check_pup_weight(_ctx(pups=pups))
        assert alerts[0]["severity"] == "red"
        assert alerts[0]["message"] == "Pup weight gain decreased 20% vs control in High"

    def test_pup_weight_ignores_dead_pups(self):
        pups = [
            make_pup("P1", "L1", "G1", weights={21: 50}),
            make_pup("P2", "L2", "G4", weights={21: 48}),
            make_pup("P3", "L2", "G4", weights={21: 10}, viability="dead"),
        ]
        assert check_pup_weight(_ctx(pups=pups)) == []

    def test_milestone_delay_tiers(self):
        pups = [
            make_pup("P1", "L1", "G1", milestones={"eye opening": 14, "pinna unfolding": 3}),
            make_pup("P2", "L2", "G4", milestones={"eye opening": 16, "pinna unfolding": 7}),
        ]
        alerts = check_milestone_delay(_ctx(pups=pups))
        assert [(a["message"], a["severity"]) for a in alerts] == [
            ("eye opening delayed 2.0 days vs control in High", "yellow"),
            ("pinna unfolding delayed 4.0 days vs control in High", "red"),
        ]

    def test_milestone_without_control_observations(self):
        pups = [
            make_pup("P1", "L1", "G1", milestones={"eye opening": None}),
            make_pup("P2", "L2", "G4", milestones={"eye opening": 20}),
        ]
        assert check_milestone_delay(_ctx(pups=pups)) == []


class TestMessageRounding:
    def test_food_consumption_half_percent_rounds_up(self):
        animals = _food("G1", [20]) + _food("G4", [17.5])
        alerts = check_food_consumption(_ctx(animals))
        assert alerts[0]["message"] == "Food consumption decreased 13% vs control in High"

    def test_clinical_signs_five_of_eight(self):
        animals = [
            make_animal(f"A{i}", "G4", signs=["ptosis"] if i < 5 else [])
            for i in range(8)
        ]
        alerts = check_clinical_signs(_ctx(animals))
        assert alerts[0]["message"] == "63% dams with clinical signs in High"

    def test_malformations_one_of_eight(self):
        litters = [make_litter(f"L{i}", "G4") for i in range(8)]
        fetuses = [make_fetus("F1", "L0", "G4", findings=[make_finding("anophthalmia")])]
        alerts = check_malformations(_ctx(litters=litters, fetuses=fetuses))
        assert alerts[0]["message"] == "13% litters with malformations in High"

    def test_early_resorptions_half_tenth(self):
        litters = [make_litter(f"L{i}", "G4", resorptions_early=n) for i, n in enumerate([2, 2, 2, 3])]
        alerts = check_resorptions(_ctx(litters=litters))
        assert alerts[0]["message"] == "Mean early resorptions 2.3/litter in High"

    def test_milestone_delay_half_tenth(self):
        pups = [make_pup("P0", "L0", "G1", milestones={"eye opening": 14})] + [
            make_pup(f"P{i}", "L1", "G4", milestones={"eye opening": d})
            for i, d in enumerate([16, 16, 16, 17], start=1)
        ]
        alerts = check_milestone_delay(_ctx(pups=pups))
        assert alerts[0]["message"] == "eye opening delayed 2.3 days vs control in High"
