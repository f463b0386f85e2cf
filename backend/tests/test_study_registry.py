"""Tests for dataset loading and discovery."""

import json
import shutil
from pathlib import Path

import pytest
from pydantic import ValidationError

from services import study_registry
from services.study_registry import DatasetError, discover_datasets, load_dataset

SAMPLE = Path(__file__).resolve().parent.parent / "data" / "DART-EFD-001.json"


def _minimal(study_id: str, groups=None) -> dict:
    return {
        "study": {"studyId": study_id, "studyType": "EFD"},
        "groups": groups or [{"groupId": "G1", "name": "Control"}],
    }


def _write(path: Path, payload) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


class TestLoadDataset:
    def test_sample_dataset_camel_case(self):
        ds = load_dataset(SAMPLE)
        assert ds.study.study_id == "DART-EFD-001"
        assert ds.study.design.dosing_window == "GD6-17"
        assert ds.baseline_group.group_id == "G1"
        assert [g.group_id for g in ds.treated_groups] == ["G2"]
        assert ds.animals[0].body_weights[1].change_from_baseline == 7.6
        assert ds.litters[0].corpora_lutea == 15
        assert ds.fetuses[2].findings[0].classification == "malformation"

    def test_snake_case_accepted(self, tmp_path):
        payload = {
            "study": {"study_id": "S-SNAKE"},
            "groups": [{"group_id": "G1", "name": "Control"}],
            "litters": [{"litter_id": "L1", "dam_animal_id": "A1", "group_id": "G1",
                         "pups_surviving_pnd4": 9}],
        }
        ds = load_dataset(_write(tmp_path / "snake.json", payload))
        assert ds.litters[0].pups_surviving_pnd4 == 9

    def test_pnd_survival_aliases(self, tmp_path):
        payload = _minimal("S-PPND")
        payload["litters"] = [{
            "litterId": "L1", "damAnimalId": "A1", "groupId": "G1", "postnatalPups": 12,
            "pupsSurvivingPND4": 11, "pupsSurvivingPND21": 10,
        }]
        litter = load_dataset(_write(tmp_path / "ppnd.json", payload)).litters[0]
        assert (litter.postnatal_pups, litter.pups_surviving_pnd4, litter.pups_surviving_pnd21) == (12, 11, 10)

    def test_two_baselines_rejected(self, tmp_path):
        payload = _minimal("S-BAD", groups=[
            {"groupId": "G1", "name": "Vehicle", "role": "baseline"},
            {"groupId": "G2", "name": "Water", "role": "baseline"},
        ])
        with pytest.raises(DatasetError, match="more than one baseline"):
            load_dataset(_write(tmp_path / "bad.json", payload))

    def test_no_groups_rejected(self, tmp_path):
        payload = {"study": {"studyId": "S-EMPTY"}, "groups": []}
        with pytest.raises(DatasetError, match="no dose groups"):
            load_dataset(_write(tmp_path / "empty.json", payload))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(DatasetError):
            load_dataset(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(DatasetError):
            load_dataset(tmp_path / "absent.json")

    def test_dataset_is_frozen(self):
        ds = load_dataset(SAMPLE)
        with pytest.raises(ValidationError):
            ds.study.study_id = "changed"


class TestDiscoverDatasets:
    def test_discovers_and_skips_bad_files(self, tmp_path):
        shutil.copy(SAMPLE, tmp_path / SAMPLE.name)
        _write(tmp_path / "b.json", _minimal("S-B"))
        (tmp_path / "c.json").write_text("[]", encoding="utf-8")
        (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")

        datasets = discover_datasets(tmp_path)
        assert sorted(datasets) == ["DART-EFD-001", "S-B"]

    def test_duplicate_study_id_keeps_first(self, tmp_path):
        _write(tmp_path / "a.json", _minimal("S-DUP", groups=[{"groupId": "G1", "name": "First"}]))
        _write(tmp_path / "b.json", _minimal("S-DUP", groups=[{"groupId": "G1", "name": "Second"}]))
        datasets = discover_datasets(tmp_path)
        assert datasets["S-DUP"].groups[0].name == "First"

    def test_missing_directory(self, tmp_path):
        assert discover_datasets(tmp_path / "nowhere") == {}

    def test_allowed_studies_filter(self, tmp_path, monkeypatch):
        _write(tmp_path / "a.json", _minimal("S-A"))
        _write(tmp_path / "b.json", _minimal("S-B"))
        monkeypatch.setattr(study_registry, "ALLOWED_STUDIES", {"S-B"})
        assert list(discover_datasets(tmp_path)) == ["S-B"]
