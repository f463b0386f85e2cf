"""Load DART study datasets (one JSON file per study) and keep them in memory."""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from config import ALLOWED_STUDIES, DATA_DIR
from models.dataset import StudyDataset

logger = logging.getLogger(__name__)


class DatasetError(ValueError):
    """A dataset file could not be read or failed validation."""


def load_dataset(path: Path) -> StudyDataset:
    """Parse and validate one dataset file (schema + baseline group designation)."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise DatasetError(f"Cannot read dataset {path}: {e}") from e

    try:
        return StudyDataset.model_validate(raw)
    except ValidationError as e:
        raise DatasetError(f"Invalid dataset {path}: {e}") from e


def discover_datasets(data_dir: Path | None = None) -> dict[str, StudyDataset]:
    """Load every *.json dataset in the data directory. Returns study_id -> dataset.

    Files that fail to load are logged and skipped.
    """
    data_dir = data_dir or DATA_DIR
    datasets: dict[str, StudyDataset] = {}
    if not data_dir.is_dir():
        logger.warning("Data directory %s does not exist", data_dir)
        return datasets

    for path in sorted(data_dir.glob("*.json")):
        try:
            ds = load_dataset(path)
        except DatasetError as e:
            logger.warning("Skipping %s: %s", path.name, e)
            continue
        study_id = ds.study.study_id
        if study_id in datasets:
            logger.warning("Duplicate study id %s in %s, keeping the first", study_id, path.name)
            continue
        datasets[study_id] = ds

    if ALLOWED_STUDIES:
        datasets = {k: v for k, v in datasets.items() if k in ALLOWED_STUDIES}

    logger.info("Loaded %d datasets from %s", len(datasets), data_dir)
    return datasets
