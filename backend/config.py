import os
from pathlib import Path

BASE_DIR = Path(__file__).parent

# Directory of study dataset JSON files (one study per file)
DATA_DIR = Path(os.environ.get("DART_DATA_DIR", BASE_DIR / "data"))

# Alert thresholds YAML; defaults apply when the file is missing
THRESHOLDS_FILE = Path(os.environ.get("DART_THRESHOLDS_FILE", BASE_DIR / "thresholds.yaml"))

# Restrict to these study ids (empty = serve every dataset found)
ALLOWED_STUDIES: set[str] = set()
