"""
Configuration for the SHL Recommender.

All tunables live here as module-level constants. Values that differ
between deployments are read from the environment (a local ``.env`` file
is honoured through python-dotenv); everything else is fixed policy.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_path(name: str, default: Path) -> Path:
    value = os.getenv(name)
    return Path(value) if value else default


def str_to_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


# Paths
PROJECT_ROOT = Path(__file__).resolve().parents[1]
DATA_DIR = _env_path("SHL_DATA_DIR", PROJECT_ROOT / "data")
CATALOGUE_PATH = _env_path("SHL_CATALOGUE_PATH", DATA_DIR / "assessments.json")
EMBEDDINGS_PATH = _env_path("SHL_EMBEDDINGS_PATH", DATA_DIR / "embeddings.json")
TRAIN_DATA_PATH = _env_path("SHL_TRAIN_DATA_PATH", DATA_DIR / "train_data.json")

# Encoder
# "auto" tries the sentence encoder and falls back to hashing,
# "sentence-transformers" does the same but warns loudly, "hash" never loads a model.
ENCODER_BACKEND = os.getenv("ENCODER_BACKEND", "auto").strip().lower()
SENTENCE_MODEL_NAME = os.getenv("SENTENCE_MODEL_NAME", "sentence-transformers/all-MiniLM-L6-v2")
HASH_DIMENSION = 16

# Requirement narrative (display only, never used for ranking)
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or None
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
ENABLE_NARRATIVE = str_to_bool(os.getenv("ENABLE_NARRATIVE"), default=False)

# Result policy
DEFAULT_TOP_K = 10
MAX_TOP_K = 10
# Candidates pulled from the store per requested result before balancing
CANDIDATE_MULTIPLIER = 2
EVALUATION_K = 10

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE") or None

SERVICE_NAME = "SHL Recommendation API"
API_VERSION = "1.0.0"
