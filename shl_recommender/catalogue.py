"""
Catalogue and labeled-data loaders.

Turns the JSON / spreadsheet files produced by the surrounding tooling into
the core's types: a list of :class:`AssessmentRecord` for the embedding
store, and ``{"query", "ground_truth_urls"}`` items for the evaluator.
"""

import json
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

import pandas as pd

from .logging_config import get_logger
from .models import AssessmentRecord, TestType

logger = get_logger(__name__)

PathLike = Union[str, Path]

# Map SHL catalogue test type labels into coarse buckets
COARSE_TYPE_MAP = {
    "knowledge & skills": TestType.KNOWLEDGE,
    "knowledge": TestType.KNOWLEDGE,
    "ability & aptitude": TestType.KNOWLEDGE,
    "ability": TestType.KNOWLEDGE,
    "cognitive": TestType.KNOWLEDGE,
    "technical": TestType.KNOWLEDGE,
    "simulations": TestType.KNOWLEDGE,
    "personality & behavior": TestType.PERSONALITY,
    "personality & behaviour": TestType.PERSONALITY,
    "personality": TestType.PERSONALITY,
    "behavioral": TestType.PERSONALITY,
    "competencies": TestType.PERSONALITY,
    "situational judgement": TestType.PERSONALITY,
    "situational": TestType.PERSONALITY,
    "biodata & situational judgement": TestType.PERSONALITY,
    # anything else (assessment exercises, development & 360, ...) is Other
}

_KNOWLEDGE_HINTS = ("cognitive", "ability", "numerical", "verbal")
_PERSONALITY_HINTS = ("personality", "behavioral", "motivation")
_SKILL_HINTS = ("skill", "technical", "programming", "coding")

SHEET_SUFFIXES = {".csv", ".xlsx", ".xls"}


def infer_test_type(name: str, description: str = "") -> TestType:
    """
    Guess the coarse type of an assessment from its name and description.

    Used when the catalogue does not carry an explicit K/P/O label.
    """
    text = f"{name} {description}".lower()
    if any(hint in text for hint in _KNOWLEDGE_HINTS):
        return TestType.KNOWLEDGE
    if any(hint in text for hint in _PERSONALITY_HINTS):
        return TestType.PERSONALITY
    if any(hint in text for hint in _SKILL_HINTS):
        return TestType.KNOWLEDGE
    return TestType.OTHER


def coarse_type(labels: Union[str, Iterable[str], None]) -> TestType:
    """
    Map SHL test type labels to a coarse category (K=Knowledge, P=Personality, O=Other).

    Args:
        labels: One label or a list of labels as found in catalogue exports

    Returns:
        K if any label is a knowledge type, else P if any is a personality
        type, else O
    """
    if labels is None:
        return TestType.OTHER
    if isinstance(labels, str):
        labels = [labels]

    mapped = [COARSE_TYPE_MAP.get(str(label).strip().lower()) for label in labels]
    # Prioritize K if found
    if TestType.KNOWLEDGE in mapped:
        return TestType.KNOWLEDGE
    if TestType.PERSONALITY in mapped:
        return TestType.PERSONALITY
    return TestType.OTHER


def _record_from_entry(entry: Dict[str, Any]) -> AssessmentRecord:
    # Catalogue exports keep the fine-grained labels in "test_types"
    if TestType.parse(entry.get("test_type")) is None and entry.get("test_types"):
        entry = dict(entry, test_type=coarse_type(entry["test_types"]).value)
    return AssessmentRecord.from_dict(entry)


def load_catalogue(path: PathLike) -> List[AssessmentRecord]:
    """
    Load assessment records from a JSON list.

    Entries without a name or url are skipped with a warning.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a JSON list
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Catalogue not found at {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"Catalogue at {path} must be a JSON list, got {type(data).__name__}")

    records: List[AssessmentRecord] = []
    skipped = 0
    for entry in data:
        if not isinstance(entry, dict):
            skipped += 1
            continue
        record = _record_from_entry(entry)
        if not record.name or not record.url:
            skipped += 1
            continue
        records.append(record)

    if skipped:
        logger.warning(f"Skipped {skipped} malformed catalogue entries in {path}")
    logger.info(f"Loaded {len(records)} assessments from {path}")
    return records


def _read_sheet(path: Path) -> pd.DataFrame:
    if path.suffix.lower() == ".csv":
        return pd.read_csv(path, dtype=str, keep_default_na=False)
    return pd.read_excel(path, dtype=str, keep_default_na=False)


def _find_column(df: pd.DataFrame, *names: str) -> str:
    cols = {str(c).strip().lower(): c for c in df.columns}
    for name in names:
        if name in cols:
            return cols[name]
    raise ValueError(f"Expected one of columns {list(names)}, found {list(df.columns)}")


def load_labeled_set(path: PathLike) -> List[Dict[str, Any]]:
    """
    Load labeled evaluation data as ``[{"query", "ground_truth_urls"}]``.

    JSON files are returned as-is (a list of such dicts). CSV/XLSX sheets are
    expected to hold one ``Query`` / ``Assessment_url`` pair per row; rows are
    grouped by query, keeping first-seen order of queries and urls.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Labeled data not found at {path}")

    if path.suffix.lower() in SHEET_SUFFIXES:
        df = _read_sheet(path)
        query_col = _find_column(df, "query")
        url_col = _find_column(df, "assessment_url", "ground_truth_url", "url")

        grouped: "OrderedDict[str, List[str]]" = OrderedDict()
        for query, url in zip(df[query_col], df[url_col]):
            query = str(query).strip()
            url = str(url).strip()
            if not query:
                continue
            urls = grouped.setdefault(query, [])
            if url and url not in urls:
                urls.append(url)
        items = [{"query": q, "ground_truth_urls": urls} for q, urls in grouped.items()]
    else:
        with open(path, "r", encoding="utf-8") as f:
            items = json.load(f)
        if not isinstance(items, list):
            raise ValueError(f"Labeled data at {path} must be a JSON list")

    logger.info(f"Loaded {len(items)} labeled queries from {path}")
    return items


def load_queries(path: PathLike) -> List[str]:
    """Load unlabeled queries from a JSON list of strings or a sheet with a ``Query`` column."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Query file not found at {path}")

    if path.suffix.lower() in SHEET_SUFFIXES:
        df = _read_sheet(path)
        raw = df[_find_column(df, "query")].tolist()
    else:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        if not isinstance(raw, list):
            raise ValueError(f"Queries at {path} must be a JSON list")
        raw = [q.get("query", "") if isinstance(q, dict) else q for q in raw]

    queries = [str(q).strip() for q in raw if str(q).strip()]
    logger.info(f"Loaded {len(queries)} queries from {path}")
    return queries
