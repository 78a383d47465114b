"""
Core data types shared by the retrieval, balancing and evaluation stages.

There is exactly one canonical assessment type (:class:`AssessmentRecord`).
Older catalogue dumps and older API clients use ``assessment_name`` /
``assessment_url``; those shapes are handled only at the edges, by
:meth:`AssessmentRecord.from_dict` on the way in and by
:func:`format_recommendation` (schema version 1) on the way out.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Tuple


class TestType(str, Enum):
    """Coarse assessment category used for balancing."""

    __test__ = False  # not a pytest test class

    KNOWLEDGE = "K"
    PERSONALITY = "P"
    OTHER = "O"

    @classmethod
    def parse(cls, value: Any) -> Optional["TestType"]:
        """Return the matching member for ``"K"``/``"P"``/``"O"`` (any case), else None."""
        if isinstance(value, cls):
            return value
        if value is None:
            return None
        text = str(value).strip().upper()
        for member in cls:
            if member.value == text:
                return member
        return None


class SeniorityLevel(str, Enum):
    ENTRY = "entry"
    MID = "mid"
    SENIOR = "senior"


@dataclass(frozen=True)
class AssessmentRecord:
    """Immutable catalogue entry."""

    name: str
    url: str
    description: str = ""
    category: str = ""
    test_type: TestType = TestType.OTHER

    @property
    def combined_text(self) -> str:
        """Encoder input: name, description, category and type in one string."""
        return (
            f"{self.name}. {self.description}. "
            f"Category: {self.category}. Type: {self.test_type.value}"
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "url": self.url,
            "description": self.description,
            "category": self.category,
            "test_type": self.test_type.value,
            "combined_text": self.combined_text,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AssessmentRecord":
        """
        Build a record from a catalogue dict.

        Accepts canonical keys and the legacy ``assessment_name`` /
        ``assessment_url`` keys. A missing or unknown ``test_type`` is
        inferred from the name and description.
        """
        name = str(data.get("name") or data.get("assessment_name") or "").strip()
        url = str(data.get("url") or data.get("assessment_url") or "").strip()
        description = str(data.get("description") or "").strip()
        category = str(data.get("category") or "").strip()

        test_type = TestType.parse(data.get("test_type"))
        if test_type is None:
            # Imported lazily: catalogue helpers depend on this module
            from .catalogue import infer_test_type

            test_type = infer_test_type(name, description)

        return cls(
            name=name,
            url=url,
            description=description,
            category=category,
            test_type=test_type,
        )


@dataclass(frozen=True)
class EmbeddingRecord:
    """One catalogue entry paired with its vector."""

    id: int
    assessment: AssessmentRecord
    embedding: Tuple[float, ...]

    @property
    def dimension(self) -> int:
        return len(self.embedding)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "assessment": self.assessment.to_dict(),
            "embedding": list(self.embedding),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EmbeddingRecord":
        return cls(
            id=int(data["id"]),
            assessment=AssessmentRecord.from_dict(data["assessment"]),
            embedding=tuple(float(v) for v in data["embedding"]),
        )


class ScoredAssessment(NamedTuple):
    """A retrieval candidate: the record and its cosine similarity to the query."""

    record: AssessmentRecord
    similarity: float


@dataclass(frozen=True)
class RequirementSignal:
    """Structured summary of what a hiring query asks for."""

    needs_technical: bool = False
    needs_behavioral: bool = False
    needs_cognitive: bool = False
    level: SeniorityLevel = SeniorityLevel.MID

    def to_dict(self) -> Dict[str, Any]:
        return {
            "needsTechnical": self.needs_technical,
            "needsBehavioral": self.needs_behavioral,
            "needsCognitive": self.needs_cognitive,
            "level": self.level.value,
        }


@dataclass
class EvaluationResult:
    query: str
    recall: float
    predictions: List[str]
    ground_truth: List[str]
    k: int = 10

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            f"recall_at_{self.k}": self.recall,
            "predictions": list(self.predictions),
            "groundTruth": list(self.ground_truth),
        }


@dataclass
class EvaluationReport:
    mean_recall: float
    k: int = 10
    detailed_results: List[EvaluationResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            f"mean_recall_at_{self.k}": self.mean_recall,
            "detailed_results": [r.to_dict() for r in self.detailed_results],
        }


# Output schema versions for recommendation payloads
LEGACY_SCHEMA_VERSION = 1
CANONICAL_SCHEMA_VERSION = 2
SUPPORTED_SCHEMA_VERSIONS = (LEGACY_SCHEMA_VERSION, CANONICAL_SCHEMA_VERSION)


def format_recommendation(
    scored: ScoredAssessment,
    schema_version: int = CANONICAL_SCHEMA_VERSION,
) -> Dict[str, Any]:
    """
    Serialize one ranked candidate for callers.

    Version 2 uses the canonical field names; version 1 reproduces the
    ``assessment_name`` / ``assessment_url`` names older clients expect.
    ``relevance_score`` is the cosine similarity used for ranking.
    """
    record, similarity = scored
    if schema_version == CANONICAL_SCHEMA_VERSION:
        return {
            "name": record.name,
            "url": record.url,
            "description": record.description,
            "test_type": record.test_type.value,
            "relevance_score": float(similarity),
        }
    if schema_version == LEGACY_SCHEMA_VERSION:
        return {
            "assessment_name": record.name,
            "assessment_url": record.url,
            "description": record.description,
            "test_type": record.test_type.value,
            "relevance_score": float(similarity),
        }
    raise ValueError(
        f"Unsupported recommendation schema version {schema_version}; "
        f"expected one of {SUPPORTED_SCHEMA_VERSIONS}"
    )
