"""
In-memory embedding store for the assessment catalogue.

The store is populated once per process (from a saved snapshot, a bulk
``populate`` call, or lazily from a record source on first query) and is
read-only afterwards, so any number of request handlers may query it
concurrently without locking.
"""

import asyncio
import json
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from .embeddings import VectorEncoder
from .logging_config import get_logger
from .models import AssessmentRecord, EmbeddingRecord, ScoredAssessment

logger = get_logger(__name__)

RecordSource = Callable[[], Sequence[AssessmentRecord]]


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    Returns 0.0 when either vector has zero magnitude or the dimensions differ.
    """
    a = np.asarray(vec_a, dtype=np.float64)
    b = np.asarray(vec_b, dtype=np.float64)
    if a.shape != b.shape or a.size == 0:
        return 0.0
    denom = float(np.linalg.norm(a)) * float(np.linalg.norm(b))
    if denom == 0.0:
        return 0.0
    return float(np.dot(a, b) / denom)


class EmbeddingStore:
    """
    Nearest-neighbour lookup over catalogue embeddings.

    Args:
        encoder: Encoder shared by population and queries.
        record_source: Optional callable returning catalogue records; used
            to populate the store lazily on first use.
        snapshot_path: Optional JSON snapshot to restore on first use.
            Takes precedence over ``record_source`` when the file exists.
    """

    def __init__(
        self,
        encoder: Optional[VectorEncoder] = None,
        record_source: Optional[RecordSource] = None,
        snapshot_path: Optional[Union[str, Path]] = None,
    ):
        self.encoder = encoder or VectorEncoder()
        self.record_source = record_source
        self.snapshot_path = Path(snapshot_path) if snapshot_path else None

        # Records and their (n, d) matrix are always swapped together
        self._state: Tuple[Tuple[EmbeddingRecord, ...], np.ndarray] = (
            (),
            np.zeros((0, 0), dtype=np.float64),
        )
        self._ready = False
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._state[0])

    @property
    def records(self) -> Tuple[EmbeddingRecord, ...]:
        return self._state[0]

    @property
    def dimension(self) -> Optional[int]:
        records = self._state[0]
        return records[0].dimension if records else None

    @property
    def ready(self) -> bool:
        return self._ready

    # ------------------------------------------------------------------
    # Population
    # ------------------------------------------------------------------

    def ensure_ready(self) -> None:
        """
        Initialize the encoder and fill the store exactly once.

        Concurrent first callers block on the lock; only one of them loads the
        snapshot or pulls from the record source, the rest see the result. An
        unreadable snapshot falls back to the record source, and an
        unavailable source leaves the store empty rather than failing.
        """
        if self._ready:
            return
        with self._lock:
            if self._ready:
                return

            self.encoder.initialize()

            if self.snapshot_path is not None and self.snapshot_path.exists():
                try:
                    self.load(self.snapshot_path)
                    self._ready = True
                    return
                except (OSError, ValueError) as e:
                    logger.warning(f"Could not load embeddings from {self.snapshot_path}: {e}", exc_info=True)

            if self.record_source is not None:
                try:
                    records = list(self.record_source())
                except (OSError, ValueError) as e:
                    logger.warning(f"Could not auto-create embeddings: {e}")
                    records = []
                if records:
                    self.populate(records)
                else:
                    logger.warning("No assessments available; store stays empty")
            else:
                logger.warning("No embeddings found and no catalogue source configured")

            self._ready = True

    def populate(self, records: Sequence[AssessmentRecord]) -> List[EmbeddingRecord]:
        """
        Encode ``records`` and replace the store's contents with them.

        Records keep their arrival order; ids are their positions.
        """
        with self._lock:
            self.encoder.initialize()
            logger.info(f"Generating embeddings for {len(records)} assessments...")

            built: List[EmbeddingRecord] = []
            for i, record in enumerate(records):
                vector = self.encoder.encode(record.combined_text)
                built.append(
                    EmbeddingRecord(
                        id=i,
                        assessment=record,
                        embedding=tuple(float(v) for v in vector),
                    )
                )
                if (i + 1) % 50 == 0:
                    logger.info(f"Processed {i + 1}/{len(records)} embeddings")

            self._install(built)
            self._ready = True
            return built

    def _install(self, records: Sequence[EmbeddingRecord]) -> None:
        dims = {r.dimension for r in records}
        if len(dims) > 1:
            raise ValueError(f"Embeddings have mixed dimensions {sorted(dims)}")

        if records:
            matrix = np.asarray([r.embedding for r in records], dtype=np.float64)
        else:
            matrix = np.zeros((0, 0), dtype=np.float64)
        self._state = (tuple(records), matrix)

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def query(self, text: str, k: int) -> List[ScoredAssessment]:
        """
        Return the ``k`` records most similar to ``text``.

        Results are sorted by descending cosine similarity; equal scores
        keep insertion order. ``k`` is clamped to ``[0, len(store)]``.
        """
        self.ensure_ready()
        records, matrix = self._state
        k = max(0, min(int(k), len(records)))
        if k == 0:
            return []

        query_vec = self.encoder.encode(text)
        similarities = self._similarities(matrix, query_vec)

        order = np.argsort(-similarities, kind="stable")[:k]
        return [
            ScoredAssessment(records[i].assessment, float(similarities[i]))
            for i in order
        ]

    async def aquery(self, text: str, k: int) -> List[ScoredAssessment]:
        """Async variant of :meth:`query`; encoding runs in a worker thread."""
        return await asyncio.to_thread(self.query, text, k)

    @staticmethod
    def _similarities(matrix: np.ndarray, query_vec: np.ndarray) -> np.ndarray:
        n = matrix.shape[0]
        if matrix.shape[1] != query_vec.shape[0]:
            logger.error(
                f"Query dimension {query_vec.shape[0]} does not match store "
                f"dimension {matrix.shape[1]}; all similarities are 0"
            )
            return np.zeros(n, dtype=np.float64)

        row_norms = np.linalg.norm(matrix, axis=1)
        query_norm = float(np.linalg.norm(query_vec))
        denom = row_norms * query_norm
        dots = matrix @ query_vec
        # Zero magnitude on either side means similarity 0
        return np.divide(dots, denom, out=np.zeros(n, dtype=np.float64), where=denom > 0)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_snapshot(self) -> List[Dict[str, Any]]:
        return [r.to_dict() for r in self._state[0]]

    def from_snapshot(self, entries: Sequence[Dict[str, Any]]) -> None:
        """
        Restore the store from snapshot entries without re-encoding.

        When the snapshot was produced by a different encoder path (its
        dimension differs from the active encoder's), the assessments are
        re-encoded instead so the store never mixes vector spaces.

        Raises:
            ValueError: If the entries are malformed or mix dimensions
        """
        try:
            records = [EmbeddingRecord.from_dict(e) for e in entries]
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Malformed embedding snapshot: {e}") from e

        with self._lock:
            self.encoder.initialize()
            self._install(records)

            dimension = self.dimension
            if dimension is not None and dimension != self.encoder.dimension:
                logger.warning(
                    f"Snapshot dimension {dimension} does not match the "
                    f"{self.encoder.backend} encoder ({self.encoder.dimension}); re-encoding"
                )
                self.populate([r.assessment for r in records])
            self._ready = True

    def save(self, filepath: Union[str, Path]) -> None:
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_snapshot(), f, indent=2)
        logger.info(f"Embeddings saved to {path}")

    def load(self, filepath: Union[str, Path]) -> None:
        path = Path(filepath)
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"Embedding snapshot at {path} must be a JSON list")
        self.from_snapshot(data)
        logger.info(f"Loaded {len(self)} embeddings")
