"""
Text-to-vector encoders.

Two interchangeable strategies sit behind :class:`VectorEncoder`:

* a neural sentence encoder (``sentence-transformers``, mean pooled and
  unit-normalized), used when the optional package and model are
  available;
* a deterministic hash encoder that spreads character codes over a small
  fixed number of buckets. It is not a semantic embedding; its only
  contract is that the same text always yields the same unit vector.

The choice between them is made once, the first time the encoder is
initialized, and never revisited for the lifetime of the instance. A
store built from one path is therefore never queried with the other.
"""

import asyncio
import threading
from typing import Optional

import numpy as np

from .config import ENCODER_BACKEND, HASH_DIMENSION, SENTENCE_MODEL_NAME
from .logging_config import get_logger

logger = get_logger(__name__)

BACKEND_AUTO = "auto"
BACKEND_HASH = "hash"
BACKEND_SENTENCE = "sentence-transformers"
KNOWN_BACKENDS = (BACKEND_AUTO, BACKEND_HASH, BACKEND_SENTENCE)

_CHAR_MODULUS = 31


def hash_encode(text: str, dim: int = HASH_DIMENSION) -> np.ndarray:
    """
    Deterministic lightweight embedding: hash characters into a fixed vector.

    Character ``i`` adds ``(ord(ch) % 31) / 31`` to bucket ``i % dim``; the
    result is divided by its L2 norm (a zero norm is treated as 1, so the
    empty string maps to the zero vector).
    """
    vec = np.zeros(dim, dtype=np.float64)
    for i, ch in enumerate(text or ""):
        vec[i % dim] += (ord(ch) % _CHAR_MODULUS) / _CHAR_MODULUS
    mag = float(np.linalg.norm(vec)) or 1.0
    return vec / mag


class VectorEncoder:
    """
    Encode text into fixed-dimension vectors.

    Args:
        backend: ``"auto"``, ``"sentence-transformers"`` or ``"hash"``.
            Defaults to the ``ENCODER_BACKEND`` setting.
        model_name: Sentence-transformers model to load on the neural path.
        hash_dimension: Vector size on the hash path.

    Attributes:
        backend: The path actually in use (``"hash"`` or
            ``"sentence-transformers"``) once initialized, else None.
        dimension: Vector size once initialized, else None.
    """

    def __init__(
        self,
        backend: Optional[str] = None,
        model_name: str = SENTENCE_MODEL_NAME,
        hash_dimension: int = HASH_DIMENSION,
    ):
        requested = (backend or ENCODER_BACKEND).strip().lower()
        if requested not in KNOWN_BACKENDS:
            logger.warning(f"Unknown encoder backend '{requested}', using '{BACKEND_AUTO}'")
            requested = BACKEND_AUTO

        self.requested_backend = requested
        self.model_name = model_name
        self.hash_dimension = hash_dimension

        self.backend: Optional[str] = None
        self.dimension: Optional[int] = None
        self._model = None
        self._lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self.backend is not None

    def initialize(self) -> None:
        """
        Decide the encoding path. Idempotent and safe to call concurrently;
        only the first caller does any work.
        """
        if self.backend is not None:
            return
        with self._lock:
            if self.backend is not None:
                return

            if self.requested_backend != BACKEND_HASH and self._load_sentence_model():
                return

            self._model = None
            self.dimension = self.hash_dimension
            self.backend = BACKEND_HASH
            logger.info(f"Using deterministic hash encoder (dim={self.dimension})")

    def _load_sentence_model(self) -> bool:
        log = logger.warning if self.requested_backend == BACKEND_SENTENCE else logger.info
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError as e:
            log(f"sentence-transformers not installed ({e}); falling back to hash encoder")
            return False

        try:
            logger.info(f"Loading embedding model {self.model_name}...")
            model = SentenceTransformer(self.model_name)
            probe = model.encode("probe", normalize_embeddings=True)
            dimension = int(np.asarray(probe).shape[-1])
        except Exception as e:
            logger.warning(
                f"Failed to load embedding model {self.model_name}, "
                f"falling back to hash encoder: {e}"
            )
            return False

        self._model = model
        self.dimension = dimension
        self.backend = BACKEND_SENTENCE
        logger.info(f"Model loaded! (dim={dimension})")
        return True

    def encode(self, text: str) -> np.ndarray:
        """Encode one text into a vector of length :attr:`dimension`."""
        self.initialize()
        text = text or ""
        if self._model is None:
            return hash_encode(text, self.hash_dimension)
        output = self._model.encode(text, normalize_embeddings=True)
        return np.asarray(output, dtype=np.float64).reshape(-1)

    async def aencode(self, text: str) -> np.ndarray:
        """Encode without blocking the event loop."""
        return await asyncio.to_thread(self.encode, text)
