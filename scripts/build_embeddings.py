"""
Build the embedding snapshot from the assessment catalogue.

Reads the catalogue JSON, encodes every assessment with the configured
encoder and writes the snapshot the API loads on startup.

Usage:
    python scripts/build_embeddings.py
    python scripts/build_embeddings.py --catalogue data/assessments.json --output data/embeddings.json --backend hash
"""

import argparse
import sys
from pathlib import Path

# Ensure project root is on sys.path when running from scripts/
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from shl_recommender.catalogue import load_catalogue
from shl_recommender.config import CATALOGUE_PATH, EMBEDDINGS_PATH, LOG_LEVEL
from shl_recommender.embedding_store import EmbeddingStore
from shl_recommender.embeddings import KNOWN_BACKENDS, VectorEncoder
from shl_recommender.logging_config import get_logger, setup_logging

logger = get_logger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Encode the catalogue into an embedding snapshot.")
    parser.add_argument("--catalogue", type=Path, default=CATALOGUE_PATH,
                        help="Catalogue JSON (default: %(default)s)")
    parser.add_argument("--output", type=Path, default=EMBEDDINGS_PATH,
                        help="Snapshot path (default: %(default)s)")
    parser.add_argument("--backend", choices=KNOWN_BACKENDS, default=None,
                        help="Encoder backend (default: ENCODER_BACKEND setting)")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    setup_logging(level=LOG_LEVEL)

    try:
        records = load_catalogue(args.catalogue)
    except (OSError, ValueError) as e:
        logger.error(f"❌ Could not load catalogue: {e}")
        return 1

    if not records:
        logger.error("❌ Catalogue is empty; nothing to encode")
        return 1

    store = EmbeddingStore(encoder=VectorEncoder(backend=args.backend))
    store.populate(records)
    store.save(args.output)

    logger.info(
        f"✅ Wrote {len(store)} embeddings (encoder={store.encoder.backend}, "
        f"dim={store.dimension}) to {args.output}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
