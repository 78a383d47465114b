"""
Generate a predictions CSV for unlabeled queries.

Output columns: ``Query, Recommendation_1 .. Recommendation_10``; each
recommendation cell holds an assessment url, blank when fewer than ten
results came back.

Usage:
    python scripts/generate_predictions.py --queries data/unlabeled_test.json --output predictions.csv
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List

import pandas as pd

# Ensure project root is on sys.path when running from scripts/
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from shl_recommender.catalogue import load_queries
from shl_recommender.config import DATA_DIR, LOG_LEVEL, MAX_TOP_K
from shl_recommender.logging_config import get_logger, setup_logging
from shl_recommender.workflow_graph import WorkflowOrchestrator, get_orchestrator

logger = get_logger(__name__)

RECOMMENDATION_COLUMNS = [f"Recommendation_{i}" for i in range(1, MAX_TOP_K + 1)]


async def build_predictions(orchestrator: WorkflowOrchestrator, queries: List[str]) -> pd.DataFrame:
    """One row per query, urls padded with blanks to ten columns."""
    rows = []
    for i, query in enumerate(queries, 1):
        urls = await orchestrator.recommend_urls(query, MAX_TOP_K)
        padded = urls + [""] * (MAX_TOP_K - len(urls))
        rows.append([query] + padded[:MAX_TOP_K])
        logger.info(f"[{i}/{len(queries)}] {len(urls)} recommendations for: {query[:60]}")
    return pd.DataFrame(rows, columns=["Query"] + RECOMMENDATION_COLUMNS)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Write predictions for unlabeled queries.")
    parser.add_argument("--queries", type=Path, default=DATA_DIR / "unlabeled_test.json",
                        help="JSON list or CSV/XLSX with a Query column (default: %(default)s)")
    parser.add_argument("--output", type=Path, default=Path("predictions.csv"),
                        help="CSV output path (default: %(default)s)")
    return parser.parse_args()


async def main() -> int:
    args = parse_args()
    setup_logging(level=LOG_LEVEL)

    try:
        queries = load_queries(args.queries)
    except (OSError, ValueError) as e:
        logger.error(f"❌ {e}")
        return 1

    orchestrator = get_orchestrator()
    await orchestrator.ensure_ready()

    df = await build_predictions(orchestrator, queries)
    args.output.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(args.output, index=False)
    logger.info(f"✅ Predictions written to {args.output} ({len(df)} queries)")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
