"""
Run the full pipeline over the labeled training set and report Recall@10.

Usage:
    python tools/run_full_eval.py
    python tools/run_full_eval.py --labeled data/train.csv --report outputs/eval_report.json
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Ensure project root on path when running from tools/
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from shl_recommender.catalogue import load_labeled_set
from shl_recommender.config import EVALUATION_K, LOG_LEVEL, TRAIN_DATA_PATH
from shl_recommender.evaluator import aevaluate
from shl_recommender.logging_config import setup_logging
from shl_recommender.workflow_graph import get_orchestrator


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Evaluate Recall@K on labeled queries.")
    parser.add_argument("--labeled", type=Path, default=TRAIN_DATA_PATH,
                        help="Labeled JSON or Query/Assessment_url sheet (default: %(default)s)")
    parser.add_argument("--k", type=int, default=EVALUATION_K,
                        help="Recall cutoff (default: %(default)s)")
    parser.add_argument("--report", type=Path, default=None,
                        help="Optional path for the JSON report")
    parser.add_argument("--verbose", action="store_true",
                        help="Keep pipeline logging on the console")
    return parser.parse_args()


async def main() -> int:
    args = parse_args()
    setup_logging(level=LOG_LEVEL if args.verbose else "WARNING")

    labeled = load_labeled_set(args.labeled)

    orchestrator = get_orchestrator()
    await orchestrator.ensure_ready()

    async def recommender_fn(query: str):
        return await orchestrator.recommend_urls(query, args.k)

    report = await aevaluate(recommender_fn, labeled, k=args.k)

    print("=== Per-query Recall ===")
    for r in report.detailed_results:
        print(f"{r.recall:.3f}  {r.query[:90]}")

    print("\n=== Evaluation Results ===")
    print(f"Queries evaluated: {len(report.detailed_results)}")
    print(f"Recall@{args.k}: {report.mean_recall:.4f}")

    if args.report:
        args.report.parent.mkdir(parents=True, exist_ok=True)
        with open(args.report, "w", encoding="utf-8") as f:
            json.dump(report.to_dict(), f, indent=2)
        print(f"Report file: {args.report}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
