"""
Check whether the ground-truth assessments of the labeled set exist in the catalogue.

Low recall can come from ranking or from urls the catalogue never had; this
tells the two apart. Urls are compared by their ``/view/<slug>`` part so
that trailing slashes and host variants still match.

Usage:
    python scripts/check_ground_truth_presence.py
    python scripts/check_ground_truth_presence.py --labeled data/train.csv --role COO
"""
import argparse
import sys
from pathlib import Path

# Ensure project root is on sys.path when running from scripts/
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from shl_recommender.catalogue import load_catalogue, load_labeled_set
from shl_recommender.config import CATALOGUE_PATH, TRAIN_DATA_PATH
from shl_recommender.logging_config import setup_logging


def normalize_url(url):
    """Extract assessment slug from URL"""
    if '/view/' in url:
        slug = url.split('/view/')[-1].rstrip('/')
        return slug.lower()
    return url.lower().strip().rstrip('/')


def parse_args():
    parser = argparse.ArgumentParser(description="Check ground-truth coverage of the catalogue.")
    parser.add_argument("--labeled", type=Path, default=TRAIN_DATA_PATH)
    parser.add_argument("--catalogue", type=Path, default=CATALOGUE_PATH)
    parser.add_argument("--role", default=None,
                        help="Only check queries containing this text (case-insensitive)")
    return parser.parse_args()


def main():
    args = parse_args()
    setup_logging(level="WARNING")

    print("=" * 80)
    print("GROUND TRUTH PRESENCE CHECK" + (f" FOR '{args.role}'" if args.role else ""))
    print("=" * 80)

    labeled = load_labeled_set(args.labeled)
    if args.role:
        labeled = [item for item in labeled if args.role.lower() in str(item.get("query", "")).lower()]
    print(f"\nFound {len(labeled)} labeled queries")

    if not labeled:
        print(f"❌ No labeled query found in {args.labeled}")
        return 1

    records = load_catalogue(args.catalogue)
    print(f"✅ Loaded {len(records)} assessments from {args.catalogue}")
    by_slug = {normalize_url(r.url): r for r in records}

    all_urls = set()
    for item in labeled:
        for url in item.get("ground_truth_urls") or []:
            if url.strip():
                all_urls.add(url.strip())

    if not all_urls:
        print("❌ Labeled queries carry no ground-truth urls")
        return 1

    print(f"\n{'=' * 80}")
    print(f"CHECKING {len(all_urls)} UNIQUE GROUND TRUTH URLS")
    print("=" * 80)

    found_count = 0
    missing_count = 0

    for url in sorted(all_urls):
        slug = normalize_url(url)
        record = by_slug.get(slug)

        if record:
            found_count += 1
            print(f"\n✅ FOUND: {slug}")
            print(f"   Name: {record.name}")
            print(f"   URL: {record.url}")
            print(f"   Type: {record.test_type.value}")
        else:
            missing_count += 1
            print(f"\n❌ MISSING: {slug}")
            print(f"   Original URL: {url}")

    # Summary
    print(f"\n{'=' * 80}")
    print("SUMMARY")
    print("=" * 80)
    print(f"Total ground truth URLs: {len(all_urls)}")
    print(f"Found in catalogue: {found_count} ({found_count / len(all_urls) * 100:.1f}%)")
    print(f"Missing from catalogue: {missing_count} ({missing_count / len(all_urls) * 100:.1f}%)")

    if missing_count > 0:
        print(f"\n⚠️  {missing_count} assessments are missing from the catalogue.")
        print("   Recall is capped by ground truth we do not have.")
    else:
        print("\n✅ All ground truth assessments exist in the catalogue.")
        print("   Any recall gap is retrieval/ranking, not missing data.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
