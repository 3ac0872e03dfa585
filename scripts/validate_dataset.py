"""Sanity checks for a harvested dataset before handing it to the visualization."""

import json
import sys
from collections import Counter
from pathlib import Path

from xcommunity.config import ScraperConfig
from xcommunity.core.images import extension_for


def validate_dataset(dataset: Path, pfp_dir: Path) -> tuple[list[dict], list[str]]:
    """
    Check a dataset file written by `xcommunity scrape`.

    Returns (records, validation errors); errors is empty if all pass.
    """
    errors = []

    try:
        records = json.loads(dataset.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        return [], [f"CRITICAL: cannot read {dataset}: {e}"]

    if not isinstance(records, list):
        return [], ["CRITICAL: dataset is not a JSON array"]

    handles = Counter(r.get("handle") for r in records)
    dupes = [h for h, n in handles.items() if n > 1]
    if dupes:
        errors.append(f"CRITICAL: {len(dupes)} duplicate handles: {dupes[:5]}")
    if None in handles or "" in handles:
        errors.append("CRITICAL: records without a handle")

    bad_followers = [
        r.get("handle") for r in records
        if r.get("followers") is not None
        and (not isinstance(r["followers"], int) or r["followers"] < 0)
    ]
    if bad_followers:
        errors.append(f"CRITICAL: non-integer follower counts for {bad_followers[:5]}")

    missing_avatars = [
        r["handle"] for r in records
        if r.get("pfp_url") and r.get("handle")
        and not (pfp_dir / f"{r['handle']}.{extension_for(r['pfp_url'])}").exists()
    ]
    if missing_avatars:
        errors.append(f"WARNING: {len(missing_avatars)} avatars not on disk: {missing_avatars[:5]}...")

    return records, errors


def main():
    config = ScraperConfig()
    dataset = Path(sys.argv[1] if len(sys.argv) > 1 else config.output_path)
    pfp_dir = Path(sys.argv[2] if len(sys.argv) > 2 else config.pfp_dir)

    print("=" * 60)
    print(f"Validating {dataset}")
    print("=" * 60)

    records, errors = validate_dataset(dataset, pfp_dir)

    with_followers = sum(1 for r in records if r.get("followers") is not None)
    with_bio = sum(1 for r in records if r.get("bio"))
    print(f"Profiles:       {len(records)}")
    print(f"With followers: {with_followers}")
    print(f"With bio:       {with_bio}")

    for err in errors:
        print(f"  ⚠️  {err}")

    critical = [e for e in errors if e.startswith("CRITICAL")]
    print(f"\n{'❌' if critical else '✓'} {len(critical)} critical, {len(errors) - len(critical)} warnings")
    sys.exit(1 if critical else 0)


if __name__ == "__main__":
    main()
