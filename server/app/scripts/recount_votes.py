"""Rebuild every re-release request's total_votes from the vote ledger."""

import argparse
import sys

from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.models.rerelease_request import RereleaseRequest
from app.services.rerelease import recount_votes


def recount_all(db: Session, dry_run: bool = False) -> list[tuple[int, int, int]]:
    """Return (request_id, old_total, new_total) for every counter that drifted."""
    drifted = []
    for rerelease in db.query(RereleaseRequest).order_by(RereleaseRequest.id).all():
        before = rerelease.total_votes
        if dry_run:
            after = len(rerelease.votes)
        else:
            after = recount_votes(db, rerelease).total_votes
        if before != after:
            drifted.append((rerelease.id, before, after))
    return drifted


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--dry-run", action="store_true", help="Report drift without writing")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        drifted = recount_all(db, dry_run=args.dry_run)
    except Exception as e:
        print(f"Recount error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        db.close()

    for request_id, before, after in drifted:
        print(f"Request {request_id}: {before} -> {after}")
    verb = "would be fixed" if args.dry_run else "fixed"
    print(f"{len(drifted)} counter(s) {verb}.")


if __name__ == "__main__":
    main()
