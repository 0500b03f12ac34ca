"""
Batch trigger for the review agent, meant for cron or a scheduler.

    python -m scripts.run_review_agent populate --office 12
    python -m scripts.run_review_agent populate --review-type Peers
    python -m scripts.run_review_agent recalculate
"""
import argparse
import json
import logging
import signal
import sys
import threading
import uuid

from app.core.logging import request_id_var, setup_logging
from app.database import SessionLocal, init_db
from app.models.competency import ReviewTypeName
from app.schemas.review_agent import PopulateScopeRequest
from app.services.review_population import ReviewPopulationEngine
from app.services.score_aggregator import ScoreAggregator

logger = logging.getLogger("review_agent.batch")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Populate competency reviews or recalculate review profiles.")
    sub = parser.add_subparsers(dest="command", required=True)

    populate = sub.add_parser("populate", help="Create review records for the current review period")
    unit = populate.add_mutually_exclusive_group()
    unit.add_argument("--employee", help="Employee number")
    unit.add_argument("--office", type=int, help="Office id")
    unit.add_argument("--division", type=int, help="Division id")
    unit.add_argument("--department", type=int, help="Department id")
    unit.add_argument(
        "--review-type",
        choices=[t.value for t in ReviewTypeName],
        help="Whole organisation, one review type",
    )

    sub.add_parser("recalculate", help="Recalculate all review profiles for the current review period")
    return parser


def run(args: argparse.Namespace, cancel_event: threading.Event):
    db = SessionLocal()
    try:
        if args.command == "recalculate":
            return ScoreAggregator(db, cancel_event=cancel_event).recalculate_all()

        engine = ReviewPopulationEngine(db, cancel_event=cancel_event)
        if args.review_type:
            return engine.populate_all_for_review_type(args.review_type)
        scope = PopulateScopeRequest(
            employee_number=args.employee,
            office_id=args.office,
            division_id=args.division,
            department_id=args.department,
        )
        return engine.populate(scope)
    finally:
        db.close()


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()
    request_id_var.set(f"batch-{uuid.uuid4()}")
    init_db()

    cancel_event = threading.Event()

    def _cancel(signum, frame):
        logger.warning(f"Received signal {signum}, stopping after the current unit")
        cancel_event.set()

    signal.signal(signal.SIGINT, _cancel)
    signal.signal(signal.SIGTERM, _cancel)

    summary = run(args, cancel_event)
    print(json.dumps(summary.model_dump(mode="json"), indent=2))
    if summary.cancelled:
        return 130
    return 1 if summary.failed else 0


if __name__ == "__main__":
    sys.exit(main())
