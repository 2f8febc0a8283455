"""Participant record pipeline: command line entry point.

Usage:
  # Submit a record, merging into an existing one with the same email
  python cli.py submit --field email=jane@example.com --field first_name=Jane \
      --match email --policy update

  # Update record 12 directly, validating only the submitted fields
  python cli.py submit --id 12 --field phone=555-0100 --expect phone

  # Show a record by numeric id or private id
  python cli.py show --id 12
  python cli.py show --pid 7K2Q9XA

  # List the field registry
  python cli.py fields
"""
import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from pydantic import TypeAdapter

from db.connection import dispose_engine, get_db, get_sessionmaker
from record_config import get_settings
from records import SqlFieldRegistry, SubmissionProcessor
from schemas import MatchingPolicy, SubmissionOutcome

logger = logging.getLogger(__name__)

_outcome_adapter = TypeAdapter(SubmissionOutcome)


def _parse_fields(pairs: list[str]) -> dict[str, object]:
    """Turn ``name=value`` pairs into a submission; repeated names become lists."""
    values: dict[str, object] = {}
    for pair in pairs:
        if "=" not in pair:
            raise SystemExit(f"--field expects name=value, got {pair!r}")
        name, value = pair.split("=", 1)
        name = name.strip()
        if name in values:
            existing = values[name]
            values[name] = (existing if isinstance(existing, list) else [existing]) + [value]
        else:
            values[name] = value
    return values


async def _build_processor() -> SubmissionProcessor:
    registry = SqlFieldRegistry()
    async with get_db() as session:
        await registry.refresh(session)
    return SubmissionProcessor.from_sessionmaker(get_sessionmaker(), registry)


async def run_submit(
    pairs: list[str],
    record_id: Optional[int],
    match_fields: list[str],
    policy: str,
    expect: Optional[list[str]],
) -> dict:
    processor = await _build_processor()
    matching = MatchingPolicy(
        policy=policy,
        fields=match_fields or list(get_settings().match_fields),
    )
    try:
        outcome = await processor.process_submission(
            _parse_fields(pairs),
            record_id_hint=record_id,
            expected_fields=expect,
            matching_policy=matching,
        )
    finally:
        await dispose_engine()
    result = _outcome_adapter.dump_python(outcome, mode="json")
    print(json.dumps(result, indent=2))
    return result


async def run_show(record_id: Optional[int], private_id: Optional[str]) -> Optional[dict]:
    processor = await _build_processor()
    try:
        if private_id:
            record = await processor.get_record_by_private_id(private_id)
        else:
            record = await processor.get_record(record_id)
        if record is None:
            print("Record not found")
            return None
        prev_id, next_id = await processor.neighbors(record.id)
    finally:
        await dispose_engine()
    result = {**record.model_dump(mode="json"), "previous": prev_id, "next": next_id}
    print(json.dumps(result, indent=2))
    return result


async def run_fields() -> list[dict]:
    registry = SqlFieldRegistry()
    try:
        async with get_db() as session:
            definitions = await registry.refresh(session)
    finally:
        await dispose_engine()
    result = [d.model_dump(mode="json") for d in definitions]
    print(json.dumps(result, indent=2))
    return result


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Participant record resolution and upsert pipeline"
    )
    sub = parser.add_subparsers(dest="command")

    submit = sub.add_parser("submit", help="Process a form submission")
    submit.add_argument("--field", action="append", default=[], help="name=value (repeatable)")
    submit.add_argument("--id", type=int, default=None, help="Record id to update")
    submit.add_argument("--match", action="append", default=[], help="Matching field, in priority order (repeatable)")
    submit.add_argument(
        "--policy",
        choices=["strict", "update", "block"],
        default=get_settings().match_policy,
        help="What to do when the submission matches an existing record",
    )
    submit.add_argument("--expect", nargs="+", default=None, help="Only validate and write these fields")

    show = sub.add_parser("show", help="Show a record")
    target = show.add_mutually_exclusive_group(required=True)
    target.add_argument("--id", type=int)
    target.add_argument("--pid", help="Private id")

    sub.add_parser("fields", help="List field definitions")

    return parser


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    parser = _build_arg_parser()
    args = parser.parse_args()

    if args.command == "submit":
        result = asyncio.run(run_submit(
            pairs=args.field,
            record_id=args.id,
            match_fields=args.match,
            policy=args.policy,
            expect=args.expect,
        ))
        if result["kind"] not in ("success", "skip"):
            sys.exit(1)

    elif args.command == "show":
        if asyncio.run(run_show(record_id=args.id, private_id=args.pid)) is None:
            sys.exit(1)

    elif args.command == "fields":
        asyncio.run(run_fields())

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
