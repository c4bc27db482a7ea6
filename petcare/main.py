# petcare/main.py
import argparse
import asyncio
import json
import sys

import structlog

from petcare.core.clock import SystemClock, resolve_timezone
from petcare.core.errors import PetCareError
from petcare.core.logging_config import setup_logging
from petcare.core.scheduler import Scheduler
from petcare.core.settings import settings
from petcare.core.storage import open_store
from petcare.models.profiles import ActionKind
from petcare.services.report import TimeRange
from petcare.services.session import CareSession

log = structlog.get_logger(__name__)


def build_session(args) -> CareSession:
    clock = SystemClock(resolve_timezone(settings.TIMEZONE))
    return CareSession(
        archetype=args.pet,
        name=args.name,
        store=open_store(settings),
        clock=clock,
        scheduler=Scheduler(clock),
        config=settings,
    )


def start_with_essentials(session: CareSession) -> CareSession:
    """Start the session, buying the starter essentials for a pet that has none."""
    session.start()
    if not session.state.ledger.essentials_bought:
        session.buy_essentials()
    return session


async def run_forever(session: CareSession) -> None:
    start_with_essentials(session)
    task = asyncio.create_task(session.scheduler.run(poll_seconds=settings.SCHEDULER_POLL_SECONDS))
    try:
        await task
    finally:
        session.scheduler.stop()
        if not task.done():
            try:
                await asyncio.wait_for(task, timeout=settings.SCHEDULER_POLL_SECONDS + 2)
            except asyncio.TimeoutError:
                log.warning("Scheduler loop did not finish in time, cancelling.")
                task.cancel()
        session.close()
        log.info("Pet care loop shutdown complete.")


def cmd_run(args) -> int:
    session = build_session(args)
    try:
        asyncio.run(run_forever(session))
    except KeyboardInterrupt:
        log.info("Interrupted, pet saved.")
    return 0


def cmd_report(args) -> int:
    session = build_session(args)
    session.start()
    try:
        report = session.report(TimeRange.parse(args.range))
    finally:
        session.close()
    print(report.model_dump_json(indent=2))
    return 0


def cmd_act(args) -> int:
    session = start_with_essentials(build_session(args))
    try:
        result = session.perform(args.kind)
    except PetCareError as e:
        log.warning("action_refused", action=args.kind, error=str(e))
        session.close()
        return 1
    # A foreground action runs its countdown to completion before exiting.
    asyncio.run(_wait_for_action(session))
    session.close()
    print(json.dumps({"action": result.kind.value, "cost": result.cost, "duration": result.duration,
                      "stats": session.state.pet.stats.model_dump()}))
    return 0


async def _wait_for_action(session: CareSession) -> None:
    while session.busy:
        session.scheduler.run_pending()
        await asyncio.sleep(settings.SCHEDULER_POLL_SECONDS)


def cmd_reset(args) -> int:
    session = build_session(args)
    session.reset()
    log.info("Pet record removed.", key=settings.STORAGE_KEY)
    return 0


def make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="petcare", description=settings.PROJECT_NAME)
    parser.add_argument("--pet", default=settings.PET_TYPE, help="dog, cat, parrot or rabbit")
    parser.add_argument("--name", default=settings.PET_NAME, help="pet name")
    parser.add_argument("--log-level", default=settings.LOG_LEVEL)
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("run", help="keep the pet alive in real time until interrupted").set_defaults(func=cmd_run)

    report = sub.add_parser("report", help="print the care report as JSON")
    report.add_argument("--range", default=TimeRange.WEEK.value, choices=[r.value for r in TimeRange])
    report.set_defaults(func=cmd_report)

    act = sub.add_parser("act", help="perform one care action and wait for it to finish")
    act.add_argument("kind", choices=[k.value for k in ActionKind])
    act.set_defaults(func=cmd_act)

    sub.add_parser("reset", help="forget the saved pet").set_defaults(func=cmd_reset)
    return parser


def main(argv=None) -> int:
    args = make_parser().parse_args(argv)
    setup_logging(log_level_str=args.log_level)
    log.info(f"{settings.PROJECT_NAME} starting...", command=args.command)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
