"""CLI command for re-running variant generation outside the API process.

Usage:
    python -m stylegen.cli [OPTIONS]

Examples:
    # Full generation for one job (skips variants already complete)
    python -m stylegen.cli --job-id 0b7e3c1a-...

    # Retry a single variant
    python -m stylegen.cli --job-id 0b7e3c1a-... --variant-id 7

    # One sweep pass over stalled jobs, waiting for the submitted runs
    python -m stylegen.cli --sweep

    # Verbose logging
    python -m stylegen.cli --job-id 0b7e3c1a-... -v
"""

import asyncio
import sys
from argparse import ArgumentParser, Namespace
from typing import Optional, Sequence
from uuid import UUID

import structlog

from stylegen.core import timezone  # noqa: F401
from stylegen.core.config import Settings, configure_logging
from stylegen.core.database import setup_db_session
from stylegen.models.variant_result import VariantStatus
from stylegen.services.exceptions import OrchestrationError
from stylegen.services.orchestration.factory import build_orchestrator
from stylegen.uow import create_uow_factory
from stylegen.workers.sweep_worker import sweep_once
from stylegen.workers.task_runner import BoundedTaskRunner

logger = structlog.get_logger()


def parse_args(argv: Optional[Sequence[str]] = None) -> Namespace:
    """Parse command-line arguments."""
    parser = ArgumentParser(
        description="Re-run hairstyle variant generation for a job",
        epilog="Exit codes: 0 converged, 2 exhausted with missing variants, 1 error",
    )

    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--job-id", type=UUID, help="Job to (re)generate")
    target.add_argument(
        "--sweep",
        action="store_true",
        help="Run one sweep pass over stalled pending jobs",
    )

    parser.add_argument(
        "--variant-id",
        type=int,
        help="Retry only this variant (requires --job-id)",
    )

    parser.add_argument(
        "--max-rounds",
        type=int,
        help="Override MAX_ROUNDS for this run",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    args = parser.parse_args(argv)
    if args.variant_id is not None and args.job_id is None:
        parser.error("--variant-id requires --job-id")
    if args.max_rounds is not None and args.max_rounds < 1:
        parser.error("--max-rounds must be at least 1")
    return args


async def async_main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point (async).

    Returns:
        Exit code: 0 (success), 1 (error), 2 (exhausted with missing variants), 130 (interrupted)
    """
    args = parse_args(argv)

    settings = Settings()  # type: ignore[call-arg]

    if args.verbose:
        settings.log_level = "DEBUG"
    if args.max_rounds is not None:
        settings.max_rounds = args.max_rounds

    configure_logging(settings)

    logger.info(
        "cli.started",
        job_id=str(args.job_id) if args.job_id else None,
        variant_id=args.variant_id,
        sweep=args.sweep,
        max_rounds=settings.max_rounds,
    )

    session_factory = setup_db_session(settings.database_url, settings.db_pool_size)
    uow_factory = create_uow_factory(session_factory)
    orchestrator = build_orchestrator(settings, uow_factory)

    try:
        if args.sweep:
            runner = BoundedTaskRunner(
                max_concurrency=settings.task_max_concurrency,
                max_pending=settings.task_max_pending,
            )
            submitted = await sweep_once(uow_factory, orchestrator, runner, settings)
            await runner.drain()

            print("\n" + "=" * 60)
            print("Sweep Summary")
            print("=" * 60)
            print(f"Jobs submitted: {submitted}")
            print("=" * 60 + "\n")
            return 0

        if args.variant_id is not None:
            result = await orchestrator.run_single_variant(args.job_id, args.variant_id)

            print("\n" + "=" * 60)
            print("Variant Retry Summary")
            print("=" * 60)
            print(f"Job: {args.job_id}")
            print(f"Variant: {result.variant_id}")
            print(f"Status: {result.status.value}")
            print(f"Attempts: {result.attempts}")
            if result.failure_code:
                print(f"Failure: {result.failure_code}")
            print("=" * 60 + "\n")
            return 0 if result.status == VariantStatus.COMPLETE else 2

        outcome = await orchestrator.run_full_generation(args.job_id)

        print("\n" + "=" * 60)
        print("Generation Summary")
        print("=" * 60)
        print(f"Job: {outcome.job_id}")
        print(f"Status: {outcome.status.value}")
        print(f"Rounds: {outcome.rounds}")
        print(f"Generation attempts: {outcome.attempts}")
        print(f"Complete variants: {outcome.completed}/{outcome.total}")
        print(f"Completion triggers fired: {outcome.triggered}")
        print("=" * 60 + "\n")

        if outcome.converged:
            logger.info("cli.success")
            return 0
        logger.warning("cli.partial_success")
        return 2

    except OrchestrationError as e:
        logger.error(
            "cli.orchestration_error",
            error=str(e),
            error_type=type(e).__name__,
        )
        print(f"\nError: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        logger.info("cli.interrupted")
        print("\nGeneration interrupted by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT

    except Exception as e:
        logger.error(
            "cli.unexpected_error",
            error=str(e),
            error_type=type(e).__name__,
        )
        print(f"\nUnexpected error: {e}", file=sys.stderr)
        return 1


def main() -> None:
    """Synchronous entry point for CLI."""
    sys.exit(asyncio.run(async_main()))


if __name__ == "__main__":
    main()
