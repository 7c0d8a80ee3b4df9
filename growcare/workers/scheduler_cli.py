from __future__ import annotations

import argparse
import json
import logging
import time

from growcare.config import load_config, setup_logging
from growcare.services.container import ServiceContainer

logger = logging.getLogger(__name__)

# One-shot commands and the task each one runs.
_ONE_SHOT_TASKS = {
    "sweep": "care.escalation_sweep",
    "stages": "care.stage_transition_sweep",
    "flush": "notifications.flush",
}


def main(argv: list[str] | None = None) -> int:
    """Run the UnifiedScheduler loop without starting the web server."""
    parser = argparse.ArgumentParser(prog="growcare-scheduler")
    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("run", help="Run the scheduler loop (default)")
    subparsers.add_parser("sweep", help="Run one escalation sweep and print the report")
    subparsers.add_parser("stages", help="Run one stage-transition sweep and print the result")
    subparsers.add_parser("flush", help="Flush queued notifications and print the totals")
    args = parser.parse_args(argv)

    config = load_config()
    setup_logging(debug=config.DEBUG)

    one_shot = args.command in _ONE_SHOT_TASKS
    container = ServiceContainer.build(config, start_scheduler=not one_shot)

    if one_shot:
        try:
            result = container.scheduler.run_now(_ONE_SHOT_TASKS[args.command])
        finally:
            container.shutdown()
        if result is None or not result.success:
            print(f"Task failed: {result.error if result else 'not registered'}")
            return 1
        print(json.dumps(result.result, indent=2, default=str))
        return 0

    logger.info("Scheduler running (press Ctrl+C to stop)")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Stopping scheduler...")
    finally:
        try:
            container.shutdown()
        except (RuntimeError, OSError, AttributeError, TypeError):
            logger.exception("Failed to shut down scheduler cleanly")
            return 1
    return 0


if __name__ == "__main__":
    import sys

    raise SystemExit(main(sys.argv[1:]))
