"""Startup validation of the static scheduling tables."""

from __future__ import annotations

import logging

from growcare.domain.exceptions import ConfigurationError
from growcare.domain.growth_stages import stage_table_problems
from growcare.domain.strain_profiles import strain_table_problems
from growcare.domain.task_catalog import catalog_problems

logger = logging.getLogger(__name__)


def table_problems() -> list[str]:
    return stage_table_problems() + strain_table_problems() + catalog_problems()


def validate_tables() -> None:
    """Raise ConfigurationError if any enum combination is missing from the tables."""
    problems = table_problems()
    if problems:
        for problem in problems:
            logger.error("Scheduling table problem: %s", problem)
        raise ConfigurationError(
            f"{len(problems)} scheduling table problem(s)",
            detail={"problems": problems},
        )
    logger.debug("Scheduling tables validated")
