"""
Scenario lookup.

Scenarios are authored by another part of the product. The pipeline only
reads prompt and grading context from them; a missing scenario degrades to
generic scoring and misuse-only analysis.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.inference.schemas import ScenarioContext
from app.models.scenario import Scenario

# Set up logging
logger = logging.getLogger(__name__)


async def load_scenario_context(db: AsyncSession, scenario_id: Optional[str]) -> Optional[ScenarioContext]:
    if scenario_id is None:
        return None

    scenario = await db.get(Scenario, scenario_id)
    if scenario is None:
        logger.warning(f"Scenario {scenario_id} not found, falling back to generic criteria")
        return None

    return ScenarioContext(
        title=scenario.title,
        description=scenario.description,
        prompt=scenario.prompt,
        evaluator_context=scenario.evaluator_context,
    )
