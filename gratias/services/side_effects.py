"""
Best-effort side actions.

Claims mirroring and push-topic (un)subscription run after the primary
write has succeeded. Their failures are captured and logged, never raised.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Optional

logger = logging.getLogger(__name__)


@dataclass
class SideEffectOutcome:
    description: str
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None


async def run_best_effort(description: str, action: Awaitable[Any]) -> SideEffectOutcome:
    try:
        value = await action
    except Exception as e:
        logger.warning("Best-effort action failed (%s): %s", description, e, exc_info=True)
        return SideEffectOutcome(description=description, ok=False, error=e)
    logger.debug("Best-effort action succeeded: %s", description)
    return SideEffectOutcome(description=description, ok=True, value=value)
