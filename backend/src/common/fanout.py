"""
All-settled fan-out for batch endpoints

Every coroutine runs to completion; a failure never cancels its siblings.
Results keep the input order.
"""

import asyncio
import logging
from collections.abc import Awaitable, Iterable
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict


logger = logging.getLogger(__name__)


class SettledResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: Literal["fulfilled", "rejected"]
    value: Any | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "fulfilled"


async def gather_settled(coros: Iterable[Awaitable[Any]]) -> list[SettledResult]:
    """Run all awaitables concurrently and report each outcome."""
    outcomes = await asyncio.gather(*coros, return_exceptions=True)

    settled: list[SettledResult] = []
    for index, outcome in enumerate(outcomes):
        if isinstance(outcome, BaseException):
            logger.warning(f"[Fanout] Item {index} rejected: {type(outcome).__name__}: {outcome}")
            settled.append(SettledResult(status="rejected", error=str(outcome) or type(outcome).__name__))
        else:
            settled.append(SettledResult(status="fulfilled", value=outcome))
    return settled
