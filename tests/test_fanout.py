"""All-settled fan-out tests."""

import asyncio

from backend.src.common.fanout import gather_settled


async def _value(value, delay: float = 0.0):
    await asyncio.sleep(delay)
    return value


async def _boom(message: str):
    raise RuntimeError(message)


class TestGatherSettled:
    async def test_keeps_input_order(self):
        settled = await gather_settled([_value("slow", 0.02), _value("fast")])
        assert [item.value for item in settled] == ["slow", "fast"]
        assert all(item.ok for item in settled)

    async def test_failure_does_not_cancel_siblings(self):
        settled = await gather_settled([_value(1), _boom("bad item"), _value(3)])

        assert [item.status for item in settled] == ["fulfilled", "rejected", "fulfilled"]
        assert settled[1].error == "bad item"
        assert settled[2].value == 3

    async def test_empty_input(self):
        assert await gather_settled([]) == []
