import asyncio
from typing import Any, Awaitable, Callable, Dict

from researchflow.core.exceptions import UpstreamError


class SingleFlight:
    """Collapse concurrent calls for the same key into one execution.

    The first caller for a key runs the factory; callers arriving while it
    is in flight await the same outcome (result or exception). If the first
    caller is cancelled, waiters receive an UpstreamError rather than the
    cancellation.
    """

    def __init__(self):
        self._inflight: Dict[str, asyncio.Future] = {}

    def in_flight(self, key: str) -> bool:
        return key in self._inflight

    async def run(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        pending = self._inflight.get(key)
        if pending is not None:
            return await asyncio.shield(pending)

        future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            result = await factory()
        except asyncio.CancelledError:
            self._fail(future, UpstreamError("Shared request was cancelled"))
            raise
        except Exception as exc:
            self._fail(future, exc)
            raise
        else:
            future.set_result(result)
            return result
        finally:
            self._inflight.pop(key, None)

    @staticmethod
    def _fail(future: asyncio.Future, exc: BaseException) -> None:
        future.set_exception(exc)
        # Mark retrieved so an unawaited future does not log a warning
        future.exception()
