"""After-commit side effects.

Work that must not roll back the primary write (real-time broadcasts,
notification fan-out) is queued on an ``AfterCommit`` while the request runs
and executed once the write is committed, usually as a FastAPI background
task. Each effect runs in isolation: a failure is logged and the remaining
effects still run.
"""

import inspect
from typing import Any, Callable

import structlog
from starlette.concurrency import run_in_threadpool

logger = structlog.get_logger(__name__)


class AfterCommit:
    def __init__(self):
        self._effects: list[tuple[str, Callable[..., Any], tuple, dict]] = []

    def add(self, name: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        self._effects.append((name, func, args, kwargs))

    @property
    def names(self) -> list[str]:
        return [name for name, *_ in self._effects]

    def __len__(self) -> int:
        return len(self._effects)

    async def run(self) -> dict[str, bool]:
        """Execute queued effects in order. Returns name -> succeeded."""
        results: dict[str, bool] = {}
        effects, self._effects = self._effects, []
        for name, func, args, kwargs in effects:
            try:
                if inspect.iscoroutinefunction(func):
                    await func(*args, **kwargs)
                else:
                    await run_in_threadpool(func, *args, **kwargs)
                results[name] = True
            except Exception:
                logger.exception("Side effect failed", effect=name)
                results[name] = False
        return results
