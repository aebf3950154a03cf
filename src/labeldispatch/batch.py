"""Concurrent fan-out of one request over many content items.

``dispatch_batch`` is all-or-nothing: the first failing item fails the whole
call and the remaining items are cancelled. ``dispatch_batch_settled`` keeps
going and reports a result or an error for every item instead.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Iterable

from .types import BatchItemResult

if TYPE_CHECKING:
    from .adapters.base import ProviderAdapter

log = logging.getLogger(__name__)


async def dispatch_batch(
    adapter: "ProviderAdapter", contents: Iterable[str], **dispatch_kwargs
) -> list[str]:
    tasks = [
        asyncio.ensure_future(adapter.dispatch(content, **dispatch_kwargs))
        for content in contents
    ]
    if not tasks:
        return []
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        raise


async def dispatch_batch_settled(
    adapter: "ProviderAdapter", contents: Iterable[str], **dispatch_kwargs
) -> list[BatchItemResult]:
    items = list(contents)
    outcomes = await asyncio.gather(
        *(adapter.dispatch(content, **dispatch_kwargs) for content in items),
        return_exceptions=True,
    )

    results: list[BatchItemResult] = []
    for index, (content, outcome) in enumerate(zip(items, outcomes)):
        if isinstance(outcome, Exception):
            log.debug("Batch item %d failed: %s", index, outcome)
            results.append(BatchItemResult(index=index, content=content, error=outcome))
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            results.append(BatchItemResult(index=index, content=content, text=outcome))
    return results
