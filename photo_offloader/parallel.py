"""Bounded concurrent fan-out with error collection."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, TypeVar

from tqdm import tqdm

from .errors import BatchError

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class BatchResult:
    """Results and failures of one batch, in completion order."""
    results: List[Any] = field(default_factory=list)
    errors: List[Exception] = field(default_factory=list)

    @property
    def error(self) -> Optional[BatchError]:
        """All failures joined into one error, or None."""
        return BatchError.combine(self.errors)


def run_batch(
    func: Callable[[T], Any],
    items: Iterable[T],
    max_workers: int,
    desc: Optional[str] = None,
    show_progress: bool = False,
) -> BatchResult:
    """
    Run func over items on a bounded thread pool.

    Every item is submitted; a failure in one item never cancels the
    others. The call returns only after every submitted task has finished,
    so no work outlives it and no error is dropped.

    Args:
        func: Callable applied to each item
        items: Work items
        max_workers: Upper bound on concurrent workers
        desc: Progress bar label
        show_progress: Whether to show a tqdm progress bar

    Returns:
        BatchResult with successful return values and raised exceptions
    """
    items = list(items)
    batch = BatchResult()
    if not items:
        return batch

    workers = max(1, min(max_workers, len(items)))

    with tqdm(total=len(items), desc=desc, unit="files", disable=not show_progress) as pbar:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_item = {executor.submit(func, item): item for item in items}

            for future in as_completed(future_to_item):
                item = future_to_item[future]
                try:
                    batch.results.append(future.result())
                except Exception as e:
                    logger.warning(f"{desc or 'Task'} failed for {item}: {e}")
                    batch.errors.append(e)
                pbar.update(1)

    return batch
