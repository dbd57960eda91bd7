"""Progress events reported by long-running operations.

Snapshot, restore and rotation accept an optional ``on_progress``
callback.  They call it once per table, statement or record, in
processing order, so ``position`` only ever grows.
"""

from collections.abc import Callable
from typing import Literal

from pydantic import BaseModel

Operation = Literal["snapshot", "restore", "rotate"]


class ProgressEvent(BaseModel):
    """One unit of work finished.

    Example:
        >>> ProgressEvent(operation="snapshot", item="key", position=2, total=5).fraction
        0.4
    """

    operation: Operation
    item: str
    position: int  # 1-based
    total: int

    @property
    def fraction(self) -> float:
        return self.position / self.total if self.total else 1.0


ProgressCallback = Callable[[ProgressEvent], None]


def report(
    on_progress: ProgressCallback | None,
    operation: Operation,
    item: str,
    position: int,
    total: int,
) -> None:
    """Invoke ``on_progress`` if one was supplied."""
    if on_progress is not None:
        on_progress(
            ProgressEvent(operation=operation, item=item, position=position, total=total)
        )
