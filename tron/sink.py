"""A sink that hands each value on to several sinks in turn."""

from __future__ import annotations

from typing import Any, List


class ComboSink:
    """Feeds every consumed value to each added sink, in the order added."""

    def __init__(self) -> None:
        self._sinks: List[Any] = []

    def push(self, sink: Any) -> None:
        """Add a sink; it must have a ``consume(view)`` method."""
        self._sinks.append(sink)

    def consume(self, view: Any) -> None:
        """Pass ``view`` to every sink; the first error stops the rest."""
        for sink in self._sinks:
            sink.consume(view)

    def __len__(self) -> int:
        return len(self._sinks)