from __future__ import annotations

from typing import Iterable

from shortgate.model import Diagnostic
from shortgate.order_contract import OrderPolicy, ordered_or_sorted


class ReportCollector:
    """Collect diagnostics for one package and emit them in source order.

    Ordering is by ``(path, line, column)``; diagnostics at the same position
    keep the order in which they were added.
    """

    def __init__(self, diagnostics: Iterable[Diagnostic] = ()) -> None:
        self._diagnostics: list[Diagnostic] = list(diagnostics)

    def add(self, diagnostic: Diagnostic) -> None:
        self._diagnostics.append(diagnostic)

    def extend(self, diagnostics: Iterable[Diagnostic]) -> None:
        self._diagnostics.extend(diagnostics)

    def __len__(self) -> int:
        return len(self._diagnostics)

    def __bool__(self) -> bool:
        return bool(self._diagnostics)

    def diagnostics(self, *, policy: OrderPolicy | str = OrderPolicy.SORT) -> list[Diagnostic]:
        return ordered_or_sorted(
            self._diagnostics,
            source="ReportCollector.diagnostics",
            key=lambda item: item.position,
            policy=policy,
        )

    def lines(self) -> list[str]:
        return [diagnostic.render() for diagnostic in self.diagnostics()]
