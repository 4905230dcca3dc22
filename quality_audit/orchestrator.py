"""Concurrent analyzer execution with per-analyzer failure isolation."""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from concurrent.futures import Future, ThreadPoolExecutor

from quality_audit.analyzers.base import AnalysisContext, Analyzer
from quality_audit.findings import FailedFinding, Finding

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


class AnalyzerOrchestrator:
    """Runs requested analyzers on a bounded pool and keys findings by name."""

    def __init__(
        self,
        registry: Mapping[str, Analyzer],
        context: AnalysisContext,
        *,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self._registry = dict(registry)
        self._context = context
        self._max_workers = max_workers
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Skip analyzers that have not started yet."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def run(self, names: list[str]) -> dict[str, Finding]:
        """Run ``names`` and return findings in requested order.

        Unknown names are logged and skipped and duplicates run once. An
        analyzer that raises, or returns something other than a ``Finding``,
        is recorded as a ``FailedFinding``.
        """
        selected: list[str] = []
        for name in names:
            if name in selected:
                continue
            if name not in self._registry:
                logger.warning("unknown analyzer '%s' skipped", name)
                continue
            selected.append(name)

        futures: dict[str, Future[Finding | None]] = {}
        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            for name in selected:
                futures[name] = pool.submit(self._run_one, name)

        findings: dict[str, Finding] = {}
        for name in selected:
            future = futures[name]
            if future.cancelled():
                continue
            finding = future.result()
            if finding is not None:
                findings[name] = finding
        return findings

    def _run_one(self, name: str) -> Finding | None:
        if self._cancelled.is_set():
            logger.info("analyzer %s skipped after cancellation", name)
            return None
        analyzer = self._registry[name]
        logger.info("running analyzer %s", name)
        try:
            result = analyzer.evaluate(self._context)
            if not isinstance(result, Finding):
                raise TypeError(f"analyzer returned {type(result).__name__}")
            summary = result.summary()
        except Exception as exc:  # noqa: BLE001
            logger.warning("analyzer %s failed: %s", name, exc)
            return FailedFinding(error=str(exc) or type(exc).__name__)
        logger.debug("analyzer %s finished: %s", name, summary)
        return result
