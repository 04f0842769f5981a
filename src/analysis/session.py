"""
Interactive analysis session.

Each trigger (date change, new polygon, new mask rate) submits a fresh
request. At most one result is current: a newer trigger bumps the generation
counter and signals the in-flight run to stop at its next stage boundary, and
any result that finishes late is discarded. A run that fails leaves the last
good result in place.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
from typing import Optional

from src.analysis.pipeline import WindPerpendicularityPipeline
from src.analysis.report import AnalysisResult
from src.analysis.request import AnalysisRequest
from src.errors import ComputationError, SupersededError

logger = logging.getLogger(__name__)


class AnalysisSession:
    """
    Holds the current request and the last good result.

    Example:
        with AnalysisSession(pipeline) as session:
            session.run(request)
            session.update(mask=RateMask(0.5))
            print(session.result.cutoff)
    """

    def __init__(self, pipeline: WindPerpendicularityPipeline):
        self.pipeline = pipeline
        self.request: Optional[AnalysisRequest] = None
        self.result: Optional[AnalysisResult] = None
        self.last_error: Optional[ComputationError] = None

        self._lock = threading.Lock()
        self._generation = 0
        self._cancel: Optional[threading.Event] = None
        self._future: Optional[Future] = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="analysis")

    @property
    def generation(self) -> int:
        return self._generation

    def submit(self, request: AnalysisRequest) -> Future:
        """
        Queue a run for request, superseding any run still in flight.

        The future resolves to the new AnalysisResult, or to None when the run
        was superseded after it started; a run superseded while still queued
        is cancelled. Computation errors are re-raised from the future.

        Raises:
            RegionRequiredError: If the request has no region
        """
        request.require_region()

        with self._lock:
            self._generation += 1
            generation = self._generation
            if self._cancel is not None:
                self._cancel.set()
            if self._future is not None:
                self._future.cancel()
            cancel = threading.Event()
            self._cancel = cancel
            self.request = request
            future = self._executor.submit(self._run, request, generation, cancel)
            self._future = future

        logger.info(f"Submitted analysis generation {generation}")
        return future

    def run(self, request: AnalysisRequest) -> Optional[AnalysisResult]:
        """Submit a request and wait for its result."""
        return self.submit(request).result()

    def update(self, **changes) -> Future:
        """Submit the current request with some fields replaced."""
        if self.request is None:
            raise ValueError("No request submitted yet")
        return self.submit(self.request.with_changes(**changes))

    def _run(
        self, request: AnalysisRequest, generation: int, cancel: threading.Event
    ) -> Optional[AnalysisResult]:
        try:
            result = self.pipeline.run(request, cancel_event=cancel)
        except SupersededError as e:
            logger.info(f"Generation {generation} superseded: {e}")
            return None
        except ComputationError as e:
            with self._lock:
                if generation == self._generation:
                    self.last_error = e
            logger.error(f"Generation {generation} failed: {e}")
            raise

        with self._lock:
            if generation != self._generation:
                logger.info(f"Discarding stale result of generation {generation}")
                return None
            self.result = replace(result, generation=generation)
            self.last_error = None
            return self.result

    def close(self):
        with self._lock:
            if self._cancel is not None:
                self._cancel.set()
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "AnalysisSession":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
