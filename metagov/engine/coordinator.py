"""
Evaluation coordinator for MetaGov.

This module provides the EvaluationCoordinator class that runs the
applicable policies for a change request concurrently on a bounded
worker pool, enforcing a per-policy timeout and converting every
failure into an UNKNOWN verdict.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import replace
from typing import Any, Sequence

from metagov.exceptions import EvaluationError
from metagov.models.request import ChangeRequest
from metagov.models.verdict import Verdict
from metagov.policies.base import Policy

logger = logging.getLogger("metagov.engine.coordinator")


class ResultSlot:
    """
    Pre-allocated result position for one policy evaluation.

    Only the first writer wins: either the worker delivering the real
    verdict or the coordinator recording a timeout. A worker that
    finishes after its slot was closed cannot overwrite the result.
    """

    def __init__(self, policy: Policy) -> None:
        self.policy = policy
        self._verdict: Verdict | None = None
        self._lock = threading.Lock()

    def offer(self, verdict: Verdict) -> bool:
        """
        Store a verdict if the slot is still empty.

        Returns:
            True if this verdict was stored, False if the slot was
            already filled.
        """
        with self._lock:
            if self._verdict is not None:
                return False
            self._verdict = verdict
            return True

    @property
    def verdict(self) -> Verdict | None:
        """The stored verdict, if any."""
        return self._verdict

    @property
    def filled(self) -> bool:
        """Whether a verdict has been stored."""
        return self._verdict is not None


class EvaluationCoordinator:
    """
    Runs policies as independent concurrent tasks.

    Policies are evaluated as siblings on a shared thread pool. The
    returned verdicts are in the same order as the input policies,
    regardless of completion order. A policy that raises, returns
    something other than its own Verdict, or exceeds the timeout gets an
    UNKNOWN verdict; it never aborts evaluation of the others.

    Example:
        Evaluating policies::

            with EvaluationCoordinator(policy_timeout_ms=2000) as coordinator:
                verdicts = coordinator.evaluate(request, policies)
    """

    def __init__(
        self,
        policy_timeout_ms: float = 5000.0,
        worker_pool_size: int = 8,
    ) -> None:
        """
        Initialize the coordinator.

        Args:
            policy_timeout_ms: Deadline for each policy evaluation,
                measured from dispatch.
            worker_pool_size: Maximum number of concurrent evaluations.
        """
        if policy_timeout_ms <= 0:
            raise ValueError("policy_timeout_ms must be positive")
        if worker_pool_size < 1:
            raise ValueError("worker_pool_size must be at least 1")

        self.policy_timeout_ms = policy_timeout_ms
        self.worker_pool_size = worker_pool_size
        self._lock = threading.Lock()
        self._executor = self._new_executor()
        self._stuck = 0
        self._closed = False

    def _new_executor(self) -> ThreadPoolExecutor:
        return ThreadPoolExecutor(
            max_workers=self.worker_pool_size,
            thread_name_prefix="metagov-eval",
        )

    @classmethod
    def from_config(cls, config: Any) -> "EvaluationCoordinator":
        """Create a coordinator from a GovernanceConfig section."""
        return cls(
            policy_timeout_ms=config.policy_timeout_ms,
            worker_pool_size=config.worker_pool_size,
        )

    def evaluate(
        self,
        request: ChangeRequest,
        policies: Sequence[Policy],
    ) -> list[Verdict]:
        """
        Evaluate every policy against a request.

        Blocks until each policy has produced a verdict or been timed
        out. Never returns a partial result.

        Args:
            request: The change request.
            policies: Policies to run, in priority order.

        Returns:
            One verdict per policy, in the same order.

        Raises:
            EvaluationError: If the coordinator has been closed.
        """
        if self._closed:
            raise EvaluationError("Evaluation coordinator is closed")

        slots = [ResultSlot(policy) for policy in policies]
        if not slots:
            return []

        started = time.perf_counter()
        futures: dict[Future[None], ResultSlot] = {}

        # The pool is only replaced under this lock
        with self._lock:
            executor = self._executor
            for slot in slots:
                try:
                    future = executor.submit(self._run, slot, request)
                except RuntimeError as e:
                    slot.offer(
                        Verdict.unknown(
                            slot.policy.name,
                            f"evaluation could not be scheduled: {e}",
                            priority=slot.policy.priority,
                        )
                    )
                    continue
                futures[future] = slot

        _, not_done = wait(futures, timeout=self.policy_timeout_ms / 1000.0)

        waited_ms = (time.perf_counter() - started) * 1000
        for future in not_done:
            slot = futures[future]
            if not future.cancel():
                self._retire(executor, future, slot.policy)
            timed_out = Verdict.unknown(
                slot.policy.name,
                f"evaluation timed out after {self.policy_timeout_ms:g} ms",
                priority=slot.policy.priority,
                duration_ms=waited_ms,
            )
            if slot.offer(timed_out):
                logger.warning(
                    f"Policy {slot.policy.name} timed out for request {request.id} "
                    f"after {self.policy_timeout_ms:g} ms"
                )

        for slot in slots:
            if not slot.filled:
                slot.offer(
                    Verdict.unknown(
                        slot.policy.name,
                        "evaluation produced no verdict",
                        priority=slot.policy.priority,
                        duration_ms=waited_ms,
                    )
                )

        return [slot.verdict for slot in slots]  # type: ignore[misc]

    def _retire(self, executor: ThreadPoolExecutor, future: Future[None], policy: Policy) -> None:
        """
        Account for a timed-out evaluation that still holds a worker.

        The thread cannot be reclaimed until the policy returns, so the
        pool it belongs to is replaced by a fresh one. The old pool
        finishes its queued work and its threads exit as they free up.
        """
        with self._lock:
            self._stuck += 1
            if executor is self._executor and not self._closed:
                self._executor = self._new_executor()
                executor.shutdown(wait=False)
                logger.warning(
                    f"Policy {policy.name} is still running past its deadline; "
                    f"replaced the evaluation pool ({self._stuck} stuck evaluations)"
                )
        future.add_done_callback(self._release)

    def _release(self, future: Future[None]) -> None:
        with self._lock:
            self._stuck -= 1

    @property
    def stuck(self) -> int:
        """Number of timed-out evaluations that have not returned yet."""
        with self._lock:
            return self._stuck

    def _run(self, slot: ResultSlot, request: ChangeRequest) -> None:
        """Worker body: evaluate one policy and offer the result."""
        policy = slot.policy
        start = time.perf_counter()

        try:
            result = policy.evaluate(request)
            duration_ms = (time.perf_counter() - start) * 1000
            verdict = self._accept(policy, result, duration_ms)
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.warning(
                f"Policy {policy.name} failed for request {request.id}: "
                f"{type(e).__name__}: {e}"
            )
            verdict = Verdict.unknown(
                policy.name,
                f"evaluation failed: {type(e).__name__}: {e}",
                priority=policy.priority,
                duration_ms=duration_ms,
            )

        if not slot.offer(verdict):
            logger.info(
                f"Discarded late {verdict.status.value} verdict from {policy.name} "
                f"for request {request.id} ({duration_ms:.1f} ms)"
            )

    def _accept(self, policy: Policy, result: Any, duration_ms: float) -> Verdict:
        """Validate a policy's return value and stamp priority and timing."""
        if not isinstance(result, Verdict):
            logger.warning(
                f"Policy {policy.name} returned {type(result).__name__} instead of a Verdict"
            )
            return Verdict.unknown(
                policy.name,
                f"invalid verdict: expected Verdict, got {type(result).__name__}",
                priority=policy.priority,
                duration_ms=duration_ms,
            )

        if result.policy_name != policy.name:
            logger.warning(
                f"Policy {policy.name} returned a verdict for {result.policy_name}"
            )
            return Verdict.unknown(
                policy.name,
                f"invalid verdict: reported policy '{result.policy_name}'",
                priority=policy.priority,
                duration_ms=duration_ms,
            )

        return replace(result, priority=policy.priority, duration_ms=duration_ms)

    def close(self) -> None:
        """
        Shut down the worker pool.

        Queued evaluations are cancelled; running ones are not waited for.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            executor = self._executor
        executor.shutdown(wait=False, cancel_futures=True)

    @property
    def closed(self) -> bool:
        """Whether the coordinator has been closed."""
        return self._closed

    def __enter__(self) -> "EvaluationCoordinator":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit - shut down the pool."""
        self.close()

    def __repr__(self) -> str:
        return (
            f"EvaluationCoordinator(policy_timeout_ms={self.policy_timeout_ms:g}, "
            f"worker_pool_size={self.worker_pool_size})"
        )
