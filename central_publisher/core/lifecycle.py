"""Deployment lifecycle state machine.

Drives an uploaded bundle to a terminal outcome by polling its status.

Waiting happens in two phases with independent budgets:
1. validation - PENDING/VALIDATING until VALIDATED, PUBLISHED or FAILED
2. publishing - only for AUTOMATIC mode when the caller wants completion,
   until PUBLISHED or FAILED

Each phase re-reads the clock on every iteration, so a cancellation checked
between polls takes effect at the next pause.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Protocol

from central_publisher.core.classifier import describe_failure, has_errors
from central_publisher.core.exceptions import (
    DeploymentErrorsPresentError,
    DeploymentFailedError,
    DeploymentTimeoutError,
    PortalConnectionError,
    UnexpectedStateError,
    WaitInterruptedError,
)
from central_publisher.models.deployment import (
    DeploymentState,
    DeploymentStatus,
    PublishMode,
    WaitBudget,
)
from central_publisher.models.release import DeploymentReport, WaitOutcome
from central_publisher.utils.logging import get_logger

logger = get_logger(__name__)

VALIDATION_PHASE = "validation"
PUBLISHING_PHASE = "publishing"


class StatusSource(Protocol):
    """The one client operation the state machine needs."""

    async def get_deployment_status(self, deployment_id: str) -> DeploymentStatus: ...


class CancellationToken:
    """Cooperative cancellation for a wait.

    Cancelling only abandons local waiting; nothing is sent to the portal.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


@dataclass
class DeploymentEvent:
    """A progress event emitted while waiting."""

    event_type: str
    data: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {**self.data, "timestamp": self.timestamp.isoformat()}


EventListener = Callable[[DeploymentEvent], Awaitable[None]]


@dataclass
class _Progress:
    """Bookkeeping shared by both phases of one wait."""

    deployment_id: str
    started: float
    polls: int = 0
    last_state: str | None = None
    last_status: DeploymentStatus | None = None


class DeploymentWaiter:
    """Polls a deployment until a terminal condition, within time budgets."""

    def __init__(
        self,
        client: StatusSource,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        status_retries: int = 0,
        listener: EventListener | None = None,
    ):
        self.client = client
        self._clock = clock
        self._sleep = sleep
        self.status_retries = status_retries
        self.listener = listener

    def with_listener(self, listener: EventListener | None) -> "DeploymentWaiter":
        """A copy of this waiter that reports progress to ``listener``."""
        return DeploymentWaiter(
            self.client,
            clock=self._clock,
            sleep=self._sleep,
            status_retries=self.status_retries,
            listener=listener,
        )

    async def wait(
        self,
        deployment_id: str,
        mode: PublishMode,
        validation: WaitBudget,
        publishing: WaitBudget,
        wait_for_completion: bool = True,
        cancel: CancellationToken | None = None,
    ) -> DeploymentReport:
        """Wait for a freshly uploaded deployment to settle.

        Returns a report on success; raises a lifecycle error otherwise.
        """
        progress = _Progress(deployment_id=deployment_id, started=self._clock())
        logger.info(
            "lifecycle.wait.started",
            deployment_id=deployment_id,
            publishing_type=mode.value,
            wait_for_completion=wait_for_completion,
        )
        report = await self._wait_for_validation(
            progress, mode, validation, publishing, wait_for_completion, cancel
        )
        logger.info(
            "lifecycle.wait.completed",
            deployment_id=deployment_id,
            state=report.state,
            outcome=report.outcome.value,
            polls=report.polls,
            elapsed_seconds=report.elapsed_seconds,
        )
        return report

    async def wait_for_publishing(
        self,
        deployment_id: str,
        budget: WaitBudget,
        cancel: CancellationToken | None = None,
    ) -> DeploymentReport:
        """Wait for an already validated deployment to reach PUBLISHED."""
        progress = _Progress(deployment_id=deployment_id, started=self._clock())
        return await self._wait_for_publishing(progress, budget, cancel)

    async def _wait_for_validation(
        self,
        progress: _Progress,
        mode: PublishMode,
        budget: WaitBudget,
        publishing: WaitBudget,
        wait_for_completion: bool,
        cancel: CancellationToken | None,
    ) -> DeploymentReport:
        await self._emit("phase_started", progress, phase=VALIDATION_PHASE)
        phase_started = self._clock()

        while self._clock() - phase_started < budget.max_duration:
            status = await self._poll(progress, budget, cancel)
            state = status.state

            if state in (DeploymentState.PENDING, DeploymentState.VALIDATING):
                logger.info(
                    "lifecycle.validation.in_progress",
                    deployment_id=progress.deployment_id,
                    state=state.value,
                )
                await self._pause(progress, budget, cancel)
                continue

            if state == DeploymentState.VALIDATED:
                if has_errors(status):
                    raise DeploymentErrorsPresentError(
                        f"Deployment {progress.deployment_id} validated but has errors",
                        **self._failure_context(progress, status),
                    )
                await self._emit("phase_completed", progress, phase=VALIDATION_PHASE)
                if mode == PublishMode.AUTOMATIC and wait_for_completion:
                    logger.info(
                        "lifecycle.validation.passed",
                        deployment_id=progress.deployment_id,
                        next_phase=PUBLISHING_PHASE,
                    )
                    return await self._wait_for_publishing(progress, publishing, cancel)
                message = (
                    "Deployment is VALIDATED and ready for manual approval"
                    if mode == PublishMode.USER_MANAGED
                    else "Deployment is VALIDATED; automatic publishing will follow"
                )
                return self._report(progress, status, WaitOutcome.VALIDATED, message)

            if state == DeploymentState.PUBLISHED:
                await self._emit("phase_completed", progress, phase=VALIDATION_PHASE)
                return self._report(
                    progress, status, WaitOutcome.PUBLISHED, "Deployment is PUBLISHED"
                )

            if state == DeploymentState.PUBLISHING:
                await self._emit("phase_completed", progress, phase=VALIDATION_PHASE)
                if not wait_for_completion:
                    return self._report(
                        progress,
                        status,
                        WaitOutcome.PUBLISHING,
                        "Publishing has started but is not finished",
                    )
                await self._pause(progress, publishing, cancel)
                return await self._wait_for_publishing(progress, publishing, cancel)

            if state == DeploymentState.FAILED:
                raise DeploymentFailedError(
                    f"Deployment {progress.deployment_id} failed validation",
                    **self._failure_context(progress, status),
                )

            raise UnexpectedStateError(
                f"Deployment {progress.deployment_id} has unexpected state "
                f"'{status.deployment_state}'",
                **self._failure_context(progress, status),
            )

        raise DeploymentTimeoutError(
            VALIDATION_PHASE,
            progress.deployment_id,
            progress.last_state,
            self._clock() - phase_started,
            budget.max_duration,
        )

    async def _wait_for_publishing(
        self,
        progress: _Progress,
        budget: WaitBudget,
        cancel: CancellationToken | None,
    ) -> DeploymentReport:
        await self._emit("phase_started", progress, phase=PUBLISHING_PHASE)
        phase_started = self._clock()

        while self._clock() - phase_started < budget.max_duration:
            status = await self._poll(progress, budget, cancel)
            state = status.state

            if state == DeploymentState.PUBLISHED:
                await self._emit("phase_completed", progress, phase=PUBLISHING_PHASE)
                return self._report(
                    progress, status, WaitOutcome.PUBLISHED, "Deployment is PUBLISHED"
                )

            if state == DeploymentState.FAILED:
                raise DeploymentFailedError(
                    f"Deployment {progress.deployment_id} failed while publishing",
                    **self._failure_context(progress, status),
                )

            logger.info(
                "lifecycle.publishing.in_progress",
                deployment_id=progress.deployment_id,
                state=status.deployment_state,
            )
            await self._pause(progress, budget, cancel)

        raise DeploymentTimeoutError(
            PUBLISHING_PHASE,
            progress.deployment_id,
            progress.last_state,
            self._clock() - phase_started,
            budget.max_duration,
        )

    async def _poll(
        self,
        progress: _Progress,
        budget: WaitBudget,
        cancel: CancellationToken | None,
    ) -> DeploymentStatus:
        attempt = 0
        while True:
            try:
                status = await self.client.get_deployment_status(progress.deployment_id)
                break
            except PortalConnectionError as e:
                if attempt >= self.status_retries:
                    raise
                attempt += 1
                logger.warning(
                    "lifecycle.poll.retrying",
                    deployment_id=progress.deployment_id,
                    attempt=attempt,
                    error=e.message,
                )
                await self._pause(progress, budget, cancel)

        progress.polls += 1
        progress.last_state = status.deployment_state
        progress.last_status = status
        logger.debug(
            "lifecycle.poll",
            deployment_id=progress.deployment_id,
            state=status.deployment_state,
            poll=progress.polls,
        )
        await self._emit("status", progress, state=status.deployment_state)
        return status

    async def _pause(
        self,
        progress: _Progress,
        budget: WaitBudget,
        cancel: CancellationToken | None,
    ) -> None:
        self._check_cancelled(progress, cancel)
        await self._sleep(budget.poll_interval)
        self._check_cancelled(progress, cancel)

    def _check_cancelled(self, progress: _Progress, cancel: CancellationToken | None) -> None:
        if cancel is not None and cancel.cancelled:
            elapsed = self._clock() - progress.started
            logger.warning(
                "lifecycle.wait.interrupted",
                deployment_id=progress.deployment_id,
                state=progress.last_state,
                reason=cancel.reason,
            )
            raise WaitInterruptedError(
                f"Wait for deployment {progress.deployment_id} was interrupted",
                deployment_id=progress.deployment_id,
                state=progress.last_state,
                elapsed_seconds=elapsed,
                details={"reason": cancel.reason},
            )

    def _failure_context(self, progress: _Progress, status: DeploymentStatus) -> dict[str, Any]:
        return {
            "deployment_id": progress.deployment_id,
            "state": status.deployment_state,
            "elapsed_seconds": self._clock() - progress.started,
            "error_report": describe_failure(status),
        }

    def _report(
        self,
        progress: _Progress,
        status: DeploymentStatus,
        outcome: WaitOutcome,
        message: str,
    ) -> DeploymentReport:
        return DeploymentReport(
            deployment_id=progress.deployment_id,
            state=status.deployment_state,
            outcome=outcome,
            components=status.component_purls,
            polls=progress.polls,
            elapsed_seconds=round(self._clock() - progress.started, 3),
            message=message,
        )

    async def _emit(self, event_type: str, progress: _Progress, **data: Any) -> None:
        if self.listener is None:
            return
        await self.listener(
            DeploymentEvent(
                event_type=event_type,
                data={"deployment_id": progress.deployment_id, **data},
            )
        )
