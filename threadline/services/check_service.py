"""
Check service for orchestrating concurrent threadline evaluations
"""

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from threadline.api.middleware import get_correlation_id, get_request_id
from threadline.config.settings import get_settings
from threadline.exceptions import CheckValidationException
from threadline.models.threadline_models import (
    CheckMetadata,
    CheckReport,
    EvaluationOutcome,
    LLMCallMetrics,
    ThreadlineCheckRequest,
    ThreadlineInput,
    ThreadlineResult,
)
from threadline.services.threadline_evaluator import (
    ThreadlineEvaluator,
    log_call_metrics,
)
from threadline.utils.diff_filter import count_diff_lines

logger = logging.getLogger(__name__)

NO_CHANGES_REASONING = "No code changes detected"


class CheckState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    AGGREGATING = "aggregating"
    DONE = "done"


class CheckExecution:
    """State of one check invocation; each evaluation owns its own inputs and result"""

    def __init__(self, request: ThreadlineCheckRequest):
        self.request = request
        self.state = CheckState.PENDING
        self.verdicts: List[ThreadlineResult] = []

    def advance(self, state: CheckState) -> None:
        logger.debug(
            f"Check state {self.state.value} -> {state.value}",
            extra={
                "correlation_id": get_correlation_id(),
                "operation": "check_state_transition",
            },
        )
        self.state = state


def validate_check_request(
    payload: Union[ThreadlineCheckRequest, Dict[str, Any]]
) -> ThreadlineCheckRequest:
    """
    Validate an inbound check payload before anything is dispatched

    Raises:
        CheckValidationException: If a required field is missing or mistyped
    """
    if isinstance(payload, ThreadlineCheckRequest):
        return payload
    if not isinstance(payload, dict):
        raise CheckValidationException(
            message="Check request body must be a JSON object",
            details={"received_type": type(payload).__name__},
        )
    try:
        return ThreadlineCheckRequest.model_validate(payload)
    except ValidationError as e:
        first_error = e.errors()[0] if e.errors() else {}
        field = ".".join(str(part) for part in first_error.get("loc", ()))
        raise CheckValidationException(
            message=f"Invalid check request: {first_error.get('msg', 'validation failed')}",
            field=field or None,
            details={"error_count": e.error_count()},
            original_error=e,
        )


def log_audit_statistics(request: ThreadlineCheckRequest) -> None:
    """Log change and context statistics for an inbound check"""
    diff_stats = count_diff_lines(request.diff)
    context_lines: Dict[str, int] = {}
    for threadline in request.threadlines:
        for path, content in threadline.context_content.items():
            # Shared context files are counted once
            context_lines[path] = max(
                context_lines.get(path, 0), len(content.split("\n"))
            )

    logger.info(
        f"Check received: {len(request.files)} files changed, "
        f"+{diff_stats.added}/-{diff_stats.removed} lines, "
        f"{len(request.threadlines)} threadlines, "
        f"{len(context_lines)} context files ({sum(context_lines.values())} lines)",
        extra={
            "correlation_id": get_correlation_id(),
            "request_id": get_request_id(),
            "files_changed": len(request.files),
            "lines_added": diff_stats.added,
            "lines_removed": diff_stats.removed,
            "lines_total": diff_stats.total,
            "context_file_count": len(context_lines),
            "context_total_lines": sum(context_lines.values()),
            "threadline_count": len(request.threadlines),
            "account": request.account,
            "repo_name": request.repo_name,
            "branch_name": request.branch_name,
            "environment": request.environment,
            "operation": "check_audit_statistics",
        },
    )


class CheckService:
    """Fans out threadline evaluations, bounds each by a timeout and aggregates the results"""

    def __init__(
        self,
        evaluator: ThreadlineEvaluator,
        timeout: Optional[float] = None,
    ):
        self.evaluator = evaluator
        self.timeout = timeout if timeout is not None else get_settings().threadline_timeout

    async def process_threadlines(
        self, payload: Union[ThreadlineCheckRequest, Dict[str, Any]]
    ) -> CheckReport:
        """
        Evaluate every threadline of a check request concurrently

        Args:
            payload: Validated request or raw request body

        Returns:
            CheckReport with visible results in threadline order and counters

        Raises:
            CheckValidationException: If the request is malformed; nothing is dispatched
        """
        request = validate_check_request(payload)
        execution = CheckExecution(request)

        if not request.diff.strip():
            logger.info(
                "No code changes detected (empty diff), skipping evaluation",
                extra={
                    "correlation_id": get_correlation_id(),
                    "operation": "check_empty_diff",
                },
            )
            execution.verdicts = [
                ThreadlineResult(
                    expert_id=threadline.id,
                    status="not_relevant",
                    reasoning=NO_CHANGES_REASONING,
                )
                for threadline in request.threadlines
            ]
            execution.advance(CheckState.AGGREGATING)
            report = self._aggregate(execution)
            report.message = (
                "No code changes detected. Diff contains zero lines added or removed."
            )
            return report

        execution.advance(CheckState.RUNNING)
        logger.info(
            f"Dispatching {len(request.threadlines)} threadline evaluations "
            f"(timeout {self.timeout}s each)",
            extra={
                "correlation_id": get_correlation_id(),
                "request_id": get_request_id(),
                "threadline_count": len(request.threadlines),
                "operation": "check_dispatch",
            },
        )

        outcomes = await asyncio.gather(
            *(
                self._evaluate_with_timeout(threadline, request.diff, list(request.files))
                for threadline in request.threadlines
            ),
            return_exceptions=True,
        )

        execution.advance(CheckState.AGGREGATING)
        for threadline, outcome in zip(request.threadlines, outcomes):
            if isinstance(outcome, ThreadlineResult):
                execution.verdicts.append(outcome)
            elif isinstance(outcome, Exception):
                execution.verdicts.append(self._error_result(threadline, outcome))
            else:
                # BaseException (cancellation) must not be turned into a verdict
                raise outcome

        return self._aggregate(execution)

    async def _evaluate_with_timeout(
        self, threadline: ThreadlineInput, diff: str, files: List[str]
    ) -> ThreadlineResult:
        started_at = datetime.now(timezone.utc)
        try:
            return await asyncio.wait_for(
                self.evaluator.evaluate(threadline, diff, files), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            # wait_for has cancelled the outbound call at this point
            logger.warning(
                f"{threadline.id}: evaluation timed out after {self.timeout:g}s",
                extra={
                    "correlation_id": get_correlation_id(),
                    "threadline_id": threadline.id,
                    "operation": "threadline_evaluation_timeout",
                },
            )
            finished_at = datetime.now(timezone.utc)
            reasoning = f"Request timed out after {self.timeout:g}s"
            result = ThreadlineResult(
                expert_id=threadline.id,
                status="not_relevant",
                reasoning=reasoning,
                outcome=EvaluationOutcome.TIMED_OUT,
                llm_call_metrics=LLMCallMetrics(
                    started_at=started_at.isoformat(),
                    finished_at=finished_at.isoformat(),
                    response_time_ms=int(
                        (finished_at - started_at).total_seconds() * 1000
                    ),
                    status="timeout",
                    error_message=reasoning,
                ),
            )
            log_call_metrics(result)
            return result

    @staticmethod
    def _error_result(threadline: ThreadlineInput, error: Exception) -> ThreadlineResult:
        logger.error(
            f"{threadline.id}: evaluation raised unexpectedly: {error}",
            extra={
                "correlation_id": get_correlation_id(),
                "threadline_id": threadline.id,
                "error_type": type(error).__name__,
                "operation": "threadline_evaluation_error",
            },
        )
        return ThreadlineResult(
            expert_id=threadline.id,
            status="not_relevant",
            reasoning=f"Error: {str(error) or type(error).__name__}",
            outcome=EvaluationOutcome.ERROR,
        )

    @staticmethod
    def _aggregate(execution: CheckExecution) -> CheckReport:
        metadata = CheckMetadata(total_threadlines=len(execution.verdicts))
        for verdict in execution.verdicts:
            if verdict.outcome == EvaluationOutcome.TIMED_OUT:
                metadata.timed_out += 1
            elif verdict.outcome == EvaluationOutcome.ERROR:
                metadata.errors += 1
            else:
                metadata.completed += 1

        visible = [v for v in execution.verdicts if v.status != "not_relevant"]
        execution.advance(CheckState.DONE)

        calls = [v.llm_call_metrics for v in execution.verdicts if v.llm_call_metrics]
        total_response_time_ms = sum(m.response_time_ms for m in calls)
        total_tokens = sum(m.tokens.total_tokens for m in calls if m.tokens)

        logger.info(
            f"Check aggregated: {len(visible)} visible results, "
            f"{metadata.completed} completed, {metadata.timed_out} timed out, "
            f"{metadata.errors} errors, {len(calls)} generation calls "
            f"({total_response_time_ms}ms total)",
            extra={
                "correlation_id": get_correlation_id(),
                "request_id": get_request_id(),
                "total_threadlines": metadata.total_threadlines,
                "completed": metadata.completed,
                "timed_out": metadata.timed_out,
                "errors": metadata.errors,
                "llm_call_count": len(calls),
                "total_response_time_ms": total_response_time_ms,
                "total_tokens": total_tokens,
                "operation": "check_aggregation_complete",
            },
        )
        return CheckReport(
            results=visible, metadata=metadata, verdicts=list(execution.verdicts)
        )
