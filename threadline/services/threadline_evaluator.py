"""
Single-threadline evaluation against a diff
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from threadline.agents.prompt_builder import build_generation_request
from threadline.agents.threadline_agent import GenerationResponse, ThreadlineAgent
from threadline.api.middleware import get_correlation_id, get_request_id
from threadline.exceptions import ThreadlineException
from threadline.models.threadline_models import (
    VALID_STATUSES,
    EvaluationOutcome,
    LLMCallMetrics,
    ThreadlineInput,
    ThreadlineResult,
)
from threadline.utils.diff_filter import files_touched, filter_by_files
from threadline.utils.glob_matcher import matching_files

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _elapsed_ms(started: datetime, finished: datetime) -> int:
    return int((finished - started).total_seconds() * 1000)


def _error_message(error: Exception) -> str:
    if isinstance(error, ThreadlineException):
        return error.message
    return str(error) or type(error).__name__


def log_call_metrics(result: ThreadlineResult) -> None:
    """Emit one structured record per generation call"""
    metrics = result.llm_call_metrics
    if metrics is None:
        return
    tokens = metrics.tokens
    logger.info(
        f"{result.expert_id}: generation call {metrics.status} "
        f"in {metrics.response_time_ms}ms",
        extra={
            "correlation_id": get_correlation_id(),
            "request_id": get_request_id(),
            "threadline_id": result.expert_id,
            "llm_status": metrics.status,
            "response_time_ms": metrics.response_time_ms,
            "prompt_tokens": tokens.prompt_tokens if tokens else None,
            "completion_tokens": tokens.completion_tokens if tokens else None,
            "total_tokens": tokens.total_tokens if tokens else None,
            "relevant_files": len(result.relevant_files),
            "files_in_filtered_diff": len(result.files_in_filtered_diff),
            "error_message": metrics.error_message,
            "operation": "llm_call_metrics",
        },
    )


class ThreadlineEvaluator:
    """Evaluates one threadline at a time; safe to share between concurrent calls"""

    def __init__(self, agent: ThreadlineAgent):
        self.agent = agent

    async def evaluate(
        self, threadline: ThreadlineInput, diff: str, files: List[str]
    ) -> ThreadlineResult:
        """
        Evaluate a threadline against the files it is scoped to

        Never raises: scope misses, provider failures and malformed responses
        all come back as a not_relevant verdict with the cause as reasoning.

        Args:
            threadline: Rule document with its glob patterns
            diff: Full unified diff of the check
            files: Files touched by the change

        Returns:
            ThreadlineResult for this threadline
        """
        relevant_files = matching_files(files, threadline.patterns)

        if not relevant_files:
            logger.debug(
                f"{threadline.id}: no files matched patterns {threadline.patterns}",
                extra={
                    "correlation_id": get_correlation_id(),
                    "threadline_id": threadline.id,
                    "files_checked": files[:5],
                    "operation": "threadline_out_of_scope",
                },
            )
            return ThreadlineResult(
                expert_id=threadline.id,
                status="not_relevant",
                reasoning=(
                    "No files match threadline patterns: "
                    + ", ".join(threadline.patterns)
                ),
            )

        filtered_diff = filter_by_files(diff, relevant_files)
        files_in_filtered_diff = files_touched(filtered_diff)

        if not files_in_filtered_diff:
            return ThreadlineResult(
                expert_id=threadline.id,
                status="not_relevant",
                reasoning="No changes to files matching threadline patterns in diff",
                relevant_files=relevant_files,
            )

        request = build_generation_request(
            threadline, filtered_diff, files_in_filtered_diff
        )

        logger.info(
            f"Evaluating {threadline.id}: {len(relevant_files)} relevant files, "
            f"{len(files_in_filtered_diff)} files in filtered diff",
            extra={
                "correlation_id": get_correlation_id(),
                "request_id": get_request_id(),
                "threadline_id": threadline.id,
                "model": self.agent.model_name,
                "operation": "threadline_evaluation_start",
            },
        )

        started_at = _now()
        try:
            response = await self.agent.generate(request)
        except Exception as e:
            finished_at = _now()
            message = _error_message(e)
            logger.error(
                f"Generation call failed for {threadline.id}: {message}",
                extra={
                    "correlation_id": get_correlation_id(),
                    "request_id": get_request_id(),
                    "threadline_id": threadline.id,
                    "operation": "threadline_evaluation_failed",
                    "error_type": type(e).__name__,
                },
            )
            result = ThreadlineResult(
                expert_id=threadline.id,
                status="not_relevant",
                reasoning=f"Error: {message}",
                outcome=EvaluationOutcome.ERROR,
                relevant_files=relevant_files,
                filtered_diff=filtered_diff,
                files_in_filtered_diff=files_in_filtered_diff,
                llm_call_metrics=LLMCallMetrics(
                    started_at=started_at.isoformat(),
                    finished_at=finished_at.isoformat(),
                    response_time_ms=_elapsed_ms(started_at, finished_at),
                    status="error",
                    error_message=message,
                ),
            )
            log_call_metrics(result)
            return result

        finished_at = _now()
        metrics = LLMCallMetrics(
            started_at=started_at.isoformat(),
            finished_at=finished_at.isoformat(),
            response_time_ms=_elapsed_ms(started_at, finished_at),
            tokens=response.usage,
        )
        result = self._to_result(
            threadline,
            response,
            relevant_files,
            filtered_diff,
            files_in_filtered_diff,
            metrics,
        )
        log_call_metrics(result)
        return result

    def _to_result(
        self,
        threadline: ThreadlineInput,
        response: GenerationResponse,
        relevant_files: List[str],
        filtered_diff: str,
        files_in_filtered_diff: List[str],
        metrics: LLMCallMetrics,
    ) -> ThreadlineResult:
        verdict = response.verdict
        status = (verdict.status or "").strip().lower()

        if status not in VALID_STATUSES:
            logger.warning(
                f"{threadline.id}: generation service returned invalid status {verdict.status!r}",
                extra={
                    "correlation_id": get_correlation_id(),
                    "threadline_id": threadline.id,
                    "operation": "threadline_invalid_status",
                },
            )
            metrics = metrics.model_copy(
                update={
                    "status": "error",
                    "error_message": f"Invalid status: {verdict.status!r}",
                }
            )
            return ThreadlineResult(
                expert_id=threadline.id,
                status="not_relevant",
                reasoning=(
                    f"Error: generation service returned invalid status {verdict.status!r}"
                ),
                outcome=EvaluationOutcome.ERROR,
                relevant_files=relevant_files,
                filtered_diff=filtered_diff,
                files_in_filtered_diff=files_in_filtered_diff,
                llm_call_metrics=metrics,
            )

        file_references = self._file_references(
            threadline.id, status, verdict.file_references, relevant_files,
            files_in_filtered_diff,
        )

        logger.info(
            f"{threadline.id}: status={status}",
            extra={
                "correlation_id": get_correlation_id(),
                "request_id": get_request_id(),
                "threadline_id": threadline.id,
                "status": status,
                "response_time_ms": metrics.response_time_ms,
                "operation": "threadline_evaluation_complete",
            },
        )

        return ThreadlineResult(
            expert_id=threadline.id,
            status=status,
            reasoning=verdict.reasoning,
            line_references=verdict.line_references or None,
            file_references=file_references,
            relevant_files=relevant_files,
            filtered_diff=filtered_diff,
            files_in_filtered_diff=files_in_filtered_diff,
            llm_call_metrics=metrics,
        )

    @staticmethod
    def _file_references(
        threadline_id: str,
        status: str,
        named: Optional[List[str]],
        relevant_files: List[str],
        files_in_filtered_diff: List[str],
    ) -> List[str]:
        """Files named by the response that were sent to it, else the in-scope set"""
        grounded = list(
            dict.fromkeys(f for f in (named or []) if f in files_in_filtered_diff)
        )
        if named and len(grounded) != len(named):
            logger.warning(
                f"{threadline_id}: {len(named)} file references returned, "
                f"{len(grounded)} match files sent for evaluation"
            )
        if grounded or status == "not_relevant":
            return grounded
        return list(relevant_files)
