"""
End-to-end check workflow tests without external services
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from pydantic_ai.models.test import TestModel

from threadline.agents.threadline_agent import ThreadlineAgent
from threadline.models.threadline_models import EvaluationOutcome
from threadline.services.check_service import CheckService, validate_check_request
from threadline.services.check_store import InMemoryCheckStore, build_check_record
from threadline.services.fix_detector import FixDetector
from threadline.services.threadline_evaluator import ThreadlineEvaluator


def _rule(threadline_id: str, patterns):
    return {
        "id": threadline_id,
        "version": "1.0.0",
        "patterns": patterns,
        "content": f"Guidelines for {threadline_id}",
        "filePath": f".threadlines/{threadline_id}.md",
    }


class TestCheckWorkflow:
    """Drive a whole check through orchestration, evaluation and storage."""

    @pytest.mark.asyncio
    async def test_scoped_rules_only_see_their_files(
        self, mock_agent, make_payload, response_factory, ts_section, md_section
    ):
        prompts = []

        async def generate(request):
            prompts.append(request.user_prompt)
            if "docs-only" in request.user_prompt:
                return response_factory("attention", file_references=["docs/b.md"])
            return response_factory("compliant")

        mock_agent.generate = AsyncMock(side_effect=generate)
        service = CheckService(ThreadlineEvaluator(mock_agent), timeout=5)
        payload = make_payload(
            threadlines=[
                _rule("ts-only", ["**/*.ts"]),
                _rule("docs-only", ["docs/**"]),
                _rule("python-only", ["**/*.py"]),
            ]
        )

        report = await service.process_threadlines(payload)

        assert mock_agent.generate.await_count == 2
        ts_prompt = next(p for p in prompts if "ts-only" in p)
        docs_prompt = next(p for p in prompts if "docs-only" in p)
        assert ts_section in ts_prompt and md_section not in ts_prompt
        assert md_section in docs_prompt and ts_section not in docs_prompt

        assert [r.expert_id for r in report.results] == ["ts-only", "docs-only"]
        assert report.results[1].status == "attention"
        assert report.results[1].file_references == ["docs/b.md"]
        python_verdict = report.verdicts[2]
        assert python_verdict.status == "not_relevant"
        assert python_verdict.reasoning.startswith("No files match threadline patterns")
        assert report.metadata.completed == 3

    @pytest.mark.asyncio
    async def test_scripted_model_through_real_client(self, make_payload):
        model = TestModel(
            custom_output_args={
                "status": "attention",
                "reasoning": "Inline literal",
                "file_references": ["src/a.ts"],
            }
        )
        agent = ThreadlineAgent(model_name="test:scripted", model=model)
        service = CheckService(ThreadlineEvaluator(agent), timeout=10)

        report = await service.process_threadlines(
            make_payload(threadlines=[_rule("ts-only", ["src/**/*.ts"])])
        )

        verdict = report.verdicts[0]
        assert verdict.status == "attention"
        assert verdict.file_references == ["src/a.ts"]
        assert verdict.outcome == EvaluationOutcome.COMPLETED
        assert verdict.llm_call_metrics.status == "success"

    @pytest.mark.asyncio
    async def test_fix_detected_on_second_check(
        self, mock_agent, make_payload, response_factory
    ):
        store = InMemoryCheckStore()
        service = CheckService(ThreadlineEvaluator(mock_agent), timeout=5)
        detector = FixDetector(store)
        rules = [_rule("ts-only", ["**/*.ts"])]

        mock_agent.generate.return_value = response_factory(
            "attention", file_references=["src/a.ts"]
        )
        first_request = make_payload(threadlines=rules)
        first_report = await service.process_threadlines(first_request)
        first = build_check_record(validate_check_request(first_request), first_report)
        await store.save_check(first)

        mock_agent.generate.return_value = response_factory("compliant")
        second_request = make_payload(threadlines=rules)
        second_report = await service.process_threadlines(second_request)
        second = build_check_record(
            validate_check_request(second_request),
            second_report,
            created_at=first.created_at + timedelta(minutes=1),
        )
        await store.save_check(second)

        result = await detector.detect_fixes(second.id)

        assert result.fixes_detected == 1
        assert result.fixes[0].previous_check_id == first.id
        assert result.fixes[0].time_between_checks_seconds == 60

