"""Pytest configuration and fixtures for the Threadline check service tests."""

import os

# Settings are read at import time, so the environment must be in place first
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")
os.environ.setdefault("AI_MODEL", "openai:gpt-4o-mini")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.pop("THREADLINE_API_KEY", None)
os.environ.pop("THREADLINE_ACCOUNT", None)

from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, Mock

import pytest

from threadline.agents.threadline_agent import GenerationResponse, ThreadlineAgent
from threadline.models.threadline_models import (
    GenerationVerdict,
    ThreadlineInput,
    TokenUsage,
)

# ============================================================================
# Diff Fixtures
# ============================================================================

TS_SECTION = (
    "diff --git a/src/a.ts b/src/a.ts\n"
    "index 1111111..2222222 100644\n"
    "--- a/src/a.ts\n"
    "+++ b/src/a.ts\n"
    "@@ -1,3 +1,4 @@\n"
    " export function a() {\n"
    "-  return 1;\n"
    "+  const value = 1;\n"
    "+  return value;\n"
    " }\n"
)

MD_SECTION = (
    "diff --git a/docs/b.md b/docs/b.md\n"
    "index 3333333..4444444 100644\n"
    "--- a/docs/b.md\n"
    "+++ b/docs/b.md\n"
    "@@ -1,2 +1,2 @@\n"
    " # Title\n"
    "-Old text\n"
    "+New text\n"
)


@pytest.fixture
def ts_section() -> str:
    return TS_SECTION


@pytest.fixture
def md_section() -> str:
    return MD_SECTION


@pytest.fixture
def sample_diff() -> str:
    """Two-file diff touching a TypeScript source and a markdown document."""
    return TS_SECTION + MD_SECTION


@pytest.fixture
def sample_files() -> List[str]:
    return ["src/a.ts", "docs/b.md"]


# ============================================================================
# Model Fixtures
# ============================================================================


@pytest.fixture
def make_threadline():
    """Factory for threadline definitions."""

    def _make(
        threadline_id: str = "ts-style",
        patterns: Optional[List[str]] = None,
        content: str = "Prefer named constants over inline literals.",
        version: str = "1.0.0",
        file_path: Optional[str] = None,
        context_content: Optional[Dict[str, str]] = None,
    ) -> ThreadlineInput:
        return ThreadlineInput(
            id=threadline_id,
            version=version,
            patterns=patterns if patterns is not None else ["**/*.ts"],
            content=content,
            file_path=file_path or f".threadlines/{threadline_id}.md",
            context_content=context_content or {},
        )

    return _make


@pytest.fixture
def make_payload(sample_diff, sample_files):
    """Factory for raw check request bodies as the CLI sends them."""

    def _make(threadlines: Optional[List[Dict[str, Any]]] = None, **overrides) -> Dict[str, Any]:
        payload = {
            "threadlines": threadlines
            if threadlines is not None
            else [
                {
                    "id": "ts-style",
                    "version": "1.0.0",
                    "patterns": ["**/*.ts"],
                    "content": "Prefer named constants over inline literals.",
                    "filePath": ".threadlines/ts-style.md",
                },
                {
                    "id": "docs-tone",
                    "version": "1.0.0",
                    "patterns": ["docs/**/*.md"],
                    "content": "Documentation uses sentence case headings.",
                    "filePath": ".threadlines/docs-tone.md",
                },
            ],
            "diff": sample_diff,
            "files": list(sample_files),
            "apiKey": "test-api-key",
            "account": "acme",
            "repoName": "acme/web",
            "branchName": "main",
            "environment": "github",
        }
        payload.update(overrides)
        return payload

    return _make


def make_response(
    status: str,
    reasoning: str = "reasoning",
    file_references: Optional[List[str]] = None,
    line_references: Optional[List[int]] = None,
) -> GenerationResponse:
    return GenerationResponse(
        verdict=GenerationVerdict(
            status=status,
            reasoning=reasoning,
            file_references=file_references,
            line_references=line_references,
        ),
        usage=TokenUsage(prompt_tokens=120, completion_tokens=30, total_tokens=150),
    )


@pytest.fixture
def response_factory():
    """Factory for generation responses."""
    return make_response


@pytest.fixture
def mock_agent() -> Mock:
    """Generation client returning a compliant verdict unless told otherwise."""
    agent = Mock(spec=ThreadlineAgent)
    agent.model_name = "openai:gpt-4o-mini"
    agent.generate = AsyncMock(return_value=make_response("compliant"))
    return agent


# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow")
