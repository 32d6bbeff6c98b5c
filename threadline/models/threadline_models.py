"""
Data models for threadline check operations
"""

from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr

ThreadlineStatus = Literal["compliant", "attention", "not_relevant"]

VALID_STATUSES = ("compliant", "attention", "not_relevant")


class ContextFile(BaseModel):
    """Reference file shipped alongside a threadline"""

    model_config = ConfigDict(frozen=True)

    path: str
    content: str


class ThreadlineInput(BaseModel):
    """A user-authored rule document scoped to files by glob patterns"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: StrictStr = Field(..., description="Threadline identifier")
    version: StrictStr = Field(..., description="Threadline version")
    patterns: List[StrictStr] = Field(
        ..., description="Ordered glob patterns selecting in-scope files"
    )
    content: StrictStr = Field(..., description="Rule body text")
    file_path: Optional[str] = Field(
        None, alias="filePath", description="Repository path of the threadline file"
    )
    context_files: List[str] = Field(default_factory=list, alias="contextFiles")
    context_content: Dict[str, str] = Field(
        default_factory=dict, alias="contextContent"
    )

    @property
    def context_documents(self) -> List[ContextFile]:
        """Context files with content, in declared order when one is given"""
        ordered = [p for p in self.context_files if p in self.context_content]
        ordered += [p for p in self.context_content if p not in ordered]
        return [ContextFile(path=p, content=self.context_content[p]) for p in ordered]


class ThreadlineCheckRequest(BaseModel):
    """Inbound check request"""

    model_config = ConfigDict(populate_by_name=True)

    threadlines: List[ThreadlineInput]
    diff: StrictStr
    files: List[StrictStr]
    api_key: StrictStr = Field(..., alias="apiKey")

    # Optional audit context
    account: Optional[str] = None
    repo_name: Optional[str] = Field(None, alias="repoName")
    branch_name: Optional[str] = Field(None, alias="branchName")
    commit_sha: Optional[str] = Field(None, alias="commitSha")
    commit_message: Optional[str] = Field(None, alias="commitMessage")
    pr_title: Optional[str] = Field(None, alias="prTitle")
    environment: Optional[str] = None
    cli_version: Optional[str] = Field(None, alias="cliVersion")
    review_context: Optional[str] = Field(None, alias="reviewContext")


class ReviewTargetKind(str, Enum):
    PULL_REQUEST = "pull-request"
    MERGE_REQUEST = "merge-request"
    BRANCH = "branch"
    COMMIT = "commit"
    LOCAL = "local"


class ReviewTarget(BaseModel):
    """The resolved reference pair (or local mode) defining which diff to compute"""

    model_config = ConfigDict(frozen=True)

    kind: ReviewTargetKind
    primary_ref: Optional[str] = None
    secondary_ref: Optional[str] = None
    title: Optional[str] = None
    request_number: Optional[str] = None

    @property
    def is_local(self) -> bool:
        return self.kind == ReviewTargetKind.LOCAL


class EvaluationOutcome(str, Enum):
    """Internal result of running one evaluation, kept apart from the verdict status"""

    COMPLETED = "completed"
    ERROR = "error"
    TIMED_OUT = "timed_out"


class TokenUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class LLMCallMetrics(BaseModel):
    """Timing and usage of a single generation-service call"""

    started_at: str
    finished_at: str
    response_time_ms: int
    tokens: Optional[TokenUsage] = None
    status: Literal["success", "timeout", "error"] = "success"
    error_message: Optional[str] = None


class GenerationVerdict(BaseModel):
    """Structured response expected from the generation service"""

    status: str = Field(
        ..., description='One of "compliant", "attention" or "not_relevant"'
    )
    reasoning: Optional[str] = Field(None, description="Brief explanation")
    line_references: Optional[List[int]] = Field(
        None, description="Line numbers needing attention"
    )
    file_references: Optional[List[str]] = Field(
        None, description="Files containing violations"
    )


class ThreadlineResult(BaseModel):
    """Verdict of one threadline against one diff"""

    model_config = ConfigDict(populate_by_name=True)

    expert_id: str = Field(..., alias="expertId")
    status: ThreadlineStatus
    reasoning: Optional[str] = None
    line_references: Optional[List[int]] = Field(None, alias="lineReferences")
    file_references: List[str] = Field(default_factory=list, alias="fileReferences")

    # Internal diagnostics, never serialized to clients
    outcome: EvaluationOutcome = Field(EvaluationOutcome.COMPLETED, exclude=True)
    relevant_files: List[str] = Field(default_factory=list, exclude=True)
    filtered_diff: str = Field("", exclude=True)
    files_in_filtered_diff: List[str] = Field(default_factory=list, exclude=True)
    llm_call_metrics: Optional[LLMCallMetrics] = Field(None, exclude=True)


class CheckMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_threadlines: int = Field(0, alias="totalThreadlines")
    completed: int = 0
    timed_out: int = Field(0, alias="timedOut")
    errors: int = 0


class CheckReport(BaseModel):
    """Aggregated result of one check"""

    model_config = ConfigDict(populate_by_name=True)

    results: List[ThreadlineResult] = Field(default_factory=list)
    metadata: CheckMetadata = Field(default_factory=CheckMetadata)
    check_id: Optional[str] = Field(None, alias="checkId")
    message: Optional[str] = None

    # One verdict per threadline in input order, including suppressed ones
    verdicts: List[ThreadlineResult] = Field(default_factory=list, exclude=True)
