"""
Data models for stored checks and detected fixes
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from threadline.models.threadline_models import (
    EvaluationOutcome,
    LLMCallMetrics,
    ThreadlineStatus,
)


class StoredVerdict(BaseModel):
    """A verdict as persisted for a check, keyed by threadline identity"""

    threadline_id: str
    identity_hash: str
    version_hash: Optional[str] = None
    threadline_file_path: Optional[str] = None
    status: ThreadlineStatus
    reasoning: Optional[str] = None
    file_references: List[str] = Field(default_factory=list)

    # Evaluation diagnostics kept for audit
    outcome: EvaluationOutcome = EvaluationOutcome.COMPLETED
    relevant_files: List[str] = Field(default_factory=list)
    files_in_filtered_diff: List[str] = Field(default_factory=list)
    filtered_diff: str = ""
    llm_call_metrics: Optional[LLMCallMetrics] = None


class CheckRecord(BaseModel):
    """A stored check within a (repo, branch, environment) lineage"""

    id: str
    account: Optional[str] = None
    repo_name: Optional[str] = None
    branch_name: Optional[str] = None
    environment: str = "local"
    created_at: datetime
    diff: str = ""
    verdicts: List[StoredVerdict] = Field(default_factory=list)


class Fix(BaseModel):
    """A detected attention -> non-attention transition across consecutive checks"""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    previous_check_id: str = Field(..., alias="previousCheckId")
    current_check_id: str = Field(..., alias="currentCheckId")
    threadline_identity_hash: str = Field(..., alias="ruleIdentityHash")
    threadline_id: str = Field(..., alias="threadlineId")
    threadline_file_path: Optional[str] = Field(None, alias="threadlineFilePath")
    violation_file_references: List[str] = Field(
        default_factory=list, alias="violationFileReferences"
    )
    violation_reasoning: Optional[str] = Field(None, alias="violationReasoning")
    # TODO: distinguish rule edits/removals from code fixes once rule history is stored
    fix_type: Literal["CODE_CHANGE"] = Field("CODE_CHANGE", alias="fixType")
    detection_method: Literal["naive"] = Field("naive", alias="detectionMethod")
    time_between_checks_seconds: int = Field(0, alias="timeBetweenChecksSeconds")


class FixDetectionResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    fixes_detected: int = Field(0, alias="fixesDetected")
    fixes: List[Fix] = Field(default_factory=list)
    message: Optional[str] = None


class FixDiff(BaseModel):
    """Combined introduction/fix diff for a recorded fix"""

    model_config = ConfigDict(populate_by_name=True)

    fix_id: str = Field(..., alias="fixId")
    files: List[str] = Field(default_factory=list)
    previous_diff: str = Field("", alias="previousDiff")
    current_diff: str = Field("", alias="currentDiff")
    combined_diff: str = Field("", alias="combinedDiff")
