"""
Check persistence used by audit storage and fix detection
"""

import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional

from threadline.models.fix_models import CheckRecord, Fix, StoredVerdict
from threadline.models.threadline_models import CheckReport, ThreadlineCheckRequest
from threadline.utils.threadline_hash import (
    generate_identity_hash,
    generate_version_hash,
)

logger = logging.getLogger(__name__)


class CheckStore(ABC):
    """Queries the fix detector and the check endpoints rely on"""

    @abstractmethod
    async def save_check(self, record: CheckRecord) -> None:
        ...

    @abstractmethod
    async def get_check(self, check_id: str) -> Optional[CheckRecord]:
        ...

    @abstractmethod
    async def find_previous_check(self, check: CheckRecord) -> Optional[CheckRecord]:
        """Latest check created strictly before ``check`` in the same lineage"""

    @abstractmethod
    async def get_attention_verdicts(self, check_id: str) -> List[StoredVerdict]:
        ...

    @abstractmethod
    async def find_verdict_by_identity(
        self, check_id: str, identity_hash: str
    ) -> Optional[StoredVerdict]:
        """Verdict of the threadline with this identity in a check, None when absent"""

    @abstractmethod
    async def record_fix(self, fix: Fix) -> None:
        ...

    @abstractmethod
    async def get_fix(self, fix_id: str) -> Optional[Fix]:
        ...


class InMemoryCheckStore(CheckStore):
    """Process-local store; lineage is (account, repo, branch, environment)"""

    def __init__(self):
        self._checks: Dict[str, CheckRecord] = {}
        self._fixes: Dict[str, Fix] = {}

    async def save_check(self, record: CheckRecord) -> None:
        self._checks[record.id] = record
        logger.debug(f"Stored check {record.id} with {len(record.verdicts)} verdicts")

    async def get_check(self, check_id: str) -> Optional[CheckRecord]:
        return self._checks.get(check_id)

    async def find_previous_check(self, check: CheckRecord) -> Optional[CheckRecord]:
        candidates = [
            other
            for other in self._checks.values()
            if other.account == check.account
            and other.repo_name == check.repo_name
            and other.branch_name == check.branch_name
            and other.environment == check.environment
            and other.created_at < check.created_at
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda other: other.created_at)

    async def get_attention_verdicts(self, check_id: str) -> List[StoredVerdict]:
        check = self._checks.get(check_id)
        if check is None:
            return []
        return [v for v in check.verdicts if v.status == "attention"]

    async def find_verdict_by_identity(
        self, check_id: str, identity_hash: str
    ) -> Optional[StoredVerdict]:
        check = self._checks.get(check_id)
        if check is None:
            return None
        for verdict in check.verdicts:
            if verdict.identity_hash == identity_hash:
                return verdict
        return None

    async def record_fix(self, fix: Fix) -> None:
        self._fixes[fix.id] = fix

    async def get_fix(self, fix_id: str) -> Optional[Fix]:
        return self._fixes.get(fix_id)

    def list_fixes(self) -> List[Fix]:
        return list(self._fixes.values())


def build_check_record(
    request: ThreadlineCheckRequest,
    report: CheckReport,
    check_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> CheckRecord:
    """Snapshot a finished check, keying every verdict by threadline identity"""
    by_id = {threadline.id: threadline for threadline in request.threadlines}
    verdicts = []
    for verdict in report.verdicts:
        threadline = by_id.get(verdict.expert_id)
        file_path = threadline.file_path if threadline else None
        version_hash = None
        if threadline:
            version_hash = generate_version_hash(
                threadline_id=threadline.id,
                file_path=file_path,
                patterns=threadline.patterns,
                content=threadline.content,
                version=threadline.version,
                repo_name=request.repo_name,
                account=request.account,
            )
        verdicts.append(
            StoredVerdict(
                threadline_id=verdict.expert_id,
                identity_hash=generate_identity_hash(
                    threadline_id=verdict.expert_id,
                    file_path=file_path,
                    repo_name=request.repo_name,
                    account=request.account,
                ),
                version_hash=version_hash,
                threadline_file_path=file_path,
                status=verdict.status,
                reasoning=verdict.reasoning,
                file_references=list(verdict.file_references),
                outcome=verdict.outcome,
                relevant_files=list(verdict.relevant_files),
                files_in_filtered_diff=list(verdict.files_in_filtered_diff),
                filtered_diff=verdict.filtered_diff,
                llm_call_metrics=verdict.llm_call_metrics,
            )
        )
    return CheckRecord(
        id=check_id or str(uuid.uuid4()),
        account=request.account,
        repo_name=request.repo_name,
        branch_name=request.branch_name,
        environment=request.environment or "local",
        created_at=created_at or datetime.now(timezone.utc),
        diff=request.diff,
        verdicts=verdicts,
    )
