"""
Naive fix detection between consecutive checks of one lineage

A violation (status=attention) in the previous check counts as fixed when the
same threadline, matched by identity hash so version bumps keep lineage, is
absent from the current check or no longer at attention. Every fix is typed
CODE_CHANGE; rule edits and removals are not told apart from code fixes.
"""

import logging
import uuid

from threadline.exceptions import CheckNotFoundException
from threadline.models.fix_models import Fix, FixDetectionResult, FixDiff
from threadline.services.check_store import CheckStore
from threadline.utils.combine_diffs import combine_diffs
from threadline.utils.diff_filter import filter_by_files

logger = logging.getLogger(__name__)


class FixDetector:
    def __init__(self, store: CheckStore):
        self.store = store

    async def detect_fixes(self, current_check_id: str) -> FixDetectionResult:
        """
        Record a Fix for every previous violation that is gone in this check

        Raises:
            CheckNotFoundException: If the current check does not exist
        """
        current = await self.store.get_check(current_check_id)
        if current is None:
            raise CheckNotFoundException(
                message="Check not found", check_id=current_check_id
            )

        previous = await self.store.find_previous_check(current)
        if previous is None:
            return FixDetectionResult(message="No previous check found")

        violations = await self.store.get_attention_verdicts(previous.id)
        if not violations:
            return FixDetectionResult(message="No violations in previous check")

        seconds_between = int((current.created_at - previous.created_at).total_seconds())
        fixes = []
        for violation in violations:
            counterpart = await self.store.find_verdict_by_identity(
                current.id, violation.identity_hash
            )
            if counterpart is not None and counterpart.status == "attention":
                continue

            fix = Fix(
                id=str(uuid.uuid4()),
                previous_check_id=previous.id,
                current_check_id=current.id,
                threadline_identity_hash=violation.identity_hash,
                threadline_id=violation.threadline_id,
                threadline_file_path=violation.threadline_file_path,
                violation_file_references=list(violation.file_references),
                violation_reasoning=violation.reasoning,
                time_between_checks_seconds=seconds_between,
            )
            await self.store.record_fix(fix)
            fixes.append(fix)

        logger.info(
            f"Fix detection for check {current.id}: {len(fixes)} fixes "
            f"from {len(violations)} previous violations",
            extra={
                "check_id": current.id,
                "previous_check_id": previous.id,
                "fixes_detected": len(fixes),
                "operation": "fix_detection_complete",
            },
        )
        return FixDetectionResult(fixes_detected=len(fixes), fixes=fixes)

    async def get_fix_diff(self, fix_id: str) -> FixDiff:
        """
        Combined introduction/fix diff restricted to the violation's files

        Raises:
            CheckNotFoundException: If the fix or either of its checks is missing
        """
        fix = await self.store.get_fix(fix_id)
        if fix is None:
            raise CheckNotFoundException(
                message="Fix not found", details={"fix_id": fix_id}
            )
        previous = await self.store.get_check(fix.previous_check_id)
        current = await self.store.get_check(fix.current_check_id)
        if previous is None or current is None:
            raise CheckNotFoundException(
                message="Check for fix not found",
                check_id=fix.previous_check_id if previous is None else fix.current_check_id,
                details={"fix_id": fix_id},
            )

        files = fix.violation_file_references
        previous_diff = filter_by_files(previous.diff, files)
        current_diff = filter_by_files(current.diff, files)
        return FixDiff(
            fix_id=fix.id,
            files=list(files),
            previous_diff=previous_diff,
            current_diff=current_diff,
            combined_diff=combine_diffs(previous_diff, current_diff),
        )
