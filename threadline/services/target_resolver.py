"""
Review target resolution from CI environment signals

Resolution is a pure function of an explicit signal mapping (normally a copy
of the process environment). Priority, first match wins:

1. Pull request (GitHub) or merge request (GitLab) with complete signals
2. Branch name
3. Commit SHA
4. Local mode (the caller prefers staged changes, else unstaged)
"""

import logging
from typing import Mapping, Optional

from threadline.models.threadline_models import ReviewTarget, ReviewTargetKind

logger = logging.getLogger(__name__)

LOCAL_TARGET = ReviewTarget(kind=ReviewTargetKind.LOCAL)

BRANCH_SIGNALS = ("GITHUB_REF_NAME", "CI_COMMIT_REF_NAME", "VERCEL_GIT_COMMIT_REF")
COMMIT_SIGNALS = ("GITHUB_SHA", "CI_COMMIT_SHA", "VERCEL_GIT_COMMIT_SHA")
GITHUB_PR_NUMBER_SIGNALS = (
    "GITHUB_EVENT_PULL_REQUEST_NUMBER",
    "GITHUB_PR_NUMBER",
    "GITHUB_EVENT_NUMBER",
)


def _signal(signals: Mapping[str, str], *names: str) -> Optional[str]:
    """First non-blank value among the named signals"""
    for name in names:
        value = signals.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _github_pull_request(signals: Mapping[str, str]) -> Optional[ReviewTarget]:
    if _signal(signals, "GITHUB_EVENT_NAME") != "pull_request":
        return None
    target_branch = _signal(signals, "GITHUB_BASE_REF")
    source_branch = _signal(signals, "GITHUB_HEAD_REF")
    number = _signal(signals, *GITHUB_PR_NUMBER_SIGNALS)
    if not (target_branch and source_branch and number):
        logger.debug("GitHub pull request signals incomplete, falling through")
        return None
    return ReviewTarget(
        kind=ReviewTargetKind.PULL_REQUEST,
        primary_ref=target_branch,
        secondary_ref=source_branch,
        request_number=number,
    )


def _gitlab_merge_request(signals: Mapping[str, str]) -> Optional[ReviewTarget]:
    number = _signal(signals, "CI_MERGE_REQUEST_IID")
    if not number:
        return None
    target_branch = _signal(signals, "CI_MERGE_REQUEST_TARGET_BRANCH_NAME")
    source_branch = _signal(signals, "CI_MERGE_REQUEST_SOURCE_BRANCH_NAME")
    if not (target_branch and source_branch):
        logger.debug("GitLab merge request signals incomplete, falling through")
        return None
    return ReviewTarget(
        kind=ReviewTargetKind.MERGE_REQUEST,
        primary_ref=target_branch,
        secondary_ref=source_branch,
        title=_signal(signals, "CI_MERGE_REQUEST_TITLE"),
        request_number=number,
    )


def resolve_review_target(signals: Optional[Mapping[str, str]]) -> ReviewTarget:
    """Resolve which references to diff; never raises, degrading to local mode"""
    if not signals:
        return LOCAL_TARGET

    target = _github_pull_request(signals) or _gitlab_merge_request(signals)
    if target is not None:
        logger.info(
            f"Resolved {target.kind.value} #{target.request_number}: "
            f"{target.primary_ref}...{target.secondary_ref}"
        )
        return target

    branch = _signal(signals, *BRANCH_SIGNALS)
    if branch:
        logger.info(f"Resolved branch review target '{branch}'")
        return ReviewTarget(kind=ReviewTargetKind.BRANCH, primary_ref=branch)

    commit = _signal(signals, *COMMIT_SIGNALS)
    if commit:
        logger.info(f"Resolved commit review target '{commit}'")
        return ReviewTarget(kind=ReviewTargetKind.COMMIT, primary_ref=commit)

    logger.info("No CI signals detected, using local review target")
    return LOCAL_TARGET


def detect_environment(signals: Optional[Mapping[str, str]]) -> str:
    """Name the CI platform the signals come from: github, gitlab, vercel or local"""
    if not signals:
        return "local"
    if _signal(signals, "GITHUB_ACTIONS"):
        return "github"
    if _signal(signals, "GITLAB_CI"):
        return "gitlab"
    if _signal(signals, "VERCEL"):
        return "vercel"
    return "local"
