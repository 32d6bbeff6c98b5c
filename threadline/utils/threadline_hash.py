"""
Content hashes identifying threadline definitions across checks
"""

import hashlib
import json
from typing import Any, Dict, List, Optional


def _digest(data: Dict[str, Any]) -> str:
    payload = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def generate_version_hash(
    threadline_id: str,
    file_path: Optional[str],
    patterns: List[str],
    content: str,
    version: str,
    repo_name: Optional[str],
    account: Optional[str],
) -> str:
    """Hash of one exact threadline definition; equal hashes mean identical definitions"""
    return _digest(
        {
            "threadlineId": threadline_id,
            "filePath": file_path or "",
            # Pattern order comes from the file and is significant
            "patterns": list(patterns),
            "content": content,
            "version": version,
            "repoName": repo_name or "",
            "account": account or "",
        }
    )


def generate_identity_hash(
    threadline_id: str,
    file_path: Optional[str],
    repo_name: Optional[str],
    account: Optional[str],
) -> str:
    """Hash identifying a threadline across versions"""
    return _digest(
        {
            "threadlineId": threadline_id,
            "filePath": file_path or "",
            "repoName": repo_name or "",
            "account": account or "",
        }
    )
