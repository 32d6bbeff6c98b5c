"""
Combine an introduction diff and a fix diff for display
"""


def combine_diffs(previous_diff: str, current_diff: str) -> str:
    """
    Combine the diff that introduced a violation with the diff that removed it

    Both diffs are expected to be filtered to the violation's files already.
    The result is a plain concatenation, older first, separated by a blank
    line; the viewer renders the two hunks per file side by side.
    """
    if not previous_diff or not previous_diff.strip():
        return current_diff or ""
    if not current_diff or not current_diff.strip():
        return previous_diff
    return f"{previous_diff}\n\n{current_diff}"
