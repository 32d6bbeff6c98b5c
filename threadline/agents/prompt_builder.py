"""
Grounding prompt construction for single-threadline evaluation
"""

from dataclasses import dataclass
from typing import List

from threadline.models.threadline_models import ThreadlineInput

THREADLINE_SYSTEM_INSTRUCTION = (
    "You are a code quality checker. Analyze code changes against the threadline "
    "guidelines. Be precise - only flag actual violations. Return only valid JSON, "
    "no other text."
)


@dataclass(frozen=True)
class GenerationRequest:
    """Request sent to the generation service"""

    system_instruction: str
    user_prompt: str


def build_prompt(threadline: ThreadlineInput, diff: str, matching_files: List[str]) -> str:
    """Build the user prompt asking for a verdict on exactly one threadline"""
    sections = [
        f"You are a code quality checker focused EXCLUSIVELY on: {threadline.id}",
        (
            "CRITICAL: You must ONLY check for violations of THIS SPECIFIC threadline. "
            "Do NOT flag other code quality issues, style problems, or unrelated concerns. "
            'If the code does not violate THIS threadline\'s specific rules, return "compliant" '
            "even if other issues exist."
        ),
        f"Threadline Guidelines:\n{threadline.content}",
    ]

    # Context files go in verbatim, whether or not the diff touches them
    context_documents = threadline.context_documents
    if context_documents:
        context_lines = ["Context Files:"]
        for document in context_documents:
            context_lines.append(f"\n--- {document.path} ---\n{document.content}")
        sections.append("\n".join(context_lines))

    sections.append(f"Code Changes:\n{diff}")
    sections.append("Changed Files:\n" + "\n".join(matching_files))
    sections.append(
        "Review the code changes AGAINST ONLY THE THREADLINE GUIDELINES ABOVE.\n\n"
        "IMPORTANT:\n"
        "- Only flag violations of the specific rules defined in this threadline\n"
        "- Ignore all other code quality issues, style problems, or unrelated concerns\n"
        '- If the threadline concern is not violated, return "compliant" regardless of other issues\n'
        '- Only return "attention" if there is a DIRECT violation of this threadline\'s rules'
    )
    sections.append(
        "Return JSON only with this exact structure:\n"
        "{\n"
        '  "status": "compliant" | "attention" | "not_relevant",\n'
        '  "reasoning": "brief explanation",\n'
        '  "line_references": [line numbers if attention needed],\n'
        '  "file_references": [paths of the changed files that violate the threadline]\n'
        "}"
    )
    sections.append(
        "Status meanings:\n"
        '- "compliant": Code follows THIS threadline\'s guidelines, no violations found '
        "(even if other issues exist)\n"
        '- "attention": Code DIRECTLY violates THIS threadline\'s specific guidelines\n'
        '- "not_relevant": This threadline doesn\'t apply to these files/changes '
        "(e.g., wrong file type, no matching code patterns)"
    )
    return "\n\n".join(sections) + "\n"


def build_generation_request(
    threadline: ThreadlineInput, diff: str, matching_files: List[str]
) -> GenerationRequest:
    return GenerationRequest(
        system_instruction=THREADLINE_SYSTEM_INSTRUCTION,
        user_prompt=build_prompt(threadline, diff, matching_files),
    )
