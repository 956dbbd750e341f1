"""Prompt rendering for the two operations.

Prompts are pure functions of their input: no timestamps, ids or other
per-call values are embedded, so equal inputs always render byte-identical
text. The schema strings below are valid JSON and list exactly the fields of
``ReviewResult`` and ``GenerateResult``.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from codedesk.schemas.common import ResponseLanguage
from codedesk.schemas.generate import GenerateLanguage, GenerateStyle

REVIEW_OUTPUT_SCHEMA = (
    '{ "summary": "string", "issues": [{ "id": "string", "severity": "low|medium|high", '
    '"title": "string", "message": "string", "line": 1 }], "refactoredCode": "string", '
    '"suggestedTests": ["string"] }'
)

GENERATE_OUTPUT_SCHEMA = '{ "summary": "string", "code": "string", "notes": ["string"] }'


@dataclass(frozen=True)
class ReviewFile:
    filename: str
    language: str
    code: str
    line_count: int


@dataclass(frozen=True)
class GenerateInput:
    prompt: str
    language: GenerateLanguage
    style: GenerateStyle
    response_language: ResponseLanguage


def response_language_instruction(response_language: ResponseLanguage) -> str:
    if response_language == "ko":
        return "Write all natural-language fields in Korean."
    return "Write all natural-language fields in English."


def _file_section(files: Sequence[ReviewFile]) -> list[str]:
    if len(files) == 1:
        only = files[0]
        return [f"filename: {only.filename}", f"language: {only.language}", "", "code:", only.code]

    total = len(files)
    lines = [f"files: {total}"]
    for index, item in enumerate(files, start=1):
        lines += [
            "",
            f"=== file {index}/{total}: {item.filename} ===",
            f"filename: {item.filename}",
            f"language: {item.language}",
            "code:",
            item.code,
            f"=== end of file {index}/{total} ===",
        ]
    return lines


def build_review_prompt(files: Sequence[ReviewFile], response_language: ResponseLanguage) -> str:
    if not files:
        raise ValueError("at least one file is required to build a review prompt")
    return "\n".join(
        [
            "You are a senior software engineer.",
            "Analyze the code and return ONLY valid JSON.",
            response_language_instruction(response_language),
            "JSON schema:",
            REVIEW_OUTPUT_SCHEMA,
            "",
            *_file_section(files),
        ]
    )


def build_generate_prompt(data: GenerateInput) -> str:
    return "\n".join(
        [
            "You are a practical coding assistant.",
            "Generate production-quality code and return ONLY valid JSON.",
            response_language_instruction(data.response_language),
            "JSON schema:",
            GENERATE_OUTPUT_SCHEMA,
            "",
            f"language: {data.language}",
            f"style: {data.style}",
            "",
            "requirement:",
            data.prompt,
        ]
    )
