"""Golden-text tests for prompt rendering."""

import json

from codedesk.schemas.generate import GenerateResult
from codedesk.schemas.review import ReviewIssue, ReviewResult
from codedesk.services.prompts import (
    GENERATE_OUTPUT_SCHEMA,
    REVIEW_OUTPUT_SCHEMA,
    GenerateInput,
    ReviewFile,
    build_generate_prompt,
    build_review_prompt,
)


def aliases(model) -> set[str]:
    return {field.alias or name for name, field in model.model_fields.items()}


def test_single_file_review_prompt():
    files = [ReviewFile(filename="a.ts", language="typescript", code="let x = 1;", line_count=1)]

    assert build_review_prompt(files, "ko") == "\n".join(
        [
            "You are a senior software engineer.",
            "Analyze the code and return ONLY valid JSON.",
            "Write all natural-language fields in Korean.",
            "JSON schema:",
            REVIEW_OUTPUT_SCHEMA,
            "",
            "filename: a.ts",
            "language: typescript",
            "",
            "code:",
            "let x = 1;",
        ]
    )


def test_multi_file_review_prompt_delimits_each_file():
    files = [
        ReviewFile(filename="a.py", language="python", code="x = 1", line_count=1),
        ReviewFile(filename="b.go", language="go", code="package b", line_count=1),
    ]

    prompt = build_review_prompt(files, "en")

    assert "Write all natural-language fields in English." in prompt
    assert prompt.endswith(
        "\n".join(
            [
                "files: 2",
                "",
                "=== file 1/2: a.py ===",
                "filename: a.py",
                "language: python",
                "code:",
                "x = 1",
                "=== end of file 1/2 ===",
                "",
                "=== file 2/2: b.go ===",
                "filename: b.go",
                "language: go",
                "code:",
                "package b",
                "=== end of file 2/2 ===",
            ]
        )
    )


def test_generate_prompt():
    data = GenerateInput(prompt="reverse a string", language="python", style="explain", response_language="en")

    assert build_generate_prompt(data) == "\n".join(
        [
            "You are a practical coding assistant.",
            "Generate production-quality code and return ONLY valid JSON.",
            "Write all natural-language fields in English.",
            "JSON schema:",
            GENERATE_OUTPUT_SCHEMA,
            "",
            "language: python",
            "style: explain",
            "",
            "requirement:",
            "reverse a string",
        ]
    )


def test_prompts_are_deterministic():
    files = [ReviewFile(filename="a.kt", language="kotlin", code="val a = 1", line_count=1)]
    data = GenerateInput(prompt="p", language="java", style="fast", response_language="ko")

    assert build_review_prompt(files, "ko") == build_review_prompt(list(files), "ko")
    assert build_generate_prompt(data) == build_generate_prompt(
        GenerateInput(prompt="p", language="java", style="fast", response_language="ko")
    )


def test_schema_descriptions_match_result_models():
    review_schema = json.loads(REVIEW_OUTPUT_SCHEMA)
    generate_schema = json.loads(GENERATE_OUTPUT_SCHEMA)

    assert set(review_schema) == aliases(ReviewResult)
    assert set(review_schema["issues"][0]) == aliases(ReviewIssue)
    assert set(generate_schema) == aliases(GenerateResult)
