from codedesk.core.exceptions import RequestValidationError
from codedesk.schemas.review import MAX_REVIEW_CHARS, MAX_REVIEW_FILES, ReviewRequest
from codedesk.services.prompts import ReviewFile

LANG_MAP = {
    ".py": "python",
    ".js": "javascript",
    ".ts": "typescript",
    ".jsx": "javascript",
    ".tsx": "typescript",
    ".java": "java",
    ".kt": "kotlin",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".c": "c",
    ".go": "go",
    ".rs": "rust",
    ".rb": "ruby",
    ".php": "php",
}

# first extension listed for each language wins
EXTENSION_MAP = {language: ext for ext, language in reversed(list(LANG_MAP.items()))}

DEFAULT_FILENAME = "snippet.txt"
DEFAULT_LANGUAGE = "plaintext"


def count_lines(code: str) -> int:
    normalized = code.replace("\r\n", "\n")
    return len(normalized.split("\n")) if normalized else 0


def infer_language(filename: str) -> str:
    name = filename.strip().lower()
    if "." not in name:
        return DEFAULT_LANGUAGE
    return LANG_MAP.get(f".{name.rpartition('.')[2]}", DEFAULT_LANGUAGE)


def default_filename(language: str | None) -> str:
    ext = EXTENSION_MAP.get((language or "").lower())
    return f"snippet{ext}" if ext else DEFAULT_FILENAME


def resolve_file(code: str, filename: str | None, language: str | None) -> ReviewFile:
    resolved_name = filename or default_filename(language)
    resolved_language = language.lower() if language else infer_language(resolved_name)
    return ReviewFile(
        filename=resolved_name,
        language=resolved_language,
        code=code,
        line_count=count_lines(code),
    )


def collect_review_files(request: ReviewRequest) -> list[ReviewFile]:
    """Turn the inline and ``files`` forms into one ordered list, inline code first."""
    files: list[ReviewFile] = []
    if request.code:
        files.append(resolve_file(request.code, request.filename, request.language))
    for item in request.files or []:
        files.append(resolve_file(item.code, item.filename, item.language))

    if not files:
        raise RequestValidationError(["code: `code` or `files` is required"])

    problems = []
    if len(files) > MAX_REVIEW_FILES:
        problems.append(f"files: at most {MAX_REVIEW_FILES} files can be reviewed at once (got {len(files)})")
    total_chars = sum(len(item.code) for item in files)
    if total_chars > MAX_REVIEW_CHARS:
        problems.append(
            f"files: total code size must not exceed {MAX_REVIEW_CHARS} characters (got {total_chars})"
        )
    if problems:
        raise RequestValidationError(problems)
    return files
