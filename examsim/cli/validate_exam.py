from __future__ import annotations

import argparse
import sys
from pathlib import Path

from ..data.schemas import Exam
from ..utils.validation import (
    ExamParseError,
    ExamSchemaValidator,
    check_business_rules,
    parse_exam_json,
    validate_exam,
)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_PARSE_ERROR = 3
EXIT_SCHEMA_ERROR = 4
EXIT_RULE_ERROR = 5

_TAG = "[validate_exam]"


def run_validation(path: Path, strict: bool = False, all_rules: bool = False) -> int:
    """Validate one exam file and print actionable feedback.

    Returns:
        Process exit code
    """
    try:
        raw = parse_exam_json(path.read_bytes())
    except FileNotFoundError:
        print(f"{_TAG} Error: exam file not found: {path}")
        return EXIT_ERROR
    except OSError as e:
        print(f"{_TAG} Error: cannot read {path}: {e}")
        return EXIT_ERROR
    except ExamParseError as e:
        print(f"{_TAG} Invalid JSON. Please check the file's syntax.")
        print(f"{_TAG} {e}")
        return EXIT_PARSE_ERROR

    result = validate_exam(raw, ExamSchemaValidator(allow_extra_fields=not strict))
    if result.errors:
        # Dedicated exit code for schema failures to distinguish from other errors
        print(f"{_TAG} Schema validation failed with {len(result.errors)} errors:")
        for issue in result.errors:
            print(f"  {issue}")
        return EXIT_SCHEMA_ERROR

    if result.business_error is not None:
        violations = check_business_rules(Exam.from_dict(raw)) if all_rules else [result.business_error]
        print(f"{_TAG} Business rule check failed.")
        for violation in violations:
            print(f"  {violation}")
        return EXIT_RULE_ERROR

    assert result.exam is not None
    print(f"{_TAG} OK: {path} ({len(result.exam.questions)} questions)")
    return EXIT_OK


def add_arguments(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("exam", help="Path to exam JSON file")
    ap.add_argument(
        "--strict",
        action="store_true",
        help="Reject properties the exam format does not define",
    )
    ap.add_argument(
        "--all-rules",
        action="store_true",
        help="List every multiple-choice question without options, not just the first",
    )


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(
        prog="python -m examsim.cli.validate_exam",
        description=(
            "Validate an exam JSON file before uploading it.\n"
            "On failure, prints every schema problem with its location."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    add_arguments(ap)
    args = ap.parse_args(argv)
    return run_validation(Path(args.exam), strict=args.strict, all_rules=args.all_rules)


if __name__ == "__main__":
    sys.exit(main())
