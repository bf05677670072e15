from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from examsim.analysis.aggregate import domain_breakdown, results_frame
from examsim.analysis.scoring import format_duration, score_attempt
from examsim.cli.validate_exam import (
    EXIT_ERROR,
    EXIT_OK,
    EXIT_PARSE_ERROR,
    EXIT_RULE_ERROR,
    EXIT_SCHEMA_ERROR,
    add_arguments as add_validate_arguments,
    run_validation,
)
from examsim.config import AppConfig, default_app_config
from examsim.data.langtext import resolve, resolve_options, resolve_pair
from examsim.data.loader import load_exam
from examsim.data.schemas import Attempt, Exam
from examsim.export import EXPORT_FORMATS, write_export
from examsim.session import SessionManager
from examsim.store import ExamLibrary, FileBlobStore, StorageError
from examsim.utils.io import read_json
from examsim.utils.logging import setup_logging
from examsim.utils.validation import BusinessRuleError, ExamParseError, StructuralValidationError


def _load_config(path: str | None) -> AppConfig:
    if path is None:
        return default_app_config()
    return AppConfig.from_json(path)


def _load_answers(path: str) -> dict:
    payload = read_json(path)
    if not isinstance(payload, dict):
        raise ValueError("answers file must contain a JSON object of question id -> answer")
    return {str(k): v for k, v in payload.items()}


def _resolve_exam(ref: str, library: ExamLibrary) -> Exam | None:
    """An exam reference is a stored exam id or a path to an exam file."""
    exam = library.get_exam(ref)
    if exam is not None:
        return exam
    if Path(ref).is_file():
        return load_exam(ref)
    return None


def _print_exam_line(exam: Exam) -> None:
    visibility = "public" if exam.is_public else "private"
    owner = f" owner={exam.user_id}" if exam.user_id else ""
    print(f"{exam.id}  {exam.title}  ({len(exam.questions)} questions) [{visibility}]{owner}")


def _show_exam(exam: Exam, lang: str | None) -> None:
    primary = lang or exam.primary_language
    secondary = exam.secondary_language if lang is None else None
    print(exam.title)
    for i, q in enumerate(exam.questions):
        main, sub = resolve_pair(q.question, primary, secondary)
        domain = f" [{q.domain}]" if q.domain else ""
        print(f"\nQuestion {i + 1} of {len(exam.questions)}{domain}: {main}")
        if sub:
            print(f"    {sub}")
        if q.is_multiple_choice:
            for j, option in enumerate(resolve_options(q.options, primary, secondary)):
                opt_main, opt_sub = resolve_pair(option, primary, secondary)
                line = f"  {chr(ord('A') + j) if j < 26 else j + 1}. {opt_main}"
                print(line + (f" / {opt_sub}" if opt_sub else ""))
        if q.explanation is not None:
            print(f"  Explanation: {resolve(q.explanation, primary, secondary)}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="examsim",
        description="examsim CLI - validate, store, score and export exams",
        epilog="""Examples:
  # Check an exam file without storing it
  examsim validate exams/geography.json

  # Store an exam and list the library
  examsim upload exams/geography.json --public
  examsim list

  # Score answers against a stored exam (or an exam file) and export reports
  examsim score 1718000000000 --answers answers.json --duration-ms 754000 --export both
""",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", "-c", default=None, help="Configuration file path (default: built-in defaults)")
    parser.add_argument("--data-dir", default=None, help="Override the storage directory")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    validate_parser = subparsers.add_parser("validate", help="Validate an exam file")
    add_validate_arguments(validate_parser)

    upload_parser = subparsers.add_parser("upload", help="Validate and store an exam file")
    upload_parser.add_argument("path", help="Path to exam JSON file")
    upload_parser.add_argument("--public", action="store_true", help="Make the exam visible to every user")

    list_parser = subparsers.add_parser("list", help="List stored exams")
    scope = list_parser.add_mutually_exclusive_group()
    scope.add_argument("--public", action="store_true", help="Only public exams")
    scope.add_argument("--mine", action="store_true", help="Only exams owned by the logged-in user")

    show_parser = subparsers.add_parser("show", help="Print an exam's questions and options")
    show_parser.add_argument("exam", help="Stored exam id or exam file path")
    show_parser.add_argument("--lang", default=None, help="Display language (default: exam's primary)")

    delete_parser = subparsers.add_parser("delete", help="Delete a stored exam")
    delete_parser.add_argument("exam_id", help="Stored exam id")

    score_parser = subparsers.add_parser("score", help="Score answers and optionally export reports")
    score_parser.add_argument("exam", help="Stored exam id or exam file path")
    score_parser.add_argument("--answers", "-a", required=True, help="JSON object mapping question id to answer")
    score_parser.add_argument("--duration-ms", type=int, default=0, help="Time spent on the attempt in milliseconds")
    score_parser.add_argument("--export", choices=["json", "csv", "both"], default=None, help="Write result report(s)")
    score_parser.add_argument("--output-dir", "-o", default=None, help="Directory for exported reports")
    score_parser.add_argument("--by-domain", action="store_true", help="Also print a per-domain breakdown")

    register_parser = subparsers.add_parser("register", help="Create a local account and log in")
    register_parser.add_argument("username")
    login_parser = subparsers.add_parser("login", help="Log in to a local account")
    login_parser.add_argument("username")
    subparsers.add_parser("logout", help="Log out")
    subparsers.add_parser("whoami", help="Show the logged-in user")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_ERROR

    try:
        cfg = _load_config(args.config)
    except FileNotFoundError:
        print(f"Error: Config file '{args.config}' not found")
        return EXIT_ERROR
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON format in '{args.config}': {e}")
        return EXIT_ERROR
    except TypeError as e:
        print(f"Error: Unknown setting in '{args.config}': {e}")
        return EXIT_ERROR

    if args.data_dir:
        cfg.storage.data_dir = args.data_dir
    logger = setup_logging(cfg.logging.log_dir, cfg.logging.filename, cfg.logging.level, cfg.logging.structured)

    if args.command == "validate":
        return run_validation(Path(args.exam), strict=args.strict, all_rules=args.all_rules)

    store = FileBlobStore(cfg.storage.data_dir)
    library = ExamLibrary(store, key=cfg.storage.exams_key)
    sessions = SessionManager(
        store,
        users_key=cfg.storage.users_key,
        current_user_key=cfg.storage.current_user_key,
    )

    try:
        if args.command == "upload":
            try:
                text = Path(args.path).read_bytes()
            except FileNotFoundError:
                print(f"Error: Exam file '{args.path}' not found")
                logger.error("FileNotFoundError: Exam file '%s' not found", args.path)
                return EXIT_ERROR
            try:
                exam = library.upload(text, owner=sessions.current_user(), public=args.public)
            except ExamParseError as e:
                print(f"Invalid JSON: the file is not a valid JSON file. {e}")
                return EXIT_PARSE_ERROR
            except StructuralValidationError as e:
                print("Invalid exam file structure. Please correct the following errors:")
                for issue in e.issues:
                    print(f"  {issue}")
                return EXIT_SCHEMA_ERROR
            except BusinessRuleError as e:
                print(f"Invalid question: {e}")
                return EXIT_RULE_ERROR
            print(f"Exam uploaded and saved: {exam.id}  {exam.title} ({len(exam.questions)} questions)")
            return EXIT_OK

        elif args.command == "list":
            if args.public:
                exams = library.public_exams()
            elif args.mine:
                user = sessions.current_user()
                if user is None:
                    print("Error: not logged in")
                    return EXIT_ERROR
                exams = library.exams_for_user(user.id)
            else:
                exams = library.list_exams()
            if library.last_error is not None:
                print(f"Warning: stored exams could not be read: {library.last_error}", file=sys.stderr)
            if not exams:
                print("No exams found.")
            for exam in exams:
                _print_exam_line(exam)
            return EXIT_OK

        elif args.command == "show":
            exam = _resolve_exam(args.exam, library)
            if exam is None:
                print(f"Error: exam '{args.exam}' not found")
                return EXIT_ERROR
            _show_exam(exam, args.lang)
            return EXIT_OK

        elif args.command == "delete":
            if library.delete_exam(args.exam_id):
                print(f"Deleted exam {args.exam_id}")
                return EXIT_OK
            print(f"Error: exam '{args.exam_id}' not found")
            return EXIT_ERROR

        elif args.command == "score":
            exam = _resolve_exam(args.exam, library)
            if exam is None:
                print(f"Error: exam '{args.exam}' not found")
                return EXIT_ERROR
            try:
                answers = _load_answers(args.answers)
            except FileNotFoundError:
                print(f"Error: Answers file '{args.answers}' not found")
                return EXIT_ERROR
            except (json.JSONDecodeError, ValueError) as e:
                print(f"Error: Invalid answers file '{args.answers}': {e}")
                return EXIT_ERROR

            attempt = Attempt(exam=exam, answers=answers, duration_ms=args.duration_ms)
            result = score_attempt(attempt.exam, attempt.answers)
            print(f"{exam.title} - Results")
            print(f"Time taken: {format_duration(attempt.duration_ms)}")
            if result.scored:
                print(f"Your Score: {result.correct} / {result.total}")
            else:
                print("Score: Not Scored (answer key not included in this exam version)")

            frame = results_frame(exam, attempt.answers, result)
            print()
            print(frame.drop(columns=["scorable"]).to_string(index=False))
            if args.by_domain:
                print()
                print(domain_breakdown(frame).to_string(index=False))

            if args.export:
                formats = list(EXPORT_FORMATS) if args.export == "both" else [args.export]
                output_dir = args.output_dir or cfg.export.output_dir
                for fmt in formats:
                    path = write_export(
                        output_dir, exam, attempt.answers, result, attempt.duration_ms, fmt=fmt
                    )
                    print(f"Saved {fmt.upper()} report: {path}")
            logger.info(
                "Scored attempt on '%s': %s",
                exam.title,
                result.label,
                extra={"exam_id": exam.id, "duration_ms": attempt.duration_ms},
            )
            return EXIT_OK

        elif args.command == "register":
            user = sessions.register(args.username)
            if user is None:
                print(f"Error: user '{args.username}' already exists")
                return EXIT_ERROR
            print(f"Registered and logged in as {user.username} ({user.id})")
            return EXIT_OK

        elif args.command == "login":
            user = sessions.login(args.username)
            if user is None:
                print(f"Error: no user named '{args.username}'")
                return EXIT_ERROR
            print(f"Logged in as {user.username}")
            return EXIT_OK

        elif args.command == "logout":
            sessions.logout()
            print("Logged out")
            return EXIT_OK

        elif args.command == "whoami":
            user = sessions.current_user()
            print(user.username if user else "Not logged in")
            return EXIT_OK

    except StorageError as e:
        print(f"Storage error: {e}")
        logger.error("StorageError: %s", e, exc_info=True)
        return EXIT_ERROR
    # Raised when show/score is given an exam file path
    except ExamParseError as e:
        print(f"Error: invalid exam file: {e}")
        return EXIT_PARSE_ERROR
    except StructuralValidationError as e:
        print(f"Error: invalid exam file: {e}")
        return EXIT_SCHEMA_ERROR
    except BusinessRuleError as e:
        print(f"Error: invalid exam file: {e}")
        return EXIT_RULE_ERROR
    except ValueError as e:
        print(f"Error: {e}")
        return EXIT_ERROR

    parser.print_help()
    return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
