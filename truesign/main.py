"""
Command-line entry point: submit one introduction document.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from pydantic import ValidationError

from .client import SubmissionClient
from .config import Configuration
from .exceptions import SubmissionError
from .logging_utils import get_logger, operation_context, setup_logging
from .models import ApiError, AuthFailure, IntroductionDocument, Success

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_AUTH_FAILURE = 2
EXIT_API_ERROR = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="truesign",
        description="Submit product introduction documents to the TrueSign API.",
    )
    parser.add_argument("--config", help="Path to a YAML config file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    submit = subparsers.add_parser("submit", help="Submit one document")
    submit.add_argument("document", type=Path, help="Document JSON file")
    submit.add_argument(
        "--signature-file",
        type=Path,
        required=True,
        help="File holding the detached signature",
    )
    return parser


def load_document(path: Path) -> IntroductionDocument:
    """Read and validate a document in wire format."""
    try:
        return IntroductionDocument.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
        raise SubmissionError(f"Cannot load document {path}: {e}") from e


def run_submit(config: Configuration, document_path: Path, signature_path: Path) -> int:
    document = load_document(document_path)
    try:
        signature = signature_path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        raise SubmissionError(f"Cannot read signature {signature_path}: {e}") from e

    api_config = config.get_api_config()
    with (
        operation_context("cli_submit", context={"document": str(document_path)}),
        SubmissionClient(
            access_token=config.access_token,
            rate_limit=config.get_rate_limit_config(),
            base_url=api_config["base_url"],
            timeout=api_config["timeout"],
        ) as client,
    ):
        result = client.submit(document, signature)

    match result:
        case Success(value=value):
            print(value)
            return EXIT_OK
        case AuthFailure():
            print("Authorization failed: refresh the access token", file=sys.stderr)
            return EXIT_AUTH_FAILURE
        case ApiError(code=code, error_message=message, description=description):
            print(f"API error {code}: {message} - {description}", file=sys.stderr)
            return EXIT_API_ERROR
    return EXIT_FAILURE


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = Configuration(args.config)
        setup_logging(config.get_logging_config().get("level", "INFO"))
        return run_submit(config, args.document, args.signature_file)
    except SubmissionError as e:
        logger.error("Submission failed", error_type=type(e).__name__)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
