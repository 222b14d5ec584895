"""Command-line verification of personal-message signatures."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .logging_pipeline import configure_structured_logging, shutdown_listeners
from .settings import get_settings
from .verify import verify_signature

LOGGER = logging.getLogger("quorum_sign")


def _read_stdin() -> str | None:
    """Read JSON payload from stdin if available."""
    try:
        if sys.stdin and not sys.stdin.isatty():
            return sys.stdin.read()
    except IOError as e:
        print(f"Error reading stdin: {e}", file=sys.stderr)
    return None


def _load_json(path: str | None, stdin_payload: str | None) -> dict[str, object]:
    """Load JSON data from file or stdin."""
    if path:
        text = Path(path).read_text(encoding="utf-8")
        return _parse_json_dict(text)
    if stdin_payload:
        return _parse_json_dict(stdin_payload)
    raise ValueError("No input provided. Use --input or pipe JSON via stdin.")


def _parse_json_dict(payload: str) -> dict[str, object]:
    """Parse a JSON string and ensure the result is a dictionary."""

    data = json.loads(payload)
    if not isinstance(data, dict):
        raise ValueError("Input JSON must be an object at the top level.")
    return {str(key): value for key, value in data.items()}


def _require_str(data: dict[str, object], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"Missing '{key}' in input.")
    return value


def main(argv: list[str] | None = None) -> int:
    """Verify a signed approval message."""
    parser = argparse.ArgumentParser(
        description="Verify a personal-sign signature over an approval message."
    )
    parser.add_argument(
        "--input",
        "-i",
        help="Path to a JSON file with message, signature and signer. Reads stdin if omitted.",
    )
    parser.add_argument(
        "--signer",
        "-s",
        help="Expected signer address. Overrides 'signer' in the payload.",
    )
    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Quiet mode: suppress output, just return exit code.",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit structured JSON logs on stderr.",
    )

    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:  # pragma: no cover - controlled via tests
        exit_code = int(exc.code) if isinstance(exc.code, int) else 1
        return 0 if exit_code == 0 else 1

    listeners = []
    if args.log_json:
        listeners.append(
            configure_structured_logging(LOGGER, level=get_settings().log_level_number)
        )

    try:
        stdin_payload = _read_stdin()
        data = _load_json(args.input, stdin_payload)
        message = _require_str(data, "message")
        signature = _require_str(data, "signature")
        signer = args.signer or _require_str(data, "signer")

        result = verify_signature(message, signature, signer)
        LOGGER.info(
            "Verified signature",
            extra={"signer": signer, "valid": result.is_valid, "error": result.error},
        )

        if not args.quiet:
            print(
                json.dumps(
                    {
                        "valid": result.is_valid,
                        "recovered_signer": result.recovered_signer,
                        "error": result.error,
                    },
                    separators=(",", ":"),
                )
            )

        return 0 if result.is_valid else 1

    except Exception as exc:
        if not args.quiet:
            print(str(exc), file=sys.stderr)
        return 1
    finally:
        shutdown_listeners(listeners)


if __name__ == "__main__":
    raise SystemExit(main())
