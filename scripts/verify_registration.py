"""Verify the fido-u2f attestation of a saved WebAuthn registration response."""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import List, NoReturn, Optional

from fidou2f import InvalidAttestation, verify_attestation

EXIT_VALID = 0
EXIT_INVALID_SIGNATURE = 1
EXIT_ERROR = 2

LOG_LEVEL_ENV = "FIDOU2F_LOG_LEVEL"


def _configure_logging(verbose: bool = False) -> logging.Logger:
    if verbose:
        level = logging.DEBUG
    else:
        level_name = os.environ.get(LOG_LEVEL_ENV, "INFO").strip().upper()
        level = logging.getLevelName(level_name)
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return logging.getLogger("verify_registration")


def _load_response(path: str) -> dict:
    if path == "-":
        return json.load(sys.stdin)
    with open(path, "r", encoding="utf-8") as fh:
        return json.load(fh)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Verify the fido-u2f attestation of a registration response"
    )
    parser.add_argument(
        "response",
        help="JSON file holding the registration response, or - for stdin",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    args = parser.parse_args(argv)

    logger = _configure_logging(args.verbose)

    try:
        response = _load_response(args.response)
    except (OSError, ValueError) as exc:
        logger.error("Failed to read registration response: %s", exc)
        return EXIT_ERROR

    try:
        valid = verify_attestation(response)
    except InvalidAttestation as exc:
        logger.error("Attestation rejected (%s): %s", type(exc).__name__, exc)
        return EXIT_ERROR

    if not valid:
        logger.error("Attestation signature is INVALID.")
        return EXIT_INVALID_SIGNATURE

    logger.info("Attestation signature is valid.")
    return EXIT_VALID


def run() -> NoReturn:
    sys.exit(main())


if __name__ == "__main__":  # pragma: no cover - CLI execution
    run()
