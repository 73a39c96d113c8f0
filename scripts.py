#!/usr/bin/env python3
"""Developer commands: ``python scripts.py start|lint|format-code|test``."""

import subprocess
import sys

SOURCES = ["vanpool_booking/", "tests/"]


def run(*commands):
    """Run each command in turn and return the first non-zero exit code."""
    for command in commands:
        code = subprocess.run(command).returncode
        if code:
            return code
    return 0


def start():
    return run(["uvicorn", "vanpool_booking.main:app", "--host", "0.0.0.0", "--port", "3000", "--reload"])


def lint():
    return run(["black", "--check", *SOURCES], ["mypy", "vanpool_booking/"])


def format_code():
    return run(["black", *SOURCES])


def test():
    return run(["pytest", "tests/"])


COMMANDS = {
    "start": start,
    "lint": lint,
    "format-code": format_code,
    "test": test,
}


def main(argv):
    if len(argv) != 1 or argv[0] not in COMMANDS:
        print(f"Usage: python scripts.py {{{'|'.join(COMMANDS)}}}", file=sys.stderr)
        return 2
    return COMMANDS[argv[0]]()


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
