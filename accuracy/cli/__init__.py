from __future__ import annotations

import sys
from typing import List, Optional

from .args import build_parser
from .commands import run_budget, run_prm
from .utils import (
    _coerce_exit_code,
    _configure_logging,
    EXIT_BUDGET_ERROR,
    EXIT_INPUT_ERROR,
    EXIT_OK,
    EXIT_RUNTIME_ERROR,
)

__all__ = [
    "EXIT_BUDGET_ERROR",
    "EXIT_INPUT_ERROR",
    "EXIT_OK",
    "EXIT_RUNTIME_ERROR",
    "main",
    "run_budget",
    "run_prm",
]


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(list(argv) if argv is not None else sys.argv[1:])
    except SystemExit as exc:
        return _coerce_exit_code(exc.code if isinstance(exc.code, int) else None)
    _configure_logging(args.json_logs, verbose=args.verbose)
    if args.command == "budget":
        return run_budget(args)
    return run_prm(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
