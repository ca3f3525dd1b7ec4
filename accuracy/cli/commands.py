from __future__ import annotations

from argparse import Namespace
from dataclasses import replace
import json
import sys
from typing import TextIO

from accuracy.core import prm_aggregation
from accuracy.core.budgets import ComputeBudgeter
from accuracy.core.errors import AccuracyError
from accuracy.core.loader import load_budgeter

from .utils import _exit_code_for, EXIT_INPUT_ERROR, EXIT_OK, LOGGER


def _write_json(payload: object, stream: TextIO) -> None:
    stream.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")


def run_budget(args: Namespace, *, stream: TextIO | None = None) -> int:
    out = stream or sys.stdout
    try:
        budgeter = load_budgeter(args.config) if args.config else ComputeBudgeter()
        if args.global_limit is not None:
            budgeter = replace(budgeter, global_limit=args.global_limit)
        allocations = []
        for _ in range(args.count):
            budget, budgeter = budgeter.allocate(args.level)
            allocations.append(budget.to_map())
    except AccuracyError as exc:
        LOGGER.error("budget allocation failed: %s", exc)
        _write_json({"error": exc.reason.value, "message": str(exc)}, out)
        return _exit_code_for(exc)
    _write_json({"allocations": allocations, "usage": budgeter.get_usage_stats().to_map()}, out)
    return EXIT_OK


def run_prm(args: Namespace, *, stream: TextIO | None = None) -> int:
    out = stream or sys.stdout
    weights = args.weights
    if weights is not None and args.normalize_weights:
        weights = prm_aggregation.normalize_weights(weights)
    try:
        value = prm_aggregation.aggregate(args.scores, args.strategy, weights=weights)
    except ValueError as exc:
        LOGGER.error("step score aggregation failed: %s", exc)
        _write_json({"error": "invalid_input", "message": str(exc)}, out)
        return EXIT_INPUT_ERROR
    _write_json({"strategy": args.strategy, "score": value}, out)
    return EXIT_OK


__all__ = ["run_budget", "run_prm"]
