from __future__ import annotations

import argparse
from pathlib import Path

from accuracy.core.prm_aggregation import STRATEGIES


def _non_negative_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"数値を指定してください: {value}") from exc
    if number < 0:
        raise argparse.ArgumentTypeError(f"0 以上の数値を指定してください: {value}")
    return number


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"整数を指定してください: {value}") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError(f"1 以上の整数を指定してください: {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser("accuracy")
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="ログを JSON 形式で出力",
    )
    parser.add_argument("--verbose", action="store_true", help="DEBUG ログを出力")
    subparsers = parser.add_subparsers(dest="command", required=True)

    budget = subparsers.add_parser("budget", help="難易度に応じた計算予算を割り当てる")
    budget.add_argument("--config", type=Path, help="予算設定 YAML のパス")
    budget.add_argument(
        "--level",
        required=True,
        help="難易度レベル (easy/medium/hard またはカスタム配分名)",
    )
    budget.add_argument(
        "--count",
        type=_positive_int,
        default=1,
        help="連続して割り当てる回数",
    )
    budget.add_argument(
        "--global-limit",
        type=_non_negative_float,
        help="設定ファイルのグローバル上限を上書き",
    )

    prm = subparsers.add_parser("prm", help="ステップスコアを集約する")
    prm.add_argument("scores", nargs="+", type=float, help="ステップスコア")
    prm.add_argument(
        "--strategy",
        choices=sorted(STRATEGIES),
        default="average",
        help="集約方法",
    )
    prm.add_argument("--weights", nargs="+", type=float, help="weighted_average 用の重み")
    prm.add_argument(
        "--normalize-weights",
        action="store_true",
        help="重みを合計 1.0 に正規化してから使う",
    )
    return parser


__all__ = ["build_parser"]
