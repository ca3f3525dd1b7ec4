"""組み込み検証器のレジストリ。"""
from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from ...errors import ErrorReason, VerificationConfigError
from .deterministic import DeterministicVerifier
from .prm import PrmVerifier

__all__ = ["VerifierFactory", "VERIFIER_FACTORIES", "resolve_verifier"]

VerifierFactory = Callable[..., Any]

VERIFIER_FACTORIES: dict[str, VerifierFactory] = {
    "deterministic": DeterministicVerifier,
    "prm": PrmVerifier,
}


def resolve_verifier(spec: Any, config: Mapping[str, Any] | None = None) -> Any:
    """名前・クラス/ファクトリ・インスタンスのいずれかから検証器を得る。"""

    options = dict(config or {})
    if isinstance(spec, str):
        factory = VERIFIER_FACTORIES.get(spec.strip().lower())
        if factory is None:
            raise VerificationConfigError(f"unknown verifier: {spec}", reason=ErrorReason.INVALID_VERIFIERS_CONFIG)
        return factory(**options)
    if not isinstance(spec, type) and callable(getattr(spec, "verify", None)):
        return spec
    if callable(spec):
        verifier = spec(**options)
        if not callable(getattr(verifier, "verify", None)):
            raise VerificationConfigError(
                f"{spec!r} did not produce a verifier", reason=ErrorReason.INVALID_VERIFIERS_CONFIG
            )
        return verifier
    raise VerificationConfigError(f"unsupported verifier spec: {spec!r}", reason=ErrorReason.INVALID_VERIFIERS_CONFIG)
