"""組み込み検証器。"""
from __future__ import annotations

from .deterministic import DeterministicVerifier
from .prm import PrmVerifier
from .registry import resolve_verifier, VERIFIER_FACTORIES, VerifierFactory

__all__ = [
    "DeterministicVerifier",
    "PrmVerifier",
    "VERIFIER_FACTORIES",
    "VerifierFactory",
    "resolve_verifier",
]
