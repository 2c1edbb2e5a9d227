"""Proof Service: attestation generation and verification.

Generation flow:
    1. Reject requests without an escrow id or without condition data.
    2. Derive the circuit identifier from the condition types (order-independent).
    3. Build the witness: condition data + fresh nonce + generation timestamp.
    4. Produce the proof payload and expose only the derived public inputs.

Verification here is a structural self-consistency check (the circuit id
embedded in the proof payload must match the declared one). It stands in for
a real cryptographic verifier: pass a ``CryptographicVerifier`` and every
attestation that passes the structural check is additionally delegated to it.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import hashlib
import json
import secrets
import time
from typing import TYPE_CHECKING, Any

from bitlogic_escrow.config import get_settings
from bitlogic_escrow.domain.conditions import coerce_witness, derive_circuit_id
from bitlogic_escrow.domain.exceptions import InvalidRequestError
from bitlogic_escrow.domain.models import Attestation, ProofRequest, VerificationResult
from bitlogic_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from bitlogic_escrow.domain.conditions import Condition, WitnessData
    from bitlogic_escrow.domain.protocols import CryptographicVerifier

logger = get_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class ProofService:
    """Generates and checks escrow release attestations."""

    def __init__(
        self,
        verifier: CryptographicVerifier | None = None,
        circuit_version: str | None = None,
        cost_estimate: int | None = None,
        clock_ms: Callable[[], int] = _now_ms,
        nonce_factory: Callable[[], str] = lambda: secrets.token_hex(16),
    ) -> None:
        settings = get_settings()
        self._verifier = verifier
        self._circuit_version = circuit_version or settings.proof_circuit_version
        self._cost_estimate = (
            cost_estimate if cost_estimate is not None else settings.verification_cost_estimate
        )
        self._clock_ms = clock_ms
        self._nonce_factory = nonce_factory

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate_proof(
        self,
        escrow_id: str,
        condition_data: WitnessData | Mapping[str, Any] | None,
        conditions: Sequence[Condition] | None = None,
    ) -> Attestation:
        """Generate an attestation for releasing ``escrow_id``.

        Raises:
            InvalidRequestError: If escrow_id or condition_data is empty.
        """
        if not escrow_id:
            raise InvalidRequestError("Escrow ID is required")
        witness = coerce_witness(condition_data)
        if witness.is_empty():
            raise InvalidRequestError("Condition data is required")

        circuit_id = derive_circuit_id(conditions)
        timestamp = self._clock_ms()
        encoded_witness = self._build_witness(witness, timestamp)
        proof = self._create_proof(circuit_id, escrow_id, encoded_witness, timestamp)
        public_inputs = witness.public_inputs()

        logger.info(
            "proof.generated",
            escrow_id=escrow_id,
            circuit_id=circuit_id,
            public_inputs=len(public_inputs),
        )
        return Attestation(
            proof=proof,
            public_inputs=tuple(public_inputs),
            circuit_id=circuit_id,
            timestamp=timestamp,
            escrow_id=escrow_id,
            verified=True,
        )

    async def batch_generate_proofs(self, requests: Sequence[ProofRequest]) -> list[Attestation]:
        """Generate attestations for several requests, preserving order.

        All-or-nothing: the first failing request fails the whole batch.
        """
        logger.info("proof.batch_started", count=len(requests))
        return list(
            await asyncio.gather(
                *(
                    self.generate_proof(r.escrow_id, r.condition_data, r.conditions)
                    for r in requests
                )
            )
        )

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    async def verify_proof(self, attestation: Attestation) -> VerificationResult:
        """Check an attestation; never raises on malformed proofs."""
        payload = self.decode_proof(attestation.proof)
        if payload is None:
            logger.info("proof.undecodable", circuit_id=attestation.circuit_id)
            return VerificationResult(valid=False, error="Proof payload could not be decoded")

        if payload.get("circuit_id") != attestation.circuit_id:
            logger.info(
                "proof.circuit_mismatch",
                declared=attestation.circuit_id,
                embedded=payload.get("circuit_id"),
            )
            return VerificationResult(
                valid=False, error="Embedded circuit id does not match attestation"
            )

        if self._verifier is not None:
            try:
                sound = await self._verifier.verify(attestation)
            except Exception as exc:
                logger.exception("proof.verifier_error", circuit_id=attestation.circuit_id)
                return VerificationResult(valid=False, error=f"Verifier failed: {exc}")
            if not sound:
                return VerificationResult(valid=False, error="Cryptographic verification failed")

        return VerificationResult(valid=True, cost_estimate=self._cost_estimate)

    @staticmethod
    def decode_proof(proof: str) -> dict[str, Any] | None:
        """Decode a proof payload, or None when it is not one of ours."""
        try:
            payload = json.loads(base64.b64decode(proof, validate=True))
        except (binascii.Error, ValueError, TypeError):
            return None
        return payload if isinstance(payload, dict) else None

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build_witness(self, witness: WitnessData, timestamp: int) -> bytes:
        data = {**witness.to_dict(), "generated_at": timestamp, "nonce": self._nonce_factory()}
        return base64.b64encode(json.dumps(data, sort_keys=True, default=str).encode())

    def _create_proof(
        self, circuit_id: str, escrow_id: str, encoded_witness: bytes, timestamp: int
    ) -> str:
        proof_data = {
            "circuit_id": circuit_id,
            "escrow_id": escrow_id,
            "witness_hash": hashlib.sha256(encoded_witness).hexdigest(),
            "timestamp": timestamp,
            "version": self._circuit_version,
        }
        return base64.b64encode(json.dumps(proof_data, sort_keys=True).encode()).decode()
