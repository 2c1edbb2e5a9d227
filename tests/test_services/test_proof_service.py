"""Tests for attestation generation and verification."""

from __future__ import annotations

import base64
import json
from dataclasses import replace

import pytest

from bitlogic_escrow.domain.conditions import GENERIC_CIRCUIT_ID, hash_lock, time_lock
from bitlogic_escrow.domain.exceptions import InvalidRequestError
from bitlogic_escrow.domain.models import ProofRequest
from bitlogic_escrow.services.proof_service import ProofService

WITNESS = {
    "current_time": "2026-01-01T12:00:00Z",
    "preimage": "secret",
    "timestamp": 1767268800,
    "beneficiary": "addr1",
    "amount": "0.5",
}


class AllowVerifier:
    def __init__(self, answer: bool) -> None:
        self.answer = answer
        self.seen = []

    async def verify(self, attestation) -> bool:
        self.seen.append(attestation)
        return self.answer


class BrokenVerifier:
    async def verify(self, attestation) -> bool:
        raise RuntimeError("verifying key missing")


class TestGenerateProof:
    @pytest.mark.asyncio
    async def test_rejects_empty_escrow_id(self, proof_service: ProofService) -> None:
        with pytest.raises(InvalidRequestError, match="Escrow ID"):
            await proof_service.generate_proof("", WITNESS)

    @pytest.mark.asyncio
    async def test_rejects_empty_condition_data(self, proof_service: ProofService) -> None:
        with pytest.raises(InvalidRequestError, match="Condition data"):
            await proof_service.generate_proof("escrow_1", {})
        with pytest.raises(InvalidRequestError):
            await proof_service.generate_proof("escrow_1", None)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "condition_data", [{"current_time": "yesterday"}, {"amount": "lots"}]
    )
    async def test_rejects_malformed_condition_data(
        self, proof_service: ProofService, condition_data: dict
    ) -> None:
        with pytest.raises(InvalidRequestError):
            await proof_service.generate_proof("escrow_1", condition_data)

    @pytest.mark.asyncio
    async def test_attestation_fields(self, proof_service: ProofService, clock) -> None:
        conditions = [time_lock("2026-01-01T00:00:00Z"), hash_lock("ab" * 32)]
        attestation = await proof_service.generate_proof("escrow_1", WITNESS, conditions)

        assert attestation.escrow_id == "escrow_1"
        assert attestation.circuit_id == "circuit_hash_lock_time_lock"
        assert attestation.timestamp == clock.ms()
        assert attestation.public_inputs == ("1767268800", "addr1", "0.5")
        assert attestation.verified is True

    @pytest.mark.asyncio
    async def test_generic_circuit_without_conditions(self, proof_service: ProofService) -> None:
        attestation = await proof_service.generate_proof("escrow_1", WITNESS)
        assert attestation.circuit_id == GENERIC_CIRCUIT_ID

    @pytest.mark.asyncio
    async def test_witness_not_exposed(self, proof_service: ProofService) -> None:
        attestation = await proof_service.generate_proof("escrow_1", WITNESS)
        payload = ProofService.decode_proof(attestation.proof)

        assert "secret" not in attestation.proof
        assert "secret" not in json.dumps(payload)
        assert set(payload) == {"circuit_id", "escrow_id", "witness_hash", "timestamp", "version"}
        assert payload["version"] == "1.0.0"

    @pytest.mark.asyncio
    async def test_fresh_nonce_per_proof(self, proof_service: ProofService) -> None:
        first = await proof_service.generate_proof("escrow_1", WITNESS)
        second = await proof_service.generate_proof("escrow_1", WITNESS)
        assert first.proof != second.proof


class TestBatchGenerate:
    @pytest.mark.asyncio
    async def test_preserves_order(self, proof_service: ProofService) -> None:
        requests = [
            ProofRequest(escrow_id=f"escrow_{i}", condition_data={"preimage": str(i)})
            for i in range(5)
        ]
        attestations = await proof_service.batch_generate_proofs(requests)
        assert [a.escrow_id for a in attestations] == [f"escrow_{i}" for i in range(5)]

    @pytest.mark.asyncio
    async def test_one_bad_request_fails_the_batch(self, proof_service: ProofService) -> None:
        requests = [
            ProofRequest(escrow_id="escrow_1", condition_data={"preimage": "x"}),
            ProofRequest(escrow_id="", condition_data={"preimage": "y"}),
        ]
        with pytest.raises(InvalidRequestError):
            await proof_service.batch_generate_proofs(requests)


class TestVerifyProof:
    @pytest.mark.asyncio
    async def test_generated_proof_is_valid(self, proof_service: ProofService) -> None:
        attestation = await proof_service.generate_proof("escrow_1", WITNESS)
        result = await proof_service.verify_proof(attestation)
        assert result.valid
        assert result.error is None
        assert result.cost_estimate == 250000

    @pytest.mark.asyncio
    async def test_declared_circuit_mismatch(self, proof_service: ProofService) -> None:
        attestation = await proof_service.generate_proof("escrow_1", WITNESS)
        forged = replace(attestation, circuit_id="circuit_custom")
        result = await proof_service.verify_proof(forged)
        assert not result.valid
        assert "circuit" in result.error

    @pytest.mark.asyncio
    async def test_embedded_circuit_tampered(self, proof_service: ProofService) -> None:
        attestation = await proof_service.generate_proof("escrow_1", WITNESS)
        payload = ProofService.decode_proof(attestation.proof)
        payload["circuit_id"] = "circuit_custom"
        reencoded = base64.b64encode(json.dumps(payload).encode()).decode()
        result = await proof_service.verify_proof(replace(attestation, proof=reencoded))
        assert not result.valid

    @pytest.mark.asyncio
    @pytest.mark.parametrize("proof", ["", "not base64!!", base64.b64encode(b"[1, 2]").decode()])
    async def test_undecodable_proof(self, proof_service: ProofService, proof: str) -> None:
        attestation = await proof_service.generate_proof("escrow_1", WITNESS)
        result = await proof_service.verify_proof(replace(attestation, proof=proof))
        assert not result.valid

    @pytest.mark.asyncio
    async def test_external_verifier_consulted(self, clock) -> None:
        verifier = AllowVerifier(answer=False)
        service = ProofService(verifier=verifier, clock_ms=clock.ms)
        attestation = await service.generate_proof("escrow_1", WITNESS)

        result = await service.verify_proof(attestation)

        assert not result.valid
        assert verifier.seen == [attestation]

    @pytest.mark.asyncio
    async def test_external_verifier_accepts(self, clock) -> None:
        service = ProofService(verifier=AllowVerifier(answer=True), clock_ms=clock.ms)
        attestation = await service.generate_proof("escrow_1", WITNESS)
        assert (await service.verify_proof(attestation)).valid

    @pytest.mark.asyncio
    async def test_verifier_error_is_a_rejection(self, clock) -> None:
        service = ProofService(verifier=BrokenVerifier(), clock_ms=clock.ms)
        attestation = await service.generate_proof("escrow_1", WITNESS)
        result = await service.verify_proof(attestation)
        assert not result.valid
        assert "verifying key missing" in result.error

    @pytest.mark.asyncio
    async def test_verifier_skipped_for_malformed_proof(self, clock) -> None:
        verifier = AllowVerifier(answer=True)
        service = ProofService(verifier=verifier, clock_ms=clock.ms)
        attestation = await service.generate_proof("escrow_1", WITNESS)
        await service.verify_proof(replace(attestation, proof="garbage"))
        assert verifier.seen == []
