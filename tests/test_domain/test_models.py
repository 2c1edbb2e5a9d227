"""Tests for escrow domain records and action templates."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from bitlogic_escrow.domain.conditions import hash_lock, time_lock
from bitlogic_escrow.domain.enums import ActionStatus, EscrowStatus
from bitlogic_escrow.domain.exceptions import InvalidRequestError
from bitlogic_escrow.domain.models import (
    ZERO_ADDRESS,
    ActionDescriptor,
    ActionResult,
    Attestation,
    Escrow,
    EscrowParams,
    LockedFunds,
    contract_call,
    execute_proposal,
    mint_nft,
    release_tokens,
    to_decimal,
)

CREATED = datetime(2026, 1, 1, tzinfo=UTC)


def _escrow(**overrides) -> Escrow:
    fields = {
        "id": "escrow_abc",
        "amount": Decimal("0.5"),
        "amount_units": 50_000_000,
        "beneficiary": "addr1",
        "conditions": (time_lock(CREATED), hash_lock("ab" * 32)),
        "timeout": 3600,
        "lock": LockedFunds(txid="tx_1", vout=0, value=50_000_000, script_pubkey="script"),
        "script_hash": "scripthash_00",
        "circuit_id": "circuit_hash_lock_time_lock",
        "created_at": CREATED,
        "status": EscrowStatus.ACTIVE,
    }
    fields.update(overrides)
    return Escrow(**fields)


class TestToDecimal:
    def test_float_goes_through_string(self) -> None:
        assert to_decimal(0.1) == Decimal("0.1")

    def test_decimal_passthrough(self) -> None:
        value = Decimal("1.23")
        assert to_decimal(value) is value

    def test_garbage_rejected(self) -> None:
        with pytest.raises(InvalidRequestError):
            to_decimal("lots")


class TestEscrowParams:
    def test_amount_coerced(self) -> None:
        params = EscrowParams(amount="0.5", beneficiary="addr1", conditions=[time_lock(CREATED)])
        assert params.amount == Decimal("0.5")
        assert isinstance(params.conditions, tuple)

    def test_missing_conditions_become_empty(self) -> None:
        params = EscrowParams(amount=1, beneficiary="addr1", conditions=None)
        assert params.conditions == ()


class TestActionTemplates:
    def test_mint_nft_defaults_recipient(self) -> None:
        action = mint_nft("ethereum", "0xNFT", 42)
        assert action.method == "mintNFT"
        assert action.params == {"tokenId": 42, "recipient": ZERO_ADDRESS}

    def test_release_tokens(self) -> None:
        action = release_tokens("base", "0xToken", "100", "0xbob")
        assert action.method == "release"
        assert action.params["recipient"] == "0xbob"

    def test_execute_proposal(self) -> None:
        action = execute_proposal("ethereum", "0xGov", 7)
        assert (action.contract, action.method) == ("0xGov", "executeProposal")
        assert action.params == {"proposalId": 7}

    def test_contract_call_without_params(self) -> None:
        assert contract_call("ethereum", "0xC", "ping").params == {}

    def test_params_are_read_only(self) -> None:
        action = mint_nft("ethereum", "0xNFT", 1)
        with pytest.raises(TypeError):
            action.params["tokenId"] = 2  # type: ignore[index]

    def test_descriptor_dict_round_trip(self) -> None:
        action = ActionDescriptor(
            environment="ethereum", contract="0xC", method="m", params={"a": 1}, gas_limit=21000
        )
        assert ActionDescriptor.from_dict(action.to_dict()) == action


class TestActionResult:
    def test_dict_round_trip(self) -> None:
        result = ActionResult(
            tx_hash="0xabc", status=ActionStatus.CONFIRMED, block_number=18_000_001, token_id=7
        )
        assert ActionResult.from_dict(result.to_dict()) == result


class TestAttestation:
    def test_public_inputs_frozen_to_tuple(self) -> None:
        attestation = Attestation(
            proof="p",
            public_inputs=["1", "addr1"],
            circuit_id="c",
            timestamp=1,
            escrow_id="e",
        )
        assert attestation.public_inputs == ("1", "addr1")
        assert attestation.verified is False
        assert attestation.to_dict()["public_inputs"] == ["1", "addr1"]


class TestEscrowSerialisation:
    def test_round_trip_active(self) -> None:
        escrow = _escrow()
        assert Escrow.from_dict(escrow.to_dict()) == escrow

    def test_round_trip_released_with_action(self) -> None:
        escrow = _escrow(
            status=EscrowStatus.RELEASED,
            action=mint_nft("ethereum", "0xNFT", 42),
            release_ref="spend_tx",
            closed_at=CREATED,
            action_result=ActionResult(tx_hash="0x1", status=ActionStatus.FAILED, error="boom"),
        )
        restored = Escrow.from_dict(escrow.to_dict())
        assert restored == escrow
        assert restored.action_result.status is ActionStatus.FAILED

    def test_amount_serialised_as_string(self) -> None:
        assert _escrow().to_dict()["amount"] == "0.5"
