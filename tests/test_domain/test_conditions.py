"""Tests for the release condition model.

Covers:
    1. Structural validation per variant (fails closed).
    2. Local evaluation against witness data.
    3. Circuit id and fingerprint derivation.
    4. Builders and dict (de)serialisation.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from bitlogic_escrow.domain.conditions import (
    GENERIC_CIRCUIT_ID,
    Custom,
    GovernanceVote,
    HashLock,
    MultiSig,
    Oracle,
    TimeLock,
    WitnessData,
    condition_fingerprint,
    condition_from_dict,
    condition_to_dict,
    custom,
    derive_circuit_id,
    evaluate_all,
    evaluate_condition,
    governance_vote,
    hash_lock,
    multi_sig,
    oracle,
    time_lock,
    validate_condition,
)
from bitlogic_escrow.domain.exceptions import InvalidRequestError

NOW = datetime(2026, 1, 1, tzinfo=UTC)


class TestValidateCondition:
    def test_valid_variants(self) -> None:
        conditions = [
            time_lock(NOW),
            oracle("chainlink", "BTC_PRICE > 100000", feed_id="BTC/USD"),
            multi_sig(2, ["alice", "bob", "carol"]),
            hash_lock("ab" * 32),
            governance_vote("proposal-7", "66%"),
            custom("my_circuit", {"x": 1}),
        ]
        assert all(validate_condition(c) for c in conditions)

    def test_multisig_zero_required_rejected(self) -> None:
        assert not validate_condition(MultiSig(required=0, signers=("alice",)))

    def test_multisig_required_exceeds_signers_rejected(self) -> None:
        assert not validate_condition(MultiSig(required=3, signers=("alice", "bob")))

    def test_multisig_blank_signer_rejected(self) -> None:
        assert not validate_condition(MultiSig(required=1, signers=(" ",)))

    def test_hashlock_empty_hash_rejected(self) -> None:
        assert not validate_condition(HashLock(algorithm="sha256", hash=""))

    def test_hashlock_unknown_algorithm_rejected(self) -> None:
        assert not validate_condition(HashLock(algorithm="md5", hash="abc"))

    def test_oracle_unknown_source_rejected(self) -> None:
        assert not validate_condition(Oracle(source="gut_feeling", expression="x > 1"))

    def test_oracle_missing_expression_rejected(self) -> None:
        assert not validate_condition(Oracle(source="pyth", expression=""))

    def test_governance_missing_proposal_rejected(self) -> None:
        assert not validate_condition(GovernanceVote(proposal_id="", threshold="50%"))

    def test_custom_missing_circuit_rejected(self) -> None:
        assert not validate_condition(Custom(circuit_id=""))

    def test_unknown_object_rejected(self) -> None:
        assert not validate_condition({"type": "TIME_LOCK", "unlock_after": "2026-01-01"})
        assert not validate_condition(None)

    def test_naive_time_lock_rejected(self) -> None:
        assert not validate_condition(TimeLock(unlock_after=datetime(2020, 1, 1)))


class TestEvaluateCondition:
    def test_time_lock_boundary(self) -> None:
        condition = time_lock(NOW)
        assert evaluate_condition(condition, {"current_time": NOW})
        assert evaluate_condition(condition, {"current_time": NOW + timedelta(seconds=1)})
        assert not evaluate_condition(condition, {"current_time": NOW - timedelta(seconds=1)})

    def test_time_lock_without_current_time_is_false(self) -> None:
        assert not evaluate_condition(time_lock(NOW), {"beneficiary": "addr1"})

    def test_naive_time_lock_is_false(self) -> None:
        condition = TimeLock(unlock_after=datetime(2020, 1, 1))
        assert not evaluate_condition(condition, {"current_time": "2026-01-01T00:00:00Z"})

    def test_time_lock_accepts_iso_and_camel_case(self) -> None:
        assert evaluate_condition(time_lock(NOW), {"currentTime": "2026-01-02T00:00:00Z"})

    def test_oracle_needs_value(self) -> None:
        condition = oracle("chainlink", "BTC_PRICE > 100000")
        assert evaluate_condition(condition, {"oracle_value": 1})
        assert evaluate_condition(condition, {"oracleValue": 0})
        assert not evaluate_condition(condition, {})

    def test_multisig_counts_distinct_signatures(self) -> None:
        condition = MultiSig(
            required=2,
            signers=("alice", "bob", "carol"),
            collected_signatures=("sig_a",),
        )
        assert not evaluate_condition(condition, {"signatures": ["sig_a"]})
        assert evaluate_condition(condition, {"signatures": ["sig_b"]})

    def test_hash_lock_needs_preimage(self) -> None:
        condition = hash_lock("ab" * 32)
        assert evaluate_condition(condition, {"preimage": "secret"})
        assert not evaluate_condition(condition, {"preimage": ""})

    def test_governance_needs_explicit_approval(self) -> None:
        condition = governance_vote("p-1", "50%")
        assert evaluate_condition(condition, {"vote_approved": True})
        assert not evaluate_condition(condition, {"vote_approved": "yes"})
        assert not evaluate_condition(condition, {})

    def test_custom_needs_prior_verification(self) -> None:
        condition = custom("c1")
        assert evaluate_condition(condition, WitnessData(proof_verified=True))
        assert not evaluate_condition(condition, WitnessData(proof_verified=False))

    def test_evaluate_all(self) -> None:
        conditions = [time_lock(NOW), hash_lock("ab" * 32)]
        assert evaluate_all(conditions, {"current_time": NOW, "preimage": "s"})
        assert not evaluate_all(conditions, {"current_time": NOW})
        assert not evaluate_all([], {"current_time": NOW})


class TestDerivations:
    def test_generic_circuit_when_no_conditions(self) -> None:
        assert derive_circuit_id(None) == GENERIC_CIRCUIT_ID
        assert derive_circuit_id([]) == GENERIC_CIRCUIT_ID

    def test_circuit_id_is_order_independent(self) -> None:
        a = [time_lock(NOW), hash_lock("ab" * 32), oracle("pyth", "x > 1")]
        b = [oracle("pyth", "x > 1"), time_lock(NOW), hash_lock("ab" * 32)]
        assert derive_circuit_id(a) == derive_circuit_id(b)
        assert derive_circuit_id(a) == "circuit_hash_lock_oracle_time_lock"

    def test_fingerprint_is_stable(self) -> None:
        conditions = [time_lock(NOW), multi_sig(1, ["alice"])]
        first = condition_fingerprint(conditions)
        assert first == condition_fingerprint(list(conditions))
        assert first.startswith("scripthash_")
        assert len(first) == len("scripthash_") + 64

    def test_fingerprint_differs_per_rule_set(self) -> None:
        assert condition_fingerprint([time_lock(NOW)]) != condition_fingerprint(
            [time_lock(NOW + timedelta(seconds=1))]
        )


class TestBuilders:
    def test_multi_sig_rejects_excess_required(self) -> None:
        with pytest.raises(InvalidRequestError):
            multi_sig(3, ["alice", "bob"])

    def test_hash_lock_defaults_to_sha256(self) -> None:
        assert hash_lock("ff").algorithm == "sha256"

    def test_oracle_threshold_is_decimal(self) -> None:
        assert oracle("chainlink", "x > 1", threshold="100000.5").threshold == Decimal(
            "100000.5"
        )

    def test_time_lock_accepts_epoch_seconds(self) -> None:
        assert time_lock(NOW.timestamp()).unlock_after == NOW

    def test_custom_inputs_are_read_only(self) -> None:
        condition = custom("c1", {"x": 1})
        with pytest.raises(TypeError):
            condition.inputs["x"] = 2  # type: ignore[index]


class TestSerialisation:
    def test_round_trip_all_variants(self) -> None:
        conditions = [
            TimeLock(unlock_after=NOW, min_delay="48h"),
            oracle("chainlink", "BTC_PRICE > 100000", threshold=100000),
            MultiSig(required=1, signers=("alice",), collected_signatures=("sig",)),
            hash_lock("ab" * 32),
            GovernanceVote(proposal_id="p", threshold="66%", governance_contract="0xgov"),
            custom("c1", {"x": 1}),
        ]
        for condition in conditions:
            assert condition_from_dict(condition_to_dict(condition)) == condition

    def test_dict_is_tagged(self) -> None:
        data = condition_to_dict(time_lock(NOW))
        assert data["type"] == "TIME_LOCK"
        assert data["unlock_after"] == NOW.isoformat()

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(InvalidRequestError, match="Unknown condition type"):
            condition_from_dict({"type": "VIBES"})

    def test_missing_field_rejected(self) -> None:
        with pytest.raises(InvalidRequestError, match="Malformed"):
            condition_from_dict({"type": "ORACLE", "source": "pyth"})


class TestWitnessData:
    def test_public_inputs_order_and_omission(self) -> None:
        witness = WitnessData.from_mapping(
            {"amount": "0.5", "beneficiary": "addr1", "timestamp": 1700000000}
        )
        assert witness.public_inputs() == ["1700000000", "addr1", "0.5"]

    def test_unknown_keys_go_to_extra(self) -> None:
        witness = WitnessData.from_mapping({"custom_field": 42})
        assert witness.extra == {"custom_field": 42}
        assert not witness.is_empty()

    def test_empty_witness(self) -> None:
        assert WitnessData().is_empty()

    def test_naive_current_time_is_treated_as_utc(self) -> None:
        witness = WitnessData(current_time=datetime(2026, 1, 1))
        assert witness.current_time == NOW
        assert evaluate_condition(time_lock(NOW), witness)

    def test_amount_coerced_to_decimal(self) -> None:
        assert WitnessData(amount="0.5").amount == Decimal("0.5")

    @pytest.mark.parametrize(
        "data",
        [
            {"current_time": "yesterday"},
            {"current_time": 10**20},
            {"current_time": [2026, 1, 1]},
            {"amount": "lots"},
        ],
    )
    def test_malformed_values_rejected(self, data: dict) -> None:
        with pytest.raises(InvalidRequestError):
            WitnessData.from_mapping(data)

    def test_malformed_oracle_threshold_rejected(self) -> None:
        with pytest.raises(InvalidRequestError, match="Not a valid amount"):
            condition_from_dict(
                {"type": "ORACLE", "source": "pyth", "expression": "X > 1", "threshold": "high"}
            )
