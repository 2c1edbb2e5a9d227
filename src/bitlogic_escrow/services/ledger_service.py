"""Simulated ledger collaborator.

Stands in for the Bitcoin-side lock / spend / refund mechanics. Generates
fake transaction ids; the locking script is bound to the condition-set
fingerprint so a lock reference identifies the rules it was created under.
"""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING

from bitlogic_escrow.domain.models import LockedFunds
from bitlogic_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from bitlogic_escrow.domain.models import Attestation

logger = get_logger(__name__)


class SimulatedLedger:
    """Ledger client that records operations in memory instead of broadcasting."""

    def __init__(self) -> None:
        self.spent: dict[str, str] = {}
        self.refunded: dict[str, str] = {}

    async def lock_funds(self, amount_units: int, beneficiary: str, commitment: str) -> LockedFunds:
        lock = LockedFunds(
            txid="tx_" + secrets.token_hex(32),
            vout=0,
            value=amount_units,
            script_pubkey=f"charms_script_{commitment.removeprefix('scripthash_')[:16]}",
        )
        logger.info(
            "ledger.funds_locked",
            txid=lock.txid,
            value=amount_units,
            beneficiary=beneficiary,
            simulated=True,
        )
        return lock

    async def spend(self, lock: LockedFunds, attestation: Attestation) -> str:
        txid = "btc_tx_" + secrets.token_hex(32)
        self.spent[lock.txid] = txid
        logger.info("ledger.spent", lock_txid=lock.txid, txid=txid, simulated=True)
        return txid

    async def refund(self, lock: LockedFunds) -> str:
        txid = "refund_" + secrets.token_hex(32)
        self.refunded[lock.txid] = txid
        logger.info("ledger.refunded", lock_txid=lock.txid, txid=txid, simulated=True)
        return txid
