# src/hookledger/operator/authority.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from hookledger.ledger import commitments
from hookledger.ledger.errors import LedgerError
from hookledger.log import log_event
from hookledger.operator.matcher import CommitmentInfo, match_commitments
from hookledger.runtime.executor import LedgerExecutor

Json = Dict[str, Any]

logger = logging.getLogger("hookledger.operator")

# One point per 10**12 units of consumed commitment.
DEFAULT_POINTS_PER_UNIT = 10**12


@dataclass(frozen=True)
class RebateEvent:
    """One refundable trade observed by the authority."""

    trader: str
    pool_id: str
    hook: Optional[str] = None


@dataclass(frozen=True)
class RefundTable:
    """Refund owed per trade, by (pool, hook), with a default fallback.

    A hook override of zero falls through to the default. A trade that
    resolves to zero earns no rebate.
    """

    default: int = 0
    overrides: Mapping[Tuple[str, str], int] = field(default_factory=dict)

    def resolve(self, pool_id: Any, hook: Optional[str] = None) -> int:
        h = str(hook or "").strip()
        if h:
            v = int(self.overrides.get((str(pool_id).strip(), h), 0) or 0)
            if v > 0:
                return v
        return max(int(self.default), 0)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "RefundTable":
        """Build from `{"default": int, "overrides": {"<pool_id>|<hook>": int}}`."""
        overrides: Dict[Tuple[str, str], int] = {}
        for key, v in dict(raw.get("overrides") or {}).items():
            pool_id, sep, hook = str(key).partition("|")
            if not sep or not pool_id.strip() or not hook.strip():
                raise ValueError(f"refund override key must be '<pool_id>|<hook>'; got: {key!r}")
            overrides[(pool_id.strip(), hook.strip())] = int(v)
        return cls(default=int(raw.get("default") or 0), overrides=overrides)


class SettlementAuthority:
    """Turns one epoch of rebate events into ledger calls.

    Per epoch it issues at most three calls, each atomic on its own:
    REBATE_PUSH crediting traders, COMMITMENT_SETTLE_EPOCH consuming matched
    commitments, and POINTS_BATCH_MINT rewarding the consumers. The signer
    needs the rebate_operator and settlement roles (or be the owner while
    those roles are unset).

    A rejected REBATE_PUSH is logged and does not stop the epoch: the matched
    commitments are still consumed and their owners still minted.
    """

    def __init__(
        self,
        executor: LedgerExecutor,
        *,
        signer: str,
        refunds: Optional[RefundTable] = None,
        points_per_unit: int = DEFAULT_POINTS_PER_UNIT,
        cooldown_epochs: Optional[int] = None,
    ) -> None:
        if int(points_per_unit) <= 0:
            raise ValueError("points_per_unit must be > 0")
        self.executor = executor
        self.signer = str(signer)
        self.refunds = refunds or RefundTable()
        self.points_per_unit = int(points_per_unit)
        self.cooldown_epochs = cooldown_epochs

    def commitment_infos(self) -> List[CommitmentInfo]:
        st = self.executor.read_state()
        return [CommitmentInfo.from_record(rec) for rec in commitments.active_commitments(st)]

    def aggregate(self, events: Iterable[RebateEvent]) -> Dict[str, int]:
        """Sum resolved refunds per trader, in first-seen order. Zero refunds are dropped."""
        totals: Dict[str, int] = {}
        for ev in events:
            trader = str(ev.trader or "").strip()
            amt = self.refunds.resolve(ev.pool_id, ev.hook)
            if amt <= 0 or not trader:
                continue
            totals[trader] = totals.get(trader, 0) + amt
        return totals

    def _tx(self, tx_type: str, payload: Json) -> Json:
        return self.executor.apply({"tx_type": tx_type, "signer": self.signer, "payload": payload})

    def settle(self, epoch: int, events: Iterable[RebateEvent]) -> Json:
        e = int(epoch)
        totals = self.aggregate(events)
        out: Json = {"epoch": e, "rebate": None, "rebate_error": None, "settle": None, "mint": None, "matches": []}
        if not totals:
            log_event(logger, "settle_skipped", epoch=e, reason="no_events")
            return out

        try:
            out["rebate"] = self._tx(
                "REBATE_PUSH",
                {"epoch": e, "accounts": list(totals.keys()), "amounts": list(totals.values())},
            )
        except LedgerError as err:
            out["rebate_error"] = err.to_json()
            log_event(
                logger,
                "rebate_push_failed",
                level=logging.WARNING,
                epoch=e,
                traders=len(totals),
                code=err.code,
                reason=err.reason,
            )

        refund_total = sum(totals.values())
        matches = match_commitments(
            self.commitment_infos(),
            refund_total,
            points_per_unit=self.points_per_unit,
            cooldown_epochs=self.cooldown_epochs,
            now_epoch=e,
        )
        out["matches"] = [{"account": m.account, "assigned": m.assigned} for m in matches]

        if matches:
            out["settle"] = self._tx(
                "COMMITMENT_SETTLE_EPOCH",
                {"epoch": e, "accounts": [m.account for m in matches], "consumed": [m.assigned for m in matches]},
            )

            minted = [(m.account, m.assigned * self.points_per_unit) for m in matches]
            minted = [(a, pts) for a, pts in minted if pts > 0]
            if minted:
                out["mint"] = self._tx(
                    "POINTS_BATCH_MINT",
                    {"accounts": [a for a, _ in minted], "points": [pts for _, pts in minted]},
                )

        covered = sum(m.assigned for m in matches)
        log_event(
            logger,
            "settled_epoch",
            epoch=e,
            traders=len(totals),
            refund_total=refund_total,
            covered=covered,
            uncovered=refund_total - covered,
            matched=len(matches),
        )
        return out


__all__ = ["DEFAULT_POINTS_PER_UNIT", "RebateEvent", "RefundTable", "SettlementAuthority"]
