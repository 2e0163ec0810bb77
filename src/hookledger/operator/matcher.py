# src/hookledger/operator/matcher.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

Json = Dict[str, Any]


@dataclass(frozen=True)
class CommitmentInfo:
    account: str
    balance: int
    max_spend_per_epoch: int = 0  # 0 means uncapped
    min_rate: int = 0
    rush: int = 0
    created_epoch: int = 0
    last_updated_epoch: int = 0

    @staticmethod
    def from_record(rec: Json) -> "CommitmentInfo":
        return CommitmentInfo(
            account=str(rec.get("account") or ""),
            balance=int(rec.get("balance") or 0),
            max_spend_per_epoch=int(rec.get("max_spend_per_epoch") or 0),
            min_rate=int(rec.get("min_rate") or 0),
            rush=int(rec.get("rush") or 0),
            created_epoch=int(rec.get("created_epoch") or 0),
            last_updated_epoch=int(rec.get("last_updated_epoch") or 0),
        )


@dataclass(frozen=True)
class Match:
    account: str
    assigned: int


def compute_epoch(now_s: float, epoch_seconds: int) -> int:
    if int(epoch_seconds) <= 0:
        raise ValueError(f"epoch_seconds must be > 0; got: {epoch_seconds}")
    return int(now_s) // int(epoch_seconds)


def _eligible(
    info: CommitmentInfo,
    *,
    points_per_unit: Optional[int],
    cooldown_epochs: Optional[int],
    now_epoch: Optional[int],
) -> bool:
    if info.balance <= 0:
        return False
    if points_per_unit and info.min_rate > 0 and points_per_unit < info.min_rate:
        return False
    if cooldown_epochs and info.last_updated_epoch > 0 and now_epoch is not None:
        if now_epoch - info.last_updated_epoch < cooldown_epochs:
            return False
    return True


def match_commitments(
    infos: Sequence[CommitmentInfo],
    amount: int,
    *,
    points_per_unit: Optional[int] = None,
    cooldown_epochs: Optional[int] = None,
    now_epoch: Optional[int] = None,
) -> List[Match]:
    """Greedy assignment of `amount` across commitments, in priority order.

    Priority is rush desc, then max spend desc, then balance desc. Each
    commitment contributes at most min(balance, max spend, remaining). The
    result may cover less than `amount` when commitments run out.
    """
    remaining = int(amount)
    if remaining <= 0:
        return []

    candidates = [
        i
        for i in infos
        if _eligible(i, points_per_unit=points_per_unit, cooldown_epochs=cooldown_epochs, now_epoch=now_epoch)
    ]
    # sorted() is stable, so ties keep input order
    candidates = sorted(candidates, key=lambda i: (-i.rush, -i.max_spend_per_epoch, -i.balance))

    out: List[Match] = []
    for info in candidates:
        if remaining <= 0:
            break
        cap = info.max_spend_per_epoch if info.max_spend_per_epoch > 0 else info.balance
        available = min(info.balance, cap)
        if available <= 0:
            continue
        take = min(available, remaining)
        out.append(Match(account=info.account, assigned=take))
        remaining -= take

    return out


__all__ = ["CommitmentInfo", "Match", "compute_epoch", "match_commitments"]
