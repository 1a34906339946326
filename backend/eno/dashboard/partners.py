# Overview: Partner fee summaries and per-partner statistics.

from __future__ import annotations

from .periods import DateRange, amount, filter_by_day

SORT_KEYS = ("name", "turnover", "delivery_fees", "packages_delivered")


def fee_summary(fees: list[dict], period: DateRange | None = None) -> dict:
    """Turnover, delivery fees and packages over the partner fee rows inside period."""
    rows = filter_by_day(fees, "operation_date", period)
    return {
        "turnover": sum(amount(f.get("turnover")) for f in rows),
        "delivery_fees": sum(amount(f.get("total_delivery_fee")) for f in rows),
        "packages_delivered": int(sum(amount(f.get("total_packages_delivered")) for f in rows)),
    }


def partners_with_stats(
    partners: list[dict],
    fees: list[dict],
    period: DateRange | None = None,
    *,
    sort_key: str = "name",
    ascending: bool = True,
) -> list[dict]:
    """Each partner row extended with turnover, delivery_fees and packages_delivered, sorted."""
    if sort_key not in SORT_KEYS:
        raise ValueError(f"Cannot sort partners by {sort_key!r}")

    in_period = filter_by_day(fees, "operation_date", period)
    by_partner: dict[str, list[dict]] = {}
    for fee in in_period:
        by_partner.setdefault(fee.get("partner_id"), []).append(fee)

    rows = []
    for partner in partners:
        stats = fee_summary(by_partner.get(partner.get("id"), []))
        rows.append({**partner, **stats})

    if sort_key == "name":
        key = lambda row: (row.get("name") or "").lower()
    else:
        key = lambda row: row[sort_key]
    return sorted(rows, key=key, reverse=not ascending)


def recent_partners(partners: list[dict], limit: int = 5) -> list[dict]:
    """Newest partners first by created_at."""
    return sorted(partners, key=lambda p: p.get("created_at") or "", reverse=True)[:limit]


def partner_name(partners: list[dict], partner_id, default: str = "Inconnu") -> str:
    for partner in partners:
        if partner.get("id") == partner_id:
            return partner.get("name") or default
    return default
