"""
Click analytics derived from product and click snapshots.

Everything here is a pure function of its inputs so it can be tested without a
store. When two products tie on clicks, the one seen first in the click log is
reported; callers should not rely on any other tie order.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional


@dataclass
class AnalyticsReport:
    total_clicks: int = 0
    stats: dict[str, int] = field(default_factory=dict)
    top: Optional[str] = None
    bottom: Optional[str] = None
    categories: dict[str, int] = field(default_factory=dict)
    window_days: int = 7
    recent_clicks: int = 0
    daily: dict[str, int] = field(default_factory=dict)
    insights: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "total_clicks": self.total_clicks,
            "stats": self.stats,
            "top": self.top,
            "bottom": self.bottom,
            "categories": self.categories,
            "window_days": self.window_days,
            "recent_clicks": self.recent_clicks,
            "daily": self.daily,
            "insights": self.insights,
        }


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Epoch millis (number or digit string) or ISO-8601 to an aware UTC datetime."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            try:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                return None
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed.astimezone(timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    return None


def _objects(entries: Iterable[Any]) -> list[dict]:
    return [entry for entry in entries if isinstance(entry, dict)]


def count_clicks(clicks: Iterable[dict]) -> dict[str, int]:
    counts: Counter = Counter()
    for click in _objects(clicks):
        product_id = click.get("product_id")
        if product_id:
            counts[str(product_id)] += 1
    return dict(counts)


def category_totals(products: Iterable[dict], stats: dict[str, int]) -> dict[str, int]:
    totals: dict[str, int] = {}
    for product in _objects(products):
        clicks = stats.get(str(product.get("id")), 0)
        if not clicks:
            continue
        category = str(product.get("category") or "Uncategorized")
        totals[category] = totals.get(category, 0) + clicks
    return totals


def daily_histogram(
    clicks: Iterable[dict], now: datetime, days: int = 7
) -> dict[str, int]:
    start = now - timedelta(days=days)
    buckets: Counter = Counter()
    for click in _objects(clicks):
        when = parse_timestamp(click.get("timestamp"))
        if when is None or when < start or when > now:
            continue
        buckets[when.date().isoformat()] += 1
    return dict(sorted(buckets.items()))


def _plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


def build_insights(report: AnalyticsReport, titles: dict[str, str]) -> list[str]:
    if not report.total_clicks:
        return [
            "No clicks recorded yet.",
            "No category data yet.",
            f"0 clicks in the last {report.window_days} days.",
        ]

    def name(product_id: str) -> str:
        return titles.get(product_id) or product_id

    insights = [
        f"Top performer: {name(report.top)} with "
        f"{_plural(report.stats[report.top], 'click')}."
    ]
    if report.bottom != report.top:
        insights.append(
            f"Needs attention: {name(report.bottom)} with only "
            f"{_plural(report.stats[report.bottom], 'click')}."
        )
    if report.categories:
        category = max(report.categories, key=report.categories.get)
        insights.append(
            f"Strongest category: {category} "
            f"({_plural(report.categories[category], 'click')})."
        )
    else:
        insights.append("No category data yet.")
    insights.append(
        f"{_plural(report.recent_clicks, 'click')} in the last "
        f"{report.window_days} days."
    )
    return insights


def aggregate(
    products: list[dict],
    clicks: list[dict],
    now: Optional[datetime] = None,
    window_days: int = 7,
) -> AnalyticsReport:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    stats = count_clicks(clicks)
    daily = daily_histogram(clicks, now, days=window_days)

    report = AnalyticsReport(
        total_clicks=sum(stats.values()),
        stats=stats,
        categories=category_totals(products, stats),
        window_days=window_days,
        recent_clicks=sum(daily.values()),
        daily=daily,
    )
    if stats:
        report.top = max(stats, key=stats.get)
        report.bottom = min(stats, key=stats.get)

    titles = {
        str(p.get("id")): p.get("title") for p in _objects(products) if p.get("id")
    }
    report.insights = build_insights(report, titles)
    return report
