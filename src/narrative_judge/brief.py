"""Human-readable brief snapshot used in the corpus and the audit prompt."""

from __future__ import annotations

from typing import List

from .coercion import to_text
from .domain import CampaignContext


def _cap_text(cap: object) -> str:
    return "UNLIMITED" if cap == "UNLIMITED" else to_text(cap)


def render_brief_snapshot(context: CampaignContext) -> str:
    """Render the brief as one ``Label: value`` line per populated field."""
    brief = context.brief
    parts: List[str] = []

    parts.append(f"Client: {context.client_name or 'n/a'}")
    parts.append(f"Title: {context.title}")
    parts.append(f"Market: {context.market or 'n/a'} | Category: {context.category or 'n/a'}")
    if context.timing_window:
        parts.append(f"Timing: {context.timing_window}")

    if brief.hook:
        parts.append(f"Hook: {brief.hook}")
    if brief.mechanic_one_liner:
        parts.append(f"Mechanic: {brief.mechanic_one_liner}")
    if brief.retailers:
        parts.append(f"Retailers: {', '.join(brief.retailers)}")

    if brief.type_of_promotion:
        parts.append(f"Promotion type: {brief.type_of_promotion}")
    if brief.hero_prize:
        count = f" x{brief.hero_prize_count}" if brief.hero_prize_count else ""
        parts.append(f"Hero prize: {brief.hero_prize}{count}")
    if brief.runner_ups:
        parts.append(f"Runner-ups: {', '.join(brief.runner_ups)}")

    total_winners = brief.raw.get("totalWinners")
    if total_winners is not None:
        parts.append(f"Total winners: {to_text(total_winners)}")
    if brief.breadth_prize_count:
        parts.append(f"Breadth winners: {brief.breadth_prize_count}")
    if brief.cadence_copy:
        parts.append(f"Cadence: {brief.cadence_copy}")
    if brief.calendar_theme:
        parts.append(f"Calendar theme: {brief.calendar_theme}")

    cashback = brief.cashback
    if cashback.present and (cashback.amount is not None or cashback.cap or cashback.currency or cashback.headline):
        line = f"Cashback: {to_text(cashback.amount) or '?'} {cashback.currency or ''}".rstrip()
        if cashback.cap:
            line += f" | Cap: {_cap_text(cashback.cap)}"
        if cashback.proof_required:
            line += " | Proof required"
        if cashback.headline:
            line += f" | Headline: {cashback.headline}"
        parts.append(line)

    gwp = brief.gwp
    if gwp.present and (gwp.item or gwp.trigger_qty is not None or gwp.cap is not None):
        line = f"GWP: {gwp.item or '?'}"
        if gwp.trigger_qty:
            line += f" | Trigger: {to_text(gwp.trigger_qty)}"
        if gwp.cap is not None:
            line += f" | Cap: {_cap_text(gwp.cap)}"
        parts.append(line)

    return "\n".join(parts)


__all__ = ["render_brief_snapshot"]
