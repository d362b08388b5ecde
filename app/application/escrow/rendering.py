"""
Trade views and human-readable summaries.

Builds TradeView DTOs from a session, resolving offered asset metadata
through the inventory snapshot of both parties. Display only: nothing
here is used to decide ownership or escrow.
"""

from app.application.escrow.dtos import AssetView, PartyView, TradeView
from app.domain.escrow.entities import Asset, Party
from app.domain.escrow.ports import InventoryGateway
from app.domain.escrow.trade_session import TradeSession

UNKNOWN_NAME = "??"
NOTHING_OFFERED = "• (nothing yet)"


def render_asset_line(instance_id: str, metadata: dict) -> str:
    """Render one asset as ``[#id] Name Lv.N (rarity)``."""
    parts = [f"[#{instance_id}]" if instance_id else "[#????]"]
    parts.append(
        str(
            metadata.get("name")
            or metadata.get("species")
            or metadata.get("title")
            or "Unknown"
        )
    )
    if metadata.get("level") is not None:
        parts.append(f"Lv.{metadata['level']}")
    if metadata.get("rarity"):
        parts.append(f"({metadata['rarity']})")
    return " ".join(parts)


def asset_view(asset: Asset) -> AssetView:
    return AssetView(
        instance_id=asset.instance_id,
        owner_id=asset.owner_id,
        metadata=dict(asset.metadata),
        locked=asset.is_locked,
        label=render_asset_line(asset.instance_id, asset.metadata),
    )


def _unknown_view(instance_id: str) -> AssetView:
    return AssetView(
        instance_id=instance_id,
        owner_id=None,
        metadata={},
        locked=False,
        label=render_asset_line(instance_id, {"name": UNKNOWN_NAME}),
    )


def _party_view(party: Party, known: dict[str, Asset]) -> PartyView:
    offered = [
        asset_view(known[i]) if i in known else _unknown_view(i)
        for i in party.offered
    ]
    return PartyView(
        actor_id=party.actor_id,
        display_name=party.label,
        offered=offered,
        ready=party.ready,
        accepted=party.accepted,
    )


def render_summary(session_id: str, status: str, a: PartyView, b: PartyView) -> str:
    """Render the multi-line trade summary shown to both parties."""
    lines = [f"Trade #{session_id} [{status}]"]
    for party in (a, b):
        lines.append(f"{party.display_name} offers:")
        if party.offered:
            lines.extend(f"• {asset.label}" for asset in party.offered)
        else:
            lines.append(NOTHING_OFFERED)
    ready_a = "✅" if a.ready else "⌛"
    ready_b = "✅" if b.ready else "⌛"
    acc_a = "✅" if a.accepted else "—"
    acc_b = "✅" if b.accepted else "—"
    lines.append(f"Ready: {a.display_name} {ready_a} / {b.display_name} {ready_b}")
    lines.append(f"Confirm: {a.display_name} {acc_a} / {b.display_name} {acc_b}")
    return "\n".join(lines)


def build_trade_view(
    session: TradeSession, gateway: InventoryGateway, message: str
) -> TradeView:
    """Snapshot a session into a TradeView.

    Must be called while holding the session lock so the snapshot is
    consistent with the operation that produced it.
    """
    known: dict[str, Asset] = {}
    for party in session.parties:
        for asset in gateway.list_owned(party.actor_id):
            known[asset.instance_id] = asset

    a = _party_view(session.a, known)
    b = _party_view(session.b, known)
    status = session.status.value
    return TradeView(
        session_id=session.id,
        status=status,
        a=a,
        b=b,
        created_at=session.created_at,
        updated_at=session.updated_at,
        expires_at=session.expires_at,
        message=message,
        summary=render_summary(session.id, status, a, b),
    )
