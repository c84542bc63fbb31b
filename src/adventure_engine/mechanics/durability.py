"""Equipment wear from combat."""
from __future__ import annotations

import math

from adventure_engine.models.rewards import DurabilityLoss, EquippedItem
from adventure_engine.rules import DurabilityRules


def durability_loss_amount(hits_taken: int, rules: DurabilityRules) -> int:
    return rules.combat_degradation + math.floor(max(0, hits_taken) * rules.decay_per_hit)


def degrade_equipment(items: list[EquippedItem], hits_taken: int, rules: DurabilityRules) -> list[DurabilityLoss]:
    """Wear down every equipped weapon and armor piece.

    The warning flag is raised only by the loss that crosses the threshold,
    and ``is_broken`` only by the loss that reaches zero.
    """
    amount = durability_loss_amount(hits_taken, rules)
    if amount <= 0:
        return []

    losses: list[DurabilityLoss] = []
    seen: set[str] = set()
    for item in items:
        if item.item_id in seen or not item.has_durability:
            continue
        seen.add(item.item_id)

        current = max(0, item.current_durability)
        new_current = max(0, current - amount)
        now_broken = new_current <= 0
        threshold = item.max_durability * rules.warning_threshold
        losses.append(DurabilityLoss(
            item_id=item.item_id,
            item_name=item.name,
            amount=current - new_current,
            new_durability=new_current,
            max_durability=item.max_durability,
            is_broken=now_broken and current > 0,
            crossed_warning_threshold=not now_broken and current > threshold >= new_current,
        ))
    return losses
