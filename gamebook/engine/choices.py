"""
Choice filtering for the presentation layer.

Computes what the player is actually offered at a section:
1. The section's own choices, minus those removed by remove_choice
2. One "pick up" pseudo-choice per item dropped at that section

Picking an item up goes through the same classifier and capacity rules as
add_item, and clears the dropped entry only when the item was stored.
"""

import logging
from typing import List, Optional, Tuple

from .actions import OutcomeReason
from .effects import ActionOutcome, ignored, store_item
from .game_state import ActionSheet, OfferedChoice, Section
from .inventory import ItemCatalog, load_item_catalog

logger = logging.getLogger(__name__)


def offered_choices(section: Section, sheet: ActionSheet) -> List[OfferedChoice]:
    """
    Get the choices to show for a section.

    Args:
        section: Section descriptor from the section provider
        sheet: Current sheet (removedChoices and droppedItems are consulted)

    Returns:
        Remaining "turn to" choices in section order, then pick-up choices
    """
    removed = set(sheet.removed_choices)
    offered = [
        OfferedChoice(kind="turn_to", label=choice.label, to=choice.to)
        for choice in section.choices
        if choice.to not in removed
    ]
    for item in sheet.dropped_items.get(section.id, []):
        offered.append(OfferedChoice(kind="pickup", label=f"Pick up {item}", item=item))
    return offered


def pick_up_item(
    sheet: ActionSheet,
    section_id: int,
    item: str,
    catalog: Optional[ItemCatalog] = None,
) -> Tuple[ActionSheet, ActionOutcome]:
    """
    Take a dropped item from a section into the inventory.

    Returns:
        (updated sheet, outcome). The input sheet is not modified. A discarded
        pick-up leaves the item available at the section; an item that was
        never dropped there is refused.
    """
    catalog = catalog or load_item_catalog()
    updated = sheet.model_copy(deep=True)
    available = updated.dropped_items.get(section_id, [])

    if item not in available:
        logger.info(f"Pick-up of {item} refused: not available at section {section_id}")
        outcome = ignored(
            OutcomeReason.NOT_AVAILABLE, f"{item} is not available at section {section_id}"
        )
        outcome.type = "pick_up"
        return updated, outcome

    outcome = store_item(updated, item, catalog)
    outcome.type = "pick_up"

    if outcome.status == "applied":
        available.remove(item)
        if not available:
            del updated.dropped_items[section_id]
    else:
        logger.info(f"Pick-up of {item} at section {section_id}: {outcome.detail}")

    return updated, outcome

