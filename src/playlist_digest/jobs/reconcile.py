"""Merge a freshly fetched playlist listing into tracked state."""

import logging
from typing import Dict, List, Sequence

from .backends import StateStore
from .models import CatalogItem, ItemRecord
from .naming import make_slug, slug_index

logger = logging.getLogger(__name__)


def reconcile_items(store: StateStore, current_items: Sequence[CatalogItem]) -> List[str]:
    """Append playlist items that are not tracked yet.

    Tracked items are never touched, even if their title or playlist
    position changed. New items continue numbering from the highest
    existing slug index; slots are never reused or renumbered.

    Args:
        store: Loaded state store
        current_items: Current playlist listing, in playlist order

    Returns:
        Ids actually added, in playlist order (empty if nothing was new,
        in which case nothing is written)
    """
    with store.lock:
        record = store.get_record()
        if record is None:
            raise RuntimeError("State not loaded (call load() or initialize() first)")

        indices = [slug_index(item.output_dir) for item in record.videos.values()]
        known = [i for i in indices if i is not None]
        next_index = (max(known) if known else len(record.videos)) + 1

        added: Dict[str, ItemRecord] = {}
        for item in current_items:
            if item.id in record.videos or item.id in added:
                continue
            added[item.id] = ItemRecord(title=item.title, output_dir=make_slug(next_index, item.title))
            next_index += 1

        if added:
            store.add_items(added)
            logger.info("Playlist grew: %d new items tracked", len(added))

        return list(added)
