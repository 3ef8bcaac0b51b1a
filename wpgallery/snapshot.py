"""Build-time snapshots of an aggregate as a JSON file."""

from __future__ import annotations

import json
import logging
from collections import Counter
from pathlib import Path
from typing import Dict, Iterable, List, Union

from .models import GalleryItem

logger = logging.getLogger("wpgallery")

PathLike = Union[str, Path]


def write_snapshot(aggregate: Iterable[GalleryItem], path: PathLike) -> Path:
    """Write the aggregate as a JSON array and return the resolved path."""
    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)
    records = [item.to_dict() for item in aggregate]
    destination.write_text(
        json.dumps(records, ensure_ascii=False, indent=2) + "\n",
        encoding="utf-8",
    )
    logger.info("Saved %d item(s) to %s", len(records), destination)
    return destination


def load_snapshot(path: PathLike) -> List[GalleryItem]:
    records = json.loads(Path(path).read_text(encoding="utf-8"))
    return [GalleryItem.from_dict(record) for record in records]


def count_by_year(aggregate: Iterable[GalleryItem]) -> Dict[int, int]:
    """Item counts per year, most recent year first."""
    counts = Counter(item.year for item in aggregate)
    return dict(sorted(counts.items(), reverse=True))
