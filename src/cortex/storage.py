"""Persistence of built distributions."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Sequence, Union

from .distribution import DistributionSegment
from .errors import MalformedPersistedStateError, MissingPersistedStateError

logger = logging.getLogger(__name__)

GROUPS_FILE = "groups.json"


class DistributionStore:
    """Read and write per-stream distributions as JSON.

    File layout: a list with one entry per stream, each a list of
    ``{"ratioFrom": ..., "ratioTo": ..., "count": ...}`` records.
    """

    def __init__(self, directory: Union[str, Path], filename: str = GROUPS_FILE):
        self.path = Path(directory) / filename

    def exists(self) -> bool:
        return self.path.exists()

    def save(self, distributions: Sequence[Sequence[DistributionSegment]]) -> Path:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = [[seg.to_dict() for seg in segments] for segments in distributions]
        with open(self.path, "w") as f:
            json.dump(data, f, indent=2)
        logger.info("Saved %d distributions to %s", len(data), self.path)
        return self.path

    def load(self) -> List[List[DistributionSegment]]:
        if not self.path.exists():
            raise MissingPersistedStateError(self.path)

        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise MalformedPersistedStateError(self.path, str(e)) from e

        if not isinstance(data, list) or not data:
            raise MalformedPersistedStateError(self.path, "expected a non-empty list of streams")

        distributions = []
        for index, records in enumerate(data):
            if not isinstance(records, list) or not records:
                raise MalformedPersistedStateError(self.path, f"stream {index} has no segments")
            try:
                segments = [DistributionSegment.from_dict(rec) for rec in records]
            except (KeyError, TypeError, ValueError) as e:
                raise MalformedPersistedStateError(self.path, f"stream {index}: bad segment {e}") from e

            for prev, cur in zip(segments, segments[1:]):
                if cur.ratio_from < prev.ratio_from:
                    raise MalformedPersistedStateError(self.path, f"stream {index} segments not sorted")
            distributions.append(segments)

        logger.info("Loaded %d distributions from %s", len(distributions), self.path)
        return distributions
