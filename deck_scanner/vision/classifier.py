"""Deck classifier interface and label loading."""

import json
from pathlib import Path
from typing import List, Protocol, Sequence, Union

import numpy as np

from ..core.types import DeckLabel
from ..utils.error_handler import ConfigurationError, ErrorContext, validate_required_fields


class Classifier(Protocol):
    def classify(self, batch: np.ndarray) -> Sequence[float]:
        """Probability vector over the fixed label set for a (1, H, W, 3) batch."""
        ...


def top_prediction_index(probabilities: Sequence[float]) -> int:
    """Index of the highest probability; the lowest index wins exact ties."""
    if len(probabilities) == 0:
        raise ValueError("Empty probability vector")
    best_idx = 0
    best_val = probabilities[0]
    for idx in range(1, len(probabilities)):
        if probabilities[idx] > best_val:
            best_val = probabilities[idx]
            best_idx = idx
    return best_idx


def load_labels(path: Union[str, Path]) -> List[DeckLabel]:
    """Load the label file: a JSON list index-aligned with the classifier output."""
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, list) or not raw:
        raise ConfigurationError("Label file must be a non-empty JSON list", details={"path": str(path)})

    context = ErrorContext(operation="load labels", module=__name__, function="load_labels")
    labels = []
    for item in raw:
        validate_required_fields(item, ["id", "name", "manufacturer"], context)
        labels.append(
            DeckLabel(
                id=str(item["id"]),
                name=item["name"],
                manufacturer=item["manufacturer"],
                casino=item.get("casino") or None,
            )
        )
    return labels
