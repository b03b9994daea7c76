"""TorchScript adapter for the deck classifier."""

from pathlib import Path
from typing import List, Union

import numpy as np
import torch

from ..utils.log import LoggerMixin


class TorchScriptClassifier(LoggerMixin):
    """Runs a TorchScript image classifier exported for NCHW input."""

    def __init__(self, model_path: Union[str, Path], device: str | None = None):
        if device is None:
            device = "mps" if torch.backends.mps.is_available() else ("cuda" if torch.cuda.is_available() else "cpu")
        self.device = device
        self.model = torch.jit.load(str(model_path), map_location=self.device)
        self.model.eval()
        self.logger.info("Classifier loaded", model_path=str(model_path), device=self.device)

    def classify(self, batch: np.ndarray) -> List[float]:
        with torch.no_grad():
            inputs = torch.from_numpy(np.ascontiguousarray(batch)).permute(0, 3, 1, 2).to(self.device)
            outputs = self.model(inputs)
            scores = outputs[0]
            # Raw logits are turned into probabilities
            if bool((scores < 0).any()) or abs(float(scores.sum()) - 1.0) > 1e-3:
                scores = torch.softmax(scores, dim=-1)
            probabilities = scores.cpu().numpy().astype("float32").tolist()
            del inputs, outputs, scores
        return probabilities
