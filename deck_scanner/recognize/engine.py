"""Recognition fusion: classifier + OCR verification + pricing."""

from datetime import datetime
from typing import Callable, List, Optional

import numpy as np

from ..core.types import DeckLabel, RecognitionResult, utc_now
from ..ocr.extract import TesseractTextRecognizer, TextRecognizer
from ..ocr.verify import verify_text
from ..pricing.lookup import lookup_pricing
from ..store.db import DeckStore
from ..utils.config import Settings, settings as default_settings
from ..utils.error_handler import InitializationFailure, RecognitionUnavailable
from ..utils.log import LoggerMixin
from ..vision.classifier import Classifier, load_labels, top_prediction_index
from ..vision.preprocess import BufferScope, preprocess_frame


class RecognitionEngine(LoggerMixin):
    """Turns a raw frame into a verified, priced RecognitionResult.

    The classifier and text recognizer are injected so the fusion logic can
    run against deterministic stubs. Nothing is retried here: a backend
    failure surfaces as RecognitionUnavailable for that frame only.
    """

    def __init__(
        self,
        classifier: Classifier,
        text_recognizer: TextRecognizer,
        labels: List[DeckLabel],
        store: DeckStore,
        scope_factory: Callable[[], BufferScope] = BufferScope,
        clock: Callable[[], datetime] = utc_now,
    ):
        if not labels:
            raise InitializationFailure("Classifier label set is empty")
        self.classifier = classifier
        self.text_recognizer = text_recognizer
        self.labels = labels
        self.store = store
        self.scope_factory = scope_factory
        self.clock = clock

    @classmethod
    def from_settings(cls, store: DeckStore, config: Optional[Settings] = None) -> "RecognitionEngine":
        """Load the model, labels and OCR backend named in settings."""
        # torch loads only when a real engine is built
        from ..vision.torch_classifier import TorchScriptClassifier

        config = config or default_settings
        try:
            labels = load_labels(config.LABELS_PATH)
            classifier = TorchScriptClassifier(config.MODEL_PATH)
            text_recognizer = TesseractTextRecognizer(config.TESSERACT_PATH)
        except Exception as e:
            raise InitializationFailure(
                "Recognition backends unavailable",
                details={
                    "model_path": config.MODEL_PATH,
                    "labels_path": config.LABELS_PATH,
                    "error": str(e),
                },
            ) from e
        return cls(classifier, text_recognizer, labels, store)

    def evaluate(self, frame: np.ndarray) -> RecognitionResult:
        """Classify, verify and price one frame.

        Raises:
            RecognitionUnavailable: classifier or OCR failed, or the frame
                could not be turned into classifier input
        """
        context = self.log_start("evaluate")

        with self.scope_factory() as scope:
            try:
                batch = preprocess_frame(frame, scope)
                probabilities = scope.track(
                    np.asarray(self.classifier.classify(batch), dtype=np.float32).reshape(-1)
                )
            except Exception as e:
                self.log_error(context, e, stage="classify")
                raise RecognitionUnavailable(
                    "Classifier unavailable", details={"error": str(e)}
                ) from e

            if probabilities.shape[0] != len(self.labels):
                error = RecognitionUnavailable(
                    "Classifier output does not match label set",
                    details={"outputs": int(probabilities.shape[0]), "labels": len(self.labels)},
                )
                self.log_error(context, error, stage="classify")
                raise error

            top_idx = top_prediction_index(probabilities)
            confidence = float(probabilities[top_idx])

        label = self.labels[top_idx]

        try:
            text = self.text_recognizer.recognize_text(frame)
        except Exception as e:
            self.log_error(context, e, stage="ocr", catalog_id=label.id)
            raise RecognitionUnavailable("OCR unavailable", details={"error": str(e)}) from e

        verification = verify_text(text, label.manufacturer, label.casino)
        now = self.clock()
        pricing = lookup_pricing(self.store, label.id, now)

        result = RecognitionResult(
            catalog_id=label.id,
            name=label.name,
            manufacturer=label.manufacturer,
            casino=label.casino,
            classification_confidence=confidence,
            text_verification=verification,
            pricing=pricing.snapshot(),
            observed_at=now,
        )
        self.log_success(
            context,
            catalog_id=label.id,
            confidence=round(confidence, 4),
            verification_score=verification.verification_score,
            pricing_source=pricing.data_source,
        )
        return result
