"""Embedding model management."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterable, Literal, Protocol, Sequence

import numpy as np
from sentence_transformers import SentenceTransformer

DEFAULT_MODEL = "BAAI/bge-small-en-v1.5"

logger = logging.getLogger(__name__)


class EmbeddingProvider(Protocol):
    """Anything that maps text to fixed-dimension vectors."""

    @property
    def dimension(self) -> int: ...

    def embed(self, texts: Sequence[str] | Iterable[str]) -> np.ndarray: ...

    def embed_query(self, text: str) -> np.ndarray: ...


def detect_device() -> str | None:
    """Pick the best available torch device.

    Returns:
        "cuda" for NVIDIA/ROCm GPUs, "mps" for Apple Silicon, or None to let
        sentence-transformers fall back to the CPU.
    """
    try:
        import torch

        if torch.cuda.is_available():
            logger.debug(f"CUDA GPU detected: {torch.cuda.get_device_name(0)}")
            return "cuda"

        if hasattr(torch.backends, "mps") and torch.backends.mps.is_available():
            logger.debug("Apple MPS GPU detected")
            return "mps"

        logger.debug("No GPU detected, will use CPU")
        return None
    except ImportError:
        logger.debug("PyTorch not available for GPU detection")
        return None
    except Exception as e:
        logger.debug(f"GPU detection failed: {e}")
        return None


@dataclass(slots=True)
class EmbeddingConfig:
    model_name: str = DEFAULT_MODEL
    batch_size: int = 16
    normalize: bool = True
    backend: Literal["torch", "onnx", "openvino"] = "torch"
    device: str | None = None


class EmbeddingModel:
    """Thin wrapper around `SentenceTransformer` for query and document embeddings.

    The underlying model is loaded on first use and shared by every later call,
    so constructing the wrapper is cheap.
    """

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self.config = config or EmbeddingConfig()
        self._model: SentenceTransformer | None = None
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._model is not None

    @property
    def model(self) -> SentenceTransformer:
        if self._model is None:
            with self._lock:
                if self._model is None:
                    self._model = self._load_model()
        return self._model

    @property
    def dimension(self) -> int:
        return int(self.model.get_sentence_embedding_dimension())

    def _load_model(self) -> SentenceTransformer:
        """Load the SentenceTransformer model, falling back to PyTorch if needed."""
        device = self.config.device or detect_device()
        logger.info("Loading embedding model %s", self.config.model_name)
        try:
            model = SentenceTransformer(
                self.config.model_name, backend=self.config.backend, device=device
            )
        except Exception as e:
            if self.config.backend == "torch":
                raise
            logger.warning(
                f"Failed to load model with backend '{self.config.backend}': {e}. "
                "Falling back to PyTorch."
            )
            self.config.backend = "torch"
            model = SentenceTransformer(self.config.model_name, backend="torch", device=device)

        info_parts = [f"Backend: {self.config.backend}"]
        if device:
            info_parts.append(f"Device: {device}")
        logger.info(" | ".join(info_parts))
        return model

    def embed(self, texts: Sequence[str] | Iterable[str]) -> np.ndarray:
        """Return float32 embeddings for input texts."""
        sentences = list(texts)
        embeddings = self.model.encode(
            sentences,
            batch_size=self.config.batch_size,
            show_progress_bar=False,
            convert_to_numpy=True,
            normalize_embeddings=self.config.normalize,
        )
        return embeddings.astype("float32", copy=False)

    def embed_query(self, text: str) -> np.ndarray:
        """Convenience wrapper for single-query embedding."""
        return self.embed([text])[0]
