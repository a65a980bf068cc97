# matching.py
# Nearest-reference lookup for face descriptors.

from typing import List, Optional, Tuple

import numpy as np

from config import UNKNOWN_LABEL


def find_best_match(embedding: np.ndarray, known_embeddings: np.ndarray) -> Tuple[Optional[int], Optional[float]]:
    if known_embeddings.size == 0:
        return None, None
    dists = np.linalg.norm(known_embeddings - embedding.reshape(1, -1), axis=1)
    idx = int(np.argmin(dists))
    return idx, float(dists[idx])


def label_for(embedding: np.ndarray, labels: List[str], known_embeddings: np.ndarray, threshold: float) -> str:
    """Label of the closest reference within ``threshold``, else "Unknown"."""
    idx, dist = find_best_match(embedding, known_embeddings)
    if idx is None or dist > threshold:
        return UNKNOWN_LABEL
    return labels[idx]
