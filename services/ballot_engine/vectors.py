import numpy as np
from typing import List, Sequence

from .models import AxisScore, VectorMismatchError

def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two equally sized vectors.

    A zero vector has no direction, so any comparison with one is 0.0.

    Raises:
        VectorMismatchError: If the vectors differ in length or are empty.
    """
    if len(a) != len(b):
        raise VectorMismatchError("Vectors must be the same length")
    if len(a) == 0:
        raise VectorMismatchError("Vectors cannot be empty")

    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    similarity = float(np.dot(va, vb) / (norm_a * norm_b))
    return max(-1.0, min(1.0, similarity))

def calculate_user_vector(axis_scores: List[AxisScore], axis_ids: Sequence[str]) -> List[float]:
    """Shrunk scores in the order of axis_ids; axes without a score read as neutral 0.0."""
    by_axis = {s.axis_id: s.shrunk for s in axis_scores}
    return [by_axis.get(axis_id, 0.0) for axis_id in axis_ids]

def similarity_to_percent(similarity: float) -> int:
    """Maps a similarity in [-1, 1] to a 0-100 display percentage."""
    clamped = max(-1.0, min(1.0, similarity))
    return int(round((clamped + 1) / 2 * 100))
