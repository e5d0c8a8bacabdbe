"""
K-means clustering over RGB samples.

A plain Lloyd's iteration with an injectable random generator so that the
centroid initialization is reproducible under test.
"""
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
from loguru import logger


DEFAULT_MAX_ITERATIONS = 50


@dataclass(frozen=True)
class Cluster:
    """A group of samples represented by its mean color and member count."""
    centroid: Tuple[float, float, float]
    size: int


class KMeansClusterer:
    """
    Lloyd's algorithm in 3-D Euclidean RGB space.

    Initial centroids are ``k`` samples drawn uniformly with replacement, so
    duplicate starting centroids are possible. A centroid that loses all of
    its members keeps its previous position and is never reseeded.
    """

    def __init__(self, k: int = 8,
                 max_iterations: int = DEFAULT_MAX_ITERATIONS,
                 rng: Optional[np.random.Generator] = None,
                 rng_seed: Optional[int] = None):
        self.k = k
        self.max_iterations = max(1, max_iterations or DEFAULT_MAX_ITERATIONS)
        self.rng = rng if rng is not None else np.random.default_rng(rng_seed)

    def fit(self, samples: Union[np.ndarray, Sequence[Sequence[int]]]) -> List[Cluster]:
        """
        Cluster samples and return non-empty clusters, largest first.

        Args:
            samples: ``(N, 3)`` RGB samples

        Returns:
            Clusters with ``size > 0`` sorted by size descending; ``[]`` for
            empty input or ``k <= 0``
        """
        pixels = np.asarray(samples, dtype=np.float64).reshape(-1, 3)
        n = pixels.shape[0]
        if n == 0 or not self.k or self.k <= 0:
            return []

        k = int(self.k)
        centroids = pixels[self.rng.integers(0, n, size=k)].copy()
        assignments = np.full(n, -1, dtype=np.int64)

        changed = True
        iterations = 0
        while changed and iterations < self.max_iterations:
            labels = self._nearest_centroid(pixels, centroids)
            changed = bool(np.any(labels != assignments))
            assignments = labels

            counts = np.bincount(assignments, minlength=k)
            sums = np.zeros((k, 3), dtype=np.float64)
            np.add.at(sums, assignments, pixels)
            populated = counts > 0
            centroids[populated] = sums[populated] / counts[populated, None]
            iterations += 1

        counts = np.bincount(assignments, minlength=k)
        clusters = [
            Cluster(centroid=tuple(float(c) for c in centroids[j]), size=int(counts[j]))
            for j in range(k)
            if counts[j] > 0
        ]
        clusters.sort(key=lambda cluster: cluster.size, reverse=True)

        logger.debug(f"K-means converged after {iterations} iterations: "
                     f"{len(clusters)}/{k} clusters populated from {n} samples")
        return clusters

    @staticmethod
    def _nearest_centroid(pixels: np.ndarray, centroids: np.ndarray) -> np.ndarray:
        # argmin returns the first minimum, so ties go to the lower centroid index
        deltas = pixels[:, None, :] - centroids[None, :, :]
        distances = np.einsum("nkc,nkc->nk", deltas, deltas)
        return np.argmin(distances, axis=1)


def kmeans_cluster(samples: Union[np.ndarray, Sequence[Sequence[int]]], k: int,
                   max_iterations: int = DEFAULT_MAX_ITERATIONS,
                   rng: Optional[np.random.Generator] = None) -> List[Cluster]:
    """Functional shortcut for ``KMeansClusterer(k, max_iterations, rng).fit(samples)``."""
    return KMeansClusterer(k=k, max_iterations=max_iterations, rng=rng).fit(samples)
