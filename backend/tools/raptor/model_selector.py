"""
RAPTOR Model Selector - Gaussian mixture fitting with BIC model-order search

Fits k-component mixtures for k = 1..K and keeps the k with the lowest
Bayesian Information Criterion:

    BIC(k) = -2 * logL + k * (d + 1) * ln(N)

The search stops early once 3 consecutive candidates fail to improve on the
best score (and k > 3). A candidate that fails numerically is skipped.
"""

import hashlib
import logging
import math
import threading
import warnings
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import numpy as np
from sklearn.exceptions import ConvergenceWarning
from sklearn.mixture import GaussianMixture

from config import get_config
from errors import ClusteringError

logger = logging.getLogger(__name__)


@dataclass
class MixtureSelection:
    """Outcome of a model-order search."""

    n_components: int
    bic_scores: Dict[int, float] = field(default_factory=dict)
    model: Optional[GaussianMixture] = None  # None when k was chosen without fitting

    def responsibilities(self, data: np.ndarray) -> np.ndarray:
        """Per-point component probabilities, shape (N, n_components)."""
        if self.model is None:
            return np.ones((len(data), 1))
        return self.model.predict_proba(data)


class ModelCache:
    """
    Bounded read-through cache: embedding batch + fit params -> MixtureSelection.

    Evicts the oldest inserted key on overflow. Thread-safe. A miss only costs
    a refit, so callers must never depend on a hit.
    """

    def __init__(self, capacity: int = 100):
        self.capacity = capacity
        self._entries: "OrderedDict[str, MixtureSelection]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(data: np.ndarray, **params) -> str:
        digest = hashlib.sha1(np.ascontiguousarray(data, dtype=np.float64).tobytes())
        digest.update(repr(data.shape).encode())
        digest.update(repr(sorted(params.items())).encode())
        return digest.hexdigest()

    def get(self, key: str) -> Optional[MixtureSelection]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
            else:
                self.hits += 1
            return entry

    def put(self, key: str, selection: MixtureSelection) -> None:
        if self.capacity <= 0:
            return
        with self._lock:
            if key in self._entries:
                self._entries[key] = selection
                return
            while len(self._entries) >= self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Model cache full, evicted {evicted[:8]}")
            self._entries[key] = selection

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.debug("Model cache cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class ClusterModelSelector:
    """
    Picks the Gaussian mixture component count by BIC.

    Determinism: every fit uses the same random_state, so identical input and
    seed give an identical selection.
    """

    COVARIANCE_TYPE = "diag"
    TOLERANCE = 1e-6
    EARLY_STOP_PATIENCE = 3
    EARLY_STOP_MIN_K = 3

    def __init__(
        self,
        seed: Optional[int] = None,
        reg_covar: Optional[float] = None,
        candidate_max_iter: Optional[int] = None,
        cache: Optional[ModelCache] = None,
        config=None,
    ):
        """
        Args:
            seed: Random state for every EM initialization (default from config)
            reg_covar: Covariance regularization for stability (default from config)
            candidate_max_iter: EM iteration budget per candidate k
            cache: Optional shared ModelCache
            config: RuntimeConfig (defaults to the singleton)
        """
        config = config or get_config()
        self.seed = config.seed if seed is None else seed
        self.reg_covar = config.reg_covar if reg_covar is None else reg_covar
        self.candidate_max_iter = candidate_max_iter or config.selector_max_iterations
        self.cache = cache

    def fit(self, data: np.ndarray, n_components: int, max_iter: int) -> GaussianMixture:
        """Fit one mixture. Raises ClusteringError(stage="fit") on any failure."""
        model = GaussianMixture(
            n_components=n_components,
            covariance_type=self.COVARIANCE_TYPE,
            max_iter=max_iter,
            tol=self.TOLERANCE,
            reg_covar=self.reg_covar,
            random_state=self.seed,
        )
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", category=ConvergenceWarning)
                model.fit(data)
        except Exception as e:
            raise ClusteringError(
                f"Mixture fit failed for k={n_components}",
                details=str(e),
                stage="fit",
                n_components=n_components,
                n_samples=len(data),
            ) from e
        return model

    def bic(self, model: GaussianMixture, data: np.ndarray) -> float:
        n_samples, n_features = data.shape
        log_likelihood = model.score(data) * n_samples
        n_params = model.n_components * (n_features + 1)
        return -2.0 * log_likelihood + n_params * math.log(n_samples)

    def find_optimal_k(self, data: np.ndarray, max_components: int) -> Tuple[int, Dict[int, float]]:
        """
        Search k = 1..min(max_components, N - 1) for the lowest BIC.

        Returns:
            (best_k, {k: bic}) - scores only for candidates that fitted
        """
        n_samples = len(data)
        if max_components <= 1 or n_samples <= 1:
            return 1, {}

        best_k = 1
        best_score = math.inf
        no_improvement = 0
        scores: Dict[int, float] = {}

        upper = min(max_components, n_samples - 1)
        logger.debug(f"BIC search over k=1..{upper} for {n_samples} points")

        for k in range(1, upper + 1):
            try:
                model = self.fit(data, k, self.candidate_max_iter)
                score = self.bic(model, data)
                if not math.isfinite(score):
                    raise ClusteringError(f"Non-finite BIC for k={k}", stage="fit", n_components=k)
            except (ClusteringError, ValueError, ArithmeticError) as e:
                logger.debug(f"Skipping k={k}: {e}")
                continue

            scores[k] = score
            if score < best_score:
                best_score = score
                best_k = k
                no_improvement = 0
            else:
                no_improvement += 1

            if no_improvement >= self.EARLY_STOP_PATIENCE and k > self.EARLY_STOP_MIN_K:
                logger.debug(f"Early stop at k={k}, no BIC improvement since k={best_k}")
                break

        logger.debug(f"Optimal k={best_k} (BIC={best_score:.2f})")
        return best_k, scores

    def select(self, data: np.ndarray, max_components: int, max_iter: int) -> MixtureSelection:
        """
        Find the best k and refit it with the caller's iteration budget.

        Args:
            data: (N, d) embedding matrix
            max_components: Largest k to try
            max_iter: EM iterations for the final model

        Returns:
            MixtureSelection (model is None for degenerate inputs)

        Raises:
            ClusteringError: If the final refit fails
        """
        if max_components <= 1 or len(data) <= 1:
            return MixtureSelection(n_components=1)

        key = None
        if self.cache is not None:
            key = ModelCache.make_key(
                data,
                max_components=max_components,
                max_iter=max_iter,
                seed=self.seed,
                reg_covar=self.reg_covar,
                candidate_max_iter=self.candidate_max_iter,
            )
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug(f"Model cache hit for {len(data)} points")
                return cached

        best_k, scores = self.find_optimal_k(data, max_components)
        selection = MixtureSelection(
            n_components=best_k,
            bic_scores=scores,
            model=self.fit(data, best_k, max_iter),
        )

        if self.cache is not None:
            self.cache.put(key, selection)
        return selection
