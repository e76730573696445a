import math
import numbers
from collections import deque

import numpy as np


class InvalidWeightError(ValueError):
    pass


class InvalidTableError(ValueError):
    pass


class AliasTable:
    """
    Probability and alias arrays for Vose's alias method.

    The arrays are read-only once built. A quantized table stores
    probabilities as integers in [0, 100], otherwise as floats in [0, 1].
    """
    def __init__(self, probability, alias, quantized=False):
        probability = np.array(
            probability,
            dtype=np.int64 if quantized else np.float64,
            )
        alias = np.array(alias, dtype=np.int64)
        probability.setflags(write=False)
        alias.setflags(write=False)
        self.probability = probability
        self.alias = alias
        self.quantized = bool(quantized)

    def __len__(self):
        return len(self.probability)

    def __eq__(self, other):
        if not isinstance(other, AliasTable):
            return NotImplemented
        return (self.quantized == other.quantized
                and np.array_equal(self.probability, other.probability)
                and np.array_equal(self.alias, other.alias))

    def __repr__(self):
        return "AliasTable(probability=%r, alias=%r, quantized=%r)" % (
            self.probability.tolist(), self.alias.tolist(), self.quantized)

    def thresholds(self):
        """Acceptance thresholds as floats in [0, 1]."""
        if self.quantized:
            return self.probability / 100.0
        return self.probability.astype(np.float64)


def _parse_weights(weights):
    try:
        weights = list(weights)
    except TypeError as e:
        raise InvalidWeightError("Weights must be a sequence.") from e

    parsed = []
    for i, w in enumerate(weights):
        try:
            p = float(w)
        except (TypeError, ValueError, OverflowError) as e:
            raise InvalidWeightError(
                f"Non-numerical value in distribution at index {i}: {w!r}"
                ) from e
        if not math.isfinite(p):
            raise InvalidWeightError(
                f"Non-finite value in distribution at index {i}: {w!r}"
                )
        if p < 0:
            raise InvalidWeightError(
                f"Negative value in distribution at index {i}: {w!r}"
                )
        parsed.append(p)
    return parsed


def build(weights, quantize=False):
    """
    Builds an alias table from a vector of non-negative weights.

    Args:
        weights (sequence): Weights of any magnitude, one per category.
            Values only need to be convertible with float().
        quantize (bool): If True, probabilities are floored onto an
            integer 0-100 scale, matching historical rarity output.

    Returns:
        AliasTable
    """
    q = _parse_weights(weights)
    total = sum(q)
    if total <= 0:
        raise InvalidWeightError(
            f"Total weight must be positive. Got {total} "
            f"from {len(q)} weights."
            )

    n = len(q)
    scale = n / total
    # total overflowed, or is so small that n / total overflows
    if not 0 < scale < math.inf:
        peak = max(q)
        q = [p / peak for p in q]
        scale = n / sum(q)
    q = [p * scale for p in q]
    J = list(range(n))
    overfull, underfull = deque(), deque()

    for i, qi in enumerate(q):
        if qi >= 1.0:
            overfull.append(i)
        else:
            underfull.append(i)

    # Each pass fills one underfull slot exactly, using surplus from the
    # head of the overfull queue.
    while overfull and underfull:
        small = underfull.popleft()
        large = overfull.popleft()
        J[small] = large
        q[large] += q[small] - 1.0
        if q[large] >= 1.0:
            overfull.append(large)
        else:
            underfull.append(large)

    # Only rounding error leaves entries here.
    for leftover in list(overfull) + list(underfull):
        q[leftover] = 1.0
        J[leftover] = leftover

    if quantize:
        q = [math.floor(p * 100) for p in q]

    return AliasTable(q, J, quantized=quantize)


def check_table(table):
    if not isinstance(table, AliasTable):
        raise InvalidTableError(
            f"Expected an AliasTable, got {type(table).__name__}."
            )
    N = len(table.probability)
    if N == 0:
        raise InvalidTableError("Alias table is empty.")
    if len(table.alias) != N:
        raise InvalidTableError(
            f"Length mismatch: {N} probabilities but "
            f"{len(table.alias)} aliases."
            )
    if np.any(table.alias < 0) or np.any(table.alias >= N):
        raise InvalidTableError(f"Alias index out of range [0, {N}).")
    return N


def _get_rng(rng):
    if isinstance(rng, np.random.Generator):
        return rng
    return np.random.default_rng(rng)


def sample(table, n, rng=None, legacy=False):
    """
    Draws n independent category indices from an alias table.

    The default draw picks a slot uniformly from [0, N) and accepts it
    against its threshold. legacy=True reproduces the historical rarity
    draw instead: the seed comes from [0, n), the slot is seed mod N and
    the acceptance test compares seed * 100 / n with the 0-100 threshold.

    Args:
        table (AliasTable): Output of build().
        n (int): Number of draws.
        rng: None, an int seed or a numpy Generator.
        legacy (bool): Use the historical seed-coupled draw.

    Returns:
        np.ndarray: int64 array of length n with values in [0, N).
    """
    N = check_table(table)
    if isinstance(n, bool) or not isinstance(n, numbers.Integral):
        raise ValueError(f"Sample count must be an integer. Got {n!r}.")
    n = int(n)
    if n < 0:
        raise ValueError(f"Sample count must be non-negative. Got {n}.")
    if n == 0:
        return np.empty(0, dtype=np.int64)
    rng = _get_rng(rng)

    if legacy:
        seed = rng.integers(0, n, size=n)
        index = seed % N
        threshold = table.probability if table.quantized \
            else table.probability * 100
        accept = seed * 100 / n < threshold[index]
    else:
        index = rng.integers(0, N, size=n)
        if table.quantized:
            accept = rng.integers(0, 100, size=n) < table.probability[index]
        else:
            accept = rng.random(n) < table.probability[index]

    return np.where(accept, index, table.alias[index]).astype(np.int64)


class AliasSampler:
    def __init__(self, weights, quantize=False, rng=None):
        self.table = build(weights, quantize=quantize)
        self.rng = _get_rng(rng)

    def __len__(self):
        return len(self.table)

    def sample(self):
        return int(sample(self.table, 1, rng=self.rng)[0])

    def sample_many(self, n, legacy=False):
        return sample(self.table, n, rng=self.rng, legacy=legacy)
