import itertools
import time

import numpy as np

from radix import dft, fft_matrix, fft_recursive, fft_vectorized

ENGINES = {
    "recursive": fft_recursive,
    "matrix": fft_matrix,
    "vectorized": fft_vectorized,
}


class NumericDivergence(AssertionError):
    """An engine's output left the tolerance band around the expected spectrum."""

    def __init__(self, index: int, difference: float, atol: float, label: str = ""):
        self.index = index
        self.difference = difference
        self.atol = atol
        prefix = f"{label}: " if label else ""
        super().__init__(
            f"{prefix}bin {index} differs by {difference:.3e} (atol {atol:.1e})"
        )


# ---------------- comparisons ---------------- #

def default_tolerance(dtype) -> float:
    """1e-4 for single (or half) precision, 1e-8 otherwise."""
    dtype = np.dtype(dtype)
    if dtype.kind in "fc" and np.finfo(dtype).bits <= 32:
        return 1e-4
    return 1e-8


def max_divergence(a, b):
    """Return ``(index, value)`` of the largest absolute difference between *a* and *b*."""
    diff = np.abs(np.asarray(a) - np.asarray(b))
    if diff.size == 0:
        raise ValueError("cannot compare empty spectra")
    idx = int(np.argmax(diff))
    return idx, float(diff[idx])


def assert_close(actual, expected, atol=None, label: str = "") -> None:
    """Raise NumericDivergence at the first bin where ``|actual - expected| > atol``."""
    actual = np.asarray(actual)
    expected = np.asarray(expected)
    if actual.shape != expected.shape:
        raise AssertionError(f"shape {actual.shape} != {expected.shape}")
    if atol is None:
        atol = default_tolerance(np.result_type(actual, expected))

    diff = np.abs(actual - expected)
    # NaN never compares below atol
    bad = np.flatnonzero(~(diff <= atol))
    if bad.size:
        idx = int(bad[0])
        raise NumericDivergence(idx, float(diff[idx]), atol, label)


def assert_matches_reference(engine, x, atol=None, reference=dft) -> np.ndarray:
    """Run *engine* and *reference* on *x* and compare them bin by bin.

    The tolerance defaults to the precision of *x* itself. Returns the
    engine's spectrum so callers can keep checking it.
    """
    x = np.asarray(x)
    if atol is None:
        atol = default_tolerance(x.dtype)
    out = engine(x)
    assert_close(out, reference(x), atol, label=getattr(engine, "__name__", ""))
    return out


def cross_check(x, engines=None, atol: float = 1e-6) -> dict:
    """Check every pair of *engines* agrees on *x*; return their outputs by name."""
    engines = ENGINES if engines is None else engines
    outputs = {name: engine(x) for name, engine in engines.items()}
    for a, b in itertools.combinations(outputs, 2):
        assert_close(outputs[a], outputs[b], atol, label=f"{a} vs {b}")
    return outputs


# ---------------- quick benchmark / accuracy check ---------------- #

def check_accuracy(N, seed=None):
    print(f"\n🚀 Radix-2 FFT engines, N = {N}")
    rng = np.random.default_rng(seed)
    x = rng.standard_normal(N) + 1j * rng.standard_normal(N)
    X_np = np.fft.fft(x)

    for name, engine in ENGINES.items():
        start = time.perf_counter()
        X = engine(x)
        elapsed = time.perf_counter() - start

        rel_err = np.max(np.abs(X - X_np) / np.maximum(np.abs(X_np), 1e-12))
        print(f"✅ {name:10s} {elapsed:8.4f} s   max relative error = {rel_err:.2e}")


if __name__ == "__main__":
    for N in (1 << 10, 1 << 14, 1 << 16):
        check_accuracy(N)
