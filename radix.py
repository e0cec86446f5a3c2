import threading
from collections import OrderedDict
from typing import Callable, Optional

import numpy as np

# ---------------- errors ---------------- #

class InvalidLength(ValueError):
    """Length is zero, negative, or not a power of two where one is required."""


class DimensionMismatch(RuntimeError):
    """A butterfly was handed halves or twiddles of inconsistent shape."""


# ---------------- helpers ---------------- #

def _log2(n, minimum: int = 1) -> int:
    """Return log2(*n*), raising InvalidLength unless *n* is a power of two >= *minimum*."""
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or n < minimum or n & (n - 1):
        raise InvalidLength(f"length must be a power of two >= {minimum}, got {n!r}")
    return int(n).bit_length() - 1


def _as_signal(x) -> np.ndarray:
    x = np.asarray(x, dtype=complex)
    if x.ndim != 1:
        raise ValueError(f"expected a 1-D sequence, got shape {x.shape}")
    return x


def bit_reverse_permutation(n: int) -> np.ndarray:
    """Bit-reversal permutation for power-of-two *n*.

    ``perm[i]`` is *i* with its low ``log2(n)`` bits mirrored. Bits are
    peeled off all indices at once, so there is no fixed word width.
    """
    bits = _log2(n)
    idx = np.arange(n, dtype=np.intp)
    rev = np.zeros(n, dtype=np.intp)
    for _ in range(bits):
        rev = (rev << 1) | (idx & 1)
        idx >>= 1
    return rev


def twiddles(m: int) -> np.ndarray:
    """Twiddle table ``exp(-2j*pi*k/m)`` for ``k < m/2``, straight from the closed form."""
    _log2(m, minimum=2)
    k = np.arange(m // 2)
    return np.exp(-2j * np.pi * k / m)


def _butterfly(a: np.ndarray, b: np.ndarray, w: np.ndarray, axis: int = -1):
    """Return ``(a + w*b, a - w*b)`` with *w* running along *axis*."""
    if a.shape != b.shape or w.shape != (a.shape[axis],):
        raise DimensionMismatch(
            f"butterfly halves {a.shape} / {b.shape} do not fit twiddles {w.shape}"
        )
    shape = [1] * a.ndim
    shape[axis] = w.size
    t = w.reshape(shape) * b
    return a + t, a - t


# ---------------- table cache ---------------- #

class TableCache:
    """Bounded, thread-safe store of twiddle tables and permutations.

    Tables are built once per size under a lock, frozen, and then shared
    read-only. The least recently used entry is dropped once more than
    *maxsize* tables are held.
    """

    def __init__(self, maxsize: int = 32):
        if maxsize < 1:
            raise ValueError(f"maxsize must be positive, got {maxsize}")
        self.maxsize = maxsize
        self._tables = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tables)

    def clear(self) -> None:
        with self._lock:
            self._tables.clear()

    def twiddles(self, m: int) -> np.ndarray:
        return self._get("twiddles", m, twiddles)

    def permutation(self, n: int) -> np.ndarray:
        return self._get("permutation", n, bit_reverse_permutation)

    def _get(self, kind: str, size: int, build: Callable[[int], np.ndarray]) -> np.ndarray:
        key = (kind, size)
        with self._lock:
            table = self._tables.get(key)
            if table is not None:
                self._tables.move_to_end(key)
                return table
            table = build(size)
            table.setflags(write=False)
            self._tables[key] = table
            while len(self._tables) > self.maxsize:
                self._tables.popitem(last=False)
            return table


def _twiddles(m: int, cache: Optional[TableCache]) -> np.ndarray:
    return cache.twiddles(m) if cache is not None else twiddles(m)


def _permutation(n: int, cache: Optional[TableCache]) -> np.ndarray:
    return cache.permutation(n) if cache is not None else bit_reverse_permutation(n)


# ---------------- reference DFT ---------------- #

def _roots(n: int) -> np.ndarray:
    return np.exp(-2j * np.pi * np.arange(n) / n)


def dft(x) -> np.ndarray:
    """Direct O(N^2) DFT of *x*, any length N >= 1.

    ``k*n`` is reduced modulo N before lookup in a single table of N roots
    of unity, so each bin costs one gather and one dot product and the
    phase never loses precision for large ``k*n``.
    """
    x = _as_signal(x)
    N = x.size
    if N == 0:
        raise InvalidLength("cannot transform an empty sequence")
    roots = _roots(N)
    n = np.arange(N)
    X = np.empty(N, dtype=complex)
    for k in range(N):
        X[k] = np.dot(roots[(k * n) % N], x)
    return X


def dft_matrix(n: int) -> np.ndarray:
    """Dense *n* x *n* DFT matrix."""
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or n < 1:
        raise InvalidLength(f"DFT size must be positive, got {n!r}")
    idx = np.arange(n)
    return _roots(n)[np.outer(idx, idx) % n]


# ---------------- radix-2 (DIT) FFT ---------------- #

def fft_recursive(x, cache: Optional[TableCache] = None) -> np.ndarray:
    """Recursive radix-2 Cooley-Tukey FFT.

    Parameters
    ----------
    x : array_like
        Complex input whose *length must be an exact power of two*.
    cache : TableCache, optional
        Where to look up twiddle tables; built fresh per level if omitted.

    Returns
    -------
    ndarray (complex)
        The discrete Fourier transform of *x*.
    """
    x = _as_signal(x)
    _log2(x.size)
    return _fft_recursive(x, cache)


def _fft_recursive(x: np.ndarray, cache: Optional[TableCache]) -> np.ndarray:
    N = x.size
    if N == 1:
        return x.copy()

    even = _fft_recursive(x[0::2], cache)
    odd = _fft_recursive(x[1::2], cache)

    top, bottom = _butterfly(even, odd, _twiddles(N, cache))
    return np.concatenate([top, bottom])


def fft_matrix(x, cache: Optional[TableCache] = None) -> np.ndarray:
    """Non-recursive radix-2 Cooley-Tukey FFT (butterfly-matrix form).

    Stage ``m`` has the effect of multiplying by ``blockdiag(B_m, ..., B_m)``
    with ``B_m = [[I, D], [I, -D]]`` and ``D = diag(twiddles(m))``; the
    blocks are applied through slicing, never built.

    Parameters
    ----------
    x : array_like
        Complex input whose *length must be an exact power of two*.
    cache : TableCache, optional
        Where to look up the permutation and twiddle tables.

    Returns
    -------
    ndarray (complex)
        The discrete Fourier transform of *x*. The input is left untouched.
    """
    x = _as_signal(x)
    N = x.size
    _log2(N)

    # 1. Bit-reverse permutation (fancy indexing gives a private copy)
    x = x[_permutation(N, cache)]

    # 2. Iterative Danielson-Lanczos stages (DIT)
    m = 2
    while m <= N:
        half = m // 2
        blocks = x.reshape(-1, m)  # N/m consecutive blocks, a view on x
        top, bottom = _butterfly(blocks[:, :half], blocks[:, half:], _twiddles(m, cache))
        blocks[:, :half] = top
        blocks[:, half:] = bottom
        m <<= 1  # x2 per stage
    return x


def fft_vectorized(x, n_min: int = 32, cache: Optional[TableCache] = None) -> np.ndarray:
    """Level-synchronous radix-2 FFT.

    Every sub-problem of a level is combined in one array operation, so
    the Python-level loop runs ``log2(N / n_min)`` times.

    Parameters
    ----------
    x : array_like
        Complex input whose *length must be an exact power of two*.
    n_min : int
        Base size transformed directly; capped at ``len(x)``.
    cache : TableCache, optional
        Where to look up twiddle tables.

    Returns
    -------
    ndarray (complex)
        The discrete Fourier transform of *x*.
    """
    x = _as_signal(x)
    N = x.size
    _log2(N)
    _log2(n_min)
    n_min = min(N, n_min)

    # column c holds x[c], x[c + N/n_min], ...; transform all columns at once
    X = np.dot(dft_matrix(n_min), x.reshape((n_min, -1)))

    while X.shape[0] < N:
        rows = X.shape[0]
        half = X.shape[1] // 2
        top, bottom = _butterfly(X[:, :half], X[:, half:], _twiddles(2 * rows, cache), axis=0)
        X = np.vstack([top, bottom])

    return X.ravel()


def ifft(X, engine: Callable = fft_matrix, cache: Optional[TableCache] = None) -> np.ndarray:
    """Inverse FFT through *engine*: ``conj(engine(conj(X))) / N``."""
    X = _as_signal(X)
    kwargs = {} if cache is None else {"cache": cache}
    return np.conj(engine(np.conj(X), **kwargs)) / X.size
