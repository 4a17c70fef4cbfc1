import os

import numpy as np

from rrls.RRLS_batch import read_table


def get_generator(name: str):
    """Return a standardized generator callable with signature:
    gen(n_samples=..., noise_level=..., random_state=...) -> (X, Y)
    """
    name = name.lower()
    if name in {"highly", "highly_nonlinear", "default"}:
        from data_gens.highly_nonlinear import generate_highly_nonlinear_data as _gen
        def _wrap_highly(n_samples=2000, noise_level=0.1, random_state=42):
            return _gen(N=n_samples, noise_level=noise_level, random_state=random_state)
        return _wrap_highly

    if name in {"sinusoid", "sine", "sin"}:
        from data_gens.sinusoid import generate_sinusoid as _gen
        def _wrap_sinusoid(n_samples=1000, noise_level=0.1, random_state=0):
            return _gen(n_samples=n_samples, noise_level=noise_level, random_state=random_state)
        return _wrap_sinusoid

    if name in {"two_link", "inverse_dynamics", "arm"}:
        from data_gens.inverse_dynamics import generate_two_link_inverse_dynamics as _gen
        def _wrap_two_link(n_samples=3000, noise_level=0.05, random_state=3):
            return _gen(n_samples=n_samples, noise_level=noise_level, random_state=random_state)
        return _wrap_two_link

    raise ValueError(f"Unknown dataset generator name: {name}")


def load_stream_table(path, d_in, t, n_samples=None):
    """Replay a recorded stream: rows of d_in features followed by t targets.

    Reads every row unless n_samples is given. Returns (X, Y).
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Stream table not found at {path}")
    if n_samples is None:
        with open(path, 'r', encoding='utf-8') as f:
            n_samples = sum(1 for line in f if line.strip() and not line.lstrip().startswith('#'))
    data = read_table(path, n_samples, d_in + t)
    return data[:, :d_in], data[:, d_in:]


def save_stream_table(path, X, Y, fmt='%.17g'):
    """Write (X, Y) rows in the whitespace-delimited layout read by the pretraining loader."""
    X = np.asarray(X, dtype=np.float64)
    Y = np.asarray(Y, dtype=np.float64).reshape(X.shape[0], -1)
    np.savetxt(path, np.hstack([X, Y]), fmt=fmt)


__all__ = ["get_generator", "load_stream_table", "save_stream_table"]
