import numpy as np


def generate_sinusoid(n_samples=1000, noise_level=0.1, random_state=0):
    """Scalar sine regression: y = sin(3x) + 0.5x + noise, x ~ U(-2, 2)."""
    rng = np.random.RandomState(random_state)
    X = rng.uniform(-2.0, 2.0, (n_samples, 1))
    Y = np.sin(3 * X) + 0.5 * X + rng.normal(0, noise_level, (n_samples, 1))
    return X, Y
