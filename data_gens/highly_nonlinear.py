import numpy as np


def generate_highly_nonlinear_data(N=2000, noise_level=0.1, random_state=42):
    """Smooth nonlinear regression stream (4D input, 2D output).

    Products, radial terms and harmonics of the inputs; the targets are not
    linearly predictable from the raw inputs but are well approximated by a
    few hundred cosine random features.
    """
    rng = np.random.RandomState(random_state)
    X = rng.uniform(-1.5, 1.5, (N, 4))
    r = np.sqrt(X[:, 0] ** 2 + X[:, 1] ** 2)

    Y = np.zeros((N, 2))
    Y[:, 0] = np.sin(2 * r) + 0.5 * X[:, 2] * X[:, 3]
    Y[:, 1] = np.exp(-0.5 * X[:, 2] ** 2) * np.cos(X[:, 0] + X[:, 3]) + 0.3 * X[:, 1] ** 2
    Y += rng.normal(0, noise_level, Y.shape)

    return X, Y
