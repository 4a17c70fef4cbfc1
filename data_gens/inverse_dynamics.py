import numpy as np


def generate_two_link_inverse_dynamics(n_samples=3000, noise_level=0.05, random_state=3,
                                       m=(1.0, 0.8), l=(0.5, 0.4), g=9.81):
    """Inverse dynamics of a planar two-link arm.

    Inputs are joint positions, velocities and accelerations
    [q1, q2, dq1, dq2, ddq1, ddq2]; targets are the two joint torques given by
    tau = M(q) ddq + C(q, dq) dq + G(q), with point masses at the link tips.
    Trajectories are sums of sinusoids so consecutive samples are correlated,
    as in a robot streaming its joint states.
    """
    rng = np.random.RandomState(random_state)
    m1, m2 = m
    l1, l2 = l
    ts = np.arange(n_samples) * 0.01

    freqs = rng.uniform(0.2, 1.5, (2, 3))
    amps = rng.uniform(0.2, 0.8, (2, 3))
    phases = rng.uniform(0, 2 * np.pi, (2, 3))
    arg = 2 * np.pi * freqs[:, :, None] * ts[None, None, :] + phases[:, :, None]
    w = 2 * np.pi * freqs[:, :, None]
    q = np.sum(amps[:, :, None] * np.sin(arg), axis=1)
    dq = np.sum(amps[:, :, None] * w * np.cos(arg), axis=1)
    ddq = np.sum(-amps[:, :, None] * w ** 2 * np.sin(arg), axis=1)

    q1, q2 = q
    dq1, dq2 = dq
    ddq1, ddq2 = ddq
    c2 = np.cos(q2)
    s2 = np.sin(q2)

    M11 = (m1 + m2) * l1 ** 2 + m2 * l2 ** 2 + 2 * m2 * l1 * l2 * c2
    M12 = m2 * l2 ** 2 + m2 * l1 * l2 * c2
    M22 = m2 * l2 ** 2 * np.ones_like(q2)
    h = m2 * l1 * l2 * s2
    G1 = (m1 + m2) * g * l1 * np.cos(q1) + m2 * g * l2 * np.cos(q1 + q2)
    G2 = m2 * g * l2 * np.cos(q1 + q2)

    tau1 = M11 * ddq1 + M12 * ddq2 - h * (2 * dq1 * dq2 + dq2 ** 2) + G1
    tau2 = M12 * ddq1 + M22 * ddq2 + h * dq1 ** 2 + G2

    X = np.column_stack([q1, q2, dq1, dq2, ddq1, ddq2])
    Y = np.column_stack([tau1, tau2]) + rng.normal(0, noise_level, (n_samples, 2))
    return X, Y
