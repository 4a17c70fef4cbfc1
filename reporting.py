"""Reporting utilities for streaming runs.

Contains: learning curves (running performance per output), prediction traces
and residual histograms. All plotting uses the non-interactive
backend (Agg); figures are written under figures/<run>_<timestamp>/ in every
configured format.
"""
from __future__ import annotations
import logging
import os
from datetime import datetime

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import seaborn as sns

logger = logging.getLogger(__name__)

RUN_TAG = datetime.now().strftime('%Y%m%d_%H%M%S')
FIG_SAVE_ROOT = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'figures')
SUPPORTED_FORMATS = ("png", "svg", "pdf")


def parse_fig_formats(formats_arg):
    """'png,svg' -> ['png', 'svg']; unknown entries dropped, never empty."""
    seen = []
    for f in str(formats_arg or "").split(','):
        f = f.strip().lower()
        if f in SUPPORTED_FORMATS and f not in seen:
            seen.append(f)
    return seen or ["png"]


def run_save_dir(run_name: str, root: str = FIG_SAVE_ROOT) -> str:
    out = os.path.join(root, f"{run_name}_{RUN_TAG}")
    os.makedirs(out, exist_ok=True)
    return out


def save_fig(fig, out_dir: str, name: str, formats=("png",), dpi: int = 200):
    paths = []
    for fmt in formats:
        path = os.path.join(out_dir, f"{name}.{fmt}")
        fig.savefig(path, format=fmt, dpi=dpi, bbox_inches='tight')
        logger.info("[Saved %s] %s", fmt.upper(), path)
        paths.append(path)
    return paths


def plot_learning_curves(perf_history, perf_name='nMSE', out_dir=None, formats=("png",)):
    """Running performance per output dimension against the number of samples seen."""
    perf = np.atleast_2d(np.asarray(perf_history, dtype=np.float64))
    steps = np.arange(1, perf.shape[0] + 1)
    sns.set_palette("husl")
    fig, ax = plt.subplots(figsize=(8, 4))
    for i in range(perf.shape[1]):
        ax.semilogx(steps, perf[:, i], label=f'y[{i}]')
    ax.set_xlabel('Samples')
    ax.set_ylabel(f'Running {perf_name}')
    ax.set_title(f'Online {perf_name} (test-then-train)')
    ax.grid(True, alpha=0.3)
    ax.legend()
    paths = save_fig(fig, out_dir, 'learning_curves', formats) if out_dir else []
    plt.close(fig)
    return paths


def plot_prediction_trace(Y, Y_pred, out_dir=None, formats=("png",), last=500):
    """Targets vs online predictions over the final `last` samples."""
    Y = np.atleast_2d(np.asarray(Y, dtype=np.float64))
    Y_pred = np.atleast_2d(np.asarray(Y_pred, dtype=np.float64))
    n = min(last, Y.shape[0])
    t = Y.shape[1]
    fig, axes = plt.subplots(t, 1, figsize=(10, 2.5 * t), squeeze=False)
    idx = np.arange(Y.shape[0] - n, Y.shape[0])
    for i in range(t):
        ax = axes[i, 0]
        ax.plot(idx, Y[-n:, i], color='black', lw=1.0, label='target')
        ax.plot(idx, Y_pred[-n:, i], color='tab:red', lw=1.0, alpha=0.8, label='prediction')
        ax.set_ylabel(f'y[{i}]')
        ax.grid(True, alpha=0.3)
    axes[0, 0].legend(loc='upper right')
    axes[-1, 0].set_xlabel('Sample')
    plt.tight_layout()
    paths = save_fig(fig, out_dir, 'prediction_trace', formats) if out_dir else []
    plt.close(fig)
    return paths


def plot_error_distribution(Y, Y_pred, out_dir=None, formats=("png",)):
    """Histogram (with KDE) of the online prediction residuals per output."""
    resid = np.atleast_2d(np.asarray(Y, dtype=np.float64)) - np.atleast_2d(np.asarray(Y_pred, dtype=np.float64))
    fig, ax = plt.subplots(figsize=(6, 4))
    for i in range(resid.shape[1]):
        sns.histplot(resid[:, i], bins=40, kde=True, stat='density', alpha=0.5, ax=ax, label=f'y[{i}]')
    ax.set_title('Online prediction residuals')
    ax.set_xlabel('Residual')
    ax.legend()
    paths = save_fig(fig, out_dir, 'residuals', formats) if out_dir else []
    plt.close(fig)
    return paths


def summarize_run(perf_history, perf_name='nMSE'):
    """Final and best running performance per output, as a dict for logging."""
    perf = np.atleast_2d(np.asarray(perf_history, dtype=np.float64))
    if perf.size == 0:
        return {}
    return {
        'samples': int(perf.shape[0]),
        f'final_{perf_name}': perf[-1].tolist(),
        f'min_{perf_name}': perf.min(axis=0).tolist(),
    }


__all__ = ['RUN_TAG', 'FIG_SAVE_ROOT', 'parse_fig_formats', 'run_save_dir', 'save_fig',
           'plot_learning_curves', 'plot_prediction_trace', 'plot_error_distribution',
           'summarize_run']
