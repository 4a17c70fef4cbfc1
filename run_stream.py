import numpy as np
import os
import logging

from rrls.config import RRLSConfig, load_config, normalize_keys
from rrls.errors import RRLSError
from rrls.modules import RRLSEstimatorModule
from data_gens import get_generator, load_stream_table, save_stream_table
from model_utils import batch_ridge_baseline, map_features, weight_deviation
from reporting import (parse_fig_formats, run_save_dir, plot_learning_curves,
                       plot_prediction_trace, plot_error_distribution, summarize_run)

# ================= Constants / Global Configuration =================
DEFAULT_DATASET = "highly_nonlinear"
DEFAULT_NUM_RF = 300
RPC_TIMEOUT_S = 5.0

logger = logging.getLogger(__name__)


def configure_logging(quiet: bool = False, verbose: bool = False):
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format='[%(levelname)s] %(message)s')
    logger.debug("Logging configured. quiet=%s verbose=%s", quiet, verbose)


def build_config(args, d_in, t, pretrain_file=None):
    """Config file values (if any), then command-line overrides, then data-derived dims."""
    overrides = {
        'd_in': args.d_in or d_in,
        't': args.t or t,
        'num_rf': args.num_rf,
        'mapping': args.mapping,
        'lam': args.lam,
        'rff_seed': args.rff_seed,
        'rff_sigma': args.rff_sigma,
        'perf': args.perf,
        'verbose': args.verbose or None,
    }
    if args.no_mapper:
        overrides['mapper'] = False
    if pretrain_file is not None:
        overrides.update({'pretrain': True, 'pretrain_file': pretrain_file, 'n_pretr': args.n_pretr})
    if args.config:
        return load_config(args.config, RRLSConfig, overrides)
    raw = {'num_rf': DEFAULT_NUM_RF, 'rff_seed': 12}
    raw.update(normalize_keys(RRLSConfig, {k: v for k, v in overrides.items() if v is not None}))
    return RRLSConfig.from_dict(raw)


def stream_through_module(module, X, Y):
    """Feed (X, Y) through the module's vec:i port one sample at a time.

    Reads the prediction and performance for each sample before sending the
    next, then asks the module to quit over rpc. Returns (Y_pred, perf).
    """
    thread = module.start()
    reply = module.rpc_port.request("help", timeout=RPC_TIMEOUT_S)
    logger.debug("rpc help -> %s", reply)

    preds, perfs = [], []
    for i in range(X.shape[0]):
        if not module.in_vec.write(np.concatenate([X[i], Y[i]]).tolist()):
            logger.warning("Input port interrupted after %d samples", i)
            break
        yhat = module.pred.read()
        perf = module.perf.read()
        if yhat is None or perf is None:
            logger.warning("Module stopped after %d samples", i)
            break
        preds.append(yhat)
        perfs.append(perf)

    reply = module.rpc_port.request("quit", timeout=RPC_TIMEOUT_S)
    logger.info("rpc quit -> %s", reply)
    thread.join(timeout=RPC_TIMEOUT_S)
    return np.asarray(preds), np.asarray(perfs)


def main(dataset: str = DEFAULT_DATASET, args=None):
    """Run one streaming experiment.

    1. Generate (or replay) a sample stream
    2. Optionally split off the first rows as a pretraining table
    3. Run the estimator module over the rest, test-then-train
    4. Compare the online weights with a batch scikit-learn Ridge fit
    5. Save learning curves / prediction plots if requested
    """
    if args.input:
        if not (args.d_in and args.t):
            raise SystemExit("--input requires --d-in and --t")
        X, Y = load_stream_table(args.input, args.d_in, args.t, n_samples=args.n_samples)
        run_name = os.path.splitext(os.path.basename(args.input))[0]
    else:
        gen = get_generator(dataset)
        kwargs = {'random_state': args.seed}
        if args.n_samples:
            kwargs['n_samples'] = args.n_samples
        if args.noise is not None:
            kwargs['noise_level'] = args.noise
        X, Y = gen(**kwargs)
        run_name = dataset
    X = np.asarray(X, dtype=np.float64)
    Y = np.asarray(Y, dtype=np.float64).reshape(X.shape[0], -1)
    logger.info("Data dimensions: X %s, Y %s", X.shape, Y.shape)

    out_dir = run_save_dir(run_name) if (args.plot or args.split_pretrain) else None
    pretrain_file = args.pretrain_file
    X_stream, Y_stream = X, Y
    if args.split_pretrain:
        n = args.split_pretrain
        pretrain_file = os.path.join(out_dir, 'pretrain.dat')
        save_stream_table(pretrain_file, X[:n], Y[:n])
        args.n_pretr = n
        X_stream, Y_stream = X[n:], Y[n:]
        logger.info("First %d samples written to %s for pretraining", n, pretrain_file)

    config = build_config(args, X.shape[1], Y.shape[1], pretrain_file=pretrain_file)
    module = RRLSEstimatorModule(config)
    Y_pred, perf = stream_through_module(module, X_stream, Y_stream)

    summary = summarize_run(perf, module.tracker.perf)
    logger.info("Streamed %d samples (%d dropped), estimator %r", module.update_count, module.dropped, module.estimator)
    for key, val in summary.items():
        logger.info("  %s: %s", key, val)

    # Online weights must match a batch solve over everything absorbed
    seen = module.estimator.n_updates
    n_pre = seen - module.update_count
    deviation = None
    if n_pre == 0:
        X_seen, Y_seen = X_stream[:seen], Y_stream[:seen]
    elif args.split_pretrain and n_pre == args.split_pretrain:
        X_seen, Y_seen = X[:seen], Y[:seen]
    else:
        X_seen = Y_seen = None
        logger.info("Pretrained from an external table; skipping the batch baseline check")
    if X_seen is not None and seen > 0:
        baseline = batch_ridge_baseline(X_seen, Y_seen, config.lam, mapper=module.mapper)
        deviation = weight_deviation(module.estimator, baseline)
        logger.info("Relative deviation from batch Ridge weights: %.3e", deviation)
        batch_mse = np.mean((baseline.predict(map_features(module.mapper, X_seen)) - Y_seen) ** 2, axis=0)
        logger.info("Batch Ridge in-sample MSE per output: %s", batch_mse)

    if args.plot and len(perf):
        formats = parse_fig_formats(args.fig_formats)
        plot_learning_curves(perf, module.tracker.perf, out_dir, formats)
        plot_prediction_trace(Y_stream[:len(Y_pred)], Y_pred, out_dir, formats)
        plot_error_distribution(Y_stream[:len(Y_pred)], Y_pred, out_dir, formats)

    return {
        'summary': summary,
        'weight_deviation': deviation,
        'diagnostics': module.estimator.get_diagnostics(),
        'predictions': Y_pred,
        'performance': perf,
    }


def build_parser():
    import argparse
    parser = argparse.ArgumentParser(description="Stream samples through the recursive ridge estimator (test-then-train)")
    parser.add_argument("--config", type=str, default=None, help="YAML module configuration")
    parser.add_argument("--dataset", type=str, default=DEFAULT_DATASET,
                        help="Generator name: highly_nonlinear, sinusoid, two_link")
    parser.add_argument("--input", type=str, default=None,
                        help="Replay a recorded table (d_in feature columns then t target columns) instead of a generator")
    parser.add_argument("--n-samples", type=int, default=None, help="Number of samples to stream")
    parser.add_argument("--noise", type=float, default=None, help="Generator noise level")
    parser.add_argument("--seed", type=int, default=42, help="Generator random state")
    parser.add_argument("--d-in", type=int, default=None, help="Raw input dimension (defaults to the data's)")
    parser.add_argument("--t", type=int, default=None, help="Output dimension (defaults to the data's)")
    parser.add_argument("--num-rf", type=int, default=None, help="Number of random projections")
    parser.add_argument("--mapping", type=str, default=None, help="linear|cos|cossin (or 0|1|2)")
    parser.add_argument("--no-mapper", action="store_true", default=False, help="Regress on raw inputs")
    parser.add_argument("--lam", type=float, default=None, help="Ridge regularization (> 0)")
    parser.add_argument("--rff-seed", type=int, default=None, help="Seed for drawn projections")
    parser.add_argument("--rff-sigma", type=float, default=None, help="Bandwidth for drawn projections")
    parser.add_argument("--perf", type=str, default=None, help="nMSE (default) or RMSE")
    parser.add_argument("--pretrain-file", type=str, default=None, help="Pretraining table")
    parser.add_argument("--n-pretr", type=int, default=None, help="Rows of the pretraining table to use")
    parser.add_argument("--split-pretrain", type=int, default=0,
                        help="Use the first N generated samples as the pretraining table")
    parser.add_argument("--plot", action="store_true", default=False, help="Save learning-curve figures")
    parser.add_argument("--fig-formats", type=str, default="png",
                        help="Comma separated figure formats to save (default: png). Example: png,svg,pdf")
    parser.add_argument("--verbose", action="store_true", default=False, help="Verbose debug output")
    parser.add_argument("--quiet", action="store_true", default=False, help="Suppress most logs (overrides --verbose)")
    return parser


def cli(argv=None):
    args = build_parser().parse_args(argv)
    configure_logging(quiet=args.quiet, verbose=args.verbose)
    try:
        main(dataset=args.dataset, args=args)
    except RRLSError as e:
        logger.error("%s", e)
        raise SystemExit(1)


if __name__ == "__main__":
    cli()
