import numpy as np
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))
import run_stream
from data_gens import get_generator, save_stream_table


def test_stream_matches_batch_ridge():
    args = run_stream.build_parser().parse_args(
        ["--dataset", "sinusoid", "--n-samples", "60", "--num-rf", "20", "--quiet"])
    out = run_stream.main(dataset=args.dataset, args=args)
    assert out['summary']['samples'] == 60
    assert out['predictions'].shape == (60, 1)
    assert out['weight_deviation'] < 1e-6
    assert out['diagnostics']['updates'] == 60


def test_split_pretraining(tmp_path, monkeypatch):
    monkeypatch.setattr(run_stream, "run_save_dir", lambda name: str(tmp_path))
    args = run_stream.build_parser().parse_args(
        ["--dataset", "sinusoid", "--n-samples", "80", "--num-rf", "16",
         "--split-pretrain", "20", "--lam", "0.5", "--quiet"])
    out = run_stream.main(dataset=args.dataset, args=args)
    assert os.path.isfile(tmp_path / "pretrain.dat")
    assert out['summary']['samples'] == 60
    assert out['diagnostics']['updates'] == 80
    assert out['weight_deviation'] < 1e-6


def test_replay_recorded_table_without_mapper(tmp_path):
    X, Y = get_generator("two_link")(n_samples=40, random_state=1)
    path = tmp_path / "arm.dat"
    save_stream_table(str(path), X, Y)
    args = run_stream.build_parser().parse_args(
        ["--input", str(path), "--d-in", "6", "--t", "2", "--no-mapper", "--perf", "RMSE", "--quiet"])
    out = run_stream.main(args=args)
    assert out['performance'].shape == (40, 2)
    assert out['weight_deviation'] < 1e-6
    assert np.all(out['performance'] >= 0)


def test_config_file_with_pretraining_table():
    root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    args = run_stream.build_parser().parse_args(
        ["--config", os.path.join(root, "conf", "RRLSestimator.yml"),
         "--input", os.path.join(root, "conf", "data", "icubdyn.dat"),
         "--d-in", "2", "--t", "1", "--quiet"])
    out = run_stream.main(args=args)
    assert out['diagnostics']['updates'] == 20 + 24
    # pretrained from an external table: no batch comparison
    assert out['weight_deviation'] is None
    assert np.all(np.isfinite(out['performance']))
