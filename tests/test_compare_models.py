"""Smoke test for the comparison experiment."""

import os

from rf_bagging.experiments.compare_models import build_forest_params, main, parse_args


def test_max_features_is_capped():
    params = build_forest_params(3, {'n_trees': 2, 'min_samples_split': 10, 'max_features': 4})
    assert params.tree_hyperparameters.max_features == 3
    assert params.n_trees == 2


def test_parse_args_defaults():
    args = parse_args([])
    assert args.output_dir == "results"
    assert args.n_trees is None
    assert args.config is None


def test_main_writes_report(tmp_path):
    config_path = tmp_path / "config.json"
    config_path.write_text(
        '{"n_splits": 3, "synthetic": {"n_samples": 60, "n_features": 6, '
        '"n_informative": 3, "density": 0.5, "random_state": 0}}'
    )
    output_dir = tmp_path / "results"

    main(["--output-dir", str(output_dir), "--n-trees", "2", "--config", str(config_path)])

    (experiment_dir,) = os.listdir(output_dir)
    files = os.listdir(output_dir / experiment_dir)
    assert "summary.csv" in files
    assert "summary_report.md" in files
    assert "experiment_config.json" in files
    models = os.listdir(output_dir / experiment_dir / "models")
    assert sorted(models) == ["iris.json", "iris.rfbg", "synthetic_sparse.json", "synthetic_sparse.rfbg"]
