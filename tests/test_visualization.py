"""Tests for the reporting helpers."""

import json
import os

import numpy as np
import pandas as pd

from rf_bagging.utils.visualization import (
    create_results_directory,
    create_summary_report,
    plot_feature_importance,
    plot_fold_accuracies,
    save_experiment_config,
)


def _results():
    return {
        'iris/dense': {
            'variant': 'dense',
            'fold_accuracies': [1.0, 0.9, 0.95],
            'mean_accuracy': 0.95,
            'train_time': 0.1,
            'predict_time': 0.01,
        },
        'iris/sparse': {
            'variant': 'sparse',
            'fold_accuracies': [1.0, 0.9, 0.95],
            'mean_accuracy': 0.95,
            'train_time': 0.2,
            'predict_time': 0.02,
        },
    }


def test_results_directory_layout(tmp_path):
    results_dir = create_results_directory(str(tmp_path))
    assert os.path.isdir(os.path.join(results_dir, "figures"))
    assert os.path.isdir(os.path.join(results_dir, "models"))


def test_save_experiment_config(tmp_path):
    path = save_experiment_config({'n_trees': 10}, str(tmp_path))
    with open(path) as f:
        assert json.load(f) == {'n_trees': 10}


def test_plot_fold_accuracies(tmp_path):
    save_path = str(tmp_path / "folds.png")
    df = plot_fold_accuracies(_results(), save_path=save_path)

    assert len(df) == 6
    assert set(df['label']) == {'iris/dense', 'iris/sparse'}
    assert os.path.exists(save_path)


def test_plot_feature_importance(tmp_path):
    save_path = str(tmp_path / "importance.png")
    plot_feature_importance(np.array([0.1, 0.6, 0.3]), save_path=save_path)
    assert os.path.exists(save_path)


def test_create_summary_report(tmp_path):
    summary = create_summary_report(_results(), str(tmp_path))

    assert list(summary['label']) == ['iris/dense', 'iris/sparse']
    assert summary.loc[0, 'min_accuracy'] == 0.9

    csv = pd.read_csv(tmp_path / "summary.csv")
    assert len(csv) == 2
    assert "iris/sparse" in (tmp_path / "summary_report.md").read_text()
