"""
ランダムフォレスト実行形態比較実験モジュール

このモジュールは、同じ設定のランダムフォレストを密行列・疎行列・並列の
3つの実行形態で交差検証し、結果を比較するための実験スクリプトを提供します。
学習済みモデルは JSON と バイナリの両形式で保存し、読み戻して予測が
一致することを確認します。

Usage:
------
python -m rf_bagging.experiments.compare_models --output-dir results --n-trees 10
"""

import argparse
import json
import logging
import os
import numpy as np
from typing import Dict, Optional

from ..models.decision_tree import DecisionTreeHyperparameters
from ..models.random_forest import ForestHyperparameters
from ..models.forest_components.random_stream import std_rng
from ..utils.datasets import load_iris, make_classification_data
from ..utils.model_interface import VARIANTS, cross_validate_forest
from ..utils.serialization import load_model, save_model
from ..utils.visualization import (
    create_results_directory,
    create_summary_report,
    plot_feature_importance,
    plot_fold_accuracies,
    save_experiment_config
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    'n_trees': 10,
    'min_samples_split': 10,
    'max_features': 4,
    'max_depth': None,
    'n_splits': 10,
    'n_jobs': 2,
    # フォールド分割のシャッフル用シード
    'cv_seed': 1,
    'synthetic': {
        'n_samples': 400,
        'n_features': 20,
        'n_informative': 5,
        'density': 0.3,
        'random_state': 42
    }
}


def build_forest_params(n_features: int, config: Dict) -> ForestHyperparameters:
    """
    設定から ForestHyperparameters を作成（max_features は特徴量数で頭打ち）
    """
    max_features = config.get('max_features')
    if max_features is not None:
        max_features = min(max_features, n_features)

    tree_params = DecisionTreeHyperparameters(
        n_features,
        max_depth=config.get('max_depth'),
        min_samples_split=config['min_samples_split'],
        max_features=max_features
    )
    return ForestHyperparameters(tree_params, config['n_trees']).set_rng(std_rng())


def run_dataset_comparison(dataset_name: str, X, y: np.ndarray, config: Dict) -> Dict[str, Dict]:
    """
    1つのデータセットについて3つの実行形態を比較

    Returns:
    --------
    results : dict
        {"<dataset>/<variant>": cross_validate_forest の結果}
    """
    forest_params = build_forest_params(X.shape[1], config)
    results = {}

    for variant in VARIANTS:
        print(f"\nEvaluating {variant} forest on {dataset_name}...")
        result = cross_validate_forest(
            X, y, forest_params,
            variant=variant,
            n_splits=config['n_splits'],
            n_jobs=config['n_jobs'],
            rng=config['cv_seed']
        )
        results[f"{dataset_name}/{variant}"] = result

        print(f"  Mean accuracy: {result['mean_accuracy']:.4f}")
        print(f"  Train time: {result['train_time']:.4f}s")
        print(f"  Predict time: {result['predict_time']:.4f}s")

    return results


def check_codec_round_trip(dataset_name: str, X, y: np.ndarray, config: Dict, results_dir: str) -> None:
    """
    全データで学習したモデルを両形式で保存・読み込みし、予測の一致を確認
    """
    model = build_forest_params(X.shape[1], config).one_vs_rest()
    model.fit(X, y)
    expected = model.decision_function(X)

    for suffix in (".json", ".rfbg"):
        path = os.path.join(results_dir, "models", f"{dataset_name}{suffix}")
        save_model(model, path)
        restored = load_model(path)
        if not np.array_equal(restored.decision_function(X), expected):
            raise RuntimeError(f"Round trip through {path} changed the predictions")
        logger.info("Round trip through %s preserved predictions (%d bytes)", path, os.path.getsize(path))

    importance = np.mean([forest.get_feature_importance() for forest in model.models()], axis=0)
    plot_feature_importance(
        importance,
        title=f"{dataset_name}: Feature Importance",
        save_path=os.path.join(results_dir, "figures", f"{dataset_name}_feature_importance.png")
    )


def run_all_experiments(output_dir: str = "results", config: Optional[Dict] = None) -> str:
    """
    全ての実験を実行

    Parameters:
    -----------
    output_dir : str, default="results"
        結果の出力ディレクトリ
    config : dict, optional
        DEFAULT_CONFIG を上書きする設定

    Returns:
    --------
    results_dir : str
        結果ディレクトリのパス
    """
    merged = dict(DEFAULT_CONFIG)
    merged.update(config or {})

    results_dir = create_results_directory(output_dir)
    save_experiment_config(merged, results_dir)
    logger.info("Writing results to %s", results_dir)

    datasets = {
        'iris': load_iris(),
        'synthetic_sparse': make_classification_data(**merged['synthetic'])
    }

    all_results = {}
    for dataset_name, (X, y) in datasets.items():
        print(f"\n\n{'='*50}")
        print(f"Running experiment: {dataset_name}")
        print(f"{'='*50}")

        all_results.update(run_dataset_comparison(dataset_name, X, y, merged))
        check_codec_round_trip(dataset_name, X, y, merged, results_dir)

    plot_fold_accuracies(all_results, save_path=os.path.join(results_dir, "figures", "fold_accuracies.png"))
    summary = create_summary_report(all_results, results_dir)
    print(f"\n{summary.to_string(index=False)}")

    return results_dir


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compare dense, sparse and parallel random forests")
    parser.add_argument("--output-dir", default="results", help="結果の出力ディレクトリ")
    parser.add_argument("--n-trees", type=int, default=None, help="フォレストの木の数")
    parser.add_argument("--n-jobs", type=int, default=None, help="並列実行のワーカー数")
    parser.add_argument("--config", default=None, help="設定を上書きする JSON ファイル")
    parser.add_argument("--verbose", action="store_true", help="DEBUG レベルのログを出力")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(message)s"
    )

    config = {}
    if args.config:
        with open(args.config, 'r') as f:
            config.update(json.load(f))
    if args.n_trees is not None:
        config['n_trees'] = args.n_trees
    if args.n_jobs is not None:
        config['n_jobs'] = args.n_jobs

    run_all_experiments(output_dir=args.output_dir, config=config)


if __name__ == "__main__":
    main()
