"""
実験結果の保存・可視化ユーティリティモジュール

このモジュールは、ランダムフォレスト実験の結果を保存・可視化するための
ユーティリティ関数を提供します。
"""

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
import os
import json
from typing import Dict, List, Optional
import datetime


def create_results_directory(base_dir: str = "results") -> str:
    """
    実験結果を保存するディレクトリを作成

    Parameters:
    -----------
    base_dir : str, default="results"
        基本ディレクトリ名

    Returns:
    --------
    results_dir : str
        作成された結果ディレクトリのパス
    """
    timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    results_dir = os.path.join(base_dir, f"experiment_{timestamp}")

    os.makedirs(os.path.join(results_dir, "figures"), exist_ok=True)
    os.makedirs(os.path.join(results_dir, "models"), exist_ok=True)

    return results_dir


def save_experiment_config(config: Dict, results_dir: str) -> str:
    """
    実験設定をJSONファイルに保存
    """
    path = os.path.join(results_dir, "experiment_config.json")
    with open(path, 'w') as f:
        json.dump(config, f, indent=2)
    return path


def plot_fold_accuracies(results: Dict[str, Dict], title: str = "Cross-Validation Accuracy by Fold",
                         save_path: Optional[str] = None) -> pd.DataFrame:
    """
    実行形態ごとのフォールド別正解率をプロット

    Parameters:
    -----------
    results : dict
        {ラベル: cross_validate_forest の結果}
    title : str
        プロットのタイトル
    save_path : str, optional
        保存先のパス

    Returns:
    --------
    df : pandas.DataFrame
        プロットに使った縦持ちのデータ（label, fold, accuracy）
    """
    rows = []
    for label, result in results.items():
        for fold, acc in enumerate(result['fold_accuracies']):
            rows.append({'label': label, 'fold': fold, 'accuracy': acc})
    df = pd.DataFrame(rows, columns=['label', 'fold', 'accuracy'])

    plt.figure(figsize=(12, 6))
    sns.barplot(data=df, x='fold', y='accuracy', hue='label')
    plt.ylim(0.0, 1.05)
    plt.title(title)
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')

    plt.close()
    return df


def plot_feature_importance(importance: np.ndarray, feature_names: Optional[List[str]] = None,
                            title: str = "Feature Importance",
                            save_path: Optional[str] = None) -> None:
    """
    特徴量重要度を横棒グラフでプロット
    """
    importance = np.asarray(importance, dtype=np.float64)
    if feature_names is None:
        feature_names = [f"x{i}" for i in range(importance.shape[0])]

    order = np.argsort(importance)[::-1]
    df = pd.DataFrame({
        'feature': [feature_names[i] for i in order],
        'importance': importance[order]
    })

    plt.figure(figsize=(8, max(3, 0.4 * len(df))))
    sns.barplot(data=df, x='importance', y='feature', color="steelblue")
    plt.title(title)
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')

    plt.close()


def create_summary_report(results: Dict[str, Dict], results_dir: str) -> pd.DataFrame:
    """
    実験結果の要約レポートを作成（CSV と Markdown）

    Parameters:
    -----------
    results : dict
        {ラベル: cross_validate_forest の結果}
    results_dir : str
        結果ディレクトリのパス

    Returns:
    --------
    summary : pandas.DataFrame
        ラベルごとの平均・最小正解率と時間
    """
    summary = pd.DataFrame([
        {
            'label': label,
            'variant': result['variant'],
            'mean_accuracy': result['mean_accuracy'],
            'min_accuracy': float(np.min(result['fold_accuracies'])),
            'train_time': result['train_time'],
            'predict_time': result['predict_time']
        }
        for label, result in results.items()
    ])
    summary.to_csv(os.path.join(results_dir, "summary.csv"), index=False)

    report = []
    report.append("# Random Forest 実験結果要約レポート")
    report.append(f"実行日時: {datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
    report.append("| ラベル | 形態 | 平均正解率 | 最小正解率 | 訓練時間(秒) | 予測時間(秒) |")
    report.append("| --- | --- | --- | --- | --- | --- |")

    for _, row in summary.iterrows():
        report.append(
            f"| {row['label']} | {row['variant']} | {row['mean_accuracy']:.4f} | "
            f"{row['min_accuracy']:.4f} | {row['train_time']:.4f} | {row['predict_time']:.4f} |"
        )

    with open(os.path.join(results_dir, "summary_report.md"), 'w') as f:
        f.write('\n'.join(report))

    return summary
