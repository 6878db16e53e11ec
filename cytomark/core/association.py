"""
Per-analyte association with karyotype.

Each analyte's log abundance is compared between the two karyotype groups
with a two-sided Mann-Whitney U test. P values are adjusted for multiple
testing (Benjamini-Hochberg by default). Because features are already on a
log2 scale, the log2 fold change is the difference of group means.
"""

import logging
from typing import Optional, Sequence

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from scipy.stats import mannwhitneyu
from statsmodels.stats.multitest import multipletests

from .data_loader import SampleTable
from ..exceptions import DegenerateDataError

logger = logging.getLogger(__name__)


def _two_groups(groups: pd.Series, order: Optional[Sequence[str]]):
    present = sorted(str(g) for g in groups.dropna().unique())
    if order is not None:
        order = [str(g) for g in order]
        missing = [g for g in order if g not in present]
        if len(order) != 2 or missing:
            raise DegenerateDataError(f"Requested groups {order} not both present; found {present}")
        return order
    if len(present) != 2:
        raise DegenerateDataError(f"Exactly two groups are required for comparison, found {present}")
    return present


def karyotype_association(table: SampleTable,
                          group_column: str = "Karyotype",
                          groups: Optional[Sequence[str]] = None,
                          fdr_method: str = "fdr_bh",
                          alpha: float = 0.05,
                          min_per_group: int = 3) -> pd.DataFrame:
    """
    Test every analyte for a difference between two groups.

    Args:
        table: Sample table with log-transformed analytes
        group_column: Metadata column defining the groups
        groups: (reference, comparison); sorted group names if None
        fdr_method: Any ``statsmodels`` multipletests method
        alpha: Significance level for the ``significant`` column
        min_per_group: Analytes with fewer non-missing values in a group
                       are reported with NaN statistics

    Returns:
        DataFrame indexed by analyte, sorted by adjusted p value
    """
    labels = table.frame[group_column].astype(object).where(table.frame[group_column].notna())
    reference, comparison = _two_groups(labels, groups)
    labels = labels.astype(str)
    in_ref = labels == reference
    in_cmp = labels == comparison

    logger.info(f"Testing {len(table.analytes)} analytes: {comparison} "
                f"(n={int(in_cmp.sum())}) vs {reference} (n={int(in_ref.sum())})")

    rows = []
    for analyte in table.analytes:
        values = table.frame[analyte]
        a = values[in_ref].dropna().to_numpy()
        b = values[in_cmp].dropna().to_numpy()
        row = {
            'analyte': analyte,
            f'n_{reference}': len(a),
            f'n_{comparison}': len(b),
            f'mean_{reference}': float(np.mean(a)) if len(a) else np.nan,
            f'mean_{comparison}': float(np.mean(b)) if len(b) else np.nan,
            'u_statistic': np.nan,
            'p_value': np.nan,
        }
        row['log2_fold_change'] = row[f'mean_{comparison}'] - row[f'mean_{reference}']
        if len(a) >= min_per_group and len(b) >= min_per_group:
            test = mannwhitneyu(b, a, alternative='two-sided')
            row['u_statistic'] = float(test.statistic)
            row['p_value'] = float(test.pvalue)
        else:
            logger.warning(f"{analyte}: too few values for testing ({len(a)} vs {len(b)})")
        rows.append(row)

    results = pd.DataFrame(rows).set_index('analyte')

    tested = results['p_value'].notna()
    results['p_adjusted'] = np.nan
    results['significant'] = False
    if tested.any():
        reject, p_adjusted, _, _ = multipletests(results.loc[tested, 'p_value'], alpha=alpha,
                                                 method=fdr_method)
        results.loc[tested, 'p_adjusted'] = p_adjusted
        results.loc[tested, 'significant'] = reject

    results = results.sort_values(['p_adjusted', 'p_value'], na_position='last', kind='mergesort')
    logger.info(f"{int(results['significant'].sum())} analytes significant at "
                f"{fdr_method} < {alpha}")
    return results


def plot_top_analytes(table: SampleTable, results: pd.DataFrame, group_column: str = "Karyotype",
                      top_n: int = 6, output_path: Optional[str] = None, show: bool = False):
    """Box plots of the most significant analytes by group."""
    top = results.index[:top_n].tolist()
    if not top:
        return

    long = table.frame[[group_column] + top].melt(id_vars=group_column, var_name='analyte',
                                                   value_name='log_abundance')
    n_cols = min(3, len(top))
    n_rows = int(np.ceil(len(top) / n_cols))
    fig, axes = plt.subplots(n_rows, n_cols, figsize=(4.5 * n_cols, 4 * n_rows), squeeze=False)

    for ax, analyte in zip(axes.flat, top):
        subset = long[long['analyte'] == analyte]
        sns.boxplot(data=subset, x=group_column, y='log_abundance', ax=ax)
        sns.stripplot(data=subset, x=group_column, y='log_abundance', ax=ax,
                      color='black', size=3, alpha=0.5)
        p_adj = results.loc[analyte, 'p_adjusted']
        ax.set_title(f"{analyte} (adj. p = {p_adj:.2g})")
        ax.set_xlabel("")
    for ax in list(axes.flat)[len(top):]:
        ax.set_visible(False)

    fig.tight_layout()
    if output_path is not None:
        fig.savefig(output_path, dpi=300, bbox_inches='tight')
    if show:
        plt.show()
    plt.close(fig)
