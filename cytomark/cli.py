"""
Command Line Interface for CytoMark.

This module provides a command-line interface for running the cytokine
analysis pipeline without writing Python code.
"""

import argparse
import sys
from pathlib import Path

import pandas as pd

from .config import AnalysisConfig, InputConfig, load_config
from .exceptions import CytoMarkError
from .pipeline.auto_pipeline import CytokinePipeline
from . import __version__


def create_parser():
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        description="CytoMark: Cytokine Biomarker Analysis and BMI Classification",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Basic usage
  cytomark --metadata metadata.tsv --measurements cytokines.tsv --output results/

  # Quick run without the sweep and clustering
  cytomark --metadata metadata.tsv --measurements cytokines.tsv --no-sweep --no-clustering

  # Using configuration file
  cytomark --metadata metadata.tsv --measurements cytokines.tsv --config config.json
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'CytoMark {__version__}'
    )

    parser.add_argument(
        '--metadata',
        type=str,
        required=True,
        help='Path to the tab-separated sample metadata table'
    )

    parser.add_argument(
        '--measurements',
        type=str,
        required=True,
        help='Path to the tab-separated long-format cytokine measurements'
    )

    parser.add_argument(
        '--config',
        type=str,
        help='Path to JSON configuration file; command line options override it'
    )

    parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='Output directory for results (default: cytomark_outputs)'
    )

    parser.add_argument(
        '--random-state',
        type=int,
        default=None,
        help='Random seed for the split, CV folds and forest (default: 42)'
    )

    model_group = parser.add_argument_group('Model Options')
    model_group.add_argument(
        '--train-fraction',
        type=float,
        default=None,
        help='Fraction of samples in the train partition (default: 0.75)'
    )
    model_group.add_argument(
        '--n-trees',
        type=int,
        default=None,
        help='Number of random forest trees (default: 500)'
    )
    model_group.add_argument(
        '--sweep-repeats',
        type=int,
        default=None,
        help='Repeats of K-fold CV in the hyperparameter sweep (default: 3)'
    )
    model_group.add_argument(
        '--no-sweep',
        action='store_true',
        help='Skip the (alpha, lambda) hyperparameter sweep'
    )

    analysis_group = parser.add_argument_group('Analysis Options')
    analysis_group.add_argument(
        '--no-clustering',
        action='store_true',
        help='Skip hierarchical clustering'
    )
    analysis_group.add_argument(
        '--save-plots',
        action='store_true',
        help='Save figures under the output directory'
    )
    analysis_group.add_argument(
        '--workbook',
        action='store_true',
        help='Export all result tables to an xlsx workbook'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Log progress to the console'
    )

    return parser


def validate_inputs(args):
    """Validate input arguments."""
    for label, path in (('Metadata', args.metadata), ('Measurements', args.measurements)):
        if not Path(path).exists():
            print(f"Error: {label} file '{path}' not found.")
            sys.exit(1)

    if args.train_fraction is not None and not 0 < args.train_fraction < 1:
        print("Error: train-fraction must be between 0 and 1.")
        sys.exit(1)

    if args.n_trees is not None and args.n_trees < 1:
        print("Error: n-trees must be at least 1.")
        sys.exit(1)

    if args.sweep_repeats is not None and args.sweep_repeats < 1:
        print("Error: sweep-repeats must be at least 1.")
        sys.exit(1)


def build_config(args) -> AnalysisConfig:
    """Merge the optional JSON configuration with command line options."""
    config = load_config(args.config) if args.config else AnalysisConfig(input=InputConfig())

    config.input.metadata_path = args.metadata
    config.input.measurements_path = args.measurements

    overrides = {
        'output_dir': args.output,
        'random_state': args.random_state,
        'train_fraction': args.train_fraction,
        'n_trees': args.n_trees,
        'sweep_repeats': args.sweep_repeats,
    }
    for key, value in overrides.items():
        if value is not None:
            setattr(config, key, value)

    if args.no_sweep:
        config.run_sweep = False
    if args.no_clustering:
        config.run_clustering = False
    if args.save_plots:
        config.save_plots = True
    if args.workbook:
        config.export_workbook = True

    return config.validate()


def main(argv=None):
    """Main CLI function."""
    parser = create_parser()
    args = parser.parse_args(argv)

    validate_inputs(args)

    try:
        config = build_config(args)
    except CytoMarkError as e:
        print(f"Error in configuration: {e}")
        sys.exit(1)

    print(f"🧬 CytoMark v{__version__}")
    print("=" * 50)
    print(f"📊 Metadata: {args.metadata}")
    print(f"🧪 Measurements: {args.measurements}")
    print(f"📁 Output directory: {config.output_dir}")
    print(f"🔢 Random state: {config.random_state}")

    try:
        print(f"\n🚀 Running CytoMark pipeline...")
        pipeline = CytokinePipeline(config, verbose=args.verbose)
        results = pipeline.run_full_pipeline()

        print(f"\n📊 Samples per stage:")
        print("-" * 30)
        for stage, count in results.stage_counts().items():
            print(f"  {stage}: {count}")

        if 'sweep_best' in results:
            best = results['sweep_best']
            print(f"\n🥇 Sweep best: alpha={best['alpha']:g}, lambda={best['lambda']:g} "
                  f"(CV accuracy {best['cv_accuracy']:.4f})")

        print(f"\n🏆 Model Performance:")
        metrics = results.metrics()[['model', 'dataset', 'accuracy', 'precision', 'recall']]
        with pd.option_context('display.float_format', '{:.4f}'.format):
            print(metrics.to_string(index=False))

        pipeline.save_summary_report("cli_analysis_summary.txt")

        print(f"\n✅ Analysis completed successfully!")
        print(f"📁 Results saved in: {config.output_dir}")

    except CytoMarkError as e:
        print(f"\n❌ Error during pipeline execution: {e}")
        sys.exit(1)
    except Exception as e:
        print(f"\n❌ Unexpected error during pipeline execution: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
