"""
Command-line entry point:  python -m retinol data.csv --exclude 62
"""

import argparse
import os

from .analysis import run_analysis


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='retinol',
        description='Linear-regression analysis of plasma retinol.',
    )
    parser.add_argument('path', nargs='?',
                        help='delimited data file (default: fetch from '
                             'OpenML)')
    parser.add_argument('--exclude', type=int, nargs='*', default=[],
                        metavar='ROW_ID', help='row ids to leave out')
    parser.add_argument('--jobs', type=int, default=1,
                        help='worker threads for hierarchical partitioning')
    parser.add_argument('--plots', metavar='DIR',
                        help='save diagnostic figures as PNG into DIR')
    args = parser.parse_args(argv)

    results = run_analysis(path=args.path, exclude=args.exclude,
                           partition_jobs=args.jobs,
                           plots=args.plots is not None)
    if args.plots:
        import matplotlib.pyplot as plt

        os.makedirs(args.plots, exist_ok=True)
        for name, fig in results['figures'].items():
            fig.savefig(os.path.join(args.plots, f"{name}.png"), dpi=120)
            plt.close(fig)
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
