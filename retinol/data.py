"""
Loading and validating the plasma retinol dataset.

The source file is delimited text with a header row.  Lines starting with
the comment character are skipped.  Three columns hold small integer codes
that are decoded to labels before any modelling use:

    SEX       1 -> male, 2 -> female
    SMOKSTAT  1 -> never, 2 -> former, 3 -> current
    VITUSE    1 -> yes, 2 -> infrequent, 3 -> no

Every record gets a 1-based ``row_id`` at load time.  Downstream code
excludes observations by that id, never by position.
"""

import numpy as np
import pandas as pd

from .errors import DataError


# ---------------------------------------------------------------------------
# Column layout
# ---------------------------------------------------------------------------

ROW_ID = 'row_id'
RESPONSE = 'RETPLASMA'

REQUIRED_COLUMNS = [
    'AGE', 'SEX', 'SMOKSTAT', 'QUETELET', 'VITUSE', 'CALORIES', 'FAT',
    'FIBER', 'ALCOHOL', 'CHOLESTEROL', 'BETADIET', 'RETDIET',
    'BETAPLASMA', 'RETPLASMA',
]

LABEL_MAPS = {
    'SEX': {1: 'male', 2: 'female'},
    'SMOKSTAT': {1: 'never', 2: 'former', 3: 'current'},
    'VITUSE': {1: 'yes', 2: 'infrequent', 3: 'no'},
}

CATEGORICAL_COLUMNS = list(LABEL_MAPS)
NUMERIC_COLUMNS = [c for c in REQUIRED_COLUMNS if c not in LABEL_MAPS]

# Dietary and anthropometric predictors of the full model
NUMERIC_PREDICTORS = [
    'AGE', 'QUETELET', 'CALORIES', 'FAT', 'FIBER', 'ALCOHOL',
    'CHOLESTEROL', 'BETADIET', 'RETDIET',
]


def _format_ids(mask, limit=10):
    ids = [int(i) for i in mask[mask].index[:limit]]
    more = int(mask.sum()) - len(ids)
    text = ", ".join(str(i) for i in ids)
    return text + (f" (+{more} more)" if more > 0 else "")


def _validate_and_decode(raw):
    """
    Check a raw frame against the column layout and decode categoricals.

    Checks, in order
    ----------------
    1.  Column names are normalised to upper case; every required column
        must be present.  Extra columns are dropped.
    2.  No required column may hold a missing or blank value.
    3.  Every value must parse as a number.
    4.  Every categorical code must be in its label map.

    The first failed check raises ``DataError`` naming the column and the
    offending row ids.

    Returns
    -------
    pd.DataFrame
        Indexed by ``row_id`` (1-based, file order).
    """
    frame = raw.copy()
    frame.columns = [str(c).strip().upper() for c in frame.columns]

    missing = [c for c in REQUIRED_COLUMNS if c not in frame.columns]
    if missing:
        raise DataError(f"Missing required column(s): {missing}")

    frame = frame[REQUIRED_COLUMNS].copy()
    frame.index = pd.RangeIndex(1, len(frame) + 1, name=ROW_ID)

    if len(frame) == 0:
        raise DataError("Dataset contains no records.")

    decoded = {}
    for col in REQUIRED_COLUMNS:
        values = frame[col].astype(object)
        blank = values.isna() | (values.astype(str).str.strip() == '')
        if blank.any():
            raise DataError(
                f"Missing value(s) in column {col} at row id(s) "
                f"{_format_ids(blank)}"
            )
        numeric = pd.to_numeric(values.astype(str).str.strip(),
                                errors='coerce')
        bad = numeric.isna() | ~np.isfinite(numeric)
        if bad.any():
            raise DataError(
                f"Non-numeric value(s) in column {col} at row id(s) "
                f"{_format_ids(bad)}"
            )
        decoded[col] = numeric.astype(np.float64)

    for col, labels in LABEL_MAPS.items():
        codes = decoded[col]
        known = codes.isin(list(labels))
        if not known.all():
            unknown = sorted(set(codes[~known].tolist()))
            raise DataError(
                f"Unrecognized {col} code(s) {unknown} at row id(s) "
                f"{_format_ids(~known)}"
            )
        decoded[col] = pd.Series(
            pd.Categorical(codes.astype(int).map(labels),
                           categories=list(labels.values())),
            index=codes.index,
        )

    return pd.DataFrame(decoded, index=frame.index)[REQUIRED_COLUMNS]


# ---------------------------------------------------------------------------
# Dataset
# ---------------------------------------------------------------------------

class Dataset:
    """
    Read-only, ordered collection of observations keyed by ``row_id``.

    Every accessor hands out copies, and ``exclude`` / ``select`` return new
    datasets, so a Dataset can be passed freely between components.
    """

    def __init__(self, frame):
        if frame.index.name != ROW_ID:
            raise DataError(
                f"Dataset frames must be indexed by '{ROW_ID}'; "
                f"use Dataset.from_frame()."
            )
        if not frame.index.is_unique:
            raise DataError("Row ids must be unique.")
        self._frame = frame.copy()

    @classmethod
    def from_frame(cls, frame):
        """
        Wrap an already-decoded frame.

        Row ids ``1..n`` are assigned in frame order unless the frame is
        already indexed by ``row_id``.
        """
        frame = frame.copy()
        if frame.index.name != ROW_ID:
            frame.index = pd.RangeIndex(1, len(frame) + 1, name=ROW_ID)
        return cls(frame)

    @property
    def frame(self):
        return self._frame.copy()

    @property
    def row_ids(self):
        return tuple(int(i) for i in self._frame.index)

    @property
    def columns(self):
        return list(self._frame.columns)

    def __len__(self):
        return len(self._frame)

    def __repr__(self):
        return f"Dataset(n={len(self)}, columns={self.columns})"

    def _check_ids(self, row_ids):
        ids = {int(i) for i in row_ids}
        unknown = sorted(ids.difference(self._frame.index))
        if unknown:
            raise DataError(f"Unknown row id(s): {unknown}")
        return ids

    def exclude(self, row_ids):
        """Return a new Dataset without the given row ids."""
        ids = self._check_ids(row_ids)
        if not ids:
            return self
        keep = ~self._frame.index.isin(list(ids))
        return Dataset(self._frame.loc[keep])

    def select(self, row_ids):
        """Return a new Dataset holding only the given row ids, in
        dataset order."""
        ids = self._check_ids(row_ids)
        keep = self._frame.index.isin(list(ids))
        return Dataset(self._frame.loc[keep])


# ---------------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------------

def load_plasma(path, delimiter=',', comment='#', verbose=False):
    """
    Load the plasma retinol records from a delimited text file.

    Parameters
    ----------
    path : str or path-like
        File with a header row naming the fourteen required columns.
    delimiter : str, default=','
    comment : str, default='#'
        Lines starting with this character are skipped.
    verbose : bool, default=False
        Print a one-line load summary.

    Returns
    -------
    Dataset

    Raises
    ------
    DataError
        On a missing column, a missing or non-numeric value, or an
        unrecognized categorical code.
    """
    raw = pd.read_csv(path, sep=delimiter, comment=comment, dtype=str,
                      skipinitialspace=True, keep_default_na=True)
    dataset = Dataset(_validate_and_decode(raw))
    if verbose:
        print(f"Loaded {len(dataset)} records from {path}")
    return dataset


def fetch_plasma_retinol(data_home=None, verbose=False):
    """
    Fetch the dataset from OpenML and validate it like a local file.

    Needs network access on first use; scikit-learn caches the download
    under ``data_home``.
    """
    from sklearn.datasets import fetch_openml

    bunch = fetch_openml(name='plasma_retinol', version=1, as_frame=True,
                         parser='auto', data_home=data_home)
    dataset = Dataset(_validate_and_decode(bunch.frame))
    if verbose:
        print(f"Loaded {len(dataset)} records from OpenML.")
    return dataset


def summarize(dataset):
    """
    Descriptive statistics for a Dataset.

    Returns
    -------
    dict
        ``'numeric'``: one row per numeric column (count, mean, std,
        quartiles).  ``'categorical'``: level counts per categorical
        column, levels in label-map order.
    """
    frame = dataset.frame
    numeric = frame.select_dtypes(include=[np.number])
    categorical = frame.select_dtypes(include=['category'])
    return {
        'numeric': numeric.describe().T,
        'categorical': {
            col: categorical[col].value_counts(sort=False)
            for col in categorical.columns
        },
    }
