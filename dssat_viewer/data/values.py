"""
Cell value model shared by the table, date and reader modules

None is the missing value, floats are numbers, strings are text and pandas
Timestamps are dates. The scalar helpers work on single cells; the
Series helpers (as_series, missing_mask, numeric_view) are their
column-wise forms.
"""
import math
import numbers
from datetime import date, datetime
from typing import Any, Iterable, Optional

import numpy as np
import pandas as pd

from dssat_viewer import config

_MISSING_NUMBERS = sorted(config.MISSING_VALUES)
_MISSING_STRINGS = sorted(config.MISSING_VALUE_STRINGS)


def parse_float(value: Any) -> Optional[float]:
    """Parse a finite float from a number or numeric string, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def is_date_value(value: Any) -> bool:
    return isinstance(value, (pd.Timestamp, datetime, date)) and not pd.isna(value)


def is_missing(value: Any) -> bool:
    """Check whether a value is the DSSAT missing value.

    None, NaN, NaT, blank strings and the -99 sentinels (numeric or
    string, e.g. -99, '-99.0', -99.9, '-99.99') are all missing.
    """
    if value is None or value is pd.NaT or value is pd.NA:
        return True
    if isinstance(value, numbers.Real) and not isinstance(value, bool) and math.isnan(value):
        return True
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped or stripped in config.MISSING_VALUE_STRINGS:
            return True
    number = parse_float(value)
    return number is not None and number in config.MISSING_VALUES


def parse_scalar(token: Any) -> Any:
    """Convert a raw token into None, a float or text."""
    if is_missing(token):
        return None
    if is_date_value(token):
        return pd.Timestamp(token)
    number = parse_float(token)
    if number is not None:
        return number
    return str(token).strip() if isinstance(token, str) else token


def to_float(value: Any) -> float:
    """Numeric view of a value; missing or non-numeric values give NaN."""
    if is_missing(value):
        return np.nan
    number = parse_float(value)
    return np.nan if number is None else number


def as_text(value: Any) -> str:
    """Text form used for identifier comparisons; 1.0 becomes '1'."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, pd.Timestamp):
        return value.strftime("%Y-%m-%d")
    return str(value).strip()


# ----------------------------------------------------------------------
# Column-wise forms
# ----------------------------------------------------------------------

def as_series(values: Optional[Iterable[Any]] = None) -> pd.Series:
    """Object-dtype Series with a fresh 0..n-1 index."""
    if values is None:
        return pd.Series([], dtype=object)
    if isinstance(values, pd.Series):
        return values.astype(object).reset_index(drop=True)
    return pd.Series(list(values), dtype=object)


def _text_view(series: pd.Series) -> pd.Series:
    return series.astype(str).str.strip()


def _finite_numbers(series: pd.Series) -> pd.Series:
    # bools and Timestamps stringify to non-numeric text and drop out here
    parsed = pd.to_numeric(_text_view(series), errors="coerce").astype(float)
    return parsed.where(np.isfinite(parsed))


def _missing_from(series: pd.Series, parsed: pd.Series) -> pd.Series:
    text = _text_view(series)
    return (
        series.isna()
        | text.eq("")
        | text.isin(_MISSING_STRINGS)
        | parsed.isin(_MISSING_NUMBERS)
    )


def missing_mask(series: pd.Series) -> pd.Series:
    """Boolean mask of missing cells, the column-wise form of is_missing."""
    return _missing_from(series, _finite_numbers(series))


def numeric_view(series: pd.Series) -> pd.Series:
    """Float view of a column; missing, non-numeric and non-finite cells are NaN."""
    parsed = _finite_numbers(series)
    return parsed.mask(_missing_from(series, parsed))
