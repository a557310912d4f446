"""
DSSAT date encodings

Year + day-of-year pairs, compressed YYYYDDD / YYDDD day codes and
calendar strings all normalize to a midnight pd.Timestamp. The column
forms return datetime64 Series with NaT where a cell is not a date.
"""
import logging
from typing import Any, Iterable, Optional

import numpy as np
import pandas as pd

from dssat_viewer import config
from dssat_viewer.data.values import (
    as_series,
    as_text,
    is_date_value,
    is_missing,
    missing_mask,
    numeric_view,
    to_float,
)

logger = logging.getLogger(__name__)

# Calendar formats, tried in order; the first exact match wins
DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%Y/%m/%d",
    "%d-%m-%Y",
    "%m-%d-%Y",
    "%Y%m%d",
]

MIN_YEAR = 1900
MAX_YEAR = 2100
# Two-digit years up to this value are 20xx, the rest 19xx
CENTURY_PIVOT = 30

_CALENDAR_PREFIX = r"\d{1,4}[-/]\d{1,2}[-/]\d{1,4}"


def _empty_dates(index) -> pd.Series:
    return pd.Series(pd.NaT, index=index, dtype="datetime64[ns]")


def _to_int(value: Any) -> Optional[int]:
    """Integer view of a value, or None if missing or not a whole number."""
    if value is None or is_missing(value):
        return None
    number = to_float(value)
    if np.isnan(number) or not float(number).is_integer():
        return None
    return int(number)


def dates_from_year_doy(years: Iterable[Any], doys: Iterable[Any]) -> pd.Series:
    """Timestamps from parallel year and day-of-year columns.

    Pairs outside 1900-2100 / 1-366, fractional or missing give NaT.
    Day 366 of a non-leap year rolls over to January 1.
    """
    year_numbers = numeric_view(as_series(years))
    doy_numbers = numeric_view(as_series(doys))
    result = _empty_dates(year_numbers.index)

    valid = (
        year_numbers.notna() & doy_numbers.notna()
        & year_numbers.mod(1).eq(0) & doy_numbers.mod(1).eq(0)
        & year_numbers.between(MIN_YEAR, MAX_YEAR)
        & doy_numbers.between(1, 366)
    )
    if valid.any():
        starts = pd.to_datetime(
            year_numbers[valid].astype(int).astype(str) + "-01-01", format="%Y-%m-%d"
        )
        offsets = pd.to_timedelta(doy_numbers[valid] - 1, unit="D")
        result.loc[valid] = (starts + offsets).to_numpy()
    return result


def parse_calendar_dates(values: Iterable[Any]) -> pd.Series:
    """Calendar date strings to Timestamps, NaT where no format matches exactly.

    Only strings are considered. Digit-only text other than 8-digit
    YYYYMMDD is never a calendar date, so day codes and plain numbers stay
    undated. The index of a Series argument is preserved.
    """
    series = values if isinstance(values, pd.Series) else pd.Series(list(values), dtype=object)
    result = _empty_dates(series.index)
    if series.empty:
        return result

    is_text = series.map(lambda value: isinstance(value, str)).astype(bool)
    text = series.astype(str).str.strip()
    eight_digits = text.str.fullmatch(r"\d{8}").astype(bool)
    candidate = is_text & (text.str.match(_CALENDAR_PREFIX).astype(bool) | eight_digits)

    for fmt in DATE_FORMATS:
        pending = candidate & result.isna()
        if not pending.any():
            break
        pending_text = text[pending]
        parsed = pd.to_datetime(pending_text, format=fmt, errors="coerce")
        # strptime accepts unpadded fields; require the exact layout
        exact = parsed.notna() & parsed.dt.strftime(fmt).eq(pending_text)
        if exact.any():
            result.loc[exact[exact].index] = parsed[exact].to_numpy()
    return result.dt.normalize()


def normalize_dates(values: Iterable[Any]) -> pd.Series:
    """Column-wise date normalization.

    Timestamps pass through; strings may be YYYYDDD, YYDDD or a calendar
    date; integral floats are read as their digits. Sentinels, blanks and
    anything unparsable give NaT.
    """
    series = as_series(values)
    result = _empty_dates(series.index)
    if series.empty:
        return result

    instances = series.map(is_date_value).astype(bool)
    if instances.any():
        result.loc[instances] = pd.to_datetime(series[instances]).dt.normalize().to_numpy()

    text = series.map(as_text)
    usable = ~instances & ~missing_mask(series) & ~text.isin(sorted(config.DATE_MISSING_STRINGS))
    digits = text.str.fullmatch(r"\d+").astype(bool)
    length = text.str.len()

    seven = usable & digits & length.eq(7)
    if seven.any():
        codes = text[seven]
        result.loc[seven] = dates_from_year_doy(
            codes.str[:4].astype(int), codes.str[4:].astype(int)
        ).to_numpy()

    five = usable & digits & length.eq(5)
    if five.any():
        codes = text[five]
        two_digit = codes.str[:2].astype(int)
        years = two_digit.where(two_digit > CENTURY_PIVOT, two_digit + 2000)
        years = years.where(two_digit <= CENTURY_PIVOT, two_digit + 1900)
        result.loc[five] = dates_from_year_doy(years, codes.str[2:].astype(int)).to_numpy()

    calendar = usable & ~seven & ~five
    if calendar.any():
        result.loc[calendar] = parse_calendar_dates(text[calendar]).to_numpy()
    return result


def _first(dates: pd.Series) -> Optional[pd.Timestamp]:
    stamp = dates.iloc[0]
    return None if pd.isna(stamp) else stamp


def parse_date(value: Any) -> Optional[pd.Timestamp]:
    """Parse a calendar date string (one of DATE_FORMATS).

    Compressed day codes (YYYYDDD, YYDDD) are not recognized here.
    """
    if not isinstance(value, str):
        return None
    return _first(parse_calendar_dates([value]))


def unified_date_convert(year: Any = None, doy: Any = None,
                         date_str: Optional[str] = None) -> Optional[pd.Timestamp]:
    """Convert DSSAT date encodings to a Timestamp.

    A year/day-of-year pair takes precedence over date_str whenever both
    parts are given; an out-of-range pair gives None without looking at
    the string. Strings may be YYYYDDD, YYDDD or a calendar date.
    """
    year_value = _to_int(year)
    doy_value = _to_int(doy)
    if year_value is not None and doy_value is not None:
        return _first(dates_from_year_doy([year_value], [doy_value]))

    if date_str is None:
        return None
    return _first(normalize_dates([str(date_str)]))
