"""
Data processing utilities for DSSAT tables

Dtype standardization and the matching helpers that sit between the
readers and the plotting/metrics consumers.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from dssat_viewer import config
from dssat_viewer.data.dates import normalize_dates
from dssat_viewer.data.table import Column, Table
from dssat_viewer.data.values import as_series, as_text, missing_mask, numeric_view, to_float

logger = logging.getLogger(__name__)


def standardize_dtypes(table: Table) -> Table:
    """Infer and coerce column types in place; returns the table for chaining."""
    table.standardize_dtypes()
    return table


def filter_data(table: Table, column_name: str, value: str) -> Table:
    """Rows whose non-missing value in column_name equals value."""
    return table.filter_rows(column_name, value)


def handle_missing_values(table: Table, x_var: str) -> bool:
    """Drop rows where the x variable is missing.

    Returns False when the table has no such column.
    """
    column = table.get_column(x_var)
    if column is None:
        return False

    present = ~missing_mask(column.series)
    dropped = int((~present).sum())
    table.keep_rows(present)

    if dropped:
        logger.info(f"Dropped {dropped} rows with missing {x_var}")
    return True


def days_after(date: pd.Timestamp, reference: pd.Timestamp) -> int:
    """Whole days from reference to date (negative when date is earlier)."""
    return (date.normalize() - reference.normalize()).days


def _treatment_text(table: Table) -> pd.Series:
    series = table["TRT"].series
    return series.map(as_text).mask(missing_mask(series))


def _simulated_points(simulated: Table, treatment: str) -> List[Tuple[pd.Timestamp, Any, Any]]:
    dates = normalize_dates(simulated["DATE"].series)
    rows = _treatment_text(simulated).eq(treatment) & dates.notna()
    return list(zip(
        dates[rows],
        simulated["DAS"].series[rows],
        simulated["DAP"].series[rows],
    ))


def _round_half_away(value: float) -> float:
    return float(np.sign(value) * np.floor(abs(value) + 0.5))


def add_das_dap_columns(observed: Table, simulated: Table) -> None:
    """Add DAS/DAP columns to observed data from the simulated run.

    Per observed row the simulated value of the same treatment on the same
    date is used; otherwise it is interpolated between the nearest earlier
    and later simulated dates, or extrapolated by the day difference when
    only one side exists.
    """
    for name, table in (("observed", observed), ("simulated", simulated)):
        missing = [c for c in ("DATE", "TRT") if c not in table]
        if missing:
            logger.warning(f"Cannot add DAS/DAP: {name} data lacks {missing}")
            return
    if "DAS" not in simulated or "DAP" not in simulated:
        logger.warning("Cannot add DAS/DAP: simulated data lacks DAS or DAP")
        return

    points_by_trt: Dict[str, List[Tuple[pd.Timestamp, Any, Any]]] = {}
    das_values: List[Optional[float]] = []
    dap_values: List[Optional[float]] = []

    observed_dates = normalize_dates(observed["DATE"].series)
    treatments = observed["TRT"].series.map(as_text)
    for obs_date, trt in zip(observed_dates, treatments):
        if pd.isna(obs_date):
            das_values.append(None)
            dap_values.append(None)
            continue

        if trt not in points_by_trt:
            points_by_trt[trt] = _simulated_points(simulated, trt)
        das, dap = _match_das_dap(obs_date, points_by_trt[trt])
        das_values.append(das)
        dap_values.append(dap)

    observed.add_column(Column("DAS", das_values, "numeric"))
    observed.add_column(Column("DAP", dap_values, "numeric"))
    logger.info(f"Added DAS/DAP columns to {observed.row_count} observed rows")


def _match_das_dap(obs_date: pd.Timestamp,
                   points: Sequence[Tuple[pd.Timestamp, Any, Any]]) -> Tuple[Optional[float], Optional[float]]:
    before = None
    after = None
    for point in points:
        sim_date = point[0]
        if sim_date == obs_date:
            return to_float_or_none(point[1]), to_float_or_none(point[2])
        if sim_date < obs_date and (before is None or sim_date > before[0]):
            before = point
        if sim_date > obs_date and (after is None or sim_date < after[0]):
            after = point

    if before is not None and after is not None:
        total_days = days_after(after[0], before[0])
        offset = days_after(obs_date, before[0])
        results = []
        for index in (1, 2):
            start, end = to_float(before[index]), to_float(after[index])
            if np.isnan(start) or np.isnan(end):
                results.append(None)
            else:
                results.append(_round_half_away(start + (end - start) * offset / total_days))
        return results[0], results[1]

    if before is not None:
        shift = days_after(obs_date, before[0])
        return _shift(before[1], shift), _shift(before[2], shift)
    if after is not None:
        shift = -days_after(after[0], obs_date)
        return _shift(after[1], shift), _shift(after[2], shift)
    return None, None


def _shift(value: Any, days: int) -> Optional[float]:
    number = to_float(value)
    return None if np.isnan(number) else float(int(number) + days)


def to_float_or_none(value: Any) -> Optional[float]:
    number = to_float(value)
    return None if np.isnan(number) else number


# ----------------------------------------------------------------------
# EVALUATE.OUT helpers
# ----------------------------------------------------------------------

def _display_name(code: str, metadata=None) -> str:
    if metadata is None:
        return code
    label, _ = metadata.variable_info(code)
    return label or code


def get_evaluate_variable_pairs(table: Table, metadata=None) -> List[Dict[str, str]]:
    """Simulated/measured column pairs (names ending in S and M) with usable data.

    A pair is kept only if both columns overlap on at least one row and the
    simulated values in the overlap are not all identical.
    """
    sim_columns = []
    meas_columns = {}
    for name in table.column_names:
        upper = name.upper()
        if upper in config.EVALUATE_METADATA_COLUMNS or len(upper) < 2:
            continue
        if upper.endswith("S"):
            sim_columns.append(name)
        elif upper.endswith("M"):
            meas_columns[upper] = name

    pairs = []
    for sim_var in sim_columns:
        base_name = sim_var[:-1]
        meas_var = meas_columns.get(base_name.upper() + "M")
        if meas_var is None:
            continue

        sim_values, meas_values = drop_missing_pairs(
            table.numeric_values(sim_var), table.numeric_values(meas_var)
        )
        if len(sim_values) == 0:
            continue
        if np.all(np.abs(sim_values - sim_values[0]) <= 1e-6):
            logger.info(f"Skipping {sim_var}/{meas_var}: simulated values are constant")
            continue

        pairs.append({
            "display_name": _display_name(base_name, metadata),
            "sim_variable": sim_var,
            "meas_variable": meas_var,
        })
    return pairs


def get_all_evaluate_variables(table: Table, metadata=None) -> List[Tuple[str, str]]:
    """(display name, column) for every non-metadata column with data."""
    variables = []
    for column in table.columns:
        if column.name.upper() in config.EVALUATE_METADATA_COLUMNS:
            continue
        if (~missing_mask(column.series)).any():
            variables.append((_display_name(column.name, metadata), column.name))
    return variables


# ----------------------------------------------------------------------
# Paired numeric series for metrics
# ----------------------------------------------------------------------


def drop_missing_pairs(first: Sequence[Any], second: Sequence[Any]) -> Tuple[np.ndarray, np.ndarray]:
    """Float arrays with every index missing on either side removed."""
    if len(first) != len(second):
        raise ValueError(f"Sequences differ in length: {len(first)} != {len(second)}")
    first_values = numeric_view(as_series(first)).to_numpy(dtype=float)
    second_values = numeric_view(as_series(second)).to_numpy(dtype=float)
    mask = ~(np.isnan(first_values) | np.isnan(second_values))
    return first_values[mask], second_values[mask]


def paired_numeric_series(table: Table, first_column: str, second_column: str,
                          treatment: Optional[str] = None,
                          treatment_column: str = "TRT") -> Tuple[np.ndarray, np.ndarray]:
    """Two equal-length numeric arrays from one table, missing pairs dropped.

    Used for EVALUATE.OUT style tables where simulated and measured values
    share a row.
    """
    if treatment is not None:
        table = table.filter_rows(treatment_column, treatment)
        if table.row_count == 0:
            return np.array([], dtype=float), np.array([], dtype=float)
    if first_column not in table or second_column not in table:
        logger.warning(f"Missing column for pairing: {first_column}, {second_column}")
        return np.array([], dtype=float), np.array([], dtype=float)
    return drop_missing_pairs(table[first_column].series, table[second_column].series)


def _keyed_frame(table: Table, keys: Sequence[str], column: str) -> pd.DataFrame:
    """Text join keys plus the value column; rows with a missing key are dropped."""
    frame = pd.DataFrame(index=pd.RangeIndex(table.row_count))
    for key in keys:
        series = table[key].series
        if key == "DATE":
            dates = normalize_dates(series)
            frame[key] = dates.dt.strftime("%Y-%m-%d").where(dates.notna()).astype(object)
        else:
            frame[key] = series.map(as_text).mask(missing_mask(series)).astype(object)
    frame["_value"] = table[column].series
    return frame.dropna(subset=list(keys))


def matched_numeric_series(observed: Table, simulated: Table, column: str,
                           treatment: Optional[str] = None,
                           keys: Sequence[str] = ("TRT", "DATE")) -> Tuple[np.ndarray, np.ndarray]:
    """Observed vs simulated values of one column matched on key columns.

    The first simulated row per key is used. Returns (observed, simulated)
    arrays with missing pairs dropped.
    """
    for name, table in (("observed", observed), ("simulated", simulated)):
        missing = [c for c in list(keys) + [column] if c not in table]
        if missing:
            logger.warning(f"Cannot match {column}: {name} data lacks {missing}")
            return np.array([], dtype=float), np.array([], dtype=float)

    keys = list(keys)
    obs_frame = _keyed_frame(observed, keys, column)
    if treatment is not None:
        treatments = observed["TRT"].series.map(as_text)
        obs_frame = obs_frame[treatments.loc[obs_frame.index].eq(treatment)]
    sim_frame = _keyed_frame(simulated, keys, column).drop_duplicates(subset=keys, keep="first")

    matched = obs_frame.merge(sim_frame, on=keys, how="inner", suffixes=("_obs", "_sim"))
    return drop_missing_pairs(matched["_value_obs"], matched["_value_sim"])
