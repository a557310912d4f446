"""
Columnar table model used by the DSSAT readers

Each column is an object-dtype pandas Series. Cells follow the value model
in dssat_viewer.data.values: None is missing, floats are numbers, strings
are text and pandas Timestamps are dates.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from dssat_viewer import config
from dssat_viewer.data.dates import normalize_dates, parse_calendar_dates
from dssat_viewer.data.values import as_series, as_text, is_date_value, missing_mask, numeric_view

logger = logging.getLogger(__name__)

# Type inference thresholds (ratios of non-missing values)
DATE_RATIO_THRESHOLD = 0.8
NUMERIC_RATIO_THRESHOLD = 0.8
CATEGORICAL_RATIO_THRESHOLD = 0.3

NUMERIC = "numeric"
CATEGORICAL = "categorical"
DATETIME = "datetime"
STRING = "string"


def detect_data_type(values: Iterable[Any]) -> str:
    """Classify a sequence of values as numeric, categorical, datetime or string."""
    series = as_series(values)
    valid = series[~missing_mask(series)]
    if valid.empty:
        return STRING

    valid_count = len(valid)
    numeric_ratio = numeric_view(valid).notna().sum() / valid_count
    dates = valid.map(is_date_value).astype(bool) | parse_calendar_dates(valid).notna()
    date_ratio = dates.sum() / valid_count

    if date_ratio > DATE_RATIO_THRESHOLD:
        return DATETIME
    if numeric_ratio > NUMERIC_RATIO_THRESHOLD:
        return NUMERIC
    if numeric_ratio > CATEGORICAL_RATIO_THRESHOLD:
        return CATEGORICAL
    return STRING


def _cell(value: Any) -> Any:
    return None if pd.isna(value) else value


class Column:
    """A named Series of cells with a lazily inferred data type."""

    def __init__(self, name: str, values: Optional[Iterable[Any]] = None,
                 data_type: Optional[str] = None):
        self.name = name
        self.series = values
        self._data_type = data_type

    @property
    def series(self) -> pd.Series:
        return self._series

    @series.setter
    def series(self, values: Optional[Iterable[Any]]) -> None:
        self._series = as_series(values)

    @property
    def values(self) -> List[Any]:
        """Cells as a list, None where the Series holds NaN or NaT."""
        cells = self._series.to_numpy(dtype=object)
        return np.where(pd.isna(cells), None, cells).tolist()

    @values.setter
    def values(self, values: Iterable[Any]) -> None:
        self.series = values

    @property
    def data_type(self) -> str:
        # Inferred once; later edits to values do not reclassify the column
        if self._data_type is None:
            self._data_type = detect_data_type(self._series)
        return self._data_type

    def __len__(self) -> int:
        return len(self._series)

    def __repr__(self) -> str:
        return f"Column({self.name!r}, rows={len(self)}, type={self._data_type})"


class Table:
    """Ordered collection of equally sized columns."""

    def __init__(self, name: str = "", columns: Optional[Iterable[Column]] = None):
        self.name = name
        self.columns: List[Column] = []
        self.row_count = 0
        for column in columns or []:
            self.add_column(column)

    # ------------------------------------------------------------------
    # Column access
    # ------------------------------------------------------------------

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    def __contains__(self, name: str) -> bool:
        return self.get_column_index(name) >= 0

    def __getitem__(self, name: str) -> Column:
        column = self.get_column(name)
        if column is None:
            raise KeyError(name)
        return column

    def __len__(self) -> int:
        return self.row_count

    def __repr__(self) -> str:
        return f"Table({self.name!r}, columns={self.column_names}, rows={self.row_count})"

    def get_column_index(self, name: str) -> int:
        for index, column in enumerate(self.columns):
            if column.name == name:
                return index
        return -1

    def get_column(self, name: str) -> Optional[Column]:
        index = self.get_column_index(name)
        return self.columns[index] if index >= 0 else None

    def add_column(self, column: Column) -> None:
        """Add a column, replacing any existing column of the same name."""
        if self.columns and len(column) != self.row_count:
            raise ValueError(
                f"Column {column.name} has {len(column)} values, "
                f"table {self.name!r} has {self.row_count} rows"
            )
        if not self.columns:
            self.row_count = len(column)

        index = self.get_column_index(column.name)
        if index >= 0:
            self.columns[index] = column
        else:
            self.columns.append(column)

    def add_constant_column(self, name: str, value: Any) -> None:
        self.add_column(Column(name, [value] * self.row_count))

    def rename_column(self, old_name: str, new_name: str) -> bool:
        """Rename a column in place; an existing column named new_name is dropped."""
        column = self.get_column(old_name)
        if column is None:
            return False
        if old_name != new_name:
            self.columns = [c for c in self.columns if c.name != new_name]
        column.name = new_name
        return True

    def drop_column(self, name: str) -> bool:
        index = self.get_column_index(name)
        if index < 0:
            return False
        del self.columns[index]
        if not self.columns:
            self.row_count = 0
        return True

    # ------------------------------------------------------------------
    # Row access
    # ------------------------------------------------------------------

    def get_value(self, row: int, column_name: str) -> Any:
        column = self.get_column(column_name)
        if column is None or not 0 <= row < self.row_count:
            return None
        return _cell(column.series.iat[row])

    def set_value(self, row: int, column_name: str, value: Any) -> None:
        column = self[column_name]
        if not 0 <= row < self.row_count:
            raise IndexError(f"Row {row} out of range for {self.row_count} rows")
        column.series.iat[row] = value

    def add_row(self, row_data: Sequence[Any]) -> None:
        """Append a row; short rows are padded with None, extra values dropped."""
        padded = list(row_data[:len(self.columns)])
        padded.extend([None] * (len(self.columns) - len(padded)))
        for column, value in zip(self.columns, padded):
            column.series = pd.concat(
                [column.series, pd.Series([value], dtype=object)], ignore_index=True
            )
        self.row_count += 1

    def row(self, index: int) -> Dict[str, Any]:
        return {column.name: _cell(column.series.iat[index]) for column in self.columns}

    def iter_rows(self):
        for index in range(self.row_count):
            yield self.row(index)

    def take_rows(self, rows: Union[pd.Series, Sequence[int]]) -> "Table":
        """New table with the rows picked by a boolean mask or a list of positions."""
        frame = self._frame()
        if isinstance(rows, pd.Series) and rows.dtype == bool:
            frame = frame[rows.to_numpy()]
        else:
            frame = frame.iloc[list(rows)]
        return self._from_frame(frame)

    def keep_rows(self, mask: pd.Series) -> None:
        """Drop, in place, every row where mask is False."""
        kept = self.take_rows(mask)
        self.columns = kept.columns
        self.row_count = kept.row_count

    # ------------------------------------------------------------------
    # Combining tables
    # ------------------------------------------------------------------

    def _frame(self, names: Optional[Sequence[str]] = None) -> pd.DataFrame:
        frame = pd.DataFrame({column.name: column.series for column in self.columns},
                             index=pd.RangeIndex(self.row_count))
        if names is not None:
            frame = frame.reindex(columns=list(names))
        return frame.astype(object)

    def _from_frame(self, frame: pd.DataFrame, name: Optional[str] = None) -> "Table":
        types = {column.name: column._data_type for column in self.columns}
        result = Table(self.name if name is None else name, [
            Column(column_name, frame[column_name], types.get(column_name))
            for column_name in frame.columns
        ])
        if not result.columns:
            result.row_count = 0
        return result

    def copy(self) -> "Table":
        return self._from_frame(self._frame())

    def merge(self, other: "Table") -> "Table":
        """Union of both tables' columns with rows concatenated left then right.

        Columns missing on one side are padded with None. Rows are never
        aligned or deduplicated. The column union holds even when one side
        has no rows.
        """
        names = list(dict.fromkeys(self.column_names + other.column_names))
        frames = [table._frame(names) for table in (self, other) if table.row_count > 0]
        if frames:
            frame = pd.concat(frames, ignore_index=True)
        else:
            frame = pd.DataFrame(columns=names, dtype=object)
        return self._from_frame(frame)

    def concat_rows(self, other: "Table") -> None:
        """Append the other table's rows using this table's columns only."""
        if other.row_count == 0 or not self.columns:
            return
        frame = pd.concat([self._frame(), other._frame(self.column_names)], ignore_index=True)
        for column in self.columns:
            column.series = frame[column.name]
        self.row_count = len(frame)

    def filter_rows(self, column_name: str, value: str) -> "Table":
        """Rows whose non-missing value in column_name equals value as text."""
        column = self.get_column(column_name)
        if column is None or not value:
            return Table(self.name)
        mask = ~missing_mask(column.series) & column.series.map(as_text).eq(value)
        if not mask.any():
            return Table(self.name)
        return self.take_rows(mask)

    # ------------------------------------------------------------------
    # Typed views
    # ------------------------------------------------------------------

    def numeric_values(self, column_name: str) -> List[float]:
        """Float view of a column, NaN where missing or non-numeric."""
        return numeric_view(self[column_name].series).tolist()

    def standardize_dtypes(self) -> None:
        """Infer each column's type and coerce its values accordingly.

        Identifier columns stay categorical text. Tokens that fail numeric
        or date coercion are kept as text.
        """
        for column in self.columns:
            if column.name in config.IDENTIFIER_COLUMNS:
                column._data_type = CATEGORICAL
            data_type = column.data_type

            series = column.series
            missing = missing_mask(series)
            if data_type == NUMERIC:
                numbers = numeric_view(series)
                converted = numbers.astype(object).where(numbers.notna(), series)
            elif data_type == CATEGORICAL:
                converted = series.map(as_text)
            elif data_type == DATETIME:
                dates = normalize_dates(series)
                converted = dates.astype(object).where(dates.notna(), series)
            else:
                converted = series
            column.series = converted.mask(missing)

    # ------------------------------------------------------------------
    # pandas bridge
    # ------------------------------------------------------------------

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame({column.name: column.values for column in self.columns})

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame, name: str = "") -> "Table":
        table = cls(name)
        for col in df.columns:
            series = df[col].astype(object)
            table.add_column(Column(str(col), series.mask(missing_mask(series))))
        if not table.columns:
            table.row_count = 0
        return table


def merge_tables(tables: Iterable[Table], name: str = "") -> Table:
    """Fold merge over tables, skipping empty ones."""
    result = Table(name)
    for table in tables:
        if table.row_count > 0:
            result = result.merge(table)
    result.name = name or result.name
    return result
