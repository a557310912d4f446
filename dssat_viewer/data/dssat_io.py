"""
DSSAT file I/O operations
"""
import logging
import os
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple

import pandas as pd

from dssat_viewer import config
from dssat_viewer.data.data_processing import standardize_dtypes
from dssat_viewer.data.dates import dates_from_year_doy, normalize_dates
from dssat_viewer.data.errors import (
    DssatFileNotFoundError,
    FileUnreadableError,
    NoDataFoundError,
    NoDataTablesError,
    NoHeaderFoundError,
)
from dssat_viewer.data.line_classifier import (
    LineKind,
    ParseContext,
    classify_line,
    is_block_break,
    parse_header,
)
from dssat_viewer.data.table import CATEGORICAL, Column, Table, merge_tables
from dssat_viewer.data.values import as_text

logger = logging.getLogger(__name__)

NAME_PLACEHOLDER = "TNAM_PLACEHOLDER"
BLOCK_END_KINDS = {
    LineKind.HEADER,
    LineKind.EXPERIMENT,
    LineKind.TREATMENT,
    LineKind.RUN,
    LineKind.SECTION,
}
OSU_DAY_COLUMNS = ["PDAT", "HDAT", "ADAT", "MDAT"]
OSU_YEAR_COLUMNS = ["WYEAR", "YEAR"]


def _read_lines(file_path: str) -> List[str]:
    """Read all lines of a file, trying UTF-8 first and Latin-1 second."""
    if not os.path.isfile(file_path):
        logger.error(f"File does not exist: {file_path}")
        raise DssatFileNotFoundError(f"File does not exist: {file_path}", file_path)

    encodings = [config.DEFAULT_ENCODING, config.FALLBACK_ENCODING]
    for encoding in encodings:
        try:
            with open(file_path, "r", encoding=encoding) as file:
                lines = file.read().splitlines()
            logger.info(f"Read {len(lines)} lines from {file_path} ({encoding})")
            return lines
        except UnicodeDecodeError:
            logger.warning(f"Could not decode {file_path} as {encoding}")
            continue
        except OSError as e:
            logger.error(f"Cannot open file {file_path}: {e}")
            raise FileUnreadableError(f"Cannot open file {file_path}: {e}", file_path) from e

    raise FileUnreadableError(f"Could not read file with any encoding: {file_path}", file_path)


def _table_name(file_path: str) -> str:
    return os.path.splitext(os.path.basename(file_path))[0]


def _fit_row(tokens: Sequence[Optional[str]], width: int) -> List[Optional[str]]:
    """Pad a token list with None or truncate it to width."""
    row = list(tokens[:width])
    row.extend([None] * (width - len(row)))
    return row


def _build_table(name: str, headers: Sequence[str], rows: Sequence[Sequence[Optional[str]]]) -> Table:
    frame = pd.DataFrame([_fit_row(row, len(headers)) for row in rows],
                         columns=range(len(headers)), dtype=object)
    table = Table(name)
    for index, header in enumerate(headers):
        table.add_column(Column(header, frame[index]))
    return table


def _has_treatment_values(column: Column) -> bool:
    text = column.series.astype(str).str.strip()
    return bool((column.series.notna() & ~text.isin(["", "0"])).any())


def _rename_treatment_column(table: Table) -> None:
    """Rename the first populated TRNO/TR/TN column to TRT."""
    for name in config.TREATMENT_COLUMNS:
        column = table.get_column(name)
        if column is not None and _has_treatment_values(column):
            table.rename_column(name, "TRT")
            logger.info(f"Renamed '{name}' column to 'TRT'")
            return


# ----------------------------------------------------------------------
# Whitespace-delimited multi-section reader (*.OUT)
# ----------------------------------------------------------------------

def _collect_block(lines: Sequence[str], start: int) -> Tuple[List[List[str]], int]:
    """Data rows following a header; returns the rows and the index that ended the block."""
    rows = []
    index = start
    while index < len(lines):
        info = classify_line(lines[index])
        if info.kind == LineKind.COMMENT:
            index += 1
            continue
        if info.kind in BLOCK_END_KINDS or is_block_break(info.text):
            break
        rows.append(info.text.split())
        index += 1
    return rows, index


def _add_section_context(section: Table, context: ParseContext) -> None:
    synthetic = {
        "EXPERIMENT": context.experiment,
        "TRT": context.treatment,
        "RUN": context.run,
        "TNAME": context.treatment_name(),
    }
    for name, value in synthetic.items():
        # Columns read from the file take priority over the context
        if name not in section:
            section.add_constant_column(name, value)


def read_out_file(file_path: str) -> Table:
    """Read a whitespace-delimited DSSAT output file with repeating @ headers.

    Each header block becomes a section tagged with the experiment,
    treatment, run and treatment name in effect when it started. Sections
    are concatenated in file order without deduplication.
    """
    lines = _read_lines(file_path)
    name = _table_name(file_path)
    context = ParseContext()
    sections: List[Table] = []
    header_count = 0

    index = 0
    while index < len(lines):
        info = classify_line(lines[index])
        if info.kind != LineKind.HEADER:
            context.update(info)
            index += 1
            continue

        header_count += 1
        rows, index = _collect_block(lines, index + 1)
        if not rows or not info.headers:
            logger.info(f"Header without data rows in {file_path}: {info.headers}")
            continue

        section = _build_table(name, info.headers, rows)
        _add_section_context(section, context)
        sections.append(section)

    if header_count == 0:
        logger.error(f"No header found in {file_path}")
        raise NoHeaderFoundError(f"No header found in {file_path}", file_path)
    if not sections:
        logger.error(f"No valid data tables found in {file_path}")
        raise NoDataTablesError(f"No valid data tables found in {file_path}", file_path)

    table = sections[0]
    for section in sections[1:]:
        table.concat_rows(section)
    logger.info(f"Combined {len(sections)} sections into {table.row_count} rows")

    _rename_treatment_column(table)

    if "YEAR" in table and "DOY" in table:
        table.add_column(Column("DATE", dates_from_year_doy(table["YEAR"].series, table["DOY"].series)))

    return standardize_dtypes(table)


def read_evaluate_file(file_path: str) -> Table:
    """Read EVALUATE.OUT; it shares the standard output layout."""
    return read_out_file(file_path)


# ----------------------------------------------------------------------
# Fixed-column reader (*.OSU)
# ----------------------------------------------------------------------

def extract_by_position(line: str, start: int, end: int) -> str:
    """Trimmed text of line[start:end]."""
    return line[start:end].strip()


def tokenize_remainder(line: str, start: int, end: int) -> List[str]:
    """Whitespace tokens of the line with the [start:end) span replaced by a placeholder."""
    return (line[:start] + f" {NAME_PLACEHOLDER} " + line[end:]).split()


def split_name_field_line(line: str, start: int, end: int) -> List[str]:
    """Tokenize a data line whose [start:end) span is one field that may contain spaces."""
    name_value = extract_by_position(line, start, end)
    tokens = tokenize_remainder(line, start, end)
    return [name_value if token == NAME_PLACEHOLDER else token for token in tokens]


def _name_field_span(header_line: str, headers: Sequence[str], name_field: str,
                     anchor_field: str, default_width: int) -> Optional[Tuple[int, int]]:
    name_index = next((i for i, h in enumerate(headers) if name_field in h), None)
    if name_index is None:
        return None

    name_token = headers[name_index]
    start = header_line.index(name_token)
    end = start + default_width
    anchor_index = next((i for i, h in enumerate(headers) if anchor_field in h), None)
    if anchor_index is not None and anchor_index == name_index + 1:
        anchor_pos = header_line.find(headers[anchor_index], start + len(name_token))
        if anchor_pos != -1:
            end = anchor_pos - 1
    return start, end


def _summary_experiment(lines: Sequence[str]) -> Optional[str]:
    experiment = None
    for raw_line in lines:
        line = raw_line.strip()
        if line.startswith("@"):
            break
        if "SUMMARY" in line.upper() and ":" in line:
            tokens = line.split(":")[1].split()
            if tokens:
                experiment = tokens[0]
    return experiment


def _rename_first(table: Table, prefix: str, new_name: str) -> None:
    for name in table.column_names:
        if name.startswith(prefix):
            table.rename_column(name, new_name)
            return


def _osu_dates(table: Table) -> Optional[pd.Series]:
    year_name = next((c for c in OSU_YEAR_COLUMNS if c in table), None)
    day_name = next((c for c in OSU_DAY_COLUMNS if c in table), None)
    if year_name is None or day_name is None:
        return None

    # Only YYYYDDD day codes are dated here
    text = table[day_name].series.astype(str).str.strip()
    return normalize_dates(text.where(text.str.fullmatch(r"\d{7}").astype(bool)))


def read_osu_file(file_path: str, name_field: str = "TNAM", anchor_field: str = "FNAM",
                  default_width: int = 25) -> Table:
    """Read a fixed-column summary file (Summary.OSU style).

    The name_field column may contain spaces, so it is cut out of each
    data line by character position before the rest of the line is split
    on whitespace.
    """
    lines = _read_lines(file_path)

    header_index = next((i for i, line in enumerate(lines) if line.startswith("@")), None)
    if header_index is None:
        logger.error(f"No header found in {file_path}")
        raise NoHeaderFoundError(f"No header found in {file_path}", file_path)

    header_line = lines[header_index]
    headers = parse_header(header_line)
    span = _name_field_span(header_line, headers, name_field, anchor_field, default_width)
    if span is not None:
        logger.info(f"{name_field} field spans columns {span[0]}-{span[1]}")

    rows = []
    for line in lines[header_index + 1:]:
        if not line.strip() or line.startswith(("!", "#", "*", "@")):
            continue
        if span is not None and len(line) > span[0]:
            rows.append(split_name_field_line(line, span[0], span[1]))
        else:
            rows.append(line.split())

    if not rows:
        logger.error(f"No data rows found in {file_path}")
        raise NoDataFoundError(f"No data rows found in {file_path}", file_path)

    table = _build_table(_table_name(file_path), headers, rows)

    table.rename_column("CR", "CROP")
    table.rename_column("TRNO", "TRT")
    _rename_first(table, name_field, "TNAME")
    _rename_first(table, "EXNAME", "EXPERIMENT")

    experiment = _summary_experiment(lines)
    if experiment and "EXPERIMENT" not in table:
        table.add_constant_column("EXPERIMENT", experiment)

    dates = _osu_dates(table)
    if dates is not None:
        table.add_column(Column("DATE", dates))

    for column in table.columns:
        column.name = column.name.rstrip(".")

    logger.info(f"Loaded {table.row_count} rows from OSU file {file_path}")
    return standardize_dtypes(table)


# ----------------------------------------------------------------------
# Multi-header-block reader (observed *.xxT files)
# ----------------------------------------------------------------------

def read_t_file(file_path: str) -> Table:
    """Read an observed-data file with one or more @ header blocks.

    Blocks are merged as a column union with rows appended in block order.
    """
    lines = _read_lines(file_path)
    name = _table_name(file_path)

    header_indices = [i for i, line in enumerate(lines) if line.strip().startswith("@")]
    if not header_indices:
        logger.error(f"No header found in {file_path}")
        raise NoHeaderFoundError(f"No header found in {file_path}", file_path)
    logger.info(f"Found {len(header_indices)} header lines at positions: {header_indices}")

    blocks = []
    for block_index, header_line_index in enumerate(header_indices):
        headers = parse_header(lines[header_line_index])
        block_end = (header_indices[block_index + 1]
                     if block_index + 1 < len(header_indices) else len(lines))

        rows = []
        for line in lines[header_line_index + 1:block_end]:
            stripped = line.strip()
            if not stripped or stripped.startswith(("!", "*", "#")):
                continue
            rows.append(stripped.split())
        blocks.append(_build_table(name, headers, rows))

    table = merge_tables(blocks, name)
    if table.row_count == 0:
        logger.error(f"No data found in any section of {file_path}")
        raise NoDataFoundError(f"No data found in any section of {file_path}", file_path)

    table.rename_column("TRNO", "TRT")

    if "PDAT" in table:
        table.add_column(Column("DATE", normalize_dates(table["PDAT"].series)))
    elif "DATE" in table:
        table["DATE"].series = normalize_dates(table["DATE"].series)

    logger.info(f"Loaded {table.row_count} rows, columns: {table.column_names}")
    return standardize_dtypes(table)


# ----------------------------------------------------------------------
# Reader strategies
# ----------------------------------------------------------------------

class ReaderStrategy(NamedTuple):
    name: str
    read: Callable[[str], Table]


OUT_READER = ReaderStrategy("OUT", read_out_file)
OSU_READER = ReaderStrategy("OSU", read_osu_file)
T_FILE_READER = ReaderStrategy("T", read_t_file)


def default_strategies(file_path: str) -> List[ReaderStrategy]:
    """Reader order for a file based on its extension."""
    extension = os.path.splitext(file_path)[1].lstrip(".").upper()
    if extension == "OSU":
        return [OSU_READER]
    if extension.startswith("O"):
        return [OUT_READER]
    return [OUT_READER, OSU_READER]


def try_read(file_path: str, strategies: Sequence[ReaderStrategy]) -> Table:
    """Return the first successful strategy's table.

    Only "no header"/"no data" failures move on to the next strategy; the
    last such failure is re-raised when every strategy fails.
    """
    if not strategies:
        raise ValueError("At least one reader strategy is required")

    last_error = None
    for strategy in strategies:
        try:
            return strategy.read(file_path)
        except (NoHeaderFoundError, NoDataFoundError) as e:
            logger.warning(f"{strategy.name} reader could not parse {file_path}: {e}")
            last_error = e
    raise last_error


def read_file(file_path: str) -> Table:
    """Read a DSSAT output file with the reader chain chosen by its extension."""
    return try_read(file_path, default_strategies(file_path))


# ----------------------------------------------------------------------
# Observed data and output file discovery
# ----------------------------------------------------------------------

def find_observed_file(sim_file_path: str, experiment_code: str, crop_code: str) -> Optional[str]:
    """Locate the observed file next to a simulated output file."""
    if not crop_code or crop_code == config.UNKNOWN_CROP_CODE:
        logger.info(f"No crop code for {experiment_code}, skipping observed data search")
        return None

    folder_path = os.path.dirname(os.path.abspath(sim_file_path))
    candidates = [
        f"{experiment_code}.{crop_code}T",
        f"{experiment_code}.{config.OBSERVED_VERSION_EXTENSION}",
    ]
    for candidate in candidates:
        path = os.path.join(folder_path, candidate)
        if os.path.isfile(path):
            logger.info(f"Found observed data file: {path}")
            return path
    logger.info(f"No observed data file found for {sim_file_path}")
    return None


def read_observed_data(sim_file_path: str, experiment_code: str, crop_code: str) -> Table:
    """Read the observed data matching a simulated file, tagged with experiment and crop."""
    observed_path = find_observed_file(sim_file_path, experiment_code, crop_code)
    if observed_path is None:
        raise DssatFileNotFoundError(
            f"No observed data for {experiment_code} ({crop_code})", sim_file_path
        )

    table = read_t_file(observed_path)
    if "EXPERIMENT" not in table:
        table.add_column(Column("EXPERIMENT", [experiment_code] * table.row_count, CATEGORICAL))
    if "CROP" not in table:
        table.add_column(Column("CROP", [crop_code] * table.row_count, CATEGORICAL))
    return table


# ----------------------------------------------------------------------
# SensWork observed data
# ----------------------------------------------------------------------

def _first_code(table: Table, column_name: str, skip: Sequence[str] = ()) -> Optional[str]:
    column = table.get_column(column_name)
    if column is None:
        return None
    for value in column.values:
        text = as_text(value) if value is not None else ""
        if text and text not in skip:
            return text
    return None


def _model_crop_name(lines: Sequence[str]) -> Optional[str]:
    """Crop name from a 'MODEL : CSCER048 - Wheat' line near the top of a file."""
    for raw_line in lines[:config.MODEL_LINE_SCAN_LIMIT]:
        line = raw_line.strip()
        if line.startswith("MODEL") and ":" in line:
            model_info = line.split(":")[-1].strip()
            if " - " in model_info:
                return model_info.split(" - ")[-1].strip()
            return None
    return None


def _crop_code_for_name(crop_name: str, reference) -> Optional[str]:
    if reference is None:
        return None
    crop = reference.crop_by_name(crop_name)
    if crop is None:
        name = crop_name.lower()
        crop = next((c for c in reference.crop_details()
                     if c['name'].lower() in name or name in c['name'].lower()), None)
    return crop['code'].upper() if crop is not None else None


def extract_senswork_codes(file_path: str, reference=None) -> Tuple[Optional[str], str]:
    """Experiment and crop codes of a SensWork output file.

    The experiment is the first EXPERIMENT value other than DEFAULT. The
    crop comes from the CROP or CR column, else from the crop name on the
    MODEL line mapped through the reference crop list, else 'XX'.
    """
    table = read_file(file_path)
    experiment = _first_code(table, "EXPERIMENT", skip=("DEFAULT",))
    crop = _first_code(table, "CROP") or _first_code(table, "CR")

    if crop is None:
        crop_name = _model_crop_name(_read_lines(file_path))
        if crop_name:
            crop = _crop_code_for_name(crop_name, reference)
            logger.debug(f"MODEL line crop {crop_name} maps to {crop}")
    if crop is None:
        logger.info(f"Could not determine crop code for {file_path}, using {config.UNKNOWN_CROP_CODE}")
        crop = config.UNKNOWN_CROP_CODE

    logger.info(f"SensWork file {file_path}: experiment={experiment} crop={crop}")
    return experiment, crop


def _senswork_search_paths(file_path: str, crop_code: str, reference=None) -> List[str]:
    paths = [os.path.dirname(os.path.abspath(file_path))]
    if reference is None:
        return paths

    for crop in reference.crop_details():
        if crop['code'].upper() == crop_code.upper() and crop['directory']:
            paths.append(crop['directory'])
    if reference.dssat_base:
        paths.extend(os.path.join(reference.dssat_base, folder)
                     for folder in config.SENSWORK_FALLBACK_FOLDERS)
    return paths


def find_senswork_observed_file(file_path: str, experiment_code: str, crop_code: str,
                                reference=None) -> Optional[str]:
    """Locate <experiment>.<crop>T for a SensWork file.

    The SensWork folder is searched first, then the crop's directory and a
    few standard crop folders of the installation.
    """
    observed_name = f"{experiment_code}.{crop_code}T"
    for folder in _senswork_search_paths(file_path, crop_code, reference):
        if not os.path.isdir(folder):
            continue
        candidate = os.path.join(folder, observed_name)
        if os.path.isfile(candidate):
            logger.info(f"Found observed data file: {candidate}")
            return candidate

        matches = sorted(
            entry for entry in os.listdir(folder)
            if observed_name.upper() in entry.upper()
            and os.path.isfile(os.path.join(folder, entry))
        )
        if matches:
            logger.info(f"Found observed data file (case-insensitive): {matches[0]} in {folder}")
            return os.path.join(folder, matches[0])

    logger.warning(f"Could not find observed data file: {observed_name}")
    return None


def read_senswork_observed_data(file_path: str, reference=None) -> Table:
    """Observed data for a SensWork output file, tagged with experiment and crop."""
    experiment, crop = extract_senswork_codes(file_path, reference)
    if not experiment:
        logger.warning(f"Could not extract an experiment code from {file_path}")
        raise NoDataFoundError(f"No experiment code in {file_path}", file_path)

    observed_path = find_senswork_observed_file(file_path, experiment, crop, reference)
    if observed_path is None:
        raise DssatFileNotFoundError(f"No observed data for {experiment} ({crop})", file_path)

    table = read_t_file(observed_path)
    if "CROP" not in table:
        table.add_column(Column("CROP", [crop] * table.row_count, CATEGORICAL))
    if "EXPERIMENT" not in table:
        table.add_column(Column("EXPERIMENT", [experiment] * table.row_count, CATEGORICAL))
    logger.info(f"Loaded {table.row_count} observed rows for SensWork file {file_path}")
    return table


def is_file_plottable(file_path: str) -> bool:
    """Check the first lines of a file for a time-series table."""
    try:
        lines = _read_lines(file_path)[:100]
    except (DssatFileNotFoundError, FileUnreadableError):
        return False

    has_table = False
    has_time_columns = False
    headers: List[str] = []
    data_rows = 0

    for raw_line in lines:
        line = raw_line.strip()
        if line.startswith("@"):
            has_table = True
            headers = parse_header(line)
            if any(h.upper() in config.TIME_COLUMNS for h in headers):
                has_time_columns = True
            continue

        upper = line.upper()
        if (has_table and line
                and not line.startswith(("*", "!", "#", "EXPERIMENT", "TREATMENT"))
                and "SUMMARY" not in upper and "MODEL" not in upper):
            if len(line.split()) >= len(headers) / 2:
                data_rows += 1

        if has_table and has_time_columns and data_rows >= 5:
            break

    plottable = has_table and has_time_columns and data_rows >= 3
    logger.debug(f"{file_path}: table={has_table} time={has_time_columns} "
                 f"rows={data_rows} plottable={plottable}")
    return plottable


def prepare_out_files(folder: str, reference=None) -> List[str]:
    """List plottable DSSAT output files in a folder.

    folder is a directory path, or a crop name resolved through the
    reference data service when one is given.
    """
    folder_path = folder
    if reference is not None and not os.path.isabs(folder):
        folder_path = reference.folder_path(folder)

    if not folder_path or not os.path.isdir(folder_path):
        logger.warning(f"Could not resolve output folder: {folder}")
        return []

    logger.info(f"Looking for output files in: {folder_path}")
    out_files = []
    for file_name in sorted(os.listdir(folder_path)):
        full_path = os.path.join(folder_path, file_name)
        base_name, extension = os.path.splitext(file_name)
        extension = extension.lstrip(".").upper()
        if not os.path.isfile(full_path) or extension not in config.OUTPUT_FILE_EXTENSIONS:
            continue

        if extension in config.PLOTTABLE_EXTENSIONS:
            out_files.append(file_name)
            continue

        if extension == "OUT":
            base_lower = base_name.lower()
            if "evaluate" in base_lower:
                out_files.append(file_name)
                continue
            pattern = next((p for p in config.NON_PLOTTABLE_PATTERNS if p in base_lower), None)
            if pattern is not None:
                logger.info(f"Skipping {file_name}: matches non-plottable pattern {pattern}")
                continue
            if not is_file_plottable(full_path):
                logger.info(f"Skipping {file_name}: lacks time-series structure")
                continue

        out_files.append(file_name)

    logger.info(f"Output files found: {out_files}")
    return out_files
