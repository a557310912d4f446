"""
Configuration settings for DSSAT Viewer data core
"""
import logging
import os
import platform
import sys
from typing import Optional

# Environment and initialization
if platform.system() == 'Windows':
    DSSAT_EXE = "DSCSM048.EXE"
    DSSATPRO_FILE = "DSSATPRO.V48"
    OBSERVED_VERSION_EXTENSION = "V48"
    DSSAT_SEARCH_PATHS = [
        r"C:\DSSAT48",
        r"C:\Program Files\DSSAT48",
        r"C:\Program Files (x86)\DSSAT48",
    ]
else:
    DSSAT_EXE = "DSCSM048"
    DSSATPRO_FILE = "DSSATPRO.L48"
    OBSERVED_VERSION_EXTENSION = "L48"
    DSSAT_SEARCH_PATHS = [
        "/Applications/DSSAT48",
        "/usr/local/DSSAT48",
    ]

# Only environment override the core honours
DSSAT_PATH_ENV = "DSSAT_PATH"

# Default values
DEFAULT_ENCODING = 'utf-8'
FALLBACK_ENCODING = 'latin-1'

# Missing values for DSSAT files
MISSING_VALUES = {-99, -99.0, -99.9, -99.99}
MISSING_VALUE_STRINGS = {'-99', '-99.0', '-99.9', '-99.99'}
DATE_MISSING_STRINGS = {'-99', '-99.0', 'NA', 'NaN'}

# Column conventions
TREATMENT_COLUMNS = ["TRNO", "TR", "TN"]
IDENTIFIER_COLUMNS = {
    "TRT", "TRNO", "TR", "TN", "RUN", "RUNNO", "EXPERIMENT", "TNAME",
    "CROP", "CR", "EXCODE", "FILEX", "RUN_FILEX",
}
TIME_COLUMNS = {"YEAR", "DOY", "DAP", "DAS", "DATE"}

# Sensitivity-analysis work folder and where its observed files are looked up
SENSWORK_FOLDER = "SensWork"
SENSWORK_FALLBACK_FOLDERS = ["Maize", "MAIZE", "Wheat", "WHEAT", "Soybean", "SOYBEAN"]
UNKNOWN_CROP_CODE = "XX"
MODEL_LINE_SCAN_LIMIT = 50
EVALUATE_METADATA_COLUMNS = {
    "RUN", "TRNO", "EXPNO", "EXPERIMENT", "TREATMENT", "TRTNO", "TRT", "EXP",
    "EXCODE", "CR", "RN",
}

# Output file discovery
OUTPUT_FILE_EXTENSIONS = [
    "OUT", "OSU", "OVT", "OPT", "OPG", "OEB", "OEV", "OG2", "OGF", "OLN",
    "OME", "OMO", "ONO", "OOV", "OPC", "OPN", "OSN", "OSW", "OTS", "OWE",
]
PLOTTABLE_EXTENSIONS = {"OSU", "OPG", "OVT", "OPT"}
NON_PLOTTABLE_PATTERNS = ["summary", "overview", "mgmtevent", "mgmtops", "measured"]

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """Configure root logging for applications embedding the data core."""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)


def dssat_path_override() -> Optional[str]:
    """Return the DSSAT_PATH environment override, if set."""
    value = os.environ.get(DSSAT_PATH_ENV, '').strip()
    return value or None
