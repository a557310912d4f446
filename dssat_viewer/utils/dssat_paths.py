import os
import logging
import platform
from typing import List, Optional

from dssat_viewer import config

logger = logging.getLogger(__name__)

DETAIL_CDE = "DETAIL.CDE"
DATA_CDE = "DATA.CDE"
OUTPUT_CDE = "OUTPUT.CDE"


def candidate_bases() -> List[str]:
    """DSSAT base directories to search, in priority order.

    The DSSAT_PATH environment variable comes first, then the platform
    search paths from config, then ~/DSSAT48.
    """
    bases = []
    override = config.dssat_path_override()
    if override:
        bases.append(override)
    bases.extend(config.DSSAT_SEARCH_PATHS)
    bases.append(os.path.join(os.path.expanduser("~"), "DSSAT48"))
    return bases


def find_dssat_base() -> Optional[str]:
    """Return the first existing DSSAT base directory, or None."""
    for base in candidate_bases():
        if base and os.path.isdir(base):
            logger.info(f"DSSAT base directory: {base}")
            return base
    logger.warning(f"No DSSAT installation found (platform: {platform.system()})")
    return None


def _find_in_base(file_name: str, dssat_base: Optional[str] = None) -> Optional[str]:
    """Locate a DSSAT reference file in the given base or the standard locations."""
    bases = [dssat_base] if dssat_base else candidate_bases()
    for base in bases:
        file_path = os.path.join(base, file_name)
        if os.path.isfile(file_path):
            logger.info(f"Found {file_name} at: {file_path}")
            return file_path
    logger.warning(f"Could not find {file_name} in: {bases}")
    return None


def find_detail_cde(dssat_base: Optional[str] = None) -> Optional[str]:
    """Find the DETAIL.CDE crop code file."""
    return _find_in_base(DETAIL_CDE, dssat_base)


def find_dssatpro_file(dssat_base: Optional[str] = None) -> Optional[str]:
    """Find the platform's DSSATPRO profile (DSSATPRO.V48 or DSSATPRO.L48)."""
    return _find_in_base(config.DSSATPRO_FILE, dssat_base)


def find_data_cde(dssat_base: Optional[str] = None) -> Optional[str]:
    return _find_in_base(DATA_CDE, dssat_base)


def find_output_cde(dssat_base: Optional[str] = None) -> Optional[str]:
    return _find_in_base(OUTPUT_CDE, dssat_base)


def verify_dssat_installation(base_path: Optional[str]) -> bool:
    """Verify that all required DSSAT files exist"""
    if not base_path:
        return False
    required_files = [config.DSSATPRO_FILE, DETAIL_CDE, config.DSSAT_EXE]
    return all(os.path.exists(os.path.join(base_path, file)) for file in required_files)
