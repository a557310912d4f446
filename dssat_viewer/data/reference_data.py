"""
DSSAT reference data: variable labels, crop directories and output file descriptions

Parsed once on first use and cached on a ReferenceData instance; call
reload() to re-read the files. Missing files are logged and give empty
results.
"""
import os
import logging
import platform
from typing import Dict, List, Optional, Tuple

from dssat_viewer import config
from dssat_viewer.utils.dssat_paths import (
    find_data_cde,
    find_detail_cde,
    find_dssat_base,
    find_dssatpro_file,
    find_output_cde,
)

logger = logging.getLogger(__name__)

CROP_SECTIONS = ("*Crop and Weed Species", "*Applications")


def _read_text(file_path: str) -> List[str]:
    try:
        with open(file_path, "r", encoding=config.DEFAULT_ENCODING) as file:
            return file.read().splitlines()
    except UnicodeDecodeError:
        with open(file_path, "r", encoding=config.FALLBACK_ENCODING) as file:
            return file.read().splitlines()


def parse_data_cde(lines: List[str]) -> Dict[str, Tuple[str, str]]:
    """Parse DATA.CDE records into code -> (label, description).

    Records are fixed width: code in columns 0-5, label in 7-22 and the
    description from column 23.
    """
    header_index = next((i for i, line in enumerate(lines) if line.startswith("@")), None)
    if header_index is None:
        logger.warning("No header found in DATA.CDE")
        return {}

    variables = {}
    for line in lines[header_index + 1:]:
        if not line.strip() or line.startswith(("!", "*")):
            continue
        if len(line) < 23:
            continue
        code = line[:6].strip()
        if code:
            variables[code] = (line[7:23].strip(), line[23:].strip())
    return variables


def parse_detail_cde(lines: List[str]) -> List[dict]:
    """Crop codes and names from the crop and application sections of DETAIL.CDE."""
    crops: Dict[str, dict] = {}
    in_section = False

    for line in lines:
        if any(section in line for section in CROP_SECTIONS):
            in_section = True
            continue
        if line.startswith("@CDE"):
            continue
        if line.startswith("*"):
            in_section = False
            continue

        if in_section and line.strip() and len(line) >= 8:
            crop_code = line[:8].strip()
            crop_name = line[8:72].strip()
            if crop_code and crop_name:
                crops[crop_code[:2]] = {
                    'code': crop_code[:2],
                    'name': crop_name,
                    'directory': '',
                }
    return list(crops.values())


def parse_dssatpro(lines: List[str], dssat_base: str,
                   is_windows: Optional[bool] = None) -> Dict[str, str]:
    """Crop code -> directory from the '<code>D <directory>' records of DSSATPRO."""
    if is_windows is None:
        is_windows = platform.system() == 'Windows'

    directories = {}
    for line in lines:
        line = line.strip()
        if not line or line.startswith("*"):
            continue

        parts = line.split(None, 1)
        if len(parts) < 2:
            continue
        folder_code = parts[0]
        if not folder_code.endswith('D') or len(folder_code) < 3:
            continue

        directory = parts[1].strip()
        if is_windows:
            directory = directory.replace(': ', ':')
        else:
            directory = directory.replace(': ', '').replace(':', '')
            directory = directory.replace('\\', '/')
            if not directory.startswith(dssat_base):
                directory = os.path.join(dssat_base, os.path.basename(directory.rstrip('/')))
            directory = os.path.normpath(directory)
        directories[folder_code[:-1]] = directory
    return directories


def parse_output_cde(lines: List[str]) -> Dict[str, str]:
    """Output file base name -> description from OUTPUT.CDE."""
    descriptions = {}
    for line in lines:
        line = line.strip()
        if not line or line.startswith(("*", "!", "@")):
            continue
        if ".OUT" not in line and ".csv" not in line:
            continue

        parts = line.split()
        if len(parts) < 2:
            continue
        base_name = os.path.splitext(parts[0])[0]

        # Skip a short upper-case code column after the file name
        start = 2 if len(parts) >= 3 and len(parts[1]) <= 3 and parts[1] == parts[1].upper() else 1
        words = []
        for i in range(start, len(parts)):
            word = parts[i]
            is_alias = (len(word) <= 8 and word == word.upper()
                        and (word.startswith(("OUT", "CSP_")) or i == len(parts) - 1))
            if i > start + 2 and is_alias:
                break
            words.append(word)

        description = " ".join(words).strip()
        if base_name and description:
            descriptions[base_name] = description
    return descriptions


class ReferenceData:
    """Lookup service over the DSSAT reference files."""

    def __init__(self, dssat_base: Optional[str] = None):
        self._dssat_base = dssat_base
        self._variables: Optional[Dict[str, Tuple[str, str]]] = None
        self._crops: Optional[List[dict]] = None
        self._outfile_descriptions: Optional[Dict[str, str]] = None

    @property
    def dssat_base(self) -> Optional[str]:
        if self._dssat_base is None:
            self._dssat_base = find_dssat_base()
        return self._dssat_base

    def reload(self) -> None:
        """Drop cached data; files are re-read on next access."""
        self._variables = None
        self._crops = None
        self._outfile_descriptions = None
        logger.info("Reference data cache cleared")

    def _load_lines(self, file_path: Optional[str], label: str) -> List[str]:
        if not file_path:
            logger.warning(f"{label} not found; labels fall back to raw codes")
            return []
        try:
            return _read_text(file_path)
        except OSError as e:
            logger.warning(f"Cannot read {label} at {file_path}: {e}")
            return []

    # ------------------------------------------------------------------
    # Variables
    # ------------------------------------------------------------------

    def _variable_table(self) -> Dict[str, Tuple[str, str]]:
        if self._variables is None:
            lines = self._load_lines(find_data_cde(self.dssat_base), "DATA.CDE")
            self._variables = parse_data_cde(lines) if lines else {}
            logger.info(f"Loaded {len(self._variables)} variable definitions")
        return self._variables

    def variable_info(self, code: str) -> Tuple[str, str]:
        """(label, description) for a variable code, ('', '') if unknown."""
        return self._variable_table().get(code, ("", ""))

    # ------------------------------------------------------------------
    # Crops and folders
    # ------------------------------------------------------------------

    def crop_details(self) -> List[dict]:
        """Crop code, name and directory joined from DETAIL.CDE and DSSATPRO."""
        if self._crops is None:
            detail_lines = self._load_lines(find_detail_cde(self.dssat_base), "DETAIL.CDE")
            crops = parse_detail_cde(detail_lines)

            pro_path = find_dssatpro_file(self.dssat_base)
            pro_lines = self._load_lines(pro_path, config.DSSATPRO_FILE)
            if pro_lines:
                directories = parse_dssatpro(pro_lines, os.path.dirname(pro_path))
                for crop in crops:
                    crop['directory'] = directories.get(crop['code'], '')

            for crop in crops:
                logger.debug(f"Name: {crop['name']}, Code: {crop['code']}, Directory: {crop['directory']}")
            self._crops = crops
        return self._crops

    def crop_by_name(self, name: str) -> Optional[dict]:
        return next(
            (crop for crop in self.crop_details() if crop['name'].upper() == name.upper()),
            None
        )

    def crop_by_code(self, code: str) -> Optional[dict]:
        return next(
            (crop for crop in self.crop_details() if crop['code'].upper() == code.upper()),
            None
        )

    def prepare_folders(self) -> List[str]:
        """Crop names that have a directory in the DSSAT profile."""
        return [crop['name'] for crop in self.crop_details() if crop['directory']]

    def folder_path(self, folder_name: str) -> Optional[str]:
        """Resolve a crop folder name (or SensWork, or an absolute path) to a directory."""
        if os.path.isabs(folder_name):
            return folder_name
        if folder_name.lower() == config.SENSWORK_FOLDER.lower():
            return os.path.join(self.dssat_base, config.SENSWORK_FOLDER) if self.dssat_base else None

        crop = self.crop_by_name(folder_name)
        if not crop or not crop['directory']:
            logger.warning(f"No directory found for crop {folder_name}")
            return None
        return crop['directory']

    # ------------------------------------------------------------------
    # Output files
    # ------------------------------------------------------------------

    def outfile_descriptions(self) -> Dict[str, str]:
        if self._outfile_descriptions is None:
            lines = self._load_lines(find_output_cde(self.dssat_base), "OUTPUT.CDE")
            self._outfile_descriptions = parse_output_cde(lines)
            logger.info(f"Loaded {len(self._outfile_descriptions)} output file descriptions")
        return self._outfile_descriptions
