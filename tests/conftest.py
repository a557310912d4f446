"""
Shared fixtures: synthetic DSSAT files written to a temporary directory.
"""
import pytest


PLANTGRO_OUT = """\
*DSSAT Cropping System Model Ver. 4.8.0.000 -MAR 10, 2023

*RUN   1        : Control                      MZCER048 UFGA8201 1
 MODEL          : MZCER048 - Maize
 EXPERIMENT     : UFGA8201 MZ UF Gainesville irrigation
 DATA PATH      :
 TREATMENT  1   : Control                      MZCER048

!IDENTIFIER
@YEAR DOY   DAS   DAP   LAID
 1982  57     0     0   0.00
 1982  60     3     3   0.10
 1982  65     8     8   0.35

*RUN   2        : High N                       MZCER048 UFGA8201 2
 MODEL          : MZCER048 - Maize
 EXPERIMENT     : UFGA8201 MZ UF Gainesville irrigation
 TREATMENT  2   : High N                       MZCER048

@YEAR DOY   DAS   DAP   LAID
 1982  57     0     0   0.00
 1982  60     3     3    -99
"""

SECTION_CONTEXT_OUT = """\
*EXPERIMENT 1 : UFGA8201
TREATMENT 1 : Control
@DAS LAID
  0  0.0
  5  0.2
 10  0.4
"""

# Header and data lines share column offsets; TNAM spans 24-48 and FNAM starts at 50
OSU_HEADER = "@RUNNO TRNO CR EXNAME.. TNAM..................... FNAM.... PDAT     HWAM YEAR"


def osu_row(run, trno, crop, exname, tname, fname, pdat, hwam, year):
    return (f"{run:>6} {trno:>4} {crop:>2} {exname:<8} {tname:<25} "
            f"{fname:<8} {pdat:>7} {hwam:>5} {year:>4}")


SUMMARY_OSU = "\n".join([
    "*SUMMARY : UFGA8201 MZ UF Gainesville irrigation",
    "",
    "!IDENTIFIERS",
    OSU_HEADER,
    osu_row(1, 1, "MZ", "UFGA8201", "Rainfed low N", "IBWI0001", "1982057", "8500", "1982"),
    osu_row(2, 2, "MZ", "UFGA8201", "Irrigated high N", "IBWI0001", "1982058", "-99", "1982"),
]) + "\n"

OBSERVED_T = """\
*EXP. DATA (T): UFGA8201MZ UF Gainesville irrigation

@TRNO DATE  LAID  CWAD
    1 82060  0.10   -99
    1 82065  0.35   120
    2 82060  0.12    80

! Harvest
@TRNO DATE  GWAD
    1 82120  5000
    2 82120  5200
"""


@pytest.fixture
def write_file(tmp_path):
    """Factory writing text to tmp_path/name and returning the path as str."""
    def _write(name: str, text: str) -> str:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return str(path)
    return _write


@pytest.fixture
def plantgro_file(write_file):
    return write_file("PlantGro.OUT", PLANTGRO_OUT)


@pytest.fixture
def section_context_file(write_file):
    return write_file("Context.OUT", SECTION_CONTEXT_OUT)


@pytest.fixture
def summary_osu_file(write_file):
    return write_file("Summary.OSU", SUMMARY_OSU)


@pytest.fixture
def observed_file(write_file):
    return write_file("UFGA8201.MZT", OBSERVED_T)
