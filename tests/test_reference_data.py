"""
Tests for the reference data parsers and the ReferenceData lookup service.
"""
import os

import pytest

from dssat_viewer import config
from dssat_viewer.data import reference_data
from dssat_viewer.data.reference_data import (
    ReferenceData,
    parse_data_cde,
    parse_detail_cde,
    parse_dssatpro,
    parse_output_cde,
)

DATA_CDE_LINES = [
    "*SIMULATION AND MEASURED DATA",
    "@CDE   LABEL           DESCRIPTION",
    f"{'HWAM':<6} {'Yield (kg/ha)':<16}Yield at harvest maturity",
    f"{'LAID':<6} {'LAI':<16}Leaf area index",
    "! comment",
    "SHORT",
]

DETAIL_CDE_LINES = [
    "*Crop and Weed Species",
    "@CDE    DESCRIPTION",
    f"{'MZ':<8}Maize",
    f"{'WH':<8}Wheat",
    "",
    "*Soil texture",
    f"{'CL':<8}Clay loam",
]

OUTPUT_CDE_LINES = [
    "*OUTPUT FILES",
    "@FILENAME      CDE  DESCRIPTION",
    "PlantGro.OUT   PG   Plant growth time series   OUTG",
    "Summary.OUT    Summary of run results",
    "! Weather.OUT  WE   commented out",
    "README.txt     not an output file",
]


class TestParsers:
    """Line-based parsers for the reference files."""

    def test_parse_data_cde(self) -> None:
        variables = parse_data_cde(DATA_CDE_LINES)
        assert variables == {
            "HWAM": ("Yield (kg/ha)", "Yield at harvest maturity"),
            "LAID": ("LAI", "Leaf area index"),
        }

    def test_parse_data_cde_without_header(self) -> None:
        assert parse_data_cde(DATA_CDE_LINES[2:]) == {}

    def test_parse_detail_cde(self) -> None:
        crops = parse_detail_cde(DETAIL_CDE_LINES)
        assert crops == [
            {"code": "MZ", "name": "Maize", "directory": ""},
            {"code": "WH", "name": "Wheat", "directory": ""},
        ]

    def test_parse_dssatpro_posix(self) -> None:
        lines = [
            "*DSSAT PROFILE",
            "MZD C: \\DSSAT48\\Maize",
            "WHD /opt/DSSAT48/Wheat",
            "CRD C: \\DSSAT48\\Tools\\CROPS",
            "DSSATPRO",
            "EXE C: \\DSSAT48",
        ]
        directories = parse_dssatpro(lines, "/opt/DSSAT48", is_windows=False)
        assert directories == {
            "MZ": os.path.normpath("/opt/DSSAT48/Maize"),
            "WH": os.path.normpath("/opt/DSSAT48/Wheat"),
            "CR": os.path.normpath("/opt/DSSAT48/CROPS"),
        }

    def test_parse_dssatpro_windows(self) -> None:
        directories = parse_dssatpro(["MZD C: \\DSSAT48\\Maize"], "C:\\DSSAT48", is_windows=True)
        assert directories == {"MZ": "C:\\DSSAT48\\Maize"}

    def test_parse_output_cde(self) -> None:
        assert parse_output_cde(OUTPUT_CDE_LINES) == {
            "PlantGro": "Plant growth time series",
            "Summary": "Summary of run results",
        }


@pytest.fixture
def dssat_base(tmp_path, monkeypatch):
    """A minimal DSSAT installation with reference files and a Maize folder."""
    monkeypatch.setattr(reference_data.platform, "system", lambda: "Linux")
    (tmp_path / "Maize").mkdir()
    (tmp_path / "DATA.CDE").write_text("\n".join(DATA_CDE_LINES) + "\n")
    (tmp_path / "DETAIL.CDE").write_text("\n".join(DETAIL_CDE_LINES) + "\n")
    (tmp_path / "OUTPUT.CDE").write_text("\n".join(OUTPUT_CDE_LINES) + "\n")
    (tmp_path / config.DSSATPRO_FILE).write_text("MZD C: \\DSSAT48\\Maize\n")
    return str(tmp_path)


class TestReferenceData:
    """Lookups over a DSSAT base directory."""

    def test_variable_info(self, dssat_base) -> None:
        reference = ReferenceData(dssat_base)
        assert reference.variable_info("HWAM") == ("Yield (kg/ha)", "Yield at harvest maturity")
        assert reference.variable_info("NOPE") == ("", "")

    def test_crop_details(self, dssat_base) -> None:
        reference = ReferenceData(dssat_base)
        maize = reference.crop_by_name("maize")
        assert maize["code"] == "MZ"
        assert maize["directory"] == os.path.join(dssat_base, "Maize")
        assert reference.crop_by_code("wh")["name"] == "Wheat"
        assert reference.crop_by_code("WH")["directory"] == ""
        assert reference.crop_by_name("Rice") is None

    def test_prepare_folders_only_lists_crops_with_directories(self, dssat_base) -> None:
        assert ReferenceData(dssat_base).prepare_folders() == ["Maize"]

    def test_folder_path(self, dssat_base, tmp_path) -> None:
        reference = ReferenceData(dssat_base)
        assert reference.folder_path("Maize") == os.path.join(dssat_base, "Maize")
        assert reference.folder_path("senswork") == os.path.join(dssat_base, "SensWork")
        assert reference.folder_path(str(tmp_path)) == str(tmp_path)
        assert reference.folder_path("Wheat") is None

    def test_outfile_descriptions(self, dssat_base) -> None:
        descriptions = ReferenceData(dssat_base).outfile_descriptions()
        assert descriptions["PlantGro"] == "Plant growth time series"

    def test_missing_files_give_empty_results(self, tmp_path) -> None:
        reference = ReferenceData(str(tmp_path))
        assert reference.variable_info("HWAM") == ("", "")
        assert reference.crop_details() == []
        assert reference.prepare_folders() == []
        assert reference.outfile_descriptions() == {}

    def test_reload(self, dssat_base) -> None:
        reference = ReferenceData(dssat_base)
        assert reference.variable_info("LAID")[0] == "LAI"

        lines = DATA_CDE_LINES[:3] + [f"{'LAID':<6} {'Leaf area':<16}Leaf area index"]
        with open(os.path.join(dssat_base, "DATA.CDE"), "w") as file:
            file.write("\n".join(lines) + "\n")
        assert reference.variable_info("LAID")[0] == "LAI"

        reference.reload()
        assert reference.variable_info("LAID")[0] == "Leaf area"

    def test_base_from_environment(self, dssat_base, monkeypatch) -> None:
        monkeypatch.setenv(config.DSSAT_PATH_ENV, dssat_base)
        reference = ReferenceData()
        assert reference.dssat_base == dssat_base
        assert reference.prepare_folders() == ["Maize"]
