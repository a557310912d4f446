"""
Tests for the matching helpers between the readers and the consumers.
"""
import numpy as np
import pandas as pd
import pytest

from dssat_viewer.data.data_processing import (
    add_das_dap_columns,
    days_after,
    drop_missing_pairs,
    filter_data,
    get_all_evaluate_variables,
    get_evaluate_variable_pairs,
    handle_missing_values,
    matched_numeric_series,
    paired_numeric_series,
)
from dssat_viewer.data.table import Column, Table


def make_table(data: dict, name: str = "t") -> Table:
    return Table(name, [Column(col, values) for col, values in data.items()])


class StubMetadata:
    def __init__(self, labels):
        self.labels = labels

    def variable_info(self, code):
        return self.labels.get(code, ("", ""))


class TestRowHelpers:
    """filter_data, handle_missing_values and days_after."""

    def test_filter_data(self) -> None:
        table = make_table({"TRT": ["1", "2", "1"], "V": [1.0, 2.0, 3.0]})
        assert filter_data(table, "TRT", "1")["V"].values == [1.0, 3.0]

    def test_handle_missing_values(self) -> None:
        table = make_table({"DAS": [0.0, None, 10.0, "-99"], "V": [1, 2, 3, 4]})
        assert handle_missing_values(table, "DAS")
        assert table.row_count == 2
        assert table["V"].values == [1, 3]

    def test_handle_missing_values_unknown_column(self) -> None:
        table = make_table({"V": [1]})
        assert not handle_missing_values(table, "DAS")
        assert table.row_count == 1

    def test_days_after(self) -> None:
        assert days_after(pd.Timestamp("2023-01-11"), pd.Timestamp("2023-01-01")) == 10
        assert days_after(pd.Timestamp("2022-12-30"), pd.Timestamp("2023-01-01")) == -2


class TestDasDap:
    """DAS/DAP lookup for observed rows."""

    @pytest.fixture
    def simulated(self) -> Table:
        return make_table({
            "TRT": ["1", "1"],
            "DATE": [pd.Timestamp("2023-01-01"), pd.Timestamp("2023-01-11")],
            "DAS": [0.0, 10.0],
            "DAP": [0.0, 8.0],
        })

    def test_exact_interpolated_and_extrapolated(self, simulated) -> None:
        observed = make_table({
            "TRT": ["1", "1", "1", "1", "2"],
            "DATE": ["2023-01-11", "2023-01-06", "2023-01-21", "2022-12-30", "2023-01-06"],
        })

        add_das_dap_columns(observed, simulated)

        assert observed["DAS"].values == [10.0, 5.0, 20.0, -2.0, None]
        assert observed["DAP"].values == [8.0, 4.0, 18.0, -2.0, None]

    def test_compressed_observed_dates(self, simulated) -> None:
        observed = make_table({"TRT": ["1"], "DATE": ["2023006"]})
        add_das_dap_columns(observed, simulated)
        assert observed["DAS"].values == [5.0]

    def test_missing_columns_is_a_no_op(self, simulated) -> None:
        observed = make_table({"DATE": ["2023-01-06"]})
        add_das_dap_columns(observed, simulated)
        assert "DAS" not in observed


class TestEvaluateVariables:
    """Simulated/measured pairing for EVALUATE.OUT tables."""

    @pytest.fixture
    def evaluate(self) -> Table:
        return make_table({
            "RUN": ["1", "2", "3"],
            "TRNO": ["1", "2", "3"],
            "HWAMS": [8000.0, 9000.0, 7000.0],
            "HWAMM": [8200.0, None, 6900.0],
            "LAIXS": [3.0, 3.0, 3.0],
            "LAIXM": [2.9, 3.1, 3.2],
            "CWAMS": [1.0, 2.0, 3.0],
            "ADATM": [None, None, None],
        })

    def test_pairs(self, evaluate) -> None:
        metadata = StubMetadata({"HWAM": ("Yield", "Yield at harvest maturity")})
        pairs = get_evaluate_variable_pairs(evaluate, metadata)
        assert pairs == [{
            "display_name": "Yield",
            "sim_variable": "HWAMS",
            "meas_variable": "HWAMM",
        }]

    def test_pairs_without_metadata_use_codes(self, evaluate) -> None:
        pairs = get_evaluate_variable_pairs(evaluate)
        assert pairs[0]["display_name"] == "HWAM"

    def test_all_variables(self, evaluate) -> None:
        variables = get_all_evaluate_variables(evaluate, StubMetadata({}))
        names = [column for _, column in variables]
        assert names == ["HWAMS", "HWAMM", "LAIXS", "LAIXM", "CWAMS"]


class TestPairedSeries:
    """Equal-length numeric sequences for the metrics consumer."""

    def test_drop_missing_pairs(self) -> None:
        first, second = drop_missing_pairs([1, None, 3, "-99", "5"], [2, 5, None, 4, 6.0])
        np.testing.assert_array_equal(first, [1.0, 5.0])
        np.testing.assert_array_equal(second, [2.0, 6.0])

    def test_drop_missing_pairs_length_mismatch(self) -> None:
        with pytest.raises(ValueError):
            drop_missing_pairs([1, 2], [1])

    def test_paired_numeric_series_with_treatment(self) -> None:
        table = make_table({
            "TRT": ["1", "1", "2"],
            "HWAMS": [1.0, 2.0, 3.0],
            "HWAMM": [1.5, None, 3.5],
        })
        sim, meas = paired_numeric_series(table, "HWAMS", "HWAMM", treatment="1")
        np.testing.assert_array_equal(sim, [1.0])
        np.testing.assert_array_equal(meas, [1.5])

        sim, meas = paired_numeric_series(table, "HWAMS", "HWAMM")
        assert len(sim) == len(meas) == 2

    def test_paired_numeric_series_unknown_column(self) -> None:
        table = make_table({"A": [1.0]})
        sim, meas = paired_numeric_series(table, "A", "B")
        assert sim.size == 0 and meas.size == 0

    def test_matched_numeric_series(self) -> None:
        observed = make_table({
            "TRT": ["1", "1", "2"],
            "DATE": ["1982-03-01", "82065", "1982-03-01"],
            "LAID": [0.1, 0.4, 0.2],
        })
        simulated = make_table({
            "TRT": ["1", "1", "2"],
            "DATE": [pd.Timestamp("1982-03-01"), pd.Timestamp("1982-03-06"), pd.Timestamp("1982-03-01")],
            "LAID": [0.12, 0.35, None],
        })

        obs, sim = matched_numeric_series(observed, simulated, "LAID")
        np.testing.assert_allclose(obs, [0.1, 0.4])
        np.testing.assert_allclose(sim, [0.12, 0.35])

        obs, sim = matched_numeric_series(observed, simulated, "LAID", treatment="2")
        assert obs.size == 0
