"""
Tests for the DSSAT date encodings.
"""
import pandas as pd
import pytest

from dssat_viewer.data.dates import (
    dates_from_year_doy,
    normalize_dates,
    parse_calendar_dates,
    parse_date,
    unified_date_convert,
)


class TestUnifiedDateConvert:
    """Precedence and encodings of the date normalizer."""

    def test_year_doy_takes_precedence_over_string(self) -> None:
        assert unified_date_convert(2023, 45, "2023-01-01") == pd.Timestamp("2023-02-14")

    def test_compressed_round_trip(self) -> None:
        assert unified_date_convert(None, None, "2023045") == unified_date_convert(2023, 45, None)

    def test_out_of_range_pair_does_not_fall_through(self) -> None:
        assert unified_date_convert(2023, 400, "2023-01-01") is None
        assert unified_date_convert(1800, 10, "2023-01-01") is None

    def test_year_doy_as_text_and_float(self) -> None:
        assert unified_date_convert("1982", "57") == pd.Timestamp("1982-02-26")
        assert unified_date_convert(1982.0, 60.0) == pd.Timestamp("1982-03-01")

    def test_leap_day(self) -> None:
        assert unified_date_convert(2020, 366) == pd.Timestamp("2020-12-31")

    @pytest.mark.parametrize("text,expected", [
        ("23045", "2023-02-14"),
        ("30001", "2030-01-01"),
        ("95045", "1995-02-14"),
        ("82120", "1982-04-30"),
    ])
    def test_five_digit_codes(self, text, expected) -> None:
        assert unified_date_convert(date_str=text) == pd.Timestamp(expected)

    @pytest.mark.parametrize("text", ["", "  ", "-99", "-99.0", "NA", "NaN"])
    def test_sentinels(self, text) -> None:
        assert unified_date_convert(date_str=text) is None

    @pytest.mark.parametrize("text", ["2023999", "1800045", "23400", "00000"])
    def test_invalid_compressed_codes(self, text) -> None:
        assert unified_date_convert(date_str=text) is None

    @pytest.mark.parametrize("text", [
        "2023-02-14",
        "2023-02-14T00:00:00",
        "02/14/2023",
        "14/02/2023",
        "2023/02/14",
        "14-02-2023",
        "20230214",
    ])
    def test_calendar_strings(self, text) -> None:
        assert unified_date_convert(date_str=text) == pd.Timestamp("2023-02-14")

    def test_unparsable_string(self) -> None:
        assert unified_date_convert(date_str="not a date") is None
        assert unified_date_convert() is None


class TestParseDate:
    def test_calendar_only(self) -> None:
        assert parse_date("2023-02-14") == pd.Timestamp("2023-02-14")
        assert parse_date("2023045") is None
        assert parse_date("23045") is None
        assert parse_date("1982") is None
        assert parse_date(12.5) is None

    def test_unpadded_fields_are_rejected(self) -> None:
        assert parse_date("2/14/2023") is None


    @pytest.mark.parametrize("text", ["2023-02-14Z", "2023-02-14T00:00", "2023-W07-2", "2023-045"])
    def test_extended_iso_forms_are_not_dates(self, text) -> None:
        assert parse_date(text) is None

    def test_time_of_day_is_dropped(self) -> None:
        assert parse_date("2023-02-14 13:45:00") == pd.Timestamp("2023-02-14")


class TestColumnForms:
    """Series versions used by the readers and the table."""

    def test_dates_from_year_doy(self) -> None:
        dates = dates_from_year_doy(["1982", 1982.0, "-99", 2023, 1982.5], [57, "60", 10, 400, 1])
        assert dates.tolist()[:2] == [pd.Timestamp("1982-02-26"), pd.Timestamp("1982-03-01")]
        assert dates.iloc[2:].isna().all()

    def test_normalize_dates_mixed_encodings(self) -> None:
        dates = normalize_dates([
            pd.Timestamp("2023-02-14 08:30"), "2023045", "23045", 82060.0, "02/14/2023", "-99", None, "x",
        ])
        assert dates.iloc[:4].tolist() == [
            pd.Timestamp("2023-02-14"),
            pd.Timestamp("2023-02-14"),
            pd.Timestamp("2023-02-14"),
            pd.Timestamp("1982-03-01"),
        ]
        assert dates.iloc[4] == pd.Timestamp("2023-02-14")
        assert dates.iloc[5:].isna().all()

    def test_parse_calendar_dates_keeps_index(self) -> None:
        values = pd.Series(["2023-02-14", "2023045", 20230214], index=[10, 11, 12], dtype=object)
        dates = parse_calendar_dates(values)
        assert list(dates.index) == [10, 11, 12]
        assert dates.loc[10] == pd.Timestamp("2023-02-14")
        assert dates.loc[11:].isna().all()
