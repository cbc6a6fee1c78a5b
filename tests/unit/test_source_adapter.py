import math

import pandas as pd
import pytest

from eta_bench.common import InvalidBatchError, UnknownProviderError
from eta_bench.ingest import (
    FieldConcept,
    ProviderType,
    SourceAdapter,
    aliases_for,
    duration_aliases,
    ensure_row_batch,
    lookup_field,
    to_number,
    to_text,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, 0.0),
        ("", 0.0),
        ("   ", 0.0),
        ("abc", 0.0),
        ("12.5", 12.5),
        (" 300 ", 300.0),
        (42, 42.0),
        (7.25, 7.25),
        (float("nan"), 0.0),
        (float("inf"), 0.0),
        ("-inf", 0.0),
        ("1e999", 0.0),
        ([1, 2], 0.0),
        ({"a": 1}, 0.0),
        ("-15", -15.0),
    ],
)
def test_to_number_is_total(value, expected):
    assert to_number(value) == expected


def test_to_number_never_returns_nan_or_inf():
    for value in ["nan", "NaN", "inf", float("-inf"), object()]:
        result = to_number(value)
        assert math.isfinite(result)
        assert result == 0.0


def test_to_text_handles_blank_and_integer_floats():
    assert to_text(None) == ""
    assert to_text("  ") == ""
    assert to_text(101.0) == "101"
    assert to_text(" Delhi ") == "Delhi"
    assert to_text(55) == "55"


def test_lookup_field_follows_alias_priority():
    row = {"Mappls_Duration": "500", "Mappls_ETADuration": "480"}
    assert lookup_field(row, duration_aliases(ProviderType.MAPPLS)) == "480"


def test_lookup_field_skips_blank_values():
    row = {"Mappls_ETADuration": "", "Mappls_Duration": "500"}
    assert lookup_field(row, duration_aliases(ProviderType.MAPPLS)) == "500"


def test_lookup_field_reads_nested_documents():
    row = {"metrics": {"providerA": {"etaDuration": 610}}}
    assert lookup_field(row, duration_aliases("mappls")) == 610


def test_lookup_field_default_when_absent():
    assert lookup_field({}, ("A", "B"), default="x") == "x"
    assert lookup_field({"metrics": 5}, ("metrics.providerA",)) is None


def test_alias_fallback_resolves_same_value():
    adapter = SourceAdapter()
    only_plain = adapter.adapt({"Mappls_Duration": "720"})
    only_eta = adapter.adapt({"Mappls_ETADuration": "720"})
    spaced = adapter.adapt({"Mappls ETADuration": "720"})

    assert only_plain.duration(ProviderType.MAPPLS) == 720.0
    assert only_eta.duration(ProviderType.MAPPLS) == 720.0
    assert spaced.duration(ProviderType.MAPPLS) == 720.0


def test_oauth2_aliases_prefer_eta_over_route_duration():
    adapter = SourceAdapter()
    fields = adapter.adapt({"Oauth2_RouteDuration": "900", "Oauth2_ETADuration": "850"})
    assert fields.duration(ProviderType.OAUTH2) == 850.0

    fields = adapter.adapt({"Oauth2_RouteDuration": "900"})
    assert fields.duration(ProviderType.OAUTH2) == 900.0


def test_alias_table_is_closed_and_ordered():
    assert aliases_for(FieldConcept.RUN_ID)[0] == "RunID"
    assert aliases_for(FieldConcept.GOOGLE_DURATION)[0] == "Google_Duration"
    assert duration_aliases(ProviderType.MAPPLS)[:3] == (
        "Mappls_ETADuration",
        "Mappls ETADuration",
        "Mappls_Duration",
    )


def test_adapt_csv_row():
    row = {
        "RunID": "20251129_130103",
        "UID": "R-17",
        "City": "Delhi",
        "Day": "Saturday",
        "Google_Duration": "600",
        "Mappls_ETADuration": "570",
        "Oauth2_RouteDuration": "640",
    }
    fields = SourceAdapter().adapt(row, source_type="CSV", source_name="nov.csv")

    assert fields.run_id == "20251129_130103"
    assert fields.uid == "R-17"
    assert fields.city == "Delhi"
    assert fields.day == "Saturday"
    assert fields.durations == {
        ProviderType.GOOGLE: 600.0,
        ProviderType.MAPPLS: 570.0,
        ProviderType.OAUTH2: 640.0,
    }
    assert fields.source_type == "CSV"
    assert fields.source_name == "nov.csv"


def test_adapt_aggregated_document_shape():
    doc = {
        "runId": "20251129_080000",
        "uid": 12,
        "testCase": {"city": "Pune"},
        "metrics": {
            "providerA": {"etaDuration": 300},
            "providerB": {"duration": 320},
        },
    }
    fields = SourceAdapter().adapt(doc)

    assert fields.uid == "12"
    assert fields.city == "Pune"
    assert fields.duration(ProviderType.MAPPLS) == 300.0
    assert fields.duration(ProviderType.GOOGLE) == 320.0


def test_adapt_empty_row_degenerates_to_zero():
    fields = SourceAdapter().adapt({})
    assert fields.run_id == ""
    assert fields.uid == ""
    assert fields.city == ""
    assert all(value == 0.0 for value in fields.durations.values())


def test_adapt_malformed_values_do_not_raise():
    fields = SourceAdapter().adapt(
        {"Google_Duration": "n/a", "Mappls_ETADuration": None, "RunID": None}
    )
    assert fields.duration(ProviderType.GOOGLE) == 0.0
    assert fields.duration(ProviderType.MAPPLS) == 0.0


def test_adapter_limits_providers():
    fields = SourceAdapter([ProviderType.GOOGLE, "mappls"]).adapt(
        {"Oauth2_ETADuration": "100"}
    )
    assert set(fields.durations) == {ProviderType.GOOGLE, ProviderType.MAPPLS}
    assert fields.duration(ProviderType.OAUTH2) == 0.0


def test_provider_parse_rejects_unknown():
    assert ProviderType.parse(" Google ") is ProviderType.GOOGLE
    with pytest.raises(UnknownProviderError):
        ProviderType.parse("osrm")
    with pytest.raises(ValueError):
        ProviderType.parse("here")


@pytest.mark.parametrize("batch", [None, 42, "RunID,UID", b"rows", {"RunID": "x"}])
def test_adapt_rows_rejects_non_batches(batch):
    with pytest.raises(InvalidBatchError):
        SourceAdapter().adapt_rows(batch)


def test_adapt_rows_rejects_non_mapping_row():
    with pytest.raises(TypeError) as excinfo:
        SourceAdapter().adapt_rows([{"RunID": "a"}, ["not", "a", "row"]])
    assert "index" in str(excinfo.value)


def test_adapt_rows_accepts_generators_and_dataframes():
    adapter = SourceAdapter()
    from_generator = adapter.adapt_rows(({"UID": str(i)} for i in range(3)))
    assert [f.uid for f in from_generator] == ["0", "1", "2"]

    df = pd.DataFrame([{"UID": "a", "Google_Duration": "10"}])
    from_frame = adapter.adapt_rows(df)
    assert from_frame[0].duration(ProviderType.GOOGLE) == 10.0


def test_adapt_rows_empty_batch():
    assert SourceAdapter().adapt_rows([]) == []
    assert ensure_row_batch(iter([])) == []
