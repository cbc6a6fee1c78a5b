import pytest

from eta_bench import BenchmarkPipeline, ResponseMode
from eta_bench.common import SourceError
from eta_bench.ingest import CsvSource, ProviderType, SourceAdapter, read_csv_rows


def test_read_csv_rows_keeps_cells_as_text(runs_csv):
    rows = read_csv_rows(runs_csv)

    assert len(rows) == 6
    assert rows[0]["RunID"] == "20251101_083000"
    assert rows[0]["Google_Duration"] == "100"
    assert rows[2]["Oauth2_RouteDuration"] == ""


def test_spaced_headers_resolve_through_aliases(tmp_path):
    path = tmp_path / "spaced.csv"
    path.write_text(
        "RunID, City ,UID,Google Duration,Mappls ETADuration,Oauth2 RouteDuration\n"
        "20251101_083000,Delhi,R1,100,95,120\n"
    )
    [row] = read_csv_rows(path)
    fields = SourceAdapter().adapt(row)

    assert fields.city == "Delhi"
    assert fields.duration(ProviderType.GOOGLE) == 100.0
    assert fields.duration(ProviderType.MAPPLS) == 95.0
    assert fields.duration(ProviderType.OAUTH2) == 120.0


def test_empty_and_header_only_files(tmp_path):
    empty = tmp_path / "empty.csv"
    empty.write_text("")
    header_only = tmp_path / "header.csv"
    header_only.write_text("RunID,UID,City\n")

    assert read_csv_rows(empty) == []
    assert read_csv_rows(header_only) == []


def test_missing_file_raises_source_error(tmp_path):
    with pytest.raises(SourceError) as excinfo:
        CsvSource(tmp_path / "nope.csv").rows()
    assert "nope.csv" in str(excinfo.value)


def test_source_metadata(runs_csv):
    source = CsvSource(runs_csv)
    assert source.name == "benchmark_runs.csv"
    assert source.source_type == "CSV"


def test_drop_incomplete_rows(runs_csv):
    kept = CsvSource(
        runs_csv,
        drop_incomplete=True,
        reference_provider="google",
        compared_providers=["mappls", "oauth2"],
    ).rows()
    assert [(r["City"], r["UID"]) for r in kept] == [
        ("Delhi", "R1"),
        ("Delhi", "R2"),
        ("Mumbai", "R1"),
        ("Pune", "R1"),
    ]

    only_mappls = CsvSource(
        runs_csv,
        drop_incomplete=True,
        reference_provider="google",
        compared_providers=["mappls"],
    ).rows()
    assert len(only_mappls) == 5


def test_run_source_over_csv(runs_csv):
    pipeline = BenchmarkPipeline(
        reference_provider="google",
        compared_providers=["mappls", "oauth2"],
        threshold_pct=10,
        lowercase_cities=False,
    )
    result = pipeline.run_source(CsvSource(runs_csv), mode=ResponseMode.FULL)

    assert result.total_records == 6
    assert [s.city for s in result.city_stats] == ["Delhi", "Mumbai", "Pune"]
    assert result.records[0].record.source_type == "CSV"
    assert result.records[0].record.source_name == "benchmark_runs.csv"
    assert result.records[0].record.day == "Saturday"
