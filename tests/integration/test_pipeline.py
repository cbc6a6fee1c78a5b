import pytest

from eta_bench import BenchmarkPipeline, ComparisonFlag, ResponseMode, TimeBucket
from eta_bench.common import InvalidBatchError, UnknownProviderError
from eta_bench.pipeline import filter_by_city, merge_sources


@pytest.fixture
def pipeline():
    return BenchmarkPipeline(
        reference_provider="google",
        compared_providers=["mappls", "oauth2"],
        threshold_pct=10,
        lowercase_cities=True,
        percent_precision=1,
        variation_precision=2,
        bulk_threshold=1000,
    )


def _by_city(result):
    return {s.city: s for s in result.city_stats}


def test_full_mode_end_to_end(pipeline, raw_rows):
    result = pipeline.run(raw_rows, mode="full", provider="mappls")

    assert result.mode is ResponseMode.FULL
    assert result.total_records == 6
    assert len(result.records) == 6
    assert [s.city for s in result.city_stats] == ["Unknown", "delhi", "mumbai"]

    delhi = _by_city(result)["delhi"]
    assert (delhi.similar_count, delhi.over_count, delhi.under_count) == (1, 1, 1)
    assert delhi.similar_pct == 33.3
    assert delhi.avg_variation == pytest.approx(1.67)
    assert delhi.total_iterations == 1
    assert delhi.last_benchmark_run == "2025-11-01T08:30:00"

    mumbai = _by_city(result)["mumbai"]
    assert mumbai.similar_count == 2
    assert mumbai.comparable_records == 1
    assert mumbai.avg_variation == pytest.approx(10.0)

    unknown = _by_city(result)["Unknown"]
    assert unknown.over_count == 1
    assert unknown.avg_variation == pytest.approx(-18.24)

    assert [b.time_bucket for b in result.time_bucket_stats] == [
        TimeBucket.MORNING,
        TimeBucket.EVENING,
        TimeBucket.MIDNIGHT,
    ]
    assert result.summary.total_records == 6
    assert result.summary.total_cities == 3


def test_document_row_uses_nested_fields(pipeline, raw_rows):
    result = pipeline.run(raw_rows, provider="mappls")
    doc_record = result.records[2]

    assert doc_record.uid == "R3"
    assert doc_record.city == "delhi"
    assert doc_record.flag("mappls") is ComparisonFlag.UNDERESTIMATE
    assert doc_record.comparison("oauth2").comparable is False


@pytest.mark.parametrize("provider", ["mappls", "oauth2"])
def test_full_and_aggregated_modes_agree(pipeline, raw_rows, provider):
    full = pipeline.run(raw_rows, mode=ResponseMode.FULL, provider=provider)
    aggregated = pipeline.run(raw_rows, mode=ResponseMode.AGGREGATED, provider=provider)

    assert aggregated.mode is ResponseMode.AGGREGATED
    assert aggregated.records == []
    assert aggregated.summary is None
    assert aggregated.total_records == full.total_records
    assert aggregated.city_stats == full.city_stats
    assert aggregated.time_bucket_stats == full.time_bucket_stats


def test_auto_mode_switches_on_batch_size(raw_rows):
    small = BenchmarkPipeline(threshold_pct=10, bulk_threshold=100).run(raw_rows, mode="auto")
    large = BenchmarkPipeline(threshold_pct=10, bulk_threshold=6).run(raw_rows, mode="auto")

    assert small.mode is ResponseMode.FULL
    assert large.mode is ResponseMode.AGGREGATED
    assert small.city_stats == large.city_stats


def test_default_provider_is_first_compared(pipeline, raw_rows):
    assert pipeline.run(raw_rows).provider.value == "mappls"


def test_city_and_run_filters(pipeline, raw_rows):
    result = pipeline.run(raw_rows, city=" DELHI ")
    assert result.total_records == 3
    assert [s.city for s in result.city_stats] == ["delhi"]

    result = pipeline.run(
        raw_rows, from_run_id="20251102_000000", to_run_id="20251102_235959"
    )
    assert result.total_records == 2
    assert [s.city for s in result.city_stats] == ["mumbai"]


def test_filters_can_empty_the_batch(pipeline, raw_rows):
    for mode in ("full", "aggregated"):
        result = pipeline.run(raw_rows, mode=mode, city="Chennai")
        assert result.total_records == 0
        assert result.city_stats == []
        assert result.time_bucket_stats == []


def test_city_labels_kept_distinct_without_lowercasing(raw_rows):
    result = BenchmarkPipeline(threshold_pct=10, lowercase_cities=False).run(raw_rows)
    assert {s.city for s in result.city_stats} == {"Delhi", "delhi", "Mumbai", "Unknown"}


def test_empty_batch(pipeline):
    result = pipeline.run([])
    assert result.total_records == 0
    assert result.city_stats == []
    assert result.summary.total_records == 0


def test_invalid_batches_raise(pipeline):
    with pytest.raises(InvalidBatchError):
        pipeline.run("RunID,UID\n1,2")
    with pytest.raises(InvalidBatchError):
        pipeline.run([{"RunID": "x"}, 3])


def test_provider_must_be_compared(pipeline, raw_rows):
    with pytest.raises(ValueError):
        pipeline.run(raw_rows, provider="google")
    with pytest.raises(UnknownProviderError):
        pipeline.run(raw_rows, provider="here")


def test_result_serializes(pipeline, raw_rows):
    data = pipeline.run(raw_rows, provider="oauth2").to_dict()
    assert data["mode"] == "full"
    assert data["provider"] == "oauth2"
    assert data["records"][0]["comparisons"]["oauth2"]["comparison_flag"] == "Overestimate"
    assert data["city_stats"][0]["city"] == "Unknown"
    assert data["summary"]["total_records"] == 6


def test_filter_and_merge_helpers(pipeline, raw_rows):
    first = pipeline.process(raw_rows[:3])
    second = pipeline.process(raw_rows[3:])
    merged = merge_sources(first, second)

    assert len(merged) == 6
    assert len(filter_by_city(merged, "MUMBAI")) == 2
    assert filter_by_city(merged, None) == merged
