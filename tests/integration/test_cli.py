import json

import pytest

from scripts.eta_report import build_report, main, parse_arguments


def test_parse_arguments_defaults(runs_csv):
    args = parse_arguments(["--csv", str(runs_csv)])
    assert args.csv_paths == [str(runs_csv)]
    assert args.mode == "full"
    assert args.provider is None
    assert args.threshold is None
    assert args.drop_incomplete is False


def test_parse_arguments_rejects_unknown_mode(runs_csv):
    with pytest.raises(SystemExit):
        parse_arguments(["--csv", str(runs_csv), "--mode", "sampled"])


def test_csv_is_required():
    with pytest.raises(SystemExit):
        parse_arguments([])


def test_build_report_merges_exports(runs_csv):
    args = parse_arguments(
        ["--csv", str(runs_csv), "--csv", str(runs_csv), "--provider", "oauth2", "--threshold", "10"]
    )
    report = build_report(args)

    assert report["provider"] == "oauth2"
    assert report["total_records"] == 12
    assert sum(s["total_records"] for s in report["city_stats"]) == 12


def test_build_report_aggregated_with_filters(runs_csv):
    args = parse_arguments(
        [
            "--csv",
            str(runs_csv),
            "--mode",
            "aggregated",
            "--provider",
            "mappls",
            "--threshold",
            "10",
            "--from-run-id",
            "20251101_000000",
            "--to-run-id",
            "20251101_235959",
        ]
    )
    report = build_report(args)

    assert report["mode"] == "aggregated"
    assert report["records"] == []
    [stats] = report["city_stats"]
    assert stats["total_records"] == 3
    assert stats["similar_pct"] == 33.3


def test_main_prints_json_report(runs_csv, capsys):
    assert main(["--csv", str(runs_csv), "--city", "pune", "--threshold", "10"]) == 0

    report = json.loads(capsys.readouterr().out)
    assert report["total_records"] == 1
    assert report["city_stats"][0]["over_count"] == 1


def test_main_reports_missing_file(tmp_path, capsys):
    assert main(["--csv", str(tmp_path / "missing.csv")]) == 1
    assert "missing.csv" in capsys.readouterr().err


def test_main_rejects_reference_as_provider(runs_csv, capsys):
    assert main(["--csv", str(runs_csv), "--provider", "google"]) == 1
    assert "ERROR" in capsys.readouterr().err
