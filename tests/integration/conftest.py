from pathlib import Path

import pytest

FIXTURES = Path(__file__).resolve().parent.parent / "fixtures"


@pytest.fixture
def runs_csv() -> Path:
    return FIXTURES / "benchmark_runs.csv"


@pytest.fixture
def raw_rows():
    """Rows mixing CSV header spellings and aggregated-document fields."""
    return [
        {
            "RunID": "20251101_083000",
            "UID": "R1",
            "City": "Delhi",
            "Google_Duration": "100",
            "Mappls_ETADuration": "95",
            "Oauth2_ETADuration": "120",
        },
        {
            "RunID": "20251101_083000",
            "UID": "R2",
            "City": " delhi ",
            "Google Duration": "100",
            "Mappls Duration": "130",
            "Oauth2 RouteDuration": "100",
        },
        {
            "runId": "20251101_083000",
            "uid": "R3",
            "testCase": {"city": "Delhi"},
            "metrics": {"providerA": {"etaDuration": 70}, "providerB": {"duration": 100}},
        },
        {
            "RunID": "20251102_183000",
            "UID": "R1",
            "City": "Mumbai",
            "Google_Duration": 600,
            "Mappls_ETADuration": 540,
            "Oauth2_ETADuration": 660,
        },
        {
            "RunID": "20251102_183000",
            "UID": "R2",
            "City": "Mumbai",
            "Google_Duration": "600",
            "Mappls_ETADuration": "",
            "Oauth2_ETADuration": "300",
        },
        {
            "RunID": "20251103_233000",
            "UID": "R1",
            "City": "",
            "Google_Duration": "433",
            "Mappls_ETADuration": "512",
            "Oauth2_ETADuration": "401",
        },
    ]
