"""Unit tests for the ESPN scoreboard client."""

import pytest
import requests

from pickem.errors import ScoreProviderError
from pickem.services.score_provider import EspnScoreProvider, ScoreUpdate, StaticScoreProvider


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self.payload = payload or {}
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _event(event_id, home, away, status="STATUS_FINAL"):
    return {
        "id": event_id,
        "competitions": [
            {
                "competitors": [
                    {"homeAway": "home", "score": home},
                    {"homeAway": "away", "score": away},
                ],
                "status": {"type": {"name": status}},
            }
        ],
    }


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr("pickem.services.score_provider.time.sleep", lambda seconds: None)


@pytest.fixture
def provider():
    return EspnScoreProvider(base_url="https://feed.example.com/nfl/")


def test_parses_scoreboard(provider):
    provider.session = FakeSession(
        [
            FakeResponse(
                {
                    "events": [
                        _event("401", "27", "20"),
                        _event("402", "", "", status="STATUS_SCHEDULED"),
                        {"id": "403", "competitions": []},
                    ]
                }
            )
        ]
    )

    updates = provider.fetch_scores({"season": "2025"}, 3)

    assert updates == [
        ScoreUpdate(external_id="401", home_score=27, away_score=20, status="STATUS_FINAL"),
        ScoreUpdate(external_id="402", status="STATUS_SCHEDULED"),
    ]
    call = provider.session.calls[0]
    assert call["url"] == "https://feed.example.com/nfl/scoreboard"
    assert call["params"] == {"seasontype": 2, "week": 3, "dates": "2025"}


def test_playoff_weeks_map_to_postseason(provider):
    provider.session = FakeSession([FakeResponse({"events": []})])

    provider.fetch_scores({"season": "2025"}, 19)

    assert provider.session.calls[0]["params"]["seasontype"] == 3
    assert provider.session.calls[0]["params"]["week"] == 1


def test_retries_server_errors(provider):
    provider.session = FakeSession(
        [
            FakeResponse(status_code=503),
            requests.exceptions.ConnectionError("reset"),
            FakeResponse({"events": [_event("401", "3", "0")]}),
        ]
    )

    updates = provider.fetch_scores({"season": "2025"}, 1)

    assert len(updates) == 1
    assert len(provider.session.calls) == 3


def test_gives_up_after_retries(provider):
    provider.session = FakeSession([FakeResponse(status_code=500)] * 3)

    with pytest.raises(ScoreProviderError):
        provider.fetch_scores({"season": "2025"}, 1)


def test_client_errors_are_not_retried(provider):
    provider.session = FakeSession([FakeResponse(status_code=404)])

    with pytest.raises(ScoreProviderError):
        provider.fetch_scores({"season": "2025"}, 1)
    assert len(provider.session.calls) == 1


def test_static_provider():
    provider = StaticScoreProvider()
    provider.set_week(2, [ScoreUpdate(external_id="9", status="STATUS_FINAL")])

    assert provider.fetch_scores({"season": "2025"}, 2)[0].external_id == "9"
    assert provider.fetch_scores({"season": "2025"}, 3) == []
