from __future__ import annotations

import aiohttp
import pytest

from tracker.categories import Category, CategoryGroup
from tracker.errors import FormatChangedError, NotFoundError, TransientFetchError
from tracker.hiscores_client import HiscoresClient, parse_hiscores_payload


def _payload(**overrides):
    skills = [{"name": "Overall", "rank": 1200, "level": 1500, "xp": 9000000}]
    for c in CategoryGroup.SKILLS.categories:
        skills.append({"name": c.label, "rank": 5000, "level": 50, "xp": 100000})
    scores = {Category.CLUE_HARD: 12, Category.ZULRAH: -1, Category.VORKATH: 300}
    activities = [
        {"name": "Clue Scrolls (all)", "rank": 10, "score": 40},
        {"name": "Some New Minigame", "rank": 1, "score": 1},
    ]
    for c in Category:
        if c.group is not CategoryGroup.SKILLS:
            score = scores.get(c, 0)
            activities.append({"name": c.label, "rank": -1 if score == -1 else 77, "score": score})
    data = {"name": "Zezima", "skills": skills, "activities": activities}
    data.update(overrides)
    return data


def test_parse_builds_snapshot():
    snap = parse_hiscores_payload("zezima", _payload())
    assert snap.display_name == "Zezima"
    assert snap.on_hiscores is True
    assert snap.values[Category.FISHING] == 50
    assert snap.values[Category.CLUE_HARD] == 12
    assert snap.values[Category.VORKATH] == 300
    assert Category.ZULRAH in snap.missing()
    assert snap.values[Category.CLUE_EASY] == 0


def test_parse_unranked_overall_means_off_hiscores():
    data = _payload()
    data["skills"][0]["rank"] = -1
    assert parse_hiscores_payload("zezima", data).on_hiscores is False


def test_parse_withheld_skill_is_missing():
    data = _payload()
    data["skills"][1].update(rank=-1, level=-1, xp=-1)
    snap = parse_hiscores_payload("zezima", data)
    assert snap.values[Category.from_label(data["skills"][1]["name"])] is None


@pytest.mark.parametrize(
    "mutate",
    [
        lambda d: d.pop("skills"),
        lambda d: d["skills"].pop(3),
        lambda d: d["skills"][2].update(level="99"),
        lambda d: d["activities"][3].update(score=-5),
        lambda d: d.update(activities="nope"),
    ],
)
def test_parse_rejects_changed_format(mutate):
    data = _payload()
    mutate(data)
    with pytest.raises(FormatChangedError):
        parse_hiscores_payload("zezima", data)


@pytest.mark.parametrize("gone", [Category.ARTIO, Category.CLUE_MASTER, Category.COLOSSEUM_GLORY])
def test_parse_rejects_vanished_category(gone):
    data = _payload()
    data["activities"] = [a for a in data["activities"] if a["name"] != gone.label]
    with pytest.raises(FormatChangedError, match=str(gone)):
        parse_hiscores_payload("zezima", data)


def test_parse_renamed_label_is_a_format_change():
    data = _payload()
    for a in data["activities"]:
        if a["name"] == "Vorkath":
            a["name"] = "Vorkath (Dragon)"
    with pytest.raises(FormatChangedError):
        parse_hiscores_payload("zezima", data)


def test_parse_rejects_non_object_payload():
    with pytest.raises(FormatChangedError):
        parse_hiscores_payload("zezima", ["not", "a", "dict"])


class _FakeResponse:
    def __init__(self, status, payload=None, exc=None):
        self.status = status
        self._payload = payload
        self._exc = exc

    async def json(self, content_type=None):
        if self._exc:
            raise self._exc
        return self._payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class _FakeSession:
    def __init__(self, response=None, error=None):
        self.closed = False
        self.urls = []
        self._response = response
        self._error = error

    def get(self, url):
        self.urls.append(url)
        if self._error:
            raise self._error
        return self._response


@pytest.mark.asyncio
async def test_fetch_success_quotes_entity_id():
    session = _FakeSession(_FakeResponse(200, _payload()))
    client = HiscoresClient(url_template="https://example.test/?player={player}", session=session)
    snap = await client.fetch_snapshot("iron man")
    assert snap.entity_id == "iron man"
    assert session.urls == ["https://example.test/?player=iron%20man"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "session, expected",
    [
        (_FakeSession(_FakeResponse(404)), NotFoundError),
        (_FakeSession(_FakeResponse(503)), TransientFetchError),
        (_FakeSession(_FakeResponse(200, exc=ValueError("bad json"))), FormatChangedError),
        (_FakeSession(error=aiohttp.ClientConnectionError("reset")), TransientFetchError),
        (_FakeSession(error=TimeoutError()), TransientFetchError),
    ],
)
async def test_fetch_error_mapping(session, expected):
    client = HiscoresClient(session=session)
    with pytest.raises(expected):
        await client.fetch_snapshot("zezima")
