import pytest

from bot.models import Chapter, Episode
from bot.retry import RetryPolicy
from bot.selector import select_chapter, select_episode


EPISODES = [
    Episode(id="e1", number="1", title="Start"),
    Episode(id="e2", number=2, title="Next"),
    Episode(id="e10", number="10", title="Latest"),
]


def test_exact_episode_match_coerces_strings():
    sel = select_episode(EPISODES, 10)
    assert sel.item.id == "e10" and sel.exact is True
    sel = select_episode(EPISODES, "2")
    assert sel.item.id == "e2" and sel.exact is True


def test_missing_episode_returns_latest_and_flags_it():
    # "10" must beat "2" numerically, not lexically
    sel = select_episode(EPISODES, 99)
    assert sel.item.id == "e10"
    assert sel.exact is False


def test_empty_lists_select_nothing():
    assert select_episode([], 1) is None
    assert select_chapter([], 1) is None


def test_chapter_selection_uses_parsed_numbers():
    chapters = [
        Chapter.from_api({"title": "Chapter 12", "url": "https://asuracomic.net/series/x/chapter/12"}),
        Chapter.from_api({"title": "Chapter 3", "url": "https://asuracomic.net/series/x/chapter/3"}),
        Chapter.from_api({"name": "Prologue", "chapter_no": "1", "url": "u1"}),
    ]
    sel = select_chapter(chapters, 3)
    assert sel.item.name == "Chapter 3" and sel.exact
    sel = select_chapter(chapters, 50)
    assert sel.item.name == "Chapter 12" and not sel.exact


def test_chapter_without_numbers_falls_back_to_first():
    chapters = [Chapter(name="Extra", url="a"), Chapter(name="Side story", url="b")]
    sel = select_chapter(chapters, 4)
    assert sel.item.url == "a" and not sel.exact


@pytest.mark.asyncio
async def test_retry_exhausts_exactly_three_attempts_with_fixed_spacing():
    sleeps = []
    calls = {"n": 0}

    async def fake_sleep(s):
        sleeps.append(s)

    async def always_fails():
        calls["n"] += 1
        return None

    policy = RetryPolicy(max_attempts=3, delay_s=2.0, sleep=fake_sleep)
    assert await policy.run(always_fails) is None
    assert calls["n"] == 3
    assert sleeps == [2.0, 2.0]


@pytest.mark.asyncio
async def test_retry_counts_exceptions_and_stops_on_success():
    sleeps = []
    attempts = []

    async def fake_sleep(s):
        sleeps.append(s)

    async def flaky():
        attempts.append(1)
        if len(attempts) == 1:
            raise TimeoutError("slow backend")
        return {"success": True}

    policy = RetryPolicy(max_attempts=3, delay_s=2.0, sleep=fake_sleep)
    out = await policy.run(flaky, is_success=lambda r: bool(r and r.get("success")))
    assert out == {"success": True}
    assert len(attempts) == 2
    assert sleeps == [2.0]


def test_backoff_growth_is_optional():
    assert RetryPolicy(delay_s=2.0).delay_for(3) == 2.0
    assert RetryPolicy(delay_s=1.0, backoff=2.0).delay_for(3) == 4.0
