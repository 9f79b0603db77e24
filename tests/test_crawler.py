# Test-suite for the SiteMapper crawl orchestrator, driven by stub fetcher/judge
from __future__ import annotations

import time

import pytest

from site_mapper.crawler.crawler import CrawlPhase, SitemapCrawler
from site_mapper.crawler.policy import ExplorationPolicy
from site_mapper.utils import normalize_url

from stubs import StubFetcher, StubJudge, judge_failure, make_page

#: seconds a "slow" stub page sleeps in the concurrency test
SLOW_SLEEP: float = 0.4


def crawler_for(fetcher, judge, max_depth=2, limit=5) -> SitemapCrawler:
    return SitemapCrawler(fetcher, ExplorationPolicy(judge, limit=limit), max_depth=max_depth)


@pytest.mark.asyncio()
async def test_end_to_end_follows_only_selected_link(example_homepage):
    fetcher = StubFetcher([example_homepage, make_page("https://example.com/about", "About us")])
    judge = StubJudge(pick=["https://example.com/about"])
    crawler = crawler_for(fetcher, judge, max_depth=2)

    state = await crawler.crawl("example.com")

    assert fetcher.fetched_keys == ["example.com", "example.com/about"]
    assert fetcher.calls[0] == "https://example.com"
    # neither the mail nor the social link was ever offered to the judge
    assert judge.calls[0][1] == ["example.com/about"]
    assert [p.title for p in state.pages] == ["Example", "About us"]
    assert state.depth == 2
    assert crawler.phase is CrawlPhase.DONE


@pytest.mark.asyncio()
async def test_depth_one_fetches_only_the_root(example_homepage):
    fetcher = StubFetcher([example_homepage])
    judge = StubJudge()
    crawler = crawler_for(fetcher, judge, max_depth=1)

    state = await crawler.crawl("https://example.com")

    assert fetcher.calls == ["https://example.com"]
    assert judge.calls == []
    assert state.depth == 1
    # homepage links are still catalogued
    assert len(crawler.registry) == 3


@pytest.mark.asyncio()
async def test_explore_disabled_behaves_like_depth_one(example_homepage):
    fetcher = StubFetcher([example_homepage])
    crawler = crawler_for(fetcher, StubJudge(), max_depth=3)

    await crawler.crawl("example.com", explore=False)

    assert fetcher.fetched_keys == ["example.com"]


@pytest.mark.asyncio()
async def test_root_failure_yields_placeholder():
    fetcher = StubFetcher(failures=["example.com"])
    judge = StubJudge()
    crawler = crawler_for(fetcher, judge, max_depth=3)

    state = await crawler.crawl("example.com")

    assert state.root_failed is True
    assert state.homepage.title == "example.com"
    assert state.homepage.links == ()
    assert [f.kind for f in state.failures] == ["NetworkFailure"]
    assert crawler.pages_explored() == []
    assert judge.calls == []
    assert fetcher.calls == ["https://example.com"]


@pytest.mark.asyncio()
async def test_explored_link_is_never_selected_again():
    home = make_page("https://example.com", "Home", {"About": "/about", "Team": "/team"})
    about = make_page("https://example.com/about", "About", {"Team page": "/team", "Home": "/", "Jobs": "/jobs"})
    team = make_page("https://example.com/team", "Team", {"About": "/about", "Jobs": "/jobs"})
    jobs = make_page("https://example.com/jobs", "Jobs", {"About": "/about", "Team": "/team"})
    fetcher = StubFetcher([home, about, team, jobs])
    judge = StubJudge()
    crawler = crawler_for(fetcher, judge, max_depth=4)

    state = await crawler.crawl("https://example.com")

    # every URL fetched exactly once
    assert sorted(fetcher.fetched_keys) == sorted(set(fetcher.fetched_keys))
    assert fetcher.fetched_keys == ["example.com", "example.com/about", "example.com/team", "example.com/jobs"]
    # later judge calls never see already explored links
    for page_url, offered, explored in judge.calls:
        assert not set(offered) & explored
    offered_after_root = [key for _, offered, _ in judge.calls[1:] for key in offered]
    assert "example.com/about" not in offered_after_root
    assert "example.com/team" not in offered_after_root
    assert state.depth <= 4


@pytest.mark.asyncio()
async def test_sibling_suggestions_are_queued_once():
    home = make_page("https://example.com", "Home", {"A": "/a", "B": "/b"})
    a = make_page("https://example.com/a", "A", {"Shared": "/shared"})
    b = make_page("https://example.com/b", "B", {"Shared page": "/shared"})
    shared = make_page("https://example.com/shared", "Shared")
    fetcher = StubFetcher([home, a, b, shared])
    crawler = crawler_for(fetcher, StubJudge(), max_depth=3)

    state = await crawler.crawl("example.com")

    assert fetcher.fetched_keys.count("example.com/shared") == 1
    assert [s.source_page for s in state.selections if s.link.key == "example.com/shared"] == [
        "https://example.com/a"
    ]
    record = crawler.registry.get("example.com/shared")
    assert list(record.source_pages) == ["https://example.com/a", "https://example.com/b"]
    assert record.display_text == "Shared page"


@pytest.mark.asyncio()
async def test_judge_overflow_is_capped_per_page():
    links = {f"Section {i}": f"/s{i}" for i in range(8)}
    home = make_page("https://example.com", "Home", links)
    fetcher = StubFetcher([home] + [make_page(f"https://example.com/s{i}", f"S{i}") for i in range(8)])
    crawler = crawler_for(fetcher, StubJudge(), max_depth=2, limit=5)

    state = await crawler.crawl("example.com")

    assert len(state.selections) == 5
    assert len(fetcher.calls) == 1 + 5


@pytest.mark.asyncio()
async def test_fetch_failures_do_not_stop_siblings():
    home = make_page("https://example.com", "Home", {"Ok": "/ok", "Broken": "/broken", "Also ok": "/fine"})
    fetcher = StubFetcher(
        [home, make_page("https://example.com/ok", "Ok"), make_page("https://example.com/fine", "Fine")],
        failures=["example.com/broken"],
    )
    crawler = crawler_for(fetcher, StubJudge(), max_depth=2)

    state = await crawler.crawl("example.com")

    assert [p.title for p in state.pages] == ["Home", "Ok", "Fine"]
    assert [normalize_url(f.url) for f in state.failures] == ["example.com/broken"]
    assert state.levels[0]["fetched"] == 2
    assert state.levels[0]["failed"] == 1


@pytest.mark.asyncio()
async def test_judge_failure_on_one_page_is_isolated():
    home = make_page("https://example.com", "Home", {"A": "/a", "B": "/b"})
    a = make_page("https://example.com/a", "A", {"A child": "/a/child"})
    b = make_page("https://example.com/b", "B", {"B child": "/b/child"})
    pages = [home, a, b, make_page("https://example.com/a/child", "A child"), make_page("https://example.com/b/child", "B child")]

    class FlakyJudge(StubJudge):
        async def select_links(self, page, candidates, explored, limit):
            if page.url.endswith("/a"):
                raise judge_failure()
            if page.url.endswith("/b"):
                raise RuntimeError("judge crashed")
            return await super().select_links(page, candidates, explored, limit)

    fetcher = StubFetcher(pages)
    crawler = crawler_for(fetcher, FlakyJudge(), max_depth=3)

    state = await crawler.crawl("example.com")

    assert fetcher.fetched_keys == ["example.com", "example.com/a", "example.com/b"]
    assert state.depth == 2
    assert len(crawler.registry) == 4


@pytest.mark.asyncio()
async def test_same_depth_fetches_run_concurrently():
    home = make_page("https://example.com", "Home", {"Slow one": "/slow1", "Slow two": "/slow2"})
    fetcher = StubFetcher(
        [home, make_page("https://example.com/slow1", "S1"), make_page("https://example.com/slow2", "S2")],
        delays={"example.com/slow1": SLOW_SLEEP, "example.com/slow2": SLOW_SLEEP},
    )
    crawler = crawler_for(fetcher, StubJudge(), max_depth=2)

    start = time.perf_counter()
    state = await crawler.crawl("example.com")
    elapsed = time.perf_counter() - start

    assert elapsed < SLOW_SLEEP * 1.75
    assert len(state.pages) == 3


@pytest.mark.asyncio()
async def test_index_order_is_deterministic():
    home = make_page("https://example.com", "Home", {"B": "/b", "A": "/a"})
    a = make_page("https://example.com/a", "A", {"From A": "/from-a"})
    b = make_page("https://example.com/b", "B", {"From B": "/from-b"})
    pages = [home, a, b]

    keys = []
    for delays in ({"example.com/a": 0.05}, {"example.com/b": 0.05}):
        crawler = crawler_for(StubFetcher(pages, delays=delays), StubJudge(), max_depth=2)
        await crawler.crawl("example.com")
        keys.append([r.key for r in crawler.registry.to_list()])

    assert keys[0] == keys[1] == ["example.com/b", "example.com/a", "example.com/from-b", "example.com/from-a"]


def test_max_depth_must_be_positive():
    with pytest.raises(ValueError):
        SitemapCrawler(StubFetcher(), None, max_depth=0)


@pytest.mark.asyncio()
async def test_same_depth_judgments_run_concurrently():
    home = make_page("https://example.com", "Home", {"A": "/a", "B": "/b"})
    a = make_page("https://example.com/a", "A", {"A child": "/a/child"})
    b = make_page("https://example.com/b", "B", {"B child": "/b/child"})
    pages = [home, a, b, make_page("https://example.com/a/child", "A child"), make_page("https://example.com/b/child", "B child")]
    judge = StubJudge(delay=SLOW_SLEEP)
    crawler = crawler_for(StubFetcher(pages), judge, max_depth=3)

    start = time.perf_counter()
    state = await crawler.crawl("example.com")
    elapsed = time.perf_counter() - start

    # one judgment for the homepage, then /a and /b side by side
    assert [call[0] for call in judge.calls] == ["https://example.com", "https://example.com/a", "https://example.com/b"]
    assert elapsed < SLOW_SLEEP * 2.6
    assert len(state.pages) == 5


@pytest.mark.asyncio()
async def test_redirected_homepage_is_not_offered_again():
    landing = make_page("https://example.com/en", "Home", {"Home": "/en/", "About": "/en/about"})
    fetcher = StubFetcher(
        [landing, make_page("https://example.com/en/about", "About")],
        redirects={"example.com": "https://example.com/en/"},
    )
    judge = StubJudge()
    crawler = crawler_for(fetcher, judge, max_depth=2)

    state = await crawler.crawl("example.com")

    assert fetcher.fetched_keys == ["example.com", "example.com/en/about"]
    assert judge.calls[0][1] == ["example.com/en/about"]
    assert "example.com/en" in state.explored
    assert state.homepage.url == "https://example.com"
    assert state.homepage.final_url == "https://example.com/en/"
    assert [p.title for p in state.pages] == ["Home", "About"]


@pytest.mark.asyncio()
async def test_pages_redirecting_to_a_queued_page_are_dropped():
    home = make_page("https://example.com", "Home", {"Old news": "/old-news", "News": "/news"})
    fetcher = StubFetcher(
        [home, make_page("https://example.com/news", "News")],
        redirects={"example.com/old-news": "https://example.com/news"},
    )
    crawler = crawler_for(fetcher, StubJudge(), max_depth=2)

    state = await crawler.crawl("example.com")

    assert [p.title for p in state.pages] == ["Home", "News"]
    assert [p.url for p in state.pages] == ["https://example.com", "https://example.com/news"]
    assert state.levels[0]["fetched"] == 1
    assert state.levels[0]["redirected"] == 1
    assert state.levels[0]["failed"] == 0
    assert state.failures == []
