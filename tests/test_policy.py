import pytest

from site_mapper.crawler.policy import ExplorationPolicy, _offered
from site_mapper.crawler.registry import LinkRegistry
from site_mapper.errors import ContractViolation

from stubs import StubJudge, judge_failure, make_page

PAGE = make_page("https://example.com", "Example")


def records(*links):
    registry = LinkRegistry()
    return registry.register(PAGE.url, links)


@pytest.mark.asyncio()
async def test_deterministic_filters_run_before_the_judge():
    links = records(
        ("About", "https://example.com/about"),
        ("Mail us", "mailto:hello@example.com"),
        ("Facebook", "https://www.facebook.com/example"),
        ("Video", "https://youtu.be/xyz"),
        ("", "https://example.com/blank"),
        ("3", "https://example.com/page/3"),
        ("Jump", "https://example.com/#section"),
        ("Services", "https://example.com/services"),
        ("Home", "https://example.com/"),
    )
    judge = StubJudge()
    policy = ExplorationPolicy(judge, limit=5)

    selected = await policy.select(PAGE, links, explored={"example.com"})

    assert judge.calls[0][1] == ["example.com/about", "example.com/services"]
    assert [s.link.key for s in selected] == ["example.com/about", "example.com/services"]
    assert selected[0].reason == "explore About"
    assert selected[0].source_page == PAGE.url


@pytest.mark.asyncio()
async def test_nothing_left_means_no_judge_call():
    links = records(("Mail", "mailto:x@example.com"), ("fb", "https://facebook.com/x"))
    judge = StubJudge()
    policy = ExplorationPolicy(judge)

    assert await policy.select(PAGE, links, explored=set()) == []
    assert judge.calls == []


@pytest.mark.asyncio()
async def test_explored_links_are_never_offered():
    links = records(("About", "https://example.com/about"), ("Team", "https://example.com/team"))
    judge = StubJudge()
    policy = ExplorationPolicy(judge)

    selected = await policy.select(PAGE, links, explored={"example.com/about"})
    assert [s.link.key for s in selected] == ["example.com/team"]
    assert judge.calls[0][1] == ["example.com/team"]


@pytest.mark.asyncio()
async def test_judge_output_is_capped():
    links = records(*[(f"Section {i}", f"https://example.com/s{i}") for i in range(8)])
    judge = StubJudge()
    policy = ExplorationPolicy(judge, limit=5)

    selected = await policy.select(PAGE, links, explored=set())
    assert len(selected) == 5
    assert [s.link.key for s in selected] == [f"example.com/s{i}" for i in range(5)]


@pytest.mark.asyncio()
async def test_unknown_indices_are_dropped_not_fatal():
    links = records(
        ("About", "https://example.com/about"),
        ("Mail", "mailto:x@example.com"),
        ("Blog", "https://example.com/blog"),
    )
    mail_index = links[1].index
    judge = StubJudge(indices=[99, links[2].index, mail_index, links[2].index, links[0].index])
    policy = ExplorationPolicy(judge)

    selected = await policy.select(PAGE, links, explored=set())
    # 99 was never offered, the mail link was filtered out, duplicates collapse
    assert [s.link.key for s in selected] == ["example.com/blog", "example.com/about"]


@pytest.mark.asyncio()
async def test_judge_failure_gives_empty_selection():
    links = records(("About", "https://example.com/about"))
    policy = ExplorationPolicy(StubJudge(error=judge_failure()))

    assert await policy.select(PAGE, links, explored=set()) == []


def test_limit_must_be_positive():
    with pytest.raises(ValueError):
        ExplorationPolicy(StubJudge(), limit=0)


def test_index_outside_the_offer_is_a_contract_violation():
    links = records(("About", "https://example.com/about"))
    by_index = {link.index: link for link in links}

    assert _offered(by_index, links[0].index, PAGE.url) is links[0]
    with pytest.raises(ContractViolation, match="index 7 was not offered on https://example.com"):
        _offered(by_index, 7, PAGE.url)
