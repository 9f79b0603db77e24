# File: tests/conftest.py
import pytest

from site_mapper.config import MapperConfig

from stubs import make_page


@pytest.fixture()
def basic_config() -> MapperConfig:
    """
    Return a MapperConfig suited for tests: short timeouts, no API keys.
    """
    return MapperConfig(
        max_depth=2,
        max_links_per_page=5,
        fetch_timeout=2.0,
        budget=10.0,
        synthesis_reserve=2.0,
        user_agent="TestAgent/1.0",
        retry_times=0,
        reader_api_key=None,
        llm_api_key=None,
        llm_base_url=None,
    )


@pytest.fixture()
def example_homepage():
    """
    Homepage of example.com with one page link, one mail link and one social link.
    """
    return make_page(
        "https://example.com",
        "Example",
        {
            "About": "/about",
            "Contact": "mailto:x@example.com",
            "fb": "https://facebook.com/example",
        },
    )
