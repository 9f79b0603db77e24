"""site_mapper.crawler: link registry, exploration policy, page fetcher and the crawl orchestrator."""
