"""LinkedIn ingestion through scraping jobs."""
