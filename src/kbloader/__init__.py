"""kbloader: URL acquisition and semantic chunking for knowledge-base ingestion."""
