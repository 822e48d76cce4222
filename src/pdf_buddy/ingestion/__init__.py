"""PDF ingestion: extraction, chunking, the job pipeline and its queue."""
