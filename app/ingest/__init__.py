"""Price list ingestion: archive extraction, validation and loading."""
