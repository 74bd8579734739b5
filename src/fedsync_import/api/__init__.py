"""HTTP job wrapper around the importer."""
