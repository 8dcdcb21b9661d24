"""Framework-independent core: descriptors, query parsing, access rules and pipelines."""
