"""Cross-cutting infrastructure: configuration, logging, errors and the store binding."""
