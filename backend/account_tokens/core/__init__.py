"""Core wiring: configuration, logging, error handling and extensions."""
