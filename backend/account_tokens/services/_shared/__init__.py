"""Shared service-layer primitives (errors, base classes, ports)."""
