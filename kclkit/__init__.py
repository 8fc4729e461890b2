"""Tools for KCL projects: import parsing, dependency scanning, Go and protobuf generation, and archive helpers."""

__version__ = "0.5.0"