"""Record storage.

This module holds the record store interface and its backends.
It also exposes the SDK client that wires the sync components.
"""
