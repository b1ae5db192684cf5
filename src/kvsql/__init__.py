"""
kvsql - SQL over a versioned key-value store

An embedded query engine that runs a small SQL dialect against a persistent,
versioned key-value store and keeps a live schema catalog in step with the
store's containers.
"""

__version__ = "0.1.0"
__author__ = "Systems Engineering Portfolio"
