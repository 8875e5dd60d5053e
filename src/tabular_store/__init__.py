"""
Tabular Store - embedded in-memory table store

A schema-enforced row store with unique secondary indexes, persisted as
whole-database JSON snapshots by a single-writer, retrying background queue.
"""

__version__ = "0.1.0"
