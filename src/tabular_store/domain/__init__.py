"""Domain layer: columns, tables, indexes and snapshots.

The domain has no I/O. Tables report mutations through the
TableChangeListener port; persistence lives in the application layer.
"""
