"""Ports layer - interface definitions following Hexagonal Architecture.

Ports are abstract interfaces (protocols) that define contracts:
- Inbound ports: APIs offered to clients (DatabasePort, TableChangeListener)
- Outbound ports: Dependencies on external systems (SnapshotStore)

Adapters implement these ports with concrete functionality.
"""
