"""
db/ - Database Layer
====================
Handles the PostgreSQL connection pool, the document store schema and
realtime change notifications (LISTEN/NOTIFY).
This layer is the lowest in the architecture and has no dependencies on other layers.
"""
