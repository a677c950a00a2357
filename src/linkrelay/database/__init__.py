"""
Database package for Link Relay.

Public API:
    - db_connection: shared :class:`ConnectionManager` (one aiosqlite connection)
    - BindingStore: reads and writes channel and role bindings
    - load_routing_table: fills the routing table from the store
"""
