"""
Extract Layer - Pure I/O to the WarEra API

This layer handles all external data fetching with no business logic.
- No imports from transform or load layers
- Normalizes raw payloads into canonical records right after fetch
- Handles error conversion for the unauthenticated lookups
"""
