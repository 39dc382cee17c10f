"""
Transformation Layer - Pure, Deterministic Functions

This layer shapes fetched change records for presentation.
- Pure functions (input → output)
- No I/O operations
- Unit testable
- Deterministic results
"""
