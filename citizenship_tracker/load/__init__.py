"""
Load Layer - Output

Renders tracker results to the console and optionally exports rows to disk.
"""
