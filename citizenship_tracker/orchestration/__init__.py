"""
Orchestration Layer - Workflow Coordination

This layer coordinates the sequential tracker workflow.
- Drives the extract layer one request at a time
- Isolates per-player failures
- Exposes progress while running
"""
