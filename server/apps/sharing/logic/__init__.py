"""Business logic layer for sharing app.

This package contains all business logic for encrypted sharing:
- FileRegistry lifecycle (create, resolve, count, delete, sweep)
- Upload/download flows and their boundary payloads

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
"""
