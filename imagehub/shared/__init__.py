"""Transfer objects shared by the HTTP adapter and the API client.

Scope:
- Flattened, serialization-safe projections of registry entities.
- No registry access or HTTP logic lives here.
"""
