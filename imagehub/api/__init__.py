"""imagehub adapter package.

Architectural role:
- Defines the external interaction boundary for HTTP and CLI interfaces.
- Performs transport-level validation, upload staging and response shaping.
- Delegates storage to the core registry.

Scope:
- Request lifecycle control for adapter concerns only.
"""
