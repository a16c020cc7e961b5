"""Core image storage package.

Architectural role:
    Holds the process-wide image state that the HTTP adapter exposes.

Composition:
    - `errors`: error taxonomy shared with the API layer.
    - `image_object`: one decoded image asset (RGBA frames, pixel access, PNG export).
    - `image_registry`: thread-safe id -> image store owning entity lifecycles.

Determinism and side effects:
    Package import is side-effect free. All state lives in registry instances.
"""
