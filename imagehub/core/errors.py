"""Error taxonomy shared by the registry, the upload path and the HTTP adapter.

HTTP mapping (applied in `imagehub.api.http_api`):
    - `ValidationError` -> 400
    - `NotFoundError`   -> 404
    - anything else     -> 500 with the exception message as detail

`DecodeError` and `RegistryConflictError` are import failures. The registry's
`import_image` converts them into a `None` result; `load` lets them propagate.
"""


class ImageHubError(Exception):
    """Base class for all imagehub errors."""


class ValidationError(ImageHubError, ValueError):
    """Malformed client input (empty upload, bad id, wrong pixel count)."""


class NotFoundError(ImageHubError, LookupError):
    """Unknown image id or out-of-range frame index."""


class DecodeError(ImageHubError):
    """File could not be decoded into at least one frame."""


class RegistryConflictError(ImageHubError):
    """Generated id already present in the registry."""
