"""Client-side access package.

Architectural role:
    Provides configuration, the typed imagehub API client, and the describer
    adapters used to send frames to external multimodal models.

Module split:
    - `provider_config`: environment-driven endpoints, models and key lookup.
    - `client`: `ApiClient` over the `/api/image` REST surface.
    - `describers`: provider adapters behind `describe_image(base64, mime_type, prompt)`.
    - `service`: fetch-a-frame-and-describe-it workflow.
"""
