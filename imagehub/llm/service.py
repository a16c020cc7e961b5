"""Frame-description workflow.

Model call flow:
    image id + frame -> `ApiClient.get_image_data` -> base64 PNG ->
    `Describer.describe_image(base64, mime_type, prompt)` -> text.

Determinism:
    Fetching and payload construction are deterministic for a fixed registry state.
    The returned text is not, since inference runs remotely.
"""

from imagehub.llm.describers import get_describer
from imagehub.llm.provider_config import DEFAULT_PROMPT


def describe_frame(client, image_id, frame=0, prompt=DEFAULT_PROMPT, describer=None):
    """Describe one frame of a registered image.

    Args:
        client: `ApiClient` used to fetch the frame payload.
        image_id: Registered image id.
        frame: Zero-based frame index.
        prompt: Free-text instruction forwarded with the image.
        describer: Describer to consult; defaults to the configured provider.

    Returns:
        The describer's text, its diagnostic string on provider failure, or
        `"Image data not found."` when the frame could not be fetched.
    """
    image_data = client.get_image_data(image_id, frame)
    if image_data is None or not image_data.base64:
        return "Image data not found."

    describer = describer or get_describer()
    return describer.describe_image(image_data.base64, image_data.mime_type, prompt)
