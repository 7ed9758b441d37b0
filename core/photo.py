import base64
import binascii

from core.exceptions import ValidationError

DATA_URL_PREFIX = "data:image/jpeg;base64,"


def decode_photo(encoded: str | None) -> bytes | None:
    """Decode a patient photo sent either as a data URL or as raw base64.

    Returns None when no photo was sent. Raises ValidationError when the
    payload is not valid base64.
    """
    if encoded is None or not encoded.strip():
        return None

    payload = encoded.strip()
    # data:image/png;base64,<payload>
    if "," in payload:
        payload = payload.split(",", 1)[1]

    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError(f"Invalid photo format: {exc}") from exc


def is_data_url(encoded: str | None) -> bool:
    return bool(encoded) and encoded.startswith("data:image")


def encode_photo(photo: bytes | None) -> str | None:
    """Re-encode stored photo bytes as an embeddable data URL."""
    if photo is None:
        return None
    return DATA_URL_PREFIX + base64.b64encode(photo).decode("ascii")
