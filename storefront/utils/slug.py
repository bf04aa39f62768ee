import re
import unicodedata


def create_slug(value: str) -> str:
    """Public URL key for a restaurant name: ``"Spice Hub!"`` -> ``"spice-hub"``."""
    if not value:
        return ""

    value = unicodedata.normalize("NFKD", value)
    value = value.encode("ascii", "ignore").decode("ascii")
    value = value.strip().lower()
    value = re.sub(r"\s+", "-", value)
    value = re.sub(r"[^\w-]", "", value)

    return value
