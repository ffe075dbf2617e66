"""Text helpers shared across layers.

Inbound questions and collaborator output have BOM markers stripped so
downstream code never sees spurious characters. NFKC normalization is
only used to vet user input; questions are stored as asked. Generated
fragments go through ``strip_bom`` so their byte-for-byte concatenation
stays intact.
"""

import unicodedata


def strip_bom(text: str) -> str:
    """Remove BOM and replacement characters."""
    if not text:
        return ""
    return text.replace("\ufeff", "").replace("\ufffd", "")


def normalize_text(text: str, *, normalize: bool = True) -> str:
    """Remove BOM markers, apply NFKC normalization and trim whitespace.

    Args:
        text: Input text that may contain BOM or special characters.
        normalize: Whether to apply NFKC normalization.

    Returns:
        Cleaned text.
    """
    cleaned = strip_bom(text)
    if normalize:
        cleaned = unicodedata.normalize("NFKC", cleaned)
    return cleaned.strip()
