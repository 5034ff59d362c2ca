"""
Clean free-text feed fields before embedding them in a notification.
"""

NBSP_ENTITY = "&nbsp;"
TRUNCATION_MARKER = "..."
MAX_DESCRIPTION_LENGTH = 200


def strip_markup(text: str) -> str:
    """
    Drop everything between angle brackets.

    Tags are not parsed; a lone ``<`` hides the rest of the text.

    Parameters
    ----------
    text : str
        Text possibly containing markup.

    Returns
    -------
    str
        Text with bracketed runs removed.
    """
    out = []
    inside = False
    for char in text:
        if char == "<":
            inside = True
        elif char == ">":
            inside = False
        elif not inside:
            out.append(char)
    return "".join(out)


def truncate(text: str, max_length: int, marker: str = TRUNCATION_MARKER) -> str:
    """Cut text to max_length characters, appending marker when cut."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + marker


def sanitize_text(
    text: str,
    max_length: int = MAX_DESCRIPTION_LENGTH,
    marker: str = TRUNCATION_MARKER,
) -> str:
    """
    Strip markup, normalize non-breaking spaces, trim and truncate.

    Parameters
    ----------
    text : str
        Raw feed text.
    max_length : int
        Maximum number of characters kept before the marker.
    marker : str
        Suffix appended when the text was truncated.

    Returns
    -------
    str
        Display-ready text.
    """
    return truncate(clean_text(text), max_length, marker)


def clean_text(text: str) -> str:
    """Strip markup, normalize non-breaking spaces and trim."""
    return strip_markup(text).replace(NBSP_ENTITY, " ").strip()


def fit_text(text: str, max_length: int, marker: str = TRUNCATION_MARKER) -> str:
    """
    Clean text and bound its total length, marker included.

    Used where a hard length limit applies to the final string.
    """
    cleaned = clean_text(text)
    if len(cleaned) <= max_length:
        return cleaned
    return cleaned[: max(max_length - len(marker), 0)] + marker
