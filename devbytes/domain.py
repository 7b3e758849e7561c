"""Consumer-facing video model."""

from pydantic import BaseModel, ConfigDict

SHORT_DESCRIPTION_LENGTH = 200

# Trailing separators trimmed from a truncated description
_PUNCTUATION = (", ", "; ", ": ", " ")


class DevByteVideo(BaseModel):
    """A video as exposed to presentation layers.

    Always derived from the offline cache; never stored on its own.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    url: str
    updated: str
    thumbnail: str

    @property
    def short_description(self) -> str:
        """Description cut at a word boundary after ``SHORT_DESCRIPTION_LENGTH`` characters."""
        return smart_truncate(self.description, SHORT_DESCRIPTION_LENGTH)


def smart_truncate(text: str, length: int) -> str:
    """Truncate ``text`` on whole words once it grows past ``length``.

    Words are appended until the result exceeds ``length``; if any words were
    left out, a trailing separator is removed and "..." is appended.
    """
    out = ""
    has_more = False
    for word in text.split(" "):
        if len(out) > length:
            has_more = True
            break
        out += word + " "

    for punctuation in _PUNCTUATION:
        if out.endswith(punctuation):
            out = out[: -len(punctuation)]

    if has_more:
        out += "..."
    return out
