"""Content sanitization for user-submitted comments.

Removes markup from free text and normalizes whitespace. Event handlers,
style attributes and script URLs only take effect inside a tag, so they
disappear together with the tag that carries them. Plain text, Hebrew
included, passes through unchanged.
"""

import re


# Script and style blocks, including their bodies
BLOCK_PATTERN = re.compile(
    r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL
)

# A complete tag: "<" directly followed by a name, "/", "!" or "?"
TAG_PATTERN = re.compile(r"<[a-zA-Z/!?][^>]*>")

# Unterminated opener such as "<img src=x" at the end of the text.
# A "<" glued to a preceding word ("x<y") is a comparison, not a tag.
TAG_OPENER_PATTERN = re.compile(r"(?<!\w)<(?=[a-zA-Z/!?])")

# C0 control characters other than tab and newline
CONTROL_CHAR_PATTERN = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")

MULTIPLE_SPACES_PATTERN = re.compile(r" {2,}")
EXCESS_NEWLINES_PATTERN = re.compile(r"\n{3,}")


def _sanitize_once(text: str) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = CONTROL_CHAR_PATTERN.sub("", text)
    text = BLOCK_PATTERN.sub("", text)
    text = TAG_PATTERN.sub("", text)
    text = TAG_OPENER_PATTERN.sub("", text)
    text = text.replace("\t", " ")
    text = MULTIPLE_SPACES_PATTERN.sub(" ", text)
    text = EXCESS_NEWLINES_PATTERN.sub("\n\n", text)
    return text.strip()


def sanitize_content(content: object) -> str:
    """Sanitize comment content to prevent XSS.

    - Drops <script>/<style> blocks and every remaining tag, together with
      any event handler, style attribute or javascript: URL inside it
    - Drops the "<" of a tag left open at the end of the text
    - Tabs become spaces, runs of spaces collapse, at most one blank line
      is kept and the result is trimmed

    Passes are repeated until the text stops changing, so removing one
    vector can never assemble another and ``sanitize_content`` applied to
    its own output is a no-op. Never raises; non-string input yields "".
    """
    if not isinstance(content, str):
        return ""

    previous = None
    text = content
    while text != previous:
        previous = text
        text = _sanitize_once(text)
    return text
