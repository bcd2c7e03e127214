"""
HTML sanitization for rich-text event content.

Event briefings are authored in a rich-text editor and rendered as HTML by
the roster client, so they are cleaned on the way in. Scripts, event
handler attributes and javascript: URLs never reach the database.

Usage:
    >>> sanitize_html('<p onclick="x()">Hold <b>north</b></p><script>x()</script>')
    '<p>Hold <b>north</b></p>'
"""

from typing import Optional

import nh3


ALLOWED_TAGS = {
    # Structure
    "p", "br", "hr", "div", "span",
    # Headings
    "h1", "h2", "h3", "h4", "h5", "h6",
    # Inline formatting
    "strong", "b", "em", "i", "u", "s", "strike", "sub", "sup", "mark",
    # Lists
    "ul", "ol", "li",
    # Links and images
    "a", "img",
    # Tables
    "table", "thead", "tbody", "tr", "th", "td",
    # Blocks
    "blockquote", "pre", "code",
}

# rel is not listed: nh3 sets it on every link through link_rel
ALLOWED_ATTRIBUTES = {
    "*": {"title", "class", "id", "style"},
    "a": {"href", "target"},
    "img": {"src", "alt", "width", "height"},
    "td": {"colspan", "rowspan"},
    "th": {"colspan", "rowspan"},
}

LINK_REL = "noopener noreferrer"


def sanitize_html(dirty: Optional[str]) -> Optional[str]:
    """
    Strip everything outside the rich-text allow-list.

    Script and style elements are dropped together with their content.
    None passes through so optional fields stay unset.
    """
    if dirty is None:
        return None
    return nh3.clean(
        dirty,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        link_rel=LINK_REL,
        strip_comments=True,
    )
