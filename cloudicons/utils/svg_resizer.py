"""Rewrite the intrinsic size of an SVG document."""

import logging
import re

logger = logging.getLogger(__name__)

FIT_ATTRIBUTE = 'preserveAspectRatio="xMidYMid meet"'

# Quote-aware opening tag; a trailing "/" (self-closing root) is kept apart.
# As in HTML, a "/" may separate the tag name from the first attribute.
_SVG_TAG_RE = re.compile(
    r"""(?P<open><svg)(?P<attrs>(?:(?:\s|/(?!>))(?:[^>"'/]|/(?!>)|"[^"]*"|'[^']*')*)?)(?P<close>/?)>""",
    re.IGNORECASE,
)
_VIEWBOX_RE = re.compile(r"""\sviewBox\s*=\s*(?:"[^"]+"|'[^']+')""", re.IGNORECASE)
_SIZE_ATTR_RE = re.compile(
    r"""\s+(?:width|height)\s*=\s*(?:"[^"]*"|'[^']*'|[^\s"'>/]+)""",
    re.IGNORECASE,
)
_FIT_ATTR_RE = re.compile(
    r"""\s+preserveAspectRatio\s*=\s*(?:"[^"]*"|'[^']*'|[^\s"'>/]+)""",
    re.IGNORECASE,
)


def resize_svg(raw: str, size: int) -> str:
    """Set width/height of the root <svg> element to `size` pixels.

    With a viewBox the aspect ratio is kept by an explicit fit attribute.
    Only the root opening tag is touched. Content without an <svg> tag is
    returned unchanged, as is content the resizer fails on.
    """
    try:
        match = _SVG_TAG_RE.search(raw)
        if not match:
            logger.warning("SVG tag not found in content — size left unchanged")
            return raw

        attrs = match.group("attrs")
        if attrs.startswith("/"):
            attrs = " " + attrs[1:]
        has_viewbox = bool(_VIEWBOX_RE.search(attrs))

        cleaned = _SIZE_ATTR_RE.sub("", attrs)
        if has_viewbox:
            cleaned = _FIT_ATTR_RE.sub("", cleaned)
        cleaned = cleaned.rstrip()
        if has_viewbox:
            sized = f'{cleaned} width="{size}" height="{size}" {FIT_ATTRIBUTE}'
        else:
            sized = f'{cleaned} width="{size}" height="{size}"'

        new_tag = f"{match.group('open')}{sized}{match.group('close')}>"
        return raw[:match.start()] + new_tag + raw[match.end():]

    except Exception as e:
        logger.error("Error resizing SVG content: %s", str(e)[:200])
        return raw
