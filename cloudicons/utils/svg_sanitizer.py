"""SVG sanitizer — allow-list filtering over a parsed XML tree.

The document is parsed with defusedxml (no DTDs, no entity expansion),
every element and attribute outside the SVG allow-lists is dropped, and the
tree is serialized again. URL-bearing values may only point at local
fragments (or, for href, at inline raster images).
"""

import logging
import re
from xml.etree import ElementTree

import defusedxml.ElementTree as SafeElementTree
from defusedxml import DefusedXmlException

logger = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"
XML_NS = "http://www.w3.org/XML/1998/namespace"

# Lower-cased local names. Graphics, structure, text, gradients, animation
# and filter primitives; nothing that embeds documents, scripts or styles.
ALLOWED_ELEMENTS = frozenset({
    "svg", "a", "g", "defs", "symbol", "use", "switch", "view",
    "title", "desc", "metadata",
    "path", "rect", "circle", "ellipse", "line", "polyline", "polygon",
    "text", "tspan", "textpath",
    "lineargradient", "radialgradient", "stop", "pattern",
    "clippath", "mask", "marker", "image",
    "animate", "animatemotion", "animatetransform", "set", "mpath",
    "filter", "feblend", "fecolormatrix", "fecomponenttransfer", "fecomposite",
    "feconvolvematrix", "fediffuselighting", "fedisplacementmap", "fedistantlight",
    "fedropshadow", "feflood", "fefunca", "fefuncb", "fefuncg", "fefuncr",
    "fegaussianblur", "feimage", "femerge", "femergenode", "femorphology",
    "feoffset", "fepointlight", "fespecularlighting", "fespotlight", "fetile",
    "feturbulence",
})

ANIMATION_ELEMENTS = frozenset({"animate", "animatemotion", "animatetransform", "set"})

ALLOWED_ATTRIBUTES = frozenset({
    "accent-height", "accumulate", "additive", "alignment-baseline", "ascent",
    "attributename", "attributetype", "azimuth", "basefrequency", "baseline-shift",
    "begin", "bias", "by", "calcmode", "class", "clip", "clippathunits", "clip-path",
    "clip-rule", "color", "color-interpolation", "color-interpolation-filters",
    "color-rendering", "cx", "cy", "d", "diffuseconstant", "direction", "display",
    "divisor", "dominant-baseline", "dur", "dx", "dy", "edgemode", "elevation", "end",
    "exponent", "fill", "fill-opacity", "fill-rule", "filter", "filterunits",
    "flood-color", "flood-opacity", "font-family", "font-size", "font-size-adjust",
    "font-stretch", "font-style", "font-variant", "font-weight", "from", "fr", "fx",
    "fy", "gradienttransform", "gradientunits", "height", "href", "id",
    "image-rendering", "in", "in2", "intercept", "k", "k1", "k2", "k3", "k4",
    "kernelmatrix", "kernelunitlength", "keypoints", "keysplines", "keytimes",
    "lang", "lengthadjust", "letter-spacing", "lighting-color", "limitingconeangle",
    "marker-end", "marker-mid", "marker-start", "markerheight", "markerunits",
    "markerwidth", "mask", "maskcontentunits", "maskunits", "max", "media", "method",
    "min", "mode", "numoctaves", "offset", "opacity", "operator", "order", "orient",
    "overflow", "paint-order", "path", "pathlength", "patterncontentunits",
    "patterntransform", "patternunits", "points", "pointsatx", "pointsaty",
    "pointsatz", "preservealpha", "preserveaspectratio", "primitiveunits", "r",
    "radius", "refx", "refy", "repeatcount", "repeatdur", "restart", "result",
    "role", "rotate", "rx", "ry", "scale", "seed", "shape-rendering", "side",
    "slope", "spacing", "specularconstant", "specularexponent", "spreadmethod",
    "startoffset", "stddeviation", "stitchtiles", "stop-color", "stop-opacity",
    "stroke", "stroke-dasharray", "stroke-dashoffset", "stroke-linecap",
    "stroke-linejoin", "stroke-miterlimit", "stroke-opacity", "stroke-width",
    "style", "surfacescale", "systemlanguage", "tablevalues", "targetx", "targety",
    "text-anchor", "text-decoration", "text-rendering", "textlength", "to",
    "transform", "transform-origin", "type", "values", "vector-effect", "version",
    "viewbox", "visibility", "width", "word-spacing", "writing-mode", "x", "x1",
    "x2", "xchannelselector", "y", "y1", "y2", "ychannelselector", "z",
})

_SVG_ROOT_RE = re.compile(r"<svg[\s>/]", re.IGNORECASE)
_XML_DECL_RE = re.compile(r"^\s*<\?xml\s[^>]*\?>")
_DOCTYPE_RE = re.compile(r"<!DOCTYPE[^\[>]*(?:\[[^\]]*\])?\s*>", re.IGNORECASE)
_SAFE_HREF_RE = re.compile(r"^\s*(?:#|data:image/(?:png|jpe?g|gif|webp|bmp);)", re.IGNORECASE)
_CSS_URL_RE = re.compile(r"""url\s*\(\s*['"]?\s*(?P<target>[^)'"\s]*)""", re.IGNORECASE)
_CONTROL_RE = re.compile(r"[\s\x00-\x1f]+")


def sanitize_svg(raw: str) -> str:
    """Return `raw` reduced to allow-listed SVG markup.

    Non-SVG input is returned unchanged. Markup that is not well-formed XML
    (or declares entities) is rejected and yields an empty string. Never
    raises: on an internal failure the raw text is returned.
    """
    if not _SVG_ROOT_RE.search(raw):
        logger.warning("Content does not appear to be SVG — returned unsanitized")
        return raw

    try:
        text = _DOCTYPE_RE.sub("", _XML_DECL_RE.sub("", raw, count=1))
        try:
            root = SafeElementTree.fromstring(text, forbid_dtd=True)
        except (ElementTree.ParseError, DefusedXmlException) as e:
            logger.warning("SVG rejected — not well-formed XML | %s", str(e)[:200])
            return ""

        removed = _clean_tree(root)
        if removed is None:
            logger.warning("SVG rejected — root element is not <svg>")
            return ""

        cleaned = ElementTree.tostring(root, encoding="unicode")
        if removed:
            logger.info("SVG content was sanitized | removed=%d", removed)
        return cleaned

    except Exception as e:
        logger.error("Error sanitizing SVG content: %s", str(e)[:200])
        return raw


def _clean_tree(root: ElementTree.Element) -> int | None:
    """Filter `root` in place. Returns the number of removed nodes, or None
    when the root itself is not an allowed <svg> element."""
    namespace, local = _split(root.tag)
    if local.lower() != "svg" or namespace not in (None, SVG_NS):
        return None

    uses_xlink = False
    removed = 0
    pending = [root]
    while pending:
        elem = pending.pop()
        _, local = _split(elem.tag)
        elem.tag = local

        attrib = {}
        for key, value in elem.attrib.items():
            name = _attribute_name(key)
            if name is None or _unsafe_attribute(name, value):
                removed += 1
                continue
            uses_xlink = uses_xlink or name.startswith("xlink:")
            attrib[name] = value
        elem.attrib.clear()
        elem.attrib.update(attrib)

        for child in list(elem):
            if not _allowed_element(child):
                _remove(elem, child)
                removed += 1
        pending.extend(elem)

    # Namespaces were folded into plain names; declare them on the root again.
    declarations = {}
    if namespace == SVG_NS:
        declarations["xmlns"] = SVG_NS
    if uses_xlink:
        declarations["xmlns:xlink"] = XLINK_NS
    if declarations:
        attrib = dict(root.attrib)
        root.attrib.clear()
        root.attrib.update(declarations)
        root.attrib.update(attrib)
    return removed


def _split(tag) -> tuple[str | None, str]:
    if not isinstance(tag, str):
        return None, ""
    if tag.startswith("{"):
        namespace, local = tag[1:].split("}", 1)
        return namespace, local
    return None, tag


def _allowed_element(elem: ElementTree.Element) -> bool:
    namespace, local = _split(elem.tag)
    if namespace not in (None, SVG_NS):
        return False
    name = local.lower()
    if name not in ALLOWED_ELEMENTS:
        return False
    if name in ANIMATION_ELEMENTS:
        target = elem.get("attributeName", "").strip().lower().rpartition(":")[2]
        if target in ("href", "style") or target.startswith("on"):
            return False
    return True


def _attribute_name(key: str) -> str | None:
    """Serialized attribute name, or None when it is not allowed."""
    namespace, local = _split(key)
    name = local.lower()
    if namespace == XLINK_NS:
        return "xlink:href" if name == "href" else None
    if namespace == XML_NS:
        return f"xml:{local}" if name in ("space", "lang") else None
    if namespace is not None:
        return None
    if name in ALLOWED_ATTRIBUTES or name.startswith(("data-", "aria-")):
        return local
    return None


def _unsafe_attribute(name: str, value: str) -> bool:
    if name.lower().rpartition(":")[2] == "href" and not _SAFE_HREF_RE.match(value):
        return True

    compact = _CONTROL_RE.sub("", value).lower()
    if "javascript:" in compact or "expression(" in compact or "@import" in compact:
        return True
    # CSS escapes can spell out url( so they are not allowed next to functions.
    if "(" in value and "\\" in value:
        return True
    return any(not m.group("target").startswith("#") for m in _CSS_URL_RE.finditer(value))


def _remove(parent: ElementTree.Element, child: ElementTree.Element) -> None:
    """Detach `child`, keeping the text that followed it."""
    if child.tail:
        index = list(parent).index(child)
        if index > 0:
            previous = parent[index - 1]
            previous.tail = (previous.tail or "") + child.tail
        else:
            parent.text = (parent.text or "") + child.tail
    parent.remove(child)
