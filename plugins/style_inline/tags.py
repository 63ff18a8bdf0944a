"""
Rewrite HTML plugin payloads so a stylesheet is embedded in a <style> block.

Two modes exist. Replace mode swaps the stylesheet's <link> tag for a <style>
tag in the HTML plugin's tag groups. Insert mode adds a new <style> block at
one edge of head or body, either in the rendered HTML or in the tag groups.
"""

import logging
import re
from dataclasses import dataclass, field
from html import escape
from typing import Any, Dict, List, MutableMapping, Optional, Tuple
from urllib.parse import urlsplit

from plugins.style_inline.errors import MutationError
from plugins.style_inline.minifier import CssMinifier

logger = logging.getLogger(f"mkdocs.plugins.{__name__}")

# Anchors for insertion into rendered HTML. Opening tags use the first match,
# closing tags the last one.
HEAD_OPEN_RE = re.compile(r"<head\b[^>]*>", re.IGNORECASE)
HEAD_CLOSE_RE = re.compile(r"</head\s*>", re.IGNORECASE)
BODY_OPEN_RE = re.compile(r"<body\b[^>]*>", re.IGNORECASE)
BODY_CLOSE_RE = re.compile(r"</body\s*>", re.IGNORECASE)


@dataclass
class HtmlTag:
    """One element as handed around by the HTML plugin before rendering."""

    tag_name: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    inner_html: Optional[str] = None
    void_tag: bool = False


def render_tag(tag: HtmlTag) -> str:
    attrs = ""
    for name, value in tag.attributes.items():
        if value is False or value is None:
            continue
        if value is True:
            attrs += f" {name}"
        else:
            attrs += f' {name}="{escape(str(value), quote=True)}"'
    if tag.void_tag:
        return f"<{tag.tag_name}{attrs}>"
    return f"<{tag.tag_name}{attrs}>{tag.inner_html or ''}</{tag.tag_name}>"


def create_style_tag(css: str) -> HtmlTag:
    return HtmlTag(tag_name="style", inner_html=css)


# -------------------------------
# Payload access
# -------------------------------

def payload_field(payload: Any, name: str) -> Any:
    if isinstance(payload, MutableMapping):
        return payload.get(name)
    return getattr(payload, name, None)


def set_payload_field(payload: Any, name: str, value: Any) -> None:
    if isinstance(payload, MutableMapping):
        payload[name] = value
    else:
        setattr(payload, name, value)


def tag_groups(payload: Any) -> Optional[Tuple[List[Any], List[Any]]]:
    """Return the (head, body) tag lists of a payload, or None.

    Current HTML plugins name them `head_tags`/`body_tags`, older ones
    `head`/`body`.
    """
    for head_name, body_name in (("head_tags", "body_tags"), ("head", "body")):
        head = payload_field(payload, head_name)
        body = payload_field(payload, body_name)
        if isinstance(head, list) and isinstance(body, list):
            return head, body
    return None


# -------------------------------
# Content
# -------------------------------

def asset_source(compilation: Any, filename: str) -> str:
    """Read an asset's text from the compilation's in-memory store."""
    try:
        asset = compilation.assets[filename]
    except KeyError as e:
        raise MutationError(f"[style_inline] asset '{filename}' is no longer in the compilation") from e

    if hasattr(asset, "source"):
        asset = asset.source()
    if isinstance(asset, bytes):
        asset = asset.decode("utf8")
    if not isinstance(asset, str):
        raise MutationError(
            f"[style_inline] cannot read asset '{filename}' of type {type(asset).__name__}"
        )
    return asset


def style_content(css_filename: str, compilation: Any, minifier: Optional[CssMinifier]) -> str:
    css = asset_source(compilation, css_filename)
    if minifier:
        css = minifier.minify(css)
    return css


# -------------------------------
# Replace mode
# -------------------------------

def is_css_link_tag(tag: Any, css_filename: str) -> bool:
    """True if `tag` is a <link> whose href points at `css_filename`.

    The href may carry a public path prefix and a query string or fragment.
    """
    try:
        tag_name = tag.tag_name
        attributes = tag.attributes
    except AttributeError as e:
        raise MutationError(f"[style_inline] malformed tag in HTML plugin payload: {tag!r}") from e

    if tag_name != "link" or not attributes:
        return False
    href = attributes.get("href")
    if not isinstance(href, str):
        return False
    path = urlsplit(href).path
    return path == css_filename or path.endswith("/" + css_filename)


def replace_link_tag_with_style_tag(
    css_filename: str,
    payload: Any,
    compilation: Any,
    minifier: Optional[CssMinifier] = None,
) -> bool:
    """Swap the link tag referencing `css_filename` for an inline style tag.

    Returns True if a tag was replaced. A stylesheet emitted without a link
    tag leaves the payload untouched.
    """
    groups = tag_groups(payload)
    if groups is None:
        raise MutationError("[style_inline] HTML plugin payload carries no head/body tag lists")

    for tags in groups:
        for index, tag in enumerate(tags):
            if is_css_link_tag(tag, css_filename):
                tags[index] = create_style_tag(style_content(css_filename, compilation, minifier))
                logger.debug("[style_inline] replaced link to '%s' with style tag", css_filename)
                return True

    logger.debug("[style_inline] no link tag references '%s'", css_filename)
    return False


# -------------------------------
# Insert mode
# -------------------------------

def _insert_into_html(html: str, position: str, style_html: str) -> str:
    if position == "head-top":
        m = HEAD_OPEN_RE.search(html)
        return html[:m.end()] + style_html + html[m.end():] if m else style_html + html
    if position == "body-top":
        m = BODY_OPEN_RE.search(html)
        return html[:m.end()] + style_html + html[m.end():] if m else style_html + html

    closing_re = HEAD_CLOSE_RE if position == "head-bottom" else BODY_CLOSE_RE
    matches = list(closing_re.finditer(html))
    if matches:
        pos = matches[-1].start()
        return html[:pos] + style_html + html[pos:]
    # No closing tag: head content goes first, body content last.
    return style_html + html if position == "head-bottom" else html + style_html


def insert_style_tag_in_html(
    css_filename: str,
    position: str,
    payload: Any,
    compilation: Any,
    minifier: Optional[CssMinifier] = None,
) -> None:
    """Add a style block with the stylesheet's content at `position`.

    Link tags to the same file are left alone; the stylesheet itself is
    removed from the output later, at emit.
    """
    if position not in ("head-top", "head-bottom", "body-top", "body-bottom"):
        raise MutationError(f"[style_inline] cannot insert a style tag at position '{position}'")

    groups = tag_groups(payload)
    html = payload_field(payload, "html")
    if groups is None and not isinstance(html, str):
        raise MutationError("[style_inline] HTML plugin payload carries neither tag lists nor html")

    style_tag = create_style_tag(style_content(css_filename, compilation, minifier))

    # Rendered HTML, when present, is what gets emitted; tag lists are only
    # used by hosts that render after this stage.
    if isinstance(html, str):
        set_payload_field(payload, "html", _insert_into_html(html, position, render_tag(style_tag)))
    else:
        head, body = groups
        tags = head if position.startswith("head") else body
        if position.endswith("top"):
            tags.insert(0, style_tag)
        else:
            tags.append(style_tag)
    logger.debug("[style_inline] inserted style tag for '%s' at %s", css_filename, position)
