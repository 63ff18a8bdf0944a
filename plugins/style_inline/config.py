"""
Option handling for the style_inline plugin: the MkDocs config schema and its
normalisation into an immutable `StyleOptions` record.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from mkdocs.config import config_options as c

from plugins.style_inline.errors import LegacyConfigurationError, StyleInlineConfigError

logger = logging.getLogger(f"mkdocs.plugins.{__name__}")

# Accepted values for `position`. `plugin` swaps the stylesheet link emitted by
# the HTML plugin for a <style> block in place; the others insert a new block.
POSITIONS: Tuple[str, ...] = (
    "plugin",
    "head-top",
    "head-bottom",
    "body-top",
    "body-bottom",
)

DEFAULT_POSITION = "plugin"

CSS_REGEXP = re.compile(r"\.css$")

config_scheme = (
    ('enabled',      c.Type(bool, default=True)),
    ('css_filename', c.Type(str)),
    ('css_regexp',   c.Type((str, re.Pattern))),
    ('chunks',       c.Type((list, tuple))),
    ('position',     c.Choice(POSITIONS, default=DEFAULT_POSITION)),
    ('minify',       c.Type((bool, dict), default=False)),
    ('debug',        c.Type(bool, default=False)),
)


@dataclass(frozen=True)
class StyleOptions:
    """Validated plugin options with defaults applied."""

    enabled: bool = True
    css_filename: Optional[str] = None
    css_regexp: re.Pattern = CSS_REGEXP
    chunks: Optional[Tuple[str, ...]] = None
    position: str = DEFAULT_POSITION
    # None disables minification; a dict is passed to csscompressor as kwargs.
    minify: Optional[Dict[str, Any]] = None
    debug: bool = False


def coerce_options(options: Any) -> Dict[str, Any]:
    """Turn the accepted option shorthands into a plain dict.

    ``None`` means defaults and a bool toggles ``enabled``. A string is the
    loader argument of the obsolete configuration and is rejected outright.
    """
    if options is None:
        return {}
    if isinstance(options, bool):
        return {"enabled": options}
    if isinstance(options, str):
        raise LegacyConfigurationError(f"received loader string {options!r}")
    if not isinstance(options, dict):
        raise StyleInlineConfigError(
            f"[style_inline] options must be a dict, got {type(options).__name__}"
        )
    return dict(options)


def build_options(config: Any, errors: List, warnings: List) -> StyleOptions:
    """Build a `StyleOptions` from a validated MkDocs config.

    `errors` and `warnings` are the lists returned by `BasePlugin.load_config`.
    Any error is raised immediately so misconfiguration surfaces before a build.
    """
    for key, warning in warnings:
        logger.warning("[style_inline] option '%s': %s", key, warning)

    if errors:
        details = "; ".join(f"'{key}': {error}" for key, error in errors)
        raise StyleInlineConfigError(f"[style_inline] invalid options: {details}")

    css_regexp = config.get("css_regexp")
    if css_regexp is None:
        css_regexp = CSS_REGEXP
    elif isinstance(css_regexp, str):
        try:
            css_regexp = re.compile(css_regexp)
        except re.error as e:
            raise StyleInlineConfigError(
                f"[style_inline] invalid options: 'css_regexp': {e}"
            ) from e

    chunks = config.get("chunks")
    if chunks is not None:
        bad = [chunk for chunk in chunks if not isinstance(chunk, str)]
        if bad:
            raise StyleInlineConfigError(
                f"[style_inline] invalid options: 'chunks' must contain chunk names, got {bad!r}"
            )
        chunks = tuple(chunks)

    minify = config.get("minify")
    if minify is True:
        minify = {}
    elif minify is False:
        minify = None
    else:
        minify = dict(minify)

    return StyleOptions(
        enabled=config.get("enabled", True),
        css_filename=config.get("css_filename") or None,
        css_regexp=css_regexp,
        chunks=chunks,
        position=config.get("position") or DEFAULT_POSITION,
        minify=minify,
        debug=bool(config.get("debug", False)),
    )
