"""
CSS minification for inlined stylesheets, backed by `csscompressor`.
"""

import logging
from typing import Any, Dict, Optional

import csscompressor
from packaging import version

from plugins.style_inline.errors import MinificationError

logger = logging.getLogger(f"mkdocs.plugins.{__name__}")

# Compatibility: csscompressor<=0.9.5. Preserve whitespace in url() to avoid breaking SVG data URIs.
if version.parse(csscompressor.__version__) <= version.parse("0.9.5"):
    # See https://github.com/sprymix/csscompressor/issues/9#issuecomment-1024417374
    _preserve_call_tokens_original = csscompressor._preserve_call_tokens
    _url_re = csscompressor._url_re

    def _preserve_url_whitespace(*args, **kwargs):
        """Keep whitespace inside url(...) tokens; other call tokens are untouched."""
        if _url_re == args[1]:
            kwargs["remove_ws"] = False
        return _preserve_call_tokens_original(*args, **kwargs)

    csscompressor._preserve_call_tokens = _preserve_url_whitespace


class CssMinifier:
    """Minify stylesheet text with a fixed set of csscompressor options.

    The options mapping is forwarded verbatim as keyword arguments to
    `csscompressor.compress` (e.g. ``max_linelen`` or
    ``preserve_exclamation_comments``).
    """

    def __init__(self, options: Optional[Dict[str, Any]] = None):
        self.options: Dict[str, Any] = dict(options or {})

    def minify(self, css: str) -> str:
        try:
            minified = csscompressor.compress(css, **self.options)
        except Exception as e:
            raise MinificationError(f"[style_inline] CSS minification failed: {e}") from e

        if not minified and css.strip():
            raise MinificationError("[style_inline] CSS minification produced no output")
        logger.debug("[style_inline] minified CSS %d -> %d chars", len(css), len(minified))
        return minified
