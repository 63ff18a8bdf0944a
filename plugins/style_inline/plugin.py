"""
A bundler plugin that inlines the generated stylesheet into the HTML page
produced by the HTML plugin and drops the stylesheet from the emitted assets.
"""

import logging
from typing import Any, Mapping, Optional

from mkdocs.plugins import BasePlugin

from plugins.style_inline import config as options_config
from plugins.style_inline.config import StyleOptions
from plugins.style_inline.errors import LegacyConfigurationError
from plugins.style_inline.find_file import find_css_file
from plugins.style_inline.ledger import DeletionLedger
from plugins.style_inline.lifecycle import LifecycleAdapter, Stage
from plugins.style_inline.minifier import CssMinifier
from plugins.style_inline.tags import (
    insert_style_tag_in_html,
    payload_field,
    replace_link_tag_with_style_tag,
)

logger = logging.getLogger(f"mkdocs.plugins.{__name__}")


class CompilationState:
    """What one compilation learned at `before_html`, shared by later stages."""

    def __init__(self, minifier: Optional[CssMinifier] = None):
        self.css_filename: Optional[str] = None
        self.resolved = False
        self.minifier = minifier


class StyleInlinePlugin(BasePlugin):
    """Embed the generated CSS file in the HTML page instead of linking it.

    Configuration options (all optional):
    - enabled (bool): Set to False to register nothing at all.
    - css_filename (str): Exact name of the asset to inline; wins over `css_regexp`.
    - css_regexp (str|Pattern): Pattern identifying the asset, default `\\.css$`.
    - chunks (list): Only consider files produced by these entrypoints' chunks.
    - position (str): `plugin` replaces the HTML plugin's link tag in place;
      `head-top`, `head-bottom`, `body-top` and `body-bottom` insert a new block.
    - minify (bool|dict): Minify with csscompressor; a dict is passed as its options.
    - debug (bool): Log every lifecycle step (shown with `--verbose`).
    """

    config_scheme = options_config.config_scheme

    def __init__(self, options: Any = None, html_plugin: Any = None):
        super().__init__()
        errors, warnings = self.load_config(options_config.coerce_options(options))
        self.options: StyleOptions = options_config.build_options(self.config, errors, warnings)
        self.html_plugin = html_plugin
        self.files_to_delete = DeletionLedger()
        self._dbg("constructor: %s", self.options)

    @staticmethod
    def inline(*loaders: Any) -> None:
        """Guard against the pre-v3 loader configuration."""
        raise LegacyConfigurationError("inline() loaders are no longer supported")

    # -------------------------------
    # Helpers
    # -------------------------------

    def _dbg(self, msg: str, *args) -> None:
        """Debug log gated by plugin config."""
        if not self.options.debug:
            return
        logger.debug("[style_inline] " + msg, *args)

    # -------------------------------
    # Host wiring
    # -------------------------------

    def apply(self, compiler: Any) -> None:
        if not self.options.enabled:
            return

        lifecycle = LifecycleAdapter(compiler, self.html_plugin)
        lifecycle.on_compilation(lambda compilation: self.on_compilation(lifecycle, compilation))
        lifecycle.on_emit(self.on_emit)

    def on_compilation(self, lifecycle: LifecycleAdapter, compilation: Any) -> CompilationState:
        """Register the HTML stages for one compilation with fresh state."""
        minifier = CssMinifier(self.options.minify) if self.options.minify is not None else None
        state = CompilationState(minifier)

        lifecycle.wire(Stage.BEFORE_HTML, compilation, lambda payload: self.on_before_html(state, payload, compilation))
        if self.options.position == "plugin":
            lifecycle.wire(Stage.ALTER_TAGS, compilation, lambda payload: self.on_alter_tags(state, payload, compilation))
        else:
            lifecycle.wire(Stage.AFTER_HTML, compilation, lambda payload: self.on_after_html(state, payload, compilation))
        return state

    # -------------------------------
    # Stages
    # -------------------------------

    def on_before_html(self, state: CompilationState, payload: Any, compilation: Any) -> None:
        if state.resolved:
            return
        html_plugin_options = getattr(payload_field(payload, "plugin"), "options", None) or {}
        if not isinstance(html_plugin_options, Mapping):
            html_plugin_options = {"chunks": getattr(html_plugin_options, "chunks", None)}
        state.css_filename = find_css_file(self.options, html_plugin_options, compilation)
        state.resolved = True
        self._dbg("before_html: resolved %s", state.css_filename)
        if state.css_filename:
            self.files_to_delete.mark(state.css_filename, compilation)

    def on_alter_tags(self, state: CompilationState, payload: Any, compilation: Any) -> None:
        if state.css_filename:
            replaced = replace_link_tag_with_style_tag(state.css_filename, payload, compilation, state.minifier)
            self._dbg("alter_tags: replaced=%s", replaced)

    def on_after_html(self, state: CompilationState, payload: Any, compilation: Any) -> None:
        if state.css_filename:
            insert_style_tag_in_html(state.css_filename, self.options.position, payload, compilation, state.minifier)
            self._dbg("after_html: inserted at %s", self.options.position)

    def on_emit(self, compilation: Any) -> None:
        removed = self.files_to_delete.flush(compilation)
        self._dbg("emit: removed %s", removed)
