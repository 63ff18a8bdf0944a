"""
Bridge between the plugin and the host's build lifecycle.

Hosts expose their events in one of two vocabularies:

- legacy: ``compiler.plugin("compilation", fn)`` and
  ``compilation.plugin("html-plugin-...", fn)``, callbacks taking
  ``(payload, callback)``;
- tap: ``compiler.hooks.compilation.tap(name, fn)`` and hook objects on
  ``compilation.hooks``, or on the HTML plugin's ``get_hooks(compilation)``,
  registered through ``tap_async`` (``(payload, callback)``) or ``tap``
  (``(payload)``).

The vocabulary is detected once per compiler. Every callback handed to the
host is wrapped so a failure ends up on the host continuation or on the
compilation's error list, never unhandled.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

from plugins.style_inline.errors import LifecycleError

logger = logging.getLogger(f"mkdocs.plugins.{__name__}")

PLUGIN_NAME = "StyleInlinePlugin"


class Stage(Enum):
    BEFORE_HTML = "before_html"
    ALTER_TAGS = "alter_tags"
    AFTER_HTML = "after_html"
    EMIT = "emit"


# Event names per vocabulary for the HTML stages. EMIT is a compiler event.
LEGACY_EVENTS: Dict[Stage, str] = {
    Stage.BEFORE_HTML: "html-plugin-before-html-processing",
    Stage.ALTER_TAGS: "html-plugin-alter-asset-tags",
    Stage.AFTER_HTML: "html-plugin-after-html-processing",
}

TAP_EVENTS: Dict[Stage, str] = {
    Stage.BEFORE_HTML: "html_plugin_before_html_processing",
    Stage.ALTER_TAGS: "html_plugin_alter_asset_tags",
    Stage.AFTER_HTML: "html_plugin_after_html_processing",
}

# Names used by HTML plugins that keep their hooks to themselves.
HTML_PLUGIN_HOOKS: Dict[Stage, str] = {
    Stage.BEFORE_HTML: "before_asset_tag_generation",
    Stage.ALTER_TAGS: "alter_asset_tag_groups",
    Stage.AFTER_HTML: "before_emit",
}

Callback = Callable[[Any], Any]


def guard(stage: Stage, fn: Callback, compilation: Any = None) -> Callable:
    """Wrap `fn` so it can be handed to either vocabulary.

    The wrapper accepts an optional host continuation. Failures go to the
    continuation when there is one and to ``compilation.errors`` otherwise.
    Without an explicit `compilation` the payload itself is the compilation
    (the emit event).
    """

    def wrapped(payload: Any, callback: Optional[Callable] = None, *args: Any) -> Any:
        try:
            fn(payload)
        except Exception as e:
            logger.error("[style_inline] %s failed: %s", stage.value, e)
            if callback is not None:
                callback(e)
            else:
                target = compilation if compilation is not None else payload
                target.errors.append(e)
            return payload
        if callback is not None:
            callback(None, payload)
        return payload

    return wrapped


def _lookup(hooks: Any, name: str) -> Any:
    if hooks is None:
        return None
    if isinstance(hooks, Mapping):
        return hooks.get(name)
    return getattr(hooks, name, None)


def _tap(hook: Any, fn: Callable) -> None:
    if hasattr(hook, "tap_async"):
        hook.tap_async(PLUGIN_NAME, fn)
    else:
        hook.tap(PLUGIN_NAME, fn)


class LegacyVocabulary:
    name = "legacy"

    def on_compilation(self, compiler: Any, fn: Callback) -> None:
        compiler.plugin("compilation", lambda compilation, *args: fn(compilation))

    def on_emit(self, compiler: Any, fn: Callable) -> None:
        compiler.plugin("emit", fn)

    def on_stage(self, compilation: Any, stage: Stage, fn: Callable) -> None:
        compilation.plugin(LEGACY_EVENTS[stage], fn)


class TapVocabulary:
    name = "tap"

    def __init__(self, html_plugin: Any = None):
        self.html_plugin = html_plugin

    def on_compilation(self, compiler: Any, fn: Callback) -> None:
        compiler.hooks.compilation.tap(PLUGIN_NAME, lambda compilation, *args: fn(compilation))

    def on_emit(self, compiler: Any, fn: Callable) -> None:
        _tap(compiler.hooks.emit, fn)

    def on_stage(self, compilation: Any, stage: Stage, fn: Callable) -> None:
        hook = _lookup(getattr(compilation, "hooks", None), TAP_EVENTS[stage])
        if hook is None and self.html_plugin is not None:
            try:
                html_hooks = self.html_plugin.get_hooks(compilation)
            except Exception as e:
                raise LifecycleError(
                    f"[style_inline] could not read the HTML plugin's hooks: {e}"
                ) from e
            hook = _lookup(html_hooks, HTML_PLUGIN_HOOKS[stage])
        if hook is None:
            raise LifecycleError(
                f"[style_inline] no '{TAP_EVENTS[stage]}' hook on the compilation; "
                "is the HTML plugin registered?"
            )
        _tap(hook, fn)


def detect_vocabulary(compiler: Any, html_plugin: Any = None):
    if getattr(compiler, "hooks", None) is not None:
        return TapVocabulary(html_plugin)
    return LegacyVocabulary()


class LifecycleAdapter:
    """Register stage callbacks on a compiler in whatever vocabulary it speaks."""

    def __init__(self, compiler: Any, html_plugin: Any = None):
        self.compiler = compiler
        self.vocabulary = detect_vocabulary(compiler, html_plugin)
        logger.debug("[style_inline] host uses the %s hook vocabulary", self.vocabulary.name)

    def on_compilation(self, fn: Callback) -> None:
        self.vocabulary.on_compilation(self.compiler, fn)

    def on_emit(self, fn: Callback) -> None:
        self.vocabulary.on_emit(self.compiler, guard(Stage.EMIT, fn))

    def wire(self, stage: Stage, compilation: Any, fn: Callback) -> bool:
        """Register `fn` for `stage` of `compilation`.

        A missing hook is recorded on the compilation and False returned.
        """
        if stage is Stage.EMIT:
            raise ValueError("emit is registered on the compiler, use on_emit()")
        try:
            self.vocabulary.on_stage(compilation, stage, guard(stage, fn, compilation))
        except LifecycleError as e:
            logger.error("%s", e)
            compilation.errors.append(e)
            return False
        return True
