"""
End-to-end tests driving the plugin through a fake bundler build.
"""

from types import SimpleNamespace

import csscompressor
import pytest
from fake_host import (
    Chunk,
    FakeHtmlPlugin,
    LegacyCompilation,
    LegacyCompiler,
    TapCompilation,
    TapCompiler,
    entrypoints_for,
    link_tag,
    render_page,
    run_build,
    script_tag,
)

from plugins.style_inline.errors import MinificationError
from plugins.style_inline.lifecycle import TAP_EVENTS, Stage
from plugins.style_inline.plugin import StyleInlinePlugin

CSS = "body{background:snow}"

HOSTS = {
    "tap": (TapCompiler, TapCompilation),
    "legacy": (LegacyCompiler, LegacyCompilation),
}


def build(options=None, assets=None, head=None, body=None, host="tap", html_plugin=None, entrypoints=None):
    compiler_cls, compilation_cls = HOSTS[host]
    compiler = compiler_cls()
    plugin = StyleInlinePlugin(options)
    plugin.apply(compiler)
    compilation = compilation_cls(assets if assets is not None else {"index.css": CSS, "main.js": "x()"}, entrypoints)
    result = run_build(
        compiler,
        compilation,
        html_plugin,
        head if head is not None else [link_tag("index.css")],
        body if body is not None else [script_tag("main.js")],
    )
    return plugin, compilation, result


@pytest.mark.parametrize("host", sorted(HOSTS))
class TestStyleInlinePlugin:
    """Test for the whole pipeline in both hook vocabularies."""

    def test_inlines_single_stylesheet(self, host):
        """Test: The stylesheet is inlined and dropped from the assets."""
        _plugin, compilation, result = build(host=host)

        assert f"<style>{CSS}</style>" in result.html
        assert "index.css" not in result.html
        assert list(compilation.assets) == ["main.js"]
        assert compilation.errors == [] and result.callback_errors == []

    def test_link_replaced_by_exactly_one_style_tag(self, host):
        """Test: Replace mode leaves no link and one style tag."""
        _plugin, _compilation, result = build(host=host)
        tags = result.head + result.body
        assert [t.tag_name for t in tags].count("style") == 1
        assert not any(t.tag_name == "link" for t in tags)

    def test_no_stylesheet_no_change(self, host):
        """Test: Builds without CSS are left untouched and error free."""
        _plugin, compilation, result = build(host=host, assets={"main.js": "x()"}, head=[])

        assert result.html == render_page([], [script_tag("main.js")])
        assert list(compilation.assets) == ["main.js"]
        assert compilation.errors == [] and result.callback_errors == []

    def test_insert_mode_keeps_link_and_removes_asset(self, host):
        """Test: Insert mode adds a block; the asset still goes at emit."""
        _plugin, compilation, result = build({"position": "head-bottom"}, host=host)

        assert f'<link href="index.css" rel="stylesheet"><style>{CSS}</style></head>' in result.html
        assert "index.css" not in compilation.assets
        assert compilation.errors == [] and result.callback_errors == []

    def test_body_bottom(self, host):
        """Test: The block can be placed at the end of body."""
        _plugin, _compilation, result = build({"position": "body-bottom"}, host=host)
        assert result.html.endswith(f"<style>{CSS}</style></body></html>")

    def test_minified(self, host):
        """Test: With `minify` the embedded text is the minifier's output."""
        raw = "body {\n  background: snow;\n  color: grey;\n}\n"
        _plugin, _compilation, result = build({"minify": True}, assets={"index.css": raw}, host=host)
        assert f"<style>{csscompressor.compress(raw)}</style>" in result.html
        assert raw not in result.html

    def test_chunk_outside_selection_not_inlined(self, host):
        """Test: A vendor-only stylesheet is ignored with `chunks: [main]`."""
        main = Chunk("main", ["main.js"])
        vendor = Chunk("vendor", ["vendor.js", "vendor.css"])
        _plugin, compilation, result = build(
            {"chunks": ["main"]},
            assets={"main.js": "", "vendor.js": "", "vendor.css": CSS},
            head=[link_tag("vendor.css")],
            entrypoints=entrypoints_for(main, vendor),
            host=host,
        )
        assert "<style>" not in result.html
        assert "vendor.css" in compilation.assets
        assert compilation.errors == []

    def test_html_plugin_chunk_selection_respected(self, host):
        """Test: The HTML plugin's own chunk list narrows the selection."""
        main = Chunk("main", ["main.css"])
        admin = Chunk("admin", ["admin.css"])
        _plugin, compilation, result = build(
            {"chunks": ["main", "admin"]},
            assets={"admin.css": "a{}", "main.css": "m{}"},
            head=[link_tag("main.css")],
            html_plugin=FakeHtmlPlugin(chunks=["main"]),
            entrypoints=entrypoints_for(main, admin),
            host=host,
        )
        assert "<style>m{}</style>" in result.html
        assert list(compilation.assets) == ["admin.css"]

    def test_minifier_failure_recorded_and_build_continues(self, host):
        """Test: A mutation failure is reported and emit still runs."""
        _plugin, compilation, result = build({"minify": {"no_such_option": 1}}, host=host)

        errors = result.callback_errors + compilation.errors
        assert len(errors) == 1
        assert isinstance(errors[0], MinificationError)
        assert "index.css" not in compilation.assets

    def test_ledger_empty_after_build(self, host):
        """Test: Nothing stays marked once the build emitted."""
        plugin, _compilation, _result = build(host=host)
        assert len(plugin.files_to_delete) == 0


class TestWiring:
    """Test for what the plugin registers on the host."""

    def test_disabled_registers_nothing_tap(self):
        """Test: A disabled plugin does not touch the compiler."""
        compiler = TapCompiler()
        StyleInlinePlugin({"enabled": False}).apply(compiler)
        assert compiler.hooks.compilation.taps == []
        assert compiler.hooks.emit.taps == []

    def test_disabled_registers_nothing_legacy(self):
        """Test: A disabled plugin adds no legacy handlers."""
        compiler = LegacyCompiler()
        StyleInlinePlugin(False).apply(compiler)
        assert dict(compiler.handlers) == {}

    def test_disabled_build_leaves_assets(self):
        """Test: A build with a disabled plugin keeps the link and the asset."""
        _plugin, compilation, result = build({"enabled": False})
        assert "<style>" not in result.html
        assert "index.css" in compilation.assets

    def test_replace_mode_skips_after_html(self):
        """Test: Only the stage of the configured mode is registered."""
        compiler = TapCompiler()
        StyleInlinePlugin().apply(compiler)
        compilation = TapCompilation({})
        compiler.start(compilation)
        assert compilation.hooks[TAP_EVENTS[Stage.ALTER_TAGS]].taps
        assert not compilation.hooks[TAP_EVENTS[Stage.AFTER_HTML]].taps

    def test_insert_mode_skips_alter_tags(self):
        """Test: Insert positions hook the rendered HTML stage only."""
        compiler = TapCompiler()
        StyleInlinePlugin({"position": "body-top"}).apply(compiler)
        compilation = TapCompilation({})
        compiler.start(compilation)
        assert not compilation.hooks[TAP_EVENTS[Stage.ALTER_TAGS]].taps
        assert compilation.hooks[TAP_EVENTS[Stage.AFTER_HTML]].taps

    def test_html_plugin_owned_hooks(self):
        """Test: Hooks provided by the HTML plugin drive the same pipeline."""
        html_plugin = FakeHtmlPlugin()
        compiler = TapCompiler()
        StyleInlinePlugin(html_plugin=html_plugin).apply(compiler)
        compilation = TapCompilation({"index.css": CSS}, html_hooks=False)

        result = run_build(compiler, compilation, html_plugin, [link_tag("index.css")], [])
        assert f"<style>{CSS}</style>" in result.html
        assert compilation.assets == {}
        assert compilation.errors == []

    def test_missing_html_plugin_reported(self):
        """Test: Without any HTML hook the compilation gets an error, not a crash."""
        compiler = TapCompiler()
        StyleInlinePlugin().apply(compiler)
        compilation = TapCompilation({"index.css": CSS}, html_hooks=False)
        compiler.start(compilation)
        compiler.emit(compilation)
        assert len(compilation.errors) == 2
        assert "index.css" in compilation.assets


class TestCompilationScope:
    """Test for per-compilation state across rebuilds."""

    def test_watch_rebuilds_resolve_independently(self):
        """Test: Each compilation of one plugin instance resolves its own file."""
        compiler = TapCompiler()
        plugin = StyleInlinePlugin()
        plugin.apply(compiler)

        first = TapCompilation({"a.css": "a{}"})
        first_result = run_build(compiler, first, None, [link_tag("a.css")], [])
        second = TapCompilation({"b.css": "b{}"})
        second_result = run_build(compiler, second, None, [link_tag("b.css")], [])

        assert "<style>a{}</style>" in first_result.html
        assert "<style>b{}</style>" in second_result.html
        assert first.assets == {} and second.assets == {}
        assert first.errors == [] and second.errors == []

    def test_before_html_resolves_once(self):
        """Test: A repeated before_html keeps the first resolution."""
        compiler = TapCompiler()
        plugin = StyleInlinePlugin()
        plugin.apply(compiler)
        compilation = TapCompilation({"a.css": "a{}"})
        compiler.start(compilation)

        hook = compilation.hooks[TAP_EVENTS[Stage.BEFORE_HTML]]
        hook.call(SimpleNamespace(plugin=FakeHtmlPlugin()))
        compilation.assets = {"b.css": "b{}", **compilation.assets}
        hook.call(SimpleNamespace(plugin=FakeHtmlPlugin()))

        assert plugin.files_to_delete.marked(compilation) == {"a.css"}

    def test_interleaved_compilations_each_drop_their_stylesheet(self):
        """Test: Two builds sharing an instance each lose their own CSS at emit."""
        compiler = TapCompiler()
        plugin = StyleInlinePlugin()
        plugin.apply(compiler)
        first = TapCompilation({"a.css": "a{}"})
        second = TapCompilation({"b.css": "b{}"})
        compiler.start(first)
        compiler.start(second)

        html_plugin = FakeHtmlPlugin()
        first.fire(Stage.BEFORE_HTML, SimpleNamespace(plugin=html_plugin), html_plugin)
        second.fire(Stage.BEFORE_HTML, SimpleNamespace(plugin=html_plugin), html_plugin)

        assert compiler.emit(first) == []
        assert plugin.files_to_delete.marked(second) == {"b.css"}
        assert compiler.emit(second) == []

        assert first.assets == {} and second.assets == {}
        assert first.errors == [] and second.errors == []
        assert len(plugin.files_to_delete) == 0
