"""Error classes for the style_inline plugin."""

from mkdocs.exceptions import ConfigurationError, PluginError

# Guidance appended to the error raised for the obsolete configuration shape.
MIGRATION_GUIDE = (
    "pass a dict of options (css_filename, css_regexp, chunks, position, minify) "
    "instead of a loader string; the loader is no longer needed"
)


class StyleInlineConfigError(ConfigurationError):
    """The plugin options could not be validated."""


class LegacyConfigurationError(StyleInlineConfigError):
    """The plugin was configured with the obsolete loader-style shape."""

    def __init__(self, detail: str = "") -> None:
        message = f"[style_inline] legacy configuration detected - {MIGRATION_GUIDE}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class MutationError(PluginError):
    """The HTML payload could not be rewritten."""


class MinificationError(MutationError):
    """The minifier failed or returned unusable output."""


class LifecycleError(PluginError):
    """A lifecycle hook could not be found on the host."""
