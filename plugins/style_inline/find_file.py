"""
Locate the generated stylesheet to inline within a compilation's assets.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union

from plugins.style_inline.config import StyleOptions

logger = logging.getLogger(f"mkdocs.plugins.{__name__}")

# Value of the HTML plugin's `chunks` option meaning "no restriction".
ALL_CHUNKS = "all"


@dataclass(frozen=True)
class Matches:
    """File filter accepting the names `accepts` returns True for."""

    accepts: Callable[[str], bool]


class MatchesNothing:
    """File filter for an empty chunk selection: no file can be selected."""

    def __repr__(self) -> str:
        return "MATCHES_NOTHING"


MATCHES_NOTHING = MatchesNothing()

FileFilter = Union[Matches, MatchesNothing]


def file_matcher(options: StyleOptions) -> Callable[[str], bool]:
    """Return the predicate identifying the stylesheet by name.

    An explicit `css_filename` wins over `css_regexp`.
    """
    if options.css_filename:
        css_filename = options.css_filename
        return lambda filename: filename == css_filename
    css_regexp = options.css_regexp
    return lambda filename: css_regexp.search(filename) is not None


def _entrypoint_chunks(chunk_names: Iterable[str], compilation: Any) -> List[Any]:
    """Collect the chunks of the named entrypoints, skipping unknown names."""
    chunks: List[Any] = []
    for chunk_name in chunk_names:
        entrypoint = compilation.entrypoints.get(chunk_name)
        if entrypoint is None:
            logger.debug("[style_inline] no entrypoint named '%s'", chunk_name)
            continue
        chunks.extend(getattr(entrypoint, "chunks", None) or [])
    return chunks


def chunk_file_filter(
    chunk_names: Iterable[str],
    html_plugin_chunks: Any,
    compilation: Any,
) -> FileFilter:
    """Restrict candidates to files produced by the named chunks.

    When the HTML plugin has its own chunk selection, only chunks present in
    both selections count. Chunks are compared by identity, so chunks taken
    from another compilation never match. Only ``None`` and ``"all"`` leave
    the selection unrestricted; an empty list selects nothing.
    """
    matching_chunks = _entrypoint_chunks(chunk_names, compilation)

    if html_plugin_chunks is not None and html_plugin_chunks != ALL_CHUNKS:
        if isinstance(html_plugin_chunks, str):
            html_plugin_chunks = [html_plugin_chunks]
        selected = {id(chunk) for chunk in _entrypoint_chunks(html_plugin_chunks, compilation)}
        matching_chunks = [chunk for chunk in matching_chunks if id(chunk) in selected]

    if not matching_chunks:
        return MATCHES_NOTHING

    def in_matching_chunks(filename: str) -> bool:
        return any(filename in (getattr(chunk, "files", None) or ()) for chunk in matching_chunks)

    return Matches(in_matching_chunks)


def file_filter(
    options: StyleOptions,
    html_plugin_options: Optional[Mapping[str, Any]],
    compilation: Any,
) -> FileFilter:
    if options.chunks is None:
        return Matches(lambda filename: True)
    html_plugin_chunks = (html_plugin_options or {}).get("chunks")
    return chunk_file_filter(options.chunks, html_plugin_chunks, compilation)


def find_css_file(
    options: StyleOptions,
    html_plugin_options: Optional[Mapping[str, Any]],
    compilation: Any,
) -> Optional[str]:
    """Return the name of the stylesheet asset to inline, or None.

    Assets are scanned in the compilation's insertion order and the first
    name passing both the chunk filter and the matcher wins. Finding nothing
    is not an error: projects without stylesheets are simply left alone.
    """
    candidates = file_filter(options, html_plugin_options, compilation)
    if isinstance(candidates, MatchesNothing):
        logger.debug("[style_inline] chunk selection %s matches no files", options.chunks)
        return None

    matches = file_matcher(options)
    for filename in compilation.assets:
        if candidates.accepts(filename) and matches(filename):
            logger.debug("[style_inline] CSS file in compilation: '%s'", filename)
            return filename

    logger.debug(
        "[style_inline] no CSS file found; available files: '%s'",
        ", ".join(compilation.assets),
    )
    return None
