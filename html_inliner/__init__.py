from .fetcher import logger, ResourceFetcher, FetchResult, FetchStatus, FetchError, resolve_locator
from .encoder import Encoder, MediaFamily, guess_mime_type, to_data_uri
from .css import CssResourceResolver, CssReplacement
from .rewriter import TagRewriter, ResourceKind, ResourceReference, CATEGORIES, FONT_CDN_HOSTS, parse_ignore
from .pipeline import inline_chunks, inline_stream, inline_file, inline_content, PipelineError, DEFAULT_CHUNK_SIZE
from .config import get_config, find_config_file, ConfigError, CONFIG_FILE
from .html_inliner import main
from .version import __version__

__all__ = ['logger', 'ResourceFetcher', 'FetchResult', 'FetchStatus', 'FetchError', 'resolve_locator',
        'Encoder', 'MediaFamily', 'guess_mime_type', 'to_data_uri', 'CssResourceResolver', 'CssReplacement',
        'TagRewriter', 'ResourceKind', 'ResourceReference', 'CATEGORIES', 'FONT_CDN_HOSTS', 'parse_ignore',
        'inline_chunks', 'inline_stream', 'inline_file', 'inline_content', 'PipelineError', 'DEFAULT_CHUNK_SIZE',
        'get_config', 'find_config_file', 'ConfigError', 'CONFIG_FILE', 'main', '__version__']
