import re
import html
from collections import namedtuple
from enum import Enum
from urllib.parse import urlparse
from .fetcher import logger, is_skipped, is_remote, resolve_locator, ResourceFetcher
from .encoder import Encoder, MediaFamily
from .css import CssResourceResolver

CATEGORIES = ('stylesheets', 'scripts', 'images', 'videos', 'fonts')
FONT_CDN_HOSTS = ('fonts.googleapis.com', 'fonts.gstatic.com')


def parse_ignore(names):
    '''IgnoreSet from category names, raises ValueError on an unknown one.'''
    if isinstance(names, str):
        names = [names]
    ignore = frozenset(names or ())
    unknown = ignore - set(CATEGORIES)
    if unknown:
        raise ValueError('Unknown resource categories %s, expected some of %s.' % (
            ', '.join(sorted(unknown)), ', '.join(CATEGORIES)))
    return ignore


class ResourceKind(Enum):
    # value: (group name, category, attribute rewritten, family of the data URI)
    inline_style = ('style', 'stylesheets', None, None)
    image_src = ('img', 'images', 'src', MediaFamily.image)
    svg_image_href = ('image', 'images', 'href', MediaFamily.image)
    video_poster = ('video', 'images', 'poster', MediaFamily.image)
    object_data = ('object', 'images', 'data', MediaFamily.image)
    embed_src = ('embed', 'images', 'src', MediaFamily.image)
    video_source = ('source', 'videos', 'src', MediaFamily.video)
    stylesheet_link = ('link', 'stylesheets', 'href', None)
    script_src = ('script', 'scripts', 'src', None)

    @property
    def group(self):
        return self.value[0]

    @property
    def category(self):
        return self.value[1]

    @property
    def attribute(self):
        return self.value[2]

    @property
    def family(self):
        return self.value[3]


TAG_PATTERN = re.compile('|'.join([
    r'(?P<style>(?P<style_open><style(?:\s[^>]*)?>)(?P<style_body>.*?)</style>)',
    r'(?P<img><img\s+(?:[^>]*\s)?src="(?P<img_locator>[^"]+)"[^>]*>)',
    r'(?P<image><image\s+(?:[^>]*\s)?(?:xlink:)?href="(?P<image_locator>[^"]+)"[^>]*>)',
    r'(?P<video><video\s+(?:[^>]*\s)?poster="(?P<video_locator>[^"]+)"[^>]*>)',
    r'(?P<object><object\s+(?:[^>]*\s)?data="(?P<object_locator>[^"]+)"[^>]*>)',
    r'(?P<embed><embed\s+(?:[^>]*\s)?src="(?P<embed_locator>[^"]+)"[^>]*>)',
    r'(?P<source><source\s+(?:[^>]*\s)?src="(?P<source_locator>[^"]+)"[^>]*>)',
    r'(?P<link><link\s+(?:[^>]*\s)?rel="stylesheet"[^>]*>)',
    r'(?P<script><script\s+(?:[^>]*\s)?src="(?P<script_locator>[^"]+)"[^>]*></script>)',
    ]), re.DOTALL)
LINK_HREF_PATTERN = re.compile(r'\shref="(?P<locator>[^"]+)"')

STYLE_OPEN_PATTERN = re.compile(r'<style(?:\s[^>]*)?>')
SCRIPT_OPEN_PATTERN = re.compile(r'<script\s[^>]*>')
SCRIPT_CLOSE = '</script>'

ResourceReference = namedtuple('ResourceReference',
        ['kind', 'locator', 'raw_tag', 'span_start', 'span_end', 'locator_start', 'locator_end'])


def reference_from_match(match):
    for kind in ResourceKind:
        if match.group(kind.group) is None:
            continue
        if kind is ResourceKind.inline_style:
            group = 'style_body'
        elif kind is ResourceKind.stylesheet_link:
            href = LINK_HREF_PATTERN.search(match.group(0))
            if href is None:
                return None
            start = match.start() + href.start('locator')
            return ResourceReference(kind, html.unescape(href.group('locator')), match.group(0),
                    match.start(), match.end(), start, start + len(href.group('locator')))
        else:
            group = '%s_locator' % kind.group
        locator = match.group(group)
        if kind is not ResourceKind.inline_style:
            locator = html.unescape(locator)
        return ResourceReference(kind, locator, match.group(0), match.start(), match.end(),
                match.start(group), match.end(group))
    return None

def pending_start(data):
    '''
    Position from which the end of data may be the beginning of a construct that is
    not complete yet: an unterminated tag, an unclosed <style> block or a <script src>
    still waiting for its </script>. len(data) if there is none.
    '''
    candidates = [len(data)]
    tag_start = data.find('<', data.rfind('>') + 1)
    if tag_start >= 0:
        candidates.append(tag_start)
    style_close = data.rfind('</style>')
    style_open = STYLE_OPEN_PATTERN.search(data, 0 if style_close < 0 else style_close)
    if style_open:
        candidates.append(style_open.start())
    script_start = data.rfind('<script')
    if script_start >= 0:
        script_open = SCRIPT_OPEN_PATTERN.match(data, script_start)
        if script_open and SCRIPT_CLOSE.startswith(data[script_open.end():]):
            candidates.append(script_start)
    return min(candidates)

def is_font_stylesheet(locator):
    return is_remote(locator) and urlparse(resolve_locator(locator)).hostname in FONT_CDN_HOSTS


class TagRewriter:
    '''
    Streaming rewriter of HTML text.

    process() is called with each chunk of the document, in order, and returns the
    rewritten fragments available so far; it must be called a last time with
    final=True (possibly with an empty chunk) to flush what is still buffered.
    Everything that is not an inlined resource is given back unchanged.
    '''
    def __init__(self, ignore=(), fetcher=None, encoder=None, base=None):
        self.ignore = parse_ignore(ignore)
        self.fetcher = fetcher if fetcher is not None else ResourceFetcher()
        self.encoder = encoder if encoder is not None else Encoder(self.fetcher)
        self.css_resolver = CssResourceResolver(self.fetcher, self.encoder, self.ignore)
        self.base = base
        self.buffer = ''

    def process(self, chunk, final=False):
        data = self.buffer + chunk
        self.buffer = ''
        end = len(data) if final else pending_start(data)
        fragments = []
        last_index = 0
        for match in TAG_PATTERN.finditer(data, 0, end):
            reference = reference_from_match(match)
            if reference is None:
                continue
            replacement = self.rewrite(reference)
            if replacement is None:
                continue
            fragments.append(data[last_index:reference.span_start])
            fragments.append(replacement)
            last_index = reference.span_end
        fragments.append(data[last_index:end])
        self.buffer = data[end:]
        return [fragment for fragment in fragments if fragment]

    def finish(self):
        return self.process('', final=True)

    def is_ignored(self, reference):
        if reference.kind is ResourceKind.stylesheet_link and is_font_stylesheet(reference.locator):
            return 'fonts' in self.ignore
        return reference.kind.category in self.ignore

    def rewrite(self, reference):
        '''Inlined replacement of the construct, None to keep it as it is.'''
        if self.is_ignored(reference):
            logger.debug('Ignoring %s %s', reference.kind.name, reference.locator)
            return None
        kind = reference.kind
        if kind is ResourceKind.inline_style:
            return self.rewrite_inline_style(reference)
        if is_skipped(reference.locator):
            return None
        locator = resolve_locator(reference.locator, self.base)
        if kind is ResourceKind.stylesheet_link:
            css = self.fetcher.fetch_text(locator)
            if css is None:
                return None
            return '<style>%s</style>' % self.css_resolver.resolve(css, base=locator, chain=(locator,))
        if kind is ResourceKind.script_src:
            script = self.fetcher.fetch_text(locator)
            if script is None:
                return None
            return '<script>%s</script>' % script
        uri = self.encoder.encode(locator, kind.family)
        if uri is None:
            return None
        logger.debug('Inlining the %s attribute of %s', kind.attribute, reference.raw_tag[:80])
        return self.splice(reference, uri)

    def rewrite_inline_style(self, reference):
        # for an inline style, the "locator" is the body of the block
        body = reference.locator
        css = self.css_resolver.resolve(body, base=self.base)
        if css == body:
            return None
        return self.splice(reference, css)

    def splice(self, reference, text):
        '''The matched construct with its locator (or style body) replaced by text.'''
        start = reference.locator_start - reference.span_start
        end = reference.locator_end - reference.span_start
        return reference.raw_tag[:start] + text + reference.raw_tag[end:]
