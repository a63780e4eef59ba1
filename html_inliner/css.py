import re
from collections import namedtuple
from .fetcher import logger, is_skipped, resolve_locator
from .encoder import MediaFamily

IMPORT_PATTERN = re.compile(
        r'''@import\s+(?:url\(\s*['"]?(?P<url>[^'")]+?)['"]?\s*\)|['"](?P<string>[^'"]+)['"])'''
        r'''(?:(?P<media>[^;{}]*);)?''')
URL_PATTERN = re.compile(r'''url\(\s*['"]?(?P<locator>[^'")]+?)['"]?\s*\)''')

CssReplacement = namedtuple('CssReplacement', ['original', 'inlined'])


class CssResourceResolver:
    '''
    Inlines the resources referenced by a block of CSS: the stylesheets pulled by
    @import (recursively) and everything referenced with url().

    When the same url(...) token appears several times in a block, all of its
    occurrences are replaced at once with a single fetch (set replace_all to False
    to fetch and replace every occurrence on its own).
    '''
    def __init__(self, fetcher, encoder, ignore, replace_all=True):
        self.fetcher = fetcher
        self.encoder = encoder
        self.ignore = ignore
        self.replace_all = replace_all

    def resolve(self, css, base=None, chain=()):
        '''
        Return the CSS with its imports and url() references inlined.
        base is the location of the CSS (a stylesheet locator, a directory or None),
        chain the locators of the stylesheets currently being imported.
        '''
        segments = []
        last_index = 0
        for match in IMPORT_PATTERN.finditer(css):
            segments.append(self._resolve_urls(css[last_index:match.start()], base))
            segments.append(self._resolve_import(match, base, chain))
            last_index = match.end()
        segments.append(self._resolve_urls(css[last_index:], base))
        return ''.join(segments)

    def _resolve_import(self, match, base, chain):
        statement = match.group(0)
        # @import is how web fonts are usually pulled in
        if 'fonts' in self.ignore:
            return statement
        locator = match.group('url') or match.group('string')
        if is_skipped(locator):
            return statement
        locator = resolve_locator(locator, base)
        if locator in chain:
            logger.warning('Not inlining %s: cyclic @import (%s)', locator, ' -> '.join(chain + (locator,)))
            return statement
        imported = self.fetcher.fetch_text(locator)
        if imported is None:
            return statement
        logger.debug('Inlined @import %s', locator)
        imported = self.resolve(imported, base=locator, chain=chain + (locator,))
        media = (match.group('media') or '').strip()
        if media:
            return '@media %s {\n%s\n}' % (media, imported)
        return imported

    def _inline_url(self, locator, base):
        families = []
        if 'fonts' not in self.ignore:
            families.append(MediaFamily.font)
        if 'images' not in self.ignore:
            families.append(MediaFamily.image)
        if not families:
            return None
        return self.encoder.encode(resolve_locator(locator, base), *families)

    def _resolve_urls(self, css, base):
        replacements = []
        seen = set()
        for match in URL_PATTERN.finditer(css):
            original = match.group(0)
            locator = match.group('locator')
            if is_skipped(locator.strip()):
                continue
            if self.replace_all:
                if original in seen:
                    continue
                seen.add(original)
            uri = self._inline_url(locator, base)
            if uri is not None:
                replacements.append(CssReplacement(original, 'url("%s")' % uri))
        for replacement in replacements:
            if self.replace_all:
                css = css.replace(replacement.original, replacement.inlined)
            else:
                css = css.replace(replacement.original, replacement.inlined, 1)
        return css
