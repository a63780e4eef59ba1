#! /usr/bin/env python3

import unittest
import os
import io
import re
import shutil
import tempfile
import base64
import logging
from unittest import mock
import requests
import yaml
from bs4 import BeautifulSoup
from html_inliner import *
from html_inliner.rewriter import pending_start

logger.setLevel(logging.ERROR)

DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'test_data')
COMPLETE_HTML = os.path.join(DATA_DIR, 'complete.html')
PLAIN_HTML = os.path.join(DATA_DIR, 'plain.html')

# text left in complete.html when the category is ignored, gone when it is inlined
MARKERS = {
    'stylesheets': ['<link rel="stylesheet" href="style.css">'],
    'scripts': ['<script src="script.js"></script>'],
    'images': ['src="logo.svg"', 'poster="logo.svg"', 'data="logo.svg"', 'xlink:href="logo.svg"'],
    'videos': ['src="clip.mp4"'],
    'fonts': ["url('font.woff2')"],
}
# the fonts of complete.html are declared in a <style> block
DEPENDENCIES = {'stylesheets': ['fonts']}


def read(filename, mode='r'):
    with open(os.path.join(DATA_DIR, filename), mode) as f:
        return f.read()

def data_uri(mime, filename):
    return 'data:%s;base64,%s' % (mime, base64.b64encode(read(filename, 'rb')).decode('ascii'))


class FakeResponse:
    def __init__(self, status_code, body, content_type=None):
        self.status_code = status_code
        self.content = body
        self.headers = {'Content-Type': content_type} if content_type else {}
        self.encoding = None

    @property
    def text(self):
        return self.content.decode(self.encoding or 'latin-1')


def fake_session(responses):
    '''A requests session serving the given {url: (status, body, content type)}.'''
    session = mock.Mock()
    session.headers = {}
    def get(url, timeout=None):
        try:
            return FakeResponse(*responses[url])
        except KeyError:
            raise requests.exceptions.ConnectionError('No route to %s' % url)
    session.get.side_effect = get
    return session


class Util(unittest.TestCase):
    def setUp(self):
        self.maxDiff = None
        self.output_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.output_dir)

    def run_inline(self, ignore=(), input_file=COMPLETE_HTML, **kwargs):
        output = os.path.join(self.output_dir, 'output.html')
        inline_file(input_file, output, ignore, base=DATA_DIR, **kwargs)
        with open(output) as f:
            return f.read()

    def remote_rewriter(self, responses, ignore=()):
        fetcher = ResourceFetcher(session=fake_session(responses))
        return TagRewriter(ignore, fetcher=fetcher)

    def rewrite(self, rewriter, html):
        return ''.join(rewriter.process(html, final=True))


class InclusionTest(Util):
    def test_stylesheet(self):
        result = self.run_inline()
        self.assertNotIn('<link rel="stylesheet"', result)
        self.assertIn('<style>', result)
        self.assertIn('.test-class { color: red; }', result)

    def test_import_and_url(self):
        result = self.run_inline()
        self.assertIn('.imported { background-image: url("%s"); }' % data_uri('image/png', 'pixel.png'), result)
        self.assertNotIn('@import', result)
        self.assertNotIn("url('pixel.png')", result)

    def test_inline_style(self):
        result = self.run_inline()
        self.assertIn('<style media="screen">', result)
        self.assertIn('src: url("%s") format(\'woff2\');' % data_uri('font/woff2', 'font.woff2'), result)

    def test_script(self):
        result = self.run_inline()
        self.assertIn('<script>%s</script>' % read('script.js'), result)
        self.assertNotIn('<script src=', result)

    def test_images(self):
        result = self.run_inline()
        svg = data_uri('image/svg+xml', 'logo.svg')
        for attribute in ['src', 'poster', 'data', 'xlink:href']:
            self.assertIn('%s="%s"' % (attribute, svg), result)
        self.assertRegex(result, r'<embed[^>]*src="data:image/svg\+xml;base64,')

    def test_video(self):
        result = self.run_inline()
        self.assertIn('src="%s"' % data_uri('video/mp4', 'clip.mp4'), result)

    def test_untouched_text(self):
        result = self.run_inline()
        self.assertTrue(result.startswith('<!DOCTYPE html>\n<html>\n<head>\n  <title>Inlining test</title>\n'))
        self.assertIn('<p>Nothing to see &amp; nothing to inline here.</p>\n</body>\n</html>\n', result)
        self.assertIn('data-src="other.png"', result)


class PassThroughTest(Util):
    def test_no_resources(self):
        self.assertEqual(self.run_inline(input_file=PLAIN_HTML), read('plain.html'))

    def test_all_ignored(self):
        self.assertEqual(self.run_inline(ignore=CATEGORIES), read('complete.html'))

    def test_ignored_categories_are_not_fetched(self):
        session = fake_session({})
        fetcher = ResourceFetcher(session=session)
        html = read('complete.html')
        with mock.patch('builtins.open', side_effect=AssertionError('should not be opened')):
            rewriter = TagRewriter(CATEGORIES, fetcher=fetcher, base=DATA_DIR)
            result = self.rewrite(rewriter, html)
        self.assertFalse(session.get.called)
        self.assertIn('<link rel="stylesheet" href="style.css">', result)

    def test_empty(self):
        self.assertEqual(inline_content(''), '')


class ExclusionTest(Util):
    def test_each_category(self):
        for category in CATEGORIES:
            with self.subTest(category=category):
                result = self.run_inline(ignore=[category])
                for marker in MARKERS[category]:
                    self.assertIn(marker, result)
                for other in CATEGORIES:
                    if other == category or other in DEPENDENCIES.get(category, []):
                        continue
                    for marker in MARKERS[other]:
                        self.assertNotIn(marker, result)

    def test_nothing_ignored(self):
        result = self.run_inline()
        for markers in MARKERS.values():
            for marker in markers:
                self.assertNotIn(marker, result)

    def test_ignored_stylesheets(self):
        result = self.run_inline(ignore=['stylesheets'])
        self.assertIn(".inline { background-image: url('pixel.png'); }", result)
        self.assertNotIn('.test-class', result)

    def test_ignored_images(self):
        result = self.run_inline(ignore=['images'])
        self.assertNotIn('data:image/', result)
        self.assertIn('data:font/woff2;base64,', result)
        self.assertIn('.test-class', result)

    def test_ignored_fonts_keep_imports(self):
        result = self.run_inline(ignore=['fonts'])
        self.assertIn("@import url('imported.css');", result)
        self.assertIn(".inline { background-image: url(\"%s\"); }" % data_uri('image/png', 'pixel.png'), result)

    def test_multiple(self):
        result = self.run_inline(ignore=['stylesheets', 'scripts', 'videos'])
        self.assertIn('<link rel="stylesheet"', result)
        self.assertIn('<script src=', result)
        self.assertIn('src="clip.mp4"', result)
        self.assertIn('src="data:image/svg+xml;base64,', result)

    def test_unknown_category(self):
        with self.assertRaises(ValueError):
            TagRewriter(['pictures'])
        with self.assertRaises(ValueError):
            parse_ignore('Images')


class AttributePreservationTest(Util):
    def test_img(self):
        soup = BeautifulSoup(self.run_inline(), 'html.parser')
        img = soup.find('img')
        self.assertEqual(list(img.attrs), ['id', 'class', 'alt', 'data-src', 'src', 'width', 'height'])
        self.assertEqual(img['id'], 'img-1')
        self.assertEqual(img['alt'], 'Alt text')
        self.assertEqual(img['data-src'], 'other.png')
        self.assertTrue(img['src'].startswith('data:image/svg+xml;base64,'))

    def test_video_and_source(self):
        soup = BeautifulSoup(self.run_inline(), 'html.parser')
        video = soup.find('video')
        self.assertEqual(list(video.attrs), ['id', 'controls', 'width', 'poster'])
        source = soup.find('source')
        self.assertEqual(source['type'], 'video/mp4')
        self.assertEqual(source['id'], 'src-1')
        self.assertTrue(source['src'].startswith('data:video/mp4;base64,'))

    def test_object_and_embed(self):
        result = self.run_inline()
        self.assertIn('<object id="test-object" class="object-class" data="data:image/svg+xml;base64,', result)
        self.assertIn('<embed id="test-embed" class="embed-class" src="data:image/svg+xml;base64,', result)

    def test_only_whole_attribute(self):
        rewriter = TagRewriter(base=DATA_DIR)
        result = self.rewrite(rewriter, '<img data-src="logo.svg" alt="x">')
        self.assertEqual(result, '<img data-src="logo.svg" alt="x">')


class ErrorHandlingTest(Util):
    def test_missing_file(self):
        html = '<body>\n  <img src="non-existent-file.png" alt="Missing">\n</body>\n'
        self.assertEqual(inline_content(html, base=DATA_DIR), html)

    def test_missing_stylesheet_and_script(self):
        html = '<link rel="stylesheet" href="missing.css"><script src="missing.js"></script>'
        self.assertEqual(inline_content(html, base=DATA_DIR), html)

    def test_type_mismatch(self):
        html = '<img src="notes.txt"><source src="logo.svg"><img src="clip.mp4">'
        self.assertEqual(inline_content(html, base=DATA_DIR), html)

    def test_missing_input(self):
        with self.assertRaises(PipelineError):
            inline_file(os.path.join(DATA_DIR, 'missing.html'), os.path.join(self.output_dir, 'out.html'))
        self.assertFalse(os.path.exists(os.path.join(self.output_dir, 'out.html')))

    def test_unwritable_output(self):
        with self.assertRaises(PipelineError):
            inline_file(COMPLETE_HTML, os.path.join(self.output_dir, 'no_such_dir', 'out.html'))

    def test_remote_failures(self):
        rewriter = self.remote_rewriter({
            'https://example.com/gone.png': (404, b'', 'text/html'),
            'https://example.com/broken.png': (500, b'', 'text/html'),
        })
        html = ('<img src="https://example.com/gone.png">'
                '<img src="https://example.com/broken.png">'
                '<img src="https://unreachable.example.com/a.png">')
        self.assertEqual(self.rewrite(rewriter, html), html)

    def copy_without_extension(self, filename):
        path = os.path.join(self.output_dir, 'picture')
        shutil.copy(os.path.join(DATA_DIR, filename), path)
        return path

    def test_unreadable_type(self):
        html = '<img src="%s"><p>after</p>' % self.copy_without_extension('pixel.png')
        magic = mock.Mock(MagicException=type('MagicException', (Exception,), {}))
        with mock.patch.dict('sys.modules', {'magic': magic}):
            for error in [PermissionError(13, 'Permission denied'), magic.MagicException('bad database')]:
                with self.subTest(error=error):
                    magic.from_file.side_effect = error
                    self.assertEqual(inline_content(html), html)

    def test_missing_libmagic(self):
        html = '<img src="%s"><img src="logo.svg">' % self.copy_without_extension('pixel.png')
        with mock.patch.dict('sys.modules', {'magic': None}):
            result = inline_content(html, base=DATA_DIR)
        self.assertIn('<img src="%s">' % os.path.join(self.output_dir, 'picture'), result)
        self.assertIn(data_uri('image/svg+xml', 'logo.svg'), result)

    def test_failing_output_stream(self):
        out_file = mock.Mock()
        out_file.write.side_effect = OSError(28, 'No space left on device')
        with self.assertRaises(PipelineError):
            inline_stream(io.StringIO('<p>a</p>'), out_file)


class RemoteTest(Util):
    def test_image(self):
        rewriter = self.remote_rewriter({'https://example.com/a.png': (200, b'PNG', 'image/png')})
        result = self.rewrite(rewriter, '<img alt="a" src="https://example.com/a.png">')
        self.assertEqual(result, '<img alt="a" src="data:image/png;base64,%s">' % base64.b64encode(b'PNG').decode())

    def test_content_type_parameters(self):
        rewriter = self.remote_rewriter({'https://example.com/a.svg': (200, b'<svg/>', 'image/svg+xml; charset=utf-8')})
        result = self.rewrite(rewriter, '<img src="https://example.com/a.svg">')
        self.assertIn('src="data:image/svg+xml;base64,', result)

    def test_missing_content_type(self):
        rewriter = self.remote_rewriter({'https://example.com/a.png': (200, b'PNG', None)})
        result = self.rewrite(rewriter, '<img src="https://example.com/a.png">')
        self.assertIn('src="data:image/png;base64,', result)

    def test_protocol_relative_and_entities(self):
        rewriter = self.remote_rewriter({'https://example.com/a.png?w=1&h=2': (200, b'PNG', 'image/png')})
        result = self.rewrite(rewriter, '<img src="//example.com/a.png?w=1&amp;h=2">')
        self.assertIn('src="data:image/png;base64,', result)

    def test_stylesheet_relative_urls(self):
        rewriter = self.remote_rewriter({
            'https://cdn.example.com/css/main.css': (200, b".a { background: url('../img/a.png'); }", 'text/css'),
            'https://cdn.example.com/img/a.png': (200, b'PNG', 'image/png'),
        })
        result = self.rewrite(rewriter, '<link href="https://cdn.example.com/css/main.css" rel="stylesheet">')
        self.assertEqual(result, '<style>.a { background: url("data:image/png;base64,%s"); }</style>'
                % base64.b64encode(b'PNG').decode())

    def test_text_decoded_as_utf8(self):
        rewriter = self.remote_rewriter({'https://example.com/a.js': (200, 'alert("é");'.encode('utf-8'), 'application/javascript')})
        result = self.rewrite(rewriter, '<script src="https://example.com/a.js"></script>')
        self.assertEqual(result, '<script>alert("é");</script>')

    def test_font_cdn(self):
        css_url = 'https://fonts.googleapis.com/css2?family=Roboto&display=swap'
        font_url = 'https://fonts.gstatic.com/s/roboto/v1/roboto.woff2'
        responses = {
            css_url: (200, ("@font-face { font-family: 'Roboto'; src: url(%s) format('woff2'); }" % font_url).encode(), 'text/css'),
            font_url: (200, b'wOF2', 'font/woff2'),
        }
        html = '<link rel="stylesheet" href="https://fonts.googleapis.com/css2?family=Roboto&amp;display=swap">'
        font_uri = 'data:font/woff2;base64,%s' % base64.b64encode(b'wOF2').decode()
        # the font stylesheet is gated by fonts, not by stylesheets
        result = self.rewrite(self.remote_rewriter(responses, ignore=['stylesheets']), html)
        self.assertEqual(result, "<style>@font-face { font-family: 'Roboto'; src: url(\"%s\") format('woff2'); }</style>" % font_uri)
        result = self.rewrite(self.remote_rewriter(responses, ignore=['fonts']), html)
        self.assertEqual(result, html)

    def test_remote_font_heuristic(self):
        responses = {
            'https://example.com/f': (200, b'FONT', 'application/x-font-ttf'),
            'https://example.com/i': (200, b'IMG', 'image/png'),
        }
        rewriter = self.remote_rewriter(responses)
        css = rewriter.css_resolver.resolve("a { src: url('https://example.com/f'); background: url(https://example.com/i) }")
        self.assertIn('url("data:application/x-font-ttf;base64,', css)
        self.assertIn('url("data:image/png;base64,', css)
        self.assertEqual(rewriter.fetcher.session.get.call_count, 2)
        rewriter = self.remote_rewriter(responses, ignore=['images'])
        css = rewriter.css_resolver.resolve("a { background: url(https://example.com/i) }")
        self.assertEqual(css, "a { background: url(https://example.com/i) }")

    def test_timeout_and_user_agent(self):
        session = fake_session({'https://example.com/a.png': (200, b'PNG', 'image/png')})
        fetcher = ResourceFetcher(session=session, timeout=2.5, user_agent='Mozilla/5.0')
        fetcher.fetch_bytes('https://example.com/a.png')
        session.get.assert_called_once_with('https://example.com/a.png', timeout=2.5)
        self.assertEqual(session.headers['User-Agent'], 'Mozilla/5.0')


class CssTest(Util):
    def resolver(self, ignore=(), **kwargs):
        fetcher = ResourceFetcher()
        return CssResourceResolver(fetcher, Encoder(fetcher), parse_ignore(ignore), **kwargs)

    def test_recursive_import(self):
        css = self.resolver().resolve("@import url('style.css');\nbody { margin: 0; }", base=DATA_DIR)
        self.assertNotIn('@import', css)
        self.assertNotIn("url('pixel.png')", css)
        self.assertIn(data_uri('image/png', 'pixel.png'), css)
        self.assertIn('.test-class { color: red; }', css)
        self.assertTrue(css.endswith('body { margin: 0; }'))

    def test_import_forms(self):
        for statement in ['@import "imported.css";', "@import 'imported.css';", '@import url(imported.css);',
                '@import url( "imported.css" );']:
            with self.subTest(statement=statement):
                css = self.resolver().resolve(statement + '\nb { }', base=DATA_DIR)
                self.assertTrue(css.startswith('.imported { background-image: url("data:image/png;base64,'))
                self.assertTrue(css.endswith('\n\nb { }'))

    def test_import_media(self):
        css = self.resolver().resolve("@import url('imported.css') screen and (min-width: 10px);", base=DATA_DIR)
        self.assertTrue(css.startswith('@media screen and (min-width: 10px) {\n.imported'))
        self.assertTrue(css.endswith('\n}'))

    def test_cyclic_import(self):
        css = self.resolver().resolve("@import 'cycle_a.css';", base=DATA_DIR)
        self.assertIn('.a { color: blue; }', css)
        self.assertIn('.b { color: green; }', css)
        self.assertEqual(css.count("@import 'cycle_a.css';"), 1)

    def test_relative_to_stylesheet(self):
        css = self.resolver().resolve("@import 'css/nested.css';", base=DATA_DIR)
        self.assertIn('.nested { background: url("%s") no-repeat; }' % data_uri('image/png', 'pixel.png'), css)

    def test_font_before_image(self):
        css = "@font-face { src: url('font.woff2'); }"
        self.assertEqual(self.resolver().resolve(css, base=DATA_DIR),
                '@font-face { src: url("%s"); }' % data_uri('font/woff2', 'font.woff2'))
        self.assertEqual(self.resolver(ignore=['fonts']).resolve(css, base=DATA_DIR), css)

    def test_skipped_urls(self):
        css = 'a { background: url(data:image/gif;base64,R0lGOD); fill: url(#gradient); }'
        self.assertEqual(self.resolver().resolve(css), css)

    def test_duplicate_urls(self):
        fetcher = ResourceFetcher()
        encoder = mock.Mock(wraps=Encoder(fetcher))
        resolver = CssResourceResolver(fetcher, encoder, frozenset())
        css = resolver.resolve("a { background: url('pixel.png'); } b { background: url('pixel.png'); }", base=DATA_DIR)
        self.assertEqual(css.count(data_uri('image/png', 'pixel.png')), 2)
        self.assertEqual(encoder.encode.call_count, 1)

    def test_duplicate_urls_one_by_one(self):
        fetcher = ResourceFetcher()
        encoder = mock.Mock(wraps=Encoder(fetcher))
        resolver = CssResourceResolver(fetcher, encoder, frozenset(), replace_all=False)
        css = resolver.resolve("a { background: url('pixel.png'); } b { background: url('pixel.png'); }", base=DATA_DIR)
        self.assertEqual(css.count(data_uri('image/png', 'pixel.png')), 2)
        self.assertEqual(encoder.encode.call_count, 2)


class ChunkTest(Util):
    def chunked(self, html, offsets, ignore=()):
        bounds = [0] + list(offsets) + [len(html)]
        chunks = [html[start:end] for start, end in zip(bounds, bounds[1:])]
        return ''.join(inline_chunks(chunks, ignore, base=DATA_DIR))

    def test_every_split(self):
        html = read('complete.html')
        expected = inline_content(html, base=DATA_DIR)
        for offset in range(len(html) + 1):
            with self.subTest(offset=offset):
                self.assertEqual(self.chunked(html, [offset]), expected)

    def test_split_attribute_list(self):
        html = read('complete.html')
        expected = inline_content(html, base=DATA_DIR)
        offset = html.index('alt="Alt text"') + 3
        self.assertEqual(self.chunked(html, [offset]), expected)

    def test_split_url_in_style(self):
        html = read('complete.html')
        expected = inline_content(html, base=DATA_DIR)
        offset = html.index("url('pixel.png')") + 6
        self.assertEqual(self.chunked(html, [offset]), expected)
        self.assertIn('.inline { background-image: url("%s"); }' % data_uri('image/png', 'pixel.png'), expected)

    def test_single_characters(self):
        html = read('complete.html')
        expected = inline_content(html, base=DATA_DIR)
        self.assertEqual(self.chunked(html, range(1, len(html))), expected)
        html = read('plain.html')
        self.assertEqual(self.chunked(html, range(1, len(html))), html)

    def test_small_chunk_size(self):
        output = os.path.join(self.output_dir, 'output.html')
        inline_file(COMPLETE_HTML, output, base=DATA_DIR, chunk_size=7)
        with open(output) as f:
            self.assertEqual(f.read(), inline_content(read('complete.html'), base=DATA_DIR))

    def test_pending_start(self):
        self.assertEqual(pending_start('<p>text</p>'), 11)
        self.assertEqual(pending_start('<p>text</p><img sr'), 11)
        self.assertEqual(pending_start('<p><style>a { b: url(x'), 3)
        self.assertEqual(pending_start('<style>a</style><p>'), 19)
        self.assertEqual(pending_start('<script src="a.js"></scr'), 0)
        self.assertEqual(pending_start('<script src="a.js">var'), 22)

    def test_buffered_tag(self):
        rewriter = TagRewriter(base=DATA_DIR)
        self.assertEqual(rewriter.process('<p>a</p><img alt="x" sr'), ['<p>a</p>'])
        self.assertEqual(rewriter.buffer, '<img alt="x" sr')
        fragments = rewriter.process('c="logo.svg">') + rewriter.finish()
        self.assertEqual(''.join(fragments), '<img alt="x" src="%s">' % data_uri('image/svg+xml', 'logo.svg'))
        self.assertEqual(rewriter.buffer, '')

    def test_unfinished_tag_flushed(self):
        rewriter = TagRewriter(base=DATA_DIR)
        fragments = rewriter.process('<p>a</p><img src="logo.svg"') + rewriter.finish()
        self.assertEqual(''.join(fragments), '<p>a</p><img src="logo.svg"')


class EncoderTest(unittest.TestCase):
    def test_guess_mime_type(self):
        self.assertEqual(guess_mime_type('a/b.png'), 'image/png')
        self.assertEqual(guess_mime_type('b.woff2'), 'font/woff2')
        self.assertEqual(guess_mime_type('b.otf'), 'font/otf')
        self.assertEqual(guess_mime_type('https://example.com/a.mp4?x=1'), 'video/mp4')
        self.assertIsNone(guess_mime_type('https://example.com/noext'))

    def test_sniffed_type(self):
        try:
            import magic
        except ImportError as e:
            self.skipTest('libmagic is unavailable: %s' % e)
        tmp_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, tmp_dir)
        path = os.path.join(tmp_dir, 'picture')
        shutil.copy(os.path.join(DATA_DIR, 'pixel.png'), path)
        self.assertEqual(guess_mime_type(path), 'image/png')
        self.assertEqual(inline_content('<img src="%s">' % path),
                '<img src="%s">' % data_uri('image/png', 'pixel.png'))

    def test_families(self):
        self.assertTrue(MediaFamily.image.matches('image/svg+xml'))
        self.assertFalse(MediaFamily.image.matches('video/mp4'))
        self.assertTrue(MediaFamily.font.matches('application/vnd.ms-fontobject'))
        self.assertTrue(MediaFamily.font.matches('application/x-font-ttf'))
        self.assertFalse(MediaFamily.font.matches('image/png'))
        self.assertFalse(MediaFamily.video.matches(None))

    def test_injected_classifier(self):
        fetcher = ResourceFetcher()
        encoder = Encoder(fetcher, classify=lambda locator: 'image/x-notes')
        uri = encoder.encode(os.path.join(DATA_DIR, 'notes.txt'), MediaFamily.image)
        self.assertEqual(uri, data_uri('image/x-notes', 'notes.txt'))

    def test_rejected_before_read(self):
        fetcher = mock.Mock()
        encoder = Encoder(fetcher)
        self.assertIsNone(encoder.encode(os.path.join(DATA_DIR, 'notes.txt'), MediaFamily.image))
        self.assertFalse(fetcher.fetch_bytes.called)


class FetcherTest(unittest.TestCase):
    def test_local(self):
        fetcher = ResourceFetcher()
        result = fetcher.fetch(os.path.join(DATA_DIR, 'script.js'))
        self.assertEqual(result, FetchResult(FetchStatus.ok, read('script.js'), None))
        self.assertEqual(fetcher.fetch_bytes(os.path.join(DATA_DIR, 'pixel.png')).payload, read('pixel.png', 'rb'))

    def test_local_failures(self):
        fetcher = ResourceFetcher()
        self.assertEqual(fetcher.fetch(os.path.join(DATA_DIR, 'missing.css')).status, FetchStatus.not_found)
        self.assertEqual(fetcher.fetch(DATA_DIR).status, FetchStatus.not_found)
        self.assertEqual(fetcher.fetch(os.path.join(DATA_DIR, 'pixel.png')).status, FetchStatus.transport_error)
        self.assertIsNone(fetcher.fetch_text(os.path.join(DATA_DIR, 'missing.css')))

    def test_file_url(self):
        fetcher = ResourceFetcher()
        self.assertEqual(fetcher.fetch_text('file://' + os.path.join(DATA_DIR, 'script.js')), read('script.js'))

    def test_remote_statuses(self):
        fetcher = ResourceFetcher(session=fake_session({
            'https://example.com/ok': (204, b'', 'text/plain'),
            'https://example.com/gone': (410, b'', 'text/plain'),
            'https://example.com/error': (503, b'', 'text/plain'),
        }))
        self.assertEqual(fetcher.fetch('https://example.com/ok').status, FetchStatus.ok)
        self.assertEqual(fetcher.fetch('https://example.com/gone').status, FetchStatus.not_found)
        self.assertEqual(fetcher.fetch('https://example.com/error').status, FetchStatus.transport_error)
        self.assertEqual(fetcher.fetch('https://example.com/nowhere').status, FetchStatus.transport_error)

    def test_resolve_locator(self):
        self.assertEqual(resolve_locator('a.png'), 'a.png')
        self.assertEqual(resolve_locator('a.png', DATA_DIR), os.path.join(DATA_DIR, 'a.png'))
        self.assertEqual(resolve_locator('../a.png', os.path.join(DATA_DIR, 'css', 'nested.css')),
                os.path.join(DATA_DIR, 'a.png'))
        self.assertEqual(resolve_locator('a.png?v=2#top', DATA_DIR), os.path.join(DATA_DIR, 'a.png'))
        self.assertEqual(resolve_locator('img/a.png', 'https://example.com/css/main.css'),
                'https://example.com/css/img/a.png')
        self.assertEqual(resolve_locator('https://example.com/a.png', DATA_DIR), 'https://example.com/a.png')

    def test_close(self):
        fetcher = ResourceFetcher()
        with mock.patch.object(fetcher.session, 'close') as close:
            self.assertEqual(''.join(inline_chunks(['<p>a', '</p>'], fetcher=fetcher)), '<p>a</p>')
        close.assert_called_once_with()
        session = fake_session({})
        ResourceFetcher(session=session).close()
        self.assertFalse(session.close.called)


class ConfigTest(unittest.TestCase):
    def setUp(self):
        self.cwd = os.getcwd()
        self.tmp_dir = tempfile.mkdtemp()
        os.chdir(self.tmp_dir)

    def tearDown(self):
        os.chdir(self.cwd)
        shutil.rmtree(self.tmp_dir)

    def create_config_file(self, config):
        with open(CONFIG_FILE, 'w') as f:
            yaml.dump(config, f)

    def test_find_file(self):
        with open(CONFIG_FILE, 'w') as f:
            f.write('ignore: images\n')
        expected = os.path.join(os.getcwd(), CONFIG_FILE)
        self.assertEqual(os.path.realpath(expected), os.path.realpath(find_config_file()))

    def test_find_file_upwards(self):
        self.create_config_file({'ignore': ['videos']})
        os.mkdir('sub')
        expected = os.path.join(self.tmp_dir, CONFIG_FILE)
        self.assertEqual(os.path.realpath(expected), os.path.realpath(find_config_file('sub')))
        os.chdir('sub')
        with self.assertLogs('html_inliner', level='INFO') as cm:
            config = get_config()
        self.assertEqual(config['ignore'], frozenset(['videos']))
        self.assertIn(CONFIG_FILE, cm.output[0])

    def test_get_correct_config(self):
        self.create_config_file({'ignore': ['images', 'fonts'], 'timeout': 10, 'chunk_size': 4096})
        config = get_config()
        self.assertEqual(config['ignore'], frozenset(['images', 'fonts']))
        self.assertEqual(config['timeout'], 10)
        self.assertEqual(config['chunk_size'], 4096)

    def test_get_config_wrongkey(self):
        self.create_config_file({'foo': 'bar'})
        with self.assertRaises(ConfigError):
            get_config()

    def test_get_config_wrongvalues(self):
        for config in [{'ignore': ['pictures']}, {'timeout': -1}, {'chunk_size': 'big'}, {'base': 12}, ['ignore']]:
            with self.subTest(config=config):
                self.create_config_file(config)
                with self.assertRaises(ConfigError):
                    get_config()


class CommandLineTest(Util):
    def setUp(self):
        super().setUp()
        self.cwd = os.getcwd()
        os.chdir(self.output_dir)

    def tearDown(self):
        os.chdir(self.cwd)
        super().tearDown()

    def test_main(self):
        output = os.path.join(self.output_dir, 'cli.html')
        with mock.patch('sys.stdout', new=io.StringIO()) as stdout:
            main([COMPLETE_HTML, output, '--ignore-images', '--ignore-videos', '--base', DATA_DIR])
        self.assertIn('Inlined successfully!', stdout.getvalue())
        with open(output) as f:
            result = f.read()
        self.assertIn('src="logo.svg"', result)
        self.assertIn('src="clip.mp4"', result)
        self.assertIn('<script>%s</script>' % read('script.js'), result)

    def test_config_file(self):
        with open(CONFIG_FILE, 'w') as f:
            yaml.dump({'ignore': ['scripts'], 'base': DATA_DIR}, f)
        output = os.path.join(self.output_dir, 'cli.html')
        with mock.patch('sys.stdout', new=io.StringIO()):
            main([COMPLETE_HTML, output, '--ignore-stylesheets'])
        with open(output) as f:
            result = f.read()
        self.assertIn('<script src="script.js"></script>', result)
        self.assertIn('<link rel="stylesheet" href="style.css">', result)
        self.assertIn('src="data:video/mp4;base64,', result)

    def test_stdout(self):
        with mock.patch('sys.stdout', new=io.StringIO()) as stdout:
            main([PLAIN_HTML, '-', '-q'])
        self.assertEqual(stdout.getvalue(), read('plain.html'))

    def test_missing_input(self):
        with self.assertRaises(SystemExit) as cm:
            main([os.path.join(DATA_DIR, 'missing.html'), 'out.html'])
        self.assertIn('Error', str(cm.exception.code))

    def test_unknown_option(self):
        with mock.patch('sys.stderr', new=io.StringIO()):
            with self.assertRaises(SystemExit):
                main([COMPLETE_HTML, 'out.html', '--ignore-pictures'])

    def test_invalid_numbers(self):
        for option in ['--chunk-size=0', '--chunk-size=-5', '--chunk-size=big', '--timeout=0']:
            with self.subTest(option=option):
                with mock.patch('sys.stderr', new=io.StringIO()) as stderr:
                    with self.assertRaises(SystemExit):
                        main([COMPLETE_HTML, 'out.html', option])
                self.assertIn('positive', stderr.getvalue())
        self.assertFalse(os.path.exists('out.html'))


if __name__ == "__main__":
    unittest.main()
