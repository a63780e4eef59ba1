import os
import base64
import mimetypes
from enum import Enum
from urllib.parse import urlparse
from .fetcher import logger, is_remote, normalize_locator, FetchStatus

FONT_MARKERS = ('font', 'woff', 'ttf', 'otf')
DEFAULT_MIME_TYPE = 'application/octet-stream'

# Only the built-in table is used, the system mime.types files disagree on fonts.
_mimetypes = mimetypes.MimeTypes(filenames=())
for _type, _ext in [
        ('font/woff', '.woff'),
        ('font/woff2', '.woff2'),
        ('font/ttf', '.ttf'),
        ('font/otf', '.otf'),
        ('application/vnd.ms-fontobject', '.eot'),
        ('image/svg+xml', '.svg'),
        ('image/webp', '.webp'),
        ('image/avif', '.avif'),
        ('image/x-icon', '.ico'),
        ('video/mp4', '.mp4'),
        ('video/webm', '.webm'),
        ('video/ogg', '.ogv'),
        ]:
    _mimetypes.add_type(_type, _ext)


class MediaFamily(Enum):
    image = 'image/'
    video = 'video/'
    font = 'font'

    def matches(self, mime):
        if not mime:
            return False
        mime = mime.lower()
        if self is MediaFamily.font:
            return any(marker in mime for marker in FONT_MARKERS)
        return mime.startswith(self.value)


def guess_mime_type(locator):
    '''
    MIME type of a resource, inferred from the extension of its locator.
    Local files without a usable extension are sniffed with libmagic.
    Returns None when the type is unknown.
    '''
    path = urlparse(locator).path if is_remote(locator) else locator
    mime, _ = _mimetypes.guess_type(path, strict=False)
    if mime or is_remote(locator):
        return mime
    if os.path.splitext(path)[1] == '' and os.path.isfile(path):
        return sniff_mime_type(path)
    return mime

def sniff_mime_type(path):
    '''MIME type of a local file from its content, None if libmagic cannot tell.'''
    try:
        import magic  # https://pypi.python.org/pypi/python-magic/
    except ImportError as e:
        logger.warning('Cannot guess the type of %s, libmagic is unavailable (%s)', path, e)
        return None
    try:
        mime = magic.from_file(path, mime=True)
    except (OSError, magic.MagicException) as e:
        logger.warning('Cannot guess the type of %s (%s)', path, e)
        return None
    if mime == DEFAULT_MIME_TYPE:
        return None
    return mime

def to_data_uri(mime, payload):
    return 'data:%s;base64,%s' % (mime, base64.b64encode(payload).decode('ascii'))


class Encoder:
    '''
    Turns binary resources into data URIs. The classifier (locator -> MIME type or None)
    can be swapped, so that the classification does not depend on the local system.
    '''
    def __init__(self, fetcher, classify=guess_mime_type):
        self.fetcher = fetcher
        self.classify = classify

    def _encode_remote(self, url, families):
        result = self.fetcher.fetch_bytes(url)
        if result.status != FetchStatus.ok:
            return None
        mime = result.content_type
        for family in families:
            # only fonts are checked against the declared type
            if family is not MediaFamily.font or family.matches(mime):
                break
        else:
            logger.warning('Not inlining %s: content type %s is not a %s', url, mime,
                    ' or '.join(family.name for family in families))
            return None
        if not mime:
            mime = self.classify(url) or DEFAULT_MIME_TYPE
        return to_data_uri(mime.split(';')[0].strip(), result.payload)

    def _encode_local(self, path, families):
        mime = self.classify(path)
        if not any(family.matches(mime) for family in families):
            logger.warning('Not inlining %s: type %s is not a %s', path, mime,
                    ' or '.join(family.name for family in families))
            return None
        result = self.fetcher.fetch_bytes(path)
        if result.status != FetchStatus.ok:
            return None
        return to_data_uri(mime, result.payload)

    def encode(self, locator, *families):
        '''
        Data URI of the resource, classified against the given families in order,
        or None if it cannot be fetched or is of none of these families.
        '''
        locator = normalize_locator(locator)
        if is_remote(locator):
            uri = self._encode_remote(locator, families)
        else:
            uri = self._encode_local(locator, families)
        if uri is not None:
            logger.debug('Inlined %s (%d bytes)', locator, len(uri))
        return uri
