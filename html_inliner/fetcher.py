import os
import logging
from collections import namedtuple
from enum import Enum
from urllib.parse import urlparse, urljoin
from urllib.request import url2pathname
import requests

logger = logging.getLogger('html_inliner')

NOT_FOUND_STATUSES = (404, 410)

FetchStatus = Enum('FetchStatus', ['ok', 'not_found', 'transport_error'])

FetchResult = namedtuple('FetchResult', ['status', 'payload', 'content_type'])


class FetchError(Exception):
    def __init__(self, message, status=FetchStatus.transport_error):
        self.message = message
        self.status = status
        super(FetchError, self).__init__(message)


def is_remote(locator):
    return locator.startswith(('http://', 'https://', '//'))

def is_skipped(locator):
    '''Locators that already are inline content, or only point inside the document.'''
    return locator.startswith(('data:', '#')) or locator == ''

def normalize_locator(locator):
    locator = locator.strip()
    if locator.startswith('//'):
        return 'https:' + locator
    if locator.startswith('file://'):
        return url2pathname(urlparse(locator).path)
    if not is_remote(locator):
        # query strings and fragments are meaningless on disk
        return locator.split('?', 1)[0].split('#', 1)[0]
    return locator

def resolve_locator(locator, base=None):
    '''
    Resolve a reference found in a document against the location of that document.
    The base is either an http(s) URL or a filesystem path; a base pointing to a file
    (e.g. a stylesheet) resolves against the directory containing it.
    '''
    if base:
        base = normalize_locator(base)
        if is_remote(base):
            return urljoin(base, locator.strip())
    locator = normalize_locator(locator)
    if not base or is_remote(locator) or os.path.isabs(locator):
        return locator
    if not os.path.isdir(base):
        base = os.path.dirname(base)
    return os.path.normpath(os.path.join(base, locator))


class ResourceFetcher:
    '''
    Retrieves resources from a remote URL (through a requests session) or from the
    local filesystem. Failures never raise: they are logged and reported in the
    status of the returned FetchResult.
    '''
    def __init__(self, session=None, timeout=None, user_agent=None):
        self.owns_session = session is None
        self.session = requests.Session() if self.owns_session else session
        self.timeout = timeout
        if user_agent:
            self.session.headers['User-Agent'] = user_agent

    def close(self):
        '''Release the connections of the session, unless it was given by the caller.'''
        if self.owns_session:
            self.session.close()

    def _fetch_remote(self, url, binary):
        try:
            req = self.session.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise FetchError('could not fetch %s: %s' % (url, e))
        if req.status_code in NOT_FOUND_STATUSES:
            raise FetchError('%s returned status %d' % (url, req.status_code), FetchStatus.not_found)
        if not 200 <= req.status_code < 300:
            raise FetchError('%s returned status %d' % (url, req.status_code))
        content_type = req.headers.get('Content-Type')
        if binary:
            return FetchResult(FetchStatus.ok, req.content, content_type)
        if not content_type or 'charset' not in content_type.lower():
            req.encoding = 'utf-8'
        return FetchResult(FetchStatus.ok, req.text, content_type)

    def _fetch_local(self, path, binary):
        try:
            if binary:
                with open(path, 'rb') as f:
                    payload = f.read()
            else:
                with open(path, encoding='utf-8') as f:
                    payload = f.read()
        except FileNotFoundError:
            raise FetchError('no such file: %s' % path, FetchStatus.not_found)
        except IsADirectoryError:
            raise FetchError('not a file: %s' % path, FetchStatus.not_found)
        except OSError as e:
            raise FetchError('could not read %s: %s' % (path, e))
        except UnicodeDecodeError as e:
            raise FetchError('%s is not valid UTF-8 text: %s' % (path, e))
        return FetchResult(FetchStatus.ok, payload, None)

    def fetch(self, locator, binary=False):
        locator = normalize_locator(locator)
        try:
            if is_remote(locator):
                return self._fetch_remote(locator, binary)
            return self._fetch_local(locator, binary)
        except FetchError as e:
            logger.warning('Not inlining %s (%s)', locator, e.message)
            return FetchResult(e.status, None, None)

    def fetch_text(self, locator):
        '''Text of a stylesheet or a script, None on failure.'''
        result = self.fetch(locator)
        if result.status != FetchStatus.ok:
            return None
        return result.payload

    def fetch_bytes(self, locator):
        return self.fetch(locator, binary=True)
