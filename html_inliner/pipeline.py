import io
from .fetcher import logger, ResourceFetcher
from .encoder import Encoder
from .rewriter import TagRewriter

DEFAULT_CHUNK_SIZE = 64 * 1024

class PipelineError(Exception):
    '''The document itself could not be read or written, the conversion is aborted.'''
    pass

def make_rewriter(ignore=(), base=None, timeout=None, user_agent=None, fetcher=None, encoder=None):
    if fetcher is None:
        fetcher = ResourceFetcher(timeout=timeout, user_agent=user_agent)
    if encoder is None:
        encoder = Encoder(fetcher)
    return TagRewriter(ignore, fetcher=fetcher, encoder=encoder, base=base)

def inline_chunks(chunks, ignore=(), rewriter=None, **kwargs):
    '''
    Lazily rewrite a sequence of text chunks into a sequence of text fragments.
    A rewriter built here has its fetcher closed once the sequence is exhausted.
    '''
    if rewriter is not None:
        for chunk in chunks:
            yield from rewriter.process(chunk)
        yield from rewriter.finish()
        return
    rewriter = make_rewriter(ignore, **kwargs)
    try:
        yield from inline_chunks(chunks, rewriter=rewriter)
    finally:
        rewriter.fetcher.close()

def read_chunks(in_file, chunk_size=DEFAULT_CHUNK_SIZE):
    while True:
        try:
            chunk = in_file.read(chunk_size)
        except (OSError, UnicodeDecodeError) as e:
            raise PipelineError('cannot read the document: %s' % e) from e
        if not chunk:
            return
        yield chunk

def inline_stream(in_file, out_file, ignore=(), chunk_size=DEFAULT_CHUNK_SIZE, **kwargs):
    for fragment in inline_chunks(read_chunks(in_file, chunk_size), ignore, **kwargs):
        try:
            out_file.write(fragment)
        except OSError as e:
            raise PipelineError('cannot write the document: %s' % e) from e

def _open_document(path, mode):
    try:
        return open(path, mode, encoding='utf-8')
    except OSError as e:
        raise PipelineError(str(e)) from e

def inline_file(input_path, output_path, ignore=(), chunk_size=DEFAULT_CHUNK_SIZE, **kwargs):
    '''
    Inline the resources of the HTML file input_path and write the result to output_path.
    Missing or unreadable resources are left as they are; PipelineError is raised only
    when the document cannot be read or written.
    '''
    with _open_document(input_path, 'r') as in_file:
        with _open_document(output_path, 'w') as out_file:
            inline_stream(in_file, out_file, ignore, chunk_size, **kwargs)
            try:
                out_file.close()
            except OSError as e:
                raise PipelineError('cannot write the document: %s' % e) from e
    logger.info('Inlined %s into %s', input_path, output_path)

def inline_content(content, ignore=(), **kwargs):
    out_file = io.StringIO()
    inline_stream(io.StringIO(content), out_file, ignore, **kwargs)
    return out_file.getvalue()
