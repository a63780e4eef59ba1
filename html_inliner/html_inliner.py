import sys
import os
import logging
import argparse
from .version import __version__
from .rewriter import CATEGORIES
from .pipeline import inline_file, inline_stream, PipelineError, DEFAULT_CHUNK_SIZE
from .config import get_config, ConfigError, CONFIG_FILE, CONFIG_IGNORE_KEY, CONFIG_TIMEOUT_KEY, \
        CONFIG_CHUNK_SIZE_KEY, CONFIG_BASE_KEY, CONFIG_USER_AGENT_KEY

STDIO = '-'

def positive(convert):
    def check(value):
        try:
            number = convert(value)
        except ValueError:
            number = None
        if number is None or number <= 0:
            raise argparse.ArgumentTypeError('expected a positive number, got %r' % value)
        return number
    check.__name__ = convert.__name__
    return check

def parse_args(argv=None):
    parser = argparse.ArgumentParser(
            description='Inline the stylesheets, scripts, images, videos and fonts of an HTML document.')
    parser.add_argument('--version', action='version',
                    version='%(prog)s {version}'.format(version=__version__))
    parser.add_argument('input', type=str,
            help='Input HTML file (%s for the standard input).' % STDIO)
    parser.add_argument('output', type=str,
            help='Output HTML file (%s for the standard output).' % STDIO)
    for category in CATEGORIES:
        parser.add_argument('--ignore-%s' % category, action='append_const', const=category,
                dest='ignore', default=[], help='Do not inline the %s.' % category)
    parser.add_argument('--timeout', type=positive(float), default=None,
            help='Timeout in seconds of each remote fetch.')
    parser.add_argument('--chunk-size', type=positive(int), default=None,
            help='Number of characters read at once from the input (default %d).' % DEFAULT_CHUNK_SIZE)
    parser.add_argument('--base', type=str, default=None,
            help='Directory or URL against which relative resources are resolved.')
    parser.add_argument('--user-agent', type=str, default=None,
            help='User-Agent header of the remote fetches.')
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument('-v', '--verbose', action='store_true',
            help='Report every inlined resource.')
    verbosity.add_argument('-q', '--quiet', action='store_true',
            help='Only report errors.')
    return parser.parse_args(argv)

def main(argv=None):
    args = parse_args(argv)
    level = logging.DEBUG if args.verbose else logging.ERROR if args.quiet else logging.WARNING
    logging.basicConfig(level=level, format='%(levelname)s: %(message)s')
    try:
        config = get_config()
    except ConfigError as e:
        sys.exit('Error with the configuration file %s: %s' % (CONFIG_FILE, e))
    ignore = config[CONFIG_IGNORE_KEY] | set(args.ignore)
    chunk_size = args.chunk_size if args.chunk_size is not None else config.get(CONFIG_CHUNK_SIZE_KEY)
    options = {
        'chunk_size': chunk_size if chunk_size is not None else DEFAULT_CHUNK_SIZE,
        'timeout': args.timeout if args.timeout is not None else config.get(CONFIG_TIMEOUT_KEY),
        'base': args.base or config.get(CONFIG_BASE_KEY),
        'user_agent': args.user_agent or config.get(CONFIG_USER_AGENT_KEY),
    }
    try:
        if STDIO in (args.input, args.output):
            in_file = sys.stdin if args.input == STDIO else open(args.input, encoding='utf-8')
            out_file = sys.stdout if args.output == STDIO else open(args.output, 'w', encoding='utf-8')
            try:
                inline_stream(in_file, out_file, ignore, **options)
            finally:
                for f in (in_file, out_file):
                    if f not in (sys.stdin, sys.stdout):
                        f.close()
        else:
            inline_file(os.path.abspath(args.input), os.path.abspath(args.output), ignore, **options)
    except (PipelineError, OSError) as e:
        sys.exit('Error: %s' % e)
    if args.output != STDIO:
        print('Inlined successfully! Output: %s' % os.path.abspath(args.output))

if __name__ == '__main__':
    main()
