import os
import numbers
import yaml
from .fetcher import logger
from .rewriter import parse_ignore

CONFIG_FILE = '.htmlinlinerc'
CONFIG_DIR = os.path.join(os.path.expanduser('~'), '.config', 'html_inliner')
CONFIG_IGNORE_KEY = 'ignore'
CONFIG_TIMEOUT_KEY = 'timeout'
CONFIG_CHUNK_SIZE_KEY = 'chunk_size'
CONFIG_BASE_KEY = 'base'
CONFIG_USER_AGENT_KEY = 'user_agent'
CONFIG_KEYS = [CONFIG_IGNORE_KEY, CONFIG_TIMEOUT_KEY, CONFIG_CHUNK_SIZE_KEY, CONFIG_BASE_KEY, CONFIG_USER_AGENT_KEY]

def iter_config_locations(dirname):
    while True:
        yield os.path.join(dirname, CONFIG_FILE)
        parent = os.path.dirname(dirname)
        if parent == dirname: # root directory
            break
        dirname = parent
    yield os.path.join(CONFIG_DIR, CONFIG_FILE)

def find_config_file(dirname=None):
    '''
    Closest configuration file from dirname (the working directory by default) up to
    the root, then in CONFIG_DIR. None if there is none.
    '''
    for filepath in iter_config_locations(os.path.abspath(dirname or os.getcwd())):
        if os.path.isfile(filepath):
            return filepath
    return None

class ConfigError(Exception):
    pass

def check_config(config):
    if config is None: # empty file
        config = {}
    if not isinstance(config, dict):
        raise ConfigError('Expected a mapping, got %s.' % type(config).__name__)
    unknown = set(config) - set(CONFIG_KEYS)
    if unknown:
        raise ConfigError('Unknown keys %s.' % ', '.join(sorted(unknown)))
    try:
        config[CONFIG_IGNORE_KEY] = parse_ignore(config.get(CONFIG_IGNORE_KEY))
    except ValueError as e:
        raise ConfigError(str(e))
    timeout = config.get(CONFIG_TIMEOUT_KEY)
    if timeout is not None and (not isinstance(timeout, numbers.Real) or isinstance(timeout, bool) or timeout <= 0):
        raise ConfigError('%s must be a positive number of seconds, got %r.' % (CONFIG_TIMEOUT_KEY, timeout))
    chunk_size = config.get(CONFIG_CHUNK_SIZE_KEY)
    if chunk_size is not None and (not isinstance(chunk_size, int) or isinstance(chunk_size, bool) or chunk_size <= 0):
        raise ConfigError('%s must be a positive integer, got %r.' % (CONFIG_CHUNK_SIZE_KEY, chunk_size))
    for key in [CONFIG_BASE_KEY, CONFIG_USER_AGENT_KEY]:
        if config.get(key) is not None and not isinstance(config[key], str):
            raise ConfigError('%s must be a string, got %r.' % (key, config[key]))
    return config

def get_config():
    '''Content of the configuration file, an empty configuration if there is none.'''
    config_file = find_config_file()
    if config_file is None:
        logger.debug('No %s file, using the default configuration', CONFIG_FILE)
        return check_config(None)
    logger.info('Using the configuration file %s', config_file)
    with open(config_file, 'r') as f:
        try:
            config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError('Could not parse %s: %s' % (config_file, e))
    return check_config(config)
