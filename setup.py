#!/usr/bin/env python3

import re
from setuptools import setup

if __name__ == '__main__':
    version = re.search(
        r"^__version__\s*=\s*'(.*)'",
        open('html_inliner/version.py').read(),
        re.M).group(1)
    setup(
        name='html_inliner',
        packages=['html_inliner'],
        entry_points={
            'console_scripts': ['html_inliner = html_inliner.html_inliner:main']
        },
        version=version,
        description='Inline the stylesheets, scripts, images, videos and fonts of an HTML document into a single file.',
        python_requires='>=3.6',
        install_requires=[
            'requests',
            'python-magic',
            'PyYAML',
        ],
        extras_require={
            'test': [
                'beautifulsoup4',
            ],
        },
    )
