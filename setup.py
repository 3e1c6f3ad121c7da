# -*- coding: utf-8 -*-
"""
    gateway.py
    ~~~~~~~~~~
    ⚡⚡⚡ Transparent, flow-aware redirection gateway which forces outbound
    HTTP & HTTPS traffic through a single upstream proxy.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from setuptools import setup, find_packages

VERSION = (0, 3, 0)
__version__ = '.'.join(map(str, VERSION[0:3]))
__description__ = '''⚡⚡⚡Transparent, flow-aware redirection gateway which forces
    outbound HTTP & HTTPS traffic through a single upstream proxy.'''
__author__ = 'Abhinav Singh'
__author_email__ = 'mailsforabhinav@gmail.com'
__homepage__ = 'https://github.com/abhinavsingh/gateway.py'
__download_url__ = '%s/archive/master.zip' % __homepage__
__license__ = 'BSD'

if __name__ == '__main__':
    setup(
        name='gateway.py',
        version=__version__,
        author=__author__,
        author_email=__author_email__,
        url=__homepage__,
        description=__description__,
        long_description=open(
            'README.md', 'r', encoding='utf-8').read().strip(),
        long_description_content_type='text/markdown',
        download_url=__download_url__,
        license=__license__,
        python_requires='>=3.7',
        zip_safe=False,
        packages=find_packages(exclude=['tests', 'tests.*']),
        install_requires=open('requirements.txt', 'r').read().strip().split(),
        extras_require={
            'testing': open('requirements-testing.txt', 'r').read().strip().split(),
        },
        entry_points={
            'console_scripts': [
                'gateway = gateway:entry_point'
            ]
        },
        classifiers=[
            'Development Status :: 4 - Beta',
            'Environment :: Console',
            'Environment :: No Input/Output (Daemon)',
            'Intended Audience :: Developers',
            'Intended Audience :: System Administrators',
            'License :: OSI Approved :: BSD License',
            'Natural Language :: English',
            'Operating System :: POSIX :: Linux',
            'Operating System :: MacOS :: MacOS X',
            'Operating System :: Microsoft :: Windows',
            'Operating System :: OS Independent',
            'Programming Language :: Python :: 3 :: Only',
            'Programming Language :: Python :: 3',
            'Topic :: Internet',
            'Topic :: Internet :: Proxy Servers',
            'Topic :: System :: Networking',
            'Topic :: System :: Networking :: Firewalls',
            'Topic :: Utilities',
        ],
        keywords=(
            'http, proxy, upstream proxy, redirection, transparent proxy,'
            'gateway, connection pool, Python3'
        )
    )
