"""
Copyright 2015 BlazeMeter Inc.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

   http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""
import re

from setuptools import setup

with open('requirements.txt') as _f:
    requires = [line.strip() for line in _f if line.strip() and not line.startswith('#')]

with open('avdlaunch/__init__.py') as _f:
    VERSION = re.search(r'^VERSION = "(.+)"', _f.read(), re.MULTILINE).group(1)

setup(
    name="avdlaunch",
    version=VERSION,
    description='Android emulator discovery and launching for mobile build tooling',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    license='Apache 2.0',
    install_requires=requires,
    extras_require={
        'test': ['pytest'],
    },
    packages=['avdlaunch'],
    entry_points={
        'console_scripts': [
            'avdlaunch=avdlaunch.cli:main',
        ],
    },
    include_package_data=True,
    package_data={
        "avdlaunch": ["resources/*.yml"],
    },

    classifiers=[
        'Development Status :: 5 - Production/Stable',

        'Topic :: Software Development :: Build Tools',
        'Topic :: Software Development :: Testing',

        'License :: OSI Approved :: Apache Software License',

        'Operating System :: Microsoft :: Windows',
        'Operating System :: MacOS',
        'Operating System :: POSIX :: Linux',

        'Programming Language :: Python :: 3',
    ],
    python_requires='>=3.7',
)
