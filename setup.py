import io
import re

from setuptools import setup


with io.open('run_jenkins/__init__.py', encoding='utf-8') as f:
    __version__ = re.search(r"__version__ = '([^']+)'", f.read()).group(1)

setup(
    name="run_jenkins",
    description="Launch a jenkins job, stream its output and wait for it "
    "to finish",
    version=__version__,
    author="Oscar Caballero",
    author_email="ocaballeror@tutanota.com",
    classifiers=[
        'Development Status :: 5 - Production/Stable',
        'Intended Audience :: Developers',
        'Topic :: Software Development :: Build Tools',
        'Environment :: Console',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Programming Language :: Python :: Implementation :: CPython',
    ],
    packages=['run_jenkins'],
    python_requires='>=3.8',
    entry_points={
        'console_scripts': [
            'run_jenkins=run_jenkins.run_jenkins:cli'
        ]
    },
    install_requires=[
        'requests',
        'urllib3',
    ],
    extras_require={
        'dev': [
            'pytest',
            'pytest-cov',
            'flake8'
        ]
    },
)
