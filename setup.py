# -*- coding: utf-8 -*-
# -*- mode: python -*-
import os
import sys
from setuptools import setup, find_packages
if sys.hexversion < 0x030A0000:
    raise RuntimeError("Python 3.10 or higher required")

from spiders import __version__
cls_txt = """
Development Status :: 4 - Beta
Framework :: Django
Intended Audience :: End Users/Desktop
License :: OSI Approved :: GNU General Public License (GPL)
Programming Language :: Python
Topic :: Internet :: WWW/HTTP
Topic :: Internet :: WWW/HTTP :: Dynamic Content
"""

setup(
    name="django-spider-colony",
    version=__version__,
    description="A Django app for tracking the life cycle of a tarantula collection",
    long_description=open(os.path.join(os.path.dirname(__file__), 'README.md')).read(),
    long_description_content_type="text/markdown",
    classifiers=[x for x in cls_txt.split("\n") if x],
    packages=find_packages(exclude=["*test*"]),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "django>=4.2",
        "djangorestframework>=3.14",
        "django-filter>=23.0",
        "drf-link-header-pagination>=0.2",
        "requests>=2.28",
    ],
    extras_require={
        "test": ["pytest>=7.0", "pytest-django>=4.5"],
    },
)
