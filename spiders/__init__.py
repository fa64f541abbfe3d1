# -*- mode: python -*-
"""Django app for tracking a captive invertebrate breeding colony"""

__version__ = "0.4.0"
api_version = "1.0"
