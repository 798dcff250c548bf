# -*- coding: utf-8 -*-
"""
orbreg command-line tools.

Author
------
orbreg developers

License
-------
MIT License
Copyright (c) 2024 geoint.org
See LICENSE file for full text.
"""
