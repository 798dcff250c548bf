# -*- coding: utf-8 -*-
"""
Geolocation Module - Pixel transforms between map-projected images.

Dependencies
------------
rasterio (optional)
pyproj (optional)

Author
------
orbreg developers

License
-------
MIT License
Copyright (c) 2024 geoint.org
See LICENSE file for full text.

Created
-------
2026-10-09

Modified
--------
2026-10-15
"""

from orbreg.geolocation.georef import (
    GeoReference,
    GeoTransform,
    is_map_projected,
    require_geo_backend,
)

__all__ = [
    'GeoReference',
    'GeoTransform',
    'is_map_projected',
    'require_geo_backend',
]
