# -*- coding: utf-8 -*-
"""
Disparity IO - Persist disparity fields as ``.npz`` archives.

A field is stored as three named arrays (``dx``, ``dy``, ``valid``) in a
NumPy archive, with a JSON sidecar recording shape, valid-cell count, and
any caller-supplied metadata.

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
2026-10-13
"""

# Standard library
from pathlib import Path
from typing import Any, Dict, Optional, Union

# Third-party
import numpy as np

# orbreg internal
from orbreg.IO.numpy_io import write_sidecar
from orbreg.disparity.field import DisparityField


def write_disparity(
    filepath: Union[str, Path],
    field: DisparityField,
    metadata: Optional[Dict[str, Any]] = None,
) -> Path:
    """Write *field* to an ``.npz`` archive plus JSON sidecar.

    Parameters
    ----------
    filepath : str or Path
        Output path. ``.npz`` is appended by NumPy if missing.
    field : DisparityField
        Field to persist.
    metadata : Dict[str, Any], optional
        Extra sidecar entries.

    Returns
    -------
    Path
        Path of the written archive.
    """
    filepath = Path(filepath)
    if filepath.suffix != '.npz':
        filepath = filepath.with_name(filepath.name + '.npz')
    filepath.parent.mkdir(parents=True, exist_ok=True)
    np.savez(str(filepath), dx=field.dx, dy=field.dy, valid=field.valid)
    sidecar: Dict[str, Any] = {
        'shape': list(field.shape),
        'array_names': ['dx', 'dy', 'valid'],
        'valid_count': field.valid_count,
    }
    if metadata:
        sidecar.update(metadata)
    write_sidecar(filepath, sidecar)
    return filepath


def read_disparity(filepath: Union[str, Path]) -> DisparityField:
    """Read a field written by :func:`write_disparity`.

    Raises
    ------
    FileNotFoundError
        If the archive does not exist.
    ValueError
        If the archive lacks one of the ``dx``, ``dy``, ``valid`` arrays.
    """
    filepath = Path(filepath)
    if not filepath.is_file():
        raise FileNotFoundError(f"File not found: {filepath}")
    with np.load(str(filepath)) as archive:
        missing = {'dx', 'dy', 'valid'} - set(archive.files)
        if missing:
            raise ValueError(
                f"{filepath} is not a disparity archive; "
                f"missing {sorted(missing)}"
            )
        return DisparityField(archive['dx'], archive['dy'], archive['valid'])
