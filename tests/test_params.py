# -*- coding: utf-8 -*-
"""
Tests for Annotated parameter declarations and the Configurable base.

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
2026-10-06

Modified
--------
2026-10-14
"""

import logging
from typing import Annotated, Optional

import pytest

from orbreg.exceptions import ValidationError
from orbreg.params import Configurable, Desc, Options, Range
from orbreg.vocabulary import CorrelatorMode


class _Stage(Configurable):
    size: Annotated[int, Range(min=1, max=99), Desc('Window size')] = 15
    mode: Annotated[CorrelatorMode, Options(*CorrelatorMode)] = CorrelatorMode.DIRECT
    method: Annotated[str, Options('sift', 'orb')] = 'sift'
    sigma: Annotated[float, Range(min=0.0)] = 1.4
    seed: Annotated[Optional[int], Desc('Seed')] = None


class _Required(Configurable):
    threshold: Annotated[float, Range(min=0.0)]


class TestConfigurable:

    def test_defaults(self):
        stage = _Stage()
        assert stage.get_params() == {
            'size': 15,
            'mode': CorrelatorMode.DIRECT,
            'method': 'sift',
            'sigma': 1.4,
            'seed': None,
        }

    def test_kwargs_override(self):
        stage = _Stage(size=7, method='orb', seed=3)
        assert stage.size == 7
        assert stage.method == 'orb'
        assert stage.seed == 3

    def test_enum_coerced_from_value(self):
        assert _Stage(mode='pyramid').mode is CorrelatorMode.PYRAMID

    def test_bad_enum_value(self):
        with pytest.raises(ValidationError):
            _Stage(mode='diagonal')

    def test_range_violation(self):
        with pytest.raises(ValidationError):
            _Stage(size=0)
        with pytest.raises(ValidationError):
            _Stage(sigma=-1.0)

    def test_options_violation(self):
        with pytest.raises(ValidationError):
            _Stage(method='surf')

    def test_int_accepted_for_float(self):
        assert _Stage(sigma=2).sigma == 2

    def test_bool_rejected_for_int(self):
        with pytest.raises(TypeError):
            _Stage(size=True)

    def test_optional_int_type_checked(self):
        with pytest.raises(TypeError):
            _Stage(seed='seven')

    def test_unknown_kwarg(self):
        with pytest.raises(TypeError, match='unexpected'):
            _Stage(kernel=3)

    def test_required_param(self):
        with pytest.raises(TypeError, match='missing required'):
            _Required()
        assert _Required(threshold=0.5).threshold == 0.5

    def test_logger_injection(self):
        log = logging.getLogger('orbreg.test.params')
        assert _Stage(logger=log).log is log
        assert _Stage().log.name == __name__

    def test_from_mapping_ignores_unknown(self):
        stage = _Stage.from_mapping({'size': 9, 'verbose': True})
        assert stage.size == 9

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            _Stage(size=1000)
