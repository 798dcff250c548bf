# -*- coding: utf-8 -*-
"""
Tunable Parameter Annotations - Declarative component configuration via typing.Annotated.

Provides constraint marker types (``Range``, ``Options``, ``Desc``) for use
inside ``typing.Annotated`` annotations, the ``ParamSpec`` introspection
class, and the ``Configurable`` base class that turns those annotations into
a validated keyword-only ``__init__``.

Usage
-----
Declare tunable parameters as class-body annotations::

    from typing import Annotated
    from orbreg.params import Configurable, Range, Options, Desc

    class MyStage(Configurable):
        sigma: Annotated[float, Range(min=0.0), Desc('LoG sigma')] = 1.4
        mode: Annotated[CorrelatorMode, Options(*CorrelatorMode)] = CorrelatorMode.DIRECT

Every ``Configurable`` also accepts an optional ``logger`` keyword. When
given, the component logs through it instead of its module logger.

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

# Standard library
import enum
import inspect
import logging
from typing import (
    Annotated,
    Any,
    Dict,
    Optional,
    Tuple,
    Union,
    get_origin,
    get_type_hints,
)

# orbreg internal
from orbreg.exceptions import ValidationError


# =====================================================================
# Constraint marker types  (used inside Annotated[...])
# =====================================================================

class ParamMeta:
    """Base marker for tunable parameter metadata in ``Annotated`` types.

    Any ``Annotated`` class-body field whose metadata includes at least one
    ``ParamMeta`` subclass instance is treated as a tunable parameter by
    ``Configurable.__init_subclass__``.
    """


class Range(ParamMeta):
    """Inclusive numeric range constraint.

    Parameters
    ----------
    min : int or float, optional
        Minimum allowed value (inclusive).
    max : int or float, optional
        Maximum allowed value (inclusive).
    """

    __slots__ = ('min', 'max')

    def __init__(
        self,
        min: Optional[Union[int, float]] = None,
        max: Optional[Union[int, float]] = None,
    ) -> None:
        self.min = min
        self.max = max

    def __repr__(self) -> str:
        parts = []
        if self.min is not None:
            parts.append(f"min={self.min!r}")
        if self.max is not None:
            parts.append(f"max={self.max!r}")
        return f"Range({', '.join(parts)})"


class Options(ParamMeta):
    """Discrete choice constraint.

    Parameters
    ----------
    *choices
        Allowed values.  Must supply at least one.
    """

    __slots__ = ('choices',)

    def __init__(self, *choices: Any) -> None:
        if not choices:
            raise ValueError("Options requires at least one choice")
        self.choices = choices

    def __repr__(self) -> str:
        return f"Options{self.choices!r}"


class Desc(ParamMeta):
    """Human-readable parameter description.

    Parameters
    ----------
    text : str
        Description text shown in help output.
    """

    __slots__ = ('text',)

    def __init__(self, text: str) -> None:
        self.text = text

    def __repr__(self) -> str:
        return f"Desc({self.text!r})"


# =====================================================================
# ParamSpec
# =====================================================================

_SENTINEL = object()


class ParamSpec:
    """Resolved specification for a single tunable parameter.

    Attributes
    ----------
    name : str
        Parameter name (keyword-argument key).
    param_type : type
        Expected Python type (``float``, ``int``, ``bool``, an ``Enum``...).
    default : Any
        Default value, or ``None`` if the parameter is required.
    description : str
        Human-readable description.
    min_value : int, float, or None
        Inclusive minimum (from ``Range``).
    max_value : int, float, or None
        Inclusive maximum (from ``Range``).
    choices : tuple or None
        Allowed values (from ``Options``).
    """

    __slots__ = (
        'name', 'param_type', 'default', '_has_default',
        'description', 'min_value', 'max_value', 'choices',
    )

    def __init__(
        self,
        name: str,
        param_type: type,
        default: Any,
        has_default: bool,
        description: str,
        min_value: Optional[Union[int, float]],
        max_value: Optional[Union[int, float]],
        choices: Optional[Tuple],
    ) -> None:
        self.name = name
        self.param_type = param_type
        self.default = default
        self._has_default = has_default
        self.description = description
        self.min_value = min_value
        self.max_value = max_value
        self.choices = choices

    @property
    def required(self) -> bool:
        """Whether this parameter is required (has no default)."""
        return not self._has_default

    def coerce(self, value: Any) -> Any:
        """Convert raw enum values (e.g. ``'pyramid'``) to their member.

        Non-enum parameters are returned unchanged.

        Raises
        ------
        ValidationError
            If *value* is not a value of the parameter's enum type.
        """
        if (
            isinstance(self.param_type, type)
            and issubclass(self.param_type, enum.Enum)
            and not isinstance(value, self.param_type)
        ):
            try:
                return self.param_type(value)
            except ValueError as e:
                raise ValidationError(
                    f"Parameter '{self.name}' value {value!r} is not a "
                    f"valid {self.param_type.__name__}"
                ) from e
        return value

    def validate(self, value: Any) -> None:
        """Validate *value* against this spec's type and constraints.

        * ``int`` is accepted when ``param_type`` is ``float``.
        * ``bool`` is rejected when ``param_type`` is ``int`` or ``float``.
        * Range bounds are inclusive.
        * ``None`` is accepted for parameters whose default is ``None``.

        Raises
        ------
        TypeError
            If *value* has the wrong type.
        ValidationError
            If *value* violates range or choices constraints.
        """
        if value is None and self._has_default and self.default is None:
            return

        # -- type check --
        if self.param_type in (int, float) and isinstance(value, bool):
            raise TypeError(
                f"Parameter '{self.name}' must be "
                f"{self.param_type.__name__}, got bool"
            )
        if self.param_type is float:
            if not isinstance(value, (int, float)):
                raise TypeError(
                    f"Parameter '{self.name}' must be "
                    f"{self.param_type.__name__}, got {type(value).__name__}"
                )
        elif self.param_type is not object:
            if not isinstance(value, self.param_type):
                raise TypeError(
                    f"Parameter '{self.name}' must be "
                    f"{self.param_type.__name__}, got {type(value).__name__}"
                )

        # -- range check --
        if self.min_value is not None and value < self.min_value:
            raise ValidationError(
                f"Parameter '{self.name}' value {value!r} "
                f"is below minimum {self.min_value!r}"
            )
        if self.max_value is not None and value > self.max_value:
            raise ValidationError(
                f"Parameter '{self.name}' value {value!r} "
                f"is above maximum {self.max_value!r}"
            )

        # -- choices check --
        if self.choices is not None and value not in self.choices:
            raise ValidationError(
                f"Parameter '{self.name}' value {value!r} "
                f"is not in allowed choices {self.choices!r}"
            )

    def __repr__(self) -> str:
        parts = (
            f"ParamSpec(name={self.name!r}, "
            f"param_type={self.param_type.__name__}, "
            f"required={self.required!r}"
        )
        if not self.required:
            parts += f", default={self.default!r}"
        if self.min_value is not None:
            parts += f", min_value={self.min_value!r}"
        if self.max_value is not None:
            parts += f", max_value={self.max_value!r}"
        if self.choices is not None:
            parts += f", choices={self.choices!r}"
        return parts + ")"


# =====================================================================
# Annotation collection
# =====================================================================

def collect_param_specs(cls: type) -> Tuple[ParamSpec, ...]:
    """Parse ``Annotated`` type hints on *cls* into a tuple of ``ParamSpec``.

    Only fields whose ``Annotated`` metadata includes at least one
    ``ParamMeta`` instance are collected. Fields are ordered parent-first,
    preserving declaration order within each class.

    Raises
    ------
    TypeError
        If a field has both ``Range`` and ``Options`` constraints.
    """
    hints = get_type_hints(cls, include_extras=True)

    seen: set = set()
    ordered_names: list = []
    for klass in reversed(cls.__mro__):
        for name in getattr(klass, '__annotations__', {}):
            if name not in seen and name in hints:
                seen.add(name)
                ordered_names.append(name)

    specs: list = []
    for name in ordered_names:
        hint = hints[name]
        if get_origin(hint) is not Annotated:
            continue

        base_type = hint.__args__[0]
        if get_origin(base_type) is Union:
            members = [a for a in base_type.__args__ if a is not type(None)]
            if len(members) == 1:
                base_type = members[0]
        param_metas = [m for m in hint.__metadata__ if isinstance(m, ParamMeta)]
        if not param_metas:
            continue

        range_meta: Optional[Range] = None
        options_meta: Optional[Options] = None
        desc_meta: Optional[Desc] = None
        for m in param_metas:
            if isinstance(m, Range):
                range_meta = m
            elif isinstance(m, Options):
                options_meta = m
            elif isinstance(m, Desc):
                desc_meta = m

        if range_meta and options_meta:
            raise TypeError(
                f"Parameter '{name}' on {cls.__qualname__}: "
                f"Range and Options are mutually exclusive."
            )

        default = getattr(cls, name, _SENTINEL)
        has_default = default is not _SENTINEL

        specs.append(ParamSpec(
            name=name,
            param_type=base_type,
            default=default if has_default else None,
            has_default=has_default,
            description=desc_meta.text if desc_meta else '',
            min_value=range_meta.min if range_meta else None,
            max_value=range_meta.max if range_meta else None,
            choices=options_meta.choices if options_meta else None,
        ))

    return tuple(specs)


# =====================================================================
# __init__ generation
# =====================================================================

def _make_init(param_specs: Tuple[ParamSpec, ...]):
    """Build an ``__init__`` from *param_specs* with a proper signature.

    The generated function accepts keyword-only arguments matching each
    spec plus ``logger``, falls back to spec defaults, coerces and
    validates every value, then calls ``self.__post_init__()`` if the
    class defines one.
    """
    _specs = param_specs

    def __init__(self, logger: Optional[logging.Logger] = None, **kwargs):
        for spec in _specs:
            if spec.name in kwargs:
                value = spec.coerce(kwargs[spec.name])
            elif spec._has_default:
                value = spec.default
            else:
                raise TypeError(
                    f"{type(self).__name__}() missing required "
                    f"keyword argument: '{spec.name}'"
                )
            spec.validate(value)
            object.__setattr__(self, spec.name, value)

        expected = {s.name for s in _specs}
        unexpected = set(kwargs) - expected
        if unexpected:
            raise TypeError(
                f"{type(self).__name__}() got unexpected "
                f"keyword arguments: {', '.join(sorted(unexpected))}"
            )

        self._logger = logger
        if hasattr(self, '__post_init__'):
            self.__post_init__()

    params = [
        inspect.Parameter('self', inspect.Parameter.POSITIONAL_OR_KEYWORD),
        inspect.Parameter(
            'logger', inspect.Parameter.KEYWORD_ONLY, default=None,
        ),
    ]
    for spec in _specs:
        if spec._has_default:
            params.append(inspect.Parameter(
                spec.name,
                inspect.Parameter.KEYWORD_ONLY,
                default=spec.default,
            ))
        else:
            params.append(inspect.Parameter(
                spec.name,
                inspect.Parameter.KEYWORD_ONLY,
            ))
    __init__.__signature__ = inspect.Signature(params)
    __init__.__qualname__ = '__init__'

    return __init__


class Configurable:
    """Base class for components configured through ``Annotated`` fields.

    ``__init_subclass__`` collects the tunable fields into
    ``__param_specs__`` and generates a keyword-only ``__init__`` unless
    the subclass defines its own. Subclasses resolve their logger through
    ``self.log`` so an injected logger always wins over the module one.
    """

    #: Tuple of :class:`ParamSpec` built by ``__init_subclass__``.
    __param_specs__: Tuple[ParamSpec, ...] = ()

    #: Module logger used when no logger is injected.
    _default_logger: logging.Logger = logging.getLogger(__name__)

    _logger: Optional[logging.Logger] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls.__param_specs__ = collect_param_specs(cls)
        if '_default_logger' not in cls.__dict__:
            cls._default_logger = logging.getLogger(cls.__module__)
        if cls.__param_specs__ and '__init__' not in cls.__dict__:
            cls.__init__ = _make_init(cls.__param_specs__)

    @property
    def log(self) -> logging.Logger:
        """Logger for this component (injected or module default)."""
        if self._logger is not None:
            return self._logger
        return type(self)._default_logger

    def get_params(self) -> Dict[str, Any]:
        """Current values of all tunable parameters.

        Returns
        -------
        Dict[str, Any]
            Mapping of parameter name to value, in declaration order.
        """
        return {spec.name: getattr(self, spec.name)
                for spec in self.__param_specs__}

    @classmethod
    def from_mapping(
        cls,
        mapping: Dict[str, Any],
        logger: Optional[logging.Logger] = None,
    ) -> 'Configurable':
        """Build an instance from a plain dict, ignoring unknown keys.

        Parameters
        ----------
        mapping : Dict[str, Any]
            Parameter values keyed by name, e.g. parsed CLI options.
        logger : logging.Logger, optional
            Logger injected into the new instance.
        """
        names = {spec.name for spec in cls.__param_specs__}
        return cls(logger=logger,
                   **{k: v for k, v in mapping.items() if k in names})

    def __repr__(self) -> str:
        args = ', '.join(f"{k}={v!r}" for k, v in self.get_params().items())
        return f"{type(self).__name__}({args})"
