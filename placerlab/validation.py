"""
validation.py
=============

Configuration errors and the small coercion helpers used wherever a JSON
pattern document is read, plus the default-parameter merge shared by symbols
and effects.
"""

import copy
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple


class ConfigError(ValueError):
    """Raised for malformed pattern configuration (bad tag, value or JSON)."""


def require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigError(msg)


def as_number(x: Any, path: str) -> float:
    require(isinstance(x, (int, float)) and not isinstance(x, bool), f"{path} must be a number")
    return x


def as_int(x: Any, path: str) -> int:
    # 3.0 coming back from a slider is still an integer count
    if isinstance(x, float) and x.is_integer():
        x = int(x)
    require(isinstance(x, int) and not isinstance(x, bool), f"{path} must be an integer")
    return int(x)


def as_bool(x: Any, path: str) -> bool:
    require(isinstance(x, bool), f"{path} must be a boolean")
    return x


def as_str(x: Any, path: str) -> str:
    require(isinstance(x, str), f"{path} must be a string")
    return x


def as_dict(x: Any, path: str) -> Dict[str, Any]:
    require(isinstance(x, dict), f"{path} must be an object")
    return x


def as_list(x: Any, path: str) -> List[Any]:
    require(isinstance(x, list), f"{path} must be an array")
    return x


def merge_defaults(defaults: Any, parameters: Dict[str, Any], rng: Optional[random.Random] = None) -> Dict[str, Any]:
    """Deep-merge a default template into `parameters` (in place) and return it.

    Missing keys get a copy of the default; a callable default is called with
    `rng` to produce the value. Nested objects merge recursively. Arrays and
    values the caller supplied are never touched.
    """
    if not isinstance(defaults, dict) or not isinstance(parameters, dict):
        return parameters
    for name, default in defaults.items():
        if parameters.get(name) is None:
            if callable(default):
                parameters[name] = default(rng if rng is not None else random.Random())
            else:
                parameters[name] = copy.deepcopy(default)
        elif isinstance(default, dict):
            merge_defaults(default, parameters[name], rng)
    return parameters


@dataclass(frozen=True)
class Field:
    """One editable parameter as shown by a property panel."""
    name: str
    label: str
    kind: str = "number"          # number | int | bool | choice | json
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    step: Optional[float] = None
    options: Tuple[str, ...] = ()

    def coerce(self, value: Any, path: str) -> Any:
        if self.kind == "bool":
            return as_bool(value, path)
        if self.kind == "choice":
            require(value in self.options, f"{path} must be one of {list(self.options)}")
            return value
        if self.kind == "json":
            return value
        number = as_int(value, path) if self.kind == "int" else as_number(value, path)
        if self.minimum is not None:
            require(number >= self.minimum, f"{path} must be >= {self.minimum:g}")
        if self.maximum is not None:
            require(number <= self.maximum, f"{path} must be <= {self.maximum:g}")
        return number
