"""Parámetros de request tipados y el `ParameterBag`.

Cada valor de configuración llega como una variante etiquetada
(`StrParam`, `IntParam`, `BoolParam`, `IntListParam`). `None` significa
"unset/unknown" en el sentido del host: el valor no se envía.

Regla de presencia:
- strings: solo si son no vacíos;
- enteros y booleanos: siempre que sean conocidos, incluido `0`/`False`;
- listas de enteros: siempre que sean conocidas; las entradas `None` se
  descartan al renderizar.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Sequence, Union

ACCOUNT_IDS_KEY = "account_ids"


@dataclass(frozen=True)
class StrParam:
    value: str | None = None


@dataclass(frozen=True)
class IntParam:
    value: int | None = None


@dataclass(frozen=True)
class BoolParam:
    value: bool | None = None


@dataclass(frozen=True)
class IntListParam:
    """Lista de identificadores; admite entradas desconocidas (`None`)."""

    value: tuple[int | None, ...] | None = None

    @classmethod
    def of(cls, values: Sequence[int | None] | None) -> "IntListParam":
        return cls(None if values is None else tuple(values))

    def known(self) -> list[int]:
        return [v for v in self.value or () if v is not None]


ParamValue = Union[StrParam, IntParam, BoolParam, IntListParam]


def is_present(param: ParamValue) -> bool:
    if isinstance(param, StrParam):
        return param.value is not None and param.value != ""
    if isinstance(param, (IntParam, BoolParam, IntListParam)):
        return param.value is not None
    raise TypeError(f"unsupported parameter type: {type(param).__name__}")


@dataclass
class ParameterBag:
    """Bolsa dispersa `clave -> valor tipado`; el orden no importa."""

    _values: dict[str, ParamValue] = field(default_factory=dict)

    def set(self, key: str, param: ParamValue) -> None:
        if is_present(param):
            self._values[key] = param

    def set_str(self, key: str, value: str | None) -> None:
        self.set(key, StrParam(value))

    def set_int(self, key: str, value: int | None) -> None:
        self.set(key, IntParam(value))

    def set_bool(self, key: str, value: bool | None) -> None:
        self.set(key, BoolParam(value))

    def set_int_list(self, key: str, values: Sequence[int | None] | None) -> None:
        self.set(key, IntListParam.of(values))

    def get(self, key: str) -> ParamValue | None:
        return self._values.get(key)

    def keys(self) -> list[str]:
        return sorted(self._values)

    def items(self) -> Iterator[tuple[str, ParamValue]]:
        return iter(self._values.items())

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __bool__(self) -> bool:
        return bool(self._values)
