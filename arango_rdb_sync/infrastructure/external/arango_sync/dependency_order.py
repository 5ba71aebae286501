"""
Orden topológico de unidades de sync por dependencias declaradas.

Algoritmo de Kahn con cola FIFO: las unidades sin dependencias pendientes
salen en el orden en que fueron declaradas. Los nombres se comparan sin
distinguir mayúsculas.
"""

from __future__ import annotations

from collections import deque
from typing import Callable, Iterable, Sequence, TypeVar

from arango_rdb_sync.shared.exceptions.sync import ConfigurationError, CyclicDependencyError

T = TypeVar("T")


def dependency_order(
    units: Sequence[T],
    *,
    name_of: Callable[[T], str],
    dependencies_of: Callable[[T], Iterable[str]],
) -> list[T]:
    """
    Retorna las unidades en un orden donde cada una aparece después de todas
    sus dependencias.

    Raises:
        ConfigurationError: nombre duplicado o dependencia desconocida.
        CyclicDependencyError: existe al menos un ciclo.
    """
    index_by_name: dict[str, int] = {}
    for i, unit in enumerate(units):
        name = name_of(unit).strip().lower()
        if name in index_by_name:
            raise ConfigurationError(
                f"Unidad duplicada: {name_of(unit)}",
                error_code="DUPLICATE_NAME",
                details={"name": name_of(unit)},
            )
        index_by_name[name] = i

    in_degree = [0] * len(units)
    dependents: list[list[int]] = [[] for _ in units]
    for i, unit in enumerate(units):
        seen: set[str] = set()
        for dependency in dependencies_of(unit):
            dep_name = dependency.strip().lower()
            if dep_name in seen:
                continue
            seen.add(dep_name)
            if dep_name not in index_by_name:
                raise ConfigurationError(
                    f"Dependencia desconocida '{dependency}' declarada por {name_of(unit)}",
                    error_code="UNKNOWN_DEPENDENCY",
                    details={"unit": name_of(unit), "dependency": dependency},
                )
            dependents[index_by_name[dep_name]].append(i)
            in_degree[i] += 1

    ready = deque(i for i, degree in enumerate(in_degree) if degree == 0)
    ordered: list[T] = []
    while ready:
        current = ready.popleft()
        ordered.append(units[current])
        for dependent in dependents[current]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                ready.append(dependent)

    if len(ordered) < len(units):
        pending = [name_of(units[i]) for i, degree in enumerate(in_degree) if degree > 0]
        raise CyclicDependencyError(pending)
    return ordered
