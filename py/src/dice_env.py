# Variables for a single evaluation.
import copy
import logging

from dice_errors import IndexIntoNonArray, IndexOutOfBounds, UndefinedVariable
from dice_values import Place, RRVal

log = logging.getLogger(__name__)


# Ordered mapping from variable name to deep-resolved value.
# Values are copied on the way in and out, so assigning into one
# variable's array never changes another's.
class Variables:
    def __init__(self):
        self._values: dict[str, RRVal] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._values

    def __len__(self):
        return len(self._values)

    def names(self) -> list[str]:
        return list(self._values.keys())

    def items(self):
        return [(name, copy.deepcopy(value)) for name, value in self._values.items()]

    # Follow `indices` down from `value`. `prefix` is the part of the path
    # already walked, for error reporting.
    @staticmethod
    def _walk(name: str, value: RRVal, indices: tuple[int, ...], prefix=()) -> RRVal:
        path = list(prefix)
        for i in indices:
            path.append(i)
            if not isinstance(value, list):
                raise IndexIntoNonArray(name, path)
            if i < 0 or i >= len(value):
                raise IndexOutOfBounds(name, path, len(value))
            value = value[i]
        return value

    def get(self, place: Place) -> RRVal:
        try:
            value = self._values[place.name]
        except KeyError:
            raise UndefinedVariable(place.name) from None
        return copy.deepcopy(self._walk(place.name, value, place.indices))

    # Create the variable, or overwrite the indexed position in place.
    def set(self, place: Place, value: RRVal):
        value = copy.deepcopy(value)
        if not place.indices:
            self._values[place.name] = value
            log.debug(f"{place.name} = {value!r}")
            return
        if place.name not in self._values:
            raise UndefinedVariable(place.name)

        *parents, last = place.indices
        container = self._walk(place.name, self._values[place.name], tuple(parents))
        path = parents + [last]
        if not isinstance(container, list):
            raise IndexIntoNonArray(place.name, path)
        if last < 0 or last >= len(container):
            raise IndexOutOfBounds(place.name, path, len(container))
        container[last] = value
        log.debug(f"{place} = {value!r}")
